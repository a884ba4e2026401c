"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, to_yaml_fallbacks
from ..core.async_utils import run_sync
from ..core.git import GitClient
from ..telemetry import TelemetrySink
from .tools.registry import ToolContext

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create the git adapter and check that git is installed
    - Fail fast if git is missing

    On shutdown:
    - Log shutdown message

    Args:
        config_overrides: Optional dict with config values from CLI
            (clone_root, allow_ssh, git_timeout, telemetry_enabled,
            telemetry_path)

    Yields:
        Dict with 'context' key containing the initialized ToolContext

    Raises:
        RuntimeError: If configuration is invalid or git is unavailable.
    """
    logger.info("MCP server starting...")
    _stderr_print("Repo Local MCP Server starting...")

    try:
        # .env first so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            config_path = config_files[0]
            unified = build_config(load_hierarchical_config())
            yaml_fallbacks = to_yaml_fallbacks(unified)
            sources.append(f"config file: {config_path}")

        overrides = config_overrides or {}
        config = load_config(
            clone_root=overrides.get("clone_root"),
            allow_ssh=overrides.get("allow_ssh", False),
            git_timeout=overrides.get("git_timeout"),
            telemetry_enabled=overrides.get("telemetry_enabled"),
            telemetry_path=overrides.get("telemetry_path"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Clone root: %s", config.clone_root)
        _stderr_print(f"  Clone root: {config.clone_root}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    logger.info("Checking git availability...")
    _stderr_print("  Checking git availability...")
    try:
        git = GitClient(timeout=config.git_timeout)
        git_version = await run_sync(git.version)
        logger.info("Using %s", git_version)
        _stderr_print(f"  Using {git_version}")
        _stderr_print(
            "Server ready. Waiting for MCP client connection..."
        )
    except Exception as e:
        logger.error("git is not available: %s", e)
        _stderr_print("ERROR: git is not available.")
        _stderr_print(f"  {e}")
        raise RuntimeError(
            f"git is not available: {e}. Install git and make sure it is on PATH."
        ) from e

    telemetry = TelemetrySink(
        path=config.telemetry_path, enabled=config.telemetry_enabled
    )
    if config.telemetry_enabled:
        logger.info("Telemetry: %s", config.telemetry_path)

    yield {
        "context": ToolContext(config=config, git=git, telemetry=telemetry)
    }

    logger.info("MCP server shutting down")
    _stderr_print("Repo Local MCP Server shutting down.")
