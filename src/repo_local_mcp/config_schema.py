"""Unified configuration schema for repo_local_mcp.

Defines Pydantic models for the YAML config structure with dedicated
sections for clone placement and telemetry, plus an adapter
that flattens them into the fallbacks ``load_config()`` consumes.

Usage:
    from repo_local_mcp.config_schema import build_config, to_yaml_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_yaml_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ReposConfig(BaseModel):
    """Clone placement and git settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    clone_root: str | None = Field(
        default=None, description="Absolute directory clones are placed under"
    )
    allow_ssh: bool = Field(
        default=False,
        description="Accept git@host:owner/repo.git references",
    )
    git_timeout: float = Field(
        default=300.0,
        gt=0,
        le=86400,
        description="Per git command timeout in seconds",
    )

    model_config = {"frozen": True}


class TelemetryConfig(BaseModel):
    """Invocation telemetry settings."""

    enabled: bool = Field(default=True, description="Record telemetry")
    path: str | None = Field(
        default=None, description="Telemetry JSONL file path"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    repos: ReposConfig = Field(default_factory=ReposConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully: anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_config() fallbacks
# ---------------------------------------------------------------------------


def to_yaml_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten the ``repos`` and ``telemetry`` sections into the keyword
    names ``load_config()`` expects in ``yaml_fallbacks``.

    Only explicitly set values are included, so a missing YAML key never
    masks a built-in default.

    Args:
        unified: The unified config produced by ``build_config()``.

    Returns:
        Dict with any of: clone_root, allow_ssh, git_timeout,
        telemetry_enabled, telemetry_path.
    """
    fallbacks: dict[str, Any] = {}

    repos = unified.repos
    for key in ("clone_root", "allow_ssh", "git_timeout"):
        if key in repos.model_fields_set:
            value = getattr(repos, key)
            if value is not None:
                fallbacks[key] = value

    telemetry = unified.telemetry
    if "enabled" in telemetry.model_fields_set:
        fallbacks["telemetry_enabled"] = telemetry.enabled
    if telemetry.path:
        fallbacks["telemetry_path"] = telemetry.path

    return fallbacks
