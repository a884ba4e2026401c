"""MCP Server for local repository access using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents clone or update remote repositories into a deterministic local
directory and then inspect them with ordinary file tools.

Transport: stdio (for desktop and CLI agent integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..logger import setup_logging
from ..version import check_version_consistency
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolContext

logger = logging.getLogger(__name__)

SERVER_NAME = "repo-local-mcp"

# Initialize server instance
server = Server(SERVER_NAME)

# Global tool context (initialized in lifespan)
_context: ToolContext | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> ToolContext:
    """Get the global ToolContext instance.

    Raises:
        RuntimeError: If context is not initialized
    """
    if _context is None:
        raise RuntimeError(
            "ToolContext not initialized. Server lifespan not started."
        )
    return _context


def set_context(context: ToolContext | None) -> None:
    """Set the global ToolContext instance, or None to clear."""
    global _context
    _context = context


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    """Set the global ToolRegistry instance, or None to clear."""
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available tools from the ToolRegistry."""
    return get_registry().list_tools()


# Arguments are validated by each handler so rejected calls are still
# recorded and reported with a structured error code.
@server.call_tool(validate_input=False)
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    context = get_context()
    try:
        return await get_registry().call_tool(name, arguments, context)
    except ValueError as e:
        # Unknown tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), validates
    configuration and git availability via the lifespan manager, and
    starts the server with stdio transport for JSON-RPC communication.

    Args:
        config_overrides: Optional dict with config values to override
            (clone_root, allow_ssh, git_timeout, telemetry_enabled,
            telemetry_path, log_file, log_format, debug)
    """
    overrides = config_overrides or {}

    # Must run BEFORE stdio_server so nothing reaches stdout during
    # protocol negotiation.
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
        debug_format=overrides.get("log_format", "text"),
    )

    # Version check (non-blocking warning for a stale install)
    is_consistent, message = check_version_consistency()
    if not is_consistent:
        logger.warning(message)
    else:
        logger.info(message)

    registry = ToolRegistry(ALL_SPECS)
    logger.info("Registered %d tools", registry.tool_count())
    set_registry(registry)

    # set_context() is called here rather than in the lifespan: when run
    # via `python -m repo_local_mcp.mcp.server` this module is __main__,
    # and importing it from lifespan.py would create a second copy.
    async with server_lifespan(config_overrides=config_overrides) as ctx:
        set_context(ctx["context"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_context(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser for ``repo-local-mcp``."""
    parser = argparse.ArgumentParser(
        description="Repo Local MCP Server - clone or update remote repositories for local inspection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .repo_local/config.yml)
  repo-local-mcp

  # Place clones somewhere else
  repo-local-mcp --clone-root /srv/agent-repos

  # Accept git@host:owner/repo.git references
  repo-local-mcp --allow-ssh

  # Disable telemetry and log to a custom file
  repo-local-mcp --no-telemetry --log-file /var/log/repo-local-mcp.log

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--clone-root",
        help="Absolute directory clones are placed under (takes precedence over REPO_LOCAL_CLONE_ROOT and config files)",
    )
    parser.add_argument(
        "--allow-ssh",
        action="store_true",
        help="Accept git@host:owner/repo.git and ssh:// references by default",
    )
    parser.add_argument(
        "--git-timeout",
        type=float,
        help="Per git command timeout in seconds (default: 300)",
    )
    parser.add_argument(
        "--telemetry-path",
        help="Telemetry JSONL file (default: ~/.local/share/repo-local-mcp/telemetry.jsonl)",
    )
    parser.add_argument(
        "--no-telemetry",
        action="store_true",
        help="Do not record invocation telemetry",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: LOG_FILE or /tmp/repo-local-mcp.log)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a starter config file if none exists, print its path, and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{SERVER_NAME} version {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Build the config overrides dict from parsed CLI arguments.

    Only options the user actually passed are included.
    """
    config_overrides: dict = {}
    if args.clone_root:
        config_overrides["clone_root"] = args.clone_root
    if args.allow_ssh:
        config_overrides["allow_ssh"] = True
    if args.git_timeout is not None:
        config_overrides["git_timeout"] = args.git_timeout
    if args.telemetry_path:
        config_overrides["telemetry_path"] = args.telemetry_path
    if args.no_telemetry:
        config_overrides["telemetry_enabled"] = False
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.log_format:
        config_overrides["log_format"] = args.log_format
    if args.debug:
        config_overrides["debug"] = True
    return config_overrides


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()
    if args.init_config:
        print(ensure_config())
        return

    config_overrides = overrides_from_args(args)

    # Log config overrides to stderr (before stdio transport starts)
    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(
            main(
                config_overrides=config_overrides
                if config_overrides
                else None
            )
        )
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
