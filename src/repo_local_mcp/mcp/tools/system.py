"""System tool handlers for MCP server.

This module implements ``ping``, which reports server version and git
availability so an agent can diagnose setup problems before cloning.
"""

import logging

import mcp.types as types

from ... import __version__
from ...core.async_utils import run_sync
from ...exceptions import RepoLocalError
from .errors import build_error_response
from .registry import ToolContext, ToolSpec

logger = logging.getLogger(__name__)


PING_TOOL = types.Tool(
    name="ping",
    description=(
        "Check that the repo-local MCP server is running and git is "
        "available. Returns server version, git version, and clone root."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
    inputSchema={
        "type": "object",
        "properties": {},
        "required": [],
    },
)


async def _handle_ping(
    context: ToolContext, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- report git availability."""
    try:
        git_version = await run_sync(context.git.version)
    except RepoLocalError as e:
        logger.error("git unavailable: %s", e)
        return build_error_response(
            "vcs_operation_failed",
            f"git is not available: {e.message}",
            e.hint or "Install git and make sure it is on PATH.",
        )

    clone_root = str(context.config.clone_root)
    text = (
        f"repo-local-mcp {__version__} ready. {git_version}. "
        f"Clone root: {clone_root}"
    )
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "server_version": __version__,
            "git_version": git_version,
            "clone_root": clone_root,
            "allow_ssh": context.config.allow_ssh,
        },
    )


SYSTEM_SPECS: list[ToolSpec] = [
    ToolSpec(tool=PING_TOOL, handler=_handle_ping),
]
