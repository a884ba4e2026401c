"""MCP tool handler for ensuring a local repository clone.

Defines one tool:

- ``repo_ensure_local`` -- clone or update a remote repository under the
  clone root and report its local path, HEAD, and freshness.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync.engine import ensure_local
from ...sync.reporter import format_sync_result, result_to_json
from ...sync.request import EnsureLocalRequest
from .registry import ToolContext, ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definition
# ---------------------------------------------------------------------------


REPO_ENSURE_LOCAL_TOOL = types.Tool(
    name="repo_ensure_local",
    description=(
        "When a user references a GitHub or other remote repository, clone "
        "or update it locally so it can be investigated with file tools "
        "(Read, Grep, Glob). Also useful for repository-specific questions "
        "where grounding answers in real source code improves reliability. "
        "Returns the absolute local_path plus HEAD and freshness details."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "repo": {
                "type": "string",
                "description": (
                    "Repository to clone/update: https://host/owner/repo, "
                    "host/owner/repo, owner/repo (GitHub), or a GitHub web "
                    "URL. git@host:owner/repo.git only with allow_ssh."
                ),
            },
            "ref": {
                "type": "string",
                "description": "Optional branch/tag/sha to check out after clone/fetch.",
            },
            "clone_root": {
                "type": "string",
                "description": "Optional absolute clone root path override.",
            },
            "depth": {
                "type": "integer",
                "minimum": 1,
                "description": "Optional shallow clone depth (first clone only).",
            },
            "update_mode": {
                "type": "string",
                "enum": ["ff-only", "fetch-only", "reset-clean"],
                "default": "ff-only",
                "description": (
                    "Update policy for an existing clone: ff-only (default), "
                    "fetch-only, or reset-clean (discards local changes)."
                ),
            },
            "allow_ssh": {
                "type": "boolean",
                "description": (
                    "Allow git@host:owner/repo.git references. Defaults to "
                    "the server setting (REPO_LOCAL_ALLOW_SSH)."
                ),
            },
        },
        "required": ["repo"],
        "additionalProperties": False,
    },
)


# ---------------------------------------------------------------------------
# Tool handler
# ---------------------------------------------------------------------------


async def handle_repo_ensure_local(
    context: ToolContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``repo_ensure_local`` tool.

    Telemetry is recorded off the event loop for success and failure
    alike; failures are re-raised for the registry to translate.

    Args:
        context: Shared handler collaborators.
        args: Raw tool arguments.

    Returns:
        ``CallToolResult`` with a text summary and the ``SyncResult`` as
        structured content.
    """
    try:
        request = EnsureLocalRequest.from_arguments(args)
        result = await run_sync(
            ensure_local, request, context.config, context.git
        )
    except Exception as exc:
        await run_sync(context.telemetry.record_failure, args, exc)
        raise

    await run_sync(context.telemetry.record_success, args, result)

    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_result(result))
        ],
        structuredContent=result_to_json(result),
    )


REPO_SPECS: list[ToolSpec] = [
    ToolSpec(tool=REPO_ENSURE_LOCAL_TOOL, handler=handle_repo_ensure_local),
]
