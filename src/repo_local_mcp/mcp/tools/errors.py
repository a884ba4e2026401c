"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human intervention.
"""

import mcp.types as types

from ...exceptions import RepoLocalError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (an error code such as dirty_worktree,
            or server_error / unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("dirty_worktree", "Working tree has local changes", "Use update_mode=fetch-only.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# ---------------------------------------------------------------------------
# Default corrective actions per error code
# ---------------------------------------------------------------------------

_DEFAULT_ACTIONS: dict[str, str] = {
    "invalid_reference": (
        "Pass repo as https://host/owner/repo, host/owner/repo, or owner/repo."
    ),
    "invalid_arguments": (
        "Use only: repo, ref, clone_root, depth, update_mode, allow_ssh."
    ),
    "path_escape": "Check the repository path segments and clone_root.",
    "not_a_vcs_repo": (
        "Move the directory aside or choose another clone_root."
    ),
    "repository_mismatch": (
        "Use a different clone_root, or remove the existing clone."
    ),
    "dirty_worktree": (
        "Commit/stash changes or use update_mode=fetch-only"
    ),
    "detached_head": (
        "Pass a branch name as ref, or use update_mode=fetch-only."
    ),
    "unsupported_update_mode": (
        "Use one of: ff-only, fetch-only, reset-clean."
    ),
    "vcs_operation_failed": (
        "Inspect the git output above; check ref names and repository access."
    ),
    "transient": "Retry the call; the failure may be temporary.",
}

_FALLBACK_ACTION = "Check the arguments and retry."


def translate_repo_error(error: RepoLocalError) -> types.CallToolResult:
    """Translate a ``RepoLocalError`` to a structured error response.

    The raiser's hint wins over the per-code default action. Error
    details (git stderr, requested/existing URLs) are appended to the
    message.

    Args:
        error: Any exception from the error taxonomy.

    Returns:
        CallToolResult with isError=True and corrective action
    """
    message = error.message
    if error.details:
        message = f"{message}\n{error.details}"

    action = error.hint or _DEFAULT_ACTIONS.get(error.code, _FALLBACK_ACTION)
    return build_error_response(error.code, message, action)
