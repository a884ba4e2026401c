"""Sync result formatting functions.

Provides human-readable and machine-readable output for ``ensure_local``:

- ``format_sync_result`` -- summary text for the tool response.
- ``result_to_json`` -- structured dict for MCP ``structuredContent``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .models import Freshness

if TYPE_CHECKING:
    from .models import SyncResult

_FRESHNESS_TEXT = {
    Freshness.CURRENT: "up to date with {ref}",
    Freshness.STALE: "{behind} commit(s) behind {ref}",
    Freshness.AHEAD: "{ahead} commit(s) ahead of {ref}",
    Freshness.DIVERGED: "diverged from {ref} ({ahead} ahead, {behind} behind)",
}


def _short_sha(sha: str | None) -> str:
    return sha[:12] if sha else "-"


def describe_freshness(result: SyncResult) -> str:
    """One-line description of how local HEAD relates to its comparison ref."""
    template = _FRESHNESS_TEXT.get(result.freshness)
    if template is None or result.comparison_ref is None:
        return "unknown (no comparison ref)"
    return template.format(
        ref=result.comparison_ref,
        ahead=result.ahead_by,
        behind=result.behind_by,
    )


def format_sync_result(result: SyncResult) -> str:
    """Format a ``SyncResult`` as human-readable text.

    Args:
        result: The completed sync result.

    Returns:
        Multi-line formatted string.
    """
    ref_text = result.current_ref
    if result.is_detached:
        ref_text = f"detached HEAD at {_short_sha(result.head_sha)}"

    lines = [
        f"Repository {result.status.value}: {result.repo_url}",
        f"  Local path:     {result.local_path}",
        f"  Current ref:    {ref_text}",
        f"  Default branch: {result.default_branch or '-'}",
        f"  HEAD:           {result.head_sha or '(no commits)'}",
        f"  Freshness:      {result.freshness.value} "
        f"({describe_freshness(result)})",
    ]
    if result.remote_head_sha:
        lines.append(f"  Remote HEAD:    {result.remote_head_sha}")

    if result.actions:
        lines.append("")
        lines.append("Actions:")
        for action in result.actions:
            lines.append(f"  - {action}")

    if result.instructions:
        lines.append("")
        lines.extend(result.instructions)

    return "\n".join(lines)


def result_to_json(result: SyncResult) -> dict[str, Any]:
    """Convert a sync result to a JSON-serialisable dict.

    Keys are exactly the ``SyncResult`` fields; enum members become their
    string values.
    """
    return result.model_dump(mode="json")
