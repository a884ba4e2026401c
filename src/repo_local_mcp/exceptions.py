"""Error taxonomy for repository synchronization.

Every failure surfaced to a caller is a ``RepoLocalError`` subclass carrying a
stable ``code``, a human-readable ``message`` and an optional remediation
``hint``. The MCP tool layer turns these into structured error responses
(see ``mcp/tools/errors.py``).

``TransientError`` is the only retryable kind: it marks timeouts and
network-class failures of the git binary, as opposed to permanent
validation or state errors.
"""

from __future__ import annotations


class RepoLocalError(Exception):
    """Base class for all repository synchronization failures.

    Attributes:
        code: Stable snake_case error kind (e.g. ``dirty_worktree``).
        message: Human-readable description of what went wrong.
        hint: Optional corrective action for the caller.
        details: Optional extra context (URLs, stderr output).
        retryable: Whether retrying the same call may succeed.
    """

    code = "repo_local_error"
    retryable = False

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidReferenceError(RepoLocalError):
    """Repository input is empty, malformed, or uses a disallowed form."""

    code = "invalid_reference"


class InvalidArgumentsError(RepoLocalError):
    """Tool arguments contain unknown fields or values of the wrong type."""

    code = "invalid_arguments"


class PathEscapeError(RepoLocalError):
    """Computed local path is not a strict descendant of the clone root."""

    code = "path_escape"


class NotAVcsRepoError(RepoLocalError):
    """Target path exists but is not a git working copy."""

    code = "not_a_vcs_repo"


class RepositoryMismatchError(RepoLocalError):
    """Existing clone's origin is a different repository than requested."""

    code = "repository_mismatch"


class DirtyWorktreeError(RepoLocalError):
    """Fast-forward requested while the working tree has local changes."""

    code = "dirty_worktree"


class DetachedHeadError(RepoLocalError):
    """Hard reset requested while HEAD is not on a named branch."""

    code = "detached_head"


class UnsupportedUpdateModeError(RepoLocalError):
    """Update mode is not one of ff-only, fetch-only, reset-clean."""

    code = "unsupported_update_mode"


class VcsOperationFailedError(RepoLocalError):
    """The git binary exited non-zero (or could not be started)."""

    code = "vcs_operation_failed"


class TransientError(RepoLocalError):
    """Timeout or network-class git failure; the call may be retried."""

    code = "transient"
    retryable = True
