"""Pydantic models for repository synchronization.

Defines the core data contracts shared by the engine and the tool layer
(``RepositoryIdentity`` lives beside the parser in ``core/reference.py``):

- ``UpdateMode``: Update policy applied to an existing clone.
- ``SyncStatus``: Outcome category of one ``ensure_local`` call.
- ``Freshness``: Local head position relative to its comparison ref.
- ``FreshnessReport``: Ahead/behind counts and classification.
- ``SyncResult``: Complete result record returned to the caller.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

# Literal ref name git reports for a detached HEAD.
DETACHED_HEAD = "HEAD"


class UpdateMode(str, Enum):
    """Update policies for an existing local clone."""

    FF_ONLY = "ff-only"
    FETCH_ONLY = "fetch-only"
    RESET_CLEAN = "reset-clean"


class SyncStatus(str, Enum):
    """How the local clone was brought into place."""

    CLONED = "cloned"
    UPDATED = "updated"
    ALREADY_CURRENT = "already-current"
    FETCHED = "fetched"


class Freshness(str, Enum):
    """Relationship between local HEAD and the comparison ref."""

    CURRENT = "current"
    STALE = "stale"
    AHEAD = "ahead"
    DIVERGED = "diverged"
    UNKNOWN = "unknown"


class FreshnessReport(BaseModel):
    """Ahead/behind comparison of local HEAD against a remote ref.

    ``comparison_ref`` and the counts are ``None`` when no comparison ref
    could be resolved, in which case ``freshness`` is ``UNKNOWN``.
    """

    comparison_ref: str | None = None
    remote_head_sha: str | None = None
    ahead_by: int | None = None
    behind_by: int | None = None
    freshness: Freshness = Freshness.UNKNOWN

    model_config = {"frozen": True}


def classify_freshness(ahead_by: int, behind_by: int) -> Freshness:
    """Classify ahead/behind commit counts.

    Args:
        ahead_by: Commits on local HEAD not in the comparison ref.
        behind_by: Commits on the comparison ref not in local HEAD.

    Returns:
        ``CURRENT``, ``STALE``, ``AHEAD`` or ``DIVERGED``.
    """
    if ahead_by == 0 and behind_by == 0:
        return Freshness.CURRENT
    if ahead_by == 0:
        return Freshness.STALE
    if behind_by == 0:
        return Freshness.AHEAD
    return Freshness.DIVERGED


class SyncResult(BaseModel):
    """Result of one ``ensure_local`` call.

    Attributes:
        status: How the clone was brought into place.
        repo_url: Canonical clone URL of the requested repository.
        local_path: Absolute path of the working copy.
        current_ref: Checked-out branch, or ``"HEAD"`` when detached.
        default_branch: Remote default branch, if known.
        head_sha: Commit id of local HEAD after the call; ``None`` for a
            clone of an empty repository.
        comparison_ref: Ref the freshness was computed against.
        remote_head_sha: Commit id of ``comparison_ref``.
        ahead_by: Local commits not on ``comparison_ref``.
        behind_by: Remote commits not on local HEAD.
        freshness: Classification of ``ahead_by``/``behind_by``.
        actions: Ordered log of operations actually performed.
        instructions: Guidance on how to use ``local_path``.
    """

    status: SyncStatus
    repo_url: str
    local_path: str
    current_ref: str
    default_branch: str | None = None
    head_sha: str | None = None
    comparison_ref: str | None = None
    remote_head_sha: str | None = None
    ahead_by: int | None = None
    behind_by: int | None = None
    freshness: Freshness = Freshness.UNKNOWN
    actions: list[str] = []
    instructions: list[str] = []

    model_config = {"frozen": True}

    @property
    def is_detached(self) -> bool:
        """True when the working copy is not on a named branch."""
        return self.current_ref == DETACHED_HEAD
