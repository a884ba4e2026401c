"""Local clone synchronization engine.

``EnsureLocalEngine`` makes sure a repository exists at its deterministic
path under the clone root and brings it up to date:

1. Check that git is available.
2. Build the local path from the repository identity.
3. **Absent** -- clone (optionally shallow), check out ``ref``, status
   ``cloned``.
4. **Present** -- verify it is a git working copy whose origin is the same
   repository, record HEAD, fetch, check out ``ref``, apply the update
   policy, and derive the status from HEAD before/after.
5. Compute freshness of HEAD against its comparison ref (unknown while
   a clone of an empty repository has no commit).
6. Build and return a ``SyncResult``.

Steps run strictly in order; later steps depend on the side effects of
earlier ones. There is no locking: concurrent calls for the same path must
be serialized by the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import Config
from ..core.git import GitClient
from ..core.paths import build_repo_path, resolve_clone_root
from ..core.reference import RepositoryIdentity, parse_repository
from ..exceptions import (
    DetachedHeadError,
    DirtyWorktreeError,
    NotAVcsRepoError,
    RepositoryMismatchError,
    UnsupportedUpdateModeError,
    VcsOperationFailedError,
)
from .models import (
    DETACHED_HEAD,
    FreshnessReport,
    SyncResult,
    SyncStatus,
    UpdateMode,
    classify_freshness,
)
from .request import EnsureLocalRequest

logger = logging.getLogger(__name__)


class EnsureLocalEngine:
    """Clone-or-update state machine for one clone root.

    Args:
        git: Git adapter used for every repository operation.
        clone_root: Absolute directory under which clones are placed.
    """

    def __init__(self, git: GitClient, clone_root: Path) -> None:
        self.git = git
        self.clone_root = clone_root

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(
        self,
        identity: RepositoryIdentity,
        ref: str | None = None,
        depth: int | None = None,
        update_mode: UpdateMode | str = UpdateMode.FF_ONLY,
    ) -> SyncResult:
        """Ensure *identity* is cloned locally and synchronized.

        Args:
            identity: Parsed repository identity.
            ref: Optional branch, tag, or commit to check out.
            depth: Optional shallow clone depth (first clone only).
            update_mode: Policy for an existing clone.

        Returns:
            The complete ``SyncResult``.

        Raises:
            RepoLocalError: Any kind from the error taxonomy; no partial
                result is ever returned.
        """
        mode = _coerce_update_mode(update_mode)
        self._ensure_git_available()

        local_path = build_repo_path(self.clone_root, identity)
        actions: list[str] = []

        if local_path.exists():
            status = self._update_existing(
                local_path, identity, mode, ref, actions
            )
        else:
            status = self._clone_missing(
                local_path, identity, depth, ref, actions
            )

        current_ref = self.git.current_ref(local_path)
        default_branch = self.git.default_branch(local_path)
        head_sha = self.git.head_sha(local_path)
        if head_sha is None:
            # empty repository: no commit to compare
            report = FreshnessReport()
        else:
            report = self.compute_freshness(
                local_path, current_ref, default_branch
            )

        logger.info(
            "%s %s at %s (%s, freshness=%s)",
            status.value,
            identity.canonical_url,
            local_path,
            current_ref,
            report.freshness.value,
        )

        return SyncResult(
            status=status,
            repo_url=identity.canonical_url,
            local_path=str(local_path),
            current_ref=current_ref,
            default_branch=default_branch,
            head_sha=head_sha,
            comparison_ref=report.comparison_ref,
            remote_head_sha=report.remote_head_sha,
            ahead_by=report.ahead_by,
            behind_by=report.behind_by,
            freshness=report.freshness,
            actions=actions,
            instructions=_instructions(local_path),
        )

    # ------------------------------------------------------------------
    # Branch A: directory absent
    # ------------------------------------------------------------------

    def _clone_missing(
        self,
        local_path: Path,
        identity: RepositoryIdentity,
        depth: int | None,
        ref: str | None,
        actions: list[str],
    ) -> SyncStatus:
        logger.info(
            "Cloning %s into %s%s",
            identity.canonical_url,
            local_path,
            f" (depth={depth})" if depth else "",
        )
        self.git.clone(identity.canonical_url, local_path, depth)
        actions.append("cloned_repository")
        self._checkout_if_requested(local_path, ref, actions)
        return SyncStatus.CLONED

    # ------------------------------------------------------------------
    # Branch B: directory present
    # ------------------------------------------------------------------

    def _update_existing(
        self,
        local_path: Path,
        identity: RepositoryIdentity,
        mode: UpdateMode,
        ref: str | None,
        actions: list[str],
    ) -> SyncStatus:
        self._verify_existing_clone(local_path, identity)

        before_sha = self.git.head_sha(local_path)
        self.git.fetch(local_path)
        actions.append("fetched_origin")

        self._checkout_if_requested(local_path, ref, actions)

        match mode:
            case UpdateMode.FF_ONLY:
                self._fast_forward(local_path, actions)
            case UpdateMode.RESET_CLEAN:
                self._reset_clean(local_path, actions)
            case UpdateMode.FETCH_ONLY:
                return SyncStatus.FETCHED

        after_sha = self.git.head_sha(local_path)
        if before_sha == after_sha:
            return SyncStatus.ALREADY_CURRENT
        return SyncStatus.UPDATED

    def _verify_existing_clone(
        self, local_path: Path, identity: RepositoryIdentity
    ) -> None:
        """Refuse to touch a directory that is not a clone of *identity*."""
        if not local_path.is_dir() or not self.git.is_repository(local_path):
            raise NotAVcsRepoError(
                f"Target path exists but is not a git repository: {local_path}",
                hint="Move the directory aside or choose another clone_root.",
            )

        origin_url = self.git.origin_url(local_path)
        # SSH is always allowed here: the clone may predate the caller's
        # current allow_ssh setting.
        existing = parse_repository(origin_url, allow_ssh=True)
        if existing.same_repository(identity):
            return

        raise RepositoryMismatchError(
            "Existing clone origin does not match requested repository",
            hint="Use a different clone_root, or remove the existing clone.",
            details=(
                f"requested={identity.canonical_url}\n"
                f"existing={existing.canonical_url}"
            ),
        )

    # ------------------------------------------------------------------
    # Update policies
    # ------------------------------------------------------------------

    def _fast_forward(self, local_path: Path, actions: list[str]) -> None:
        if self.git.is_dirty(local_path):
            raise DirtyWorktreeError(
                "Cannot fast-forward because working tree has local changes",
                hint="Commit/stash changes or use update_mode=fetch-only",
            )

        current_ref = self.git.current_ref(local_path)
        if current_ref == DETACHED_HEAD:
            actions.append("detached_head_no_pull")
            return

        if self._nothing_to_pull(local_path, current_ref):
            actions.append("empty_repository_no_pull")
            return

        try:
            self.git.pull_ff_only(local_path, current_ref)
        except VcsOperationFailedError as e:
            e.hint = e.hint or (
                "Local branch cannot be fast-forwarded; use "
                "update_mode=fetch-only to inspect, or update_mode=reset-clean "
                "to discard local commits."
            )
            raise
        actions.append(f"fast_forwarded_{current_ref}")

    def _reset_clean(self, local_path: Path, actions: list[str]) -> None:
        current_ref = self.git.current_ref(local_path)
        if current_ref == DETACHED_HEAD:
            raise DetachedHeadError(
                "Cannot use reset-clean while repository is in detached HEAD state",
                hint="Pass a branch name as ref, or use update_mode=fetch-only.",
            )

        if self._nothing_to_pull(local_path, current_ref):
            actions.append("empty_repository_no_pull")
            return

        logger.warning(
            "Discarding local changes in %s (reset-clean to origin/%s)",
            local_path,
            current_ref,
        )
        self.git.hard_reset(local_path, current_ref)
        actions.append(f"reset_clean_{current_ref}")

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def comparison_ref(
        self,
        local_path: Path,
        current_ref: str,
        default_branch: str | None,
    ) -> str | None:
        """Pick the ref HEAD is compared against.

        On a branch: its upstream, falling back to ``origin/<branch>``.
        Detached: ``origin/<default_branch>``. ``None`` if nothing resolves.
        """
        candidates: list[str] = []
        if current_ref != DETACHED_HEAD:
            upstream = self.git.upstream_ref(local_path, current_ref)
            if upstream:
                candidates.append(upstream)
            candidates.append(f"origin/{current_ref}")
        elif default_branch:
            candidates.append(f"origin/{default_branch}")

        for candidate in candidates:
            if self.git.resolve_commit(local_path, candidate):
                return candidate
        return None

    def compute_freshness(
        self,
        local_path: Path,
        current_ref: str,
        default_branch: str | None,
    ) -> FreshnessReport:
        """Compare HEAD with its comparison ref and classify the result."""
        ref = self.comparison_ref(local_path, current_ref, default_branch)
        if ref is None:
            logger.debug("No comparison ref for %s (%s)", local_path, current_ref)
            return FreshnessReport()

        remote_head_sha = self.git.resolve_commit(local_path, ref)
        ahead_by, behind_by = self.git.ahead_behind(local_path, ref)
        return FreshnessReport(
            comparison_ref=ref,
            remote_head_sha=remote_head_sha,
            ahead_by=ahead_by,
            behind_by=behind_by,
            freshness=classify_freshness(ahead_by, behind_by),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _nothing_to_pull(self, local_path: Path, branch: str) -> bool:
        """True for a clone of an empty repository that is still empty."""
        return (
            self.git.head_sha(local_path) is None
            and self.git.resolve_commit(local_path, f"origin/{branch}") is None
        )

    def _ensure_git_available(self) -> None:
        version = self.git.version()
        logger.debug("Using %s", version)

    def _checkout_if_requested(
        self, local_path: Path, ref: str | None, actions: list[str]
    ) -> None:
        if not ref:
            return
        self.git.checkout(local_path, ref)
        actions.append(f"checked_out_{ref}")


def _coerce_update_mode(value: UpdateMode | str) -> UpdateMode:
    if isinstance(value, UpdateMode):
        return value
    try:
        return UpdateMode(value.strip())
    except ValueError:
        raise UnsupportedUpdateModeError(
            f"Unsupported update_mode: {value}",
            hint="Use one of: ff-only, fetch-only, reset-clean.",
        ) from None


def _instructions(local_path: Path) -> list[str]:
    return [
        f"Use built-in tools with local_path: {local_path}",
        f"Example: run Grep/Read/Glob with files under {local_path}",
    ]


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def ensure_local(
    request: EnsureLocalRequest,
    config: Config,
    git: GitClient | None = None,
) -> SyncResult:
    """Parse, place, and synchronize the repository named by *request*.

    Settings the request leaves unset (``allow_ssh``, ``clone_root``) fall
    back to *config*.

    Args:
        request: Validated tool arguments.
        config: Process-wide settings.
        git: Git adapter; a ``GitClient`` honoring ``config.git_timeout``
            is created when omitted.

    Returns:
        The complete ``SyncResult``.
    """
    allow_ssh = (
        request.allow_ssh if request.allow_ssh is not None else config.allow_ssh
    )
    identity = parse_repository(request.repo, allow_ssh)

    client = git or GitClient(timeout=config.git_timeout)
    root = resolve_clone_root(request.clone_root, default=config.clone_root)
    engine = EnsureLocalEngine(client, root)
    return engine.run(
        identity,
        ref=request.ref,
        depth=request.depth,
        update_mode=request.update_mode,
    )
