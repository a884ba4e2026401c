"""Deterministic local paths for repository clones.

A repository always lives at ``<clone_root>/<host>/<owner>/<repo>`` using the
segments exactly as canonicalized by the reference parser.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..exceptions import InvalidArgumentsError, PathEscapeError
from .reference import RepositoryIdentity

logger = logging.getLogger(__name__)

DEFAULT_CLONE_ROOT = Path.home() / ".repo_local" / "repos"


def resolve_clone_root(
    override: str | Path | None,
    default: Path = DEFAULT_CLONE_ROOT,
) -> Path:
    """Resolve (and create) the clone root directory.

    Args:
        override: Caller-supplied root. ``~`` is expanded; the result must
            be absolute.
        default: Root used when *override* is empty.

    Returns:
        The resolved absolute root path. The directory exists on return.

    Raises:
        InvalidArgumentsError: If *override* is not an absolute path.
    """
    if override is not None and str(override).strip():
        root = Path(str(override).strip()).expanduser()
        if not root.is_absolute():
            raise InvalidArgumentsError(
                f"clone_root must be an absolute path: {override}",
                hint="Pass an absolute directory such as /home/me/repos.",
            )
    else:
        root = Path(default).expanduser()

    root = root.resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def build_repo_path(root: Path, identity: RepositoryIdentity) -> Path:
    """Return the local working-copy path for *identity* under *root*.

    Args:
        root: Absolute clone root.
        identity: Parsed repository identity.

    Returns:
        Absolute path ``root/host/owner/repo``.

    Raises:
        PathEscapeError: If the resolved path is not a strict descendant
            of the resolved root.
    """
    resolved_root = Path(root).resolve()
    candidate = resolved_root.joinpath(
        identity.host, *identity.path_segments
    ).resolve()

    if candidate == resolved_root or resolved_root not in candidate.parents:
        logger.warning(
            "Rejected repository path %s outside clone root %s",
            candidate,
            resolved_root,
        )
        raise PathEscapeError(
            f"Resolved repository path escapes clone root: {candidate}",
            details=f"clone_root={resolved_root}",
        )

    return candidate
