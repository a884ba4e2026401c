"""Repository reference parsing and canonicalization.

Turns arbitrary repository identifiers into a ``RepositoryIdentity`` whose
``comparison_key`` is equal for every spelling of the same repository.

Recognized forms, tried in order (first match wins):

1. ``https://host/owner/repo(.git)`` -- scheme must be exactly https.
2. ``host/owner/repo`` -- first segment must contain a dot or colon.
3. ``owner/repo`` -- GitHub shorthand, host defaults to ``github.com``.
4. ``git@host:owner/repo.git`` and ``ssh://git@host/owner/repo.git`` --
   only when SSH is allowed.

Each recognizer returns an identity, or ``None`` for "not this form" so the
next one is tried. A recognizer may also raise ``InvalidReferenceError``
when the input is clearly meant as its form but is malformed (for example
``http://`` URLs).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel

from ..exceptions import InvalidReferenceError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "github.com"

_SSH_PATTERN = re.compile(r"^git@([^:/]+):(.+)$")
_GIT_SUFFIX_PATTERN = re.compile(r"\.git$", re.IGNORECASE)
_HTTP_OR_HTTPS_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

# Third path segment of github.com browser URLs that point inside a repo.
GITHUB_WEB_MARKERS = frozenset(
    {
        "tree",
        "blob",
        "commit",
        "pull",
        "issues",
        "actions",
        "releases",
        "wiki",
    }
)


class RepositoryIdentity(BaseModel):
    """Canonical identity of a remote repository.

    Attributes:
        raw: The input string the identity was parsed from (trimmed).
        host: Lowercase host, with its port when one was given.
        path_segments: Validated path components (owner, repo, ...).
        canonical_url: ``https://host/path.git`` or ``git@host:path.git``.
        comparison_key: Lowercased ``host/path``; equal keys mean the
            same repository regardless of input format.
        transport: ``"https"`` or ``"ssh"``, the form the URL was built in.
    """

    raw: str
    host: str
    path_segments: tuple[str, ...]
    canonical_url: str
    comparison_key: str
    transport: Literal["https", "ssh"] = "https"

    model_config = {"frozen": True}

    def same_repository(self, other: RepositoryIdentity) -> bool:
        """Return True if *other* refers to the same remote repository."""
        return self.comparison_key == other.comparison_key


# ---------------------------------------------------------------------------
# Path segment helpers
# ---------------------------------------------------------------------------


def split_path_segments(value: str) -> list[str]:
    """Split a repository path into segments.

    Strips surrounding whitespace and slashes, drops empty segments, and
    removes a trailing ``.git`` from the final segment only.
    """
    trimmed = value.strip().strip("/")
    if not trimmed:
        return []

    segments = [s for s in trimmed.split("/") if s]
    if not segments:
        return []

    segments[-1] = _GIT_SUFFIX_PATTERN.sub("", segments[-1])
    return segments


def _collapse_web_url(host: str, segments: list[str]) -> list[str]:
    """Truncate a github.com browser deep-link to its repository root."""
    if host.lower() != DEFAULT_HOST:
        return segments
    if len(segments) >= 3 and segments[2] in GITHUB_WEB_MARKERS:
        return segments[:2]
    return segments


def _validate_segments(segments: list[str]) -> None:
    if len(segments) < 2:
        raise InvalidReferenceError(
            "Repository URL must include owner and repository name"
        )
    for segment in segments:
        if not segment or segment in (".", ".."):
            raise InvalidReferenceError(
                "Repository URL contains an invalid path segment"
            )


def build_identity(
    raw: str,
    host: str,
    segments: list[str],
    transport: Literal["https", "ssh"],
) -> RepositoryIdentity:
    """Normalize and validate *segments* and assemble the identity.

    Raises:
        InvalidReferenceError: If the host is empty, fewer than two
            segments remain, or any segment is empty, ``.`` or ``..``.
    """
    if not host:
        raise InvalidReferenceError("Repository URL must include a host")

    segments = _collapse_web_url(host, segments)
    _validate_segments(segments)

    normalized_host = host.lower()
    canonical_path = "/".join(segments)
    if transport == "https":
        canonical_url = f"https://{normalized_host}/{canonical_path}.git"
    else:
        canonical_url = f"git@{normalized_host}:{canonical_path}.git"

    return RepositoryIdentity(
        raw=raw,
        host=normalized_host,
        path_segments=tuple(segments),
        canonical_url=canonical_url,
        comparison_key=f"{normalized_host}/{canonical_path.lower()}",
        transport=transport,
    )


# ---------------------------------------------------------------------------
# Recognizers (tried in order)
# ---------------------------------------------------------------------------


def _looks_like_url_or_ssh(raw: str) -> bool:
    return "://" in raw or raw.startswith("git@")


def _netloc_host(netloc: str) -> str:
    """``host[:port]`` part of a URL authority, without user info."""
    return netloc.rpartition("@")[2]


def _recognize_https_url(
    raw: str, allow_ssh: bool
) -> RepositoryIdentity | None:
    if not _HTTP_OR_HTTPS_PATTERN.match(raw):
        return None

    try:
        parts = urlsplit(raw)
    except ValueError as e:
        raise InvalidReferenceError(
            f"Repository URL could not be parsed: {e}"
        ) from e

    if parts.scheme != "https":
        raise InvalidReferenceError(
            "Repository URL must use https:// format"
        )

    return build_identity(
        raw, _netloc_host(parts.netloc), split_path_segments(parts.path), "https"
    )


def _recognize_host_with_path(
    raw: str, allow_ssh: bool
) -> RepositoryIdentity | None:
    if _looks_like_url_or_ssh(raw):
        return None

    host, sep, path = raw.partition("/")
    host = host.strip()
    path = path.strip()
    if not (sep and host and path):
        return None

    # A hostname has a dot (github.com) or a port (localhost:3000);
    # a bare owner has neither.
    if "." not in host and ":" not in host:
        return None

    return build_identity(raw, host, split_path_segments(path), "https")


def _recognize_github_shorthand(
    raw: str, allow_ssh: bool
) -> RepositoryIdentity | None:
    if _looks_like_url_or_ssh(raw):
        return None

    segments = split_path_segments(raw)
    if len(segments) < 2:
        return None

    return build_identity(raw, DEFAULT_HOST, segments, "https")


def _recognize_ssh(
    raw: str, allow_ssh: bool
) -> RepositoryIdentity | None:
    if not allow_ssh:
        return None

    match = _SSH_PATTERN.match(raw)
    if match:
        host, path = match.group(1), match.group(2)
        return build_identity(raw, host, split_path_segments(path), "ssh")

    if raw.lower().startswith("ssh://"):
        try:
            parts = urlsplit(raw)
            hostname = parts.hostname
        except ValueError as e:
            raise InvalidReferenceError(
                f"Repository URL could not be parsed: {e}"
            ) from e
        return build_identity(
            raw, hostname or "", split_path_segments(parts.path), "ssh"
        )

    return None


Recognizer = Callable[[str, bool], RepositoryIdentity | None]

RECOGNIZERS: tuple[Recognizer, ...] = (
    _recognize_https_url,
    _recognize_host_with_path,
    _recognize_github_shorthand,
    _recognize_ssh,
)


def _accepted_forms(allow_ssh: bool) -> str:
    if allow_ssh:
        return (
            "Repository must be one of: https://host/owner/repo(.git), "
            "git@host:owner/repo.git, host/owner/repo, "
            "or owner/repo (GitHub shorthand)"
        )
    return (
        "Repository must be one of: https://host/owner/repo(.git), "
        "host/owner/repo, or owner/repo (GitHub shorthand)"
    )


def parse_repository(repo: str, allow_ssh: bool) -> RepositoryIdentity:
    """Parse a repository reference into its canonical identity.

    Args:
        repo: Raw repository input (URL, SSH ref, or shorthand).
        allow_ssh: Whether ``git@host:path`` and ``ssh://`` forms are
            accepted.

    Returns:
        The canonical ``RepositoryIdentity``.

    Raises:
        InvalidReferenceError: If the input is empty, uses ``http://``,
            uses an SSH form while *allow_ssh* is False, has fewer than
            two path segments, or contains an invalid segment.

    Examples:
        >>> parse_repository("acme/widgets", False).canonical_url
        'https://github.com/acme/widgets.git'
    """
    raw = (repo or "").strip()
    if not raw:
        raise InvalidReferenceError("Repository URL is required")

    for recognize in RECOGNIZERS:
        identity = recognize(raw, allow_ssh)
        if identity is not None:
            logger.debug(
                "Parsed %r as %s (%s)",
                raw,
                identity.canonical_url,
                recognize.__name__,
            )
            return identity

    hint = None
    if not allow_ssh and (
        _SSH_PATTERN.match(raw) or raw.lower().startswith("ssh://")
    ):
        hint = "Pass allow_ssh=true or use the https:// form of the URL."
    raise InvalidReferenceError(_accepted_forms(allow_ssh), hint=hint)
