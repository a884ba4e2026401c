"""Thin subprocess wrapper around the git binary.

``GitClient`` exposes exactly the operations the sync engine needs (clone,
fetch, checkout, fast-forward pull, hard reset, and state queries). Every
call runs under a timeout and is translated into the error taxonomy:

- timeouts and network-class failures -> ``TransientError``
- any other non-zero exit, or a missing git binary
  -> ``VcsOperationFailedError``

Commands never go through a shell, and interactive credential prompts are
disabled so a missing credential fails instead of hanging.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..exceptions import TransientError, VcsOperationFailedError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0

# stderr fragments that indicate a retryable, network-class failure.
_TRANSIENT_PATTERN = re.compile(
    r"could not resolve host"
    r"|connection timed out"
    r"|operation timed out"
    r"|connection refused"
    r"|connection reset"
    r"|early eof"
    r"|the remote end hung up unexpectedly"
    r"|rate limit"
    r"|temporary failure in name resolution"
    r"|\b(?:429|502|503|504)\b",
    re.IGNORECASE,
)


def _tail(text: str, max_lines: int = 20) -> str:
    lines = text.strip().splitlines()
    return "\n".join(lines[-max_lines:])


class GitClient:
    """Run git commands against local working copies.

    Args:
        executable: git binary name or path.
        timeout: Default per-command timeout in seconds.
        extra_env: Additional environment variables for every command
            (e.g. ``GIT_CONFIG_COUNT``/``GIT_CONFIG_KEY_0`` overrides).
    """

    def __init__(
        self,
        executable: str = "git",
        timeout: float = DEFAULT_TIMEOUT,
        extra_env: Mapping[str, str] | None = None,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self.extra_env = dict(extra_env or {})

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.update(self.extra_env)
        return env

    def _run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        check: bool = True,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run ``git <args>`` and return the completed process.

        Raises:
            TransientError: On timeout or a network-class failure.
            VcsOperationFailedError: If git is missing or exits non-zero
                (only when *check* is True).
        """
        command = [self.executable, *args]
        display = " ".join(["git", *args])
        effective_timeout = timeout if timeout is not None else self.timeout
        logger.debug("Running %s (cwd=%s)", display, cwd)

        try:
            result = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                timeout=effective_timeout,
                env=self._env(),
            )
        except subprocess.TimeoutExpired as e:
            raise TransientError(
                f"'{display}' timed out after {effective_timeout:g}s",
                hint="Retry the call, or raise the git timeout for large repositories.",
            ) from e
        except FileNotFoundError as e:
            raise VcsOperationFailedError(
                f"git executable not found: {self.executable}",
                hint="Install git and make sure it is on PATH.",
            ) from e

        if check and result.returncode != 0:
            stderr = _tail(result.stderr or result.stdout or "")
            if _TRANSIENT_PATTERN.search(stderr):
                raise TransientError(
                    f"'{display}' failed with a network error",
                    hint="Check network connectivity and retry.",
                    details=stderr,
                )
            raise VcsOperationFailedError(
                f"'{display}' exited with code {result.returncode}",
                details=stderr,
            )
        return result

    def _output(self, args: Sequence[str], cwd: Path | None = None) -> str:
        return self._run(args, cwd=cwd).stdout.strip()

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    def version(self) -> str:
        """Return the ``git --version`` string.

        Raises:
            VcsOperationFailedError: If git is not installed.
        """
        return self._output(["--version"])

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def clone(self, url: str, dest: Path, depth: int | None = None) -> None:
        """Clone *url* into *dest*, creating parent directories."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        args = ["clone", "--quiet"]
        if depth is not None:
            args += ["--depth", str(depth)]
        args += ["--", url, str(dest)]
        self._run(args)

    def fetch(self, repo_path: Path) -> None:
        """Fetch from ``origin``, pruning deleted remote branches."""
        self._run(["fetch", "--quiet", "--prune", "origin"], cwd=repo_path)

    def checkout(self, repo_path: Path, ref: str) -> None:
        """Check out a branch, tag, or commit."""
        self._run(["checkout", "--quiet", ref, "--"], cwd=repo_path)

    def pull_ff_only(self, repo_path: Path, branch: str) -> None:
        """Fast-forward *branch* from origin; refuses non-fast-forwards."""
        self._run(
            ["pull", "--quiet", "--ff-only", "origin", branch], cwd=repo_path
        )

    def hard_reset(self, repo_path: Path, branch: str) -> None:
        """Reset *branch* to ``origin/<branch>`` and remove untracked files."""
        self._run(
            ["reset", "--quiet", "--hard", f"origin/{branch}"], cwd=repo_path
        )
        self._run(["clean", "--quiet", "-fd"], cwd=repo_path)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_repository(self, path: Path) -> bool:
        """True if *path* is the top level of a git working copy.

        A directory nested inside some other repository does not count.
        """
        result = self._run(
            ["rev-parse", "--show-toplevel"], cwd=path, check=False
        )
        if result.returncode != 0:
            return False
        toplevel = result.stdout.strip()
        return bool(toplevel) and Path(toplevel).resolve() == path.resolve()

    def origin_url(self, repo_path: Path) -> str:
        """Return the configured (unrewritten) URL of ``origin``."""
        return self._output(
            ["config", "--get", "remote.origin.url"], cwd=repo_path
        )

    def current_ref(self, repo_path: Path) -> str:
        """Return the current branch name, or ``"HEAD"`` when detached.

        A branch with no commits yet (an empty clone) still reports its
        name.
        """
        result = self._run(
            ["symbolic-ref", "--quiet", "--short", "HEAD"],
            cwd=repo_path,
            check=False,
        )
        ref = result.stdout.strip()
        if result.returncode != 0 or not ref:
            return "HEAD"
        return ref

    def head_sha(self, repo_path: Path) -> str | None:
        """Return the commit id of HEAD, or ``None`` before the first commit."""
        return self.resolve_commit(repo_path, "HEAD")

    def default_branch(self, repo_path: Path) -> str | None:
        """Return the remote default branch from ``origin/HEAD``, if set."""
        result = self._run(
            ["symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD"],
            cwd=repo_path,
            check=False,
        )
        ref = result.stdout.strip()
        if result.returncode != 0 or not ref:
            return None
        return ref.removeprefix("origin/")

    def is_dirty(self, repo_path: Path) -> bool:
        """True if there are staged, unstaged, or untracked changes."""
        return bool(self._output(["status", "--porcelain"], cwd=repo_path))

    def upstream_ref(self, repo_path: Path, branch: str) -> str | None:
        """Return the upstream tracking ref of *branch* (e.g. ``origin/main``)."""
        result = self._run(
            ["rev-parse", "--abbrev-ref", f"{branch}@{{upstream}}"],
            cwd=repo_path,
            check=False,
        )
        ref = result.stdout.strip()
        if result.returncode != 0 or not ref:
            return None
        return ref

    def resolve_commit(self, repo_path: Path, ref: str) -> str | None:
        """Return the commit id *ref* points to, or ``None`` if unknown."""
        result = self._run(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=repo_path,
            check=False,
        )
        sha = result.stdout.strip()
        if result.returncode != 0 or not sha:
            return None
        return sha

    def ahead_behind(self, repo_path: Path, ref: str) -> tuple[int, int]:
        """Count commits only on HEAD (ahead) and only on *ref* (behind)."""
        output = self._output(
            ["rev-list", "--left-right", "--count", f"HEAD...{ref}"],
            cwd=repo_path,
        )
        parts = output.split()
        if len(parts) != 2:
            raise VcsOperationFailedError(
                f"Unexpected rev-list output comparing HEAD with {ref}",
                details=output,
            )
        return int(parts[0]), int(parts[1])
