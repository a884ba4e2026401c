"""Shared pytest fixtures for repo-local-mcp tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from repo_local_mcp.config import Config
from repo_local_mcp.exceptions import VcsOperationFailedError

SHA_A = "a" * 40
SHA_B = "b" * 40
SHA_C = "c" * 40


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that need network access to a public git host",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring network access"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Fake git adapter
# ---------------------------------------------------------------------------


@dataclass
class FakeRepo:
    """Observable state of one fake working copy.

    ``counts`` is the (ahead, behind) pair reported against the
    comparison ref. ``remote_heads`` maps branch names to the commit
    ``origin/<branch>`` points at after a fetch.
    """

    origin_url: str
    current_ref: str = "main"
    head_sha: str | None = SHA_A
    remote_heads: dict[str, str] = field(
        default_factory=lambda: {"main": SHA_A}
    )
    tags: dict[str, str] = field(default_factory=dict)
    default_branch: str | None = "main"
    dirty: bool = False
    counts: tuple[int, int] = (0, 0)
    tracks_upstream: bool = True


class FakeGitClient:
    """In-memory stand-in for ``GitClient``.

    Working copies are keyed by resolved path; ``clone`` creates the
    directory on disk so the engine's existence checks behave as with
    real git. Every call is appended to ``calls`` as ``(name, *args)``.
    """

    def __init__(self) -> None:
        self.repos: dict[Path, FakeRepo] = {}
        self.calls: list[tuple] = []
        self.clone_template: dict = {}
        self.available = True

    # -- helpers -----------------------------------------------------------

    def add_repo(self, path: Path, origin_url: str, **state) -> FakeRepo:
        """Register an existing working copy at *path* (created on disk)."""
        path = Path(path).resolve()
        path.mkdir(parents=True, exist_ok=True)
        repo = FakeRepo(origin_url=origin_url, **state)
        self.repos[path] = repo
        return repo

    def repo(self, path: Path | str) -> FakeRepo:
        return self.repos[Path(path).resolve()]

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    # -- GitClient interface -----------------------------------------------

    def version(self) -> str:
        self.calls.append(("version",))
        if not self.available:
            raise VcsOperationFailedError(
                "git executable not found: git",
                hint="Install git and make sure it is on PATH.",
            )
        return "git version 2.45.0"

    def clone(self, url: str, dest: Path, depth: int | None = None) -> None:
        self.calls.append(("clone", url, dest, depth))
        dest = Path(dest).resolve()
        dest.mkdir(parents=True, exist_ok=True)
        self.repos[dest] = FakeRepo(origin_url=url, **self.clone_template)

    def fetch(self, repo_path: Path) -> None:
        self.calls.append(("fetch", repo_path))

    def checkout(self, repo_path: Path, ref: str) -> None:
        self.calls.append(("checkout", repo_path, ref))
        repo = self.repo(repo_path)
        if ref in repo.remote_heads:
            repo.current_ref = ref
            repo.head_sha = repo.remote_heads[ref]
        elif ref in repo.tags:
            repo.current_ref = "HEAD"
            repo.head_sha = repo.tags[ref]
        else:
            raise VcsOperationFailedError(
                f"'git checkout --quiet {ref} --' exited with code 1",
                details=f"error: pathspec '{ref}' did not match any file(s) known to git",
            )

    def pull_ff_only(self, repo_path: Path, branch: str) -> None:
        self.calls.append(("pull_ff_only", repo_path, branch))
        repo = self.repo(repo_path)
        ahead, behind = repo.counts
        if ahead and behind:
            raise VcsOperationFailedError(
                f"'git pull --quiet --ff-only origin {branch}' exited with code 128",
                details="fatal: Not possible to fast-forward, aborting.",
            )
        if behind:
            repo.head_sha = repo.remote_heads[branch]
            repo.counts = (0, 0)

    def hard_reset(self, repo_path: Path, branch: str) -> None:
        self.calls.append(("hard_reset", repo_path, branch))
        repo = self.repo(repo_path)
        repo.head_sha = repo.remote_heads[branch]
        repo.counts = (0, 0)
        repo.dirty = False

    def is_repository(self, path: Path) -> bool:
        self.calls.append(("is_repository", path))
        return Path(path).resolve() in self.repos

    def origin_url(self, repo_path: Path) -> str:
        return self.repo(repo_path).origin_url

    def current_ref(self, repo_path: Path) -> str:
        return self.repo(repo_path).current_ref

    def head_sha(self, repo_path: Path) -> str | None:
        return self.repo(repo_path).head_sha

    def default_branch(self, repo_path: Path) -> str | None:
        return self.repo(repo_path).default_branch

    def is_dirty(self, repo_path: Path) -> bool:
        return self.repo(repo_path).dirty

    def upstream_ref(self, repo_path: Path, branch: str) -> str | None:
        repo = self.repo(repo_path)
        if repo.tracks_upstream and branch in repo.remote_heads:
            return f"origin/{branch}"
        return None

    def resolve_commit(self, repo_path: Path, ref: str) -> str | None:
        repo = self.repo(repo_path)
        if ref.startswith("origin/"):
            return repo.remote_heads.get(ref.removeprefix("origin/"))
        return None

    def ahead_behind(self, repo_path: Path, ref: str) -> tuple[int, int]:
        self.calls.append(("ahead_behind", repo_path, ref))
        return self.repo(repo_path).counts


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clone_root(tmp_path) -> Path:
    """Resolved, existing clone root inside the test's temp directory."""
    root = (tmp_path / "repos").resolve()
    root.mkdir()
    return root


@pytest.fixture
def mock_config(tmp_path, clone_root):
    """Config with a temp clone root and telemetry disabled."""
    return Config(
        clone_root=clone_root,
        allow_ssh=False,
        git_timeout=30.0,
        telemetry_enabled=False,
        telemetry_path=tmp_path / "telemetry.jsonl",
    )


@pytest.fixture
def fake_git():
    """Fresh in-memory git adapter."""
    return FakeGitClient()
