"""Repository reference parsing, clone placement, and the git adapter."""

from .async_utils import run_sync
from .git import GitClient
from .paths import build_repo_path, resolve_clone_root
from .reference import RepositoryIdentity, parse_repository

__all__ = [
    "GitClient",
    "RepositoryIdentity",
    "build_repo_path",
    "parse_repository",
    "resolve_clone_root",
    "run_sync",
]
