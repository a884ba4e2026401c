"""
Hierarchical YAML configuration loader for repo_local_mcp.

Finds config files by convention, expands ``${VAR}`` references, and
merges files with "project wins" semantics.

Usage:
    from repo_local_mcp.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "REPO_LOCAL_CONFIG"
PROJECT_CONFIG_DIR = ".repo_local"

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    there is none. A ``${`` without a closing brace is left as is.
    """

    def _substitute(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        current = os.environ.get(name)
        if current:
            return current
        return default if default is not None else ""

    return _ENV_VAR_PATTERN.sub(_substitute, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Apply ``interpolate_env_vars`` to every string in a nested structure."""
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# 2. YAML parsing
# ---------------------------------------------------------------------------


def _load_yaml(path: Path) -> Any:
    """Parse one config file with the safe loader (no custom tags)."""
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


# ---------------------------------------------------------------------------
# 3. Convention-based file discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Search order:
        1. ``REPO_LOCAL_CONFIG`` env var (explicit single path)
        2. ``.repo_local/config.yml`` in CWD (project-level)
        3. ``.repo_local/config.yaml`` in CWD (alternate extension)
        4. ``~/.config/repo_local/config.yml`` (XDG global)
        5. ``~/.repo_local/config.yaml`` (home global)
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    candidates.append(project_dir / "config.yml")
    candidates.append(project_dir / "config.yaml")

    home = Path.home()
    candidates.append(home / ".config" / "repo_local" / "config.yml")
    candidates.append(home / PROJECT_CONFIG_DIR / "config.yaml")

    return [p for p in candidates if p.exists()]


# ---------------------------------------------------------------------------
# 3a. Config bootstrapping
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# repo-local-mcp configuration
#
# Every setting can also be supplied via environment variables:
#   REPO_LOCAL_CLONE_ROOT, REPO_LOCAL_ALLOW_SSH, REPO_LOCAL_GIT_TIMEOUT,
#   REPO_LOCAL_TELEMETRY, REPO_LOCAL_TELEMETRY_PATH
#
# repos:
#   clone_root: ~/.repo_local/repos
#   allow_ssh: false
#   git_timeout: 300
#
# telemetry:
#   enabled: true
#   path: ~/.local/share/repo-local-mcp/telemetry.jsonl
"""


def resolve_config_path() -> Path:
    """Return the config file that is (or would be) in effect.

    The highest-precedence existing file, otherwise the project-level
    default ``CWD / .repo_local / config.yml``. Nothing is created.
    """
    existing = discover_config_files()
    if existing:
        return existing[0]
    return Path.cwd() / PROJECT_CONFIG_DIR / "config.yml"


def ensure_config(target: Path | None = None) -> Path:
    """Make sure a config file exists, writing a commented starter if not.

    Args:
        target: Explicit path to create. Defaults to
            ``resolve_config_path()``.

    Returns:
        Path to the existing or newly created config file.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)

    return config_path


# ---------------------------------------------------------------------------
# 4. Hierarchical merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are applied lowest precedence first; each file's top-level
    sections replace (not deep-merge) earlier ones. ``${VAR}``
    interpolation runs on the merged result.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
