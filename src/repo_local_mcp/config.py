"""Process-wide configuration for the repo-local MCP server.

Reads clone/telemetry settings from CLI args, environment variables,
.env files, and YAML config file fallbacks. The resulting ``Config`` is
passed explicitly into the sync engine on every call.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    REPO_LOCAL_CLONE_ROOT: Directory clones are placed under
        (optional, default: ~/.repo_local/repos)
    REPO_LOCAL_ALLOW_SSH: Accept git@host:path references (optional, default: false)
    REPO_LOCAL_GIT_TIMEOUT: Per git command timeout in seconds (optional, default: 300)
    REPO_LOCAL_TELEMETRY: Record invocation telemetry (optional, default: true)
    REPO_LOCAL_TELEMETRY_PATH: Telemetry JSONL file
        (optional, default: ~/.local/share/repo-local-mcp/telemetry.jsonl)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .core.git import DEFAULT_TIMEOUT
from .core.paths import DEFAULT_CLONE_ROOT
from .telemetry import DEFAULT_TELEMETRY_PATH

logger = logging.getLogger(__name__)


@dataclass
class Config:
    clone_root: Path = field(default_factory=lambda: DEFAULT_CLONE_ROOT)
    allow_ssh: bool = False
    git_timeout: float = DEFAULT_TIMEOUT
    telemetry_enabled: bool = True
    telemetry_path: Path = field(
        default_factory=lambda: DEFAULT_TELEMETRY_PATH
    )
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Expands ``~`` in path fields in place.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the clone root is not absolute or the git timeout
            is not positive.
    """
    config.clone_root = Path(config.clone_root).expanduser()
    if not config.clone_root.is_absolute():
        raise ValueError(
            f"Invalid clone root '{config.clone_root}': must be an absolute path"
        )

    config.telemetry_path = Path(config.telemetry_path).expanduser()

    if config.git_timeout <= 0:
        raise ValueError(
            f"Invalid git timeout '{config.git_timeout}': must be a positive number of seconds"
        )

    if config.allow_ssh:
        logger.info("SSH repository references are enabled (allow_ssh=True)")


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None or not val.strip():
        return None
    return val.strip().lower() in ("true", "1", "yes", "on")


def load_config(
    clone_root: str | None = None,
    allow_ssh: bool = False,
    git_timeout: float | None = None,
    telemetry_enabled: bool | None = None,
    telemetry_path: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        clone_root: Override clone root (takes precedence over env var and YAML).
        allow_ssh: Accept SSH references (CLI flag).
        git_timeout: Override per-command git timeout in seconds.
        telemetry_enabled: ``False`` disables telemetry (CLI flag);
            ``None`` defers to env/YAML.
        telemetry_path: Override telemetry file path.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML ``repos`` and
            ``telemetry`` sections. Used as fallback when CLI arg and env
            var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is malformed after checking all sources.
    """
    fb = yaml_fallbacks or {}

    # --- Path fields: CLI > env > YAML > default ---

    final_clone_root = (
        clone_root
        or os.getenv("REPO_LOCAL_CLONE_ROOT")
        or fb.get("clone_root")
        or DEFAULT_CLONE_ROOT
    )

    final_telemetry_path = (
        telemetry_path
        or os.getenv("REPO_LOCAL_TELEMETRY_PATH")
        or fb.get("telemetry_path")
        or DEFAULT_TELEMETRY_PATH
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if allow_ssh:
        final_allow_ssh = True
    else:
        env_allow_ssh = _get_bool_env("REPO_LOCAL_ALLOW_SSH")
        if env_allow_ssh is not None:
            final_allow_ssh = env_allow_ssh
        else:
            final_allow_ssh = bool(fb.get("allow_ssh", False))

    if telemetry_enabled is not None:
        final_telemetry = telemetry_enabled
    else:
        env_telemetry = _get_bool_env("REPO_LOCAL_TELEMETRY")
        if env_telemetry is not None:
            final_telemetry = env_telemetry
        else:
            final_telemetry = bool(fb.get("telemetry_enabled", True))

    # --- Numeric fields: CLI > env > YAML > default ---

    if git_timeout is not None:
        final_timeout = float(git_timeout)
    else:
        timeout_raw = os.getenv("REPO_LOCAL_GIT_TIMEOUT")
        if timeout_raw is not None and timeout_raw.strip():
            try:
                final_timeout = float(timeout_raw)
            except ValueError:
                raise ValueError(
                    f"Invalid REPO_LOCAL_GIT_TIMEOUT '{timeout_raw}': must be a positive number of seconds"
                ) from None
        elif "git_timeout" in fb:
            final_timeout = float(fb["git_timeout"])
        else:
            final_timeout = DEFAULT_TIMEOUT

    config = Config(
        clone_root=Path(str(final_clone_root).strip()),
        allow_ssh=final_allow_ssh,
        git_timeout=final_timeout,
        telemetry_enabled=final_telemetry,
        telemetry_path=Path(str(final_telemetry_path).strip()),
        debug=debug,
    )

    validate_config(config)

    return config
