"""Version checking utilities for detecting a stale installed server."""

import tomllib
from pathlib import Path

PYPROJECT_PATH = Path(__file__).parent.parent.parent / "pyproject.toml"


def check_version_consistency() -> tuple[bool, str]:
    """Check if runtime version matches source version in pyproject.toml.

    Returns:
        Tuple of (is_consistent, message) where:
        - is_consistent: True if versions match, False otherwise
        - message: Descriptive message about version status

    A mismatch means an editable checkout moved ahead of the installed
    package metadata and the server should be reinstalled. When the
    package is installed from a wheel there is no pyproject.toml next to
    it; that case reports False with an explanatory message.
    """
    from . import __version__ as runtime_version

    if not PYPROJECT_PATH.exists():
        return (
            False,
            "Cannot find pyproject.toml for version comparison",
        )

    try:
        with open(PYPROJECT_PATH, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        return False, f"Failed to read version from pyproject.toml: {e}"

    source_version = data.get("project", {}).get("version", "unknown")

    if runtime_version != source_version:
        return False, (
            f"Version mismatch detected! "
            f"Runtime: {runtime_version}, Source: {source_version}. "
            f"Reinstall with: pip install -e ."
        )

    return True, f"Version verified: {runtime_version}"
