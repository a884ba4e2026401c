"""MCP tool handlers for local repository access.

This package contains MCP tool implementations that wrap the sync engine
with async handlers, text/structured output, and structured error
responses.
"""

from .errors import build_error_response, translate_repo_error
from .registry import ToolContext, ToolRegistry, ToolSpec
from .repo import REPO_ENSURE_LOCAL_TOOL, REPO_SPECS, handle_repo_ensure_local
from .system import PING_TOOL, SYSTEM_SPECS

ALL_SPECS: list[ToolSpec] = SYSTEM_SPECS + REPO_SPECS

__all__ = [
    "build_error_response",
    "translate_repo_error",
    # Registry
    "ToolContext",
    "ToolSpec",
    "ToolRegistry",
    # Spec lists
    "ALL_SPECS",
    "REPO_SPECS",
    "SYSTEM_SPECS",
    # Tools
    "PING_TOOL",
    "REPO_ENSURE_LOCAL_TOOL",
    "handle_repo_ensure_local",
]
