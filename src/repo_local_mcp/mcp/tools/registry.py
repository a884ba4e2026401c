"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- ToolContext: Process-wide collaborators handed to every handler
  (configuration, git adapter, telemetry sink).
- ToolSpec: Immutable dataclass linking a Tool definition and an async
  handler with standardized signature (context, args) -> CallToolResult.
- ToolRegistry: Provides list_tools() and call_tool() dispatch with
  centralized error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import mcp.types as types

from ...config import Config
from ...core.git import GitClient
from ...exceptions import RepoLocalError
from ...telemetry import TelemetrySink

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Collaborators shared by all tool handlers.

    Attributes:
        config: Process-wide settings (default clone root, SSH policy).
        git: Git adapter used for every repository operation.
        telemetry: Best-effort invocation telemetry sink.
    """

    config: Config
    git: GitClient
    telemetry: TelemetrySink = field(
        default_factory=lambda: TelemetrySink(enabled=False)
    )


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (context, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Callable[[ToolContext, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs keyed by tool name.

    A later spec with the same name replaces an earlier one.
    """

    def __init__(self, specs: list[ToolSpec]):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        context: ToolContext,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Provides centralized error handling for repository errors and
        unexpected exceptions, translating them into structured
        CallToolResult responses with corrective actions.

        Args:
            name: Tool name to invoke.
            arguments: Tool arguments (may be None).
            context: Shared handler collaborators.

        Returns:
            CallToolResult from the handler.

        Raises:
            ValueError: If tool name is not registered.
        """
        from .errors import build_error_response, translate_repo_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(context, args)
        except RepoLocalError as e:
            logger.warning("%s failed: %s", name, e)
            return translate_repo_error(e)
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )
