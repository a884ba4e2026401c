"""Best-effort invocation telemetry.

Every ``repo_ensure_local`` call appends one JSON line to a local file.
Recording never raises: any failure is logged at DEBUG and discarded so
it can never mask or replace the outcome of the call itself.

Example record::

    {"event": "repo_ensure_local", "timestamp": "2026-01-05T10:00:00+00:00",
     "ok": true, "repo_input": "acme/widgets",
     "canonical_repo_url": "https://github.com/acme/widgets.git", ...}
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Literal

from pydantic import BaseModel, Field

from .exceptions import RepoLocalError

if TYPE_CHECKING:
    from .sync.models import SyncResult

logger = logging.getLogger(__name__)

DEFAULT_TELEMETRY_PATH = (
    Path.home() / ".local" / "share" / "repo-local-mcp" / "telemetry.jsonl"
)
DEFAULT_UPDATE_MODE = "ff-only"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TelemetryEvent(BaseModel):
    """One newline-delimited telemetry record."""

    event: Literal["repo_ensure_local"] = "repo_ensure_local"
    timestamp: str = Field(default_factory=_utc_now)
    ok: bool
    repo_input: str | None = None
    canonical_repo_url: str | None = None
    local_path: str | None = None
    status: str | None = None
    update_mode: str | None = DEFAULT_UPDATE_MODE
    ref: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    retryable: bool | None = None

    model_config = {"frozen": True}


def _raw_string(arguments: dict[str, Any] | None, key: str) -> str | None:
    value = (arguments or {}).get(key)
    if value is None:
        return None
    return str(value)


def _request_fields(arguments: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "repo_input": _raw_string(arguments, "repo"),
        "update_mode": _raw_string(arguments, "update_mode")
        or DEFAULT_UPDATE_MODE,
        "ref": _raw_string(arguments, "ref"),
    }


def _success_event(
    arguments: dict[str, Any] | None, result: SyncResult
) -> TelemetryEvent:
    return TelemetryEvent(
        ok=True,
        canonical_repo_url=result.repo_url,
        local_path=result.local_path,
        status=result.status.value,
        **_request_fields(arguments),
    )


def _failure_event(
    arguments: dict[str, Any] | None, error: BaseException
) -> TelemetryEvent:
    if isinstance(error, RepoLocalError):
        code, message = error.code, error.message
        retryable = error.retryable
    else:
        code, message, retryable = "server_error", str(error), False
    return TelemetryEvent(
        ok=False,
        error_code=code,
        error_message=message,
        retryable=retryable,
        **_request_fields(arguments),
    )


class TelemetrySink:
    """Append-only JSONL event writer.

    Args:
        path: Target file; parent directories are created on first write.
        enabled: When False every ``record_*`` call is a no-op.
    """

    def __init__(
        self, path: Path = DEFAULT_TELEMETRY_PATH, enabled: bool = True
    ) -> None:
        self.path = Path(path)
        self.enabled = enabled

    def record_success(
        self, arguments: dict[str, Any] | None, result: SyncResult
    ) -> None:
        """Record a successful call with its canonical URL, path and status."""
        self._emit(_success_event, arguments, result)

    def record_failure(
        self, arguments: dict[str, Any] | None, error: BaseException
    ) -> None:
        """Record a failed call with its error kind, message and retryability."""
        self._emit(_failure_event, arguments, error)

    def _emit(
        self,
        build: Callable[..., TelemetryEvent],
        arguments: dict[str, Any] | None,
        outcome: Any,
    ) -> None:
        if not self.enabled:
            return
        # building the record is guarded too: odd argument or result
        # shapes must not escape into the tool response
        try:
            line = build(arguments, outcome).model_dump_json()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except Exception as e:
            logger.debug("Telemetry write to %s failed: %s", self.path, e)
