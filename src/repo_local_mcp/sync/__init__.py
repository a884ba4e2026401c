"""Local clone synchronization.

Public API for making a remote repository available as a local working
copy and reporting how current it is.

Modules:

- ``engine``    -- ``EnsureLocalEngine``: clone-or-update state machine,
  and ``ensure_local()``: parse, place, and synchronize in one call.
- ``request``   -- ``EnsureLocalRequest``: closed argument set validation.
- ``models``    -- ``UpdateMode``, ``SyncStatus``, ``Freshness``,
  ``FreshnessReport``, ``SyncResult``: core data contracts.
- ``reporter``  -- Human-readable and JSON result formatting.

Usage example
-------------
::

    from repo_local_mcp.config import load_config
    from repo_local_mcp.sync import (
        EnsureLocalRequest,
        ensure_local,
        format_sync_result,
    )

    request = EnsureLocalRequest.from_arguments(
        {"repo": "acme/widgets", "update_mode": "fetch-only"}
    )
    result = ensure_local(request, load_config())
    print(format_sync_result(result))
"""

from .engine import EnsureLocalEngine, ensure_local
from .models import (
    Freshness,
    FreshnessReport,
    SyncResult,
    SyncStatus,
    UpdateMode,
    classify_freshness,
)
from .reporter import format_sync_result, result_to_json
from .request import EnsureLocalRequest

__all__ = [
    "EnsureLocalEngine",
    "EnsureLocalRequest",
    "Freshness",
    "FreshnessReport",
    "SyncResult",
    "SyncStatus",
    "UpdateMode",
    "classify_freshness",
    "ensure_local",
    "format_sync_result",
    "result_to_json",
]
