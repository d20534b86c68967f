"""In-memory trace record store for closed scopes."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from ._config import get_config


@dataclass
class ScopeRecord:
    """
    Record produced by every scope when its driver finishes waiting.

    Written after the seal and before any re-raise.
    """

    scope_id: str
    parent_id: str | None           # enclosing scope at open time, if any
    root_id: str                    # outermost enclosing scope; equals scope_id at top level
    spawned: int                    # tasks enlisted over the scope's life
    captured: int                   # failures that passed on_failure
    absorbed: int                   # failures on_failure turned down
    failure: str | None             # repr of the retained failure, if any
    duration_ms: int

    def span_attrs(self) -> dict[str, Any]:
        """Flat attribute dict handed to the configured tracer."""
        return {
            "strand.scope_id": self.scope_id,
            "strand.parent_id": self.parent_id,
            "strand.root_id": self.root_id,
            "strand.spawned": self.spawned,
            "strand.captured": self.captured,
            "strand.absorbed": self.absorbed,
            "strand.failure": self.failure,
            "strand.duration_ms": self.duration_ms,
        }


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

_records: list[ScopeRecord] = []
_lock = threading.Lock()


def record(trace: ScopeRecord) -> None:
    """Append a record, keeping at most `max_records` of the newest."""
    limit = get_config().max_records
    with _lock:
        _records.append(trace)
        if len(_records) > limit:
            del _records[: len(_records) - limit]


def all_records() -> list[ScopeRecord]:
    """Return a snapshot of all trace records."""
    with _lock:
        return list(_records)


def clear() -> None:
    """Clear all in-memory trace records (useful in tests)."""
    with _lock:
        _records.clear()
