"""
Strand: structured concurrency for threads: no task outlives its scope.

Public API surface (v1):

    Driver:       do, open_scope
    Scope:        Scope (spawn, on_failure), current_scope
    Concurrency:  each
    Utilities:    configure, get_config
    Errors:       StrandError and all subclasses
    Trace:        ScopeRecord, all_records, clear_traces
"""

from __future__ import annotations

from .scope import Scope, do
from .flow_scope import open_scope, current_scope
from .concurrency import each
from .exceptions import (
    StrandError,
    ScopeClosed,
    FilterFrozen,
    StrandConfigError,
)
from .trace import ScopeRecord, all_records, clear as clear_traces
from ._config import configure, get_config
from . import exporters


__all__ = [
    # Driver
    "do",
    "open_scope",
    # Scope
    "Scope",
    "current_scope",
    # Concurrency
    "each",
    # Configuration
    "configure",
    "get_config",
    # Trace
    "ScopeRecord",
    "all_records",
    "clear_traces",
    # Errors
    "StrandError",
    "ScopeClosed",
    "FilterFrozen",
    "StrandConfigError",
    # Exporters
    "exporters",
]
