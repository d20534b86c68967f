"""Global Strand configuration."""

from __future__ import annotations

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import StrandConfigError


class StrandSettings(BaseModel):
    """Validated library settings. Read at spawn and scope close time."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    thread_name_prefix: str = Field(default="strand", min_length=1)
    daemon: bool = False                       # daemon flag for task threads
    max_records: int = Field(default=1000, ge=0)  # 0 disables the trace store
    tracer: Optional[Callable[[dict[str, Any]], Any]] = None  # None = no export


_settings = StrandSettings()

# Distinguishes "leave the tracer alone" from an explicit tracer=None.
_UNSET: Any = object()


def configure(
    thread_name_prefix: str | None = None,
    daemon: bool | None = None,
    max_records: int | None = None,
    tracer: Any = _UNSET,
) -> None:
    """
    Set global Strand configuration.

    Arguments left as None keep their current value, except `tracer`:
    passing tracer=None explicitly removes a configured tracer. The update
    is validated as a whole; on failure nothing changes and
    StrandConfigError is raised.
    """
    global _settings

    updates: dict[str, Any] = {}
    if thread_name_prefix is not None:
        updates["thread_name_prefix"] = thread_name_prefix
    if daemon is not None:
        updates["daemon"] = daemon
    if max_records is not None:
        updates["max_records"] = max_records
    if tracer is not _UNSET:
        updates["tracer"] = tracer

    try:
        _settings = StrandSettings.model_validate({**dict(_settings), **updates})
    except ValidationError as exc:
        raise StrandConfigError(exc.errors()) from exc


def get_config() -> StrandSettings:
    """Return the current settings (assignments to it are validated)."""
    return _settings


def reset_config() -> None:
    """Restore default settings (useful in tests)."""
    global _settings
    _settings = StrandSettings()
