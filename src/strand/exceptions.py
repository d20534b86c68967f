"""Strand exception hierarchy."""

from typing import Any


class StrandError(Exception):
    """Base class for all Strand errors."""


class ScopeClosed(StrandError):
    """Raised when `Scope.spawn` is called after the scope has been sealed."""

    MESSAGE = "cannot spawn after scope has closed"

    def __init__(self, scope_id: str | None = None) -> None:
        self.scope_id = scope_id
        super().__init__(self.MESSAGE)


class FilterFrozen(StrandError):
    """Raised when `on_failure` is reassigned after the scope has spawned a task."""

    def __init__(self, scope_id: str, spawned: int) -> None:
        self.scope_id = scope_id
        self.spawned = spawned
        super().__init__(
            f"cannot replace on_failure of scope {scope_id!r} after {spawned} spawn(s)"
        )


class StrandConfigError(StrandError):
    """Raised by `configure` when a setting fails validation."""

    def __init__(self, errors: list[Any]) -> None:
        self.errors = errors
        super().__init__(
            "Invalid strand configuration: "
            + "; ".join(
                f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}"
                for e in errors
            )
        )
