"""Public open_scope: context manager form of the scope driver."""
from __future__ import annotations

# These private symbols are the only permitted internal imports in flow_scope.py.
# do() drives its body through the same _ScopeDriver, so both entry points agree.
from .scope import Scope, _ScopeDriver, _current_scope


def open_scope() -> _ScopeDriver:
    """
    Context manager. Opens a scope for the duration of the block and yields
    it. On exit, waits for every task spawned on it, seals it, and re-raises
    the first captured failure. A failure escaping the block is treated like
    a failing `do` body: tasks still run to completion first.

        with open_scope() as scope:
            scope.spawn(fetch_users)
            scope.spawn(fetch_orders)
    """
    return _ScopeDriver()


def current_scope() -> Scope | None:
    """
    Return the innermost scope the caller runs under, or None.

    Inside a `do` body or `open_scope` block this is that block's scope;
    inside a spawned task it is the scope the task was spawned on.
    """
    return _current_scope.get()
