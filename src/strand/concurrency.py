"""Derived concurrency helpers built on the scope driver."""

from __future__ import annotations

import functools
from typing import Any, Callable, Iterable, TypeVar

from .scope import Scope, do

T = TypeVar("T")


def each(items: Iterable[T], work: Callable[[T], Any]) -> None:
    """
    Run `work(item)` for every item concurrently and wait for all of them.

    Tasks are spawned in iteration order; completion order is unspecified.
    Failures follow `do`: all items run, then the first failure is re-raised.
    """

    def body(scope: Scope) -> None:
        for item in items:
            scope.spawn(functools.partial(work, item))

    do(body)
