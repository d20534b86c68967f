"""Scope and its driver: spawn work, wait for all of it, seal, re-raise."""

from __future__ import annotations

import contextvars
import threading
import time
import uuid
from typing import Any, Callable

import structlog

from ._config import get_config
from .exceptions import FilterFrozen, ScopeClosed
from .trace import ScopeRecord, record

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Current scope: propagated into every spawned task via ContextVar
# ---------------------------------------------------------------------------

_current_scope: contextvars.ContextVar[Scope | None] = contextvars.ContextVar(
    "_current_scope", default=None
)


def _always_capture(exc: BaseException) -> bool:
    return True


class _WaitGroup:
    """Counter of outstanding tasks that a single waiter can block on."""

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def add(self) -> None:
        with self._cond:
            self._count += 1

    def done(self) -> None:
        with self._cond:
            if self._count <= 0:
                raise RuntimeError("strand: wait group counter went negative")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self) -> None:
        with self._cond:
            self._cond.wait_for(lambda: self._count == 0)


class Scope:
    """
    A set of concurrently running tasks bound to one driver invocation.

    Obtain one from `do(body)` or `open_scope()`; never construct it
    directly. Tasks are enlisted with `spawn` from the body or from other
    tasks of the same scope. Once the driver has waited for all of them the
    scope is sealed and `spawn` raises ScopeClosed.

    `on_failure` decides, per failure, whether it is captured (True) or
    absorbed (False). It may be replaced until the first `spawn`.
    """

    def __init__(self) -> None:
        self.scope_id = str(uuid.uuid4())
        parent = _current_scope.get()
        self.parent_id: str | None = parent.scope_id if parent is not None else None
        self.root_id: str = parent.root_id if parent is not None else self.scope_id

        self._on_failure: Callable[[BaseException], bool] = _always_capture
        self._pending = _WaitGroup()
        self._lock = threading.Lock()
        self._first_failure: BaseException | None = None
        self._terminal = False
        self._spawned = 0
        self._captured = 0
        self._absorbed = 0
        self._start = time.monotonic()

    def __repr__(self) -> str:
        state = "closed" if self._terminal else "open"
        return f"Scope(id={self.scope_id!r}, {state}, outstanding={self.outstanding})"

    # -- read-only state ------------------------------------------------------

    @property
    def terminal(self) -> bool:
        """True once the driver has finished waiting; no spawns after that."""
        return self._terminal

    @property
    def outstanding(self) -> int:
        return self._pending.count

    @property
    def first_failure(self) -> BaseException | None:
        return self._first_failure

    @property
    def spawned(self) -> int:
        return self._spawned

    @property
    def captured(self) -> int:
        return self._captured

    @property
    def absorbed(self) -> int:
        return self._absorbed

    # -- failure filter ---------------------------------------------------------

    @property
    def on_failure(self) -> Callable[[BaseException], bool]:
        return self._on_failure

    @on_failure.setter
    def on_failure(self, fn: Callable[[BaseException], bool]) -> None:
        if not callable(fn):
            raise TypeError(f"on_failure must be callable, got {type(fn).__name__!r}")
        if self._spawned:
            raise FilterFrozen(self.scope_id, self._spawned)
        self._on_failure = fn

    # -- spawning ---------------------------------------------------------------

    def spawn(self, work: Callable[[], Any]) -> None:
        """
        Run `work()` on a new thread and return immediately.

        The task runs in a copy of the caller's context and counts towards
        the scope until it returns or raises. Whatever it raises goes to
        `on_failure`, never past the task.
        """
        if self._terminal:
            raise ScopeClosed(self.scope_id)
        if not callable(work):
            raise TypeError(f"spawn() requires a callable, got {type(work).__name__!r}")

        settings = get_config()
        with self._lock:
            self._spawned += 1
            n = self._spawned
        self._pending.add()

        ctx = contextvars.copy_context()
        thread = threading.Thread(
            target=ctx.run,
            args=(self._run, work),
            name=f"{settings.thread_name_prefix}-{self.scope_id[:8]}-{n}",
            daemon=settings.daemon,
        )
        try:
            thread.start()
        except RuntimeError:
            # "can't start new thread": the task was never dispatched.
            # Anything else raised here (an interrupt while start() waits for
            # the thread to come up) leaves a running task that is still counted.
            self._pending.done()
            raise

    def _run(self, work: Callable[[], Any]) -> None:
        _current_scope.set(self)
        try:
            work()
        except BaseException as exc:
            self._capture(exc)
        finally:
            self._pending.done()

    # -- failure capture ----------------------------------------------------------

    def _capture(self, exc: BaseException) -> None:
        """
        Route a failure leaving the body or a task through the filter into
        the write-once slot. Must be called from inside the handling
        `except` block so a failing filter chains onto `exc`.
        """
        try:
            keep = self._on_failure(exc)
        except BaseException as filter_exc:
            exc, keep = filter_exc, True

        if not keep:
            with self._lock:
                self._absorbed += 1
            logger.debug("scope.failure_absorbed", scope_id=self.scope_id, error=repr(exc))
            return

        with self._lock:
            self._captured += 1
            won = self._first_failure is None
            if won:
                self._first_failure = exc

        if won:
            logger.warning("scope.failure_captured", scope_id=self.scope_id, error=repr(exc))
        else:
            logger.debug("scope.failure_dropped", scope_id=self.scope_id, error=repr(exc))

    # -- finalization -----------------------------------------------------------

    def _drain(self) -> None:
        """
        Block until no task is outstanding. An interrupt arriving while the
        driver waits is captured like any other failure and the wait resumes,
        so tasks never outlive the scope.
        """
        while True:
            try:
                self._pending.wait()
                return
            except BaseException as exc:
                self._capture(exc)

    def _close(self) -> None:
        """Wait, seal, record, then re-raise the retained failure if any."""
        try:
            self._drain()
        finally:
            # A spawn racing this line is API misuse; its task runs unawaited.
            self._terminal = True

        failure = self._first_failure
        trace = ScopeRecord(
            scope_id=self.scope_id,
            parent_id=self.parent_id,
            root_id=self.root_id,
            spawned=self._spawned,
            captured=self._captured,
            absorbed=self._absorbed,
            failure=repr(failure) if failure is not None else None,
            duration_ms=int((time.monotonic() - self._start) * 1000),
        )
        _finish(trace)

        if failure is not None:
            raise failure


def _finish(trace: ScopeRecord) -> None:
    record(trace)
    logger.debug(
        "scope.close",
        scope_id=trace.scope_id,
        spawned=trace.spawned,
        captured=trace.captured,
        absorbed=trace.absorbed,
        duration_ms=trace.duration_ms,
    )

    tracer = get_config().tracer
    if tracer is None:
        return
    try:
        tracer(trace.span_attrs())
    except Exception as exc:
        logger.warning("scope.tracer_error", scope_id=trace.scope_id, error=repr(exc))


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class _ScopeDriver:
    """
    Context manager owning one scope: binds it as the current scope on
    entry; on exit captures the block's failure, waits, seals and re-raises.
    Shared by `do` and `open_scope`.
    """

    def __init__(self) -> None:
        self._scope: Scope | None = None
        self._token: contextvars.Token | None = None

    def __enter__(self) -> Scope:
        scope = self._scope = Scope()
        logger.debug("scope.open", scope_id=scope.scope_id, parent_id=scope.parent_id)
        self._token = _current_scope.set(scope)
        return scope

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        scope = self._scope
        try:
            if exc_val is not None:
                scope._capture(exc_val)
        finally:
            try:
                _current_scope.reset(self._token)
            finally:
                # Raised from here rather than a generator so StopIteration stays itself.
                scope._close()
        # Reaching this point means the block's failure, if any, was absorbed.
        return True


def do(body: Callable[[Scope], Any]) -> None:
    """
    Open a scope, run `body(scope)` and wait for every task spawned on it.

    Tasks may spawn further tasks on the same scope; all of them are awaited.
    A failing body does not stop tasks already spawned. After the wait the
    scope is sealed, and if any failure was captured the first one is
    re-raised. Any later `scope.spawn` raises ScopeClosed.

        def body(scope):
            scope.spawn(fetch_users)
            scope.spawn(fetch_orders)

        strand.do(body)
    """
    with _ScopeDriver() as scope:
        body(scope)
