"""
A thread pool with a hard concurrency ceiling and group-wide cancellation.

Units submitted to a `BoundedTaskGroup` run on at most `limit` worker threads.
Cancellation is cooperative: a unit that has not started when the group is
cancelled is skipped, a running unit can poll `cancel_event`, and a running
unit that does not poll runs to completion.
"""

import concurrent.futures
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from loguru import logger

from ..domain.exceptions import TaskCancelled


@dataclass(frozen=True)
class UnitResult:
    """What happened to one submitted unit."""

    key: Any
    value: Any = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.skipped


class BoundedTaskGroup:
    """
    Runs submitted units with at most `limit` of them in flight.

    In fail-fast mode the first unit error cancels the group and `join()`
    raises it. In collect-all mode a unit error only affects that unit and
    `join()` returns one `UnitResult` per submitted unit, in submission order.

    Usage:
        with BoundedTaskGroup(4, name="variants") as group:
            for item in items:
                group.submit(work, item, key=item)
        results = group.results
    """

    def __init__(self, limit: int, fail_fast: bool = False, name: str = "tasks"):
        """
        Args:
            limit: Maximum number of units running at the same time.
            fail_fast: Cancel the group on the first unit error.
            name: Prefix for worker thread names, shown in log lines.

        Raises:
            ValueError: If `limit` is less than 1.
        """
        if limit < 1:
            raise ValueError(f"Task group limit must be at least 1, got {limit}")
        self.limit = limit
        self.fail_fast = fail_fast
        self.name = name
        self.cancel_event = threading.Event()

        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=limit, thread_name_prefix=name)
        self._futures: List[concurrent.futures.Future] = []
        self._keys: List[Any] = []
        self._lock = threading.Lock()
        self._first_error: Optional[BaseException] = None
        self._joined = False
        self.results: List[UnitResult] = []

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    @property
    def first_error(self) -> Optional[BaseException]:
        with self._lock:
            return self._first_error

    def cancel(self):
        """Skips every unit that has not started yet and signals running ones."""
        if not self.cancel_event.is_set():
            logger.debug(f"[{self.name}] cancelling task group")
        self.cancel_event.set()

    def submit(self, fn: Callable[..., Any], *args, key: Any = None, **kwargs):
        """
        Queues one unit. Blocks nothing; the unit waits for a free slot.

        Args:
            fn: The unit of work, called as `fn(*args, **kwargs)`.
            key: Identifies the unit in its `UnitResult`; defaults to its index.

        Raises:
            RuntimeError: If the group has already been joined.
        """
        if self._joined:
            raise RuntimeError(f"Task group '{self.name}' has already been joined")
        unit_key = key if key is not None else len(self._futures)
        future = self._executor.submit(self._run_unit, unit_key, fn, args, kwargs)
        self._futures.append(future)
        self._keys.append(unit_key)

    def _run_unit(self, key: Any, fn: Callable[..., Any], args: tuple, kwargs: dict) -> UnitResult:
        if self.cancel_event.is_set():
            logger.trace(f"[{self.name}] skipping {key}: group cancelled")
            return UnitResult(key=key, error=TaskCancelled(f"{key} skipped after cancellation"), skipped=True)
        try:
            value = fn(*args, **kwargs)
        except TaskCancelled as e:
            return UnitResult(key=key, error=e, skipped=True)
        except Exception as e:
            self._record_error(key, e)
            return UnitResult(key=key, error=e)
        return UnitResult(key=key, value=value)

    def _record_error(self, key: Any, error: BaseException):
        with self._lock:
            if self._first_error is None:
                self._first_error = error
        if self.fail_fast:
            logger.debug(f"[{self.name}] {key} failed with {type(error).__name__}; cancelling the rest")
            self.cancel()

    def join(self) -> List[UnitResult]:
        """
        Waits for every submitted unit to run or be skipped.

        If the wait itself is interrupted (Ctrl-C in the joining thread), the
        group is cancelled, queued units are dropped and the interrupt is
        re-raised without waiting for running units.

        Returns:
            One `UnitResult` per unit, in submission order (collect-all mode).

        Raises:
            Exception: The first unit error, in fail-fast mode.
        """
        if not self._joined:
            self._joined = True
            try:
                concurrent.futures.wait(self._futures)
            except BaseException:
                self._abandon(wait=False)
                raise
            self._executor.shutdown(wait=True)
            self.results = [future.result() for future in self._futures]

        if self.fail_fast and self._first_error is not None:
            raise self._first_error
        return self.results

    def _abandon(self, wait: bool):
        self.cancel()
        self._joined = True
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> "BoundedTaskGroup":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is not None:
            # An interrupt must not block on encoders that are already running.
            self._abandon(wait=not issubclass(exc_type, KeyboardInterrupt))
            return False
        self.join()
        return False
