"""Thread-pool fan-out used for concurrent Trakt reads."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from trakt_sync.backend.common.errors import TraktSyncError
from trakt_sync.backend.common.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class TaskSpec:
    fn: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    name: str = "task"

    def run(self) -> Any:
        return self.fn(*self.args, **self.kwargs)


class TaskRunner:
    """Runs TaskSpecs on a private pool and remembers what it handed out.

    Leaving the ``with`` block joins every running task and drops the ones
    that never started, so no worker outlives the block.
    """

    def __init__(self, max_workers: int = 4, *, context: str = "tasks") -> None:
        self._context = context
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix=f"trakt-{context}")
        self._futures: List[Future] = []
        self._closed = False
        self._lock = threading.Lock()

    def submit(self, spec: TaskSpec) -> Future:
        with self._lock:
            if self._closed:
                raise TraktSyncError(f"task runner {self._context} is closed")
            future = self._executor.submit(self._run, spec)
            self._futures.append(future)
        return future

    def cancel_pending(self) -> int:
        """Cancel tasks that have not started; returns how many were dropped."""

        with self._lock:
            cancelled = sum(1 for future in self._futures if future.cancel())
        if cancelled:
            log.debug("cancelled %d pending task(s)", cancelled, extra={"context": self._context})
        return cancelled

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True, cancel_futures=True)

    def _run(self, spec: TaskSpec) -> Any:
        log.debug("task %s started", spec.name, extra={"context": self._context})
        return spec.run()

    def __enter__(self) -> "TaskRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
