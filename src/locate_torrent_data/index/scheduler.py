"""Bounded FIFO task admission with a mutation barrier.

All index instances share two process-wide thread pools: one runs admitted
tasks, the other runs candidate reads and per-root scans on behalf of those
tasks. Tasks only ever wait on the I/O pool, never on their own pool.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass

from locate_torrent_data.config import DEFAULT_CONCURRENCY
from locate_torrent_data.index.models import Task

TASK_POOL_WORKERS = 32
IO_POOL_WORKERS = 8

_pool_lock = threading.Lock()
_task_pool: ThreadPoolExecutor | None = None
_io_pool: ThreadPoolExecutor | None = None


def task_pool() -> ThreadPoolExecutor:
    """Return the shared pool that runs admitted tasks."""
    global _task_pool
    with _pool_lock:
        if _task_pool is None:
            _task_pool = ThreadPoolExecutor(
                max_workers=TASK_POOL_WORKERS, thread_name_prefix="locate-task"
            )
        return _task_pool


def io_pool() -> ThreadPoolExecutor:
    """Return the shared pool for file reads and directory scans."""
    global _io_pool
    with _pool_lock:
        if _io_pool is None:
            _io_pool = ThreadPoolExecutor(max_workers=IO_POOL_WORKERS, thread_name_prefix="locate-io")
        return _io_pool


Runner = Callable[[], object]


@dataclass(slots=True, frozen=True)
class _Queued:
    task: Task
    future: Future[object]


class TaskQueue:
    """FIFO queue admitting up to ``concurrency`` tasks at a time.

    ``prepare`` is called under the queue lock at admission time and returns
    the callable that performs the task, so state captured there is fixed at
    admission. Admitting a mutating task closes the barrier: nothing else is
    admitted until that task finishes. Tasks already running are unaffected.
    """

    def __init__(
        self,
        prepare: Callable[[Task], Runner],
        concurrency: int = DEFAULT_CONCURRENCY,
        executor: Executor | None = None,
        on_reject: Callable[[Task, BaseException], None] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._prepare = prepare
        self._concurrency = concurrency
        self._executor = executor if executor is not None else task_pool()
        self._on_reject = on_reject
        self._lock = threading.Lock()
        self._pending: deque[_Queued] = deque()
        self._running = 0
        self._barrier = False
        self._killed: BaseException | None = None

    @property
    def running(self) -> int:
        with self._lock:
            return self._running

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def killed(self) -> BaseException | None:
        with self._lock:
            return self._killed

    def push(self, task: Task) -> Future[object]:
        """Queue ``task`` and return a future for its result."""
        future: Future[object] = Future()
        with self._lock:
            killed = self._killed
            if killed is None:
                self._pending.append(_Queued(task=task, future=future))
        if killed is not None:
            self._reject(_Queued(task=task, future=future), killed)
            return future
        self._pump()
        return future

    def kill(self, error: BaseException) -> tuple[Task, ...]:
        """Stop admission for good and reject every queued task with ``error``."""
        with self._lock:
            self._killed = error
            rejected = tuple(self._pending)
            self._pending.clear()
        for item in rejected:
            self._reject(item, error)
        return tuple(item.task for item in rejected)

    def _pump(self) -> None:
        admitted: list[tuple[_Queued, Runner]] = []
        with self._lock:
            while (
                self._killed is None
                and not self._barrier
                and self._running < self._concurrency
                and self._pending
            ):
                item = self._pending.popleft()
                if not item.future.set_running_or_notify_cancel():
                    continue
                self._running += 1
                if item.task.action.mutates:
                    self._barrier = True
                admitted.append((item, self._prepare(item.task)))
        for item, runner in admitted:
            self._executor.submit(self._run, item, runner)

    def _run(self, item: _Queued, runner: Runner) -> None:
        try:
            result = runner()
        except BaseException as error:
            self._finish(item)
            item.future.set_exception(error)
        else:
            self._finish(item)
            item.future.set_result(result)
        self._pump()

    def _finish(self, item: _Queued) -> None:
        with self._lock:
            self._running -= 1
            if item.task.action.mutates:
                self._barrier = False

    def _reject(self, item: _Queued, error: BaseException) -> None:
        try:
            if self._on_reject is not None:
                self._on_reject(item.task, error)
        finally:
            if item.future.set_running_or_notify_cancel():
                item.future.set_exception(error)
