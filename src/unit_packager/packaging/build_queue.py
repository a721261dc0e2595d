"""Process-local FIFO that runs build tasks strictly one at a time.

The first caller that finds the queue idle becomes the *drainer*: it runs its
own task and then every task other callers appended meanwhile, in submission
order, until nothing is left. Callers that arrive while a drain is in progress
only append and wait on their own future, so each submitter still observes
its own task's result or exception.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

from unit_packager.packaging.errors import BuildQueueAborted

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QueueEntry:
    """One submitted task and the future its submitter waits on."""

    task: Callable[[], Any]
    future: Future[Any]


class SequentialTaskQueue:
    """Serializes tasks so no two of them ever run concurrently."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._entries: deque[QueueEntry] = deque()
        self._draining = False

    @property
    def is_draining(self) -> bool:
        with self._lock:
            return self._draining

    def pending(self) -> int:
        """Number of tasks linked behind the one currently running."""

        with self._lock:
            return len(self._entries)

    def enqueue(self, task: Callable[[], Any]) -> Any:
        """Run ``task`` after every earlier task and return its result."""

        entry = QueueEntry(task=task, future=Future())
        with self._lock:
            if self._draining:
                self._entries.append(entry)
                become_drainer = False
            else:
                self._draining = True
                become_drainer = True

        if become_drainer:
            self._drain(entry)
        return entry.future.result()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until the current chain has drained; False on timeout."""

        with self._idle:
            return self._idle.wait_for(lambda: not self._draining, timeout=timeout)

    def _drain(self, first: QueueEntry) -> None:
        entry: QueueEntry | None = first
        try:
            while entry is not None:
                _run_entry(entry)
                with self._lock:
                    if self._entries:
                        entry = self._entries.popleft()
                    else:
                        entry = None
                        self._draining = False
                        self._idle.notify_all()
        finally:
            # Only reached with a live entry when a BaseException escaped a task.
            if entry is not None:
                self._abort_chain(entry)

    def _abort_chain(self, current: QueueEntry) -> None:
        with self._lock:
            orphaned = [current, *self._entries]
            self._entries.clear()
            self._draining = False
            self._idle.notify_all()
        for dropped in orphaned:
            if not dropped.future.done():
                dropped.future.set_exception(
                    BuildQueueAborted("Build queue drainer exited before the task ran."),
                )


def _run_entry(entry: QueueEntry) -> None:
    if not entry.future.set_running_or_notify_cancel():
        return
    try:
        result = entry.task()
    except Exception as error:  # noqa: BLE001
        logger.debug("Queued task failed: %s", error)
        entry.future.set_exception(error)
        return
    entry.future.set_result(result)
