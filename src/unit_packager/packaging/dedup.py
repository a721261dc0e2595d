"""Per-run registry that builds each source project at most once."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import TypeVar

from unit_packager.packaging.build_queue import SequentialTaskQueue

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BuildRegistry:
    """Maps a source identity to the single shared outcome of its build.

    The first caller for an identity runs the build through the shared
    sequential queue; every other caller, before or after completion, gets the
    same value or the same exception without building again.
    """

    def __init__(self, queue: SequentialTaskQueue) -> None:
        self.queue = queue
        self._lock = threading.Lock()
        self._builds: dict[str, Future[object]] = {}
        self.builds_started = 0

    def reset(self) -> None:
        with self._lock:
            self._builds.clear()
            self.builds_started = 0

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._builds

    def build_once(self, identity: str, build_fn: Callable[[], T]) -> T:
        with self._lock:
            shared = self._builds.get(identity)
            owner = shared is None
            if owner:
                shared = Future()
                self._builds[identity] = shared
                self.builds_started += 1

        if owner:
            logger.debug("Building %s", identity)
            try:
                shared.set_result(self.queue.enqueue(build_fn))
            except BaseException as error:
                # Waiters must be released even when the build is interrupted.
                shared.set_exception(error)
                if not isinstance(error, Exception):
                    raise
        else:
            logger.debug("Waiting for shared build of %s", identity)
        return shared.result()  # type: ignore[return-value]
