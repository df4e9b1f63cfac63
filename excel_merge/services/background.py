from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterator
from concurrent.futures import Future

from ..models.config_models import MergeRequest
from ..models.merge_result import MergeResult, ProgressUpdate
from .orchestrator import MergeOrchestrator

"""Run a merge on a worker thread.

The merge itself is synchronous. UI-style callers start it on a worker thread,
drain ProgressUpdate values from a bounded queue on their own thread and pick up
the MergeResult (or the MergeError) once the worker finishes.
"""

__all__ = [
    "MergeJob",
    "start_merge_job",
]

logger = logging.getLogger(__name__)

_DONE = object()


class MergeJob:
    """Handle of a merge running in the background."""

    def __init__(self, maxsize: int = 10) -> None:
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max(1, maxsize))
        self._future: Future[MergeResult] = Future()
        self.dropped_updates = 0
        self._thread: threading.Thread | None = None

    def _publish(self, update: ProgressUpdate) -> None:
        self._put(update)

    def _put(self, item: object) -> None:
        # never block the worker: drop the oldest pending update when full
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped_updates += 1
                except queue.Empty:
                    pass

    def _finish(self) -> None:
        self._put(_DONE)

    def updates(self, timeout: float | None = None) -> Iterator[ProgressUpdate]:
        """Yield progress updates until the merge finishes.

        Raises queue.Empty when timeout elapses without any update.
        """
        while True:
            item = self._queue.get(timeout=timeout)
            if item is _DONE:
                return
            if isinstance(item, ProgressUpdate):
                yield item

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> MergeResult:
        """MergeResult of the run; re-raises the worker's exception."""
        return self._future.result(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


def start_merge_job(
    orchestrator: MergeOrchestrator, request: MergeRequest, *, maxsize: int = 10
) -> MergeJob:
    """Start orchestrator.merge(request) on a daemon thread.

    Progress reaches the job through a reporter subscription that is removed
    when the merge ends.
    """
    job = MergeJob(maxsize=maxsize)
    unsubscribe = orchestrator.reporter.subscribe(job._publish)

    def _run() -> None:
        try:
            result = orchestrator.merge(request)
        except BaseException as e:
            logger.error("background merge failed: %s", e)
            job._future.set_exception(e)
        else:
            job._future.set_result(result)
        finally:
            unsubscribe()
            job._finish()

    job._future.set_running_or_notify_cancel()
    thread = threading.Thread(target=_run, name="excel-merge-worker", daemon=True)
    job._thread = thread
    thread.start()
    return job
