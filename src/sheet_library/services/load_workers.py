"""Background workers for loading metadata and volume bytes on Qt's thread pool."""

import logging
import threading
from typing import Callable, List, Optional

from PySide6.QtCore import QRunnable, QThreadPool, Slot

from sheet_library.services.error_reporter import ErrorReporter

logger = logging.getLogger(__name__)


class LoadWorker(QRunnable):
    """
    Runs one independent unit of load work in a pool thread.

    Exceptions never escape the worker: they are handed to the error
    reporter so sibling workers keep going.
    """

    def __init__(
        self,
        task: Callable[[], None],
        description: str,
        error_reporter: Optional[ErrorReporter] = None,
        on_finished: Optional[Callable[[], None]] = None,
    ):
        super().__init__()
        self.task = task
        self.description = description
        self.error_reporter = error_reporter
        self.on_finished = on_finished
        self.failed = False
        # The pool owner keeps the Python reference; Qt must not delete it.
        self.setAutoDelete(False)

    @Slot()
    def run(self):
        """Execute the task in a background thread."""
        try:
            self.task()
        except Exception as e:
            self.failed = True
            if self.error_reporter is not None:
                self.error_reporter.on_exception(self.description, e)
            else:
                logger.exception("%s failed", self.description)
        finally:
            if self.on_finished is not None:
                self.on_finished()


class WorkerBatch:
    """A set of LoadWorkers started on one pool and awaited together.

    The batch counts its own workers, so waiting on it ignores any other
    work running on the same (possibly global) pool.
    """

    def __init__(self, pool: QThreadPool, error_reporter: Optional[ErrorReporter] = None):
        self.pool = pool
        self.error_reporter = error_reporter
        self._workers: List[LoadWorker] = []
        self._pending = 0
        self._done = threading.Condition()

    def submit(self, task: Callable[[], None], description: str) -> LoadWorker:
        worker = LoadWorker(task, description, self.error_reporter, self._worker_finished)
        with self._done:
            self._pending += 1
        self._workers.append(worker)
        self.pool.start(worker)
        return worker

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every worker of this batch has finished.

        Returns:
            False if ``timeout`` seconds passed first.
        """
        with self._done:
            return self._done.wait_for(lambda: self._pending == 0, timeout)

    def _worker_finished(self) -> None:
        with self._done:
            self._pending -= 1
            if self._pending == 0:
                self._done.notify_all()

    @property
    def pending_count(self) -> int:
        with self._done:
            return self._pending

    @property
    def failed_count(self) -> int:
        return sum(1 for worker in self._workers if worker.failed)

    def __len__(self) -> int:
        return len(self._workers)
