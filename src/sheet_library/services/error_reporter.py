"""Error reporters - where non-fatal failures of a batch end up."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


class ErrorReporter(ABC):
    """Receives failures that must not abort a scan or migration."""

    @abstractmethod
    def on_exception(self, context: str, error: Exception) -> None:
        """Handle an error together with a short description of the work item."""


class LoggingErrorReporter(ErrorReporter):
    """Writes every reported error to the module logger."""

    def on_exception(self, context: str, error: Exception) -> None:
        logger.warning("%s: %s", context, error, exc_info=error)


@dataclass(frozen=True)
class ReportedError:
    context: str
    error: Exception


class CollectingErrorReporter(ErrorReporter):
    """Keeps reported errors in memory; safe to share between load tasks."""

    def __init__(self, forward_to_log: bool = True) -> None:
        self._lock = threading.Lock()
        self._errors: List[ReportedError] = []
        self._forward_to_log = forward_to_log

    def on_exception(self, context: str, error: Exception) -> None:
        with self._lock:
            self._errors.append(ReportedError(context, error))
        if self._forward_to_log:
            logger.warning("%s: %s", context, error)

    @property
    def errors(self) -> List[ReportedError]:
        with self._lock:
            return list(self._errors)

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()
