"""
Progress observers for the upsert pipeline.

The orchestrator never logs progress, errors or warnings directly; it reports
them to an observer passed in by the caller.
"""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class BaseObserver(ABC):
    """Receives progress and problem reports from a pipeline run."""

    @abstractmethod
    def on_progress(self, current: int, total: int, label: str):
        pass

    @abstractmethod
    def on_error(self, message: str):
        pass

    @abstractmethod
    def on_warning(self, message: str):
        pass


def format_progress(current: int, total: int, label: str) -> str:
    percentage = (current / total * 100) if total else 0.0
    return f"[PROGRESS] {current}/{total} ({percentage:.1f}%) - {label}"


class LoggingObserver(BaseObserver):
    """Writes every report to a logger."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def on_progress(self, current: int, total: int, label: str):
        self.log.info(format_progress(current, total, label))

    def on_error(self, message: str):
        self.log.error(message)

    def on_warning(self, message: str):
        self.log.warning(message)
