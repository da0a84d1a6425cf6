"""
Exceptions raised by ChunkPipe components.
"""

from typing import Optional


class ChunkPipeError(Exception):
    """Base class for all pipeline errors."""

    pass


class ChunkingError(ChunkPipeError, ValueError):
    """A file could not be split into chunks. Recoverable in bulk runs."""

    pass


class DocumentValidationError(ChunkPipeError, ValueError):
    """A file failed the pre-flight validation check."""

    pass


class DeliveryError(ChunkPipeError, ConnectionError):
    """A batch could not be written to the store. Aborts the run."""

    def __init__(
        self,
        message: str,
        namespace: Optional[str] = None,
        batch_number: Optional[int] = None,
    ):
        super().__init__(message)
        self.namespace = namespace
        self.batch_number = batch_number


class PipelineCancelled(ChunkPipeError):
    """The caller cancelled the run before the next batch started."""

    pass
