"""
Data source components for the ChunkPipe pipeline.

A source walks some storage location and turns every readable text file into
a FileRecord. Binary, hidden, oversized and build-artifact files are skipped.
"""

from abc import ABC, abstractmethod
import logging
import os
from pathlib import Path
from typing import List, Optional

from ..utils.data_models import FileRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 1024 * 1024

SKIP_DIRECTORIES = {
    "node_modules",
    "vendor",
    "dist",
    "build",
    "target",
    "bin",
    "obj",
    "out",
    "cache",
    "tmp",
    "temp",
}

BINARY_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".ico",
    ".pdf",
    ".zip",
    ".tar",
    ".gz",
    ".exe",
    ".dll",
    ".so",
    ".dylib",
}

# Number of leading bytes inspected for NUL bytes.
BINARY_SAMPLE_SIZE = 8192


class BaseSource(ABC):
    """Abstract base class for all data source components."""

    @abstractmethod
    def load_data(self) -> List[FileRecord]:
        """
        Loads data from the configured source and returns a list of FileRecords.
        """
        pass

    @abstractmethod
    def test_connection(self):
        """
        Tests that the source is accessible.
        """
        pass


def build_file_record(
    root: Path, file_path: Path, content: Optional[str] = None
) -> FileRecord:
    """
    Builds a FileRecord for a file below ``root``.

    Args:
        root (Path): The directory the relative path is computed from.
        file_path (Path): The file itself.
        content (Optional[str]): Already decoded text. Read from disk if None.

    Returns:
        FileRecord: The record with its topic derived from the first path
            segment.
    """
    relative_path = file_path.relative_to(root).as_posix()
    parts = relative_path.split("/")
    topic = parts[0] if len(parts) > 1 else "root"

    if content is None:
        content = _decode(file_path.read_bytes())

    return FileRecord(
        relative_path=relative_path,
        extension=file_path.suffix.lower(),
        content=content,
        size=file_path.stat().st_size,
        topic=topic,
    )


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").replace("\r\n", "\n")


class LocalDirectorySource(BaseSource):
    """
    Loads every text file below a local directory.

    Directories and files are visited in sorted order so a given tree always
    yields its records in the same order.
    """

    def __init__(self, path: str, max_file_size: int = DEFAULT_MAX_FILE_SIZE):
        self.path = Path(path)
        self.max_file_size = max_file_size
        logger.debug(
            f"Initialized LocalDirectorySource with path='{self.path}', "
            f"max_file_size={self.max_file_size}"
        )

    def load_data(self) -> List[FileRecord]:
        logger.info(f"Reading documents from: {self.path}")
        if not self.path.is_dir():
            logger.error(f"Source path '{self.path}' is not a valid directory.")
            return []

        records = []
        for dirpath, dirnames, filenames in os.walk(self.path):
            kept = []
            for dirname in sorted(dirnames):
                if self._should_skip_directory(dirname):
                    logger.debug(f"Skipping directory: {Path(dirpath) / dirname}")
                else:
                    kept.append(dirname)
            dirnames[:] = kept

            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                record = self._read_file(file_path)
                if record is not None:
                    records.append(record)
                    logger.debug(f"Read file: {record.relative_path}")

        logger.info(f"Successfully read {len(records)} documents")
        return records

    def _should_skip_directory(self, name: str) -> bool:
        return name.startswith(".") or name in SKIP_DIRECTORIES

    def _read_file(self, file_path: Path) -> Optional[FileRecord]:
        if file_path.name.startswith("."):
            return None
        if file_path.suffix.lower() in BINARY_EXTENSIONS:
            return None

        try:
            if file_path.stat().st_size > self.max_file_size:
                logger.debug(f"Skipping oversized file: {file_path}")
                return None
            raw = file_path.read_bytes()
        except OSError as e:
            logger.error(f"Error reading file '{file_path}': {e}")
            return None

        if b"\x00" in raw[:BINARY_SAMPLE_SIZE]:
            logger.debug(f"Skipping binary file: {file_path}")
            return None

        return build_file_record(self.path, file_path, content=_decode(raw))

    def test_connection(self):
        logger.info(f"Testing connection for LocalDirectorySource at path: {self.path}")
        if not self.path.exists():
            raise FileNotFoundError(f"Source path '{self.path}' does not exist.")
        if not self.path.is_dir():
            raise NotADirectoryError(f"Source path '{self.path}' is not a directory.")
        logger.info("Connection to LocalDirectorySource successful.")
