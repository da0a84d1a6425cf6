"""
Text chunking components for the ChunkPipe pipeline.

This module splits a file's text into content-aware chunks. The splitting
strategy is chosen from the file extension: Go sources are split at top-level
declarations, Markdown at headings, SQL at statements, config files at blank
lines, HTML at block-level tags, and everything else by accumulating
paragraphs up to a maximum chunk size.

Every strategy is a pure function of ``(content, max_chunk_size)`` so each one
can be exercised on its own without a file or a store.
"""

from abc import ABC, abstractmethod
from enum import Enum
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional

from ..utils.data_models import Chunk, FileRecord
from ..utils.errors import ChunkingError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 1000

BLANK_LINE_PATTERN = re.compile(r"\n\s*\n")

CONSTRUCT_PATTERNS = (
    re.compile(r"^(func\s+\w+.*?\{)", re.MULTILINE),
    re.compile(r"^(type\s+\w+\s+(struct|interface)\s*\{)", re.MULTILINE),
    re.compile(r"^(var\s+.*?\()", re.MULTILINE),
    re.compile(r"^(const\s+.*?\()", re.MULTILINE),
)

HEADING_PATTERNS = (re.compile(r"^(#{1,6}\s+.+)", re.MULTILINE),)

BLOCK_TAG_PATTERNS = (
    re.compile(
        r"<(div|section|article|header|footer|nav|main)[^>]*>", re.IGNORECASE
    ),
)


class Strategy(str, Enum):
    """The closed set of splitting strategies."""

    CONSTRUCT = "construct"
    HEADING = "heading"
    STATEMENT = "statement"
    BLANK_LINE = "blank_line"
    BLOCK_TAG = "block_tag"
    PARAGRAPH = "paragraph"


# Maps lower-cased file extensions to the strategy used to split them.
EXTENSION_STRATEGIES: Dict[str, Strategy] = {
    ".go": Strategy.CONSTRUCT,
    ".md": Strategy.HEADING,
    ".sql": Strategy.STATEMENT,
    ".json": Strategy.BLANK_LINE,
    ".yaml": Strategy.BLANK_LINE,
    ".yml": Strategy.BLANK_LINE,
    ".toml": Strategy.BLANK_LINE,
    ".html": Strategy.BLOCK_TAG,
}


def coerce_max_chunk_size(max_chunk_size: Optional[int]) -> int:
    """Returns the default size for missing or non-positive values."""
    if max_chunk_size is None or max_chunk_size <= 0:
        return DEFAULT_MAX_CHUNK_SIZE
    return max_chunk_size


def strategy_for_extension(extension: str) -> Strategy:
    """Selects a strategy for a file extension, case-insensitively."""
    return EXTENSION_STRATEGIES.get((extension or "").lower(), Strategy.PARAGRAPH)


def _make_chunks(segments: Iterable[str], chunk_type: str) -> List[Chunk]:
    return [
        Chunk(index=i, content=segment, metadata={"chunk_type": chunk_type})
        for i, segment in enumerate(segments)
    ]


def _split_at_offsets(
    content: str,
    patterns: Iterable[re.Pattern],
    chunk_type: str,
    max_chunk_size: int,
) -> List[Chunk]:
    """
    Splits content at the start offsets of every pattern match.

    Offset 0 is always a split point, so text before the first match forms
    its own chunk. Content without a single match is handed to the paragraph
    strategy, as is content whose slices are all blank.
    """
    matches = [m.start() for pattern in patterns for m in pattern.finditer(content)]
    if not matches:
        return split_paragraphs(content, max_chunk_size)

    offsets = sorted(set([0] + matches))
    bounds = zip(offsets, offsets[1:] + [len(content)])
    segments = [content[start:end].strip() for start, end in bounds]
    segments = [segment for segment in segments if segment]

    if not segments:
        return split_paragraphs(content, max_chunk_size)
    return _make_chunks(segments, chunk_type)


def split_constructs(
    content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """Splits Go source at top-level func, type, var and const declarations."""
    return _split_at_offsets(
        content, CONSTRUCT_PATTERNS, "go_construct", max_chunk_size
    )


def split_headings(
    content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """Splits Markdown at every heading line (levels 1-6)."""
    return _split_at_offsets(
        content, HEADING_PATTERNS, "markdown_section", max_chunk_size
    )


def split_block_tags(
    content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """Splits HTML at block-level opening tags."""
    return _split_at_offsets(
        content, BLOCK_TAG_PATTERNS, "html_section", max_chunk_size
    )


def split_statements(
    content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """
    Splits SQL on semicolons.

    The semicolon is put back on every statement except the text after the
    last semicolon, which never had one.
    """
    pieces = content.split(";")
    segments = []
    for i, piece in enumerate(pieces):
        statement = piece.strip()
        if not statement:
            continue
        if i < len(pieces) - 1:
            statement += ";"
        segments.append(statement)

    if not segments:
        return split_paragraphs(content, max_chunk_size)
    return _make_chunks(segments, "sql_statement")


def split_blank_lines(
    content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """Splits structured config files into sections separated by blank lines."""
    segments = [s.strip() for s in BLANK_LINE_PATTERN.split(content)]
    segments = [s for s in segments if s]

    if not segments:
        return split_paragraphs(content, max_chunk_size)
    return _make_chunks(segments, "config_section")


def split_paragraphs(
    content: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """
    Accumulates blank-line separated paragraphs into chunks.

    A chunk is flushed when adding the next paragraph would push the running
    length past ``max_chunk_size``. Only paragraph characters count towards
    the limit; the "\\n\\n" separators used to join them do not. A single
    paragraph longer than the limit becomes a chunk of its own.

    Args:
        content (str): The text to split.
        max_chunk_size (int): Character threshold. Non-positive values fall
            back to the default of 1000.

    Returns:
        List[Chunk]: The chunks, empty if the content holds no text.
    """
    max_chunk_size = coerce_max_chunk_size(max_chunk_size)

    segments = []
    buffer: List[str] = []
    current_length = 0

    for paragraph in BLANK_LINE_PATTERN.split(content):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        if current_length + len(paragraph) > max_chunk_size and buffer:
            segments.append("\n\n".join(buffer))
            buffer = []
            current_length = 0

        buffer.append(paragraph)
        current_length += len(paragraph)

    if buffer:
        segments.append("\n\n".join(buffer))

    return _make_chunks(segments, "text_paragraph")


STRATEGY_FUNCTIONS: Dict[Strategy, Callable[[str, int], List[Chunk]]] = {
    Strategy.CONSTRUCT: split_constructs,
    Strategy.HEADING: split_headings,
    Strategy.STATEMENT: split_statements,
    Strategy.BLANK_LINE: split_blank_lines,
    Strategy.BLOCK_TAG: split_block_tags,
    Strategy.PARAGRAPH: split_paragraphs,
}


class BaseChunker(ABC):
    """Abstract base class for all chunker components."""

    @abstractmethod
    def chunk(self, record: FileRecord) -> List[Chunk]:
        """
        Chunks a single file into a list of chunks.

        Args:
            record (FileRecord): The file to be chunked.

        Returns:
            List[Chunk]: The chunks, indexed contiguously from 0.

        Raises:
            ChunkingError: If the file cannot be chunked.
        """
        pass


class ContentAwareChunker(BaseChunker):
    """
    A chunker that picks a splitting strategy from the file extension.

    After splitting, every chunk is stamped with the file's ``filename``,
    ``topic``, ``extension`` and the ``total_chunks`` produced for the file.
    """

    def __init__(self, max_chunk_size: Optional[int] = DEFAULT_MAX_CHUNK_SIZE):
        """
        Initializes the chunker.

        Args:
            max_chunk_size (int): The paragraph accumulation threshold in
                characters. Missing or non-positive values use 1000.
        """
        self.max_chunk_size = coerce_max_chunk_size(max_chunk_size)
        logger.debug(
            f"Initialized ContentAwareChunker with max_chunk_size={self.max_chunk_size}"
        )

    def chunk(self, record: FileRecord) -> List[Chunk]:
        """Splits a file with the strategy registered for its extension."""
        path = record.relative_path
        if not isinstance(record.content, str):
            raise ChunkingError(
                f"Error chunking {path}: content is not text "
                f"({type(record.content).__name__})"
            )
        if not record.content.strip():
            logger.warning(f"File '{path}' is empty. Skipping chunking.")
            return []

        extension = (record.extension or "").lower()
        strategy = strategy_for_extension(extension)
        logger.debug(f"Chunking '{path}' with the '{strategy.value}' strategy")

        try:
            chunks = STRATEGY_FUNCTIONS[strategy](record.content, self.max_chunk_size)
        except (TypeError, ValueError, re.error) as e:
            raise ChunkingError(f"Error chunking {path}: {e}") from e

        total = str(len(chunks))
        for chunk in chunks:
            chunk.metadata["filename"] = path
            chunk.metadata["topic"] = record.topic
            chunk.metadata["extension"] = extension
            chunk.metadata["total_chunks"] = total

        logger.debug(f"Created {len(chunks)} chunks for {path}")
        return chunks


def chunk_document(
    record: FileRecord, max_chunk_size: Optional[int] = DEFAULT_MAX_CHUNK_SIZE
) -> List[Chunk]:
    """Chunks one file with a default-configured ContentAwareChunker."""
    return ContentAwareChunker(max_chunk_size).chunk(record)
