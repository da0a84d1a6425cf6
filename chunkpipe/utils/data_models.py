"""
Core data models for the ChunkPipe pipeline.

This module defines the standard data structures that are passed between
components in the pipeline: files produced by a source, chunks produced by a
chunker, and the enriched records delivered to a sink.
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class FileRecord:
    """
    A single text file discovered by a source.

    Attributes:
        relative_path (str): Slash-separated path relative to the walked root.
            Used as the identity key of the file.
        extension (str): Lower-cased file extension including the dot.
        content (str): The decoded text content.
        size (int): File size in bytes.
        topic (str): First path segment, or "root" for top-level files.
    """

    relative_path: str
    extension: str
    content: str
    size: int
    topic: str


@dataclass
class Chunk:
    """A contiguous segment of one file's text."""

    index: int
    content: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EnrichedRecord:
    """
    A chunk merged with its derived fields, ready for delivery.

    Attributes:
        id (str): Deterministic identifier derived from path and chunk index.
        content (str): The chunk text.
        metadata (Dict[str, str]): Chunk metadata plus derived fields.
        namespace (str): The namespace the record is delivered under.
    """

    id: str
    content: str
    metadata: Dict[str, str]
    namespace: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": dict(self.metadata),
            "namespace": self.namespace,
        }
