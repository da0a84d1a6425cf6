"""
Metadata derivation for chunks.

Everything here is derived from a file's relative path, which is split on
"/". The parent directory becomes the namespace (sanitised so it is a valid
partition name), the first segment is the project type, and every chunk gets
an id that depends only on the path and the chunk index.
"""

import hashlib
import logging
import posixpath
from typing import List

from ..utils.data_models import Chunk, EnrichedRecord, FileRecord

logger = logging.getLogger(__name__)

# Parent directory names that collapse into the "system" namespace.
SYSTEM_DIRECTORIES = {
    "git",
    "vscode",
    "idea",
    "node_modules",
    "vendor",
    "dist",
    "build",
}

# Hex characters of the digest kept in the id (64 bits).
ID_HASH_LENGTH = 16


def _parts(relative_path: str) -> List[str]:
    return relative_path.split("/")


def extract_namespace(relative_path: str) -> str:
    """
    Derives the namespace from the file's parent directory.

    Examples:
        "go-fiber-recipes/404-handler/main.go" -> "404-handler"
        ".git/config" -> "hidden-git"
        "readme.md" -> "default"
    """
    parts = _parts(relative_path)
    if len(parts) < 2:
        return "default"

    parent = parts[-2]
    if parent.startswith("."):
        rest = parent.lstrip(".")
        return f"hidden-{rest}" if rest else "hidden"
    if parent in SYSTEM_DIRECTORIES:
        return "system"
    return parent


def extract_recipe_name(relative_path: str) -> str:
    """Returns the unsanitised parent directory name, or "root"."""
    parts = _parts(relative_path)
    if len(parts) >= 2:
        return parts[-2]
    return "root"


def extract_project_type(relative_path: str) -> str:
    """Returns the first path segment, or "unknown" if it is empty."""
    first = _parts(relative_path)[0]
    return first if first else "unknown"


def extract_full_path(relative_path: str) -> str:
    """Returns the directory portion of the path, or "root" at the tree root."""
    directory = posixpath.dirname(relative_path)
    if directory in ("", "."):
        return "root"
    return directory


def generate_document_id(relative_path: str, chunk_index: int) -> str:
    """Returns a stable id for the chunk at ``chunk_index`` of a file."""
    digest = hashlib.sha256(f"{relative_path}:{chunk_index}".encode("utf-8"))
    return f"doc_{digest.hexdigest()[:ID_HASH_LENGTH]}"


def enrich_chunks(record: FileRecord, chunks: List[Chunk]) -> List[EnrichedRecord]:
    """
    Merges each chunk with the fields derived from its file.

    Args:
        record (FileRecord): The file the chunks were produced from.
        chunks (List[Chunk]): The file's chunks.

    Returns:
        List[EnrichedRecord]: One record per chunk, in chunk order. All
            metadata values are strings.
    """
    path = record.relative_path
    namespace = extract_namespace(path)
    derived = {
        "source_file": path,
        "file_size": str(record.size),
        "namespace": namespace,
        "full_path": extract_full_path(path),
        "recipe_name": extract_recipe_name(path),
        "project_type": extract_project_type(path),
    }

    enriched = []
    for chunk in chunks:
        metadata = dict(chunk.metadata)
        metadata["chunk_index"] = str(chunk.index)
        metadata.update(derived)
        enriched.append(
            EnrichedRecord(
                id=generate_document_id(path, chunk.index),
                content=chunk.content,
                metadata=metadata,
                namespace=namespace,
            )
        )
    return enriched
