"""
Data sink components for the ChunkPipe pipeline.

A sink is the store client: it receives batches of enriched records for one
namespace and persists them. Embedding and indexing are left to the store
itself, so sinks only ever send ids, text and string metadata.
"""

from abc import ABC, abstractmethod
import hashlib
import json
import logging
import os
from pathlib import Path
import re
from typing import List, Optional

import chromadb

from ..utils.data_models import EnrichedRecord

logger = logging.getLogger(__name__)

INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
REPEATED_DOTS = re.compile(r"\.{2,}")
NON_ALNUM_EDGES = re.compile(r"^[^A-Za-z0-9]+|[^A-Za-z0-9]+$")

# ChromaDB rejects collection names longer than 63 characters.
MAX_NAME_LENGTH = 63
NAME_HASH_LENGTH = 8


def storage_name(namespace: str, prefix: str = "") -> str:
    """
    Builds a collection or file name for a namespace.

    The name holds only ``[A-Za-z0-9._-]``, never contains "..", starts and
    ends with an alphanumeric character and ends with a short hash of the raw
    namespace, so two different namespaces never share a name.

    Examples:
        storage_name("api_", "ns-") -> "ns-api-<hash>"
        storage_name("a..b", "ns-") -> "ns-a.b-<hash>"
    """
    digest = hashlib.sha256(namespace.encode("utf-8")).hexdigest()[:NAME_HASH_LENGTH]
    readable = INVALID_NAME_CHARS.sub("_", f"{prefix}{namespace}")
    readable = REPEATED_DOTS.sub(".", readable)
    readable = readable[: MAX_NAME_LENGTH - NAME_HASH_LENGTH - 1]
    readable = NON_ALNUM_EDGES.sub("", readable)
    if not readable:
        return digest
    return f"{readable}-{digest}"


class BaseSink(ABC):
    """Abstract base class for all data sink components."""

    @abstractmethod
    def upsert_batch(self, namespace: str, records: List[EnrichedRecord]):
        """
        Writes one batch of records under a namespace.

        Args:
            namespace (str): The logical partition the records belong to.
            records (List[EnrichedRecord]): The batch, in delivery order.

        Raises:
            Exception: Any failure. A batch either succeeds as a whole or the
                call raises.
        """
        pass

    @abstractmethod
    def test_connection(self):
        """
        Tests the connection to the data sink to ensure it is accessible.

        Raises:
            Exception: If the connection test fails.
        """
        pass

    @abstractmethod
    def list_namespaces(self) -> List[str]:
        """Returns the namespaces currently present in the store."""
        pass


class ChromaDBSink(BaseSink):
    """
    A sink that upserts records into ChromaDB.

    Each namespace is stored in its own collection, named by
    :func:`storage_name` from ``collection_prefix`` and the namespace. The raw
    namespace is kept in the collection metadata. Records are upserted by id,
    so delivering the same batch twice leaves the collection unchanged.
    """

    def __init__(
        self,
        collection_prefix: str = "ns-",
        host: Optional[str] = None,
        port: int = 8000,
        path: Optional[str] = None,
    ):
        """
        Initializes the ChromaDBSink.

        Args:
            collection_prefix (str): Prepended to every namespace to form the
                collection name.
            host (Optional[str]): Hostname of a ChromaDB server.
            port (int): Port of the ChromaDB server.
            path (Optional[str]): Local directory for an embedded persistent
                client. Takes precedence over ``host``.
        """
        self.collection_prefix = collection_prefix
        self.host = host or "localhost"
        self.port = port
        self.path = path
        if path:
            self.client = chromadb.PersistentClient(path=path)
            target = f"path='{path}'"
        else:
            self.client = chromadb.HttpClient(host=self.host, port=self.port)
            target = f"host='{self.host}', port='{self.port}'"
        logger.debug(
            f"Initialized ChromaDBSink with {target}, prefix='{collection_prefix}'"
        )

    def collection_name(self, namespace: str) -> str:
        return storage_name(namespace, self.collection_prefix)

    def upsert_batch(self, namespace: str, records: List[EnrichedRecord]):
        """Upserts a batch into the namespace's collection."""
        if not records:
            logger.warning(f"No records provided for namespace '{namespace}'.")
            return

        name = self.collection_name(namespace)
        logger.debug(f"Upserting {len(records)} records into collection '{name}'")
        try:
            collection = self.client.get_or_create_collection(
                name=name, metadata={"namespace": namespace}
            )
        except Exception as e:
            logger.error(f"Failed to open ChromaDB collection '{name}'", exc_info=True)
            raise ConnectionError(f"Could not open collection '{name}': {e}") from e

        try:
            collection.upsert(
                ids=[record.id for record in records],
                documents=[record.content for record in records],
                metadatas=[dict(record.metadata) for record in records],
            )
        except Exception as e:
            logger.error(f"Error upserting records into ChromaDB: {e}", exc_info=True)
            raise

    def list_namespaces(self) -> List[str]:
        """Returns the raw namespaces of the collections this sink created."""
        namespaces = set()
        for collection in self.client.list_collections():
            # Some client versions list names only.
            if isinstance(collection, str):
                collection = self.client.get_collection(name=collection)
            namespace = (collection.metadata or {}).get("namespace")
            if namespace is None:
                continue
            if collection.name == self.collection_name(namespace):
                namespaces.add(namespace)
        return sorted(namespaces)

    def test_connection(self):
        """Tests the connection to ChromaDB with a heartbeat."""
        logger.info("Testing connection for ChromaDBSink")
        try:
            self.client.heartbeat()
            logger.info("Connection to ChromaDB successful.")
        except Exception as e:
            logger.error(f"Failed to connect to ChromaDB: {e}", exc_info=True)
            raise ConnectionError(f"Failed to connect to ChromaDB: {e}") from e


class JSONLinesSink(BaseSink):
    """
    An offline sink that appends records to one JSON Lines file per namespace.

    Useful for dry runs and for inspecting exactly what would be delivered.
    """

    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)
        logger.debug(f"Initialized JSONLinesSink with output_dir='{self.output_dir}'")

    def namespace_path(self, namespace: str) -> Path:
        return self.output_dir / f"{storage_name(namespace)}.jsonl"

    def upsert_batch(self, namespace: str, records: List[EnrichedRecord]):
        if not records:
            logger.warning(f"No records provided for namespace '{namespace}'.")
            return

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.namespace_path(namespace)
        with open(path, "a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        logger.debug(f"Appended {len(records)} records to '{path}'")

    def list_namespaces(self) -> List[str]:
        """Reads the namespace back from the first record of every file."""
        if not self.output_dir.is_dir():
            return []
        namespaces = set()
        for path in self.output_dir.glob("*.jsonl"):
            with open(path, "r", encoding="utf-8") as f:
                first_line = f.readline()
            if first_line.strip():
                namespaces.add(json.loads(first_line)["namespace"])
        return sorted(namespaces)

    def test_connection(self):
        logger.info(f"Testing output directory for JSONLinesSink: {self.output_dir}")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(self.output_dir, os.W_OK):
            raise PermissionError(f"Output directory '{self.output_dir}' is not writable.")
        logger.info("JSONLinesSink output directory is writable.")
