"""
Batched, namespace-grouped delivery of chunked files to a sink.

The Upserter chunks every file once, derives ids and metadata for each chunk,
groups the resulting records by namespace, and hands them to the sink in
fixed-size batches. Chunking failures skip the file; the first delivery
failure ends the run.
"""

from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from itertools import repeat
import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from ..components.chunkers import BaseChunker, ContentAwareChunker
from ..components.sinks import BaseSink
from ..utils.data_models import Chunk, EnrichedRecord, FileRecord
from ..utils.errors import (
    ChunkingError,
    DeliveryError,
    DocumentValidationError,
    PipelineCancelled,
)
from .metadata import enrich_chunks, extract_namespace
from .observers import BaseObserver, LoggingObserver

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024


@dataclass
class UpsertSummary:
    """Counters describing one bulk upsert run."""

    total_documents: int = 0
    failed_documents: int = 0
    total_chunks: int = 0
    processed_chunks: int = 0
    namespaces: int = 0
    batches: int = 0

    @property
    def successful_documents(self) -> int:
        return self.total_documents - self.failed_documents


def _chunk_file(
    record: FileRecord, chunker: BaseChunker
) -> Tuple[Optional[List[Chunk]], Optional[str]]:
    """Chunks a single file, returning the error message instead of raising."""
    try:
        return chunker.chunk(record), None
    except ChunkingError as e:
        return None, str(e)


def validate_document(record: FileRecord):
    """
    Pre-flight check for a single file.

    Raises:
        DocumentValidationError: If the content is blank, the file is larger
            than 10 MiB, or the topic is missing.
    """
    path = record.relative_path
    if not record.content or not record.content.strip():
        raise DocumentValidationError(f"document content is empty: {path}")
    if record.size > MAX_DOCUMENT_SIZE:
        raise DocumentValidationError(
            f"document too large: {path} ({record.size} bytes)"
        )
    if not record.topic:
        raise DocumentValidationError(f"document has no topic: {path}")


class Upserter:
    """
    Drives a sink with batches of enriched chunk records.

    Delivery is strictly sequential: namespaces are visited in the order
    their first record was produced, and batches within a namespace keep
    chunk order.
    """

    def __init__(
        self,
        sink: BaseSink,
        chunker: Optional[BaseChunker] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        observer: Optional[BaseObserver] = None,
        max_workers: int = 1,
    ):
        """
        Initializes the Upserter.

        Args:
            sink (BaseSink): The store client receiving the batches.
            chunker (Optional[BaseChunker]): Defaults to ContentAwareChunker.
            batch_size (int): Records per batch call. Non-positive values use 10.
            observer (Optional[BaseObserver]): Progress receiver. Defaults to
                a LoggingObserver.
            max_workers (int): Processes used for the chunking pass. 1 keeps
                chunking in-process.
        """
        self.sink = sink
        self.chunker = chunker or ContentAwareChunker()
        self.batch_size = batch_size if batch_size and batch_size > 0 else DEFAULT_BATCH_SIZE
        self.observer = observer or LoggingObserver()
        self.max_workers = max(1, max_workers or 1)
        logger.debug(
            f"Initialized Upserter with batch_size={self.batch_size}, "
            f"max_workers={self.max_workers}"
        )

    def upsert_all_documents(
        self,
        documents: Iterable[FileRecord],
        cancel_event: Optional[threading.Event] = None,
    ) -> UpsertSummary:
        """
        Chunks, groups and delivers every file.

        Args:
            documents (Iterable[FileRecord]): The files, in traversal order.
            cancel_event (Optional[threading.Event]): Checked before every
                batch; once set, no further batch is started.

        Returns:
            UpsertSummary: Counters for the run.

        Raises:
            DeliveryError: On the first failed batch. Later batches and
                namespaces are not attempted.
            PipelineCancelled: If ``cancel_event`` is set.
        """
        documents = list(documents)
        summary = UpsertSummary(total_documents=len(documents))
        logger.info(f"Starting upsert of {len(documents)} documents")
        self._check_cancelled(cancel_event)

        chunked = self.chunk_documents(documents, summary)
        summary.total_chunks = sum(len(chunks) for _, chunks in chunked)
        logger.info(f"Total chunks to process: {summary.total_chunks}")

        groups = self.group_by_namespace(chunked)
        summary.namespaces = len(groups)

        for namespace, records in groups.items():
            logger.info(
                f"Processing {len(records)} documents for namespace: {namespace}"
            )
            self._deliver_namespace(namespace, records, summary, cancel_event)

        logger.info(
            f"Upsert completed! Processed {summary.processed_chunks} chunks from "
            f"{summary.successful_documents} documents across "
            f"{summary.namespaces} namespaces"
        )
        if summary.failed_documents > 0:
            self.observer.on_warning(
                f"Failed to process {summary.failed_documents} documents"
            )
        return summary

    def chunk_documents(
        self, documents: List[FileRecord], summary: UpsertSummary
    ) -> List[Tuple[FileRecord, List[Chunk]]]:
        """
        Chunks every file once, in input order.

        Files that fail to chunk are reported, counted in
        ``summary.failed_documents`` and left out of the result.
        """
        if self.max_workers > 1 and len(documents) > 1:
            logger.info(f"Using {self.max_workers} workers for parallel chunking.")
            with ProcessPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(
                    executor.map(_chunk_file, documents, repeat(self.chunker))
                )
        else:
            results = [_chunk_file(doc, self.chunker) for doc in documents]

        chunked = []
        for doc, (chunks, error) in zip(documents, results):
            if error is not None:
                self.observer.on_error(
                    f"Error chunking document {doc.relative_path}: {error}"
                )
                summary.failed_documents += 1
                continue
            chunked.append((doc, chunks))
        return chunked

    def group_by_namespace(
        self, chunked: List[Tuple[FileRecord, List[Chunk]]]
    ) -> Dict[str, List[EnrichedRecord]]:
        """Builds the namespace groups, keeping encounter order."""
        groups: Dict[str, List[EnrichedRecord]] = {}
        for doc, chunks in chunked:
            logger.debug(f"Processing document: {doc.relative_path}")
            for record in enrich_chunks(doc, chunks):
                groups.setdefault(record.namespace, []).append(record)
        return groups

    def _deliver_namespace(
        self,
        namespace: str,
        records: List[EnrichedRecord],
        summary: UpsertSummary,
        cancel_event: Optional[threading.Event],
    ):
        for start in range(0, len(records), self.batch_size):
            self._check_cancelled(cancel_event)
            batch = records[start : start + self.batch_size]
            self._send(namespace, batch, start // self.batch_size + 1)
            summary.processed_chunks += len(batch)
            summary.batches += 1
            self.observer.on_progress(
                summary.processed_chunks, summary.total_chunks, "Chunks processed"
            )

    def _send(self, namespace: str, batch: List[EnrichedRecord], batch_number: int):
        try:
            self.sink.upsert_batch(namespace, batch)
        except Exception as e:
            message = (
                f"Error upserting batch {batch_number} for namespace {namespace}: {e}"
            )
            self.observer.on_error(message)
            raise DeliveryError(
                message, namespace=namespace, batch_number=batch_number
            ) from e

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelled("Upsert cancelled before the next batch.")

    def upsert_document(
        self,
        record: FileRecord,
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """
        Delivers one file's chunks as a single batch.

        Used for targeted re-ingestion; ``batch_size`` does not apply.

        Returns:
            int: The number of records delivered.

        Raises:
            ChunkingError: If the file cannot be chunked.
            DeliveryError: If the batch call fails.
        """
        path = record.relative_path
        logger.info(f"Upserting single document: {path}")

        namespace = extract_namespace(path)
        records = enrich_chunks(record, self.chunker.chunk(record))
        if not records:
            self.observer.on_warning(f"No chunks produced for {path}; nothing to upsert")
            return 0

        self._check_cancelled(cancel_event)
        self._send(namespace, records, batch_number=1)
        logger.info(f"Upserted {len(records)} chunks for {path} (namespace: {namespace})")
        return len(records)

    def validate_document(self, record: FileRecord):
        """See :func:`validate_document`."""
        validate_document(record)
