"""
Core pipeline orchestration module.

This module defines `run_pipeline`, which reads a YAML configuration, builds
the source, chunker and sink, and runs a bulk upsert, and `ingest_file`,
which re-ingests a single file.
"""

import logging
from pathlib import Path
import threading
import time
from typing import Optional

from ..utils.config import load_config
from ..components.sources import build_file_record
from .factory import (
    build_component,
    SOURCE_REGISTRY,
    CHUNKER_REGISTRY,
    SINK_REGISTRY,
)
from .observers import BaseObserver
from .upserter import Upserter, UpsertSummary

logger = logging.getLogger(__name__)


def _apply_log_level(config: dict):
    level = str(config.get("log_level", "INFO")).upper()
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))


def _build_components(config: dict, folder: Optional[str] = None) -> tuple:
    """Builds all pipeline components based on the configuration."""
    logger.info("Building pipeline components...")
    if folder:
        config["source"].setdefault("config", {})["path"] = folder
    try:
        source = build_component(config["source"], SOURCE_REGISTRY)
        chunker = build_component(config["chunker"], CHUNKER_REGISTRY)
        sink = build_component(config["sink"], SINK_REGISTRY)
        logger.info("All components built successfully.")
        return source, chunker, sink
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Error building components: {e}", exc_info=True)
        raise


def _build_upserter(
    config: dict, chunker, sink, observer: Optional[BaseObserver] = None
) -> Upserter:
    upsert_config = config.get("upsert", {})
    return Upserter(
        sink=sink,
        chunker=chunker,
        batch_size=upsert_config.get("batch_size", 10),
        observer=observer,
        max_workers=upsert_config.get("max_workers", 1),
    )


def _log_namespaces(sink):
    try:
        namespaces = sink.list_namespaces()
    except Exception as e:
        logger.warning(f"Could not list namespaces: {e}")
        return
    logger.info("Available namespaces:")
    for namespace in namespaces:
        logger.info(f"  - {namespace}")


def run_pipeline(
    config_path: str,
    folder: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
    observer: Optional[BaseObserver] = None,
) -> UpsertSummary:
    """
    Runs a bulk upsert based on a configuration file.

    Args:
        config_path (str): Path to the pipeline YAML file.
        folder (Optional[str]): Overrides the source path from the config.
        cancel_event (Optional[threading.Event]): Cooperative cancellation.
        observer (Optional[BaseObserver]): Progress receiver.

    Returns:
        UpsertSummary: Counters for the run.
    """
    logger.info(f"ChunkPipe pipeline starting with config: {config_path}")

    config = load_config(config_path)
    _apply_log_level(config)
    logger.info(f"Batch size: {config['upsert']['batch_size']}")

    try:
        source, chunker, sink = _build_components(config, folder)
        upserter = _build_upserter(config, chunker, sink, observer)

        logger.info(f"Loading data from source: {source.__class__.__name__}")
        documents = source.load_data()
        if not documents:
            logger.warning("No documents found to process")
            return UpsertSummary()

        logger.info(f"Found {len(documents)} documents to process")
        start = time.monotonic()
        summary = upserter.upsert_all_documents(documents, cancel_event=cancel_event)
        logger.info(f"Processing completed in {time.monotonic() - start:.2f}s")

        _log_namespaces(sink)
        return summary

    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        raise


def ingest_file(
    config_path: str,
    file_path: str,
    root: Optional[str] = None,
    observer: Optional[BaseObserver] = None,
) -> int:
    """
    Re-ingests a single file as one batch.

    The file's relative path, and therefore its namespace and chunk ids, is
    computed against ``root``, which defaults to the configured source path.

    Returns:
        int: The number of records delivered.
    """
    config = load_config(config_path)
    _apply_log_level(config)

    root_path = Path(root or config["source"].get("config", {}).get("path", "."))
    target = Path(file_path)
    if not target.is_file():
        raise FileNotFoundError(f"File '{target}' does not exist.")

    try:
        record = build_file_record(root_path.resolve(), target.resolve())
    except ValueError as e:
        raise ValueError(f"File '{target}' is not inside '{root_path}'") from e

    chunker = build_component(config["chunker"], CHUNKER_REGISTRY)
    sink = build_component(config["sink"], SINK_REGISTRY)
    upserter = _build_upserter(config, chunker, sink, observer)
    return upserter.upsert_document(record)
