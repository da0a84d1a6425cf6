"""
Command-Line Interface for ChunkPipe.
"""

import typer
import logging
from pathlib import Path
from typing import Optional
from typing_extensions import Annotated

from .core.pipeline import run_pipeline, ingest_file
from .core.factory import (
    SOURCE_REGISTRY,
    SINK_REGISTRY,
    CHUNKER_REGISTRY,
    build_component,
)
from .core.upserter import validate_document
from .utils.config import load_config
from .utils.errors import DocumentValidationError


logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = typer.Typer(help="Chunk a directory tree and upsert it into a vector store.")

DEFAULT_YAML_CONTENT = """# Default ChunkPipe Pipeline Configuration
source:
  type: local_directory
  config:
    path: ./data

chunker:
  type: content_aware
  config:
    max_chunk_size: 1000

sink:
  type: chromadb
  config:
    host: localhost
    port: 8000
    collection_prefix: "ns-"

upsert:
  batch_size: 10
  max_workers: 1

log_level: INFO
"""


@app.command()
def run(
    config_path: str = typer.Option("pipeline.yaml", "-c", help="Path to the pipeline's YAML configuration file."),
    folder: Optional[str] = typer.Option(None, "--folder", "-f", help="Folder to ingest (overrides the config)."),
):
    """Chunks every file in the source folder and upserts the chunks."""
    try:
        summary = run_pipeline(config_path=config_path, folder=folder)
    except Exception as e:
        logger.error(f"Ingestion failed: {e}")
        raise typer.Exit(code=1)
    if summary.failed_documents:
        logger.warning(f"{summary.failed_documents} documents could not be chunked.")


@app.command(name="ingest-file")
def ingest_file_command(
    file_path: Annotated[str, typer.Argument(help="File to re-ingest.")],
    config_path: str = typer.Option("pipeline.yaml", "-c", help="Config path."),
    root: Optional[str] = typer.Option(None, "--root", help="Root the file path is relative to."),
):
    """Upserts a single file as one batch."""
    try:
        count = ingest_file(config_path=config_path, file_path=file_path, root=root)
    except Exception as e:
        logger.error(f"Ingestion failed: {e}")
        raise typer.Exit(code=1)
    logger.info(f"Upserted {count} chunks from '{file_path}'.")


@app.command()
def validate(
    config_path: str = typer.Option("pipeline.yaml", "-c", help="Config path."),
    folder: Optional[str] = typer.Option(None, "--folder", "-f", help="Folder to check (overrides the config)."),
):
    """Checks every source file against the pre-flight validation rules."""
    config = load_config(config_path)
    if folder:
        config["source"].setdefault("config", {})["path"] = folder
    source = build_component(config["source"], SOURCE_REGISTRY)

    failures = 0
    for record in source.load_data():
        try:
            validate_document(record)
        except DocumentValidationError as e:
            failures += 1
            logger.warning(str(e))

    if failures:
        logger.error(f"{failures} documents failed validation.")
        raise typer.Exit(code=1)
    logger.info("All documents passed validation.")


@app.command()
def init():
    """Initializes a new ChunkPipe project."""
    logger.info("Initializing new ChunkPipe project...")
    Path("data").mkdir(exist_ok=True)
    logger.info("Created 'data' directory.")

    config_file = Path("pipeline.yaml")
    if config_file.exists():
        logger.warning("'pipeline.yaml' already exists.")
    else:
        config_file.write_text(DEFAULT_YAML_CONTENT)
        logger.info("Created default 'pipeline.yaml'.")

    logger.info("Project initialized.")


@app.command(name="list-components")
def list_components():
    """Lists all available components."""
    logger.info("Listing available components...")

    def print_registry(title, registry):
        print(f"\n--- {title} ---")
        for name in sorted(registry.keys()):
            print(f"  - {name}")

    print_registry("Sources", SOURCE_REGISTRY)
    print_registry("Chunkers", CHUNKER_REGISTRY)
    print_registry("Sinks", SINK_REGISTRY)


@app.command(name="list-namespaces")
def list_namespaces(
    config_path: str = typer.Option("pipeline.yaml", "-c", help="Config path."),
):
    """Lists the namespaces present in the configured sink."""
    try:
        config = load_config(config_path)
        sink = build_component(config["sink"], SINK_REGISTRY)
        namespaces = sink.list_namespaces()
    except Exception as e:
        logger.error(f"Could not list namespaces: {e}", exc_info=True)
        raise typer.Exit(code=1)

    if not namespaces:
        logger.info("No namespaces found.")
        return
    print("\n--- Namespaces ---")
    for namespace in namespaces:
        print(f"  - {namespace}")


@app.command(name="test-connection")
def test_connection(
    component: Annotated[str, typer.Argument(help="Component to test (source or sink)")],
    config_path: str = typer.Option("pipeline.yaml", "-c", help="Config path."),
):
    """Tests the connection for a specified component."""
    logger.info(f"Testing connection for '{component}'...")
    config = load_config(config_path)
    if component == "source":
        registry = SOURCE_REGISTRY
    elif component == "sink":
        registry = SINK_REGISTRY
    else:
        logger.error(f"Unknown component: '{component}'")
        raise typer.Exit(code=1)

    try:
        comp_obj = build_component(config[component], registry)
        comp_obj.test_connection()
    except Exception as e:
        logger.error(f"Connection test failed: {e}", exc_info=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
