from pydantic import BaseModel
from typing import Dict, Any


class ComponentConfig(BaseModel):
    """A model for a single component's configuration (source, chunker, sink)"""

    type: str
    config: Dict[str, Any] = {}


class UpsertConfig(BaseModel):
    """Batching and parallelism settings for the upsert run."""

    batch_size: int = 10
    max_workers: int = 1


class PipelineConfig(BaseModel):
    """The top-level model for the entire pipeline.yaml configuration."""

    source: ComponentConfig
    chunker: ComponentConfig = ComponentConfig(type="content_aware")
    sink: ComponentConfig
    upsert: UpsertConfig = UpsertConfig()
    log_level: str = "INFO"
