"""
Component Factory for the ChunkPipe pipeline.

This module implements the factory pattern for creating pipeline components.
It uses registries to map configuration strings (e.g., 'local_directory') to
the actual component classes, so components can be swapped via configuration.
"""

import logging
from ..components.sources import LocalDirectorySource
from ..components.chunkers import ContentAwareChunker
from ..components.sinks import ChromaDBSink, JSONLinesSink

logger = logging.getLogger(__name__)

# A registry mapping 'type' strings to their corresponding Source classes.
SOURCE_REGISTRY = {"local_directory": LocalDirectorySource}

# A registry mapping 'type' strings to their corresponding Chunker classes.
CHUNKER_REGISTRY = {"content_aware": ContentAwareChunker}

# A registry mapping 'type' strings to their corresponding Sink classes.
SINK_REGISTRY = {"chromadb": ChromaDBSink, "jsonl": JSONLinesSink}


def build_component(component_config: dict, registry: dict):
    """
    Builds a component instance from a configuration dictionary and a registry.

    Args:
        component_config (dict): The component's configuration dictionary,
            expected to have 'type' and 'config' keys.
        registry (dict): The registry (e.g., SOURCE_REGISTRY) to look up the
            component class.

    Returns:
        An instance of the component class.

    Raises:
        ValueError: If the 'type' is not specified in the config or if the
            type is not found in the registry.
    """
    component_type = component_config.get("type", "")
    config = component_config.get("config") or {}

    if not component_type:
        raise ValueError("Component 'type' not specified in configuration.")

    component_class = registry.get(component_type)
    if not component_class:
        raise ValueError(f"'{component_type}' is not a valid component type.")

    logger.debug(f"Building component '{component_class.__name__}' with config: {config}")
    return component_class(**config)
