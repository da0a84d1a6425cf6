"""
Configuration loading utility for ChunkPipe.

This module loads a YAML configuration file, applies environment overrides
(including those from a local .env file) and validates the result.
"""

import os
import yaml
from pathlib import Path
import logging
from dotenv import load_dotenv
from pydantic import ValidationError
import sys

from .config_models import PipelineConfig

logger = logging.getLogger(__name__)


def _int_from_env(name: str):
    value = os.getenv(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: '{value}'")
        return None


def apply_env_overrides(config: dict) -> dict:
    """
    Overrides configuration values from environment variables.

    BATCH_SIZE sets upsert.batch_size, MAX_CHUNK_SIZE sets the chunker's
    max_chunk_size and LOG_LEVEL sets log_level.
    """
    batch_size = _int_from_env("BATCH_SIZE")
    if batch_size is not None:
        config.setdefault("upsert", {})["batch_size"] = batch_size

    max_chunk_size = _int_from_env("MAX_CHUNK_SIZE")
    if max_chunk_size is not None:
        chunker = config.setdefault("chunker", {"type": "content_aware"})
        chunker.setdefault("config", {})["max_chunk_size"] = max_chunk_size

    log_level = os.getenv("LOG_LEVEL")
    if log_level:
        config["log_level"] = log_level.upper()

    return config


def load_config(config_path: str) -> dict:
    """
    Loads and validates a YAML configuration file from the specified path.

    If the file is not found, unreadable, or fails validation, it logs a
    detailed error and terminates the program.

    Args:
        config_path (str): The path to the YAML configuration file.

    Returns:
        dict: The validated configuration with defaults filled in.
    """
    path = Path(config_path)
    if not path.is_file():
        logger.error(f"Configuration file not found or is not a file: '{path}'")
        sys.exit(1)

    logger.debug(f"Attempting to load and validate configuration from: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
            if not config:
                logger.error(f"Configuration file is empty: '{path}'")
                sys.exit(1)
            if not isinstance(config, dict):
                logger.error(f"Configuration file must contain a mapping: '{path}'")
                sys.exit(1)

        load_dotenv()
        config = apply_env_overrides(config)

        validated = PipelineConfig.model_validate(config)

        logger.info(f"Successfully loaded and validated configuration from: '{path}'")
        return validated.model_dump()

    except (yaml.YAMLError, IOError) as e:
        logger.error(f"Error reading or parsing YAML file '{path}': {e}", exc_info=True)
        sys.exit(1)
    except ValidationError as e:
        # Pydantic provides detailed, user-friendly error messages.
        logger.error(f"Configuration validation failed:\n{e}")
        sys.exit(1)
