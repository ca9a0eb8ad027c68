"""Utility modules for the synthesis engine."""

from worldmodel.utils.exceptions import (
    ConfigurationError,
    EmbeddingError,
    HistoryError,
    LLMError,
    NotFoundError,
    StoreError,
    SynthesisConflictError,
    SynthesisError,
    ValidationError,
    WorldModelError,
)
from worldmodel.utils.id_generator import (
    generate_canon_id,
    generate_chunk_id,
    generate_commit_id,
    generate_digest_id,
    generate_document_id,
    generate_signal_id,
    generate_version_id,
)
from worldmodel.utils.logger import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
    # ID Generators
    "generate_signal_id",
    "generate_document_id",
    "generate_chunk_id",
    "generate_commit_id",
    "generate_version_id",
    "generate_canon_id",
    "generate_digest_id",
    # Exceptions
    "WorldModelError",
    "StoreError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "SynthesisError",
    "SynthesisConflictError",
    "HistoryError",
]
