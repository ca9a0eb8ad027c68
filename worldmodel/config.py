"""
Configuration for the synthesis engine.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from worldmodel.utils.exceptions import ConfigurationError

DEFAULT_SYNTHESIS_SYSTEM_PROMPT = (
    "You maintain a workspace synthesis document set. Update documents based on "
    "new signals. Keep output concise and actionable."
)


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "openai"  # openai, ollama
    model: str = "gpt-4o"
    base_url: str | None = None
    api_key: str | None = None
    temperature: float = 0.0
    max_tokens: int = 4096
    timeout: float = 120.0
    # Cents per million tokens, used for usage accounting
    input_price_cents_per_million: float = 500.0
    output_price_cents_per_million: float = 2500.0


class EmbedderConfig(BaseModel):
    """Embedder configuration."""

    provider: str = "openai"  # openai, ollama
    model: str = "text-embedding-3-small"
    base_url: str | None = None
    api_key: str | None = None
    timeout: float = 120.0
    # Every stored vector must have this dimension
    dimension: int | None = 1536
    # Character budgets applied before calling the model
    max_chars: int = 8000
    query_max_chars: int = 2000


class ChunkingConfig(BaseModel):
    """Document chunking configuration."""

    threshold_chars: int = 8000
    max_chunk_chars: int = 6000
    embedding_max_chars: int = 8000


class RetrievalConfig(BaseModel):
    """Context retrieval configuration."""

    # Similarity at or below this value means "irrelevant"
    similarity_floor: float = 0.3
    default_limit: int = 5
    overfetch_factor: int = 5
    context_max_chars: int = 2000


class AlignmentConfig(BaseModel):
    """Calibration band for alignment / drift scoring."""

    floor: float = 0.35
    ceiling: float = 0.85
    neutral: float = 0.5

    @model_validator(mode="after")
    def _check_band(self) -> "AlignmentConfig":
        if self.ceiling <= self.floor:
            raise ConfigurationError(
                f"Alignment ceiling ({self.ceiling}) must be greater than floor ({self.floor})"
            )
        return self


class SynthesisConfig(BaseModel):
    """Synthesis commit engine configuration."""

    max_tokens: int = 4096
    max_conflict_retries: int = 0
    system_prompt: str = DEFAULT_SYNTHESIS_SYSTEM_PROMPT


class DigestConfig(BaseModel):
    """Digest generator configuration."""

    max_items: int = 5
    max_signals: int = 50
    max_tokens: int = 2048


class StorageConfig(BaseModel):
    """Relational store configuration."""

    backend: str = "sqlite"
    sqlite_path: str = "data/worldmodel.db"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    alignment: AlignmentConfig = Field(default_factory=AlignmentConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    digest: DigestConfig = Field(default_factory=DigestConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _check_chunk_budget(self) -> "Config":
        if self.chunking.max_chunk_chars > self.chunking.embedding_max_chars:
            raise ConfigurationError(
                "chunking.max_chunk_chars must not exceed chunking.embedding_max_chars",
                context={
                    "max_chunk_chars": self.chunking.max_chunk_chars,
                    "embedding_max_chars": self.chunking.embedding_max_chars,
                },
            )
        return self

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            WORLDMODEL_LLM_PROVIDER: LLM provider (openai, ollama)
            WORLDMODEL_LLM_MODEL: LLM model name
            WORLDMODEL_LLM_API_KEY: LLM API key (for OpenAI)
            WORLDMODEL_EMBEDDER_PROVIDER: Embedder provider
            WORLDMODEL_EMBEDDER_MODEL: Embedder model name
            WORLDMODEL_EMBEDDER_DIMENSION: Embedding dimension
            WORLDMODEL_RETRIEVAL_SIMILARITY_FLOOR: Relevance cutoff for retrieval
            WORLDMODEL_CHUNKING_THRESHOLD_CHARS: Size above which documents are chunked
            WORLDMODEL_SQLITE_PATH: SQLite database path
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            if value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        defaults = cls()

        return cls(
            llm=LLMConfig(
                provider=get_env("WORLDMODEL_LLM_PROVIDER", defaults.llm.provider),
                model=get_env("WORLDMODEL_LLM_MODEL", defaults.llm.model),
                base_url=get_env("WORLDMODEL_LLM_BASE_URL"),
                api_key=get_env("WORLDMODEL_LLM_API_KEY"),
                temperature=get_env("WORLDMODEL_LLM_TEMPERATURE", defaults.llm.temperature),
                max_tokens=get_env("WORLDMODEL_LLM_MAX_TOKENS", defaults.llm.max_tokens),
                timeout=get_env("WORLDMODEL_LLM_TIMEOUT", defaults.llm.timeout),
                input_price_cents_per_million=get_env(
                    "WORLDMODEL_LLM_INPUT_PRICE", defaults.llm.input_price_cents_per_million
                ),
                output_price_cents_per_million=get_env(
                    "WORLDMODEL_LLM_OUTPUT_PRICE", defaults.llm.output_price_cents_per_million
                ),
            ),
            embedder=EmbedderConfig(
                provider=get_env("WORLDMODEL_EMBEDDER_PROVIDER", defaults.embedder.provider),
                model=get_env("WORLDMODEL_EMBEDDER_MODEL", defaults.embedder.model),
                base_url=get_env("WORLDMODEL_EMBEDDER_BASE_URL"),
                api_key=get_env("WORLDMODEL_EMBEDDER_API_KEY"),
                timeout=get_env("WORLDMODEL_EMBEDDER_TIMEOUT", defaults.embedder.timeout),
                dimension=get_env("WORLDMODEL_EMBEDDER_DIMENSION", defaults.embedder.dimension),
                max_chars=get_env("WORLDMODEL_EMBEDDER_MAX_CHARS", defaults.embedder.max_chars),
                query_max_chars=get_env(
                    "WORLDMODEL_EMBEDDER_QUERY_MAX_CHARS", defaults.embedder.query_max_chars
                ),
            ),
            chunking=ChunkingConfig(
                threshold_chars=get_env(
                    "WORLDMODEL_CHUNKING_THRESHOLD_CHARS", defaults.chunking.threshold_chars
                ),
                max_chunk_chars=get_env(
                    "WORLDMODEL_CHUNKING_MAX_CHUNK_CHARS", defaults.chunking.max_chunk_chars
                ),
                embedding_max_chars=get_env(
                    "WORLDMODEL_CHUNKING_EMBEDDING_MAX_CHARS",
                    defaults.chunking.embedding_max_chars,
                ),
            ),
            retrieval=RetrievalConfig(
                similarity_floor=get_env(
                    "WORLDMODEL_RETRIEVAL_SIMILARITY_FLOOR", defaults.retrieval.similarity_floor
                ),
                default_limit=get_env(
                    "WORLDMODEL_RETRIEVAL_DEFAULT_LIMIT", defaults.retrieval.default_limit
                ),
                overfetch_factor=get_env(
                    "WORLDMODEL_RETRIEVAL_OVERFETCH_FACTOR", defaults.retrieval.overfetch_factor
                ),
                context_max_chars=get_env(
                    "WORLDMODEL_RETRIEVAL_CONTEXT_MAX_CHARS", defaults.retrieval.context_max_chars
                ),
            ),
            alignment=AlignmentConfig(
                floor=get_env("WORLDMODEL_ALIGNMENT_FLOOR", defaults.alignment.floor),
                ceiling=get_env("WORLDMODEL_ALIGNMENT_CEILING", defaults.alignment.ceiling),
                neutral=get_env("WORLDMODEL_ALIGNMENT_NEUTRAL", defaults.alignment.neutral),
            ),
            synthesis=SynthesisConfig(
                max_tokens=get_env(
                    "WORLDMODEL_SYNTHESIS_MAX_TOKENS", defaults.synthesis.max_tokens
                ),
                max_conflict_retries=get_env(
                    "WORLDMODEL_SYNTHESIS_MAX_CONFLICT_RETRIES",
                    defaults.synthesis.max_conflict_retries,
                ),
            ),
            digest=DigestConfig(
                max_items=get_env("WORLDMODEL_DIGEST_MAX_ITEMS", defaults.digest.max_items),
                max_signals=get_env("WORLDMODEL_DIGEST_MAX_SIGNALS", defaults.digest.max_signals),
            ),
            storage=StorageConfig(
                backend=get_env("WORLDMODEL_STORAGE_BACKEND", defaults.storage.backend),
                sqlite_path=get_env("WORLDMODEL_SQLITE_PATH", defaults.storage.sqlite_path),
            ),
            logging=LoggingConfig(
                level=get_env("WORLDMODEL_LOG_LEVEL", "INFO"),
                log_to_file=get_env("WORLDMODEL_LOG_TO_FILE", True),
                log_dir=get_env("WORLDMODEL_LOG_DIR", "logs"),
                file_rotation=get_env("WORLDMODEL_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("WORLDMODEL_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("WORLDMODEL_LOG_COMPRESSION", "zip"),
                serialize=get_env("WORLDMODEL_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        # Sections whose env values differ from defaults override YAML
        final_dict = {**config_dict}
        default = cls()
        for section in type(default).model_fields:
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config
