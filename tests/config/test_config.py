"""
Tests for configuration management.

Tests config loading from:
1. Defaults
2. Environment variables (and .env files)
3. YAML files
4. Combined (env overrides YAML)
"""

import os

import pytest
import yaml

from worldmodel.config import (
    AlignmentConfig,
    ChunkingConfig,
    Config,
    EmbedderConfig,
    LLMConfig,
    RetrievalConfig,
)
from worldmodel.utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove WORLDMODEL_* variables so tests see only what they set."""
    for key in list(os.environ):
        if key.startswith("WORLDMODEL_"):
            monkeypatch.delenv(key)


@pytest.mark.unit
class TestConfigDefaults:
    """Test default configuration values."""

    def test_default_config_creation(self):
        """Test creating config with defaults."""
        config = Config()

        # LLM defaults
        assert config.llm.provider == "openai"
        assert config.llm.temperature == 0.0
        assert config.llm.max_tokens == 4096
        assert config.llm.input_price_cents_per_million == 500.0
        assert config.llm.output_price_cents_per_million == 2500.0

        # Embedder defaults
        assert config.embedder.dimension == 1536
        assert config.embedder.max_chars == 8000
        assert config.embedder.query_max_chars == 2000

        # Chunking
        assert config.chunking.threshold_chars == 8000
        assert config.chunking.max_chunk_chars == 6000

        # Retrieval
        assert config.retrieval.similarity_floor == 0.3
        assert config.retrieval.overfetch_factor == 5

        # Alignment band
        assert config.alignment.floor == 0.35
        assert config.alignment.ceiling == 0.85
        assert config.alignment.neutral == 0.5

        # Synthesis / digest / storage
        assert config.synthesis.max_conflict_retries == 0
        assert config.digest.max_items == 5
        assert config.digest.max_signals == 50
        assert config.storage.backend == "sqlite"

    def test_llm_config_creation(self):
        """Test creating LLM config."""
        llm_config = LLMConfig(provider="ollama", model="llama3.1:8b", temperature=0.7)

        assert llm_config.provider == "ollama"
        assert llm_config.model == "llama3.1:8b"
        assert llm_config.temperature == 0.7

    def test_embedder_config_with_dimension(self):
        """Test embedder config with explicit dimension."""
        config = EmbedderConfig(provider="ollama", model="nomic-embed-text", dimension=768)
        assert config.dimension == 768


@pytest.mark.unit
class TestConfigValidation:
    """Test rejected configurations."""

    def test_alignment_ceiling_must_exceed_floor(self):
        with pytest.raises(ConfigurationError):
            AlignmentConfig(floor=0.8, ceiling=0.4)

    def test_alignment_equal_bounds_rejected(self):
        with pytest.raises(ConfigurationError):
            AlignmentConfig(floor=0.5, ceiling=0.5)

    def test_chunk_must_fit_embedding_budget(self):
        with pytest.raises(ConfigurationError):
            Config(chunking=ChunkingConfig(max_chunk_chars=9000, embedding_max_chars=8000))

    def test_similarity_floor_is_configurable(self):
        config = Config(retrieval=RetrievalConfig(similarity_floor=0.45))
        assert config.retrieval.similarity_floor == 0.45


@pytest.mark.unit
class TestConfigFromEnv:
    """Test loading configuration from environment variables."""

    def test_from_env_basic(self, monkeypatch):
        """Test loading basic config from env vars."""
        monkeypatch.setenv("WORLDMODEL_LLM_PROVIDER", "ollama")
        monkeypatch.setenv("WORLDMODEL_LLM_MODEL", "llama3.1:8b")
        monkeypatch.setenv("WORLDMODEL_EMBEDDER_PROVIDER", "ollama")
        monkeypatch.setenv("WORLDMODEL_EMBEDDER_MODEL", "nomic-embed-text")
        monkeypatch.setenv("WORLDMODEL_SQLITE_PATH", "/tmp/wm.db")

        config = Config.from_env()

        assert config.llm.provider == "ollama"
        assert config.llm.model == "llama3.1:8b"
        assert config.embedder.provider == "ollama"
        assert config.embedder.model == "nomic-embed-text"
        assert config.storage.sqlite_path == "/tmp/wm.db"

    def test_from_env_with_numbers(self, monkeypatch):
        """Test type conversion for numeric values."""
        monkeypatch.setenv("WORLDMODEL_LLM_TEMPERATURE", "0.7")
        monkeypatch.setenv("WORLDMODEL_EMBEDDER_DIMENSION", "768")
        monkeypatch.setenv("WORLDMODEL_RETRIEVAL_SIMILARITY_FLOOR", "0.42")
        monkeypatch.setenv("WORLDMODEL_CHUNKING_THRESHOLD_CHARS", "12000")
        monkeypatch.setenv("WORLDMODEL_SYNTHESIS_MAX_CONFLICT_RETRIES", "2")

        config = Config.from_env()

        assert config.llm.temperature == 0.7
        assert config.embedder.dimension == 768
        assert config.retrieval.similarity_floor == 0.42
        assert config.chunking.threshold_chars == 12000
        assert config.synthesis.max_conflict_retries == 2

    def test_from_env_with_booleans(self, monkeypatch):
        """Test boolean conversion."""
        monkeypatch.setenv("WORLDMODEL_LOG_TO_FILE", "false")
        monkeypatch.setenv("WORLDMODEL_LOG_SERIALIZE", "0")

        config = Config.from_env()

        assert config.logging.log_to_file is False
        assert config.logging.serialize is False

    def test_from_env_with_dotenv_file(self, tmp_path):
        """Test loading from a .env file."""
        env_file = tmp_path / ".env.test"
        env_file.write_text("WORLDMODEL_LLM_MODEL=gpt-4o-mini\nWORLDMODEL_DIGEST_MAX_ITEMS=3\n")

        try:
            config = Config.from_env(env_file=env_file)

            assert config.llm.model == "gpt-4o-mini"
            assert config.digest.max_items == 3
        finally:
            os.environ.pop("WORLDMODEL_LLM_MODEL", None)
            os.environ.pop("WORLDMODEL_DIGEST_MAX_ITEMS", None)

    def test_from_env_missing_values_use_defaults(self):
        """Unset variables fall back to defaults."""
        config = Config.from_env()

        assert config == Config()


@pytest.mark.unit
class TestConfigFromYaml:
    """Test loading configuration from YAML files."""

    def test_from_yaml_partial_config(self, tmp_path):
        """Missing sections use defaults."""
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text(
            yaml.dump(
                {
                    "retrieval": {"similarity_floor": 0.4, "default_limit": 8},
                    "alignment": {"floor": 0.3, "ceiling": 0.9},
                }
            )
        )

        config = Config.from_yaml(yaml_file)

        assert config.retrieval.similarity_floor == 0.4
        assert config.retrieval.default_limit == 8
        assert config.alignment.ceiling == 0.9
        assert config.llm == LLMConfig()

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_empty_file(self, tmp_path):
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert Config.from_yaml(yaml_file) == Config()


@pytest.mark.unit
class TestConfigEnvOrYaml:
    """Test combined loading: env > YAML > defaults."""

    def test_env_section_overrides_yaml(self, tmp_path, monkeypatch):
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text(
            yaml.dump(
                {
                    "llm": {"model": "from-yaml"},
                    "digest": {"max_items": 7},
                }
            )
        )
        monkeypatch.setenv("WORLDMODEL_LLM_MODEL", "from-env")

        config = Config.from_env_or_yaml(yaml_path=yaml_file)

        assert config.llm.model == "from-env"
        assert config.digest.max_items == 7

    def test_missing_yaml_uses_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WORLDMODEL_STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("WORLDMODEL_SQLITE_PATH", "/tmp/other.db")

        config = Config.from_env_or_yaml(yaml_path=tmp_path / "missing.yaml")

        assert config.storage.sqlite_path == "/tmp/other.db"
