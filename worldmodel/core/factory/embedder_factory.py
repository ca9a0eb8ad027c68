"""
Factory for creating embedder providers and the embedding gateway.
"""

from worldmodel.config import EmbedderConfig
from worldmodel.core.embeddings.base import Embedder
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.embeddings.ollama import OllamaEmbedder
from worldmodel.core.embeddings.openai import OpenAIEmbedder
from worldmodel.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig) -> Embedder:
        """
        Create embedder from configuration.

        Args:
            config: Embedder configuration

        Returns:
            Embedder instance

        Raises:
            ConfigurationError: If provider is not supported or misconfigured
        """
        if config.provider == "ollama":
            return OllamaEmbedder(
                host=config.base_url or "http://localhost:11434",
                model=config.model,
                timeout=config.timeout,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            return OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                dimensions=config.dimension,
                base_url=config.base_url,
                timeout=config.timeout,
            )
        else:
            raise ConfigurationError(f"Unsupported embedder provider: {config.provider}")

    @staticmethod
    def create_gateway(
        config: EmbedderConfig, embedder: Embedder | None = None
    ) -> EmbeddingGateway:
        """
        Wrap an embedder (created from config when not given) in the gateway.

        Args:
            config: Embedder configuration (budget and dimension)
            embedder: Optional pre-built embedder

        Returns:
            EmbeddingGateway instance
        """
        return EmbeddingGateway(
            embedder=embedder or EmbedderFactory.create(config),
            max_chars=config.max_chars,
            dimension=config.dimension,
        )
