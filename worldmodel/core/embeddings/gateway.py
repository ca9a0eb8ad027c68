"""
Embedding gateway.

Wraps an Embedder with the fixed character budget and dimensionality every
stored vector must respect. Stateless apart from its configuration.
"""

from worldmodel.core.embeddings.base import Embedder
from worldmodel.utils.exceptions import EmbeddingError, ValidationError
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class EmbeddingGateway:
    """
    Truncating, dimension-checking front for the embedding model.

    `embed` is the strict path: any failure raises EmbeddingError.
    `try_embed` is the best-effort path used when the caller already has
    another way to succeed; failures are logged and return None.
    """

    def __init__(self, embedder: Embedder, max_chars: int = 8000, dimension: int | None = None):
        self.embedder = embedder
        self.max_chars = max_chars
        self.dimension = dimension

    async def embed(self, text: str, max_chars: int | None = None) -> list[float]:
        """
        Truncate text to the character budget and embed it.

        Args:
            text: Text to embed
            max_chars: Budget override (defaults to the gateway budget)

        Returns:
            Embedding vector

        Raises:
            EmbeddingError: On empty input, provider failure or dimension mismatch
        """
        budget = max_chars if max_chars is not None else self.max_chars
        truncated = (text or "")[:budget]
        if not truncated.strip():
            raise EmbeddingError("Cannot embed empty text")

        try:
            vector = await self.embedder.embed(truncated)
        except ValidationError as e:
            raise EmbeddingError(f"Embedding input rejected: {e}") from e

        if self.dimension is not None and len(vector) != self.dimension:
            raise EmbeddingError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {len(vector)}",
                context={"expected": self.dimension, "actual": len(vector)},
            )
        return vector

    async def try_embed(
        self, text: str | None, max_chars: int | None = None, **log_context
    ) -> list[float] | None:
        """
        Best-effort embedding. Returns None (and logs a warning) on failure.
        """
        if not text or not text.strip():
            return None
        try:
            return await self.embed(text, max_chars=max_chars)
        except EmbeddingError as e:
            logger.warning(
                "Embedding failed, storing null embedding",
                extra={**log_context, "error": str(e)},
            )
            return None
