"""
OpenAI embedder using official SDK.
"""

from openai import AsyncOpenAI

from worldmodel.core.embeddings.base import Embedder
from worldmodel.utils.exceptions import EmbeddingError, ValidationError
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for generating text embeddings.

    text-embedding-3 models accept a `dimensions` parameter, which is how the
    store keeps a single fixed dimensionality for every vector.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int | None = None,
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name
            dimensions: Optional output dimensionality (text-embedding-3 only)
            organization: Optional organization ID
            base_url: Optional custom base URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.dimensions = dimensions

        self.client = AsyncOpenAI(
            api_key=api_key, organization=organization, base_url=base_url, timeout=timeout
        )

    def _request_params(self, **kwargs) -> dict:
        params = dict(kwargs)
        if self.dimensions and self.model.startswith("text-embedding-3"):
            params.setdefault("dimensions", self.dimensions)
        return params

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using OpenAI.

        Raises:
            ValidationError: If text is empty
            EmbeddingError: If OpenAI API call fails
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(
                model=self.model, input=text, **self._request_params(**kwargs)
            )

            if not response.data:
                raise EmbeddingError("OpenAI returned empty embedding response")

            return response.data[0].embedding
        except ValidationError:
            raise
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(
                "OpenAI embedding error",
                extra={"model": self.model, "error": str(e), "error_type": type(e).__name__},
            )
            raise EmbeddingError(f"OpenAI embedding error: {e}") from e

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
