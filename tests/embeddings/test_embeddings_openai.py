"""
Tests for OpenAI embedder.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from worldmodel.core.embeddings.openai import OpenAIEmbedder
from worldmodel.utils.exceptions import EmbeddingError, ValidationError


@pytest.fixture
def openai_embedder():
    """Create OpenAI embedder for testing."""
    return OpenAIEmbedder(api_key="test-key", model="text-embedding-3-small", timeout=120.0)


@pytest.mark.unit
@pytest.mark.asyncio
class TestOpenAIEmbedder:
    """Test OpenAI embedder."""

    async def test_initialization(self, openai_embedder):
        """Test embedder initialization."""
        assert openai_embedder.model == "text-embedding-3-small"
        assert openai_embedder.client is not None

    async def test_embed(self, openai_embedder):
        """Test embedding generation."""
        mock_response = MagicMock()
        mock_response.data = [MagicMock(embedding=[0.1, 0.2, 0.3])]

        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = mock_response

            result = await openai_embedder.embed("test text")

            assert result == [0.1, 0.2, 0.3]
            mock_create.assert_called_once_with(model="text-embedding-3-small", input="test text")

    async def test_embed_requests_configured_dimensions(self):
        """text-embedding-3 models are asked for the configured dimensionality."""
        embedder = OpenAIEmbedder(api_key="test-key", dimensions=256)
        mock_response = MagicMock()
        mock_response.data = [MagicMock(embedding=[0.0] * 256)]

        with patch.object(
            embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = mock_response

            await embedder.embed("text")

            assert mock_create.call_args.kwargs["dimensions"] == 256

    async def test_embed_empty_text_raises(self, openai_embedder):
        with pytest.raises(ValidationError):
            await openai_embedder.embed("   ")

    async def test_embed_api_error_wrapped(self, openai_embedder):
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.side_effect = RuntimeError("connection reset {with braces}")

            with pytest.raises(EmbeddingError):
                await openai_embedder.embed("text")

    async def test_embed_empty_response_raises(self, openai_embedder):
        mock_response = MagicMock()
        mock_response.data = []

        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = mock_response

            with pytest.raises(EmbeddingError):
                await openai_embedder.embed("text")
