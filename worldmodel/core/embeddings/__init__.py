"""
Embedder abstraction layer for text embeddings.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
"""
from worldmodel.core.embeddings.base import Embedder
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.embeddings.ollama import OllamaEmbedder
from worldmodel.core.embeddings.openai import OpenAIEmbedder

__all__ = [
    "Embedder",
    "EmbeddingGateway",
    "OllamaEmbedder",
    "OpenAIEmbedder",
]
