"""
Factory modules for creating synthesis engine components.

Provides modular factories for LLM, Embedder and Store.
"""

from worldmodel.core.factory.embedder_factory import EmbedderFactory
from worldmodel.core.factory.llm_factory import LLMFactory
from worldmodel.core.factory.store_factory import StoreFactory

__all__ = [
    "LLMFactory",
    "EmbedderFactory",
    "StoreFactory",
]
