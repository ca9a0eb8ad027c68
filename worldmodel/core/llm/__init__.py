"""
LLM provider abstraction layer for text generation.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
"""
from worldmodel.core.llm.base import Completion, LLMProvider
from worldmodel.core.llm.ollama import OllamaLLM
from worldmodel.core.llm.openai import OpenAILLM

__all__ = [
    "Completion",
    "LLMProvider",
    "OllamaLLM",
    "OpenAILLM",
]
