"""
Shared test fixtures for all test modules.

Provides deterministic stand-ins for the two black boxes:
- FakeEmbedder: keyword-count vectors, optionally failing
- ScriptedLLM: returns queued structured results and records every call

Storage tests run against SQLiteSynthesisStore on a temporary file.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from pydantic import BaseModel

from worldmodel.config import Config, EmbedderConfig
from worldmodel.core.chunking import DocumentChunker
from worldmodel.core.embeddings.base import Embedder
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.llm.base import Completion, LLMProvider
from worldmodel.core.store.sqlite_store import SQLiteSynthesisStore
from worldmodel.services import (
    CanonService,
    CommitHistory,
    ContextRetriever,
    DigestGenerator,
    DocumentService,
    SignalService,
    SynthesisEngine,
)
from worldmodel.utils.exceptions import EmbeddingError

KEYWORDS = ["payment", "rate", "customer", "budget", "hiring", "roadmap", "security", "churn"]
FAKE_DIMENSION = len(KEYWORDS) + 1


def keyword_vector(text: str) -> list[float]:
    """One axis per keyword occurrence plus a constant bias axis."""
    lowered = text.lower()
    return [float(lowered.count(keyword)) for keyword in KEYWORDS] + [1.0]


def axis(name: str) -> list[float]:
    """Unit vector along one keyword axis (or "bias")."""
    vector = [0.0] * FAKE_DIMENSION
    index = len(KEYWORDS) if name == "bias" else KEYWORDS.index(name)
    vector[index] = 1.0
    return vector


class FakeEmbedder(Embedder):
    """Deterministic keyword embedder."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []

    async def embed(self, text: str, **kwargs) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding provider unavailable")
        return keyword_vector(text)

    async def close(self):
        pass


class ScriptedLLM(LLMProvider):
    """
    LLM double returning queued results in order.

    Queue entries may be pydantic models, dicts (validated against the
    requested response_format) or exceptions (raised).
    """

    def __init__(self, responses: list[Any] | None = None, input_tokens: int = 1000,
                 output_tokens: int = 500):
        self.responses = list(responses or [])
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def complete(
        self,
        prompt: str,
        response_format: type[BaseModel] | None = None,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
        **kwargs,
    ) -> Completion:
        self.calls.append(
            {
                "prompt": prompt,
                "system": system,
                "response_format": response_format,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        await self._before_response()

        if not self.responses:
            raise AssertionError("ScriptedLLM has no queued response")
        response = self.responses.pop(0)

        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict) and response_format is not None:
            response = response_format.model_validate(response)

        return Completion(
            result=response, input_tokens=self.input_tokens, output_tokens=self.output_tokens
        )

    async def _before_response(self) -> None:
        await asyncio.sleep(0)

    async def close(self):
        pass


class BarrierLLM(ScriptedLLM):
    """ScriptedLLM that holds every caller until `parties` calls have arrived."""

    def __init__(self, parties: int, responses: list[Any] | None = None):
        super().__init__(responses)
        self.parties = parties
        self._arrived = 0
        self._released = asyncio.Event()

    async def _before_response(self) -> None:
        self._arrived += 1
        if self._arrived >= self.parties:
            self._released.set()
        await self._released.wait()


# Configuration


@pytest.fixture
def config() -> Config:
    """Defaults with the fake embedder's dimension."""
    return Config(embedder=EmbedderConfig(dimension=FAKE_DIMENSION))


# Collaborators


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def gateway(embedder, config) -> EmbeddingGateway:
    return EmbeddingGateway(
        embedder, max_chars=config.embedder.max_chars, dimension=config.embedder.dimension
    )


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def chunker(config) -> DocumentChunker:
    return DocumentChunker(config.chunking)


@pytest.fixture
async def store(tmp_path) -> AsyncGenerator[SQLiteSynthesisStore, None]:
    """Fresh SQLite store per test."""
    sqlite_store = SQLiteSynthesisStore(db_path=str(tmp_path / "worldmodel.db"))
    await sqlite_store.initialize()
    try:
        yield sqlite_store
    finally:
        await sqlite_store.close()


# Services


@pytest.fixture
def signal_service(store, gateway, config) -> SignalService:
    return SignalService(store, gateway, config)


@pytest.fixture
def document_service(store, gateway, config, chunker) -> DocumentService:
    return DocumentService(store, gateway, config, chunker=chunker)


@pytest.fixture
def canon_service(store, gateway, config) -> CanonService:
    return CanonService(store, gateway, config)


@pytest.fixture
def retriever(store, gateway, config) -> ContextRetriever:
    return ContextRetriever(store, gateway, config)


@pytest.fixture
def engine(llm, store, gateway, config, chunker) -> SynthesisEngine:
    return SynthesisEngine(llm, store, gateway, config, chunker=chunker)


@pytest.fixture
def history(store) -> CommitHistory:
    return CommitHistory(store)


@pytest.fixture
def digest_generator(llm, store, config) -> DigestGenerator:
    return DigestGenerator(llm, store, config)
