"""
Unified World Model - Integrates all components.

Brings together:
- LLM & Embedder providers (behind the embedding gateway)
- Synthesis store
- Signal, document, canon, retrieval, synthesis, history and digest services
"""

from worldmodel.config import Config
from worldmodel.core.chunking.chunker import DocumentChunker
from worldmodel.core.embeddings.base import Embedder
from worldmodel.core.factory import EmbedderFactory, LLMFactory, StoreFactory
from worldmodel.core.llm.base import LLMProvider
from worldmodel.core.store.base import SynthesisStore
from worldmodel.services.alignment import AlignmentScorer
from worldmodel.services.canon_service import CanonService
from worldmodel.services.commit_history import CommitHistory
from worldmodel.services.context_retriever import ContextRetriever
from worldmodel.services.digest import DigestGenerator
from worldmodel.services.document_service import DocumentService
from worldmodel.services.signal_service import SignalService
from worldmodel.services.synthesis_engine import SynthesisEngine
from worldmodel.utils.logger import get_logger, setup_logging_from_config

logger = get_logger(__name__)


class WorldModel:
    """
    Entry point wiring every service around one store and one set of providers.

    Usage:
        world = WorldModel.from_config(Config.from_env())
        await world.initialize()
        await world.signals.append("ws_1", "user_1", "Three customers cut budget")
        result = await world.synthesis.run_synthesis("ws_1")
        await world.close()
    """

    def __init__(
        self,
        llm: LLMProvider,
        embedder: Embedder,
        store: SynthesisStore,
        config: Config,
    ):
        """
        Initialize World Model.

        Args:
            llm: LLM provider for structured output
            embedder: Embedder for generating embeddings
            store: Synthesis store
            config: Configuration object
        """
        self.llm = llm
        self.embedder = embedder
        self.store = store
        self.config = config

        self.gateway = EmbedderFactory.create_gateway(config.embedder, embedder=embedder)
        self.chunker = DocumentChunker(config.chunking)
        self.scorer = AlignmentScorer(config.alignment)

        self.signals = SignalService(store, self.gateway, config, scorer=self.scorer)
        self.documents = DocumentService(store, self.gateway, config, chunker=self.chunker)
        self.canon = CanonService(store, self.gateway, config)
        self.retriever = ContextRetriever(store, self.gateway, config)
        self.synthesis = SynthesisEngine(llm, store, self.gateway, config, chunker=self.chunker)
        self.history = CommitHistory(store)
        self.digests = DigestGenerator(llm, store, config, scorer=self.scorer)

    @classmethod
    def from_config(cls, config: Config) -> "WorldModel":
        """Configure logging, then build providers and store from configuration."""
        setup_logging_from_config(config.logging)
        return cls(
            llm=LLMFactory.create(config.llm),
            embedder=EmbedderFactory.create(config.embedder),
            store=StoreFactory.create(config.storage),
            config=config,
        )

    async def initialize(self) -> None:
        """Initialize the store."""
        logger.info("Initializing World Model")
        await self.store.initialize()
        logger.info("World Model ready")

    async def close(self) -> None:
        """Close all connections."""
        logger.info("Shutting down World Model")

        await self.store.close()
        await self.llm.close()
        await self.embedder.close()

        logger.info("World Model shutdown complete")
