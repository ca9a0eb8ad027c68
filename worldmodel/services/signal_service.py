"""
Signal service - capture and triage of signals.

Signals are append-only observations. After creation only the priorities,
the status and the review timestamp change.
"""

from datetime import datetime

from worldmodel.config import Config
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.store.base import SynthesisStore
from worldmodel.models.canon import AlignmentScore
from worldmodel.models.signal import Signal, SignalPriority, SignalSource, SignalStatus
from worldmodel.services.alignment import AlignmentScorer
from worldmodel.utils.exceptions import NotFoundError, ValidationError
from worldmodel.utils.id_generator import generate_signal_id
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class SignalService:
    """
    Signal store operations.

    Features:
    - Append with best-effort embedding
    - Human priority with atomic review timestamp
    - Lifecycle status (open / resolved / dismissed)
    - Unprocessed set (not yet folded into any commit)
    - Alignment of a signal against the workspace canon
    """

    def __init__(
        self,
        store: SynthesisStore,
        gateway: EmbeddingGateway,
        config: Config,
        scorer: AlignmentScorer | None = None,
    ):
        """
        Initialize signal service.

        Args:
            store: Synthesis store
            gateway: Embedding gateway
            config: Configuration object
            scorer: Optional alignment scorer (built from config if not provided)
        """
        self.store = store
        self.gateway = gateway
        self.config = config
        self.scorer = scorer or AlignmentScorer(config.alignment)

    async def append(
        self,
        workspace_id: str,
        user_id: str,
        content: str,
        conversation_id: str | None = None,
        message_id: str | None = None,
        source: SignalSource = SignalSource.WEB,
        ai_priority: SignalPriority | None = None,
    ) -> Signal:
        """
        Persist a new signal.

        Args:
            workspace_id: Owning workspace
            user_id: Author
            content: Observation text (trimmed, required)
            conversation_id: Source conversation, given together with message_id
            message_id: Source message, given together with conversation_id
            source: Capture source
            ai_priority: Optional initial AI priority

        Returns:
            The persisted signal

        Raises:
            ValidationError: If content is empty or the source reference is partial
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Signal content cannot be empty")
        if (conversation_id is None) != (message_id is None):
            raise ValidationError(
                "conversation_id and message_id must be provided together",
                context={"conversation_id": conversation_id, "message_id": message_id},
            )

        signal_id = generate_signal_id()
        embedding = await self.gateway.try_embed(
            content,
            max_chars=self.config.embedder.query_max_chars,
            signal_id=signal_id,
            workspace_id=workspace_id,
        )

        signal = Signal(
            id=signal_id,
            workspace_id=workspace_id,
            user_id=user_id,
            conversation_id=conversation_id,
            message_id=message_id,
            content=content,
            embedding=embedding,
            ai_priority=ai_priority,
            source=source,
        )
        await self.store.insert_signal(signal)

        logger.info(
            f"Signal captured: {signal.id}",
            extra={"signal_id": signal.id, "workspace_id": workspace_id, "source": source.value},
        )
        return signal

    async def get_signal(self, signal_id: str) -> Signal:
        """
        Retrieve a signal by ID.

        Raises:
            NotFoundError: If the signal doesn't exist
        """
        signal = await self.store.get_signal(signal_id)
        if signal is None:
            raise NotFoundError(f"Signal not found: {signal_id}", context={"signal_id": signal_id})
        return signal

    async def set_priority(self, signal_id: str, priority: SignalPriority | None) -> Signal:
        """
        Set or clear the human priority.

        The review timestamp is stamped when a priority is set and cleared
        when it is removed, in the same write.

        Raises:
            NotFoundError: If the signal doesn't exist
        """
        reviewed_at = datetime.now() if priority is not None else None
        signal = await self.store.update_signal_priority(signal_id, priority, reviewed_at)
        if signal is None:
            raise NotFoundError(f"Signal not found: {signal_id}", context={"signal_id": signal_id})
        return signal

    async def set_status(self, signal_id: str, status: SignalStatus) -> Signal:
        """
        Set the lifecycle status. Dismissed signals are never synthesized.

        Raises:
            NotFoundError: If the signal doesn't exist
        """
        signal = await self.store.update_signal_status(signal_id, status)
        if signal is None:
            raise NotFoundError(f"Signal not found: {signal_id}", context={"signal_id": signal_id})
        return signal

    async def list_signals(
        self,
        workspace_id: str,
        since: datetime | None = None,
        include_dismissed: bool = True,
        limit: int | None = None,
    ) -> list[Signal]:
        """List signals newest first."""
        return await self.store.list_signals(
            workspace_id, since=since, include_dismissed=include_dismissed, limit=limit
        )

    async def list_unprocessed(self, workspace_id: str) -> list[Signal]:
        """Non-dismissed signals not yet linked to any commit."""
        return await self.store.list_unprocessed_signals(workspace_id)

    async def count_unprocessed(self, workspace_id: str) -> int:
        return await self.store.count_unprocessed_signals(workspace_id)

    async def score_alignment(self, signal_id: str) -> AlignmentScore:
        """
        Alignment and drift of a signal against the latest canon.

        Without a canon the neutral score is returned. A signal stored
        without an embedding is embedded on the fly.

        Raises:
            NotFoundError: If the signal doesn't exist
            EmbeddingError: If the signal has no embedding and embedding fails
        """
        signal = await self.get_signal(signal_id)
        canon = await self.store.get_latest_canon(signal.workspace_id)
        reference = canon.embedding if canon else None

        if reference is None:
            neutral = self.config.alignment.neutral
            return AlignmentScore(alignment=neutral, drift=1.0 - neutral, has_reference=False)

        embedding = signal.embedding or await self.gateway.embed(
            signal.content, max_chars=self.config.embedder.query_max_chars
        )
        return self.scorer.evaluate(embedding, reference)
