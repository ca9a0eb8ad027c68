"""
Tests for SignalService and CanonService.
"""

import pytest

from tests.conftest import FakeEmbedder, keyword_vector
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.models.signal import SignalPriority, SignalSource, SignalStatus
from worldmodel.services.canon_service import CanonService
from worldmodel.services.signal_service import SignalService
from worldmodel.utils.exceptions import EmbeddingError, NotFoundError, ValidationError


@pytest.mark.integration
@pytest.mark.asyncio
class TestSignalAppend:
    async def test_append_embeds_trimmed_content(self, signal_service, store, embedder):
        signal = await signal_service.append(
            "ws_1",
            "user_1",
            "  Vendor raised payment rate by 12%  ",
            conversation_id="conv_1",
            message_id="msg_1",
            source=SignalSource.MCP,
        )

        assert signal.id.startswith("sig_")
        assert signal.content == "Vendor raised payment rate by 12%"
        assert signal.embedding == keyword_vector(signal.content)
        assert signal.status == SignalStatus.OPEN
        assert embedder.calls == ["Vendor raised payment rate by 12%"]
        assert await store.get_signal(signal.id) == signal

    async def test_append_query_budget(self, signal_service, embedder, config):
        long_text = "x" * (config.embedder.query_max_chars + 500)

        signal = await signal_service.append("ws_1", "user_1", long_text)

        assert len(embedder.calls[0]) == config.embedder.query_max_chars
        assert signal.content == long_text

    async def test_append_survives_embedding_failure(self, store, config):
        gateway = EmbeddingGateway(FakeEmbedder(fail=True), dimension=config.embedder.dimension)
        service = SignalService(store, gateway, config)

        signal = await service.append("ws_1", "user_1", "Budget cut announced")

        assert signal.embedding is None
        assert (await store.get_signal(signal.id)).embedding is None

    async def test_empty_content_rejected(self, signal_service):
        with pytest.raises(ValidationError):
            await signal_service.append("ws_1", "user_1", "   ")

    async def test_partial_source_reference_rejected(self, signal_service):
        with pytest.raises(ValidationError):
            await signal_service.append("ws_1", "user_1", "text", conversation_id="conv_1")


@pytest.mark.integration
@pytest.mark.asyncio
class TestSignalTriage:
    async def test_set_and_clear_priority(self, signal_service):
        signal = await signal_service.append("ws_1", "user_1", "Churn spiking")

        reviewed = await signal_service.set_priority(signal.id, SignalPriority.HIGH)
        assert reviewed.human_priority == SignalPriority.HIGH
        assert reviewed.reviewed_at is not None
        assert reviewed.effective_priority == SignalPriority.HIGH

        cleared = await signal_service.set_priority(signal.id, None)
        assert cleared.human_priority is None
        assert cleared.reviewed_at is None

    async def test_status_change(self, signal_service):
        signal = await signal_service.append("ws_1", "user_1", "Old news")

        dismissed = await signal_service.set_status(signal.id, SignalStatus.DISMISSED)

        assert dismissed.is_dismissed()
        assert await signal_service.list_unprocessed("ws_1") == []
        assert await signal_service.count_unprocessed("ws_1") == 0

    async def test_missing_signal(self, signal_service):
        with pytest.raises(NotFoundError):
            await signal_service.get_signal("sig_missing")
        with pytest.raises(NotFoundError):
            await signal_service.set_priority("sig_missing", SignalPriority.LOW)
        with pytest.raises(NotFoundError):
            await signal_service.set_status("sig_missing", SignalStatus.RESOLVED)

    async def test_list_filters(self, signal_service):
        first = await signal_service.append("ws_1", "user_1", "first")
        second = await signal_service.append("ws_1", "user_1", "second")
        await signal_service.set_status(first.id, SignalStatus.DISMISSED)

        visible = await signal_service.list_signals("ws_1", include_dismissed=False)

        assert [s.id for s in visible] == [second.id]


@pytest.mark.integration
@pytest.mark.asyncio
class TestAlignment:
    async def test_neutral_without_canon(self, signal_service):
        signal = await signal_service.append("ws_1", "user_1", "Hiring freeze")

        score = await signal_service.score_alignment(signal.id)

        assert score.has_reference is False
        assert score.alignment == 0.5
        assert score.drift == 0.5

    async def test_aligned_signal_scores_higher(self, signal_service, canon_service):
        await canon_service.set_canon("ws_1", "Grow customer budget and reduce churn")
        on_goal = await signal_service.append("ws_1", "user_1", "customer churn dropped")
        off_goal = await signal_service.append("ws_1", "user_1", "security roadmap hiring")

        aligned = await signal_service.score_alignment(on_goal.id)
        drifting = await signal_service.score_alignment(off_goal.id)

        assert aligned.has_reference is True
        assert aligned.alignment > drifting.alignment
        assert aligned.drift < drifting.drift

    async def test_unembedded_signal_embedded_on_demand(self, store, config, canon_service):
        failing = SignalService(
            store, EmbeddingGateway(FakeEmbedder(fail=True), dimension=9), config
        )
        signal = await failing.append("ws_1", "user_1", "customer churn")
        await canon_service.set_canon("ws_1", "Reduce churn")

        working = SignalService(store, EmbeddingGateway(FakeEmbedder(), dimension=9), config)
        score = await working.score_alignment(signal.id)

        assert score.has_reference is True
        with pytest.raises(EmbeddingError):
            await failing.score_alignment(signal.id)


@pytest.mark.integration
@pytest.mark.asyncio
class TestCanonService:
    async def test_latest_revision_wins(self, canon_service):
        await canon_service.set_canon("ws_1", "Goal one")
        latest = await canon_service.set_canon("ws_1", "  Goal two  ")

        canon = await canon_service.get_canon("ws_1")

        assert canon.id == latest.id
        assert canon.content == "Goal two"
        assert canon.embedding is not None

    async def test_empty_canon_rejected(self, canon_service):
        with pytest.raises(ValidationError):
            await canon_service.set_canon("ws_1", "")

    async def test_embedding_required(self, store, config):
        service = CanonService(store, EmbeddingGateway(FakeEmbedder(fail=True)), config)

        with pytest.raises(EmbeddingError):
            await service.set_canon("ws_1", "Goals")
        assert await service.get_canon("ws_1") is None
