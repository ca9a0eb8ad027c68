"""
Tests for the SQLite synthesis store.

Runs against a temporary database file.
"""

from datetime import datetime, timedelta

import pytest

from worldmodel.core.store.base import CommitBatch, DocumentMutation
from worldmodel.models.canon import Canon, Digest, DigestItem
from worldmodel.models.commit import ChangeType, Commit, SynthesisTrigger
from worldmodel.models.document import Document, DocumentScope
from worldmodel.models.signal import Signal, SignalPriority, SignalStatus
from worldmodel.utils.exceptions import StoreError, SynthesisConflictError

BASE_TIME = datetime(2026, 3, 2, 9, 0, 0)


def make_signal(signal_id: str, minutes: int = 0, workspace_id: str = "ws_1", **kwargs) -> Signal:
    return Signal(
        id=signal_id,
        workspace_id=workspace_id,
        user_id="user_1",
        content=kwargs.pop("content", f"observation {signal_id}"),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )


def make_document(document_id: str, scope=DocumentScope.WORKSPACE, **kwargs) -> Document:
    return Document(
        id=document_id,
        workspace_id=kwargs.pop("workspace_id", "ws_1"),
        scope=scope,
        title=kwargs.pop("title", f"Title {document_id}"),
        content=kwargs.pop("content", f"Content {document_id}"),
        **kwargs,
    )


def make_commit(commit_id: str, parent_id: str | None, minutes: int = 0) -> Commit:
    return Commit(
        id=commit_id,
        workspace_id="ws_1",
        parent_id=parent_id,
        summary=f"commit {commit_id}",
        trigger=SynthesisTrigger.MANUAL,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.mark.integration
@pytest.mark.asyncio
class TestSignalStorage:
    """Signal persistence and processed-set queries."""

    async def test_insert_and_get(self, store):
        signal = make_signal(
            "sig_1", embedding=[0.1, 0.2], ai_priority=SignalPriority.HIGH, message_id="m1",
            conversation_id="c1",
        )
        await store.insert_signal(signal)

        loaded = await store.get_signal("sig_1")

        assert loaded == signal

    async def test_get_missing(self, store):
        assert await store.get_signal("sig_missing") is None

    async def test_duplicate_id_raises_store_error(self, store):
        await store.insert_signal(make_signal("sig_1"))

        with pytest.raises(StoreError):
            await store.insert_signal(make_signal("sig_1"))

    async def test_list_newest_first_with_filters(self, store):
        await store.insert_signal(make_signal("sig_1", minutes=0))
        await store.insert_signal(make_signal("sig_2", minutes=10, status=SignalStatus.DISMISSED))
        await store.insert_signal(make_signal("sig_3", minutes=20))
        await store.insert_signal(make_signal("sig_other", workspace_id="ws_2"))

        all_signals = await store.list_signals("ws_1")
        assert [s.id for s in all_signals] == ["sig_3", "sig_2", "sig_1"]

        recent = await store.list_signals(
            "ws_1", since=BASE_TIME + timedelta(minutes=5), include_dismissed=False
        )
        assert [s.id for s in recent] == ["sig_3"]

        assert [s.id for s in await store.list_signals("ws_1", limit=1)] == ["sig_3"]
        assert await store.count_signals("ws_1") == 3
        assert await store.count_signals("ws_1", include_dismissed=False) == 2

    async def test_update_priority_and_status(self, store):
        await store.insert_signal(make_signal("sig_1"))
        reviewed = BASE_TIME + timedelta(hours=1)

        updated = await store.update_signal_priority("sig_1", SignalPriority.CRITICAL, reviewed)
        assert updated.human_priority == SignalPriority.CRITICAL
        assert updated.reviewed_at == reviewed

        cleared = await store.update_signal_priority("sig_1", None, None)
        assert cleared.human_priority is None
        assert cleared.reviewed_at is None

        resolved = await store.update_signal_status("sig_1", SignalStatus.RESOLVED)
        assert resolved.status == SignalStatus.RESOLVED

    async def test_update_missing_signal_returns_none(self, store):
        assert await store.update_signal_priority("sig_x", SignalPriority.LOW, None) is None
        assert await store.update_signal_status("sig_x", SignalStatus.DISMISSED) is None

    async def test_unprocessed_excludes_linked_and_dismissed(self, store):
        await store.insert_signal(make_signal("sig_1", minutes=0))
        await store.insert_signal(make_signal("sig_2", minutes=1))
        await store.insert_signal(make_signal("sig_3", minutes=2, status=SignalStatus.DISMISSED))
        await store.insert_signal(make_signal("sig_4", minutes=3))

        await store.apply_commit(
            CommitBatch(commit=make_commit("cmt_1", None), signal_ids=["sig_2"])
        )

        pending = await store.list_unprocessed_signals("ws_1")
        assert [s.id for s in pending] == ["sig_1", "sig_4"]
        assert await store.count_unprocessed_signals("ws_1") == 2


@pytest.mark.integration
@pytest.mark.asyncio
class TestDocumentStorage:
    """Document persistence, chunk replacement and search."""

    async def test_save_and_list_by_scope_and_owner(self, store):
        await store.save_document(
            make_document("doc_p1", scope=DocumentScope.PERSONAL, user_id="user_1")
        )
        await store.save_document(
            make_document("doc_p2", scope=DocumentScope.PERSONAL, user_id="user_2")
        )
        await store.save_document(make_document("doc_w1"))

        personal = await store.list_documents("ws_1", DocumentScope.PERSONAL, "user_1")
        shared = await store.list_documents("ws_1", DocumentScope.WORKSPACE)

        assert [d.id for d in personal] == ["doc_p1"]
        assert [d.id for d in shared] == ["doc_w1"]

    async def test_chunks_replaced_and_excluded_from_listing(self, store):
        parent = make_document("doc_1")
        chunks = [
            make_document(f"doc_1_chunk_{i}", parent_document_id="doc_1", chunk_index=i)
            for i in range(3)
        ]
        await store.save_document(parent, chunks)

        assert [d.id for d in await store.list_documents("ws_1", DocumentScope.WORKSPACE)] == [
            "doc_1"
        ]
        assert [c.chunk_index for c in await store.list_chunks("doc_1")] == [0, 1, 2]

        await store.save_document(parent, chunks[:1])
        assert len(await store.list_chunks("doc_1")) == 1

        # None leaves existing chunks alone
        await store.save_document(parent.model_copy(update={"title": "Renamed"}), None)
        assert len(await store.list_chunks("doc_1")) == 1
        assert (await store.get_document("doc_1")).title == "Renamed"

    async def test_delete_removes_chunks(self, store):
        parent = make_document("doc_1")
        chunk = make_document("doc_1_chunk_0", parent_document_id="doc_1", chunk_index=0)
        await store.save_document(parent, [chunk])

        assert await store.delete_document("doc_1") is True
        assert await store.get_document("doc_1") is None
        assert await store.get_document("doc_1_chunk_0") is None
        assert await store.delete_document("doc_1") is False

    async def test_search_orders_by_similarity(self, store):
        await store.save_document(make_document("doc_a", embedding=[1.0, 0.0]))
        await store.save_document(make_document("doc_b", embedding=[0.6, 0.8]))
        await store.save_document(make_document("doc_c", embedding=[0.0, 1.0]))
        await store.save_document(make_document("doc_none"))

        matches = await store.search_documents(
            "ws_1", [1.0, 0.0], DocumentScope.WORKSPACE, limit=2
        )

        assert [m.document.id for m in matches] == ["doc_a", "doc_b"]
        assert matches[0].similarity == pytest.approx(1.0)
        assert matches[1].similarity == pytest.approx(0.6)

    async def test_search_includes_chunks_and_respects_owner(self, store):
        await store.save_document(
            make_document("doc_p", scope=DocumentScope.PERSONAL, user_id="user_1"),
            [
                make_document(
                    "doc_p_chunk_0",
                    scope=DocumentScope.PERSONAL,
                    user_id="user_1",
                    parent_document_id="doc_p",
                    chunk_index=0,
                    embedding=[1.0, 0.0],
                )
            ],
        )

        mine = await store.search_documents("ws_1", [1.0, 0.0], DocumentScope.PERSONAL, "user_1")
        theirs = await store.search_documents(
            "ws_1", [1.0, 0.0], DocumentScope.PERSONAL, "user_2"
        )

        assert [m.document.id for m in mine] == ["doc_p_chunk_0"]
        assert theirs == []

    async def test_search_skips_mismatched_dimension(self, store):
        await store.save_document(make_document("doc_a", embedding=[1.0, 0.0, 0.0]))
        await store.save_document(make_document("doc_b", embedding=[1.0, 0.0]))

        matches = await store.search_documents("ws_1", [1.0, 0.0], DocumentScope.WORKSPACE)

        assert [m.document.id for m in matches] == ["doc_b"]

    async def test_search_zero_vector_scores_zero(self, store):
        await store.save_document(make_document("doc_zero", embedding=[0.0, 0.0]))

        matches = await store.search_documents("ws_1", [1.0, 0.0], DocumentScope.WORKSPACE)

        assert matches[0].similarity == 0.0


@pytest.mark.integration
@pytest.mark.asyncio
class TestCommitStorage:
    """Transactional commit writes."""

    async def test_apply_commit_writes_everything(self, store):
        await store.insert_signal(make_signal("sig_1"))
        document = make_document("doc_s", scope=DocumentScope.SYNTHESIS)

        await store.apply_commit(
            CommitBatch(
                commit=make_commit("cmt_1", None),
                mutations=[DocumentMutation(change_type=ChangeType.CREATED, document=document)],
                signal_ids=["sig_1"],
                priority_updates={"sig_1": SignalPriority.HIGH},
            )
        )

        assert (await store.get_head_commit("ws_1")).id == "cmt_1"
        assert await store.get_document("doc_s") is not None
        assert await store.list_commit_signal_ids("cmt_1") == ["sig_1"]
        assert (await store.get_signal("sig_1")).ai_priority == SignalPriority.HIGH

        versions = await store.list_commit_versions("cmt_1")
        assert [(v.document_id, v.change_type) for v in versions] == [
            ("doc_s", ChangeType.CREATED)
        ]

        summaries = await store.list_commits("ws_1")
        assert summaries[0].commit.id == "cmt_1"
        assert summaries[0].linked_signals == 1

    async def test_stale_parent_rejected(self, store):
        await store.apply_commit(CommitBatch(commit=make_commit("cmt_1", None)))

        document = make_document("doc_s", scope=DocumentScope.SYNTHESIS)
        with pytest.raises(SynthesisConflictError):
            await store.apply_commit(
                CommitBatch(
                    commit=make_commit("cmt_2", None, minutes=1),
                    mutations=[
                        DocumentMutation(change_type=ChangeType.CREATED, document=document)
                    ],
                )
            )

        assert await store.get_commit("cmt_2") is None
        assert await store.get_document("doc_s") is None

    async def test_head_follows_insertion_when_clock_steps_back(self, store):
        await store.apply_commit(CommitBatch(commit=make_commit("cmt_1", None, minutes=60)))
        await store.apply_commit(CommitBatch(commit=make_commit("cmt_2", "cmt_1", minutes=30)))

        assert (await store.get_head_commit("ws_1")).id == "cmt_2"
        await store.apply_commit(CommitBatch(commit=make_commit("cmt_3", "cmt_2", minutes=0)))

        assert (await store.get_head_commit("ws_1")).id == "cmt_3"
        summaries = await store.list_commits("ws_1")
        assert [s.commit.id for s in summaries] == ["cmt_3", "cmt_2", "cmt_1"]

    async def test_signal_linked_twice_rejected_atomically(self, store):
        await store.insert_signal(make_signal("sig_1"))
        await store.apply_commit(
            CommitBatch(commit=make_commit("cmt_1", None), signal_ids=["sig_1"])
        )

        document = make_document("doc_s", scope=DocumentScope.SYNTHESIS)
        with pytest.raises(SynthesisConflictError):
            await store.apply_commit(
                CommitBatch(
                    commit=make_commit("cmt_2", "cmt_1", minutes=1),
                    mutations=[
                        DocumentMutation(change_type=ChangeType.CREATED, document=document)
                    ],
                    signal_ids=["sig_1"],
                )
            )

        assert (await store.get_head_commit("ws_1")).id == "cmt_1"
        assert await store.get_document("doc_s") is None

    async def test_unknown_signal_link_is_store_error(self, store):
        with pytest.raises(StoreError):
            await store.apply_commit(
                CommitBatch(commit=make_commit("cmt_1", None), signal_ids=["sig_missing"])
            )
        assert await store.get_head_commit("ws_1") is None

    async def test_delete_mutation_keeps_versions(self, store):
        document = make_document("doc_s", scope=DocumentScope.SYNTHESIS)
        await store.apply_commit(
            CommitBatch(
                commit=make_commit("cmt_1", None),
                mutations=[DocumentMutation(change_type=ChangeType.CREATED, document=document)],
            )
        )
        await store.apply_commit(
            CommitBatch(
                commit=make_commit("cmt_2", "cmt_1", minutes=1),
                mutations=[DocumentMutation(change_type=ChangeType.DELETED, document=document)],
            )
        )

        assert await store.get_document("doc_s") is None
        history = await store.list_document_versions("doc_s")
        assert [v.change_type for v in history] == [ChangeType.CREATED, ChangeType.DELETED]

    async def test_commits_listed_newest_first(self, store):
        await store.apply_commit(CommitBatch(commit=make_commit("cmt_1", None, minutes=0)))
        await store.apply_commit(CommitBatch(commit=make_commit("cmt_2", "cmt_1", minutes=1)))

        assert [s.commit.id for s in await store.list_commits("ws_1")] == ["cmt_2", "cmt_1"]
        assert [s.commit.id for s in await store.list_commits("ws_1", limit=1)] == ["cmt_2"]


@pytest.mark.integration
@pytest.mark.asyncio
class TestCanonAndDigestStorage:
    async def test_latest_canon(self, store):
        await store.insert_canon(
            Canon(id="canon_1", workspace_id="ws_1", content="old", created_at=BASE_TIME)
        )
        await store.insert_canon(
            Canon(
                id="canon_2",
                workspace_id="ws_1",
                content="new",
                embedding=[0.5, 0.5],
                created_at=BASE_TIME + timedelta(days=1),
            )
        )

        canon = await store.get_latest_canon("ws_1")

        assert canon.id == "canon_2"
        assert canon.embedding == [0.5, 0.5]
        assert await store.get_latest_canon("ws_2") is None

    async def test_digest_round_trip(self, store):
        digest = Digest(
            id="dgst_1",
            workspace_id="ws_1",
            period_start=BASE_TIME,
            summary="Quiet week.",
            items=[DigestItem(rank=1, title="Rates up", detail="Vendor raised rates.",
                              priority=SignalPriority.HIGH)],
        )
        await store.insert_digest(digest)

        loaded = await store.list_digests("ws_1")

        assert len(loaded) == 1
        assert loaded[0].items == digest.items
        assert loaded[0].summary == "Quiet week."
