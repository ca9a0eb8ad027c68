"""
SQLite synthesis store implementation.

Uses aiosqlite with a single connection. Every operation holds the
connection lock, so statements of concurrent callers never interleave inside
another caller's transaction. Embeddings are stored as JSON arrays and
nearest-neighbour search is an exact cosine scan computed with numpy.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import aiosqlite
import numpy as np

from worldmodel.core.store.base import CommitBatch, SynthesisStore
from worldmodel.models.canon import Canon, Digest, DigestItem
from worldmodel.models.commit import (
    ChangeType,
    Commit,
    CommitSummary,
    DocumentVersion,
    SynthesisTrigger,
)
from worldmodel.models.document import Document, DocumentMatch, DocumentScope
from worldmodel.models.signal import Signal, SignalPriority, SignalSource, SignalStatus
from worldmodel.utils.exceptions import StoreError, SynthesisConflictError
from worldmodel.utils.id_generator import generate_version_id
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS signals (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        conversation_id TEXT,
        message_id TEXT,
        content TEXT NOT NULL,
        embedding TEXT,
        ai_priority TEXT,
        human_priority TEXT,
        status TEXT NOT NULL DEFAULT 'open',
        source TEXT NOT NULL DEFAULT 'web',
        reviewed_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        scope TEXT NOT NULL,
        user_id TEXT,
        title TEXT NOT NULL,
        content TEXT,
        file_url TEXT,
        file_name TEXT,
        parent_document_id TEXT,
        chunk_index INTEGER,
        embedding TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (parent_document_id) REFERENCES documents(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS commits (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        parent_id TEXT,
        summary TEXT NOT NULL,
        trigger_type TEXT NOT NULL,
        signal_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (parent_id) REFERENCES commits(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS commit_signals (
        commit_id TEXT NOT NULL,
        signal_id TEXT NOT NULL UNIQUE,
        FOREIGN KEY (commit_id) REFERENCES commits(id),
        FOREIGN KEY (signal_id) REFERENCES signals(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS document_versions (
        id TEXT PRIMARY KEY,
        document_id TEXT NOT NULL,
        commit_id TEXT NOT NULL,
        title TEXT NOT NULL,
        content TEXT,
        change_type TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (commit_id) REFERENCES commits(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS canons (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        content TEXT NOT NULL,
        embedding TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS digests (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        period_start TEXT NOT NULL,
        summary TEXT NOT NULL,
        items TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_signals_workspace ON signals(workspace_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_documents_scope ON documents(workspace_id, scope, user_id)",
    "CREATE INDEX IF NOT EXISTS idx_documents_parent ON documents(parent_document_id)",
    "CREATE INDEX IF NOT EXISTS idx_commits_workspace ON commits(workspace_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_commit_signals_commit ON commit_signals(commit_id)",
    "CREATE INDEX IF NOT EXISTS idx_versions_document ON document_versions(document_id)",
    "CREATE INDEX IF NOT EXISTS idx_versions_commit ON document_versions(commit_id)",
]

_DOCUMENT_COLUMNS = (
    "id, workspace_id, scope, user_id, title, content, file_url, file_name, "
    "parent_document_id, chunk_index, embedding, created_at, updated_at"
)


class SQLiteSynthesisStore(SynthesisStore):
    """
    SQLite-based store for signals, documents and commit history.

    Features:
    - Fast local storage
    - Transactional commit writes with head compare-and-swap
    - UNIQUE signal links (a signal belongs to at most one commit)
    - Exact cosine nearest-neighbour search
    """

    def __init__(self, db_path: str = "data/worldmodel.db"):
        """
        Initialize SQLite synthesis store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

        # Ensure directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            # Autocommit mode: transactions are opened explicitly
            self.connection = await aiosqlite.connect(self.db_path, isolation_level=None)
            self.connection.row_factory = aiosqlite.Row
            await self.connection.execute("PRAGMA foreign_keys = ON")
            await self.connection.execute("PRAGMA journal_mode = WAL")

    async def initialize(self) -> None:
        """Initialize database schema."""
        async with self._lock:
            await self.connect()
            async with self._transaction():
                for statement in _SCHEMA:
                    await self.connection.execute(statement)

        logger.info("SQLite synthesis store initialized", extra={"db_path": self.db_path})

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed statements in one write transaction."""
        await self.connection.execute("BEGIN IMMEDIATE")
        try:
            yield self.connection
        except BaseException:
            await self.connection.execute("ROLLBACK")
            raise
        await self.connection.execute("COMMIT")

    async def _fetchone(self, query: str, params: tuple = ()) -> aiosqlite.Row | None:
        cursor = await self.connection.execute(query, params)
        return await cursor.fetchone()

    async def _fetchall(self, query: str, params: tuple = ()) -> list[aiosqlite.Row]:
        cursor = await self.connection.execute(query, params)
        return list(await cursor.fetchall())

    # ═══════════════════════════════════════════════════════════
    # SIGNAL OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def insert_signal(self, signal: Signal) -> Signal:
        """Persist a new signal."""
        async with self._lock:
            await self.connect()
            try:
                async with self._transaction():
                    await self.connection.execute(
                        """
                        INSERT INTO signals (
                            id, workspace_id, user_id, conversation_id, message_id, content,
                            embedding, ai_priority, human_priority, status, source,
                            reviewed_at, created_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            signal.id,
                            signal.workspace_id,
                            signal.user_id,
                            signal.conversation_id,
                            signal.message_id,
                            signal.content,
                            _dump_embedding(signal.embedding),
                            signal.ai_priority.value if signal.ai_priority else None,
                            signal.human_priority.value if signal.human_priority else None,
                            signal.status.value,
                            signal.source.value,
                            _dump_datetime(signal.reviewed_at),
                            signal.created_at.isoformat(),
                        ),
                    )
            except aiosqlite.Error as e:
                raise StoreError(
                    f"Failed to insert signal: {e}", context={"signal_id": signal.id}
                ) from e
        return signal

    async def get_signal(self, signal_id: str) -> Signal | None:
        """Retrieve a signal by ID."""
        async with self._lock:
            await self.connect()
            row = await self._fetchone("SELECT * FROM signals WHERE id = ?", (signal_id,))
        return self._row_to_signal(row) if row else None

    async def update_signal_priority(
        self,
        signal_id: str,
        human_priority: SignalPriority | None,
        reviewed_at: datetime | None,
    ) -> Signal | None:
        """Set the human priority and review timestamp in one statement."""
        async with self._lock:
            await self.connect()
            async with self._transaction():
                cursor = await self.connection.execute(
                    "UPDATE signals SET human_priority = ?, reviewed_at = ? WHERE id = ?",
                    (
                        human_priority.value if human_priority else None,
                        _dump_datetime(reviewed_at),
                        signal_id,
                    ),
                )
                if cursor.rowcount == 0:
                    return None
                row = await self._fetchone("SELECT * FROM signals WHERE id = ?", (signal_id,))
        return self._row_to_signal(row)

    async def update_signal_status(self, signal_id: str, status: SignalStatus) -> Signal | None:
        """Set a signal's lifecycle status."""
        async with self._lock:
            await self.connect()
            async with self._transaction():
                cursor = await self.connection.execute(
                    "UPDATE signals SET status = ? WHERE id = ?", (status.value, signal_id)
                )
                if cursor.rowcount == 0:
                    return None
                row = await self._fetchone("SELECT * FROM signals WHERE id = ?", (signal_id,))
        return self._row_to_signal(row)

    async def list_signals(
        self,
        workspace_id: str,
        since: datetime | None = None,
        include_dismissed: bool = True,
        limit: int | None = None,
    ) -> list[Signal]:
        """List signals of a workspace, newest first."""
        query = "SELECT * FROM signals WHERE workspace_id = ?"
        params: list = [workspace_id]

        if since is not None:
            query += " AND created_at >= ?"
            params.append(since.isoformat())

        if not include_dismissed:
            query += " AND status != ?"
            params.append(SignalStatus.DISMISSED.value)

        query += " ORDER BY created_at DESC, rowid DESC"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        async with self._lock:
            await self.connect()
            rows = await self._fetchall(query, tuple(params))
        return [self._row_to_signal(row) for row in rows]

    async def count_signals(self, workspace_id: str, include_dismissed: bool = True) -> int:
        """Count signals of a workspace."""
        query = "SELECT COUNT(*) FROM signals WHERE workspace_id = ?"
        params: list = [workspace_id]
        if not include_dismissed:
            query += " AND status != ?"
            params.append(SignalStatus.DISMISSED.value)

        async with self._lock:
            await self.connect()
            row = await self._fetchone(query, tuple(params))
        return row[0]

    async def list_unprocessed_signals(self, workspace_id: str) -> list[Signal]:
        """Non-dismissed signals minus those linked to any commit, oldest first."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                """
                SELECT * FROM signals
                WHERE workspace_id = ?
                  AND status != ?
                  AND id NOT IN (SELECT signal_id FROM commit_signals)
                ORDER BY created_at ASC, rowid ASC
                """,
                (workspace_id, SignalStatus.DISMISSED.value),
            )
        return [self._row_to_signal(row) for row in rows]

    async def count_unprocessed_signals(self, workspace_id: str) -> int:
        """Count non-dismissed signals not linked to any commit."""
        async with self._lock:
            await self.connect()
            row = await self._fetchone(
                """
                SELECT COUNT(*) FROM signals
                WHERE workspace_id = ?
                  AND status != ?
                  AND id NOT IN (SELECT signal_id FROM commit_signals)
                """,
                (workspace_id, SignalStatus.DISMISSED.value),
            )
        return row[0]

    # ═══════════════════════════════════════════════════════════
    # DOCUMENT OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def get_document(self, document_id: str) -> Document | None:
        """Retrieve a document (or chunk) by ID."""
        async with self._lock:
            await self.connect()
            row = await self._fetchone(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document_id,)
            )
        return self._row_to_document(row) if row else None

    async def list_documents(
        self, workspace_id: str, scope: DocumentScope, user_id: str | None = None
    ) -> list[Document]:
        """List top-level documents of one scope and owner."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                f"""
                SELECT {_DOCUMENT_COLUMNS} FROM documents
                WHERE workspace_id = ? AND scope = ? AND user_id IS ?
                  AND parent_document_id IS NULL
                ORDER BY created_at ASC, rowid ASC
                """,
                (workspace_id, scope.value, user_id),
            )
        return [self._row_to_document(row) for row in rows]

    async def list_chunks(self, parent_document_id: str) -> list[Document]:
        """List the chunks of a document ordered by chunk index."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                f"""
                SELECT {_DOCUMENT_COLUMNS} FROM documents
                WHERE parent_document_id = ?
                ORDER BY chunk_index ASC
                """,
                (parent_document_id,),
            )
        return [self._row_to_document(row) for row in rows]

    async def save_document(
        self, document: Document, chunks: list[Document] | None = None
    ) -> Document:
        """Insert or update a document and optionally replace its chunks."""
        async with self._lock:
            await self.connect()
            try:
                async with self._transaction():
                    await self._write_document(document, chunks)
            except aiosqlite.Error as e:
                raise StoreError(
                    f"Failed to save document: {e}", context={"document_id": document.id}
                ) from e
        return document

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document together with its chunks."""
        async with self._lock:
            await self.connect()
            async with self._transaction():
                deleted = await self._delete_document_rows(document_id)
        return deleted

    async def search_documents(
        self,
        workspace_id: str,
        query_embedding: list[float],
        scope: DocumentScope,
        user_id: str | None = None,
        limit: int = 25,
    ) -> list[DocumentMatch]:
        """Exact cosine scan over documents and chunks of one scope and owner."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                f"""
                SELECT {_DOCUMENT_COLUMNS} FROM documents
                WHERE workspace_id = ? AND scope = ? AND user_id IS ?
                  AND embedding IS NOT NULL
                """,
                (workspace_id, scope.value, user_id),
            )

        if not rows or limit <= 0:
            return []

        query = np.asarray(query_embedding, dtype=float)
        documents = []
        vectors = []
        for row in rows:
            document = self._row_to_document(row)
            if len(document.embedding) != query.shape[0]:
                logger.warning(
                    "Skipping document with mismatched embedding dimension",
                    extra={
                        "document_id": document.id,
                        "expected": int(query.shape[0]),
                        "actual": len(document.embedding),
                    },
                )
                continue
            documents.append(document)
            vectors.append(document.embedding)

        if not documents:
            return []

        similarities = _cosine_similarities(np.asarray(vectors, dtype=float), query)
        order = np.argsort(-similarities, kind="stable")[:limit]

        return [
            DocumentMatch(document=documents[i], similarity=float(similarities[i])) for i in order
        ]

    async def _write_document(self, document: Document, chunks: list[Document] | None) -> None:
        await self.connection.execute(
            f"""
            INSERT INTO documents ({_DOCUMENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                workspace_id = excluded.workspace_id,
                scope = excluded.scope,
                user_id = excluded.user_id,
                title = excluded.title,
                content = excluded.content,
                file_url = excluded.file_url,
                file_name = excluded.file_name,
                parent_document_id = excluded.parent_document_id,
                chunk_index = excluded.chunk_index,
                embedding = excluded.embedding,
                updated_at = excluded.updated_at
            """,
            self._document_params(document),
        )

        if chunks is None:
            return

        await self.connection.execute(
            "DELETE FROM documents WHERE parent_document_id = ?", (document.id,)
        )
        for chunk in chunks:
            await self.connection.execute(
                f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._document_params(chunk),
            )

    async def _delete_document_rows(self, document_id: str) -> bool:
        await self.connection.execute(
            "DELETE FROM documents WHERE parent_document_id = ?", (document_id,)
        )
        cursor = await self.connection.execute(
            "DELETE FROM documents WHERE id = ?", (document_id,)
        )
        return cursor.rowcount > 0

    # ═══════════════════════════════════════════════════════════
    # COMMIT OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def get_head_commit(self, workspace_id: str) -> Commit | None:
        """Most recently applied commit of a workspace, by insertion order."""
        async with self._lock:
            await self.connect()
            return await self._fetch_head(workspace_id)

    async def _fetch_head(self, workspace_id: str) -> Commit | None:
        row = await self._fetchone(
            """
            SELECT * FROM commits WHERE workspace_id = ?
            ORDER BY rowid DESC LIMIT 1
            """,
            (workspace_id,),
        )
        return self._row_to_commit(row) if row else None

    async def apply_commit(self, batch: CommitBatch) -> Commit:
        """
        Apply a commit batch in one transaction.

        The head is re-read inside the transaction and must still be the
        commit's parent. A signal already linked to another commit violates
        the UNIQUE constraint on commit_signals. Both abort the whole batch
        with SynthesisConflictError.
        """
        commit = batch.commit

        async with self._lock:
            await self.connect()
            try:
                async with self._transaction():
                    head = await self._fetch_head(commit.workspace_id)
                    head_id = head.id if head else None
                    if head_id != commit.parent_id:
                        raise SynthesisConflictError(
                            "Head commit moved during synthesis",
                            context={
                                "workspace_id": commit.workspace_id,
                                "expected_head": commit.parent_id,
                                "actual_head": head_id,
                            },
                        )

                    for mutation in batch.mutations:
                        if mutation.change_type == ChangeType.DELETED:
                            await self._delete_document_rows(mutation.document.id)
                        else:
                            await self._write_document(mutation.document, mutation.chunks)

                    await self.connection.execute(
                        """
                        INSERT INTO commits (
                            id, workspace_id, parent_id, summary, trigger_type,
                            signal_count, created_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            commit.id,
                            commit.workspace_id,
                            commit.parent_id,
                            commit.summary,
                            commit.trigger.value,
                            commit.signal_count,
                            commit.created_at.isoformat(),
                        ),
                    )

                    for mutation in batch.mutations:
                        await self.connection.execute(
                            """
                            INSERT INTO document_versions (
                                id, document_id, commit_id, title, content,
                                change_type, created_at
                            ) VALUES (?, ?, ?, ?, ?, ?, ?)
                            """,
                            (
                                generate_version_id(),
                                mutation.document.id,
                                commit.id,
                                mutation.document.title,
                                mutation.document.content,
                                mutation.change_type.value,
                                commit.created_at.isoformat(),
                            ),
                        )

                    await self.connection.executemany(
                        "INSERT INTO commit_signals (commit_id, signal_id) VALUES (?, ?)",
                        [(commit.id, signal_id) for signal_id in batch.signal_ids],
                    )

                    for signal_id, priority in batch.priority_updates.items():
                        await self.connection.execute(
                            "UPDATE signals SET ai_priority = ? WHERE id = ? AND workspace_id = ?",
                            (priority.value, signal_id, commit.workspace_id),
                        )
            except aiosqlite.IntegrityError as e:
                if "commit_signals" in str(e):
                    raise SynthesisConflictError(
                        "Signal already linked to another commit",
                        context={"workspace_id": commit.workspace_id, "commit_id": commit.id},
                    ) from e
                raise StoreError(
                    f"Commit write violated a constraint: {e}",
                    context={"workspace_id": commit.workspace_id, "commit_id": commit.id},
                ) from e
            except aiosqlite.Error as e:
                raise StoreError(
                    f"Failed to apply commit: {e}",
                    context={"workspace_id": commit.workspace_id, "commit_id": commit.id},
                ) from e

        return commit

    async def get_commit(self, commit_id: str) -> Commit | None:
        """Retrieve a commit by ID."""
        async with self._lock:
            await self.connect()
            row = await self._fetchone("SELECT * FROM commits WHERE id = ?", (commit_id,))
        return self._row_to_commit(row) if row else None

    async def list_commits(self, workspace_id: str, limit: int = 50) -> list[CommitSummary]:
        """List commits newest first with their linked signal counts."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                """
                SELECT c.*, COUNT(cs.signal_id) AS linked_signals
                FROM commits c
                LEFT JOIN commit_signals cs ON cs.commit_id = c.id
                WHERE c.workspace_id = ?
                GROUP BY c.id
                ORDER BY c.rowid DESC
                LIMIT ?
                """,
                (workspace_id, limit),
            )
        return [
            CommitSummary(commit=self._row_to_commit(row), linked_signals=row["linked_signals"])
            for row in rows
        ]

    async def list_commit_versions(self, commit_id: str) -> list[DocumentVersion]:
        """Version rows written by a commit, in write order."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                "SELECT * FROM document_versions WHERE commit_id = ? ORDER BY rowid ASC",
                (commit_id,),
            )
        return [self._row_to_version(row) for row in rows]

    async def list_commit_signal_ids(self, commit_id: str) -> list[str]:
        """IDs of the signals linked to a commit."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                "SELECT signal_id FROM commit_signals WHERE commit_id = ? ORDER BY rowid ASC",
                (commit_id,),
            )
        return [row["signal_id"] for row in rows]

    async def list_document_versions(self, document_id: str) -> list[DocumentVersion]:
        """Version rows of one document, oldest first."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                """
                SELECT * FROM document_versions WHERE document_id = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (document_id,),
            )
        return [self._row_to_version(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # CANON / DIGEST OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def insert_canon(self, canon: Canon) -> Canon:
        """Persist a new canon revision."""
        async with self._lock:
            await self.connect()
            async with self._transaction():
                await self.connection.execute(
                    """
                    INSERT INTO canons (id, workspace_id, content, embedding, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        canon.id,
                        canon.workspace_id,
                        canon.content,
                        _dump_embedding(canon.embedding),
                        canon.created_at.isoformat(),
                    ),
                )
        return canon

    async def get_latest_canon(self, workspace_id: str) -> Canon | None:
        """Most recent canon of a workspace."""
        async with self._lock:
            await self.connect()
            row = await self._fetchone(
                """
                SELECT * FROM canons WHERE workspace_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT 1
                """,
                (workspace_id,),
            )
        if not row:
            return None

        return Canon(
            id=row["id"],
            workspace_id=row["workspace_id"],
            content=row["content"],
            embedding=_load_embedding(row["embedding"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def insert_digest(self, digest: Digest) -> Digest:
        """Persist a digest."""
        async with self._lock:
            await self.connect()
            async with self._transaction():
                await self.connection.execute(
                    """
                    INSERT INTO digests (id, workspace_id, period_start, summary, items, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        digest.id,
                        digest.workspace_id,
                        digest.period_start.isoformat(),
                        digest.summary,
                        json.dumps([item.model_dump(mode="json") for item in digest.items]),
                        digest.created_at.isoformat(),
                    ),
                )
        return digest

    async def list_digests(self, workspace_id: str, limit: int = 10) -> list[Digest]:
        """List digests newest first."""
        async with self._lock:
            await self.connect()
            rows = await self._fetchall(
                """
                SELECT * FROM digests WHERE workspace_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT ?
                """,
                (workspace_id, limit),
            )
        return [
            Digest(
                id=row["id"],
                workspace_id=row["workspace_id"],
                period_start=datetime.fromisoformat(row["period_start"]),
                summary=row["summary"],
                items=[DigestItem(**item) for item in json.loads(row["items"])],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    async def close(self) -> None:
        """Close the connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _document_params(document: Document) -> tuple:
        return (
            document.id,
            document.workspace_id,
            document.scope.value,
            document.user_id,
            document.title,
            document.content,
            document.file_url,
            document.file_name,
            document.parent_document_id,
            document.chunk_index,
            _dump_embedding(document.embedding),
            document.created_at.isoformat(),
            document.updated_at.isoformat(),
        )

    def _row_to_signal(self, row: aiosqlite.Row) -> Signal:
        """Convert database row to Signal object."""
        return Signal(
            id=row["id"],
            workspace_id=row["workspace_id"],
            user_id=row["user_id"],
            conversation_id=row["conversation_id"],
            message_id=row["message_id"],
            content=row["content"],
            embedding=_load_embedding(row["embedding"]),
            ai_priority=SignalPriority(row["ai_priority"]) if row["ai_priority"] else None,
            human_priority=SignalPriority(row["human_priority"]) if row["human_priority"] else None,
            status=SignalStatus(row["status"]),
            source=SignalSource(row["source"]),
            reviewed_at=datetime.fromisoformat(row["reviewed_at"]) if row["reviewed_at"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_document(self, row: aiosqlite.Row) -> Document:
        """Convert database row to Document object."""
        return Document(
            id=row["id"],
            workspace_id=row["workspace_id"],
            scope=DocumentScope(row["scope"]),
            user_id=row["user_id"],
            title=row["title"],
            content=row["content"],
            file_url=row["file_url"],
            file_name=row["file_name"],
            parent_document_id=row["parent_document_id"],
            chunk_index=row["chunk_index"],
            embedding=_load_embedding(row["embedding"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_commit(self, row: aiosqlite.Row) -> Commit:
        """Convert database row to Commit object."""
        return Commit(
            id=row["id"],
            workspace_id=row["workspace_id"],
            parent_id=row["parent_id"],
            summary=row["summary"],
            trigger=SynthesisTrigger(row["trigger_type"]),
            signal_count=row["signal_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_version(self, row: aiosqlite.Row) -> DocumentVersion:
        """Convert database row to DocumentVersion object."""
        return DocumentVersion(
            id=row["id"],
            document_id=row["document_id"],
            commit_id=row["commit_id"],
            title=row["title"],
            content=row["content"],
            change_type=ChangeType(row["change_type"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def _dump_embedding(embedding: list[float] | None) -> str | None:
    return json.dumps(embedding) if embedding is not None else None


def _load_embedding(value: str | None) -> list[float] | None:
    return json.loads(value) if value else None


def _dump_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Row-wise cosine similarity; rows or queries with zero magnitude score 0."""
    dots = matrix @ query
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
