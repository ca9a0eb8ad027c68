"""
Base interface for the synthesis store.

The store is the relational collaborator of the engine: point lookups,
filtered scans by workspace / scope / owner, a nearest-neighbour operator
over document embeddings, and one transactional commit write.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, Field

from worldmodel.models.canon import Canon, Digest
from worldmodel.models.commit import ChangeType, Commit, CommitSummary, DocumentVersion
from worldmodel.models.document import Document, DocumentMatch, DocumentScope
from worldmodel.models.signal import Signal, SignalPriority, SignalStatus


class DocumentMutation(BaseModel):
    """
    One planned document change inside a commit.

    For created / modified documents, `document` is the new state. For deleted
    documents it is the snapshot being removed. `chunks` replaces every
    existing chunk of the document when not None (an empty list removes them).
    """

    change_type: ChangeType
    document: Document
    chunks: list[Document] | None = None


class CommitBatch(BaseModel):
    """
    Everything one commit writes, applied in a single transaction.

    commit.parent_id is the head the caller observed before planning the
    batch. The write is rejected if the head has moved since.
    """

    commit: Commit
    mutations: list[DocumentMutation] = Field(default_factory=list)
    signal_ids: list[str] = Field(default_factory=list)
    priority_updates: dict[str, SignalPriority] = Field(default_factory=dict)


class SynthesisStore(ABC):
    """Abstract base class for synthesis storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the store (create tables/schema)."""
        pass

    # ═══════════════════════════════════════════════════════════
    # SIGNAL OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_signal(self, signal: Signal) -> Signal:
        """
        Persist a new signal.

        Args:
            signal: Signal to store

        Returns:
            The stored signal
        """
        pass

    @abstractmethod
    async def get_signal(self, signal_id: str) -> Signal | None:
        """Retrieve a signal by ID."""
        pass

    @abstractmethod
    async def update_signal_priority(
        self,
        signal_id: str,
        human_priority: SignalPriority | None,
        reviewed_at: datetime | None,
    ) -> Signal | None:
        """
        Set the human priority and review timestamp in one write.

        Returns:
            Updated signal or None if not found
        """
        pass

    @abstractmethod
    async def update_signal_status(self, signal_id: str, status: SignalStatus) -> Signal | None:
        """
        Set a signal's lifecycle status.

        Returns:
            Updated signal or None if not found
        """
        pass

    @abstractmethod
    async def list_signals(
        self,
        workspace_id: str,
        since: datetime | None = None,
        include_dismissed: bool = True,
        limit: int | None = None,
    ) -> list[Signal]:
        """
        List signals of a workspace, newest first.

        Args:
            workspace_id: Workspace to scan
            since: Only signals created at or after this time
            include_dismissed: Whether dismissed signals are returned
            limit: Maximum number of signals

        Returns:
            Matching signals
        """
        pass

    @abstractmethod
    async def count_signals(self, workspace_id: str, include_dismissed: bool = True) -> int:
        """Count signals of a workspace."""
        pass

    @abstractmethod
    async def list_unprocessed_signals(self, workspace_id: str) -> list[Signal]:
        """
        Non-dismissed signals not linked to any commit, oldest first.

        Args:
            workspace_id: Workspace to scan

        Returns:
            Unprocessed signals
        """
        pass

    @abstractmethod
    async def count_unprocessed_signals(self, workspace_id: str) -> int:
        """Count non-dismissed signals not linked to any commit."""
        pass

    # ═══════════════════════════════════════════════════════════
    # DOCUMENT OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Retrieve a document (or chunk) by ID."""
        pass

    @abstractmethod
    async def list_documents(
        self, workspace_id: str, scope: DocumentScope, user_id: str | None = None
    ) -> list[Document]:
        """
        List top-level documents (chunks excluded) of one scope and owner.

        Args:
            workspace_id: Workspace to scan
            scope: Document scope
            user_id: Owner; None selects documents without an owner

        Returns:
            Documents ordered by creation time
        """
        pass

    @abstractmethod
    async def list_chunks(self, parent_document_id: str) -> list[Document]:
        """List the chunks of a document ordered by chunk index."""
        pass

    @abstractmethod
    async def save_document(
        self, document: Document, chunks: list[Document] | None = None
    ) -> Document:
        """
        Insert or update a document outside of a commit.

        Args:
            document: Document state to write
            chunks: Replacement chunk set, or None to leave chunks untouched

        Returns:
            The stored document
        """
        pass

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """
        Delete a document together with its chunks.

        Returns:
            True if a document was deleted
        """
        pass

    @abstractmethod
    async def search_documents(
        self,
        workspace_id: str,
        query_embedding: list[float],
        scope: DocumentScope,
        user_id: str | None = None,
        limit: int = 25,
    ) -> list[DocumentMatch]:
        """
        Nearest-neighbour search over documents and chunks with embeddings.

        Args:
            workspace_id: Workspace to search
            query_embedding: Query vector
            scope: Document scope
            user_id: Owner; None selects documents without an owner
            limit: Maximum number of rows

        Returns:
            Matches ordered by descending similarity
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # COMMIT OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_head_commit(self, workspace_id: str) -> Commit | None:
        """Last commit applied to a workspace (insertion order, not timestamp)."""
        pass

    @abstractmethod
    async def apply_commit(self, batch: CommitBatch) -> Commit:
        """
        Apply a commit batch atomically.

        Checks the head, applies the document mutations, inserts the commit,
        its version rows and signal links, then the priority updates. Nothing
        is written if any step fails.

        Args:
            batch: Planned commit

        Returns:
            The inserted commit

        Raises:
            SynthesisConflictError: Head moved or a signal is already linked
            StoreError: Any other write failure
        """
        pass

    @abstractmethod
    async def get_commit(self, commit_id: str) -> Commit | None:
        """Retrieve a commit by ID."""
        pass

    @abstractmethod
    async def list_commits(self, workspace_id: str, limit: int = 50) -> list[CommitSummary]:
        """List commits newest first with their linked signal counts."""
        pass

    @abstractmethod
    async def list_commit_versions(self, commit_id: str) -> list[DocumentVersion]:
        """Version rows written by a commit, in write order."""
        pass

    @abstractmethod
    async def list_commit_signal_ids(self, commit_id: str) -> list[str]:
        """IDs of the signals linked to a commit."""
        pass

    @abstractmethod
    async def list_document_versions(self, document_id: str) -> list[DocumentVersion]:
        """Version rows of one document, oldest first."""
        pass

    # ═══════════════════════════════════════════════════════════
    # CANON / DIGEST OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def insert_canon(self, canon: Canon) -> Canon:
        """Persist a new canon revision."""
        pass

    @abstractmethod
    async def get_latest_canon(self, workspace_id: str) -> Canon | None:
        """Most recent canon of a workspace."""
        pass

    @abstractmethod
    async def insert_digest(self, digest: Digest) -> Digest:
        """Persist a digest."""
        pass

    @abstractmethod
    async def list_digests(self, workspace_id: str, limit: int = 10) -> list[Digest]:
        """List digests newest first."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections."""
        pass
