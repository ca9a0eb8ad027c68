"""
Document management - create, update, delete with chunk regeneration.

Brings together:
- DocumentPlanner: embedding + chunk planning shared with the synthesis engine
- DocumentService: user-facing document CRUD; hand edits of synthesis
  documents are recorded as manual commits
"""

from datetime import datetime

from worldmodel.config import Config
from worldmodel.core.chunking.chunker import DocumentChunker, chunk_title
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.store.base import CommitBatch, DocumentMutation, SynthesisStore
from worldmodel.models.commit import ChangeType, Commit, SynthesisTrigger
from worldmodel.models.document import Document, DocumentScope
from worldmodel.utils.exceptions import NotFoundError, SynthesisConflictError, ValidationError
from worldmodel.utils.id_generator import (
    generate_chunk_id,
    generate_commit_id,
    generate_document_id,
)
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class DocumentPlanner:
    """
    Computes the embedding and chunk rows for a document's new content.

    Documents above the chunking threshold are represented by their chunks:
    the parent keeps its content but its own embedding is null. Chunks are
    always regenerated as a whole.
    """

    def __init__(self, gateway: EmbeddingGateway, chunker: DocumentChunker, config: Config):
        self.gateway = gateway
        self.chunker = chunker
        self.config = config

    async def prepare(
        self, document: Document, must_embed: bool = False
    ) -> tuple[Document, list[Document]]:
        """
        Plan the stored state of a document after a content change.

        Args:
            document: Document carrying its new title and content
            must_embed: Raise instead of storing null embeddings

        Returns:
            Tuple of (document with embedding set, replacement chunks)

        Raises:
            EmbeddingError: Only when must_embed is set
        """
        if self.chunker.should_chunk(document.content):
            planned_chunks = self.chunker.chunk(document.title, document.content)
            chunks = []
            for planned in planned_chunks:
                text = self.chunker.build_chunk_embedding_text(
                    planned.content, title=document.title
                )
                embedding = await self._embed(text, must_embed, document_id=document.id)
                chunks.append(
                    Document(
                        id=generate_chunk_id(document.id, planned.chunk_index),
                        workspace_id=document.workspace_id,
                        scope=document.scope,
                        user_id=document.user_id,
                        title=planned.title,
                        content=planned.content,
                        parent_document_id=document.id,
                        chunk_index=planned.chunk_index,
                        embedding=embedding,
                        created_at=document.updated_at,
                        updated_at=document.updated_at,
                    )
                )

            logger.debug(
                f"Chunked document {document.id} into {len(chunks)} chunks",
                extra={"document_id": document.id, "chunks": len(chunks)},
            )
            return document.model_copy(update={"embedding": None}), chunks

        text = self.embedding_text(document)
        embedding = await self._embed(text, must_embed, document_id=document.id) if text else None
        return document.model_copy(update={"embedding": embedding}), []

    @staticmethod
    def retitle_chunks(document: Document, chunks: list[Document]) -> list[Document]:
        """Rename existing chunks after a title-only change, keeping their embeddings."""
        return [
            chunk.model_copy(
                update={
                    "title": chunk_title(document.title, chunk.chunk_index or 0),
                    "updated_at": document.updated_at,
                }
            )
            for chunk in chunks
        ]

    @staticmethod
    def embedding_text(document: Document) -> str:
        """Text embedded for an unchunked document."""
        if document.content and document.content.strip():
            return f"{document.title}\n\n{document.content}"
        return document.title

    async def _embed(self, text: str, must_embed: bool, **log_context) -> list[float] | None:
        if must_embed:
            return await self.gateway.embed(text, max_chars=self.config.embedder.max_chars)
        return await self.gateway.try_embed(
            text, max_chars=self.config.embedder.max_chars, **log_context
        )


class DocumentService:
    """
    User-facing document operations.

    Features:
    - Personal (owned) and shared (workspace) documents
    - Chunk regeneration whenever content changes
    - Best-effort embeddings, or strict with generate_embedding=True
    - Manual edits / deletes of synthesis documents recorded in the history
    """

    def __init__(
        self,
        store: SynthesisStore,
        gateway: EmbeddingGateway,
        config: Config,
        chunker: DocumentChunker | None = None,
    ):
        """
        Initialize document service.

        Args:
            store: Synthesis store
            gateway: Embedding gateway
            config: Configuration object
            chunker: Optional chunker (built from config if not provided)
        """
        self.store = store
        self.config = config
        self.planner = DocumentPlanner(
            gateway=gateway,
            chunker=chunker or DocumentChunker(config.chunking),
            config=config,
        )

    async def create_document(
        self,
        workspace_id: str,
        title: str,
        content: str | None = None,
        scope: DocumentScope = DocumentScope.PERSONAL,
        user_id: str | None = None,
        file_url: str | None = None,
        file_name: str | None = None,
        generate_embedding: bool = False,
    ) -> Document:
        """
        Create a personal or shared document.

        Args:
            workspace_id: Owning workspace
            title: Document title
            content: Text content (None for file-backed documents)
            scope: PERSONAL or WORKSPACE
            user_id: Owner, required for personal documents
            file_url: Optional blob reference
            file_name: Optional original file name
            generate_embedding: Fail the whole operation if embedding fails

        Returns:
            The created document

        Raises:
            ValidationError: If the title, scope or owner is invalid
            EmbeddingError: If generate_embedding is set and embedding fails
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Document title cannot be empty")
        if scope == DocumentScope.SYNTHESIS:
            raise ValidationError("Synthesis documents are created by synthesis runs")
        if scope == DocumentScope.PERSONAL and not user_id:
            raise ValidationError("Personal documents require an owner")
        if scope != DocumentScope.PERSONAL and user_id:
            raise ValidationError(
                "Only personal documents have an owner", context={"scope": scope.value}
            )

        now = datetime.now()
        document = Document(
            id=generate_document_id(),
            workspace_id=workspace_id,
            scope=scope,
            user_id=user_id,
            title=title,
            content=content,
            file_url=file_url,
            file_name=file_name,
            created_at=now,
            updated_at=now,
        )

        # Embedding happens before any write, so a strict failure stores nothing
        document, chunks = await self.planner.prepare(document, must_embed=generate_embedding)
        await self.store.save_document(document, chunks)

        logger.info(
            f"Document created: {document.id}",
            extra={
                "document_id": document.id,
                "workspace_id": workspace_id,
                "scope": scope.value,
                "chunks": len(chunks),
            },
        )
        return document

    async def get_document(self, document_id: str) -> Document:
        """
        Retrieve a document by ID.

        Raises:
            NotFoundError: If the document doesn't exist
        """
        document = await self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(
                f"Document not found: {document_id}", context={"document_id": document_id}
            )
        return document

    async def list_documents(
        self, workspace_id: str, scope: DocumentScope, user_id: str | None = None
    ) -> list[Document]:
        """List top-level documents of one scope (chunks excluded)."""
        return await self.store.list_documents(workspace_id, scope, user_id)

    async def get_chunks(self, document_id: str) -> list[Document]:
        return await self.store.list_chunks(document_id)

    async def update_document(
        self,
        document_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> Document:
        """
        Update a document's title and/or content.

        A content change re-embeds the document (best-effort) and regenerates
        its chunks. A title-only change renames existing chunks. Editing a
        synthesis document writes a manual commit.

        Args:
            document_id: Document to update
            title: New title (unchanged if None)
            content: New content (unchanged if None)

        Returns:
            The updated document

        Raises:
            NotFoundError: If the document doesn't exist
            ValidationError: If the target is a chunk or the title is empty
        """
        existing = await self.get_document(document_id)
        if existing.is_chunk:
            raise ValidationError(
                "Chunks are regenerated from their parent and cannot be edited",
                context={"document_id": document_id},
            )

        new_title = existing.title if title is None else title.strip()
        if not new_title:
            raise ValidationError("Document title cannot be empty")

        content_changed = content is not None and content != existing.content
        updated = existing.model_copy(
            update={
                "title": new_title,
                "content": content if content is not None else existing.content,
                "updated_at": datetime.now(),
            }
        )

        existing_chunks = [] if content_changed else await self.store.list_chunks(document_id)
        if existing_chunks:
            chunks = self.planner.retitle_chunks(updated, existing_chunks)
        else:
            # The title is part of an unchunked document's embedded text
            updated, chunks = await self.planner.prepare(updated)

        if updated.scope == DocumentScope.SYNTHESIS:
            await self._commit_manual_change(
                DocumentMutation(
                    change_type=ChangeType.MODIFIED, document=updated, chunks=chunks
                ),
                summary=f"Manual edit: {updated.title}",
            )
        else:
            await self.store.save_document(updated, chunks)

        logger.info(
            f"Document updated: {document_id}",
            extra={
                "document_id": document_id,
                "content_changed": content_changed,
                "chunks": len(chunks),
            },
        )
        return updated

    async def delete_document(self, document_id: str) -> None:
        """
        Delete a document and its chunks.

        Deleting a synthesis document writes a manual commit; its version
        history is kept.

        Raises:
            NotFoundError: If the document doesn't exist
            ValidationError: If the target is a chunk
        """
        existing = await self.get_document(document_id)
        if existing.is_chunk:
            raise ValidationError(
                "Chunks are removed with their parent", context={"document_id": document_id}
            )

        if existing.scope == DocumentScope.SYNTHESIS:
            await self._commit_manual_change(
                DocumentMutation(change_type=ChangeType.DELETED, document=existing),
                summary=f"Manual delete: {existing.title}",
            )
        else:
            await self.store.delete_document(document_id)

        logger.info(f"Document deleted: {document_id}", extra={"document_id": document_id})

    async def _commit_manual_change(self, mutation: DocumentMutation, summary: str) -> Commit:
        """Record a hand edit of a synthesis document as a manual commit."""
        workspace_id = mutation.document.workspace_id
        attempts = self.config.synthesis.max_conflict_retries + 1

        for attempt in range(1, attempts + 1):
            head = await self.store.get_head_commit(workspace_id)
            commit = Commit(
                id=generate_commit_id(),
                workspace_id=workspace_id,
                parent_id=head.id if head else None,
                summary=summary,
                trigger=SynthesisTrigger.MANUAL,
                signal_count=0,
            )
            try:
                return await self.store.apply_commit(
                    CommitBatch(commit=commit, mutations=[mutation])
                )
            except SynthesisConflictError:
                if attempt >= attempts:
                    raise
                logger.warning(
                    "Head moved during manual commit, retrying",
                    extra={"workspace_id": workspace_id, "attempt": attempt},
                )
