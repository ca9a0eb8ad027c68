"""
Document model for personal, shared and synthesis knowledge.

A document whose parent_document_id is set is a chunk: a retrievable
fragment of an oversized parent. Chunks are never chunked again.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class DocumentScope(str, Enum):
    """Visibility / ownership partition of a document."""

    PERSONAL = "personal"  # Owned by one user
    WORKSPACE = "workspace"  # Shared, team-visible, no owner
    ORG = "org"  # Reserved
    SYNTHESIS = "synthesis"  # Machine-maintained world model, no owner


class Document(BaseModel):
    """
    Titled unit of knowledge.

    Storage notes:
    - content is nullable for file-backed documents
    - embedding is null when the content is represented by chunks, or when
      best-effort embedding failed
    """

    id: str = Field(..., description="Unique document ID (doc_xxx)")
    workspace_id: str = Field(..., description="Owning workspace")
    scope: DocumentScope = Field(default=DocumentScope.PERSONAL, description="Scope")
    user_id: str | None = Field(default=None, description="Owner (personal scope only)")

    title: str = Field(..., description="Document title")
    content: str | None = Field(default=None, description="Text content")
    file_url: str | None = Field(default=None, description="Blob reference for uploaded files")
    file_name: str | None = Field(default=None, description="Original file name")

    parent_document_id: str | None = Field(default=None, description="Parent ID for chunks")
    chunk_index: int | None = Field(default=None, ge=0, description="Zero-based chunk position")

    embedding: list[float] | None = Field(default=None, description="Vector embedding")

    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.now, description="Last update timestamp")

    @property
    def is_chunk(self) -> bool:
        return self.parent_document_id is not None

    @property
    def logical_id(self) -> str:
        """Dedup key for retrieval: the parent for chunks, otherwise self."""
        return self.parent_document_id or self.id


class ChunkSpec(BaseModel):
    """One planned chunk produced by the chunker (not yet persisted)."""

    title: str
    content: str
    chunk_index: int = Field(..., ge=0)


class DocumentMatch(BaseModel):
    """Nearest-neighbour hit returned by the store."""

    document: Document
    similarity: float


class RetrievedContext(BaseModel):
    """Grounding context entry handed to the conversational path."""

    title: str
    content: str


class TurnContext(BaseModel):
    """Grounding context for one conversational turn, per scope."""

    personal: list[RetrievedContext] = Field(default_factory=list)
    shared: list[RetrievedContext] = Field(default_factory=list)
    synthesis: list[RetrievedContext] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.personal or self.shared or self.synthesis)
