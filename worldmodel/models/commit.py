"""
Commit history models.

Commits form a singly-parented chain per workspace. Version rows snapshot
each document a commit touched so the history can be replayed.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SynthesisTrigger(str, Enum):
    """What started a synthesis run."""

    CONVERSATION_END = "conversation_end"
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class ChangeType(str, Enum):
    """Kind of change a commit made to one document."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class Commit(BaseModel):
    """Immutable history node. parent_id is null only for the first commit."""

    id: str = Field(..., description="Unique commit ID (cmt_xxx)")
    workspace_id: str
    parent_id: str | None = None
    summary: str
    trigger: SynthesisTrigger
    signal_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)


class DocumentVersion(BaseModel):
    """Append-only snapshot of one document as a commit left it."""

    id: str = Field(..., description="Unique version ID (ver_xxx)")
    document_id: str
    commit_id: str
    title: str
    content: str | None = None
    change_type: ChangeType
    created_at: datetime = Field(default_factory=datetime.now)


class CommitSummary(BaseModel):
    """Commit listing row with the number of linked signals."""

    commit: Commit
    linked_signals: int = 0


class CommitDetail(BaseModel):
    """A commit with its version rows and linked signal ids."""

    commit: Commit
    versions: list[DocumentVersion] = Field(default_factory=list)
    signal_ids: list[str] = Field(default_factory=list)
