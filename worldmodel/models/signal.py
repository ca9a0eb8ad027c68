"""
Signal model - atomic observations captured from conversations and tools.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SignalPriority(str, Enum):
    """Priority assigned to a signal by the AI or by a human reviewer."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SignalStatus(str, Enum):
    """Signal lifecycle status."""

    OPEN = "open"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class SignalSource(str, Enum):
    """Where the signal was captured."""

    WEB = "web"
    MCP = "mcp"


class Signal(BaseModel):
    """
    Atomic, timestamped observation.

    Content is immutable once created. Only priority, status and the review
    timestamp change over the signal's life. Signals are referenced by
    commits, never owned by them.
    """

    id: str = Field(..., description="Unique signal ID (sig_xxx)")
    workspace_id: str = Field(..., description="Owning workspace")
    user_id: str = Field(..., description="Author of the signal")
    conversation_id: str | None = Field(default=None, description="Source conversation")
    message_id: str | None = Field(default=None, description="Source message")

    content: str = Field(..., description="Observation text")
    embedding: list[float] | None = Field(default=None, description="Vector embedding")

    ai_priority: SignalPriority | None = Field(default=None, description="AI-assigned priority")
    human_priority: SignalPriority | None = Field(
        default=None, description="Human-assigned priority (overrides AI)"
    )
    status: SignalStatus = Field(default=SignalStatus.OPEN, description="Lifecycle status")
    source: SignalSource = Field(default=SignalSource.WEB, description="Capture source")
    reviewed_at: datetime | None = Field(default=None, description="Human review timestamp")

    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")

    @property
    def effective_priority(self) -> SignalPriority | None:
        """Human priority when set, otherwise the AI priority."""
        return self.human_priority or self.ai_priority

    def is_dismissed(self) -> bool:
        return self.status == SignalStatus.DISMISSED
