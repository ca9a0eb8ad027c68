"""
Canon and digest models.

The canon is the workspace's stated reference (goals / strategy). Its
embedding is the reference vector for alignment scoring.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from worldmodel.models.signal import SignalPriority
from worldmodel.models.synthesis import Usage


class Canon(BaseModel):
    """Workspace reference text with its embedding."""

    id: str
    workspace_id: str
    content: str
    embedding: list[float] | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class DigestItem(BaseModel):
    """One ranked entry of a digest (LLM structured output)."""

    model_config = {"extra": "ignore"}

    rank: int = Field(..., ge=1, description="1 = most important")
    title: str = Field(..., description="Max 8 words, plain language")
    detail: str = Field(..., description="One sentence, max 15 words")
    priority: SignalPriority = Field(..., description="critical, high, medium or low")


class DigestOutput(BaseModel):
    """Digest LLM response (structured output)."""

    model_config = {"extra": "ignore"}

    summary: str = Field(..., description="1-2 sentences, max 20 words. The period in one breath.")
    items: list[DigestItem] = Field(default_factory=list, description="Ranked by impact on goals")


class Digest(BaseModel):
    """Persisted digest for a workspace and period."""

    id: str
    workspace_id: str
    period_start: datetime
    summary: str
    items: list[DigestItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    usage: Usage | None = Field(
        default=None, description="Cost of the generating call (not persisted)"
    )


class AlignmentScore(BaseModel):
    """Calibrated alignment of an observation against the canon."""

    alignment: float = Field(..., ge=0.0, le=1.0)
    drift: float = Field(..., ge=0.0, le=1.0)
    has_reference: bool = Field(default=True, description="False when no canon exists")
