"""
Synthesis contract models.

The LLM response is parsed into an explicit tagged union of operations
(create | modify | delete) at the boundary, so nothing downstream handles
loosely-typed JSON. Field aliases match the camelCase wire contract.
"""

import math
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from worldmodel.models.commit import SynthesisTrigger
from worldmodel.models.signal import SignalPriority

NO_SIGNALS_SUMMARY = "No signals to process."
NO_NEW_SIGNALS_SUMMARY = "No new signals to process."


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CreateOperation(_WireModel):
    """Create a new synthesis document."""

    action: Literal["create"] = "create"
    title: str = Field(..., description="Title of the new document")
    content: str = Field(..., description="Full content of the new document")
    reasoning: str | None = Field(default=None, description="Why this document is needed")


class ModifyOperation(_WireModel):
    """Replace the title/content of an existing synthesis document."""

    action: Literal["modify"] = "modify"
    document_id: str | None = Field(
        default=None, alias="documentId", description="ID of an existing document"
    )
    title: str = Field(..., description="Updated title")
    content: str = Field(..., description="Full updated content")
    reasoning: str | None = Field(default=None, description="What changed and why")


class DeleteOperation(_WireModel):
    """Remove an existing synthesis document."""

    action: Literal["delete"] = "delete"
    document_id: str | None = Field(
        default=None, alias="documentId", description="ID of an existing document"
    )
    title: str = Field(default="", description="Title of the removed document")
    content: str = Field(default="", description="Unused for deletes")
    reasoning: str | None = Field(default=None, description="Why the document is obsolete")


SynthesisOperation = Annotated[
    CreateOperation | ModifyOperation | DeleteOperation,
    Field(discriminator="action"),
]


class PriorityRecommendation(_WireModel):
    """AI priority the model recommends for one processed signal."""

    signal_id: str = Field(..., alias="signalId")
    recommended_priority: SignalPriority = Field(..., alias="recommendedPriority")


class SynthesisOutput(_WireModel):
    """Structured LLM response for one synthesis run."""

    operations: list[SynthesisOperation] = Field(
        default_factory=list, description="Ordered document mutations"
    )
    commit_summary: str = Field(..., alias="commitSummary", description="Short commit summary")
    priority_recommendations: list[PriorityRecommendation] = Field(
        default_factory=list, alias="priorityRecommendations"
    )


class Usage(BaseModel):
    """Token usage and estimated cost of one LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_cents: int = 0

    @classmethod
    def from_tokens(
        cls,
        input_tokens: int,
        output_tokens: int,
        input_price_cents_per_million: float = 500.0,
        output_price_cents_per_million: float = 2500.0,
    ) -> "Usage":
        """Build usage with cost rounded up to the next whole cent."""
        cost = (input_tokens / 1_000_000) * input_price_cents_per_million + (
            output_tokens / 1_000_000
        ) * output_price_cents_per_million
        return cls(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost_cents=math.ceil(cost),
        )


class SynthesisResult(BaseModel):
    """Outcome of a synthesis run. commit_id is None for a no-op run."""

    commit_id: str | None = None
    parent_id: str | None = None
    trigger: SynthesisTrigger
    summary: str
    operations: list[SynthesisOperation] = Field(default_factory=list)
    applied_operations: int = 0
    priority_recommendations: list[PriorityRecommendation] = Field(default_factory=list)
    processed_count: int = 0
    usage: Usage | None = None

    @property
    def is_noop(self) -> bool:
        return self.commit_id is None
