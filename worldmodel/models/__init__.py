"""
Data models for the synthesis engine.

Core models:
- Signal: atomic observation with AI / human priority and lifecycle status
- Document, ChunkSpec, DocumentMatch: scoped knowledge units and their chunks
- Commit, DocumentVersion: versioned, replayable history of synthesis documents
- SynthesisOutput and its operations: validated LLM command batch
- SynthesisResult, Usage: run outcome with usage accounting
- Canon, Digest: reference text for alignment and periodic rollups
"""

from worldmodel.models.canon import AlignmentScore, Canon, Digest, DigestItem, DigestOutput
from worldmodel.models.commit import (
    ChangeType,
    Commit,
    CommitDetail,
    CommitSummary,
    DocumentVersion,
    SynthesisTrigger,
)
from worldmodel.models.document import (
    ChunkSpec,
    Document,
    DocumentMatch,
    DocumentScope,
    RetrievedContext,
    TurnContext,
)
from worldmodel.models.signal import Signal, SignalPriority, SignalSource, SignalStatus
from worldmodel.models.synthesis import (
    NO_NEW_SIGNALS_SUMMARY,
    NO_SIGNALS_SUMMARY,
    CreateOperation,
    DeleteOperation,
    ModifyOperation,
    PriorityRecommendation,
    SynthesisOperation,
    SynthesisOutput,
    SynthesisResult,
    Usage,
)

__all__ = [
    # Signal models
    "Signal",
    "SignalPriority",
    "SignalStatus",
    "SignalSource",
    # Document models
    "Document",
    "DocumentScope",
    "ChunkSpec",
    "DocumentMatch",
    "RetrievedContext",
    "TurnContext",
    # History models
    "Commit",
    "CommitSummary",
    "CommitDetail",
    "DocumentVersion",
    "ChangeType",
    "SynthesisTrigger",
    # Synthesis contract
    "CreateOperation",
    "ModifyOperation",
    "DeleteOperation",
    "SynthesisOperation",
    "PriorityRecommendation",
    "SynthesisOutput",
    "SynthesisResult",
    "Usage",
    "NO_SIGNALS_SUMMARY",
    "NO_NEW_SIGNALS_SUMMARY",
    # Canon / digest
    "Canon",
    "AlignmentScore",
    "Digest",
    "DigestItem",
    "DigestOutput",
]
