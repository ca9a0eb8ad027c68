"""
Services for the synthesis engine.

High-level business logic services:
- WorldModel: unified entry point wiring every service
- SynthesisEngine: folds unprocessed signals into synthesis documents as commits
- ContextRetriever: deduplicated semantic retrieval for conversational turns
- SignalService: signal capture, triage and alignment
- DocumentService: document CRUD with chunk regeneration
- CommitHistory: lineage, detail and replay of the commit history
- AlignmentScorer: calibrated alignment / drift
- CanonService: workspace goals used as the alignment reference
- DigestGenerator: ranked periodic digests
"""

from worldmodel.services.alignment import AlignmentScorer
from worldmodel.services.canon_service import CanonService
from worldmodel.services.commit_history import CommitHistory
from worldmodel.services.context_retriever import ContextRetriever
from worldmodel.services.digest import DigestGenerator
from worldmodel.services.document_service import DocumentPlanner, DocumentService
from worldmodel.services.signal_service import SignalService
from worldmodel.services.synthesis_engine import SynthesisEngine
from worldmodel.services.world_model import WorldModel

__all__ = [
    "WorldModel",
    "SynthesisEngine",
    "ContextRetriever",
    "SignalService",
    "DocumentService",
    "DocumentPlanner",
    "CommitHistory",
    "AlignmentScorer",
    "CanonService",
    "DigestGenerator",
]
