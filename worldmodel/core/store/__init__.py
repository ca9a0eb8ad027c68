"""
Synthesis store implementations.
"""

from worldmodel.core.store.base import CommitBatch, DocumentMutation, SynthesisStore
from worldmodel.core.store.sqlite_store import SQLiteSynthesisStore

__all__ = [
    "CommitBatch",
    "DocumentMutation",
    "SynthesisStore",
    "SQLiteSynthesisStore",
]
