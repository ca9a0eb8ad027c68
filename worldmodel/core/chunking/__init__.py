"""
Document chunking utilities.
"""

from worldmodel.core.chunking.chunker import DocumentChunker, chunk_title

__all__ = [
    "DocumentChunker",
    "chunk_title",
]
