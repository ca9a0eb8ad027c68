"""
Document chunking for retrieval.

Splits oversized documents into ordered, independently embeddable chunks.
Boundaries prefer paragraphs, then lines, then sentences, and fall back to
hard character splits only when a single unit exceeds the chunk budget.
Pure and deterministic: the same input always yields the same chunks.
"""

import re

from worldmodel.config import ChunkingConfig
from worldmodel.models.document import ChunkSpec

_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
_SENTENCE = re.compile(r"[^.!?\n]*(?:[.!?]+|\n|$)")
_EMBEDDING_ELISION = "\n\n[...]\n\n"


def chunk_title(title: str, chunk_index: int) -> str:
    """Display title of a chunk (1-based for humans)."""
    return f"{title} (Chunk {chunk_index + 1})"


class DocumentChunker:
    """
    Splits documents that exceed the chunking threshold.

    Usage:
        chunker = DocumentChunker()
        if chunker.should_chunk(content):
            chunks = chunker.chunk("Roadmap", content)
    """

    def __init__(self, config: ChunkingConfig | None = None):
        """
        Initialize chunker with configuration.

        Args:
            config: Optional chunking configuration. Uses defaults if not provided.
        """
        self.config = config or ChunkingConfig()

    @property
    def threshold_chars(self) -> int:
        return self.config.threshold_chars

    @property
    def max_chunk_chars(self) -> int:
        return self.config.max_chunk_chars

    def should_chunk(self, content: str | None) -> bool:
        """
        Check whether content is large enough to be represented by chunks.

        Args:
            content: Document content (None for file-backed documents)

        Returns:
            True if the non-blank content exceeds the threshold
        """
        if not content:
            return False
        return len(content.strip()) > self.config.threshold_chars

    def chunk(self, title: str, content: str) -> list[ChunkSpec]:
        """
        Split content into ordered chunks.

        Adjacent logical segments are packed together (joined by a blank line)
        while the result stays within max_chunk_chars.

        Args:
            title: Parent document title
            content: Parent document content

        Returns:
            Chunks with sequential chunk_index starting at 0
        """
        segments = [
            piece
            for segment in self._split_logical_segments(content)
            for piece in self._split_oversized(segment, self.config.max_chunk_chars)
        ]

        packed: list[str] = []
        current = ""
        for segment in segments:
            candidate = f"{current}\n\n{segment}" if current else segment
            if len(candidate) <= self.config.max_chunk_chars:
                current = candidate
                continue
            if current:
                packed.append(current)
            current = segment
        if current:
            packed.append(current)

        return [
            ChunkSpec(title=chunk_title(title, index), content=text, chunk_index=index)
            for index, text in enumerate(packed)
        ]

    def build_chunk_embedding_text(
        self, chunk_content: str, title: str | None = None, max_chars: int | None = None
    ) -> str:
        """
        Normalize a chunk's text before embedding.

        Prefixes the parent title so similarity is comparable across chunks of
        different documents. Content that does not fit the budget is sampled
        from its head, middle and tail.

        Args:
            chunk_content: Chunk text
            title: Optional parent document title
            max_chars: Budget override (defaults to config.embedding_max_chars)

        Returns:
            Text no longer than the budget
        """
        budget = max_chars or self.config.embedding_max_chars
        prefix = f"{title}\n\n" if title else ""
        available = max(budget - len(prefix), 0)

        if len(chunk_content) <= available:
            return f"{prefix}{chunk_content}"[:budget]

        segment_size = (available - len(_EMBEDDING_ELISION) * 2) // 3
        if segment_size <= 0:
            return f"{prefix}{chunk_content}"[:budget]

        head = chunk_content[:segment_size]
        middle_start = max(len(chunk_content) // 2 - segment_size // 2, 0)
        middle = chunk_content[middle_start : middle_start + segment_size]
        tail = chunk_content[-segment_size:]

        sampled = f"{head}{_EMBEDDING_ELISION}{middle}{_EMBEDDING_ELISION}{tail}"
        return f"{prefix}{sampled}"[:budget]

    @staticmethod
    def _split_logical_segments(content: str) -> list[str]:
        """Paragraphs if there are several, else lines, else the whole text."""
        paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(content) if p.strip()]
        if len(paragraphs) > 1:
            return paragraphs

        lines = [line.strip() for line in content.split("\n") if line.strip()]
        if len(lines) > 1:
            return lines

        stripped = content.strip()
        return [stripped] if stripped else []

    @classmethod
    def _split_oversized(cls, segment: str, max_chars: int) -> list[str]:
        """Split one segment on sentence boundaries, hard-splitting as a last resort."""
        if len(segment) <= max_chars:
            return [segment]

        sentences = [s.strip() for s in _SENTENCE.findall(segment) if s.strip()]
        if len(sentences) <= 1:
            return [segment[i : i + max_chars] for i in range(0, len(segment), max_chars)]

        pieces: list[str] = []
        current = ""
        for sentence in sentences:
            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) <= max_chars:
                current = candidate
                continue
            if current:
                pieces.append(current)
            if len(sentence) <= max_chars:
                current = sentence
            else:
                pieces.extend(cls._split_oversized(sentence, max_chars))
                current = ""
        if current:
            pieces.append(current)
        return pieces
