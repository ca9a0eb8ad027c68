"""
Context retrieval for grounding conversational turns.

Two-stage search: over-fetch nearest neighbours, then deduplicate by logical
document so one chunked document cannot crowd out the rest of the results.
"""

import asyncio

from worldmodel.config import Config
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.store.base import SynthesisStore
from worldmodel.models.document import DocumentMatch, DocumentScope, RetrievedContext, TurnContext
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class ContextRetriever:
    """
    Retrieves semantically relevant documents for a query.

    Failures never propagate: grounding context is an enhancement of the
    conversational path, so errors are logged and an empty result returned.
    """

    def __init__(self, store: SynthesisStore, gateway: EmbeddingGateway, config: Config):
        """
        Initialize context retriever.

        Args:
            store: Synthesis store (nearest-neighbour search)
            gateway: Embedding gateway for the query text
            config: Configuration object
        """
        self.store = store
        self.gateway = gateway
        self.config = config

    async def retrieve(
        self,
        workspace_id: str,
        user_id: str | None,
        scope: DocumentScope,
        query_text: str,
        limit: int | None = None,
    ) -> list[RetrievedContext]:
        """
        Retrieve up to `limit` distinct logical documents for a query.

        Args:
            workspace_id: Workspace to search
            user_id: Owner filter (None for unowned scopes)
            scope: Document scope
            query_text: Text to search for
            limit: Maximum distinct documents (defaults to retrieval.default_limit)

        Returns:
            Contexts ordered by descending similarity
        """
        try:
            query_embedding = await self.gateway.embed(
                query_text, max_chars=self.config.embedder.query_max_chars
            )
            return await self._search(workspace_id, user_id, scope, query_embedding, limit)
        except Exception as e:
            logger.error(
                "Context retrieval failed, continuing without context",
                extra={
                    "workspace_id": workspace_id,
                    "scope": scope.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return []

    async def gather_turn_context(
        self,
        workspace_id: str,
        user_id: str,
        query_text: str,
        limit: int | None = None,
    ) -> TurnContext:
        """
        Retrieve personal, shared and synthesis context for one turn.

        The query is embedded once and the three scopes are searched
        independently. A failing scope contributes nothing.
        """
        try:
            query_embedding = await self.gateway.embed(
                query_text, max_chars=self.config.embedder.query_max_chars
            )
        except Exception as e:
            logger.error(
                "Query embedding failed, continuing without context",
                extra={"workspace_id": workspace_id, "error": str(e)},
            )
            return TurnContext()

        personal, shared, synthesis = await asyncio.gather(
            self._safe_search(
                workspace_id, user_id, DocumentScope.PERSONAL, query_embedding, limit
            ),
            self._safe_search(workspace_id, None, DocumentScope.WORKSPACE, query_embedding, limit),
            self._safe_search(workspace_id, None, DocumentScope.SYNTHESIS, query_embedding, limit),
        )
        return TurnContext(personal=personal, shared=shared, synthesis=synthesis)

    def render(self, context: TurnContext) -> str:
        """
        Render turn context as a prompt block.

        Each document's content is capped at retrieval.context_max_chars.
        Returns an empty string when there is no context.
        """
        sections = [
            ("Your documents", context.personal),
            ("Shared documents", context.shared),
            ("World model", context.synthesis),
        ]
        cap = self.config.retrieval.context_max_chars

        blocks = []
        for heading, entries in sections:
            if not entries:
                continue
            lines = [f"## {heading}"]
            for entry in entries:
                lines.append(f"### {entry.title}\n{entry.content[:cap]}")
            blocks.append("\n\n".join(lines))

        return "\n\n".join(blocks)

    async def _safe_search(
        self,
        workspace_id: str,
        user_id: str | None,
        scope: DocumentScope,
        query_embedding: list[float],
        limit: int | None,
    ) -> list[RetrievedContext]:
        try:
            return await self._search(workspace_id, user_id, scope, query_embedding, limit)
        except Exception as e:
            logger.error(
                "Context search failed for scope",
                extra={"workspace_id": workspace_id, "scope": scope.value, "error": str(e)},
            )
            return []

    async def _search(
        self,
        workspace_id: str,
        user_id: str | None,
        scope: DocumentScope,
        query_embedding: list[float],
        limit: int | None,
    ) -> list[RetrievedContext]:
        limit = limit if limit is not None else self.config.retrieval.default_limit
        if limit <= 0:
            return []

        matches = await self.store.search_documents(
            workspace_id=workspace_id,
            query_embedding=query_embedding,
            scope=scope,
            user_id=user_id,
            limit=limit * self.config.retrieval.overfetch_factor,
        )
        return [
            RetrievedContext(title=m.document.title, content=m.document.content or "")
            for m in self.dedupe(matches, limit, self.config.retrieval.similarity_floor)
        ]

    @staticmethod
    def dedupe(matches: list[DocumentMatch], limit: int, floor: float) -> list[DocumentMatch]:
        """
        Keep the best hit per logical document, above the similarity floor.

        Args:
            matches: Nearest-neighbour hits (any order)
            limit: Maximum distinct logical documents
            floor: Hits at or below this similarity are discarded

        Returns:
            At most `limit` hits, one per logical document, best first
        """
        seen: set[str] = set()
        selected: list[DocumentMatch] = []

        for match in sorted(matches, key=lambda m: m.similarity, reverse=True):
            if match.similarity <= floor:
                break
            key = match.document.logical_id
            if key in seen:
                continue
            seen.add(key)
            selected.append(match)
            if len(selected) >= limit:
                break

        return selected
