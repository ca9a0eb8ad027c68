"""
Synthesis commit engine.

Folds a workspace's unprocessed signals into its synthesis documents:
one LLM call proposes create / modify / delete operations against a
snapshot of the current documents, and the whole batch is written as a
single commit whose parent is the head the run observed.
"""

import json
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from worldmodel.config import Config
from worldmodel.core.chunking.chunker import DocumentChunker
from worldmodel.core.embeddings.gateway import EmbeddingGateway
from worldmodel.core.llm.base import LLMProvider
from worldmodel.core.store.base import CommitBatch, DocumentMutation, SynthesisStore
from worldmodel.models.commit import ChangeType, Commit, SynthesisTrigger
from worldmodel.models.document import Document, DocumentScope
from worldmodel.models.signal import Signal
from worldmodel.models.synthesis import (
    NO_NEW_SIGNALS_SUMMARY,
    NO_SIGNALS_SUMMARY,
    CreateOperation,
    DeleteOperation,
    ModifyOperation,
    SynthesisOutput,
    SynthesisResult,
    Usage,
)
from worldmodel.services.document_service import DocumentPlanner
from worldmodel.utils.exceptions import LLMError, SynthesisConflictError, SynthesisError
from worldmodel.utils.id_generator import generate_commit_id, generate_document_id
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)


class SynthesisEngine:
    """
    Runs synthesis for one workspace at a time.

    Guarantees:
    - Each signal is linked to at most one commit
    - Operations referencing unknown document ids are ignored
    - A failed run leaves no document change behind
    - A run that lost a race with a concurrent run raises
      SynthesisConflictError (retried up to synthesis.max_conflict_retries)
    """

    def __init__(
        self,
        llm: LLMProvider,
        store: SynthesisStore,
        gateway: EmbeddingGateway,
        config: Config,
        chunker: DocumentChunker | None = None,
    ):
        """
        Initialize synthesis engine.

        Args:
            llm: LLM provider for structured output
            store: Synthesis store
            gateway: Embedding gateway for document embeddings
            config: Configuration object
            chunker: Optional chunker (built from config if not provided)
        """
        self.llm = llm
        self.store = store
        self.config = config
        self.planner = DocumentPlanner(
            gateway=gateway,
            chunker=chunker or DocumentChunker(config.chunking),
            config=config,
        )

    async def run_synthesis(
        self,
        workspace_id: str,
        trigger: SynthesisTrigger = SynthesisTrigger.MANUAL,
    ) -> SynthesisResult:
        """
        Fold unprocessed signals into the synthesis documents.

        Args:
            workspace_id: Workspace to synthesize
            trigger: What started the run

        Returns:
            SynthesisResult; commit_id is None when there was nothing to do

        Raises:
            SynthesisError: LLM failure or malformed output (nothing written)
            SynthesisConflictError: A concurrent run committed first
        """
        attempts = self.config.synthesis.max_conflict_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return await self._run_once(workspace_id, trigger)
            except SynthesisConflictError as e:
                if attempt >= attempts:
                    logger.warning(
                        "Synthesis conflict, giving up",
                        extra={"workspace_id": workspace_id, "attempt": attempt, **e.context},
                    )
                    raise
                logger.warning(
                    "Synthesis conflict, retrying with fresh state",
                    extra={"workspace_id": workspace_id, "attempt": attempt, **e.context},
                )

    async def _run_once(self, workspace_id: str, trigger: SynthesisTrigger) -> SynthesisResult:
        # 1. Anything at all?
        if await self.store.count_signals(workspace_id, include_dismissed=False) == 0:
            return SynthesisResult(trigger=trigger, summary=NO_SIGNALS_SUMMARY)

        # 2. Anything new?
        pending = await self.store.list_unprocessed_signals(workspace_id)
        if not pending:
            return SynthesisResult(trigger=trigger, summary=NO_NEW_SIGNALS_SUMMARY)

        # 3. Snapshot documents and head
        documents = await self.store.list_documents(workspace_id, DocumentScope.SYNTHESIS)
        head = await self.store.get_head_commit(workspace_id)

        logger.info(
            f"Synthesizing {len(pending)} signals against {len(documents)} documents",
            extra={
                "workspace_id": workspace_id,
                "trigger": trigger.value,
                "head": head.id if head else None,
            },
        )

        # 4. Ask the model
        output, usage = await self._propose(workspace_id, documents, pending)

        # 5. Plan operations against the snapshot
        mutations = await self._plan_mutations(workspace_id, documents, output)

        # 6-8. Commit, link every pending signal, apply in-scope priorities
        pending_ids = [signal.id for signal in pending]
        pending_set = set(pending_ids)
        recommendations = [
            r for r in output.priority_recommendations if r.signal_id in pending_set
        ]

        commit = Commit(
            id=generate_commit_id(),
            workspace_id=workspace_id,
            parent_id=head.id if head else None,
            summary=output.commit_summary,
            trigger=trigger,
            signal_count=len(pending),
        )
        await self.store.apply_commit(
            CommitBatch(
                commit=commit,
                mutations=mutations,
                signal_ids=pending_ids,
                priority_updates={r.signal_id: r.recommended_priority for r in recommendations},
            )
        )

        logger.info(
            f"Synthesis committed: {commit.id}",
            extra={
                "workspace_id": workspace_id,
                "commit_id": commit.id,
                "signals": len(pending),
                "operations": len(output.operations),
                "applied": len(mutations),
                "cost_cents": usage.estimated_cost_cents,
            },
        )

        # 9. Result
        return SynthesisResult(
            commit_id=commit.id,
            parent_id=commit.parent_id,
            trigger=trigger,
            summary=output.commit_summary,
            operations=output.operations,
            applied_operations=len(mutations),
            priority_recommendations=recommendations,
            processed_count=len(pending),
            usage=usage,
        )

    async def _propose(
        self, workspace_id: str, documents: list[Document], signals: list[Signal]
    ) -> tuple[SynthesisOutput, Usage]:
        """Call the LLM and validate its command batch."""
        prompt = self.build_prompt(documents, signals)

        try:
            completion = await self.llm.complete(
                prompt,
                response_format=SynthesisOutput,
                system=self.config.synthesis.system_prompt,
                max_tokens=self.config.synthesis.max_tokens,
                temperature=self.config.llm.temperature,
            )
        except LLMError as e:
            logger.error(
                "Synthesis LLM call failed",
                extra={"workspace_id": workspace_id, "error": str(e)},
            )
            raise SynthesisError(
                f"Synthesis failed: {e.message}", context={"workspace_id": workspace_id}
            ) from e

        try:
            output = (
                completion.result
                if isinstance(completion.result, SynthesisOutput)
                else SynthesisOutput.model_validate(completion.result)
            )
        except PydanticValidationError as e:
            raise SynthesisError(
                f"Synthesis output did not match the schema: {e}",
                context={"workspace_id": workspace_id},
            ) from e

        usage = Usage.from_tokens(
            completion.input_tokens,
            completion.output_tokens,
            self.config.llm.input_price_cents_per_million,
            self.config.llm.output_price_cents_per_million,
        )
        return output, usage

    async def _plan_mutations(
        self, workspace_id: str, documents: list[Document], output: SynthesisOutput
    ) -> list[DocumentMutation]:
        """
        Turn operations into document mutations, in order.

        Only ids present in the loaded snapshot can be modified or deleted;
        documents created earlier in the same batch are not targetable.
        Anything else is skipped with a debug log.
        """
        snapshot = {document.id: document for document in documents}
        mutations: list[DocumentMutation] = []

        for operation in output.operations:
            now = datetime.now()

            if isinstance(operation, CreateOperation):
                document = Document(
                    id=generate_document_id(),
                    workspace_id=workspace_id,
                    scope=DocumentScope.SYNTHESIS,
                    title=operation.title,
                    content=operation.content,
                    created_at=now,
                    updated_at=now,
                )
                document, chunks = await self.planner.prepare(document)
                mutations.append(
                    DocumentMutation(
                        change_type=ChangeType.CREATED, document=document, chunks=chunks
                    )
                )

            elif isinstance(operation, ModifyOperation):
                current = snapshot.get(operation.document_id) if operation.document_id else None
                if current is None:
                    logger.debug(
                        "Ignoring modify of unknown document",
                        extra={"workspace_id": workspace_id, "document_id": operation.document_id},
                    )
                    continue
                document = current.model_copy(
                    update={
                        "title": operation.title,
                        "content": operation.content,
                        "updated_at": now,
                    }
                )
                document, chunks = await self.planner.prepare(document)
                snapshot[document.id] = document
                mutations.append(
                    DocumentMutation(
                        change_type=ChangeType.MODIFIED, document=document, chunks=chunks
                    )
                )

            elif isinstance(operation, DeleteOperation):
                current = (
                    snapshot.pop(operation.document_id, None) if operation.document_id else None
                )
                if current is None:
                    logger.debug(
                        "Ignoring delete of unknown document",
                        extra={"workspace_id": workspace_id, "document_id": operation.document_id},
                    )
                    continue
                mutations.append(
                    DocumentMutation(change_type=ChangeType.DELETED, document=current)
                )

        return mutations

    @staticmethod
    def build_prompt(documents: list[Document], signals: list[Signal]) -> str:
        """User prompt listing the current documents and the signals to fold in."""
        document_rows = [
            {"id": document.id, "title": document.title, "content": document.content or ""}
            for document in documents
        ]
        signal_rows = [
            {
                "id": signal.id,
                "content": signal.content,
                "aiPriority": signal.ai_priority.value if signal.ai_priority else None,
            }
            for signal in signals
        ]

        return "\n".join(
            [
                "Current synthesis documents:",
                json.dumps(document_rows, indent=2) if document_rows else "[]",
                "",
                "New signals to process:",
                json.dumps(signal_rows, indent=2),
            ]
        )
