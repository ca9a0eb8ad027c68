"""
Digest generation - a short ranked memo of what mattered in a period.

Uses the same calibrated alignment as signal scoring and the same
structured-output LLM path as synthesis. Digests are non-critical: an LLM
failure is logged and yields no digest.
"""

from datetime import datetime

from worldmodel.config import Config
from worldmodel.core.llm.base import LLMProvider
from worldmodel.core.store.base import SynthesisStore
from worldmodel.models.canon import Canon, Digest, DigestOutput
from worldmodel.models.signal import Signal
from worldmodel.models.synthesis import Usage
from worldmodel.services.alignment import AlignmentScorer
from worldmodel.utils.exceptions import LLMError
from worldmodel.utils.id_generator import generate_digest_id
from worldmodel.utils.logger import get_logger

logger = get_logger(__name__)

DIGEST_TEMPERATURE = 0.3


class DigestGenerator:
    """
    Generates ranked "top things" digests for a workspace.

    Usage:
        generator = DigestGenerator(llm, store, config)
        digest = await generator.generate_digest("ws_1", week_start)
    """

    def __init__(
        self,
        llm: LLMProvider,
        store: SynthesisStore,
        config: Config,
        scorer: AlignmentScorer | None = None,
    ):
        self.llm = llm
        self.store = store
        self.config = config
        self.scorer = scorer or AlignmentScorer(config.alignment)

    async def generate_digest(self, workspace_id: str, period_start: datetime) -> Digest | None:
        """
        Build and store a digest of the signals captured since period_start.

        Args:
            workspace_id: Workspace to summarize
            period_start: Start of the period

        Returns:
            Stored digest, or None when there is no canon or the LLM call failed
        """
        canon = await self.store.get_latest_canon(workspace_id)
        if canon is None:
            logger.info("No canon set, skipping digest", extra={"workspace_id": workspace_id})
            return None

        signals = await self.store.list_signals(
            workspace_id,
            since=period_start,
            include_dismissed=False,
            limit=self.config.digest.max_signals,
        )
        prompt = self.build_prompt(canon, signals)

        try:
            completion = await self.llm.complete(
                prompt,
                response_format=DigestOutput,
                max_tokens=self.config.digest.max_tokens,
                temperature=DIGEST_TEMPERATURE,
            )
            output = (
                completion.result
                if isinstance(completion.result, DigestOutput)
                else DigestOutput.model_validate(completion.result)
            )
        except (LLMError, ValueError) as e:
            logger.error(
                "Failed to generate digest",
                extra={"workspace_id": workspace_id, "error": str(e)},
            )
            return None

        items = sorted(output.items, key=lambda item: item.rank)[: self.config.digest.max_items]
        digest = Digest(
            id=generate_digest_id(),
            workspace_id=workspace_id,
            period_start=period_start,
            summary=output.summary,
            items=items,
            usage=Usage.from_tokens(
                completion.input_tokens,
                completion.output_tokens,
                self.config.llm.input_price_cents_per_million,
                self.config.llm.output_price_cents_per_million,
            ),
        )
        await self.store.insert_digest(digest)

        logger.info(
            f"Digest generated: {digest.id}",
            extra={"workspace_id": workspace_id, "signals": len(signals), "items": len(items)},
        )
        return digest

    def build_prompt(self, canon: Canon, signals: list[Signal]) -> str:
        """Prompt listing the goals and the period's signals with their alignment."""
        lines = []
        for index, signal in enumerate(signals, start=1):
            if signal.embedding is not None and canon.embedding is not None:
                alignment = self.scorer.score(signal.embedding, canon.embedding)
                lines.append(f"[{index}] (alignment {alignment:.2f}) {signal.content}")
            else:
                lines.append(f"[{index}] {signal.content}")

        updates = "\n\n".join(lines) if lines else "(No updates in this period)"
        max_items = self.config.digest.max_items

        return (
            f"You are writing a Top {max_items} memo for an executive. "
            "Be brutally concise: plain words, specific numbers, no jargon.\n\n"
            f"GOALS:\n{canon.content}\n\n"
            f"UPDATES THIS PERIOD ({len(signals)} items, alignment with the goals "
            "from 0 to 1 where known):\n"
            f"{updates}\n\n"
            "FORMAT RULES:\n"
            "- summary: 1-2 sentences, max 20 words.\n"
            "- title: max 8 words, plain language, no subtitles.\n"
            "- detail: 1 sentence, max 15 words.\n"
            '- priority: "critical" = today, "high" = this week, '
            '"medium" = track it, "low" = note it.\n\n'
            f"Return at most {max_items} items ranked by impact on the goals."
        )
