"""
Alignment / drift scoring.

Raw cosine similarity between short business texts clusters tightly in the
middle of [-1, 1]. Scores are remapped linearly from a calibration band to
[0, 1] so differences between observations stay visible.
"""

from collections.abc import Sequence

import numpy as np

from worldmodel.config import AlignmentConfig
from worldmodel.models.canon import AlignmentScore
from worldmodel.utils.exceptions import ValidationError


class AlignmentScorer:
    """
    Calibrated alignment and drift of an observation against a reference.

    Usage:
        scorer = AlignmentScorer()
        alignment = scorer.score(signal.embedding, canon.embedding)
        drift = scorer.drift(signal.embedding, canon.embedding)
    """

    def __init__(self, config: AlignmentConfig | None = None):
        self.config = config or AlignmentConfig()

    @staticmethod
    def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
        """
        Cosine similarity of two vectors. Zero-magnitude vectors score 0.

        Raises:
            ValidationError: If the vectors differ in dimension
        """
        va = np.asarray(a, dtype=float)
        vb = np.asarray(b, dtype=float)
        if va.shape != vb.shape:
            raise ValidationError(
                "Cannot compare embeddings of different dimensions",
                context={"left": va.shape[0], "right": vb.shape[0]},
            )

        magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
        if magnitude == 0.0 or not np.isfinite(magnitude):
            return 0.0
        return float(np.dot(va, vb) / magnitude)

    def calibrate(self, similarity: float) -> float:
        """Remap a raw similarity from [floor, ceiling] to [0, 1], clamped."""
        span = self.config.ceiling - self.config.floor
        calibrated = (similarity - self.config.floor) / span
        if not np.isfinite(calibrated):
            return 0.0
        return min(1.0, max(0.0, calibrated))

    def score(
        self, observation: Sequence[float], reference: Sequence[float] | None
    ) -> float:
        """
        Calibrated alignment in [0, 1].

        Returns the neutral value when there is no reference.
        """
        if reference is None:
            return self.config.neutral
        return self.calibrate(self.cosine_similarity(observation, reference))

    def alignment(
        self, observation: Sequence[float], reference: Sequence[float] | None
    ) -> float:
        return self.score(observation, reference)

    def drift(self, observation: Sequence[float], reference: Sequence[float] | None) -> float:
        """1 - alignment, clamped to [0, 1]."""
        return min(1.0, max(0.0, 1.0 - self.score(observation, reference)))

    def evaluate(
        self, observation: Sequence[float], reference: Sequence[float] | None
    ) -> AlignmentScore:
        """Alignment and drift together."""
        alignment = self.score(observation, reference)
        return AlignmentScore(
            alignment=alignment,
            drift=min(1.0, max(0.0, 1.0 - alignment)),
            has_reference=reference is not None,
        )
