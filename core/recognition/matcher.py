"""Nearest-neighbour matching of a probe descriptor against enrolled faces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import numpy as np

from .descriptors import DESCRIPTOR_LENGTH, as_descriptor

DEFAULT_THRESHOLD = 0.6


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    left = np.asarray(a, dtype=np.float64)
    right = np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.sum((left - right) ** 2)))


def confidence_from_distance(distance: float) -> float:
    """Map a distance to the 0-100 confidence reported to clients."""
    score = (1.0 - float(distance)) * 100.0
    return round(max(0.0, min(100.0, score)), 1)


@dataclass(frozen=True)
class MatchResult:
    student_id: Optional[str]
    distance: Optional[float]
    confidence: float = 0.0

    @property
    def matched(self) -> bool:
        return self.student_id is not None

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "distance": None if self.distance is None else round(self.distance, 6),
            "confidence": self.confidence,
            "matched": self.matched,
        }


class Matcher:
    """Selects the enrolled identity closest to a probe descriptor.

    A match is declared only when the smallest distance is strictly below
    ``threshold``. Ties resolve to the first identity in the mapping's
    iteration order.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        descriptor_length: int = DESCRIPTOR_LENGTH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.threshold = float(threshold)
        self.descriptor_length = int(descriptor_length)
        self._logger = logger or logging.getLogger(__name__)

    def distances(self, probe: Sequence[float], enrolled: Mapping[str, Sequence[float]]) -> np.ndarray:
        probe_vec = as_descriptor(probe, self.descriptor_length)
        if not enrolled:
            return np.empty(0, dtype=np.float64)
        stacked = np.vstack([
            as_descriptor(vector, self.descriptor_length, field=f"descriptor of {identity}")
            for identity, vector in enrolled.items()
        ])
        return np.sqrt(np.sum((stacked - probe_vec) ** 2, axis=1))

    def match(self, probe: Sequence[float], enrolled: Mapping[str, Sequence[float]]) -> MatchResult:
        distances = self.distances(probe, enrolled)
        if distances.size == 0:
            self._logger.debug("[Matcher] No enrolled descriptors")
            return MatchResult(student_id=None, distance=None)

        # argmin returns the first index on ties
        best_index = int(np.argmin(distances))
        best_distance = float(distances[best_index])
        if best_distance >= self.threshold:
            self._logger.debug(
                "[Matcher] No match: best distance %.4f >= %.2f", best_distance, self.threshold
            )
            return MatchResult(student_id=None, distance=best_distance)

        identity = list(enrolled.keys())[best_index]
        return MatchResult(
            student_id=identity,
            distance=best_distance,
            confidence=confidence_from_distance(best_distance),
        )


__all__ = [
    "DEFAULT_THRESHOLD",
    "MatchResult",
    "Matcher",
    "confidence_from_distance",
    "euclidean_distance",
]
