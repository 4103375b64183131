"""
Face Matcher

Nearest-neighbour classification of probe embeddings against a user's
labelled templates, with a distance-based rejection threshold.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.spatial.distance import cdist

from config import MATCH_THRESHOLD, UNKNOWN_LABEL


@dataclass
class LabeledReferenceSet:
    """All enrolled embeddings of one template."""
    label: str
    embeddings: List[np.ndarray]


@dataclass
class MatchResult:
    """Best match for one probe face."""
    label: str
    distance: Optional[float]

    @property
    def is_unknown(self) -> bool:
        return self.label == UNKNOWN_LABEL

    def to_dict(self) -> Dict:
        return {
            'label': self.label,
            'distance': self.distance
        }


class FaceMatcher:
    """
    Euclidean nearest-neighbour matcher.

    Reference embeddings from every set are stacked into one (N, D)
    matrix in enumeration order, so np.argmin resolves ties in favour of
    the earliest template.
    """

    def __init__(self, reference_sets: Sequence[LabeledReferenceSet], threshold: float = None):
        """
        Args:
            reference_sets: Labelled reference embeddings, in template order
            threshold: Max accepted distance (default: MATCH_THRESHOLD from config)

        Raises:
            ValueError: if reference embeddings differ in dimension
        """
        self.threshold = MATCH_THRESHOLD if threshold is None else threshold
        self._labels: List[str] = []
        rows = []

        for reference in reference_sets:
            for embedding in reference.embeddings:
                rows.append(np.asarray(embedding, dtype=np.float64).ravel())
                self._labels.append(reference.label)

        if rows:
            dims = {row.shape[0] for row in rows}
            if len(dims) != 1:
                raise ValueError(f"Reference embeddings have mixed dimensions: {sorted(dims)}")
            self._matrix = np.vstack(rows)
        else:
            self._matrix = None

    @classmethod
    def from_templates(cls, templates: List[Dict], threshold: float = None) -> "FaceMatcher":
        """Build a matcher from stored template documents ({label, embeddings})."""
        return cls(
            [LabeledReferenceSet(label=t['label'], embeddings=t.get('embeddings') or []) for t in templates],
            threshold=threshold
        )

    @property
    def reference_count(self) -> int:
        return len(self._labels)

    def find_best_match(self, probe: np.ndarray) -> MatchResult:
        """
        Classify one probe embedding.

        Returns the label of the closest reference, or UNKNOWN_LABEL when
        the closest distance exceeds the threshold or there are no references.
        """
        if self._matrix is None:
            return MatchResult(label=UNKNOWN_LABEL, distance=None)

        probe = np.asarray(probe, dtype=np.float64).reshape(1, -1)
        if probe.shape[1] != self._matrix.shape[1]:
            raise ValueError(
                f"Probe has {probe.shape[1]} dimensions, references have {self._matrix.shape[1]}"
            )

        distances = cdist(probe, self._matrix, metric='euclidean')[0]
        best_idx = int(np.argmin(distances))
        best_distance = float(distances[best_idx])

        if best_distance > self.threshold:
            return MatchResult(label=UNKNOWN_LABEL, distance=best_distance)
        return MatchResult(label=self._labels[best_idx], distance=best_distance)

    def match_all(self, probes: Sequence[np.ndarray]) -> List[MatchResult]:
        """Classify probes, preserving input order."""
        return [self.find_best_match(probe) for probe in probes]
