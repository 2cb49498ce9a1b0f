"""Distance metrics for vector similarity."""

from __future__ import annotations

import enum
import math

import numpy as np


class Metric(enum.Enum):
    """Distance formula; lower values mean closer vectors.

    Euclidean is the squared Euclidean distance, since distances are only
    compared. Cosine is the cosine distance, one minus the similarity.
    """

    EUCLIDEAN = "euclidean"
    COSINE = "cosine"

    def distance(self, a, b) -> float | None:
        """Return the distance between two vectors, or None if their lengths differ."""
        x = np.asarray(a, dtype=np.float64)
        y = np.asarray(b, dtype=np.float64)
        if x.shape != y.shape:
            return None
        if self is Metric.EUCLIDEAN:
            diff = x - y
            return float(np.dot(diff, diff))
        ab = float(np.dot(x, y))
        aa = float(np.dot(x, x))
        bb = float(np.dot(y, y))
        if aa == 0.0 and bb == 0.0:
            return 0.0
        if ab == 0.0:
            return 1.0
        return max(0.0, 1.0 - ab / (math.sqrt(aa) * math.sqrt(bb)))

    @classmethod
    def parse(cls, value: str) -> Metric:
        """Parse a metric name, ignoring case."""
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError("Metric should be cosine or euclidean") from None

    def __str__(self) -> str:
        return self.value