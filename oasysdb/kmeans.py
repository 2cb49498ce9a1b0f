"""K-means clustering over vectors."""

from __future__ import annotations

import random
from collections.abc import Sequence

import numpy as np

from oasysdb.metric import Metric
from oasysdb.vector import Vector

# Only this many assignments are compared when checking for convergence.
_CONVERGENCE_WINDOW = 1000
# Stop after this many consecutive rounds without a change in assignments.
_PATIENCE = 3


def _distances(metric: Metric, points: np.ndarray, target: np.ndarray) -> np.ndarray:
    """Return the distance from each row of ``points`` to ``target``."""
    x = points.astype(np.float64, copy=False)
    y = target.astype(np.float64, copy=False)
    if metric is Metric.EUCLIDEAN:
        diff = x - y
        return np.einsum("ij,ij->i", diff, diff)

    ab = x @ y
    aa = np.einsum("ij,ij->i", x, x)
    bb = float(y @ y)
    with np.errstate(divide="ignore", invalid="ignore"):
        cosine = 1.0 - ab / (np.sqrt(aa) * np.sqrt(bb))
    cosine = np.maximum(cosine, 0.0)
    cosine = np.where(ab == 0.0, 1.0, cosine)
    cosine = np.where((aa == 0.0) & (bb == 0.0), 0.0, cosine)
    return cosine


class KMeans:
    """Partition vectors into clusters around iteratively refined centroids.

    Centroids are seeded with k-means++ and refined until the assignments
    stop changing or ``max_iter`` rounds have run.
    """

    def __init__(
        self,
        n_clusters: int,
        metric: Metric = Metric.EUCLIDEAN,
        max_iter: int = 100,
    ) -> None:
        self.n_clusters = n_clusters
        self.metric = metric
        self.max_iter = max_iter
        self._assignments: list[int] = []
        self._centroids: list[Vector] = []

    def fit(self, vectors: Sequence[Vector]) -> None:
        """Train the clusters on the given vectors."""
        if self.n_clusters > len(vectors):
            raise ValueError("Dataset is smaller than cluster configuration.")

        data = np.stack([np.asarray(v, dtype=np.float32) for v in vectors])
        centroids = self._initialize_centroids(data)
        assignments = np.zeros(len(data), dtype=np.int64)

        window = min(_CONVERGENCE_WINDOW, len(data))
        unchanged = 0
        for _ in range(self.max_iter):
            if unchanged > _PATIENCE:
                break
            new_assignments = self._assign_clusters(data, centroids)
            if np.array_equal(new_assignments[:window], assignments[:window]):
                unchanged += 1
            else:
                unchanged = 0
            assignments = new_assignments
            centroids = self._update_centroids(data, assignments)

        self._assignments = [int(a) for a in assignments]
        self._centroids = [Vector(c) for c in centroids]

    def _initialize_centroids(self, data: np.ndarray) -> list[np.ndarray]:
        centroids = [data[random.randrange(len(data))].copy()]
        for _ in range(1, self.n_clusters):
            nearest = np.min(
                np.stack([_distances(self.metric, data, c) for c in centroids]),
                axis=0,
            )
            # Pick the next centroid with probability proportional to distance.
            threshold = random.random() * float(nearest.sum())
            cumulative = 0.0
            for point, distance in zip(data, nearest):
                cumulative += float(distance)
                if cumulative >= threshold:
                    centroids.append(point.copy())
                    break
        return centroids

    def _assign_clusters(
        self, data: np.ndarray, centroids: Sequence[np.ndarray]
    ) -> np.ndarray:
        table = np.stack([_distances(self.metric, data, c) for c in centroids])
        return np.argmin(table, axis=0)

    def _update_centroids(
        self, data: np.ndarray, assignments: np.ndarray
    ) -> list[np.ndarray]:
        dimension = data.shape[1]
        centroids: list[np.ndarray] = []
        for cluster in range(self.n_clusters):
            members = data[assignments == cluster]
            if len(members) == 0:
                # Reseed an empty cluster with a random point.
                centroids.append(data[random.randrange(len(data))].copy())
                continue
            total = members.sum(axis=0, dtype=np.float32).reshape(dimension)
            centroids.append((total / np.float32(len(members))).astype(np.float32))
        return centroids

    def find_nearest_centroid(self, vector: Vector) -> int:
        """Return the index of the centroid nearest to the vector."""
        if not self._centroids:
            raise ValueError("The model has no centroids; call fit first")
        table = np.stack([np.asarray(c, dtype=np.float32) for c in self._centroids])
        target = np.asarray(vector, dtype=np.float32)
        return int(np.argmin(_distances(self.metric, table, target)))

    def assignments(self) -> list[int]:
        """Return the cluster index of each fitted point, in input order."""
        return list(self._assignments)

    def centroids(self) -> list[Vector]:
        """Return the centroid of each cluster."""
        return list(self._centroids)