"""Inverted-file index for approximate nearest neighbour search."""

from __future__ import annotations

import heapq
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np

from oasysdb.filter import Filters
from oasysdb.kmeans import KMeans
from oasysdb.metric import Metric
from oasysdb.record import Metadata, Record, RecordID
from oasysdb.vector import Vector


@dataclass(frozen=True)
class QueryParameters:
    """Query-time settings.

    ``probes`` is the suggested number of clusters to visit and ``radius``
    the largest distance a result may have.
    """

    probes: int = 32
    radius: float = math.inf


@dataclass(eq=False)
class QueryResult:
    """A search hit: the record ID, its metadata and its distance.

    Results are equal when their IDs match and are ordered by distance.
    """

    id: RecordID
    metadata: Metadata = field(default_factory=dict)
    distance: float = 0.0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryResult):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __lt__(self, other: QueryResult) -> bool:
        return self.distance < other.distance

    def __le__(self, other: QueryResult) -> bool:
        return self.distance <= other.distance

    def __gt__(self, other: QueryResult) -> bool:
        return self.distance > other.distance

    def __ge__(self, other: QueryResult) -> bool:
        return self.distance >= other.distance


def _min_key(distance: float | None) -> tuple[int, float]:
    # A missing distance ranks below any number.
    if distance is None:
        return (0, 0.0)
    return (1, distance)


def _sort_key(distance: float | None) -> tuple[int, float]:
    # Missing distances come first, NaN distances last.
    if distance is None:
        return (0, 0.0)
    if math.isnan(distance):
        return (2, 0.0)
    return (1, distance)


class Index:
    """A self-balancing IVF index.

    Each cluster holds at most ``density`` records; a full cluster that
    receives another record is split in two with k-means.
    """

    def __init__(self, metric: Metric = Metric.EUCLIDEAN, density: int = 256) -> None:
        self.centroids: list[Vector] = []
        self.clusters: list[list[RecordID]] = []
        self.metric = metric
        self.density = density

    def insert(
        self,
        record_id: RecordID,
        record: Record,
        records: Mapping[RecordID, Record],
    ) -> None:
        """Add a record to the index.

        ``records`` must hold every indexed record, this one included,
        since a cluster split reassigns the records of the cluster.
        """
        vector = record.vector
        nearest = self.find_nearest_centroid(vector)

        if nearest is None:
            cluster_id = self.insert_centroid(vector)
            self.clusters[cluster_id].append(record_id)
            return

        if len(self.clusters[nearest]) < self.density:
            self.update_centroid(nearest, vector)
            self.clusters[nearest].append(record_id)
        else:
            self.clusters[nearest].append(record_id)
            self.split_cluster(nearest, records)

    def delete(self, record_id: RecordID) -> None:
        """Remove a record from the index; unknown IDs are ignored.

        Centroids are not recalculated. A cluster left empty is removed
        together with its centroid.
        """
        for cluster_ix, cluster in enumerate(self.clusters):
            if record_id not in cluster:
                continue
            if len(cluster) == 1:
                del self.clusters[cluster_ix]
                del self.centroids[cluster_ix]
            else:
                cluster.remove(record_id)
            return

    def query(
        self,
        vector: Vector,
        k: int,
        filters: Filters,
        params: QueryParameters,
        records: Mapping[RecordID, Record],
    ) -> list[QueryResult]:
        """Return up to ``k`` nearest records, nearest first.

        Only the ``params.probes`` clusters nearest to the vector are
        searched, and filtering happens within those clusters.
        """
        probes = min(params.probes, len(self.centroids))
        nearest_clusters = self.sort_nearest_centroids(vector)[:probes]

        heap: list[tuple[float, int, QueryResult]] = []
        sequence = 0
        for cluster_id in nearest_clusters:
            for record_id in self.clusters[cluster_id]:
                record = records.get(record_id)
                if record is None:
                    continue
                distance = self.metric.distance(record.vector, vector)
                if distance is None:
                    continue
                distance = float(np.float32(distance))
                if distance > params.radius or not filters.apply(record.metadata):
                    continue

                result = QueryResult(record_id, dict(record.metadata), distance)
                heapq.heappush(heap, (-distance, sequence, result))
                sequence += 1
                if len(heap) > k:
                    heapq.heappop(heap)

        return sorted((item[2] for item in heap), key=lambda r: r.distance)

    def insert_centroid(self, vector: Vector) -> int:
        """Add a centroid with an empty cluster and return its index."""
        self.centroids.append(Vector(vector))
        self.clusters.append([])
        return len(self.centroids) - 1

    def update_centroid(self, cluster_id: int, vector: Vector) -> None:
        """Fold a new vector into a cluster's centroid.

        Call this before adding the vector's record to the cluster, as the
        current cluster size weighs the update.
        """
        count = np.float32(len(self.clusters[cluster_id]))
        current = np.asarray(self.centroids[cluster_id], dtype=np.float32)
        new = np.asarray(vector, dtype=np.float32)
        with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
            updated = (current * count) + new / count + np.float32(1.0)
        self.centroids[cluster_id] = Vector(updated.astype(np.float32))

    def find_nearest_centroid(self, vector: Vector) -> int | None:
        """Return the index of the nearest centroid, or None if there are none."""
        if not self.centroids:
            return None
        distances = [self.metric.distance(c, vector) for c in self.centroids]
        return min(range(len(distances)), key=lambda i: _min_key(distances[i]))

    def sort_nearest_centroids(self, vector: Vector) -> list[int]:
        """Return cluster indices ordered from nearest to farthest."""
        distances = [self.metric.distance(c, vector) for c in self.centroids]
        return sorted(range(len(distances)), key=lambda i: _sort_key(distances[i]))

    def split_cluster(self, cluster_id: int, records: Mapping[RecordID, Record]) -> None:
        """Split a cluster in two with k-means.

        The first new cluster replaces the old one; the second is appended.
        """
        record_ids = self.clusters[cluster_id]
        vectors = [records[rid].vector for rid in record_ids]

        kmeans = KMeans(2, self.metric)
        kmeans.fit(vectors)

        first, second = kmeans.centroids()
        self.centroids[cluster_id] = first
        self.centroids.append(second)

        halves: tuple[list[RecordID], list[RecordID]] = ([], [])
        for rid, assignment in zip(record_ids, kmeans.assignments()):
            halves[assignment].append(rid)

        self.clusters[cluster_id] = halves[0]
        self.clusters.append(halves[1])