import random

import pytest

from oasysdb.kmeans import KMeans
from oasysdb.metric import Metric
from oasysdb.vector import Vector


def generate_vectors(n):
    return [Vector([float(i)] * 3) for i in range(n)]


def evaluate_kmeans(n_clusters, vectors):
    kmeans = KMeans(n_clusters)
    kmeans.fit(vectors)
    assert len(kmeans.centroids()) == n_clusters

    assignments = kmeans.assignments()
    assert len(assignments) == len(vectors)
    correct = sum(
        1
        for vector, cluster in zip(vectors, assignments)
        if kmeans.find_nearest_centroid(vector) == cluster
    )
    assert correct / len(vectors) > 0.99


def test_kmeans_fit_1_to_1():
    evaluate_kmeans(1, generate_vectors(1))


def test_kmeans_fit_10_to_5():
    evaluate_kmeans(5, generate_vectors(10))


def test_kmeans_fit_100_to_10():
    evaluate_kmeans(10, generate_vectors(100))


def test_fit_rejects_too_few_vectors():
    kmeans = KMeans(5)
    with pytest.raises(ValueError):
        kmeans.fit(generate_vectors(3))


def test_separates_distant_groups():
    random.seed(7)
    vectors = [
        Vector([0.0, 0.0]),
        Vector([0.1, 0.0]),
        Vector([10.0, 10.0]),
        Vector([10.1, 10.0]),
    ]
    kmeans = KMeans(2)
    kmeans.fit(vectors)
    a = kmeans.assignments()
    assert a[0] == a[1]
    assert a[2] == a[3]
    assert a[0] != a[2]


def test_single_cluster_centroid_is_mean():
    vectors = [Vector([1.0, 2.0]), Vector([3.0, 4.0])]
    kmeans = KMeans(1)
    kmeans.fit(vectors)
    assert kmeans.centroids() == [Vector([2.0, 3.0])]
    assert kmeans.assignments() == [0, 0]


def test_cosine_metric_groups_by_direction():
    random.seed(3)
    vectors = [
        Vector([1.0, 0.0]),
        Vector([5.0, 0.1]),
        Vector([0.0, 1.0]),
        Vector([0.1, 7.0]),
    ]
    kmeans = KMeans(2, metric=Metric.COSINE)
    kmeans.fit(vectors)
    a = kmeans.assignments()
    assert a[0] == a[1]
    assert a[2] == a[3]
    assert a[0] != a[2]


def test_find_nearest_centroid_requires_fit():
    with pytest.raises(ValueError):
        KMeans(2).find_nearest_centroid(Vector([1.0]))