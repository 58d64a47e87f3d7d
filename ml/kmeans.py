"""K-Means (Lloyd's algorithm) over a dense feature matrix.

The random source is injectable everywhere it is used: both the initial
centroid draw and the empty-cluster recovery pull from the same generator,
so a seeded ``numpy.random.Generator`` makes a whole run reproducible.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_K_CLUSTERS = 3
MAX_KMEANS_ITERATIONS = 20
CONVERGENCE_TOLERANCE = 0.001


@dataclass
class ClusteringResult:
    assignments: np.ndarray
    centroids: np.ndarray
    iterations: int
    converged: bool


def _default_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def euclidean_distance(point: np.ndarray, other: np.ndarray) -> float:
    """Distance between two vectors; vectors of different length are infinitely apart."""
    point = np.asarray(point, dtype=float)
    other = np.asarray(other, dtype=float)
    if point.shape != other.shape:
        return float("inf")
    return float(np.sqrt(np.sum((point - other) ** 2)))


def pairwise_distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Return an ``(n_points, n_centroids)`` matrix of Euclidean distances."""
    if points.shape[1] != centroids.shape[1]:
        return np.full((points.shape[0], centroids.shape[0]), np.inf)
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sqrt(np.sum(diff ** 2, axis=2))


def initialize_centroids(
    points: np.ndarray, k: int, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Pick ``k`` distinct input vectors as starting centroids.

    All vectors are shuffled and the first ``k`` taken. The result is a copy,
    so later centroid updates never touch the input matrix.
    """
    rng = _default_rng(rng)
    order = np.asarray(rng.permutation(points.shape[0]))
    return points[order[:k]].astype(float, copy=True)


def assign_clusters(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    # argmin returns the first minimum, so ties go to the lowest centroid index
    return np.argmin(pairwise_distances(points, centroids), axis=1)


def update_centroids(
    points: np.ndarray,
    assignments: np.ndarray,
    k: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Move each centroid to the mean of its members.

    A cluster left without members is re-seeded with a copy of a uniformly
    random input vector instead of the mean of nothing.
    """
    rng = _default_rng(rng)
    n_points, n_features = points.shape
    centroids = np.zeros((k, n_features), dtype=float)
    for cluster in range(k):
        members = points[assignments == cluster]
        if len(members) == 0:
            index = int(rng.integers(n_points))
            logger.debug("Cluster %d is empty; re-seeding from point %d", cluster, index)
            centroids[cluster] = points[index]
        else:
            centroids[cluster] = members.mean(axis=0)
    return centroids


def run_lloyd(
    points: np.ndarray,
    initial_centroids: np.ndarray,
    max_iterations: int = MAX_KMEANS_ITERATIONS,
    rng: Optional[np.random.Generator] = None,
    tolerance: float = CONVERGENCE_TOLERANCE,
) -> ClusteringResult:
    """Alternate assignment and update rounds until the centroids settle.

    Convergence is only checked once the first round has completed: the run
    stops when no centroid moved farther than ``tolerance``, or after
    ``max_iterations`` rounds. The returned assignments are those of the last
    round and the centroids those produced by its update.
    """
    if max_iterations < 1:
        raise ValueError("max_iterations must be a positive integer.")
    rng = _default_rng(rng)
    points = np.asarray(points, dtype=float)
    centroids = np.array(initial_centroids, dtype=float, copy=True)
    k = centroids.shape[0]

    assignments = np.zeros(points.shape[0], dtype=int)
    iterations = 0
    converged = False
    for iteration in range(max_iterations):
        assignments = assign_clusters(points, centroids)
        new_centroids = update_centroids(points, assignments, k, rng)
        shifts = [
            euclidean_distance(centroids[cluster], new_centroids[cluster])
            for cluster in range(k)
        ]
        centroids = new_centroids
        iterations = iteration + 1
        if iteration > 0 and all(shift <= tolerance for shift in shifts):
            converged = True
            break

    logger.debug(
        "Lloyd iteration finished after %d round(s) (converged=%s)", iterations, converged
    )
    return ClusteringResult(
        assignments=assignments,
        centroids=centroids,
        iterations=iterations,
        converged=converged,
    )


def fit_kmeans(
    points: np.ndarray,
    k: int = DEFAULT_K_CLUSTERS,
    max_iterations: int = MAX_KMEANS_ITERATIONS,
    rng: Optional[np.random.Generator] = None,
) -> ClusteringResult:
    rng = _default_rng(rng)
    centroids = initialize_centroids(points, k, rng)
    return run_lloyd(points, centroids, max_iterations=max_iterations, rng=rng)
