from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

ANOMALY_THRESHOLD_PERCENTILE = 0.95  # top 5% of distances are anomalies
DISTANCE_DECIMALS = 3


def distances_to_assigned(
    points: np.ndarray, centroids: np.ndarray, assignments: np.ndarray
) -> np.ndarray:
    """Distance from each point to the centroid it is assigned to."""
    if points.shape[0] == 0:
        return np.zeros(0, dtype=float)
    if points.shape[1] != centroids.shape[1]:
        return np.full(points.shape[0], np.inf)
    diff = points - centroids[assignments]
    return np.sqrt(np.sum(diff ** 2, axis=1))


def threshold_distance(distances: Sequence[float], percentile: float) -> float:
    """Distance at ``floor(n * percentile)`` in ascending order, clamped to the last index."""
    ordered = sorted(float(distance) for distance in distances)
    index = min(int(math.floor(len(ordered) * percentile)), len(ordered) - 1)
    return ordered[index]


def flag_anomalies(
    distances: Sequence[float], percentile: float = ANOMALY_THRESHOLD_PERCENTILE
) -> Tuple[List[bool], float]:
    """Flag distances strictly above the percentile threshold.

    Nothing is flagged when every distance is equal, e.g. a single tight
    cluster with zero spread. Returns the flags and the threshold used.
    """
    values = [float(distance) for distance in distances]
    if not values:
        return [], 0.0
    threshold = threshold_distance(values, percentile)
    all_same = min(values) == max(values)
    return [not all_same and value > threshold for value in values], threshold


def round_distance(distance: float) -> float:
    return round(float(distance), DISTANCE_DECIMALS)
