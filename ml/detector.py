"""End-to-end K-Means anomaly detection over caller-supplied records."""
from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .features import FeatureMatrix, extract_features
from .kmeans import (
    DEFAULT_K_CLUSTERS,
    MAX_KMEANS_ITERATIONS,
    ClusteringResult,
    fit_kmeans,
)
from .scoring import (
    ANOMALY_THRESHOLD_PERCENTILE,
    distances_to_assigned,
    flag_anomalies,
    round_distance,
)

logger = logging.getLogger(__name__)


@dataclass
class DetectionReport:
    results: List[Dict[str, Any]]
    threshold: float
    features: FeatureMatrix
    clustering: Optional[ClusteringResult] = None

    @property
    def anomaly_count(self) -> int:
        return sum(1 for result in self.results if result["isAnomaly"])


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool) and value >= 1


def _validate_parameters(k: int, max_iterations: int, percentile: float) -> None:
    if not _is_positive_int(k):
        raise ValueError("k must be a positive integer.")
    if not _is_positive_int(max_iterations):
        raise ValueError("max_iterations must be a positive integer.")
    if not 0 < percentile <= 1:
        raise ValueError("anomaly_threshold_percentile must be within (0, 1].")


def _scored(record: Mapping[str, Any], is_anomaly: bool, distance: float, cluster: int) -> Dict[str, Any]:
    scored = dict(record)
    scored["isAnomaly"] = bool(is_anomaly)
    scored["distanceToCentroid"] = distance
    scored["cluster"] = int(cluster)
    return scored


def _unclustered(records: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [_scored(record, False, 0.0, 0) for record in records]


def run_detection(
    records: Sequence[Mapping[str, Any]],
    feature_keys: Sequence[str],
    k: int = DEFAULT_K_CLUSTERS,
    max_iterations: int = MAX_KMEANS_ITERATIONS,
    anomaly_threshold_percentile: float = ANOMALY_THRESHOLD_PERCENTILE,
    rng: Optional[np.random.Generator] = None,
) -> DetectionReport:
    """Cluster ``records`` on ``feature_keys`` and score each by distance to its centroid.

    Data problems never raise: with no usable features, or fewer records than
    clusters, every record comes back unflagged in cluster 0 at distance 0.
    """
    _validate_parameters(k, max_iterations, anomaly_threshold_percentile)
    features = extract_features(records, feature_keys)
    if not records:
        return DetectionReport(results=[], threshold=0.0, features=features)

    if features.is_degenerate:
        logger.info("No numeric features to cluster on; returning records unscored.")
        return DetectionReport(results=_unclustered(records), threshold=0.0, features=features)
    if len(records) < k:
        logger.info(
            "Only %d record(s) for %d clusters; returning records unscored.", len(records), k
        )
        return DetectionReport(results=_unclustered(records), threshold=0.0, features=features)

    clustering = fit_kmeans(features.values, k=k, max_iterations=max_iterations, rng=rng)
    distances = distances_to_assigned(
        features.values, clustering.centroids, clustering.assignments
    )
    # threshold decision uses the raw distances; rounding is for display only
    flags, threshold = flag_anomalies(distances, anomaly_threshold_percentile)

    results = [
        _scored(record, flags[index], round_distance(distances[index]), clustering.assignments[index])
        for index, record in enumerate(records)
    ]
    report = DetectionReport(
        results=results,
        threshold=float(threshold),
        features=features,
        clustering=clustering,
    )
    logger.info(
        "Scored %d record(s) into %d cluster(s): %d anomalies (threshold %.3f)",
        len(results),
        k,
        report.anomaly_count,
        report.threshold,
    )
    return report


def detect_anomalies(
    records: Sequence[Mapping[str, Any]],
    feature_keys: Sequence[str],
    k: int = DEFAULT_K_CLUSTERS,
    max_iterations: int = MAX_KMEANS_ITERATIONS,
    anomaly_threshold_percentile: float = ANOMALY_THRESHOLD_PERCENTILE,
    rng: Optional[np.random.Generator] = None,
) -> List[Dict[str, Any]]:
    """Return one scored copy of each record, in input order."""
    return run_detection(
        records,
        feature_keys,
        k=k,
        max_iterations=max_iterations,
        anomaly_threshold_percentile=anomaly_threshold_percentile,
        rng=rng,
    ).results
