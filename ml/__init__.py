"""
K-Means anomaly detection for tabular traffic records.

The Flask API and the command-line runner both call into this package so an
upload scored in the browser and a file scored offline go through the same
feature extraction, clustering and thresholding.
"""

from .detector import DetectionReport, detect_anomalies, run_detection  # noqa: F401
from .features import (  # noqa: F401
    DEFAULT_NUMERIC_FEATURES_FOR_ANALYSIS,
    default_analysis_features,
    default_scatter_axes,
    extract_features,
    numeric_feature_candidates,
)
from .ingest import CsvFormatError, parse_csv_text  # noqa: F401
from .kmeans import DEFAULT_K_CLUSTERS, MAX_KMEANS_ITERATIONS  # noqa: F401
from .scoring import ANOMALY_THRESHOLD_PERCENTILE  # noqa: F401

__all__ = [
    "detect_anomalies",
    "run_detection",
    "DetectionReport",
    "extract_features",
    "numeric_feature_candidates",
    "default_analysis_features",
    "default_scatter_axes",
    "parse_csv_text",
    "CsvFormatError",
    "DEFAULT_NUMERIC_FEATURES_FOR_ANALYSIS",
    "DEFAULT_K_CLUSTERS",
    "MAX_KMEANS_ITERATIONS",
    "ANOMALY_THRESHOLD_PERCENTILE",
]
