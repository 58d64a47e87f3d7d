from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ml.features import safe_float

ALLOWED_UPLOAD_EXTENSIONS = (".csv",)
ALLOWED_UPLOAD_MIMETYPES = ("text/csv", "application/vnd.ms-excel")


def is_csv_upload(filename: str, mimetype: Optional[str]) -> bool:
    name = (filename or "").strip().lower()
    return name.endswith(ALLOWED_UPLOAD_EXTENSIONS) or mimetype in ALLOWED_UPLOAD_MIMETYPES


def _positive_int(payload: Dict[str, Any], key: str, default: int) -> int:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"'{key}' must be a positive integer.")
    return value


def validate_detection_payload(
    payload: Dict[str, Any], defaults: Mapping[str, Any], max_records: int
) -> Dict[str, Any]:
    """Check a detection request body and fill in the configured defaults."""
    records = payload.get("records")
    if not isinstance(records, list):
        raise ValueError("Provide a 'records' array.")
    if len(records) > max_records:
        raise ValueError(
            f"Batch size limit exceeded. Maximum {max_records:,} records per request."
        )
    if not all(isinstance(record, dict) for record in records):
        raise ValueError("Each record must be an object.")

    feature_keys = payload.get("featureKeys")
    if feature_keys is None:
        feature_keys = []
    if not isinstance(feature_keys, list) or not all(
        isinstance(key, str) for key in feature_keys
    ):
        raise ValueError("'featureKeys' must be an array of column names.")

    k = _positive_int(payload, "k", defaults["k"])
    max_iterations = _positive_int(payload, "maxIterations", defaults["maxIterations"])

    percentile = payload.get("percentile", defaults["percentile"])
    if isinstance(percentile, bool) or not isinstance(percentile, (int, float)):
        raise ValueError("'percentile' must be a number.")
    if not 0 < percentile <= 1:
        raise ValueError("'percentile' must be within (0, 1].")

    feature_x = payload.get("featureX")
    feature_y = payload.get("featureY")
    for name, value in (("featureX", feature_x), ("featureY", feature_y)):
        if value is not None and not isinstance(value, str):
            raise ValueError(f"'{name}' must be a column name.")

    return {
        "records": records,
        "feature_keys": feature_keys,
        "k": k,
        "max_iterations": max_iterations,
        "percentile": float(percentile),
        "feature_x": feature_x,
        "feature_y": feature_y,
    }


def summarize_results(results: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    clusters = Counter(int(result.get("cluster", 0)) for result in results)
    return {
        "total": len(results),
        "anomalies": sum(1 for result in results if result.get("isAnomaly")),
        "clusterSizes": {str(cluster): clusters[cluster] for cluster in sorted(clusters)},
    }


def build_scatter_series(
    results: Sequence[Mapping[str, Any]], feature_x: str, feature_y: str
) -> Dict[str, List[Dict[str, Any]]]:
    """Split results into normal/anomaly point series for a 2-D scatter plot."""
    series: Dict[str, List[Dict[str, Any]]] = {"normal": [], "anomaly": []}
    for index, result in enumerate(results):
        point = {
            "index": index,
            "x": safe_float(result.get(feature_x)),
            "y": safe_float(result.get(feature_y)),
            "cluster": result.get("cluster", 0),
            "distanceToCentroid": result.get("distanceToCentroid", 0.0),
        }
        series["anomaly" if result.get("isAnomaly") else "normal"].append(point)
    return series


def summarize_anomaly_reason(
    row: Mapping[str, Any],
    feature_keys: Sequence[str],
    features: Sequence[float],
    centroid: Sequence[float],
    threshold: float,
) -> str:
    """Create a human-readable explanation for why a row was flagged.

    ``features`` is the row's extracted vector, aligned with ``feature_keys``;
    the scored row only supplies the distance and cluster.
    """
    distance = safe_float(row.get("distanceToCentroid"))
    cluster = row.get("cluster", 0)
    reasons: List[str] = [
        f"Distance {distance:,.3f} from cluster {cluster}'s centre is above the "
        f"anomaly cutoff ({threshold:,.3f})."
    ]

    largest = None
    largest_gap = 0.0
    for key, value, centre in zip(feature_keys, features, centroid):
        gap = abs(float(value) - float(centre))
        if gap > largest_gap:
            largest, largest_gap = (key, float(value), float(centre)), gap

    if largest is not None:
        key, value, centre = largest
        reasons.append(
            f"{key} is {value:,.2f} against a cluster average of {centre:,.2f}."
        )

    return " ".join(reasons)
