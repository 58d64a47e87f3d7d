import numpy as np
import pytest

from ml.detector import detect_anomalies, run_detection
from ml.kmeans import euclidean_distance
from ml.scoring import flag_anomalies, threshold_distance

SPREAD = [1, 2, 3, 4, 5, 6, 7, 8, 9, 50]


def spread_records():
    return [{"x": value, "label": f"row-{value}"} for value in SPREAD]

# --- Short-circuits ---

def test_empty_records_return_empty_list():
    assert detect_anomalies([], ["x"]) == []


def test_no_feature_keys_returns_unscored_records():
    records = [{"x": 1}, {"x": 2}, {"x": 3}, {"x": 400}]
    results = detect_anomalies(records, [])
    assert len(results) == len(records)
    for result in results:
        assert result["isAnomaly"] is False
        assert result["cluster"] == 0
        assert result["distanceToCentroid"] == 0


def test_all_text_features_return_unscored_records():
    records = [{"proto": "tcp"}, {"proto": "udp"}, {"proto": "icmp"}, {"proto": "tcp"}]
    results = detect_anomalies(records, ["proto"], k=2)
    assert [result["isAnomaly"] for result in results] == [False] * 4
    assert {result["cluster"] for result in results} == {0}


def test_fewer_records_than_clusters_are_not_flagged():
    records = [{"x": 0}, {"x": 1000}]
    results = detect_anomalies(records, ["x"], k=3)
    assert [result["isAnomaly"] for result in results] == [False, False]
    assert [result["distanceToCentroid"] for result in results] == [0, 0]

# --- Scoring ---

def test_scores_relative_to_own_cluster(scripted_rng):
    """A lone far point forms its own cluster and is not an outlier there."""
    records = [{"x": 0}, {"x": 0}, {"x": 0}, {"x": 10}]
    results = detect_anomalies(
        records,
        ["x"],
        k=2,
        max_iterations=20,
        anomaly_threshold_percentile=0.75,
        rng=scripted_rng(order=[0, 3, 1, 2]),
    )
    assert [result["cluster"] for result in results] == [0, 0, 0, 1]
    assert [result["distanceToCentroid"] for result in results] == [0.0] * 4
    assert not any(result["isAnomaly"] for result in results)


def test_duplicate_initial_points_recover_via_reseed(scripted_rng):
    records = [{"x": 0}, {"x": 0}, {"x": 0}, {"x": 10}]
    rng = scripted_rng(order=[0, 1, 2, 3], draws=[3])
    results = detect_anomalies(records, ["x"], k=2, rng=rng)
    assert [result["cluster"] for result in results] == [0, 0, 0, 1]
    assert rng.draw_calls == 1


def test_single_cluster_flags_far_point():
    results = detect_anomalies(
        spread_records(), ["x"], k=1, anomaly_threshold_percentile=0.8
    )
    flagged = [result["x"] for result in results if result["isAnomaly"]]
    assert flagged == [50]
    assert results[-1]["distanceToCentroid"] == 40.5


def test_percentile_one_flags_nothing():
    results = detect_anomalies(spread_records(), ["x"], k=1, anomaly_threshold_percentile=1.0)
    assert not any(result["isAnomaly"] for result in results)


def test_threshold_monotonicity():
    """Raising the percentile never flags more records."""
    counts = []
    for percentile in [0.1, 0.3, 0.5, 0.7, 0.9, 1.0]:
        results = detect_anomalies(
            spread_records(), ["x"], k=1, anomaly_threshold_percentile=percentile
        )
        counts.append(sum(result["isAnomaly"] for result in results))
    assert counts == sorted(counts, reverse=True)
    assert counts[0] > 0


@pytest.mark.parametrize("percentile", [0.05, 0.5, 0.95, 1.0])
def test_uniform_data_has_no_anomalies(percentile):
    records = [{"x": 3, "y": 7} for _ in range(12)]
    results = detect_anomalies(
        records,
        ["x", "y"],
        k=2,
        anomaly_threshold_percentile=percentile,
        rng=np.random.default_rng(4),
    )
    assert not any(result["isAnomaly"] for result in results)


def test_distances_are_rounded_to_three_decimals():
    records = [{"x": 0}, {"x": 0}, {"x": 1}]
    results = detect_anomalies(records, ["x"], k=1)
    assert [result["distanceToCentroid"] for result in results] == [0.333, 0.333, 0.667]


def test_flagging_uses_unrounded_distances():
    """1.0002 rounds to 1.0 yet still exceeds a 1.0001 threshold."""
    flags, threshold = flag_anomalies([1.0001, 1.0002, 0.5, 0.2], 0.5)
    assert threshold == 1.0001
    assert flags == [False, True, False, False]


def test_threshold_index_is_clamped():
    assert threshold_distance([3.0, 1.0, 2.0], 1.0) == 3.0
    assert threshold_distance([3.0, 1.0, 2.0], 0.5) == 2.0

# --- Result shape ---

def test_original_fields_survive():
    records = [
        {"x": value, "proto": "tcp", "note": None, "id": index}
        for index, value in enumerate([1, 2, 3, 40, 41, 42])
    ]
    results = detect_anomalies(records, ["x"], k=2, rng=np.random.default_rng(9))
    for record, result in zip(records, results):
        for key, value in record.items():
            assert result[key] == value
        assert set(result) == set(record) | {"isAnomaly", "distanceToCentroid", "cluster"}


def test_input_records_are_not_mutated():
    records = [{"x": 1}, {"x": 2}, {"x": 9}]
    detect_anomalies(records, ["x"], k=2, rng=np.random.default_rng(2))
    assert records == [{"x": 1}, {"x": 2}, {"x": 9}]


def test_results_use_plain_python_types():
    results = detect_anomalies(spread_records(), ["x"], k=2, rng=np.random.default_rng(1))
    for result in results:
        assert type(result["isAnomaly"]) is bool
        assert type(result["cluster"]) is int
        assert type(result["distanceToCentroid"]) is float


def test_clusters_stay_in_range():
    values = np.random.default_rng(8).uniform(0, 100, size=(40, 2))
    records = [{"a": float(a), "b": float(b)} for a, b in values]
    results = detect_anomalies(records, ["a", "b"], k=4, rng=np.random.default_rng(8))
    assert all(0 <= result["cluster"] < 4 for result in results)


def test_reported_distance_matches_final_centroid():
    values = np.random.default_rng(6).normal(size=(30, 3))
    records = [dict(zip("abc", map(float, row))) for row in values]
    report = run_detection(records, ["a", "b", "c"], k=3, rng=np.random.default_rng(6))
    centroids = report.clustering.centroids
    for vector, result in zip(report.features.values, report.results):
        expected = euclidean_distance(vector, centroids[result["cluster"]])
        assert result["distanceToCentroid"] == round(expected, 3)


def test_seeded_runs_are_reproducible():
    first = detect_anomalies(spread_records(), ["x"], k=3, rng=np.random.default_rng(21))
    second = detect_anomalies(spread_records(), ["x"], k=3, rng=np.random.default_rng(21))
    assert first == second


def test_run_detection_reports_threshold_and_iterations():
    report = run_detection(spread_records(), ["x"], k=1, anomaly_threshold_percentile=0.8)
    assert report.threshold == 8.5
    assert report.anomaly_count == 1
    assert report.clustering.iterations == 2

# --- Parameter contract ---

@pytest.mark.parametrize(
    "kwargs",
    [
        {"k": 0},
        {"k": 2.5},
        {"max_iterations": 0},
        {"anomaly_threshold_percentile": 0},
        {"anomaly_threshold_percentile": 1.5},
    ],
)
def test_invalid_parameters_raise(kwargs):
    with pytest.raises(ValueError):
        detect_anomalies([{"x": 1}], ["x"], **kwargs)
