#!/usr/bin/env python
"""Score a traffic CSV with K-Means and optionally write a JSON report."""
from __future__ import annotations

import argparse
import json
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from ml.detector import DetectionReport, run_detection
from ml.features import default_analysis_features, numeric_feature_candidates
from ml.ingest import load_csv
from ml.kmeans import DEFAULT_K_CLUSTERS, MAX_KMEANS_ITERATIONS
from ml.scoring import ANOMALY_THRESHOLD_PERCENTILE


def split_features(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def print_summary(report: DetectionReport) -> None:
    total = len(report.results)
    print("=== K-Means anomaly detection ===")
    print(f"Features: {', '.join(report.features.feature_keys) or '(none usable)'}")
    if report.features.dropped_keys:
        print(f"Ignored non-numeric features: {', '.join(report.features.dropped_keys)}")
    if report.clustering is None:
        print(f"Clustering skipped; {total} rows returned unscored.")
        return
    sizes = Counter(result["cluster"] for result in report.results)
    print(
        f"Iterations: {report.clustering.iterations} "
        f"(converged: {'yes' if report.clustering.converged else 'no'})"
    )
    for cluster in sorted(sizes):
        print(f"  cluster {cluster}: {sizes[cluster]} rows")
    print(f"Threshold distance: {report.threshold:.3f}")
    print(f"Anomalies: {report.anomaly_count} of {total}")


def build_report_payload(report: DetectionReport, args: argparse.Namespace) -> dict:
    return {
        "scored_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "dataset": str(args.data),
        "features": report.features.feature_keys,
        "ignored_features": report.features.dropped_keys,
        "k": args.k,
        "max_iterations": args.max_iterations,
        "percentile": args.percentile,
        "seed": args.seed,
        "iterations": report.clustering.iterations if report.clustering else 0,
        "threshold": report.threshold,
        "anomalies": report.anomaly_count,
        "results": report.results,
    }


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Flag outlying rows of a CSV by their distance to a K-Means centroid."
    )
    parser.add_argument("--data", type=Path, required=True)
    parser.add_argument(
        "--features",
        type=split_features,
        default=None,
        help="Comma-separated columns to cluster on. Defaults to the preset traffic columns.",
    )
    parser.add_argument("--k", type=int, default=DEFAULT_K_CLUSTERS)
    parser.add_argument("--max-iterations", type=int, default=MAX_KMEANS_ITERATIONS)
    parser.add_argument("--percentile", type=float, default=ANOMALY_THRESHOLD_PERCENTILE)
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for centroid initialisation; omit for a fresh draw each run.",
    )
    parser.add_argument("--output", type=Path, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.k < 1:
        parser.error("--k must be a positive integer.")
    if args.max_iterations < 1:
        parser.error("--max-iterations must be a positive integer.")
    if not 0 < args.percentile <= 1:
        parser.error("--percentile must be within (0, 1].")
    return args


def score_file(args: argparse.Namespace) -> DetectionReport:
    if not args.data.exists():
        raise FileNotFoundError(f"Dataset not found: {args.data}")
    records, headers = load_csv(args.data)
    features = args.features
    if features is None:
        features = default_analysis_features(numeric_feature_candidates(records, headers))

    report = run_detection(
        records,
        features,
        k=args.k,
        max_iterations=args.max_iterations,
        anomaly_threshold_percentile=args.percentile,
        rng=np.random.default_rng(args.seed),
    )
    print_summary(report)

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(build_report_payload(report, args), indent=2))
        print(f"Saved report to {args.output}")
    return report


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    score_file(args)


if __name__ == "__main__":
    main()
