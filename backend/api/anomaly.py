from flask import Blueprint, jsonify, request, current_app

from backend import limiter
from backend.utils import (
    build_scatter_series,
    is_csv_upload,
    summarize_anomaly_reason,
    summarize_results,
    validate_detection_payload,
)
from ml import (
    DEFAULT_NUMERIC_FEATURES_FOR_ANALYSIS,
    CsvFormatError,
    default_analysis_features,
    default_scatter_axes,
    numeric_feature_candidates,
    parse_csv_text,
)
from ml.detector import run_detection

anomaly_bp = Blueprint('anomaly', __name__)


def get_detection_defaults():
    return {
        "k": current_app.config["KMEANS_DEFAULT_CLUSTERS"],
        "maxIterations": current_app.config["KMEANS_MAX_ITERATIONS"],
        "percentile": current_app.config["ANOMALY_THRESHOLD_PERCENTILE"],
    }


@anomaly_bp.route("/api/anomaly/meta", methods=["GET"])
def anomaly_meta():
    return jsonify({
        "defaults": get_detection_defaults(),
        "defaultFeatures": DEFAULT_NUMERIC_FEATURES_FOR_ANALYSIS,
        "maxRecords": current_app.config["MAX_RECORDS_PER_REQUEST"],
    })


@anomaly_bp.route("/api/anomaly/upload", methods=["POST"])
@limiter.limit("30 per minute")
def anomaly_upload():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file selected."}), 400

    if not is_csv_upload(upload.filename, upload.mimetype):
        return jsonify({"error": "Invalid file type. Please upload a CSV file."}), 400

    try:
        text = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return jsonify({"error": "Failed to read file. CSV must be UTF-8 encoded."}), 400

    try:
        records, headers = parse_csv_text(text)
    except CsvFormatError as exc:
        return jsonify({"error": str(exc)}), 400

    max_records = current_app.config["MAX_RECORDS_PER_REQUEST"]
    if len(records) > max_records:
        return jsonify({"error": f"Batch size limit exceeded. Maximum {max_records:,} rows per file."}), 400

    numeric_features = numeric_feature_candidates(records, headers)
    feature_x, feature_y = default_scatter_axes(numeric_features)
    current_app.logger.info(
        "Parsed upload %s: %d rows, %d numeric columns",
        upload.filename, len(records), len(numeric_features),
    )
    return jsonify({
        "fileName": upload.filename,
        "headers": headers,
        "records": records,
        "numericFeatures": numeric_features,
        "selectedFeatures": default_analysis_features(numeric_features),
        "featureX": feature_x,
        "featureY": feature_y,
    })


@anomaly_bp.route("/api/anomaly/detect", methods=["POST"])
def anomaly_detect():
    payload = request.get_json(silent=True) or {}
    try:
        data = validate_detection_payload(
            payload,
            get_detection_defaults(),
            current_app.config["MAX_RECORDS_PER_REQUEST"],
        )
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    if not data["feature_keys"]:
        return jsonify({
            "error": "No features selected for analysis. Please select at least one numeric feature."
        }), 400

    try:
        report = run_detection(
            data["records"],
            data["feature_keys"],
            k=data["k"],
            max_iterations=data["max_iterations"],
            anomaly_threshold_percentile=data["percentile"],
        )
    except Exception:
        current_app.logger.exception("K-Means anomaly detection failed.")
        return jsonify({"error": "Anomaly detection failed. Check server logs."}), 500

    explanations = {}
    if report.clustering is not None:
        centroids = report.clustering.centroids
        for idx, result in enumerate(report.results):
            if result["isAnomaly"]:
                explanations[str(idx)] = summarize_anomaly_reason(
                    result,
                    report.features.feature_keys,
                    report.features.values[idx],
                    centroids[result["cluster"]],
                    report.threshold,
                )

    response = {
        "results": report.results,
        "summary": summarize_results(report.results),
        "threshold": report.threshold,
        "features": report.features.feature_keys,
        "ignoredFeatures": report.features.dropped_keys,
        "iterations": report.clustering.iterations if report.clustering else 0,
        "explanations": explanations,
    }
    if data["feature_x"] and data["feature_y"]:
        response["scatter"] = build_scatter_series(
            report.results, data["feature_x"], data["feature_y"]
        )
    return jsonify(response)
