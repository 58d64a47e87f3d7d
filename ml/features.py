from __future__ import annotations

import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Preset columns from the traffic captures the tool was built around.
DEFAULT_NUMERIC_FEATURES_FOR_ANALYSIS = ["duration", "src_bytes", "dst_bytes"]

# Leading-number parse: "12abc" -> 12, "  -.5e3 " -> -500, "Infinity" -> inf.
_LEADING_NUMBER = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)


@dataclass
class FeatureMatrix:
    """Numeric vectors for one invocation, one row per record."""

    values: np.ndarray
    feature_keys: List[str]
    dropped_keys: List[str] = field(default_factory=list)

    @property
    def n_features(self) -> int:
        return len(self.feature_keys)

    @property
    def is_degenerate(self) -> bool:
        return self.n_features == 0


def parse_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or None when it holds no usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return None if math.isnan(number) else number
    if not isinstance(value, str):
        return None
    match = _LEADING_NUMBER.match(value)
    if not match:
        return None
    return float(match.group(1))


def safe_float(value: Any, default: float = 0.0) -> float:
    number = parse_number(value)
    return default if number is None else number


def _ensure_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    """Ensure requested columns exist so missing fields read as blanks."""
    for column in columns:
        if column not in frame.columns:
            frame[column] = None


def _records_frame(records: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    # object dtype keeps text and numbers exactly as the caller supplied them
    return pd.DataFrame.from_records(list(records)).astype(object)


def numeric_feature_candidates(
    records: Sequence[Mapping[str, Any]], headers: Sequence[str]
) -> List[str]:
    """Headers for which at least one record holds a usable number."""
    if not records:
        return []
    frame = _records_frame(records)
    _ensure_columns(frame, headers)
    return [
        header
        for header in headers
        if frame[header].map(parse_number).notna().any()
    ]


def default_analysis_features(numeric_features: Sequence[str]) -> List[str]:
    preset = [
        name for name in DEFAULT_NUMERIC_FEATURES_FOR_ANALYSIS if name in numeric_features
    ]
    if len(preset) > 1:
        return preset
    return list(numeric_features[:2])


def default_scatter_axes(
    numeric_features: Sequence[str],
) -> Tuple[Optional[str], Optional[str]]:
    if not numeric_features:
        return None, None
    if len(numeric_features) == 1:
        return numeric_features[0], numeric_features[0]
    return numeric_features[0], numeric_features[1]


def extract_features(
    records: Sequence[Mapping[str, Any]], feature_keys: Sequence[str]
) -> FeatureMatrix:
    """Turn records into a float matrix aligned with ``feature_keys``.

    Unparseable or missing values become ``0.0``. Keys that hold no usable
    number in any record are dropped: they would only add a constant zero
    column. An empty key list, or one where every key is dropped, yields a
    degenerate matrix with zero columns.
    """
    n_records = len(records)
    if not feature_keys or n_records == 0:
        return FeatureMatrix(
            values=np.zeros((n_records, 0), dtype=float),
            feature_keys=[],
            dropped_keys=list(feature_keys),
        )

    frame = _records_frame(records)
    _ensure_columns(frame, feature_keys)

    kept_keys: List[str] = []
    dropped_keys: List[str] = []
    columns: List[np.ndarray] = []
    for key in feature_keys:
        parsed = frame[key].map(parse_number)
        if parsed.isna().all():
            dropped_keys.append(key)
            continue
        kept_keys.append(key)
        columns.append(parsed.to_numpy(dtype=float, na_value=0.0))

    if dropped_keys:
        logger.debug("Dropping non-numeric feature keys: %s", dropped_keys)

    if not columns:
        values = np.zeros((n_records, 0), dtype=float)
    else:
        values = np.column_stack(columns)
    return FeatureMatrix(values=values, feature_keys=kept_keys, dropped_keys=dropped_keys)
