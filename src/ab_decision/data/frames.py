"""
DataFrame Adapters
==================

Conversion between pandas frames of per-variant aggregates and the engine's
data model. This is the validation boundary: malformed rows are rejected
with ``InvalidMetricsError`` instead of being coerced to zero.

Example Usage:
--------------
>>> import pandas as pd
>>> from ab_decision.data import frames
>>> from ab_decision.decision.confidence import evaluate_confidence
>>>
>>> df = pd.DataFrame({
...     "variant_id": ["A", "B"],
...     "clicks": [1000, 1000],
...     "conversions": [70, 20],
... })
>>> decision = evaluate_confidence(frames.variants_from_frame(df))
>>> frames.ranking_to_frame(decision.ranking)
"""

from typing import List, Sequence

import numpy as np
import pandas as pd

from ab_decision.exceptions import InvalidMetricsError
from ab_decision.models import RankingEntry, VariantMetrics

RANKING_COLUMNS = [
    'rank',
    'variant_id',
    'clicks',
    'conversions',
    'cvr',
    'wilson_lower',
    'wilson_upper',
    'win_probability',
    'score',
]


def _integral_counts(series: pd.Series, column: str) -> np.ndarray:
    if series.isna().any():
        raise InvalidMetricsError(f"Column '{column}' contains missing values")
    try:
        values = series.to_numpy(dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidMetricsError(f"Column '{column}' must be numeric") from exc
    if not np.all(np.isfinite(values)) or not np.all(values == np.floor(values)):
        raise InvalidMetricsError(f"Column '{column}' must contain whole numbers")
    return values.astype(np.int64)


def variants_from_frame(
    df: pd.DataFrame,
    variant_col: str = 'variant_id',
    clicks_col: str = 'clicks',
    conversions_col: str = 'conversions',
) -> List[VariantMetrics]:
    """
    Build ``VariantMetrics`` from one row per variant, keeping row order.

    Parameters
    ----------
    df : pd.DataFrame
        Aggregated counts, one row per variant
    variant_col, clicks_col, conversions_col : str
        Column names

    Returns
    -------
    list of VariantMetrics

    Raises
    ------
    InvalidMetricsError
        Missing columns, missing or fractional counts, negative counts,
        conversions above clicks, or duplicate variant ids
    """
    for column in (variant_col, clicks_col, conversions_col):
        if column not in df.columns:
            raise InvalidMetricsError(f"Column '{column}' not found in data")

    if df[variant_col].isna().any():
        raise InvalidMetricsError(f"Column '{variant_col}' contains missing values")

    ids = df[variant_col].astype(str).tolist()
    duplicated = df[variant_col].astype(str).duplicated()
    if duplicated.any():
        raise InvalidMetricsError(
            "variant_id must be unique",
            variant_id=str(df[variant_col].astype(str)[duplicated].iloc[0]),
        )

    clicks = _integral_counts(df[clicks_col], clicks_col)
    conversions = _integral_counts(df[conversions_col], conversions_col)

    return [
        VariantMetrics(variant_id=variant_id, clicks=int(n), conversions=int(x))
        for variant_id, n, x in zip(ids, clicks, conversions)
    ]


def ranking_to_frame(ranking: Sequence[RankingEntry]) -> pd.DataFrame:
    """Flatten ranking entries into a report table, one row per variant."""
    rows = [
        {
            'rank': entry.rank,
            'variant_id': entry.variant_id,
            'clicks': entry.metrics.clicks,
            'conversions': entry.metrics.conversions,
            'cvr': entry.metrics.cvr,
            'wilson_lower': entry.wilson_ci.lower,
            'wilson_upper': entry.wilson_ci.upper,
            'win_probability': entry.bayesian_win_probability,
            'score': entry.score,
        }
        for entry in ranking
    ]
    return pd.DataFrame(rows, columns=RANKING_COLUMNS)
