"""Tests for the pandas adapters."""

import numpy as np
import pandas as pd
import pytest

from ab_decision.data import frames
from ab_decision.decision.confidence import evaluate_confidence
from ab_decision.exceptions import InvalidMetricsError
from ab_decision.models import StatisticsConfig, VariantMetrics


@pytest.fixture
def variant_frame():
    return pd.DataFrame({
        'variant_id': ['A', 'B', 'C'],
        'clicks': [1000, 1000, 1000],
        'conversions': [70, 20, 60],
    })


class TestVariantsFromFrame:
    """Tests for building metrics from a DataFrame."""

    def test_basic(self, variant_frame):
        variants = frames.variants_from_frame(variant_frame)
        assert variants == [
            VariantMetrics('A', 1000, 70),
            VariantMetrics('B', 1000, 20),
            VariantMetrics('C', 1000, 60),
        ]
        assert all(isinstance(v.clicks, int) for v in variants)

    def test_custom_columns(self):
        df = pd.DataFrame({'arm': [1, 2], 'n': [100.0, 200.0], 'x': [5.0, 9.0]})
        variants = frames.variants_from_frame(df, 'arm', 'n', 'x')
        assert variants == [VariantMetrics('1', 100, 5), VariantMetrics('2', 200, 9)]

    def test_missing_column(self, variant_frame):
        with pytest.raises(InvalidMetricsError, match="Column 'visits' not found"):
            frames.variants_from_frame(variant_frame, clicks_col='visits')

    def test_missing_values(self, variant_frame):
        variant_frame.loc[1, 'conversions'] = np.nan
        with pytest.raises(InvalidMetricsError, match="missing values"):
            frames.variants_from_frame(variant_frame)

    def test_missing_variant_id(self):
        df = pd.DataFrame({'variant_id': ['A', None], 'clicks': [10, 10], 'conversions': [1, 2]})
        with pytest.raises(InvalidMetricsError, match="Column 'variant_id' contains missing values"):
            frames.variants_from_frame(df)

    def test_fractional_counts(self, variant_frame):
        variant_frame['clicks'] = [1000.5, 1000, 1000]
        with pytest.raises(InvalidMetricsError, match="whole numbers"):
            frames.variants_from_frame(variant_frame)

    def test_non_numeric(self, variant_frame):
        variant_frame['clicks'] = ['many', 'few', 'some']
        with pytest.raises(InvalidMetricsError, match="numeric"):
            frames.variants_from_frame(variant_frame)

    def test_negative_counts(self, variant_frame):
        variant_frame.loc[0, 'clicks'] = -1
        with pytest.raises(InvalidMetricsError, match="non-negative"):
            frames.variants_from_frame(variant_frame)

    def test_conversions_above_clicks(self, variant_frame):
        variant_frame.loc[2, 'conversions'] = 2000
        with pytest.raises(InvalidMetricsError, match="cannot exceed"):
            frames.variants_from_frame(variant_frame)

    def test_duplicate_ids(self, variant_frame):
        variant_frame.loc[2, 'variant_id'] = 'A'
        with pytest.raises(InvalidMetricsError, match="unique") as exc_info:
            frames.variants_from_frame(variant_frame)
        assert exc_info.value.details['variant_id'] == 'A'

    def test_empty_frame(self):
        df = pd.DataFrame({'variant_id': [], 'clicks': [], 'conversions': []})
        assert frames.variants_from_frame(df) == []


class TestRankingToFrame:
    """Tests for flattening a ranking."""

    def test_columns_and_order(self, variant_frame):
        decision = evaluate_confidence(
            frames.variants_from_frame(variant_frame), StatisticsConfig(bayes_simulations=2000)
        )
        df = frames.ranking_to_frame(decision.ranking)

        assert list(df.columns) == frames.RANKING_COLUMNS
        assert df['rank'].tolist() == [1, 2, 3]
        assert df['variant_id'].iloc[0] == 'A'
        assert (df['wilson_lower'] <= df['cvr']).all()
        assert (df['cvr'] <= df['wilson_upper']).all()
        assert df['win_probability'].sum() == pytest.approx(1.0)

    def test_empty(self):
        df = frames.ranking_to_frame([])
        assert df.empty
        assert list(df.columns) == frames.RANKING_COLUMNS
