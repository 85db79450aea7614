"""
Tests for confidence evaluation.

Covers the tier rules, rationale/recommendation mapping and the end-to-end
scenarios a running test goes through: too little data, a directional
trend, and a confident winner.
"""

import numpy as np
import pytest

from ab_decision.decision import confidence
from ab_decision.exceptions import InvalidMetricsError
from ab_decision.models import (
    AggregateMetrics,
    BayesianComparison,
    ConfidenceLevel,
    Recommendation,
    SampleThresholds,
    StatisticsConfig,
    VariantMetrics,
)

FAST_CONFIG = StatisticsConfig(bayes_simulations=2000)


def _comparison(probabilities):
    winner = max(probabilities, key=probabilities.get) if probabilities else None
    return BayesianComparison(
        variants=[],
        win_probabilities=probabilities,
        likely_winner=winner,
        likely_winner_probability=probabilities.get(winner, 0.0) if winner else 0.0,
    )


class TestAggregateAndTiers:
    """Tests for the individual tier predicates."""

    def test_create_variant_metrics(self):
        """Test the factory validates like the constructor."""
        assert confidence.create_variant_metrics("a", 100, 5) == VariantMetrics("a", 100, 5)
        with pytest.raises(InvalidMetricsError):
            confidence.create_variant_metrics("a", 5, 100)

    def test_aggregate(self):
        """Test totals across variants."""
        aggregate = confidence.calculate_aggregate_metrics([
            VariantMetrics("a", 100, 5),
            VariantMetrics("b", 150, 7),
        ])
        assert aggregate == AggregateMetrics(total_clicks=250, total_conversions=12, variant_count=2)

    def test_aggregate_empty(self):
        """Test totals for no variants."""
        assert confidence.calculate_aggregate_metrics([]) == AggregateMetrics(0, 0, 0)

    @pytest.mark.parametrize("clicks,conversions,expected", [
        (0, 0, True),
        (199, 2, True),
        (200, 0, False),   # click floor reached
        (10, 3, False),    # conversion floor reached
    ])
    def test_is_insufficient(self, clicks, conversions, expected):
        """Insufficient only when below BOTH floors."""
        aggregate = AggregateMetrics(clicks, conversions, 2)
        assert confidence.is_insufficient(aggregate) is expected

    @pytest.mark.parametrize("clicks,conversions,expected", [
        (200, 0, True),
        (50, 5, True),
        (199, 4, False),
    ])
    def test_is_directional(self, clicks, conversions, expected):
        """Directional when EITHER threshold is met."""
        aggregate = AggregateMetrics(clicks, conversions, 2)
        assert confidence.is_directional(aggregate, SampleThresholds()) is expected

    def test_is_confident(self):
        """Test all three confident conditions met."""
        top = VariantMetrics("a", 1000, 70)
        other = VariantMetrics("b", 1000, 20)
        aggregate = confidence.calculate_aggregate_metrics([top, other])
        assert confidence.is_confident(
            aggregate, SampleThresholds(), top, [other], _comparison({"a": 0.99, "b": 0.01})
        )

    def test_not_confident_below_conversion_minimum(self):
        """Test that 19 total conversions can never be confident."""
        top = VariantMetrics("a", 1000, 15)
        other = VariantMetrics("b", 1000, 4)
        aggregate = confidence.calculate_aggregate_metrics([top, other])
        assert not confidence.is_confident(
            aggregate, SampleThresholds(), top, [other], _comparison({"a": 1.0, "b": 0.0})
        )

    def test_not_confident_small_lift(self):
        """Test that a relative lift under 5% blocks confidence."""
        top = VariantMetrics("a", 10000, 520)
        other = VariantMetrics("b", 10000, 500)   # 4% relative lift
        aggregate = confidence.calculate_aggregate_metrics([top, other])
        assert not confidence.is_confident(
            aggregate, SampleThresholds(), top, [other], _comparison({"a": 0.99, "b": 0.01})
        )

    def test_not_confident_low_win_probability(self):
        """Test that P(best) under 95% blocks confidence."""
        top = VariantMetrics("a", 1000, 70)
        other = VariantMetrics("b", 1000, 20)
        aggregate = confidence.calculate_aggregate_metrics([top, other])
        assert not confidence.is_confident(
            aggregate, SampleThresholds(), top, [other], _comparison({"a": 0.94, "b": 0.06})
        )

    def test_zero_cvr_runner_up_uses_absolute_cvr(self):
        """Test the lift check when the runner-up has no conversions."""
        top = VariantMetrics("a", 100, 25)
        other = VariantMetrics("b", 100, 0)
        aggregate = confidence.calculate_aggregate_metrics([top, other])
        assert confidence.is_confident(
            aggregate, SampleThresholds(), top, [other], _comparison({"a": 1.0, "b": 0.0})
        )

    def test_no_runner_up(self):
        """Test that a lone variant is never confident."""
        top = VariantMetrics("a", 1000, 70)
        aggregate = confidence.calculate_aggregate_metrics([top])
        assert not confidence.is_confident(
            aggregate, SampleThresholds(), top, [], _comparison({"a": 1.0})
        )

    def test_determine_level_insufficient_short_circuits(self):
        """Test insufficient data is classified without any simulation."""
        variants = [VariantMetrics("a", 10, 1), VariantMetrics("b", 8, 0)]
        level = confidence.determine_confidence_level(variants)
        assert level == ConfidenceLevel.INSUFFICIENT

    def test_determine_level_falls_back_to_insufficient(self):
        """Test data above the insufficient floor but below directional."""
        variants = [VariantMetrics("a", 100, 2), VariantMetrics("b", 99, 2)]
        level = confidence.determine_confidence_level(
            variants, bayesian_result=_comparison({"a": 0.5, "b": 0.5})
        )
        assert level == ConfidenceLevel.INSUFFICIENT

    def test_custom_thresholds(self):
        """Test that a stricter conversion minimum downgrades the tier."""
        variants = [VariantMetrics("a", 1000, 70), VariantMetrics("b", 1000, 20)]
        strict = SampleThresholds(min_cv_confident=100)
        level = confidence.determine_confidence_level(
            variants, strict, _comparison({"a": 1.0, "b": 0.0})
        )
        assert level == ConfidenceLevel.DIRECTIONAL


class TestAdditionalSamples:
    """Tests for the extra-clicks estimate."""

    def test_none_when_minimum_met(self):
        """Test None once conversions reach the confident minimum."""
        aggregate = AggregateMetrics(1000, 20, 2)
        assert confidence.calculate_additional_samples_needed(aggregate) is None

    def test_no_data_uses_fallback_rate(self):
        """Test 20 conversions at the 1% fallback rate."""
        aggregate = AggregateMetrics(0, 0, 2)
        assert confidence.calculate_additional_samples_needed(aggregate) == 2000

    def test_pooled_rate(self):
        """Test the pooled CVR drives the estimate."""
        # 15 / 600 = 2.5%, 5 more conversions -> 200 clicks
        aggregate = AggregateMetrics(600, 15, 2)
        assert confidence.calculate_additional_samples_needed(aggregate) == 200

    def test_rounds_up(self):
        """Test the estimate is a ceiling."""
        # 1 / 18 -> 19 * 18 = 342
        aggregate = AggregateMetrics(18, 1, 2)
        assert confidence.calculate_additional_samples_needed(aggregate) == 342


class TestRationaleAndRecommendation:
    """Tests for the text and action attached to each tier."""

    def test_insufficient_rationale(self):
        """Test the insufficient message names the current totals."""
        text = confidence.generate_rationale(
            ConfidenceLevel.INSUFFICIENT, AggregateMetrics(18, 1, 2), None, 0.0
        )
        assert text.startswith("Insufficient data for analysis.")
        assert "18 clicks, 1 conversions across 2 variants" in text
        assert "200 clicks or 3 conversions" in text

    def test_directional_rationale_with_leader(self):
        """Test the directional message names the leader."""
        text = confidence.generate_rationale(
            ConfidenceLevel.DIRECTIONAL, AggregateMetrics(600, 15, 2), "A", 0.783
        )
        assert "A is currently leading with 78.3% win probability" in text

    def test_directional_rationale_without_leader(self):
        """Test the directional message without a leader."""
        text = confidence.generate_rationale(
            ConfidenceLevel.DIRECTIONAL, AggregateMetrics(600, 15, 2), None, 0.0
        )
        assert "no clear leader" in text

    def test_confident_rationale(self):
        """Test the confident message names the winner."""
        text = confidence.generate_rationale(
            ConfidenceLevel.CONFIDENT, AggregateMetrics(2000, 90, 2), "A", 1.0
        )
        assert text.startswith("Confident result.")
        assert "A is the winner with 100.0% probability" in text

    @pytest.mark.parametrize("level,winner,expected", [
        (ConfidenceLevel.CONFIDENT, "A", Recommendation.STOP_WINNER),
        (ConfidenceLevel.CONFIDENT, None, Recommendation.CONTINUE),
        (ConfidenceLevel.DIRECTIONAL, "A", Recommendation.CONTINUE),
        (ConfidenceLevel.INSUFFICIENT, None, Recommendation.CONTINUE),
    ])
    def test_recommendation(self, level, winner, expected):
        """Only a confident winner stops the test."""
        assert confidence.determine_recommendation(level, winner) == expected


class TestEvaluateConfidence:
    """End-to-end evaluation scenarios."""

    def test_confident_winner(self):
        """A 7% vs 2% test with 1000 clicks each is a confident stop."""
        result = confidence.evaluate_confidence(
            [VariantMetrics("A", 1000, 70), VariantMetrics("B", 1000, 20)]
        )
        assert result.confidence == ConfidenceLevel.CONFIDENT
        assert result.winner_id == "A"
        assert result.recommendation == Recommendation.STOP_WINNER
        assert result.additional_samples_needed is None
        assert result.ranking[0].variant_id == "A"
        assert result.ranking[0].bayesian_win_probability >= 0.95
        assert result.rationale.startswith("Confident result.")

    def test_insufficient(self):
        """Tiny samples are insufficient and report extra clicks."""
        result = confidence.evaluate_confidence(
            [VariantMetrics("A", 10, 1), VariantMetrics("B", 8, 0)], FAST_CONFIG
        )
        assert result.confidence == ConfidenceLevel.INSUFFICIENT
        assert result.winner_id is None
        assert result.recommendation == Recommendation.CONTINUE
        assert result.additional_samples_needed == 342
        assert len(result.ranking) == 2

    def test_directional(self):
        """A visible but weak lead continues the test."""
        result = confidence.evaluate_confidence(
            [VariantMetrics("A", 300, 9), VariantMetrics("B", 300, 6)], FAST_CONFIG
        )
        assert result.confidence == ConfidenceLevel.DIRECTIONAL
        assert result.winner_id is None
        assert result.recommendation == Recommendation.CONTINUE
        assert result.additional_samples_needed == 200
        assert result.rationale.startswith("Directional trend detected.")

    def test_empty(self):
        """No variants gives an empty insufficient result."""
        result = confidence.evaluate_confidence([])
        assert result.confidence == ConfidenceLevel.INSUFFICIENT
        assert result.ranking == []
        assert result.rationale == "No variants to analyze."
        assert result.additional_samples_needed is None

    def test_single_variant(self):
        """A single variant cannot be compared."""
        result = confidence.evaluate_confidence([VariantMetrics("only", 5000, 300)])
        assert result.confidence == ConfidenceLevel.INSUFFICIENT
        assert result.winner_id is None
        assert result.rationale == "Only one variant present. Cannot compare performance."
        assert len(result.ranking) == 1
        assert result.ranking[0].bayesian_win_probability == 1.0
        assert result.additional_samples_needed is None  # already past 20 conversions

    def test_duplicate_ids_rejected(self):
        """Duplicate variant ids are a caller error."""
        with pytest.raises(InvalidMetricsError, match="unique"):
            confidence.evaluate_confidence([VariantMetrics("A", 10, 1), VariantMetrics("A", 10, 2)])

    def test_deterministic(self):
        """Same inputs and seed give the same decision."""
        variants = [VariantMetrics("A", 800, 30), VariantMetrics("B", 800, 22), VariantMetrics("C", 800, 26)]
        first = confidence.evaluate_confidence(variants, FAST_CONFIG)
        second = confidence.evaluate_confidence(variants, FAST_CONFIG)
        assert first.to_dict() == second.to_dict()

    def test_invariants_on_random_inputs(self):
        """Structural invariants hold across random small tests."""
        rng = np.random.default_rng(2024)
        config = StatisticsConfig(bayes_simulations=200)

        for _ in range(40):
            n_variants = int(rng.integers(2, 5))
            variants = []
            for i in range(n_variants):
                clicks = int(rng.integers(0, 400))
                conversions = int(rng.integers(0, clicks + 1)) if clicks else 0
                variants.append(VariantMetrics(f"v{i}", clicks, conversions))

            result = confidence.evaluate_confidence(variants, config)
            aggregate = confidence.calculate_aggregate_metrics(variants)

            assert sorted(e.rank for e in result.ranking) == list(range(1, n_variants + 1))
            assert {e.variant_id for e in result.ranking} == {v.variant_id for v in variants}
            assert (result.winner_id is not None) == (result.confidence == ConfidenceLevel.CONFIDENT)
            assert (result.recommendation == Recommendation.STOP_WINNER) == (
                result.confidence == ConfidenceLevel.CONFIDENT
            )
            if confidence.is_insufficient(aggregate):
                assert result.confidence == ConfidenceLevel.INSUFFICIENT
            if result.confidence == ConfidenceLevel.CONFIDENT:
                assert aggregate.total_conversions >= 20
                assert result.additional_samples_needed is None
            else:
                assert (result.additional_samples_needed is None) == (aggregate.total_conversions >= 20)
            assert sum(e.bayesian_win_probability for e in result.ranking) == pytest.approx(1.0)

    def test_small_totals_always_insufficient(self):
        """Under 200 clicks and 3 conversions in total is insufficient for any variant count."""
        rng = np.random.default_rng(7)
        config = StatisticsConfig(bayes_simulations=200)

        for _ in range(60):
            n_variants = int(rng.integers(1, 6))
            clicks = rng.multinomial(int(rng.integers(0, 200)), [1 / n_variants] * n_variants)
            conversions_left = int(rng.integers(0, 3))
            variants = []
            for i, n in enumerate(clicks):
                x = int(rng.integers(0, min(int(n), conversions_left) + 1))
                conversions_left -= x
                variants.append(VariantMetrics(f"v{i}", int(n), x))

            aggregate = confidence.calculate_aggregate_metrics(variants)
            assert aggregate.total_clicks < 200 and aggregate.total_conversions < 3

            result = confidence.evaluate_confidence(variants, config)
            assert result.confidence == ConfidenceLevel.INSUFFICIENT
            assert result.winner_id is None
            assert result.recommendation == Recommendation.CONTINUE
