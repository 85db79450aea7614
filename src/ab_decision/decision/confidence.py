"""
Confidence Evaluation
=====================

Decides how much the current data supports declaring a winner, and packages
the answer as a ``DecisionResult``.

Confidence tiers:
- **INSUFFICIENT**: fewer than 200 clicks AND fewer than 3 conversions in
  total, or too little for a trend
- **DIRECTIONAL**: at least 200 clicks OR 5 conversions; a leader may be
  visible but is not significant
- **CONFIDENT**: at least 20 conversions, the top CVR beats the runner-up by
  the minimum relative lift, and the top variant's P(best) >= 95%

Confidence is recomputed from the current aggregates on every call; nothing
is stored between evaluations.

Example Usage:
--------------
>>> from ab_decision.decision import confidence
>>> from ab_decision.models import VariantMetrics
>>>
>>> result = confidence.evaluate_confidence([
...     VariantMetrics("A", clicks=1000, conversions=70),
...     VariantMetrics("B", clicks=1000, conversions=20),
... ])
>>> result.confidence.value, result.winner_id, result.recommendation.value
('confident', 'A', 'stop_winner')
"""

import logging
import math
from typing import Optional, Sequence

from ab_decision.core.bayesian import compare_bayesian
from ab_decision.decision.ranking import build_ranking_entries
from ab_decision.exceptions import InvalidMetricsError
from ab_decision.models import (
    DEFAULT_SAMPLE_THRESHOLDS,
    DEFAULT_STATISTICS_CONFIG,
    INSUFFICIENT_THRESHOLDS,
    AggregateMetrics,
    BayesianComparison,
    ConfidenceLevel,
    DecisionResult,
    Recommendation,
    SampleThresholds,
    StatisticsConfig,
    VariantMetrics,
)

logger = logging.getLogger(__name__)

MIN_CONFIDENT_WIN_PROBABILITY = 0.95
FALLBACK_CVR_ESTIMATE = 0.01


def create_variant_metrics(variant_id: str, clicks: int, conversions: int) -> VariantMetrics:
    """Build validated ``VariantMetrics``; raises ``InvalidMetricsError`` on bad counts."""
    return VariantMetrics(variant_id=variant_id, clicks=clicks, conversions=conversions)


def calculate_aggregate_metrics(variants: Sequence[VariantMetrics]) -> AggregateMetrics:
    """Total clicks and conversions across all variants."""
    return AggregateMetrics(
        total_clicks=sum(v.clicks for v in variants),
        total_conversions=sum(v.conversions for v in variants),
        variant_count=len(variants),
    )


def is_insufficient(aggregate: AggregateMetrics) -> bool:
    """Below BOTH the click and conversion floors (< 200 clicks and < 3 CV)."""
    return (
        aggregate.total_clicks < INSUFFICIENT_THRESHOLDS.min_clicks
        and aggregate.total_conversions < INSUFFICIENT_THRESHOLDS.min_cv
    )


def is_directional(aggregate: AggregateMetrics, thresholds: SampleThresholds) -> bool:
    """Either the click or the conversion threshold for trends is met."""
    return (
        aggregate.total_clicks >= thresholds.min_clicks_directional
        or aggregate.total_conversions >= thresholds.min_cv_directional
    )


def is_confident(
    aggregate: AggregateMetrics,
    thresholds: SampleThresholds,
    top_variant: Optional[VariantMetrics],
    other_variants: Sequence[VariantMetrics],
    bayesian_result: BayesianComparison,
) -> bool:
    """
    Whether the data supports a confident winner.

    Parameters
    ----------
    aggregate : AggregateMetrics
        Totals across variants
    thresholds : SampleThresholds
        Minimum conversions and relative lift
    top_variant : VariantMetrics or None
        Highest-CVR variant
    other_variants : sequence of VariantMetrics
        Every other variant
    bayesian_result : BayesianComparison
        Source of the top variant's win probability

    Returns
    -------
    bool
        True when conversions reach ``min_cv_confident``, the top CVR clears
        the runner-up by ``min_cvr_lift_confident`` (relative; absolute CVR
        when the runner-up has none), and P(top is best) >= 0.95
    """
    if aggregate.total_conversions < thresholds.min_cv_confident:
        return False
    if top_variant is None or not other_variants:
        return False

    second_best = max(other_variants, key=lambda v: v.cvr)

    if second_best.cvr == 0:
        if top_variant.cvr < thresholds.min_cvr_lift_confident:
            return False
    else:
        relative_lift = (top_variant.cvr - second_best.cvr) / second_best.cvr
        if relative_lift < thresholds.min_cvr_lift_confident:
            return False

    top_probability = bayesian_result.win_probabilities.get(top_variant.variant_id, 0.0)
    return top_probability >= MIN_CONFIDENT_WIN_PROBABILITY


def determine_confidence_level(
    variants: Sequence[VariantMetrics],
    thresholds: SampleThresholds = DEFAULT_SAMPLE_THRESHOLDS,
    bayesian_result: Optional[BayesianComparison] = None,
    config: Optional[StatisticsConfig] = None,
) -> ConfidenceLevel:
    """
    Classify the evidence into a confidence tier.

    Insufficient data short-circuits before any simulation. Otherwise the
    Bayesian comparison is taken from ``bayesian_result`` or computed with
    ``config``'s prior, simulation count and seed.
    """
    aggregate = calculate_aggregate_metrics(variants)
    if is_insufficient(aggregate):
        return ConfidenceLevel.INSUFFICIENT

    by_cvr = sorted(variants, key=lambda v: v.cvr, reverse=True)
    top_variant = by_cvr[0] if by_cvr else None
    other_variants = by_cvr[1:]

    if bayesian_result is None:
        config = config or DEFAULT_STATISTICS_CONFIG
        bayesian_result = compare_bayesian(
            variants,
            config.bayes_prior_alpha,
            config.bayes_prior_beta,
            config.bayes_simulations,
            config.seed,
        )

    if is_confident(aggregate, thresholds, top_variant, other_variants, bayesian_result):
        return ConfidenceLevel.CONFIDENT
    if is_directional(aggregate, thresholds):
        return ConfidenceLevel.DIRECTIONAL
    return ConfidenceLevel.INSUFFICIENT


def calculate_additional_samples_needed(
    aggregate: AggregateMetrics,
    thresholds: SampleThresholds = DEFAULT_SAMPLE_THRESHOLDS,
) -> Optional[int]:
    """
    Rough number of extra clicks until ``min_cv_confident`` conversions.

    Uses the pooled CVR so far, or 1% when nothing has converted yet.
    Returns None once the conversion minimum is already met.
    """
    if aggregate.total_conversions >= thresholds.min_cv_confident:
        return None

    current_cvr = (
        aggregate.total_conversions / aggregate.total_clicks if aggregate.total_clicks > 0 else 0.0
    )
    estimated_cvr = current_cvr if current_cvr > 0 else FALLBACK_CVR_ESTIMATE

    conversions_needed = thresholds.min_cv_confident - aggregate.total_conversions
    return max(0, math.ceil(conversions_needed / estimated_cvr))


def generate_rationale(
    confidence: ConfidenceLevel,
    aggregate: AggregateMetrics,
    winner_id: Optional[str],
    top_win_probability: float,
) -> str:
    """Human-readable explanation of a confidence tier."""
    clicks = aggregate.total_clicks
    conversions = aggregate.total_conversions
    count = aggregate.variant_count
    probability_pct = f"{top_win_probability * 100:.1f}%"

    if confidence == ConfidenceLevel.INSUFFICIENT:
        return (
            "Insufficient data for analysis. "
            f"Current: {clicks} clicks, {conversions} conversions across {count} variants. "
            f"Need at least {INSUFFICIENT_THRESHOLDS.min_clicks} clicks or "
            f"{INSUFFICIENT_THRESHOLDS.min_cv} conversions to see trends."
        )

    if confidence == ConfidenceLevel.DIRECTIONAL:
        if winner_id:
            return (
                "Directional trend detected. "
                f"{winner_id} is currently leading with {probability_pct} win probability. "
                "However, the result is not yet statistically significant. "
                "Continue collecting data for confident conclusions."
            )
        return (
            "Directional trend detected but no clear leader. "
            f"{clicks} clicks, {conversions} conversions across {count} variants. "
            "Continue collecting data."
        )

    if confidence == ConfidenceLevel.CONFIDENT:
        return (
            "Confident result. "
            f"{winner_id} is the winner with {probability_pct} probability of being the best. "
            f"Based on {clicks} clicks and {conversions} conversions. "
            "Recommend stopping the test and selecting the winner."
        )

    return "Unable to determine confidence level."


def determine_recommendation(
    confidence: ConfidenceLevel,
    winner_id: Optional[str],
) -> Recommendation:
    """
    Map a confidence tier to an action.

    Only a confident result with a winner stops the test; insufficient and
    directional data both continue. STOP_NO_WINNER is part of the result
    vocabulary but not produced here.
    """
    if confidence == ConfidenceLevel.CONFIDENT and winner_id:
        return Recommendation.STOP_WINNER
    return Recommendation.CONTINUE


def _check_unique_ids(variants: Sequence[VariantMetrics]) -> None:
    seen = set()
    for variant in variants:
        if variant.variant_id in seen:
            raise InvalidMetricsError("variant_id must be unique", variant_id=variant.variant_id)
        seen.add(variant.variant_id)


def evaluate_confidence(
    variants: Sequence[VariantMetrics],
    config: Optional[StatisticsConfig] = None,
) -> DecisionResult:
    """
    Evaluate a running test and produce a decision.

    Parameters
    ----------
    variants : sequence of VariantMetrics
        Per-variant aggregates, in a stable order (the order fixes the
        Monte Carlo draw sequence)
    config : StatisticsConfig, optional
        Thresholds, Wilson level, prior, simulation count and seed

    Returns
    -------
    DecisionResult
        Confidence tier, winner (confident only), ranking, rationale,
        recommendation and the extra clicks needed (None when confident)

    Raises
    ------
    InvalidMetricsError
        If two variants share a variant_id
    """
    config = config or DEFAULT_STATISTICS_CONFIG
    _check_unique_ids(variants)

    if not variants:
        return DecisionResult(
            confidence=ConfidenceLevel.INSUFFICIENT,
            winner_id=None,
            ranking=[],
            rationale="No variants to analyze.",
            recommendation=Recommendation.CONTINUE,
            additional_samples_needed=None,
        )

    aggregate = calculate_aggregate_metrics(variants)

    if len(variants) == 1:
        only = variants[0].variant_id
        trivial = BayesianComparison(
            variants=[],
            win_probabilities={only: 1.0},
            likely_winner=only,
            likely_winner_probability=1.0,
        )
        return DecisionResult(
            confidence=ConfidenceLevel.INSUFFICIENT,
            winner_id=None,
            ranking=build_ranking_entries(variants, trivial, config.wilson_confidence_level),
            rationale="Only one variant present. Cannot compare performance.",
            recommendation=Recommendation.CONTINUE,
            additional_samples_needed=calculate_additional_samples_needed(
                aggregate, config.thresholds
            ),
        )

    bayesian_result = compare_bayesian(
        variants,
        config.bayes_prior_alpha,
        config.bayes_prior_beta,
        config.bayes_simulations,
        config.seed,
    )
    confidence = determine_confidence_level(
        variants, config.thresholds, bayesian_result, config
    )
    ranking = build_ranking_entries(variants, bayesian_result, config.wilson_confidence_level)

    winner_id = bayesian_result.likely_winner if confidence == ConfidenceLevel.CONFIDENT else None
    rationale = generate_rationale(
        confidence,
        aggregate,
        bayesian_result.likely_winner,
        bayesian_result.likely_winner_probability,
    )
    recommendation = determine_recommendation(confidence, winner_id)
    additional = (
        None
        if confidence == ConfidenceLevel.CONFIDENT
        else calculate_additional_samples_needed(aggregate, config.thresholds)
    )

    logger.debug(
        "Evaluated %d variants: confidence=%s winner=%s clicks=%d conversions=%d",
        aggregate.variant_count,
        confidence.value,
        winner_id,
        aggregate.total_clicks,
        aggregate.total_conversions,
    )

    return DecisionResult(
        confidence=confidence,
        winner_id=winner_id,
        ranking=ranking,
        rationale=rationale,
        recommendation=recommendation,
        additional_samples_needed=additional,
    )
