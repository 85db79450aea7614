"""
Analysis Entry Points
=====================

One-call wrappers around the engine for the report builder.

- ``analyze_variants``: decision plus every supporting statistic
- ``quick_analysis``: just winner, tier and top win probability

Example Usage:
--------------
>>> from ab_decision.decision import framework
>>>
>>> result = framework.analyze_variants(variants)
>>> print(result.decision.rationale)
>>> for cmp in result.wilson_comparisons:
...     print(cmp.variant_a.variant_id, cmp.variant_b.variant_id, cmp.overlapping)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from ab_decision.core.bayesian import compare_bayesian
from ab_decision.core.wilson import compare_all_variants_wilson_ci
from ab_decision.decision.confidence import calculate_aggregate_metrics, evaluate_confidence
from ab_decision.models import (
    DEFAULT_STATISTICS_CONFIG,
    ConfidenceLevel,
    StatisticsConfig,
    StatisticsResult,
    VariantMetrics,
)


def analyze_variants(
    variants: Sequence[VariantMetrics],
    config: Optional[StatisticsConfig] = None,
) -> StatisticsResult:
    """
    Complete statistical analysis of a test.

    Parameters
    ----------
    variants : sequence of VariantMetrics
        Per-variant aggregates
    config : StatisticsConfig, optional
        Engine configuration

    Returns
    -------
    StatisticsResult
        - decision: output of ``evaluate_confidence``
        - wilson_comparisons: every pairwise Wilson comparison
        - bayesian_analysis: posteriors and win probabilities
        - aggregate: totals
        - analyzed_at: ISO-8601 UTC timestamp

    Notes
    -----
    The Bayesian comparison is run with the same seed as the decision, so
    its win probabilities match the ranking exactly.
    """
    config = config or DEFAULT_STATISTICS_CONFIG
    decision = evaluate_confidence(variants, config)

    return StatisticsResult(
        decision=decision,
        wilson_comparisons=compare_all_variants_wilson_ci(
            variants, config.wilson_confidence_level
        ),
        bayesian_analysis=compare_bayesian(
            variants,
            config.bayes_prior_alpha,
            config.bayes_prior_beta,
            config.bayes_simulations,
            config.seed,
        ),
        aggregate=calculate_aggregate_metrics(variants),
        analyzed_at=datetime.now(timezone.utc).isoformat(),
    )


def quick_analysis(
    variants: Sequence[VariantMetrics],
    config: Optional[StatisticsConfig] = None,
) -> Dict[str, Any]:
    """
    Lightweight winner check.

    Returns
    -------
    dict
        - winner_id: confident winner or None
        - confidence: tier value ('insufficient', 'directional', 'confident')
        - top_win_probability: P(best) of the first-ranked variant (0 if none)
    """
    if not variants:
        return {
            'winner_id': None,
            'confidence': ConfidenceLevel.INSUFFICIENT.value,
            'top_win_probability': 0.0,
        }

    decision = evaluate_confidence(variants, config)
    return {
        'winner_id': decision.winner_id,
        'confidence': decision.confidence.value,
        'top_win_probability': (
            decision.ranking[0].bayesian_win_probability if decision.ranking else 0.0
        ),
    }
