"""
Variant Ranking
===============

Turns Bayesian win probabilities and Wilson intervals into an ordered list
of ``RankingEntry`` rows, and picks a winner from such a ranking.

Two rankings exist:

- ``build_ranking_entries``: win probability first, CVR as tie-break; score
  = 0.7 * P(best) + 0.3 * CVR. This is what ``evaluate_confidence`` reports.
- ``generate_ranking``: composite ordering that also weights the Wilson
  lower bound and expected loss.

Example Usage:
--------------
>>> from ab_decision.core import bayesian
>>> from ab_decision.decision import ranking
>>>
>>> comparison = bayesian.compare_bayesian(variants)
>>> for entry in ranking.build_ranking_entries(variants, comparison):
...     print(entry.rank, entry.variant_id, f"{entry.score:.3f}")
"""

import functools
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ab_decision.core.bayesian import calculate_expected_loss, compare_bayesian
from ab_decision.core.wilson import calculate_variant_wilson_ci, is_significant_winner
from ab_decision.models import (
    DEFAULT_STATISTICS_CONFIG,
    BayesianComparison,
    RankingEntry,
    StatisticsConfig,
    VariantMetrics,
)

WIN_PROBABILITY_WEIGHT = 0.7
CVR_WEIGHT = 0.3
PROBABILITY_TIE_TOLERANCE = 0.01

# composite weights
COMPOSITE_CVR_WEIGHT = 0.3
COMPOSITE_WILSON_WEIGHT = 0.2
COMPOSITE_PROBABILITY_WEIGHT = 0.4
COMPOSITE_LOSS_WEIGHT = 0.1

MIN_WINNER_PROBABILITY_GAP = 0.8


class SortCriteria(str, Enum):
    """Orderings available to ``sort_variants``."""
    BAYESIAN_PROBABILITY = "bayesian_probability"
    CVR = "cvr"
    WILSON_LOWER = "wilson_lower"
    EXPECTED_LOSS = "expected_loss"
    COMPOSITE = "composite"


def build_ranking_entries(
    variants: Sequence[VariantMetrics],
    bayesian_result: BayesianComparison,
    wilson_confidence_level: float = 0.95,
) -> List[RankingEntry]:
    """
    Rank variants by win probability, breaking near-ties by CVR.

    Two variants whose win probabilities differ by less than 0.01 are
    ordered by CVR descending instead. The tolerance is not transitive: in a
    chain of near-ties the order depends on input order.

    Parameters
    ----------
    variants : sequence of VariantMetrics
        Variants to rank
    bayesian_result : BayesianComparison
        Source of win probabilities (missing ids count as 0)
    wilson_confidence_level : float, default=0.95
        Level of the Wilson interval attached to each entry

    Returns
    -------
    list of RankingEntry
        rank 1..n, score = 0.7 * win probability + 0.3 * CVR
    """
    probabilities = bayesian_result.win_probabilities

    def compare(a: VariantMetrics, b: VariantMetrics) -> int:
        prob_a = probabilities.get(a.variant_id, 0.0)
        prob_b = probabilities.get(b.variant_id, 0.0)
        if abs(prob_a - prob_b) >= PROBABILITY_TIE_TOLERANCE:
            return -1 if prob_a > prob_b else 1
        if a.cvr == b.cvr:
            return 0
        return -1 if a.cvr > b.cvr else 1

    ordered = sorted(variants, key=functools.cmp_to_key(compare))

    entries = []
    for index, variant in enumerate(ordered):
        win_probability = probabilities.get(variant.variant_id, 0.0)
        entries.append(RankingEntry(
            rank=index + 1,
            variant_id=variant.variant_id,
            metrics=variant,
            wilson_ci=calculate_variant_wilson_ci(variant, wilson_confidence_level),
            bayesian_win_probability=win_probability,
            score=WIN_PROBABILITY_WEIGHT * win_probability + CVR_WEIGHT * variant.cvr,
        ))
    return entries


def _composite_scores(
    variants: Sequence[VariantMetrics],
    bayesian_result: Optional[BayesianComparison],
    expected_loss: Optional[Dict[str, float]],
    config: StatisticsConfig,
) -> Dict[str, float]:
    max_loss = max(expected_loss.values()) if expected_loss else 0.0

    scores = {}
    for variant in variants:
        ci = calculate_variant_wilson_ci(variant, config.wilson_confidence_level)
        score = COMPOSITE_CVR_WEIGHT * variant.cvr + COMPOSITE_WILSON_WEIGHT * ci.lower

        if bayesian_result is not None:
            probability = bayesian_result.win_probabilities.get(variant.variant_id, 0.0)
            score += COMPOSITE_PROBABILITY_WEIGHT * probability

        if expected_loss:
            loss = expected_loss.get(variant.variant_id, 0.0)
            normalized = 1 - loss / max_loss if max_loss > 0 else 1.0
            score += COMPOSITE_LOSS_WEIGHT * normalized

        scores[variant.variant_id] = score
    return scores


def sort_variants(
    variants: Sequence[VariantMetrics],
    criteria: SortCriteria,
    bayesian_result: Optional[BayesianComparison] = None,
    expected_loss: Optional[Dict[str, float]] = None,
    config: Optional[StatisticsConfig] = None,
) -> List[VariantMetrics]:
    """
    Order variants by one criterion, best first.

    Parameters
    ----------
    variants : sequence of VariantMetrics
    criteria : SortCriteria or str
        'cvr', 'wilson_lower' (conservative), 'bayesian_probability',
        'expected_loss' (ascending) or 'composite'
    bayesian_result : BayesianComparison, optional
        Needed for 'bayesian_probability'; used by 'composite' if given
    expected_loss : dict, optional
        Needed for 'expected_loss'; used by 'composite' if given
    config : StatisticsConfig, optional
        Supplies the Wilson confidence level

    Returns
    -------
    list of VariantMetrics
        Sorted copy; input order is kept when the data a criterion needs is
        not provided. The sort is stable.
    """
    config = config or DEFAULT_STATISTICS_CONFIG
    criteria = SortCriteria(criteria)
    ordered = list(variants)

    if criteria is SortCriteria.CVR:
        ordered.sort(key=lambda v: v.cvr, reverse=True)
    elif criteria is SortCriteria.WILSON_LOWER:
        ordered.sort(
            key=lambda v: calculate_variant_wilson_ci(v, config.wilson_confidence_level).lower,
            reverse=True,
        )
    elif criteria is SortCriteria.BAYESIAN_PROBABILITY:
        if bayesian_result is not None:
            ordered.sort(
                key=lambda v: bayesian_result.win_probabilities.get(v.variant_id, 0.0),
                reverse=True,
            )
    elif criteria is SortCriteria.EXPECTED_LOSS:
        if expected_loss is not None:
            ordered.sort(key=lambda v: expected_loss.get(v.variant_id, float("inf")))
    else:
        scores = _composite_scores(variants, bayesian_result, expected_loss, config)
        ordered.sort(key=lambda v: scores[v.variant_id], reverse=True)

    return ordered


def generate_ranking(
    variants: Sequence[VariantMetrics],
    config: Optional[StatisticsConfig] = None,
) -> List[RankingEntry]:
    """
    Composite ranking using every signal the engine computes.

    Runs the Bayesian comparison and expected-loss simulation, sorts by the
    composite criterion and scores each entry as
    0.3 * CVR + 0.2 * Wilson lower + 0.4 * P(best) + 0.1 * (1 - loss).
    """
    if not variants:
        return []
    config = config or DEFAULT_STATISTICS_CONFIG

    bayesian_result = compare_bayesian(
        variants,
        config.bayes_prior_alpha,
        config.bayes_prior_beta,
        config.bayes_simulations,
        config.seed,
    )
    expected_loss = calculate_expected_loss(
        variants,
        config.bayes_prior_alpha,
        config.bayes_prior_beta,
        config.bayes_simulations,
        config.seed,
    )
    ordered = sort_variants(
        variants, SortCriteria.COMPOSITE, bayesian_result, expected_loss, config
    )

    entries = []
    for index, variant in enumerate(ordered):
        wilson_ci = calculate_variant_wilson_ci(variant, config.wilson_confidence_level)
        probability = bayesian_result.win_probabilities.get(variant.variant_id, 0.0)
        loss = expected_loss.get(variant.variant_id, 0.0)
        score = (
            COMPOSITE_CVR_WEIGHT * variant.cvr
            + COMPOSITE_WILSON_WEIGHT * wilson_ci.lower
            + COMPOSITE_PROBABILITY_WEIGHT * probability
            + COMPOSITE_LOSS_WEIGHT * (1 - loss)
        )
        entries.append(RankingEntry(
            rank=index + 1,
            variant_id=variant.variant_id,
            metrics=variant,
            wilson_ci=wilson_ci,
            bayesian_win_probability=probability,
            score=score,
        ))
    return entries


def determine_winner(
    ranking: Sequence[RankingEntry],
    min_win_probability: float = 0.95,
) -> Optional[str]:
    """
    Winner of a ranking, if its lead is decisive.

    The top entry must have at least ``min_win_probability`` and, when a
    runner-up exists, lead it by at least 0.8 (e.g. 95% vs 5%).
    """
    if not ranking:
        return None

    top = ranking[0]
    if top.bayesian_win_probability < min_win_probability:
        return None

    if len(ranking) > 1:
        gap = top.bayesian_win_probability - ranking[1].bayesian_win_probability
        if gap < MIN_WINNER_PROBABILITY_GAP:
            return None

    return top.variant_id


def is_clear_winner(
    variant_id: str,
    variants: Sequence[VariantMetrics],
    config: Optional[StatisticsConfig] = None,
) -> bool:
    """Whether ``variant_id``'s Wilson interval clears every other variant's."""
    config = config or DEFAULT_STATISTICS_CONFIG
    target = next((v for v in variants if v.variant_id == variant_id), None)
    if target is None:
        return False

    others = [v for v in variants if v.variant_id != variant_id]
    return is_significant_winner(target, others, config.wilson_confidence_level)
