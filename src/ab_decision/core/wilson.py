"""
Wilson Score Intervals
======================

Frequentist confidence intervals for per-variant conversion rates, and the
pairwise "non-overlapping interval" significance check built on them.

The Wilson interval is preferred over the Wald (normal approximation)
interval because it keeps good coverage at small sample sizes and never
leaves [0, 1].

Example Usage:
--------------
>>> from ab_decision.core import wilson
>>> from ab_decision.models import VariantMetrics
>>>
>>> ci = wilson.calculate_wilson_ci(successes=50, trials=1000)
>>> print(f"{ci.point:.3f} [{ci.lower:.3f}, {ci.upper:.3f}]")
0.050 [0.038, 0.065]
>>>
>>> a = VariantMetrics("a", clicks=10000, conversions=800)
>>> b = VariantMetrics("b", clicks=10000, conversions=300)
>>> wilson.compare_variants_wilson_ci(a, b).a_significantly_better
True

References
----------
- Wilson (1927): "Probable inference, the law of succession, and
  statistical inference", JASA 22(158)
"""

import math
from typing import List, Sequence

from ab_decision.core.normal import z_score
from ab_decision.models import VariantMetrics, WilsonCiComparison, WilsonCiResult


def calculate_wilson_ci(
    successes: int,
    trials: int,
    confidence_level: float = 0.95,
) -> WilsonCiResult:
    """
    Wilson score interval for a binomial proportion.

    Parameters
    ----------
    successes : int
        Number of successes (conversions)
    trials : int
        Number of trials (clicks)
    confidence_level : float, default=0.95
        Two-sided confidence level

    Returns
    -------
    WilsonCiResult
        point estimate with lower/upper bounds; all zero when trials <= 0

    Notes
    -----
    - center = p + z^2 / 2n
    - denom = 1 + z^2 / n
    - margin = z * sqrt((p(1-p) + z^2 / 4n) / n) / denom
    - bounds = (center -/+ margin) / denom
    - The margin is scaled by denom before the bounds are, so intervals are
      narrower than the textbook Wilson interval. Bounds are clamped to
      [0, 1] and to contain p
    """
    if trials <= 0:
        return WilsonCiResult(point=0.0, lower=0.0, upper=0.0, confidence_level=confidence_level)

    n = trials
    p = successes / n
    z = z_score(confidence_level)
    z2 = z * z

    denominator = 1 + z2 / n
    center = p + z2 / (2 * n)
    margin = z * math.sqrt((p * (1 - p) + z2 / (4 * n)) / n) / denominator

    lower = min(max(0.0, (center - margin) / denominator), p)
    upper = max(min(1.0, (center + margin) / denominator), p)

    return WilsonCiResult(point=p, lower=lower, upper=upper, confidence_level=confidence_level)


def calculate_variant_wilson_ci(
    variant: VariantMetrics,
    confidence_level: float = 0.95,
) -> WilsonCiResult:
    """Wilson interval of a variant's conversion rate."""
    return calculate_wilson_ci(variant.conversions, variant.clicks, confidence_level)


def compare_variants_wilson_ci(
    variant_a: VariantMetrics,
    variant_b: VariantMetrics,
    confidence_level: float = 0.95,
) -> WilsonCiComparison:
    """
    Compare two variants by their Wilson intervals.

    A is significantly better than B when A's lower bound lies above B's
    upper bound (and vice versa). Relative lift is A over B, reported as 0
    when B has no conversions.

    Parameters
    ----------
    variant_a, variant_b : VariantMetrics
        Variants to compare
    confidence_level : float, default=0.95
        Two-sided confidence level of both intervals

    Returns
    -------
    WilsonCiComparison
    """
    ci_a = calculate_variant_wilson_ci(variant_a, confidence_level)
    ci_b = calculate_variant_wilson_ci(variant_b, confidence_level)

    overlapping = ci_a.lower <= ci_b.upper and ci_b.lower <= ci_a.upper
    relative_lift = (
        (variant_a.cvr - variant_b.cvr) / variant_b.cvr if variant_b.cvr > 0 else 0.0
    )

    return WilsonCiComparison(
        variant_a=variant_a,
        variant_b=variant_b,
        ci_a=ci_a,
        ci_b=ci_b,
        overlapping=overlapping,
        relative_lift=relative_lift,
        a_significantly_better=ci_a.lower > ci_b.upper,
        b_significantly_better=ci_b.lower > ci_a.upper,
    )


def compare_all_variants_wilson_ci(
    variants: Sequence[VariantMetrics],
    confidence_level: float = 0.95,
) -> List[WilsonCiComparison]:
    """All pairwise comparisons (i < j) in input order."""
    comparisons = []
    for i in range(len(variants)):
        for j in range(i + 1, len(variants)):
            comparisons.append(
                compare_variants_wilson_ci(variants[i], variants[j], confidence_level)
            )
    return comparisons


def is_significant_winner(
    target: VariantMetrics,
    others: Sequence[VariantMetrics],
    confidence_level: float = 0.95,
) -> bool:
    """
    Whether ``target`` is significantly better than every variant in ``others``.

    Returns False when there is nothing to compare against.
    """
    if not others:
        return False
    return all(
        compare_variants_wilson_ci(target, other, confidence_level).a_significantly_better
        for other in others
    )
