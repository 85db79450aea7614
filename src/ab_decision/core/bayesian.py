"""
Bayesian A/B Testing
====================

Beta-Binomial posterior analysis for conversion rates: posterior summaries
with equal-tailed credible intervals, and Monte Carlo estimates of each
variant's probability of being best and its expected loss.

All simulations consume one ``DeterministicRng`` per call, drawing one
posterior sample per variant per trial in input order, so identical inputs
and seed give identical results.

Example Usage:
--------------
>>> from ab_decision.core import bayesian
>>> from ab_decision.models import VariantMetrics
>>>
>>> variants = [
...     VariantMetrics("A", clicks=1000, conversions=70),
...     VariantMetrics("B", clicks=1000, conversions=20),
... ]
>>> result = bayesian.compare_bayesian(variants)
>>> print(f"Likely winner: {result.likely_winner} "
...       f"({result.likely_winner_probability:.2%})")
"""

import math
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ab_decision.core.rng import DEFAULT_SEED, DeterministicRng
from ab_decision.core.sampling import sample_beta
from ab_decision.core.special import beta_pdf, incomplete_beta
from ab_decision.models import BayesianComparison, BayesianVariantResult, VariantMetrics

QUANTILE_MAX_ITERATIONS = 100
QUANTILE_TOLERANCE = 1e-10
QUANTILE_LOWER_CLAMP = 0.001
QUANTILE_UPPER_CLAMP = 0.999

CREDIBLE_LOWER_TAIL = 0.025
CREDIBLE_UPPER_TAIL = 0.975

DEFAULT_SIMULATIONS = 10000


def _check_parameters(prior_alpha: float, prior_beta: float, num_simulations: int = 1) -> None:
    if prior_alpha <= 0 or prior_beta <= 0:
        raise ValueError("Prior parameters must be positive")
    if num_simulations < 1:
        raise ValueError("num_simulations must be at least 1")


def posterior_parameters(
    variant: VariantMetrics,
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
) -> Tuple[float, float]:
    """(alpha, beta) of the conjugate posterior: prior + successes / failures."""
    return (
        prior_alpha + variant.conversions,
        prior_beta + (variant.clicks - variant.conversions),
    )


def beta_quantile(p: float, alpha: float, beta: float) -> float:
    """
    Quantile of Beta(alpha, beta) by Newton-Raphson on I_x(alpha, beta) - p.

    Starts from 0.5 for symmetric posteriors, otherwise from
    mean + (p - 0.5) * 0.5 / sqrt(alpha + beta). Every iterate is clamped to
    [0.001, 0.999]. Stops once |I_x - p| < 1e-10, when the density vanishes,
    or after 100 iterations, returning the current estimate in all cases.

    Parameters
    ----------
    p : float
        Target probability
    alpha, beta : float
        Shape parameters

    Returns
    -------
    float
        x with I_x(alpha, beta) ~= p; 0 for p <= 0 and 1 for p >= 1
    """
    if p <= 0:
        return 0.0
    if p >= 1:
        return 1.0

    if alpha == beta:
        x = 0.5
    else:
        x = alpha / (alpha + beta) + (p - 0.5) * 0.5 / math.sqrt(alpha + beta)
    x = max(QUANTILE_LOWER_CLAMP, min(QUANTILE_UPPER_CLAMP, x))

    for _ in range(QUANTILE_MAX_ITERATIONS):
        fx = incomplete_beta(x, alpha, beta) - p
        if abs(fx) < QUANTILE_TOLERANCE:
            break

        fpx = beta_pdf(x, alpha, beta)
        if fpx == 0:
            break

        x = max(QUANTILE_LOWER_CLAMP, min(QUANTILE_UPPER_CLAMP, x - fx / fpx))

    return x


def calculate_posterior(
    variant: VariantMetrics,
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
) -> BayesianVariantResult:
    """
    Posterior summary for one variant.

    Parameters
    ----------
    variant : VariantMetrics
        Observed clicks and conversions
    prior_alpha : float, default=1.0
        Alpha of the Beta prior (1.0 = uniform prior)
    prior_beta : float, default=1.0
        Beta of the Beta prior

    Returns
    -------
    BayesianVariantResult
        Posterior parameters, mean and 95% equal-tailed credible interval

    Notes
    -----
    - Posterior: Beta(prior_alpha + conversions, prior_beta + clicks - conversions)
    - Use prior Beta(0.5, 0.5) for the Jeffreys prior
    """
    _check_parameters(prior_alpha, prior_beta)
    alpha, beta = posterior_parameters(variant, prior_alpha, prior_beta)

    return BayesianVariantResult(
        variant_id=variant.variant_id,
        alpha=alpha,
        beta=beta,
        posterior_mean=alpha / (alpha + beta),
        credible_interval_lower=beta_quantile(CREDIBLE_LOWER_TAIL, alpha, beta),
        credible_interval_upper=beta_quantile(CREDIBLE_UPPER_TAIL, alpha, beta),
    )


def draw_sample_matrix(
    variants: Sequence[VariantMetrics],
    prior_alpha: float,
    prior_beta: float,
    num_simulations: int,
    rng: DeterministicRng,
) -> np.ndarray:
    """
    Draw a (num_simulations, n_variants) matrix of posterior samples.

    Row by row, one sample per variant in input order; this order is what
    makes results reproducible for a given seed.
    """
    params = [posterior_parameters(v, prior_alpha, prior_beta) for v in variants]
    rows = [
        [sample_beta(alpha, beta, rng) for alpha, beta in params]
        for _ in range(num_simulations)
    ]
    return np.array(rows, dtype=float).reshape(num_simulations, len(params))


def calculate_win_probabilities(
    variants: Sequence[VariantMetrics],
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
    num_simulations: int = DEFAULT_SIMULATIONS,
    seed: int = DEFAULT_SEED,
) -> Dict[str, float]:
    """
    Monte Carlo probability that each variant has the highest true CVR.

    Parameters
    ----------
    variants : sequence of VariantMetrics
        Variants to compare (ids must be unique)
    prior_alpha, prior_beta : float
        Beta prior parameters
    num_simulations : int, default=10000
        Number of Monte Carlo trials
    seed : int, default=42
        Seed of the per-call generator

    Returns
    -------
    dict
        variant_id -> probability, in input order. Empty for no variants,
        {id: 1.0} for a single variant. Values are win counts divided by
        num_simulations, so they sum to 1. Ties go to the earlier variant.
    """
    if not variants:
        return {}
    if len(variants) == 1:
        return {variants[0].variant_id: 1.0}
    _check_parameters(prior_alpha, prior_beta, num_simulations)

    rng = DeterministicRng(seed)
    samples = draw_sample_matrix(variants, prior_alpha, prior_beta, num_simulations, rng)
    winners = np.argmax(samples, axis=1)
    counts = np.bincount(winners, minlength=len(variants))

    return {
        variant.variant_id: float(count) / num_simulations
        for variant, count in zip(variants, counts)
    }


def calculate_expected_loss(
    variants: Sequence[VariantMetrics],
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
    num_simulations: int = DEFAULT_SIMULATIONS,
    seed: int = DEFAULT_SEED,
) -> Dict[str, float]:
    """
    Expected loss of committing to each variant.

    For variant i the loss is E[max_j(theta_j) - theta_i]: the conversion
    rate given up if a better variant exists. Lower means less risk.

    Returns
    -------
    dict
        variant_id -> expected loss, in input order; empty for no variants
    """
    if not variants:
        return {}
    _check_parameters(prior_alpha, prior_beta, num_simulations)

    rng = DeterministicRng(seed)
    samples = draw_sample_matrix(variants, prior_alpha, prior_beta, num_simulations, rng)
    losses = samples.max(axis=1, keepdims=True) - samples

    return {
        variant.variant_id: float(loss)
        for variant, loss in zip(variants, losses.mean(axis=0))
    }


def probability_a_beats_b(
    variant_a: VariantMetrics,
    variant_b: VariantMetrics,
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
    num_simulations: int = DEFAULT_SIMULATIONS,
    seed: int = DEFAULT_SEED,
) -> float:
    """
    Monte Carlo estimate of P(CVR_A > CVR_B).

    Each trial draws A's posterior sample, then B's.

    Example
    -------
    >>> a = VariantMetrics("a", 1000, 100)
    >>> b = VariantMetrics("b", 1000, 50)
    >>> probability_a_beats_b(a, b) > 0.99
    True
    """
    _check_parameters(prior_alpha, prior_beta, num_simulations)
    alpha_a, beta_a = posterior_parameters(variant_a, prior_alpha, prior_beta)
    alpha_b, beta_b = posterior_parameters(variant_b, prior_alpha, prior_beta)

    rng = DeterministicRng(seed)
    a_wins = 0
    for _ in range(num_simulations):
        sample_a = sample_beta(alpha_a, beta_a, rng)
        sample_b = sample_beta(alpha_b, beta_b, rng)
        if sample_a > sample_b:
            a_wins += 1

    return a_wins / num_simulations


def compare_bayesian(
    variants: Sequence[VariantMetrics],
    prior_alpha: float = 1.0,
    prior_beta: float = 1.0,
    num_simulations: int = DEFAULT_SIMULATIONS,
    seed: int = DEFAULT_SEED,
) -> BayesianComparison:
    """
    Full Bayesian comparison of a set of variants.

    Returns
    -------
    BayesianComparison
        Per-variant posteriors, win probabilities, and the variant with the
        highest win probability (first one on ties; None for no variants)
    """
    results: List[BayesianVariantResult] = [
        calculate_posterior(v, prior_alpha, prior_beta) for v in variants
    ]
    win_probabilities = calculate_win_probabilities(
        variants, prior_alpha, prior_beta, num_simulations, seed
    )

    likely_winner = None
    likely_winner_probability = 0.0
    for variant_id, probability in win_probabilities.items():
        if probability > likely_winner_probability:
            likely_winner = variant_id
            likely_winner_probability = probability

    return BayesianComparison(
        variants=results,
        win_probabilities=win_probabilities,
        likely_winner=likely_winner,
        likely_winner_probability=likely_winner_probability,
    )


if __name__ == "__main__":
    print("=" * 80)
    print("Bayesian Win Probability Demo")
    print("=" * 80)

    demo = [
        VariantMetrics("A", clicks=1000, conversions=70),
        VariantMetrics("B", clicks=1000, conversions=20),
        VariantMetrics("C", clicks=1000, conversions=60),
    ]
    comparison = compare_bayesian(demo)
    for posterior in comparison.variants:
        print(f"{posterior.variant_id}: Beta({posterior.alpha:.0f}, {posterior.beta:.0f}) "
              f"mean={posterior.posterior_mean:.4f} "
              f"95% CrI=({posterior.credible_interval_lower:.4f}, "
              f"{posterior.credible_interval_upper:.4f}) "
              f"P(best)={comparison.win_probabilities[posterior.variant_id]:.2%}")

    loss = calculate_expected_loss(demo)
    print("\nExpected loss:")
    for variant_id, value in loss.items():
        print(f"  {variant_id}: {value:.6f}")
    print(f"\nP(A > C) = {probability_a_beats_b(demo[0], demo[2]):.2%}")
