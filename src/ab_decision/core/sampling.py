"""
Gamma and Beta Sampling
=======================

Random variates for the Monte Carlo posterior comparisons. Every sampler
takes the generator explicitly so a call's draw sequence depends only on its
seed and the order in which variants are sampled.

Example Usage:
--------------
>>> from ab_decision.core.rng import DeterministicRng
>>> from ab_decision.core import sampling
>>>
>>> rng = DeterministicRng(42)
>>> x = sampling.sample_beta(71, 931, rng)   # posterior of 70/1000 under Beta(1,1)
>>> 0 < x < 1
True

References
----------
- Marsaglia & Tsang (2000): "A Simple Method for Generating Gamma Variables"
- Joehnk (1964): "Erzeugung von betaverteilten und gammaverteilten Zufallszahlen"
"""

import logging
import math

from ab_decision.core.rng import DeterministicRng

logger = logging.getLogger(__name__)

MAX_GAMMA_ITERATIONS = 10000
MAX_JOEHNK_RETRIES = 10000


def sample_gamma(shape: float, rng: DeterministicRng) -> float:
    """
    Draw from Gamma(shape, 1).

    Marsaglia-Tsang rejection for shape >= 1. For shape < 1 a uniform u is
    drawn first, then Gamma(shape + 1) is sampled and scaled by u**(1/shape).

    Each rejection attempt draws two uniforms for a Box-Muller normal x and,
    when v = (1 + c x)**3 is positive, one more uniform for the acceptance
    test. After MAX_GAMMA_ITERATIONS rejected attempts d = shape - 1/3 is
    returned as an approximation.

    Parameters
    ----------
    shape : float
        Shape parameter (> 0)
    rng : DeterministicRng
        Source of uniforms

    Returns
    -------
    float
        Gamma variate
    """
    if shape <= 0:
        raise ValueError("shape must be positive")

    scale = 1.0
    if shape < 1:
        u = rng.random()
        scale = u ** (1.0 / shape)
        shape += 1.0

    d = shape - 1.0 / 3.0
    c = 1.0 / math.sqrt(9.0 * d)

    for _ in range(MAX_GAMMA_ITERATIONS):
        u1 = rng.random()
        u2 = rng.random()
        if u1 <= 0.0:
            continue
        x = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        v = 1.0 + c * x
        if v <= 0.0:
            continue

        v = v * v * v
        u = rng.random()
        x2 = x * x
        if u < 1.0 - 0.0331 * x2 * x2:
            return d * v * scale
        if u > 0.0 and math.log(u) < 0.5 * x2 + d * (1.0 - v + math.log(v)):
            return d * v * scale

    logger.debug("Gamma rejection sampler hit %d iterations (shape=%s), returning d",
                 MAX_GAMMA_ITERATIONS, shape)
    return d * scale


def sample_beta(alpha: float, beta: float, rng: DeterministicRng) -> float:
    """
    Draw from Beta(alpha, beta).

    If either parameter is below 1, Joehnk's method: u1 = r**(1/alpha),
    u2 = r**(1/beta), accepted when u1 + u2 <= 1, retried at most
    MAX_JOEHNK_RETRIES times before falling back to the mean. Otherwise the
    ratio Ga / (Ga + Gb) of two Gamma draws, alpha's drawn first.

    Parameters
    ----------
    alpha, beta : float
        Shape parameters (> 0)
    rng : DeterministicRng
        Source of uniforms

    Returns
    -------
    float
        Beta variate in [0, 1]
    """
    if alpha <= 0 or beta <= 0:
        raise ValueError("Alpha and beta must be positive")

    if alpha < 1 or beta < 1:
        for _ in range(MAX_JOEHNK_RETRIES):
            u1 = rng.random() ** (1.0 / alpha)
            u2 = rng.random() ** (1.0 / beta)
            total = u1 + u2
            if 0.0 < total <= 1.0:
                return u1 / total
        logger.debug("Joehnk sampler hit %d retries (alpha=%s, beta=%s), returning mean",
                     MAX_JOEHNK_RETRIES, alpha, beta)
        return alpha / (alpha + beta)

    gamma_a = sample_gamma(alpha, rng)
    gamma_b = sample_gamma(beta, rng)
    return gamma_a / (gamma_a + gamma_b)
