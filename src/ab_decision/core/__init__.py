"""Core numerical methods: special functions, sampling, Wilson and Bayesian analysis."""

from ab_decision.core import special, normal, rng, sampling, wilson, bayesian

__all__ = ["special", "normal", "rng", "sampling", "wilson", "bayesian"]
