"""
A/B Decision Engine - Winner Declaration for Marketing Experiments
==================================================================

Decides whether a running A/B test over marketing variants (landing pages,
creatives, ad copy) has enough evidence to declare a winner.

Modules:
--------
- core: Special functions, normal quantile, seeded RNG, Gamma/Beta sampling,
  Wilson intervals and Bayesian Beta-Binomial analysis
- decision: Ranking, confidence tiers and the analysis entry points
- data: pandas adapters for per-variant aggregates

Example Usage:
--------------
>>> from ab_decision import VariantMetrics, evaluate_confidence
>>>
>>> result = evaluate_confidence([
...     VariantMetrics("A", clicks=1000, conversions=70),
...     VariantMetrics("B", clicks=1000, conversions=20),
... ])
>>> print(result.confidence.value, result.winner_id)
confident A
>>> print(result.rationale)

Version: 1.0.0
License: MIT
"""

import logging

__version__ = "1.0.0"
__license__ = "MIT"

from ab_decision.core import bayesian, normal, rng, sampling, special, wilson
from ab_decision.decision import confidence, framework, ranking
from ab_decision.decision.confidence import create_variant_metrics, evaluate_confidence
from ab_decision.decision.framework import analyze_variants, quick_analysis
from ab_decision.exceptions import ABDecisionError, ConfigurationError, InvalidMetricsError
from ab_decision.models import (
    DEFAULT_SAMPLE_THRESHOLDS,
    DEFAULT_STATISTICS_CONFIG,
    ConfidenceLevel,
    DecisionResult,
    Recommendation,
    SampleThresholds,
    StatisticsConfig,
    VariantMetrics,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "bayesian",
    "normal",
    "rng",
    "sampling",
    "special",
    "wilson",
    "confidence",
    "framework",
    "ranking",
    "evaluate_confidence",
    "analyze_variants",
    "quick_analysis",
    "create_variant_metrics",
    "VariantMetrics",
    "SampleThresholds",
    "StatisticsConfig",
    "DecisionResult",
    "ConfidenceLevel",
    "Recommendation",
    "DEFAULT_SAMPLE_THRESHOLDS",
    "DEFAULT_STATISTICS_CONFIG",
    "ABDecisionError",
    "InvalidMetricsError",
    "ConfigurationError",
]
