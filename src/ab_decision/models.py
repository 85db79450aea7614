"""
Data Model
==========

Containers passed into and returned from the decision engine.

Inputs (``VariantMetrics``, ``SampleThresholds``, ``StatisticsConfig``) are
frozen and validated on construction, so the engine itself never has to
re-check count invariants. Results are plain dataclasses built once per
evaluation call.

Example Usage:
--------------
>>> from ab_decision.models import VariantMetrics, StatisticsConfig
>>>
>>> a = VariantMetrics("lp-a", clicks=1000, conversions=70)
>>> a.cvr
0.07
>>> config = StatisticsConfig.from_dict({"bayes_simulations": 5000,
...                                      "thresholds": {"min_cv_confident": 30}})
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ab_decision.exceptions import ConfigurationError, InvalidMetricsError


class ConfidenceLevel(str, Enum):
    """How trustworthy the current data is for declaring a winner."""
    INSUFFICIENT = "insufficient"
    DIRECTIONAL = "directional"
    CONFIDENT = "confident"


class Recommendation(str, Enum):
    """Action suggested to the operator of the test."""
    CONTINUE = "continue"
    STOP_WINNER = "stop_winner"
    STOP_NO_WINNER = "stop_no_winner"


@dataclass(frozen=True)
class VariantMetrics:
    """Aggregated click/conversion counts for one variant."""
    variant_id: str
    clicks: int
    conversions: int

    def __post_init__(self):
        if self.clicks < 0 or self.conversions < 0:
            raise InvalidMetricsError(
                "clicks and conversions must be non-negative",
                variant_id=self.variant_id,
                clicks=self.clicks,
                conversions=self.conversions,
            )
        if self.conversions > self.clicks:
            raise InvalidMetricsError(
                "conversions cannot exceed clicks",
                variant_id=self.variant_id,
                clicks=self.clicks,
                conversions=self.conversions,
            )

    @property
    def cvr(self) -> float:
        """Conversion rate, 0.0 when there are no clicks."""
        if self.clicks == 0:
            return 0.0
        return self.conversions / self.clicks


@dataclass(frozen=True)
class WilsonCiResult:
    """Wilson score interval for a single proportion."""
    point: float
    lower: float
    upper: float
    confidence_level: float


@dataclass(frozen=True)
class WilsonCiComparison:
    """Pairwise comparison of two variants' Wilson intervals."""
    variant_a: VariantMetrics
    variant_b: VariantMetrics
    ci_a: WilsonCiResult
    ci_b: WilsonCiResult
    overlapping: bool
    relative_lift: float
    a_significantly_better: bool
    b_significantly_better: bool


@dataclass(frozen=True)
class BayesianVariantResult:
    """Beta posterior of one variant's conversion rate."""
    variant_id: str
    alpha: float
    beta: float
    posterior_mean: float
    credible_interval_lower: float
    credible_interval_upper: float


@dataclass
class BayesianComparison:
    """Posteriors plus Monte Carlo win probabilities for a set of variants."""
    variants: List[BayesianVariantResult]
    win_probabilities: Dict[str, float]
    likely_winner: Optional[str]
    likely_winner_probability: float


@dataclass(frozen=True)
class RankingEntry:
    """One row of the variant ranking."""
    rank: int
    variant_id: str
    metrics: VariantMetrics
    wilson_ci: WilsonCiResult
    bayesian_win_probability: float
    score: float


@dataclass(frozen=True)
class AggregateMetrics:
    """Totals across all variants of a test."""
    total_clicks: int
    total_conversions: int
    variant_count: int


@dataclass(frozen=True)
class SampleThresholds:
    """Sample-size thresholds for the directional and confident tiers."""
    min_clicks_directional: int = 200
    min_cv_directional: int = 5
    min_cv_confident: int = 20
    min_cvr_lift_confident: float = 0.05  # relative lift, 0.05 = 5%

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise ConfigurationError(
                    f"{f.name} must be non-negative", key=f.name, value=value
                )


@dataclass(frozen=True)
class InsufficientThresholds:
    """Below both of these the data cannot show any trend."""
    min_clicks: int = 200
    min_cv: int = 3


DEFAULT_SAMPLE_THRESHOLDS = SampleThresholds()
INSUFFICIENT_THRESHOLDS = InsufficientThresholds()


@dataclass(frozen=True)
class StatisticsConfig:
    """Knobs for one evaluation call."""
    thresholds: SampleThresholds = field(default_factory=SampleThresholds)
    wilson_confidence_level: float = 0.95
    bayes_prior_alpha: float = 1.0
    bayes_prior_beta: float = 1.0
    bayes_simulations: int = 10000
    seed: int = 42

    def __post_init__(self):
        if not 0 < self.wilson_confidence_level < 1:
            raise ConfigurationError(
                "wilson_confidence_level must be between 0 and 1 exclusive",
                key="wilson_confidence_level",
                value=self.wilson_confidence_level,
            )
        for key in ("bayes_prior_alpha", "bayes_prior_beta"):
            value = getattr(self, key)
            if value <= 0:
                raise ConfigurationError("Prior parameters must be positive", key=key, value=value)
        if self.bayes_simulations < 1:
            raise ConfigurationError(
                "bayes_simulations must be at least 1",
                key="bayes_simulations",
                value=self.bayes_simulations,
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StatisticsConfig":
        """
        Build a config from a plain mapping (e.g. parsed JSON settings).

        ``thresholds`` may itself be a mapping. Unknown keys raise
        ``ConfigurationError`` rather than being silently ignored.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs = dict(data)
        thresholds = kwargs.get("thresholds")
        if isinstance(thresholds, Mapping):
            threshold_keys = {f.name for f in fields(SampleThresholds)}
            bad = set(thresholds) - threshold_keys
            if bad:
                raise ConfigurationError(f"Unknown threshold keys: {sorted(bad)}")
            kwargs["thresholds"] = SampleThresholds(**thresholds)
        return cls(**kwargs)


DEFAULT_STATISTICS_CONFIG = StatisticsConfig()


@dataclass
class DecisionResult:
    """Outcome of one confidence evaluation."""
    confidence: ConfidenceLevel
    winner_id: Optional[str]
    ranking: List[RankingEntry]
    rationale: str
    recommendation: Recommendation
    additional_samples_needed: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation for report rendering."""
        return {
            'confidence': self.confidence.value,
            'winner_id': self.winner_id,
            'ranking': [
                {
                    'rank': entry.rank,
                    'variant_id': entry.variant_id,
                    'clicks': entry.metrics.clicks,
                    'conversions': entry.metrics.conversions,
                    'cvr': entry.metrics.cvr,
                    'wilson_ci': asdict(entry.wilson_ci),
                    'bayesian_win_probability': entry.bayesian_win_probability,
                    'score': entry.score,
                }
                for entry in self.ranking
            ],
            'rationale': self.rationale,
            'recommendation': self.recommendation.value,
            'additional_samples_needed': self.additional_samples_needed,
        }


@dataclass
class StatisticsResult:
    """Full analysis: decision plus the supporting frequentist/Bayesian detail."""
    decision: DecisionResult
    wilson_comparisons: List[WilsonCiComparison]
    bayesian_analysis: BayesianComparison
    aggregate: AggregateMetrics
    analyzed_at: str
