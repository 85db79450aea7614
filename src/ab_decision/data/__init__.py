"""pandas adapters for per-variant aggregates."""

from ab_decision.data import frames

__all__ = ["frames"]
