"""Ranking, confidence tiers and analysis entry points."""

from ab_decision.decision import ranking, confidence, framework

__all__ = ["ranking", "confidence", "framework"]
