"""
Domain Errors
=============

Exceptions raised at the boundary of the decision engine. Both concrete
errors subclass ``ValueError`` so callers that already guard numeric
arguments with ``except ValueError`` keep working.
"""

from typing import Any, Dict, Optional


class ABDecisionError(Exception):
    """Base exception for all ab_decision errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidMetricsError(ABDecisionError, ValueError):
    """Raised when variant metrics violate count invariants."""

    def __init__(self, message: str, variant_id: Optional[str] = None, **details: Any):
        if variant_id is not None:
            details["variant_id"] = variant_id
        super().__init__(message, details)


class ConfigurationError(ABDecisionError, ValueError):
    """Raised for out-of-range statistics configuration."""

    def __init__(self, message: str, key: Optional[str] = None, value: Any = None):
        details = {}
        if key:
            details["key"] = key
            details["value"] = value
        super().__init__(message, details)
