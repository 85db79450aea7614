"""
Normal Quantile
===============

Inverse standard-normal CDF (probit) for turning a confidence level into the
z critical value used by the Wilson interval.

Example Usage:
--------------
>>> from ab_decision.core import normal
>>>
>>> normal.z_score(0.95)
1.96
>>> round(normal.z_score(0.80), 4)
1.2816
"""

import math

# Common two-sided critical values, returned verbatim
Z_SCORES = {
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}

# Acklam's rational approximation coefficients
_A = (
    -3.969683028665376e1,
    2.209460984245205e2,
    -2.759285104469687e2,
    1.383577518672690e2,
    -3.066479806614716e1,
    2.506628277459239e0,
)
_B = (
    -5.447609879822406e1,
    1.615858368580409e2,
    -1.556989798598866e2,
    6.680131188771972e1,
    -1.328068155288572e1,
)
_C = (
    -7.784894002430293e-3,
    -3.223964580411365e-1,
    -2.400758277161838e0,
    -2.549732539343734e0,
    4.374664141464968e0,
    2.938163982698783e0,
)
_D = (
    7.784695709041462e-3,
    3.224671290700398e-1,
    2.445134137142996e0,
    3.754408661907416e0,
)

P_LOW = 0.02425
P_HIGH = 1 - P_LOW


def _tail(q: float) -> float:
    c1, c2, c3, c4, c5, c6 = _C
    d1, d2, d3, d4 = _D
    return (((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6) / (
        (((d1 * q + d2) * q + d3) * q + d4) * q + 1
    )


def probit(p: float) -> float:
    """
    Inverse of the standard normal CDF.

    Piecewise rational approximation (Acklam): a tail formula for
    p < 0.02425 and p > 0.97575, a central formula in between. Relative
    error is below 1.15e-9 over the whole domain.

    Parameters
    ----------
    p : float
        Probability, strictly between 0 and 1

    Returns
    -------
    float
        z such that Phi(z) = p

    Raises
    ------
    ValueError
        If p is not in the open interval (0, 1)
    """
    if not 0 < p < 1:
        raise ValueError(f"p must be between 0 and 1 exclusive, got {p}")

    if p < P_LOW:
        return _tail(math.sqrt(-2 * math.log(p)))

    if p <= P_HIGH:
        a1, a2, a3, a4, a5, a6 = _A
        b1, b2, b3, b4, b5 = _B
        q = p - 0.5
        r = q * q
        return ((((((a1 * r + a2) * r + a3) * r + a4) * r + a5) * r + a6) * q) / (
            ((((b1 * r + b2) * r + b3) * r + b4) * r + b5) * r + 1
        )

    return -_tail(math.sqrt(-2 * math.log(1 - p)))


def z_score(confidence_level: float) -> float:
    """
    Two-sided critical value for a confidence level.

    0.90, 0.95 and 0.99 come from a lookup table; anything else is
    probit(1 - (1 - confidence_level) / 2).

    Raises
    ------
    ValueError
        If confidence_level is not in (0, 1)
    """
    if confidence_level in Z_SCORES:
        return Z_SCORES[confidence_level]
    if not 0 < confidence_level < 1:
        raise ValueError(
            f"confidence_level must be between 0 and 1 exclusive, got {confidence_level}"
        )
    return probit(1 - (1 - confidence_level) / 2)
