"""
Small numerical helpers: rounding to simple rationals and extended-precision
dot products for the separation checks.
"""

from fractions import Fraction
from typing import Sequence

from mpmath import mp, mpf

from .config import MPMATH_PRECISION, ROUND_MAX_DENOMINATOR, ROUND_TOLERANCE


def round_to(
    value: float,
    max_denominator: int = ROUND_MAX_DENOMINATOR,
    tolerance: float = ROUND_TOLERANCE,
) -> float:
    """
    Round `value` to the nearest rational with a small denominator.

    The value is left unchanged unless the best rational approximation with
    denominator at most `max_denominator` is within `tolerance`.

    Examples
    --------
    >>> round_to(0.33333333334)
    0.3333333333333333
    >>> round_to(0.1234567)
    0.1234567
    """
    frac = Fraction(value).limit_denominator(max_denominator)
    rounded = frac.numerator / frac.denominator
    if abs(rounded - value) < tolerance:
        return rounded
    return value


def exact_dot(
    x: Sequence[float],
    y: Sequence[float],
    dps: int = MPMATH_PRECISION,
) -> float:
    """
    Dot product of two float vectors evaluated at `dps` decimal digits.

    The float inputs are exact binary numbers, so the only rounding left is
    the final conversion back to float.
    """
    saved_dps = mp.dps
    mp.dps = dps
    try:
        total = mp.fsum(mpf(float(a)) * mpf(float(b)) for a, b in zip(x, y))
        return float(total)
    finally:
        mp.dps = saved_dps
