"""
Global configuration and numerical constants for the facet oracle.

Module-level constants are the defaults; `OracleConfig` bundles the options
that a single oracle instance consumes.
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Numerical Parameters
# =============================================================================

POLYTOPE_EPS = 1e-7
"""Tolerance used for the interior point, lambda and facet checks."""

MPMATH_PRECISION = 50
"""Number of decimal digits used when re-evaluating the separation checks."""

ROUND_MAX_DENOMINATOR = 1000
"""Largest denominator considered when rounding facets to simple rationals."""

ROUND_TOLERANCE = 1e-9
"""A value is replaced by a rational only when it is closer than this."""


# =============================================================================
# LP Solver Parameters
# =============================================================================

DEFAULT_IT_LIMIT = 100000
"""Default simplex iteration limit (0 means no limit)."""

MIN_IT_LIMIT = 1000
"""Smallest iteration limit passed to the solver."""

DEFAULT_TIME_LIMIT = 0
"""Default time limit per LP call in seconds (0 means no limit)."""

MIN_TIME_LIMIT = 5
"""Smallest time limit (seconds) passed to the solver."""


# =============================================================================
# VLP Format
# =============================================================================

MAX_LINELEN = 80
"""Longer VLP lines are truncated to this many characters."""

DIRECTIONS = ("min", "max")
"""Accepted optimization directions in the 'p' line."""


# =============================================================================
# Oracle configuration
# =============================================================================

@dataclass
class OracleConfig:
    """Options consumed by the loader, the LP session and the oracle."""

    oracle_message: int = 0
    """Solver verbosity: 0 off, 1 errors only, 2 normal, 3 all."""

    shuffle_matrix: bool = False
    """Randomly permute rows and columns before building the LP."""

    shuffle_seed: Optional[int] = None
    """Seed of the shuffling generator; None draws fresh entropy."""

    oracle_scale: bool = False
    """Rescale the LP before each solve."""

    oracle_method: int = 0
    """0 primal simplex, 1 dual simplex."""

    oracle_pricing: int = 0
    """0 standard pricing, 1 steepest edge."""

    oracle_ratio_test: int = 0
    """0 standard ratio test, 1 Harris' two-pass ratio test."""

    oracle_it_limit: int = DEFAULT_IT_LIMIT
    """Iteration limit; 0 means unbounded, otherwise at least MIN_IT_LIMIT."""

    oracle_time_limit: int = DEFAULT_TIME_LIMIT
    """Time limit in seconds; 0 means unbounded, otherwise at least MIN_TIME_LIMIT."""

    polytope_eps: float = POLYTOPE_EPS
    """Numeric tolerance of the oracle."""

    round_facets: bool = False
    """Round returned facet coefficients to nearby simple rationals."""

    presolve: bool = False
    """Let the solver presolve the LP (hides exact unbounded statuses)."""

    direction: str = "min"
    """Optimization direction recorded from the parsed VLP file."""

    def __post_init__(self):
        if self.oracle_message not in (0, 1, 2, 3):
            raise ValueError(
                f"oracle_message must be 0..3, got {self.oracle_message}"
            )
        if self.oracle_it_limit < 0 or self.oracle_time_limit < 0:
            raise ValueError("Iteration and time limits must be non-negative")
        if self.polytope_eps <= 0:
            raise ValueError(
                f"polytope_eps must be positive, got {self.polytope_eps}"
            )
        if self.direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction {self.direction!r}")
