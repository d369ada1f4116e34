"""
Solver parameter profile.

Translates the oracle configuration into the tuning parameters handed to
the LP backend on every call.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from ..config import MIN_IT_LIMIT, MIN_TIME_LIMIT, OracleConfig


class Verbosity(IntEnum):
    OFF = 0
    ERRORS = 1
    NORMAL = 2
    ALL = 3


class Method(Enum):
    PRIMAL = "primal"
    DUAL = "dual"


class Pricing(Enum):
    STANDARD = "standard"
    STEEPEST_EDGE = "steepest-edge"


class RatioTest(Enum):
    STANDARD = "standard"
    HARRIS = "harris"


@dataclass(frozen=True)
class SolverParameters:
    """
    Tuning parameters of a single LP solve.

    Attributes
    ----------
    verbosity : Verbosity
        How much solver output to show.
    method : Method
        Primal or dual simplex.
    pricing : Pricing
        Pricing rule.
    ratio_test : RatioTest
        Ratio test rule.
    it_limit : int or None
        Iteration limit, None for no limit.
    time_limit_ms : int or None
        Time limit in milliseconds, None for no limit.
    presolve : bool
        Whether the solver may presolve the problem.
    tolerance : float
        Primal and dual feasibility tolerance.
    """
    verbosity: Verbosity = Verbosity.OFF
    method: Method = Method.PRIMAL
    pricing: Pricing = Pricing.STANDARD
    ratio_test: RatioTest = RatioTest.STANDARD
    it_limit: Optional[int] = None
    time_limit_ms: Optional[int] = None
    presolve: bool = False
    tolerance: float = 1e-9


def profile(config: OracleConfig) -> SolverParameters:
    """
    Map an OracleConfig to SolverParameters.

    A zero iteration or time limit means no limit; other values are raised
    to at least MIN_IT_LIMIT iterations and MIN_TIME_LIMIT seconds.
    """
    if config.oracle_it_limit == 0:
        it_limit = None
    else:
        it_limit = max(config.oracle_it_limit, MIN_IT_LIMIT)

    if config.oracle_time_limit == 0:
        time_limit_ms = None
    else:
        time_limit_ms = 1000 * max(config.oracle_time_limit, MIN_TIME_LIMIT)

    return SolverParameters(
        verbosity=Verbosity(min(max(config.oracle_message, 0), 3)),
        method=Method.DUAL if config.oracle_method else Method.PRIMAL,
        pricing=(Pricing.STEEPEST_EDGE if config.oracle_pricing
                 else Pricing.STANDARD),
        ratio_test=(RatioTest.HARRIS if config.oracle_ratio_test
                    else RatioTest.STANDARD),
        it_limit=it_limit,
        time_limit_ms=time_limit_ms,
        presolve=config.presolve,
    )
