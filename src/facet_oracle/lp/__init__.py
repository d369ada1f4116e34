"""
Linear programming module for the facet oracle.

Implements:
- The LP model of a VLP polytope (objective rows, lambda column)
- Solver parameter profile
- LP solver service on top of HiGHS (highspy)
- LP session with bounded retries and call statistics

Main entry points:
- `LPSession(model, config).solve()`: solve with recovery
- `HighsBackend().solve(problem, params)`: a single LP solve
"""

from .model import (
    LinearProgram,
    PolytopeModel,
    build_model,
)

from .params import (
    Method,
    Pricing,
    RatioTest,
    SolverParameters,
    Verbosity,
    profile,
)

from .backend import (
    HighsBackend,
    LPBackend,
    SolutionStatus,
    SolverOutcome,
    SolverReturn,
    scale_constraints,
)

from .session import (
    RECOVERY_STEPS,
    LPSession,
    RecoveryStep,
)

__all__ = [
    # Model
    "LinearProgram",
    "PolytopeModel",
    "build_model",
    # Parameters
    "Method",
    "Pricing",
    "RatioTest",
    "SolverParameters",
    "Verbosity",
    "profile",
    # Backend
    "HighsBackend",
    "LPBackend",
    "SolutionStatus",
    "SolverOutcome",
    "SolverReturn",
    "scale_constraints",
    # Session
    "RECOVERY_STEPS",
    "LPSession",
    "RecoveryStep",
]
