"""
LP solver service used by the oracle.

`LPBackend` is the interface the solve wrapper talks to; `HighsBackend`
implements it with the HiGHS simplex solvers through highspy. Results come
back as a `SolverOutcome`: a return code saying whether the solver ran to
completion, and a solution status saying what it found.

Row duals are reported in the sense of the problem being solved: for a
maximization, dual[i] is the rate at which the optimum grows when the
bounds of row i are moved up.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import highspy
import numpy as np
from scipy.sparse import csc_matrix

from .model import LinearProgram
from .params import Method, Pricing, SolverParameters, Verbosity


logger = logging.getLogger(__name__)


class SolverReturn(Enum):
    """Whether the solver finished its job."""
    OK = "ok"
    BAD_BASIS = "invalid basis"
    SINGULAR = "singular matrix"
    FAILURE = "solver failed"
    ITERATION_LIMIT = "iteration limit exceeded"
    TIME_LIMIT = "time limit exceeded"
    INVALID_DATA = "invalid data"

    @property
    def is_limit(self) -> bool:
        return self in (SolverReturn.ITERATION_LIMIT, SolverReturn.TIME_LIMIT)


class SolutionStatus(Enum):
    """What the solver found, meaningful when the return code is OK."""
    UNDEFINED = "the problem is undefined"
    NO_FEASIBLE = "the problem has no feasible solution"
    OPTIMAL = "solution is optimal"
    UNBOUNDED = "the problem is unbounded"
    UNBOUNDED_OR_INFEASIBLE = "the problem is unbounded or infeasible"


@dataclass
class SolverOutcome:
    """
    Result of one LP solve.

    Attributes
    ----------
    ret : SolverReturn
        Return code of the solver call.
    status : SolutionStatus
        Solution status (UNDEFINED unless ret is OK).
    objective : float or None
        Optimal objective value, in the problem's own sense.
    row_duals : np.ndarray or None
        Dual value of every row, in the problem's own sense.
    x : np.ndarray or None
        Primal solution.
    iterations : int
        Simplex iterations spent in this call.
    message : str
        Solver message.
    """
    ret: SolverReturn
    status: SolutionStatus = SolutionStatus.UNDEFINED
    objective: Optional[float] = None
    row_duals: Optional[np.ndarray] = None
    x: Optional[np.ndarray] = None
    iterations: int = 0
    message: str = ""


# =============================================================================
# Scaling
# =============================================================================

def scale_constraints(
    A: np.ndarray,
    n_iterations: int = 3,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Apply iterated row/column max scaling to a constraint matrix.

    Rows and then columns are divided by their largest absolute entry, so
    that after a few rounds every nonzero row and column has maximum close
    to 1.

    Parameters
    ----------
    A : np.ndarray
        Constraint matrix of shape (m, n).
    n_iterations : int
        Number of scaling rounds.

    Returns
    -------
    A_scaled : np.ndarray
        diag(row_scale) @ A @ diag(col_scale).
    row_scale : np.ndarray
        Row scaling factors (shape (m,)).
    col_scale : np.ndarray
        Column scaling factors (shape (n,)).
    """
    A_s = np.array(A, dtype=np.float64, copy=True)
    n_rows, n_cols = A_s.shape

    row_scale = np.ones(n_rows)
    col_scale = np.ones(n_cols)

    for _ in range(n_iterations):
        row_max = np.max(np.abs(A_s), axis=1) if n_cols else np.zeros(n_rows)
        factor = np.ones(n_rows)
        np.divide(1.0, row_max, out=factor, where=row_max > 0)
        A_s *= factor[:, None]
        row_scale *= factor

        col_max = np.max(np.abs(A_s), axis=0) if n_rows else np.zeros(n_cols)
        factor = np.ones(n_cols)
        np.divide(1.0, col_max, out=factor, where=col_max > 0)
        A_s *= factor[None, :]
        col_scale *= factor

    return A_s, row_scale, col_scale


# =============================================================================
# Backend interface
# =============================================================================

class LPBackend:
    """
    Interface of the LP solver service.

    Subclasses implement `solve`; `iteration_count` must accumulate the
    iterations of every call.
    """

    name = "abstract"

    def __init__(self):
        self.iteration_count = 0
        self.basis_resets = 0

    @property
    def version(self) -> str:
        return self.name

    def reset_basis(self) -> None:
        """Discard any starting basis kept from earlier solves."""
        self.basis_resets += 1

    def solve(
        self,
        problem: LinearProgram,
        params: SolverParameters,
        rescale: bool = False,
    ) -> SolverOutcome:
        raise NotImplementedError


# =============================================================================
# HiGHS via highspy
# =============================================================================

SIMPLEX_STRATEGY = {
    Method.PRIMAL: 4,
    Method.DUAL: 1,
}
"""HiGHS `simplex_strategy` values for each method."""

EDGE_WEIGHT_OPTION = {
    Method.PRIMAL: "simplex_primal_edge_weight_strategy",
    Method.DUAL: "simplex_dual_edge_weight_strategy",
}
"""The HiGHS pricing option that belongs to each method."""

EDGE_WEIGHT_STRATEGY = {
    Pricing.STANDARD: 0,        # Dantzig
    Pricing.STEEPEST_EDGE: 2,
}

LOG_DEV_LEVEL = {
    Verbosity.OFF: 0,
    Verbosity.ERRORS: 0,
    Verbosity.NORMAL: 0,
    Verbosity.ALL: 2,
}

_LIMITS = {
    highspy.HighsModelStatus.kIterationLimit: SolverReturn.ITERATION_LIMIT,
    highspy.HighsModelStatus.kTimeLimit: SolverReturn.TIME_LIMIT,
}

_STATUSES = {
    highspy.HighsModelStatus.kOptimal: SolutionStatus.OPTIMAL,
    highspy.HighsModelStatus.kInfeasible: SolutionStatus.NO_FEASIBLE,
    highspy.HighsModelStatus.kUnbounded: SolutionStatus.UNBOUNDED,
    highspy.HighsModelStatus.kUnboundedOrInfeasible:
        SolutionStatus.UNBOUNDED_OR_INFEASIBLE,
}


class HighsBackend(LPBackend):
    """
    LP backend on one persistent highspy.Highs instance.

    Every solve loads the model as a minimization (a maximization has its
    costs negated) with the constraint matrix in column-wise form. The
    parameter profile maps onto HiGHS options: the method selects the
    primal or dual simplex strategy, pricing sets the edge weight strategy
    of that method, verbosity sets `output_flag` and `log_dev_level`.
    HiGHS has no option for the ratio test, so it is not forwarded.
    `reset_basis` clears the solver's basis and factorization.
    """

    name = "HiGHS"

    def __init__(self):
        super().__init__()
        self.highs = highspy.Highs()
        self.highs.setOptionValue("output_flag", False)

    @property
    def version(self) -> str:
        return f"highspy {self.highs.version()} {self.name}"

    def reset_basis(self) -> None:
        super().reset_basis()
        self.highs.clearSolver()

    def _options(self, params: SolverParameters) -> dict:
        options = {
            "solver": "simplex",
            "simplex_strategy": SIMPLEX_STRATEGY[params.method],
            EDGE_WEIGHT_OPTION[params.method]: EDGE_WEIGHT_STRATEGY[params.pricing],
            "presolve": "on" if params.presolve else "off",
            "output_flag": params.verbosity >= Verbosity.NORMAL,
            "log_dev_level": LOG_DEV_LEVEL[params.verbosity],
            "primal_feasibility_tolerance": params.tolerance,
            "dual_feasibility_tolerance": params.tolerance,
        }
        if params.it_limit is not None:
            options["simplex_iteration_limit"] = params.it_limit
        if params.time_limit_ms is not None:
            options["time_limit"] = params.time_limit_ms / 1000.0
        return options

    def _apply_options(self, params: SolverParameters) -> None:
        self.highs.resetOptions()
        for name, value in self._options(params).items():
            self.highs.setOptionValue(name, value)

    def _load(self, A: np.ndarray, row_lower, row_upper, col_lower, col_upper,
              cost) -> highspy.HighsStatus:
        n_rows, n_cols = A.shape
        csc = csc_matrix(A)
        lp = highspy.HighsLp()
        lp.num_col_ = n_cols
        lp.num_row_ = n_rows
        lp.col_cost_ = cost.tolist()
        lp.col_lower_ = col_lower.tolist()
        lp.col_upper_ = col_upper.tolist()
        lp.row_lower_ = row_lower.tolist()
        lp.row_upper_ = row_upper.tolist()
        lp.sense_ = highspy.ObjSense.kMinimize
        lp.a_matrix_.format_ = highspy.MatrixFormat.kColwise
        lp.a_matrix_.start_ = csc.indptr.tolist()
        lp.a_matrix_.index_ = csc.indices.tolist()
        lp.a_matrix_.value_ = csc.data.tolist()
        return self.highs.passModel(lp)

    def solve(
        self,
        problem: LinearProgram,
        params: SolverParameters,
        rescale: bool = False,
    ) -> SolverOutcome:
        n_rows, n_cols = problem.shape

        bounds = (problem.row_lower, problem.row_upper,
                  problem.col_lower, problem.col_upper)
        if (not np.isfinite(problem.matrix).all()
                or not np.isfinite(problem.objective).all()
                or any(np.isnan(b).any() for b in bounds)):
            return SolverOutcome(ret=SolverReturn.INVALID_DATA,
                                 message="NaN or infinite coefficient")

        if rescale:
            A_s, row_scale, col_scale = scale_constraints(problem.matrix)
        else:
            A_s = problem.matrix
            row_scale = np.ones(n_rows)
            col_scale = np.ones(n_cols)

        sign = -1.0 if problem.maximize else 1.0
        self._apply_options(params)
        loaded = self._load(
            A_s,
            problem.row_lower * row_scale,
            problem.row_upper * row_scale,
            problem.col_lower / col_scale,
            problem.col_upper / col_scale,
            sign * problem.objective * col_scale,
        )
        if loaded == highspy.HighsStatus.kError:
            return SolverOutcome(ret=SolverReturn.INVALID_DATA,
                                 message="HiGHS rejected the model")

        run_status = self.highs.run()
        model_status = self.highs.getModelStatus()
        message = self.highs.modelStatusToString(model_status)
        iterations = int(self.highs.getInfo().simplex_iteration_count)
        self.iteration_count += max(iterations, 0)

        if (run_status != highspy.HighsStatus.kOk
                and params.verbosity >= Verbosity.ERRORS):
            logger.warning("HiGHS: %s", message)

        if model_status in _LIMITS:
            return SolverOutcome(ret=_LIMITS[model_status],
                                 iterations=iterations, message=message)
        if model_status in (highspy.HighsModelStatus.kLoadError,
                            highspy.HighsModelStatus.kModelError):
            return SolverOutcome(ret=SolverReturn.INVALID_DATA,
                                 iterations=iterations, message=message)
        if model_status == highspy.HighsModelStatus.kSolveError:
            return SolverOutcome(ret=SolverReturn.SINGULAR,
                                 iterations=iterations, message=message)
        if model_status not in _STATUSES:
            return SolverOutcome(ret=SolverReturn.FAILURE,
                                 iterations=iterations, message=message)

        status = _STATUSES[model_status]
        if status is not SolutionStatus.OPTIMAL:
            return SolverOutcome(ret=SolverReturn.OK, status=status,
                                 iterations=iterations, message=message)

        # Row duals of the minimization actually solved, unscaled afterwards
        solution = self.highs.getSolution()
        duals = sign * np.asarray(solution.row_dual, dtype=np.float64) * row_scale
        x = np.asarray(solution.col_value, dtype=np.float64) * col_scale
        objective = sign * float(self.highs.getInfo().objective_function_value)

        return SolverOutcome(
            ret=SolverReturn.OK,
            status=SolutionStatus.OPTIMAL,
            objective=objective,
            row_duals=duals,
            x=x,
            iterations=iterations,
            message=message,
        )
