"""
Facet separation oracle.

The oracle hides a polytope given by a VLP description. A question is a
point q in homogeneous objective-space coordinates (q[objs] == 0 encodes a
direction, an ideal point). The answer is a supporting hyperplane f of the
polytope separating q from it:

    sum_i f[i] * q[i] + f[objs] * q[objs] <= 0
    sum_i f[i] * e[i] + f[objs]           >  eps

where e is the interior point of the description. The oracle connects e
with q, maximizes lambda along

    e - lambda * (e - q)        (ordinary point)
    e + lambda * q              (ideal point)

subject to the polytope's constraints, and reads the hyperplane off the
dual values of the objective rows at the boundary crossing.

Usage:
    oracle = FacetOracle.from_vlp("problem.vlp")
    if oracle.initialize_consistency() is OracleStatus.OK:
        data = oracle.new_data()
        data.vertex[:] = [2.0, 0.5, 1.0]
        status = oracle.query(data)     # data.facet holds the answer
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import OracleConfig
from .lp.backend import LPBackend, SolutionStatus, SolverOutcome, SolverReturn
from .lp.model import PolytopeModel
from .lp.session import LPSession
from .numeric import exact_dot, round_to
from .report import Reporter
from .vlp.loader import load_vlp
from .vlp.reader import Source


logger = logging.getLogger(__name__)


class OracleStatus(Enum):
    """
    Result of an oracle operation.

    OK
        Success; after a query the facet is filled in.
    UNBOUNDED
        No separating facet exists. Either the queried direction is a
        recession direction of the polytope (the ray never leaves it), or
        the queried point lies inside or on the boundary. Callers treat
        both the same way.
    EMPTY
        The polytope has no feasible point at the interior point.
    LIMIT
        The LP solver hit its iteration or time limit. The model is
        intact; the caller may relax the limits and ask again.
    FAIL
        Fatal failure, already reported. The oracle cannot be used again.
    """
    OK = "ok"
    UNBOUNDED = "unbounded"
    EMPTY = "empty"
    LIMIT = "limit"
    FAIL = "fail"


class OracleState(Enum):
    LOADED = "loaded"
    READY = "ready"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class OracleData:
    """
    Question and answer buffer of the oracle.

    Attributes
    ----------
    vertex : np.ndarray
        The question, shape (objs+1,), homogeneous coordinates.
    facet : np.ndarray
        The answer, shape (objs+1,): coefficients, then the constant.
    """
    vertex: np.ndarray
    facet: np.ndarray

    @classmethod
    def allocate(cls, objs: int) -> "OracleData":
        return cls(vertex=np.zeros(objs + 1), facet=np.zeros(objs + 1))


@dataclass(frozen=True)
class OracleStats:
    """Cumulative LP statistics of one oracle."""
    calls: int
    iterations: int
    centiseconds: int
    solver: str

    def __str__(self) -> str:
        return (f"LP calls: {self.calls}, iterations: {self.iterations}, "
                f"time: {self.centiseconds / 100:.2f} s ({self.solver})")


class FacetOracle:
    """
    Separation oracle over a loaded polytope model.

    One instance serves one model and must not be queried concurrently:
    every call rewrites the lambda column and the objective sense of the
    shared model before reading results.

    Parameters
    ----------
    model : PolytopeModel
        Model produced by `load_vlp`.
    config : OracleConfig, optional
        Tolerance, rounding and solver options.
    reporter : Reporter, optional
        Sink for fatal errors and warnings.
    backend : LPBackend, optional
        LP solver service; HiGHS via highspy by default.
    """

    def __init__(
        self,
        model: PolytopeModel,
        config: Optional[OracleConfig] = None,
        reporter: Optional[Reporter] = None,
        backend: Optional[LPBackend] = None,
    ):
        self.model = model
        self.config = config if config is not None else OracleConfig()
        self.reporter = reporter if reporter is not None else Reporter()
        self.session = LPSession(model, self.config, backend)
        self.state = OracleState.LOADED

    @classmethod
    def from_vlp(
        cls,
        source: Source,
        config: Optional[OracleConfig] = None,
        reporter: Optional[Reporter] = None,
        backend: Optional[LPBackend] = None,
    ) -> "FacetOracle":
        """Load a VLP source and wrap it in an oracle (raises VlpFormatError)."""
        config = config if config is not None else OracleConfig()
        reporter = reporter if reporter is not None else Reporter()
        model = load_vlp(source, config, reporter)
        return cls(model, config, reporter, backend)

    @property
    def objs(self) -> int:
        return self.model.objs

    @property
    def eps(self) -> float:
        return self.config.polytope_eps

    def new_data(self) -> OracleData:
        """Allocate a question/answer buffer sized for this model."""
        return OracleData.allocate(self.objs)

    # -------------------------------------------------------------------------

    def _require(self, state: OracleState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"Oracle is {self.state.value}, operation needs {state.value}"
            )

    def _fatal(self, message: str) -> OracleStatus:
        self.reporter.fatal(message)
        self.state = OracleState.FAILED
        return OracleStatus.FAIL

    def _solver_error(self, outcome: SolverOutcome, context: str) -> OracleStatus:
        if outcome.ret.is_limit:
            self.reporter.warning(f"{context}: {outcome.ret.value}")
            return OracleStatus.LIMIT
        return self._fatal(f"{context}: {outcome.ret.value} ({outcome.message})")

    # -------------------------------------------------------------------------

    def initialize_consistency(self) -> OracleStatus:
        """
        Check that the interior point is feasible for the polytope.

        Takes the solver parameters from the current config, then solves
        the model with a zero lambda column, minimizing lambda. On
        success the model is switched to maximizing lambda and the oracle
        accepts queries.

        Returns
        -------
        OracleStatus
            OK, EMPTY (no feasible solution), LIMIT or FAIL.
        """
        self._require(OracleState.LOADED)
        self.session.refresh_parameters()
        self.model.set_lambda_column(np.zeros(self.objs))
        self.model.set_maximize(False)

        outcome = self.session.solve()
        if outcome.ret is not SolverReturn.OK:
            return self._solver_error(outcome, "Internal point, the oracle says")

        if outcome.status is not SolutionStatus.OPTIMAL:
            if outcome.status in (SolutionStatus.NO_FEASIBLE,
                                  SolutionStatus.UNBOUNDED_OR_INFEASIBLE):
                self.reporter.fatal(
                    f"Internal point, the oracle says: "
                    f"{SolutionStatus.NO_FEASIBLE.value}"
                )
                self.state = OracleState.EMPTY
                return OracleStatus.EMPTY
            return self._fatal(
                f"Internal point, the oracle says: {outcome.status.value}"
            )

        self.model.set_maximize(True)
        self.state = OracleState.READY
        return OracleStatus.OK

    def lambda_column(self, vertex: np.ndarray) -> np.ndarray:
        """Lambda coefficients of the objective rows for a question."""
        if vertex[self.objs] == 0.0:
            return -vertex[:self.objs]
        return self.model.interior - vertex[:self.objs]

    def query(self, data: OracleData) -> OracleStatus:
        """
        Ask for a facet separating `data.vertex` from the polytope.

        On OK, `data.facet` holds the L1-normalized coefficients followed by
        the constant term. The facet is checked to put the vertex on the
        non-positive side and the interior point strictly on the positive
        side.

        Returns
        -------
        OracleStatus
            OK, UNBOUNDED, LIMIT or FAIL.
        """
        self._require(OracleState.READY)
        objs, eps = self.objs, self.eps
        vertex = np.asarray(data.vertex, dtype=np.float64)
        if vertex.shape != (objs + 1,):
            raise ValueError(
                f"Vertex must have {objs + 1} coordinates, got {vertex.shape}"
            )
        ideal = vertex[objs] == 0.0
        interior = self.model.interior

        w = self.lambda_column(vertex)
        self.model.set_lambda_column(w)

        outcome = self.session.solve()
        if outcome.ret is not SolverReturn.OK:
            return self._solver_error(outcome, "The oracle says")

        if outcome.status in (SolutionStatus.UNBOUNDED,
                              SolutionStatus.UNBOUNDED_OR_INFEASIBLE):
            # lambda = 0 is feasible since the consistency check passed
            if ideal:
                return OracleStatus.UNBOUNDED
            return self._fatal("The oracle says: problem unbounded")
        if outcome.status is not SolutionStatus.OPTIMAL:
            return self._fatal(f"The oracle says: {outcome.status.value}")

        lam = outcome.objective
        if lam < 10.0 * eps:
            return self._fatal("Initial point is on the boundary")
        if not ideal and lam > 1.0 - eps:
            if lam > 1.0 + eps:
                return self._fatal(f"Numerical problem, lambda={lam:g} > 1.0")
            return OracleStatus.UNBOUNDED

        facet = np.array(outcome.row_duals[self.model.obj_rows], dtype=np.float64)
        total = np.sum(np.abs(facet))
        if total < eps:
            return self._fatal("Numerical problem, facet all zero")
        facet /= total
        if self.config.round_facets:
            facet = np.array([round_to(f) for f in facet])

        # the boundary point e - lambda * w lies on the hyperplane
        constant = -exact_dot(facet, interior - lam * w)
        if self.config.round_facets:
            constant = round_to(constant)

        data.facet[:objs] = facet
        data.facet[objs] = constant

        d = exact_dot(vertex, data.facet)
        if d > 0.0:
            return self._fatal(
                f"Numerical error: vertex is on the negative side ({d:g})"
            )
        d = constant + exact_dot(interior, facet)
        if not d > eps:
            return self._fatal(
                f"Initial point is on the negative side ({d:g}) of the next facet"
            )
        logger.debug("lambda=%.6g facet=%s", lam, data.facet)
        return OracleStatus.OK

    def ask(self, vertex: Sequence[float]) -> Tuple[OracleStatus, Optional[np.ndarray]]:
        """
        Convenience wrapper around `query` with a fresh buffer.

        Returns
        -------
        status : OracleStatus
        facet : np.ndarray or None
            A copy of the facet when status is OK.
        """
        data = self.new_data()
        data.vertex[:] = vertex
        status = self.query(data)
        if status is OracleStatus.OK:
            return status, data.facet.copy()
        return status, None

    def stats(self) -> OracleStats:
        """Return (calls, iterations, hundredths of a second, solver version)."""
        return OracleStats(
            calls=self.session.calls,
            iterations=self.session.iterations,
            centiseconds=(self.session.elapsed_ms + 5) // 10,
            solver=self.session.backend.version,
        )
