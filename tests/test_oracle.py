"""
Tests for the facet separation oracle.

Most tests solve real LPs with HiGHS on small polytopes whose facets are
known; the solver failure paths use a scripted backend.
"""

import numpy as np
import pytest

from facet_oracle.config import OracleConfig
from facet_oracle.lp.backend import (
    LPBackend,
    SolutionStatus,
    SolverOutcome,
    SolverReturn,
)
from facet_oracle.oracle import (
    FacetOracle,
    OracleData,
    OracleState,
    OracleStats,
    OracleStatus,
)
from facet_oracle.report import Level, Reporter

from polytopes import MAX_BOX, QUADRANT, SQUARE, TRIANGLE, with_interior


def ready(text, config=None, reporter=None, backend=None):
    lines = text.splitlines() if isinstance(text, str) else text
    oracle = FacetOracle.from_vlp(lines, config, reporter, backend)
    assert oracle.initialize_consistency() is OracleStatus.OK
    return oracle


def assert_separates(oracle, vertex, facet, eps=1e-7):
    """The vertex is on the non-positive side, the interior point strictly positive."""
    objs = oracle.objs
    assert np.dot(vertex, facet) <= 1e-9
    assert np.dot(oracle.model.interior, facet[:objs]) + facet[objs] > eps
    assert np.sum(np.abs(facet[:objs])) == pytest.approx(1.0)


# ============================================================================
# Consistency check
# ============================================================================

class TestInitialize:
    """Test the interior point feasibility check."""

    def test_ok(self):
        oracle = FacetOracle.from_vlp(SQUARE.splitlines())
        assert oracle.state is OracleState.LOADED
        assert oracle.initialize_consistency() is OracleStatus.OK
        assert oracle.state is OracleState.READY
        assert oracle.model.maximize is True

    def test_interior_outside_is_empty(self):
        reporter = Reporter()
        oracle = FacetOracle.from_vlp(with_interior(SQUARE, 2, 0.5), reporter=reporter)
        assert oracle.initialize_consistency() is OracleStatus.EMPTY
        assert oracle.state is OracleState.EMPTY
        assert len(reporter.fatals) == 1
        assert "no feasible solution" in reporter.fatals[0].message

    def test_query_after_empty_raises(self):
        oracle = FacetOracle.from_vlp(with_interior(SQUARE, 2, 0.5))
        oracle.initialize_consistency()
        with pytest.raises(RuntimeError):
            oracle.ask([2.0, 0.5, 1.0])

    def test_query_before_initialize_raises(self):
        oracle = FacetOracle.from_vlp(SQUARE.splitlines())
        with pytest.raises(RuntimeError):
            oracle.ask([2.0, 0.5, 1.0])

    def test_initialize_twice_raises(self):
        oracle = ready(SQUARE)
        with pytest.raises(RuntimeError):
            oracle.initialize_consistency()

    def test_new_data(self):
        data = ready(TRIANGLE).new_data()
        assert isinstance(data, OracleData)
        assert data.vertex.shape == (3,)
        assert data.facet.shape == (3,)


# ============================================================================
# Queries with known answers
# ============================================================================

class TestSquare:
    """Queries on the unit square with interior point (0.5, 0.5)."""

    def test_point_beyond_right_edge(self):
        oracle = ready(SQUARE)
        data = oracle.new_data()
        data.vertex[:] = [2.0, 0.5, 1.0]
        assert oracle.query(data) is OracleStatus.OK
        np.testing.assert_allclose(data.facet, [-1.0, 0.0, 1.0], atol=1e-9)
        assert_separates(oracle, data.vertex, data.facet)

    def test_point_beyond_lower_edge(self):
        oracle = ready(SQUARE)
        status, facet = oracle.ask([0.5, -3.0, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [0.0, 1.0, 0.0], atol=1e-9)

    def test_direction(self):
        oracle = ready(SQUARE)
        status, facet = oracle.ask([1.0, 0.0, 0.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [-1.0, 0.0, 1.0], atol=1e-9)
        assert_separates(oracle, [1.0, 0.0, 0.0], facet)

    def test_point_on_boundary(self):
        oracle = ready(SQUARE)
        status, facet = oracle.ask([1.0, 0.5, 1.0])
        assert status is OracleStatus.UNBOUNDED
        assert facet is None
        assert oracle.state is OracleState.READY

    def test_point_inside_fails(self):
        reporter = Reporter()
        oracle = ready(SQUARE, reporter=reporter)
        status, _ = oracle.ask([0.7, 0.6, 1.0])
        assert status is OracleStatus.FAIL
        assert oracle.state is OracleState.FAILED
        assert "lambda=2.5 > 1.0" in reporter.fatals[0].message
        with pytest.raises(RuntimeError):
            oracle.ask([2.0, 0.5, 1.0])

    def test_idempotent(self):
        oracle = ready(SQUARE)
        first = oracle.ask([2.0, 0.5, 1.0])[1]
        second = oracle.ask([2.0, 0.5, 1.0])[1]
        np.testing.assert_array_equal(first, second)

    @pytest.mark.parametrize("t", [1.25, 2.0, 5.0, 100.0])
    def test_same_facet_along_ray(self, t):
        # points e + t * (b - e) with b = (1, 0.5) on the right edge
        oracle = ready(SQUARE)
        status, facet = oracle.ask([0.5 + 0.5 * t, 0.5, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [-1.0, 0.0, 1.0], atol=1e-9)

    def test_degenerate_corner(self):
        oracle = ready(SQUARE)
        vertex = [2.0, 2.0, 1.0]
        status, facet = oracle.ask(vertex)
        assert status is OracleStatus.OK
        assert_separates(oracle, vertex, facet)

    def test_wrong_vertex_length(self):
        oracle = ready(SQUARE)
        data = OracleData(vertex=np.zeros(2), facet=np.zeros(3))
        with pytest.raises(ValueError):
            oracle.query(data)
        with pytest.raises(ValueError):
            oracle.ask([1.0, 2.0])
        assert oracle.state is OracleState.READY

    def test_interior_on_boundary(self):
        reporter = Reporter()
        oracle = ready(with_interior(SQUARE, 1, 0.5), reporter=reporter)
        status, _ = oracle.ask([2.0, 0.5, 1.0])
        assert status is OracleStatus.FAIL
        assert reporter.fatals[0].message == "Initial point is on the boundary"


class TestQuadrant:
    """Queries on the unbounded quadrant with interior point (1, 1)."""

    def test_recession_direction(self):
        oracle = ready(QUADRANT)
        assert oracle.ask([1.0, 1.0, 0.0])[0] is OracleStatus.UNBOUNDED
        assert oracle.state is OracleState.READY

    def test_leaving_direction(self):
        oracle = ready(QUADRANT)
        status, facet = oracle.ask([-1.0, 0.0, 0.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [1.0, 0.0, 0.0], atol=1e-9)

    def test_point_outside(self):
        oracle = ready(QUADRANT)
        status, facet = oracle.ask([-1.0, 1.0, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [1.0, 0.0, 0.0], atol=1e-9)

    def test_point_inside_unbounded_ray_fails(self):
        reporter = Reporter()
        oracle = ready(QUADRANT, reporter=reporter)
        assert oracle.ask([5.0, 5.0, 1.0])[0] is OracleStatus.FAIL
        assert reporter.fatals[0].message == "The oracle says: problem unbounded"


class TestTriangle:
    """Queries on the triangle x1, x2 >= 0, x1 + 2 x2 <= 1."""

    def test_slanted_facet(self):
        oracle = ready(TRIANGLE)
        status, facet = oracle.ask([1.0, 1.0, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [-1 / 3, -2 / 3, 1 / 3], atol=1e-9)
        assert_separates(oracle, [1.0, 1.0, 1.0], facet)

    def test_rounded_facet_is_exact(self):
        oracle = ready(TRIANGLE, OracleConfig(round_facets=True))
        status, facet = oracle.ask([1.0, 1.0, 1.0])
        assert status is OracleStatus.OK
        assert list(facet) == [-1 / 3, -2 / 3, 1 / 3]

    @pytest.mark.parametrize("config", [
        OracleConfig(shuffle_matrix=True, shuffle_seed=1),
        OracleConfig(shuffle_matrix=True, shuffle_seed=7),
        OracleConfig(oracle_scale=True),
        OracleConfig(oracle_method=1, oracle_pricing=1),
        OracleConfig(oracle_ratio_test=1, oracle_it_limit=0, oracle_time_limit=10),
    ])
    def test_options_do_not_change_answer(self, config):
        oracle = ready(TRIANGLE, config)
        status, facet = oracle.ask([1.0, 1.0, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [-1 / 3, -2 / 3, 1 / 3], atol=1e-9)

    def test_stats(self):
        oracle = ready(TRIANGLE)
        oracle.ask([1.0, 1.0, 1.0])
        oracle.ask([-1.0, 0.2, 1.0])
        stats = oracle.stats()
        assert isinstance(stats, OracleStats)
        assert stats.calls == 3
        assert stats.iterations >= 0
        assert stats.centiseconds >= 0
        assert "HiGHS" in stats.solver
        assert str(stats).startswith("LP calls: 3, iterations: ")


class TestMaximize:
    """Queries on a 'p vlp max' description; objectives are negated."""

    def test_direction_recorded(self):
        oracle = ready(MAX_BOX)
        assert oracle.config.direction == "max"

    def test_point_beyond_scaled_edge(self):
        oracle = ready(MAX_BOX)
        status, facet = oracle.ask([3.0, 0.5, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [-1.0, 0.0, 2.0], atol=1e-9)
        assert_separates(oracle, [3.0, 0.5, 1.0], facet)

    def test_direction_query(self):
        oracle = ready(MAX_BOX)
        status, facet = oracle.ask([0.0, 1.0, 0.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [0.0, -1.0, 1.0], atol=1e-9)

    def test_lower_edge(self):
        oracle = ready(MAX_BOX)
        status, facet = oracle.ask([-1.0, 0.5, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [1.0, 0.0, 0.0], atol=1e-9)

    def test_same_file_as_min_is_empty(self):
        oracle = FacetOracle.from_vlp(MAX_BOX.replace("p vlp max", "p vlp min").splitlines())
        assert oracle.initialize_consistency() is OracleStatus.EMPTY


class TestParameterRefresh:
    """Solver options set before the consistency check are used."""

    def test_config_change_before_initialize(self):
        oracle = FacetOracle.from_vlp(TRIANGLE.splitlines())
        oracle.config.oracle_method = 1
        oracle.config.oracle_pricing = 1
        assert oracle.initialize_consistency() is OracleStatus.OK
        assert oracle.session.params.method.value == "dual"
        assert oracle.session.params.pricing.value == "steepest-edge"
        status, facet = oracle.ask([1.0, 1.0, 1.0])
        assert status is OracleStatus.OK
        np.testing.assert_allclose(facet, [-1 / 3, -2 / 3, 1 / 3], atol=1e-9)


# ============================================================================
# Solver failures
# ============================================================================

class OutcomeBackend(LPBackend):
    """Backend replaying fixed outcomes."""

    name = "scripted"

    def __init__(self, outcomes):
        super().__init__()
        self.outcomes = list(outcomes)

    def solve(self, problem, params, rescale=False):
        return self.outcomes.pop(0)


FEASIBLE = SolverOutcome(ret=SolverReturn.OK, status=SolutionStatus.OPTIMAL,
                         objective=0.0, row_duals=np.zeros(6))


class TestSolverFailures:
    """Test how solver return codes surface as oracle statuses."""

    def test_limit_at_initialize(self):
        reporter = Reporter()
        backend = OutcomeBackend([
            SolverOutcome(ret=SolverReturn.ITERATION_LIMIT),
            FEASIBLE,
        ])
        oracle = FacetOracle.from_vlp(SQUARE.splitlines(), reporter=reporter,
                                      backend=backend)
        assert oracle.initialize_consistency() is OracleStatus.LIMIT
        assert oracle.state is OracleState.LOADED
        assert reporter.fatals == []
        assert len(reporter.of_level(Level.WARNING)) == 2
        assert oracle.initialize_consistency() is OracleStatus.OK

    def test_limit_at_query(self):
        reporter = Reporter()
        backend = OutcomeBackend([
            FEASIBLE,
            SolverOutcome(ret=SolverReturn.TIME_LIMIT),
        ])
        oracle = ready(SQUARE, reporter=reporter, backend=backend)
        assert oracle.ask([2.0, 0.5, 1.0])[0] is OracleStatus.LIMIT
        assert oracle.state is OracleState.READY
        assert reporter.fatals == []

    def test_hard_failure(self):
        reporter = Reporter()
        backend = OutcomeBackend([
            FEASIBLE,
            SolverOutcome(ret=SolverReturn.INVALID_DATA, message="bad"),
        ])
        oracle = ready(SQUARE, reporter=reporter, backend=backend)
        assert oracle.ask([2.0, 0.5, 1.0])[0] is OracleStatus.FAIL
        assert oracle.state is OracleState.FAILED
        assert len(reporter.fatals) == 1

    def test_retries_then_failure(self):
        backend = OutcomeBackend([
            SolverOutcome(ret=SolverReturn.FAILURE),
            SolverOutcome(ret=SolverReturn.FAILURE),
        ])
        oracle = FacetOracle.from_vlp(SQUARE.splitlines(), backend=backend)
        assert oracle.initialize_consistency() is OracleStatus.FAIL
        assert oracle.stats().calls == 2

    def test_unexpected_initial_status(self):
        backend = OutcomeBackend([
            SolverOutcome(ret=SolverReturn.OK, status=SolutionStatus.UNBOUNDED),
        ])
        oracle = FacetOracle.from_vlp(SQUARE.splitlines(), backend=backend)
        assert oracle.initialize_consistency() is OracleStatus.FAIL
        assert oracle.state is OracleState.FAILED

    def test_zero_duals(self):
        reporter = Reporter()
        backend = OutcomeBackend([
            FEASIBLE,
            SolverOutcome(ret=SolverReturn.OK, status=SolutionStatus.OPTIMAL,
                          objective=0.5, row_duals=np.zeros(6)),
        ])
        oracle = ready(SQUARE, reporter=reporter, backend=backend)
        assert oracle.ask([2.0, 0.5, 1.0])[0] is OracleStatus.FAIL
        assert reporter.fatals[0].message == "Numerical problem, facet all zero"

    def test_wrong_facet_side(self):
        # duals pointing away from the queried vertex
        duals = np.zeros(6)
        duals[4] = 1.0
        reporter = Reporter()
        backend = OutcomeBackend([
            FEASIBLE,
            SolverOutcome(ret=SolverReturn.OK, status=SolutionStatus.OPTIMAL,
                          objective=1 / 3, row_duals=duals),
        ])
        oracle = ready(SQUARE, reporter=reporter, backend=backend)
        assert oracle.ask([2.0, 0.5, 1.0])[0] is OracleStatus.FAIL
        assert reporter.fatals[0].message.startswith(
            "Numerical error: vertex is on the negative side"
        )
