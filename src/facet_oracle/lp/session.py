"""
LP session: one model, one backend, one parameter profile.

`LPSession.solve()` wraps the backend with a bounded recovery policy.
Advanced starting bases on ill-conditioned models occasionally come out
invalid or singular, and the solver occasionally breaks down numerically;
both usually go away once the basis is rebuilt. The first attempt is
followed by at most one retry per entry of RECOVERY_STEPS, each triggered
only by the return codes listed for it.
"""

import logging
import time
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from ..config import OracleConfig
from .backend import HighsBackend, LPBackend, SolverOutcome, SolverReturn
from .model import LinearProgram
from .params import SolverParameters, profile


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecoveryStep:
    """Retry the solve when the previous attempt returned one of `triggers`."""
    triggers: FrozenSet[SolverReturn]
    rescale: bool


RECOVERY_STEPS: Tuple[RecoveryStep, ...] = (
    RecoveryStep(frozenset({SolverReturn.BAD_BASIS, SolverReturn.SINGULAR}),
                 rescale=True),
    RecoveryStep(frozenset({SolverReturn.FAILURE}), rescale=False),
)


class LPSession:
    """
    Owns the LP model, the solver backend and the solver parameters.

    Parameters
    ----------
    model : LinearProgram
        The model to solve; it may be modified between calls.
    config : OracleConfig
        Source of the parameter profile and the rescaling option.
    backend : LPBackend, optional
        Solver service; HighsBackend by default.

    Attributes
    ----------
    calls : int
        Number of backend invocations, retries included.
    elapsed_ms : int
        Wall-clock time spent in the backend, in milliseconds.
    """

    def __init__(
        self,
        model: LinearProgram,
        config: OracleConfig,
        backend: Optional[LPBackend] = None,
    ):
        self.model = model
        self.config = config
        self.backend = backend if backend is not None else HighsBackend()
        self.params: SolverParameters = profile(config)
        self.calls = 0
        self.elapsed_ms = 0

    def refresh_parameters(self) -> None:
        """Recompute the parameter profile after the config changed."""
        self.params = profile(self.config)

    @property
    def iterations(self) -> int:
        return self.backend.iteration_count

    def _attempt(self, rescale: bool) -> SolverOutcome:
        self.calls += 1
        start = time.perf_counter()
        try:
            self.backend.reset_basis()
            outcome = self.backend.solve(
                self.model, self.params,
                rescale=rescale and self.config.oracle_scale,
            )
        finally:
            self.elapsed_ms += int(round((time.perf_counter() - start) * 1000))
        logger.debug(
            "LP call %d: %s / %s (%d iterations)",
            self.calls, outcome.ret.value, outcome.status.value,
            outcome.iterations,
        )
        return outcome

    def solve(self) -> SolverOutcome:
        """
        Solve the current model, retrying after recoverable failures.

        Returns
        -------
        SolverOutcome
            The outcome of the last attempt.
        """
        outcome = self._attempt(rescale=True)
        attempts = 1
        for step in RECOVERY_STEPS:
            if outcome.ret not in step.triggers:
                continue
            attempts += 1
            logger.debug(
                "LP call returned '%s', attempt %d with a rebuilt basis",
                outcome.ret.value, attempts,
            )
            outcome = self._attempt(rescale=step.rescale)
        return outcome
