"""
Load a VLP polytope description into an LP model.
"""

import logging
from typing import Optional

from ..config import OracleConfig
from ..lp.model import PolytopeModel, build_model
from ..report import Reporter
from .reader import Source, VlpFormatError, read_vlp
from .shuffle import make_permutations


logger = logging.getLogger(__name__)


def load_vlp(
    source: Source,
    config: Optional[OracleConfig] = None,
    reporter: Optional[Reporter] = None,
) -> PolytopeModel:
    """
    Read a VLP source and build its LP model.

    Parameters
    ----------
    source : str, Path or iterable of str
        VLP file path or lines.
    config : OracleConfig, optional
        Supplies the tolerance and the shuffling options; its `direction`
        is set to the direction declared in the file.
    reporter : Reporter, optional
        Sink for comments and fatal errors.

    Returns
    -------
    PolytopeModel

    Raises
    ------
    VlpFormatError
        If the source is malformed or the interior point is not strictly
        positive. Nothing usable is returned; the caller should abort.
    """
    if config is None:
        config = OracleConfig()
    if reporter is None:
        reporter = Reporter()

    problem = read_vlp(source, reporter)
    config.direction = problem.direction

    for k, value in enumerate(problem.interior, start=1):
        if not value > config.polytope_eps:
            message = (
                f"read_vlp: initial value[{k}]={value:g} not positive "
                f"in {problem.name}"
            )
            reporter.fatal(message)
            raise VlpFormatError(message)

    row_perm, col_perm = make_permutations(
        problem.rows + problem.objs,
        problem.cols + 1,
        shuffle=config.shuffle_matrix,
        seed=config.shuffle_seed,
    )
    model = build_model(problem, row_perm, col_perm)
    logger.debug(
        "Loaded %s: %d rows, %d cols, %d objectives (%s)",
        problem.name, problem.rows, problem.cols, problem.objs,
        problem.direction,
    )
    return model
