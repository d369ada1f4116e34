"""
LP model of a VLP polytope.

Layout of the constraint system (internal positions may be shuffled):

        x (cols)        lambda        bounds

      A A A A A A         0           i-line bounds     (rows)
      A A A A A A         0           i-line bounds

      P P P P P P        w[0]         = interior[0]     (objs)
      P P P P P P        w[1]         = interior[1]
      -------------------------------------------
      0 0 0 0 0 0         1           min / max

The objective rows pin P x + lambda * w to the interior point. Before the
consistency check w is zero; every oracle query rewrites w.
"""

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class LinearProgram:
    """
    A bounded-row, bounded-column linear program

        optimize  c^T x   subject to  row_lower <= A x <= row_upper,
                                      col_lower <=  x  <= col_upper

    Infinite bounds are given as +/- math.inf.
    """
    matrix: np.ndarray
    row_lower: np.ndarray
    row_upper: np.ndarray
    col_lower: np.ndarray
    col_upper: np.ndarray
    objective: np.ndarray
    maximize: bool = False

    @property
    def shape(self):
        return self.matrix.shape


@dataclass
class PolytopeModel(LinearProgram):
    """
    LP model built from a VLP description.

    Attributes
    ----------
    rows, cols, objs : int
        Declared dimensions.
    direction : str
        "min" or "max", as declared in the 'p' line.
    interior : np.ndarray
        Interior point in objective space, shape (objs,).
    row_perm : np.ndarray
        Internal position of declared row k (0-based), objective rows
        occupying declared positions rows..rows+objs-1.
    col_perm : np.ndarray
        Internal position of declared column k, lambda at position cols.
    """
    rows: int = 0
    cols: int = 0
    objs: int = 0
    direction: str = "min"
    interior: np.ndarray = None
    row_perm: np.ndarray = None
    col_perm: np.ndarray = None

    @property
    def obj_rows(self) -> np.ndarray:
        """Internal positions of the objective rows."""
        return self.row_perm[self.rows:self.rows + self.objs]

    @property
    def lambda_col(self) -> int:
        """Internal position of the lambda column."""
        return int(self.col_perm[self.cols])

    @property
    def lambda_column(self) -> np.ndarray:
        """Current lambda coefficients in the objective rows."""
        return self.matrix[self.obj_rows, self.lambda_col].copy()

    def set_lambda_column(self, coefs) -> None:
        """Rewrite the lambda coefficients of the objective rows."""
        coefs = np.asarray(coefs, dtype=np.float64)
        if coefs.shape != (self.objs,):
            raise ValueError(
                f"Lambda column needs {self.objs} entries, got {coefs.shape}"
            )
        self.matrix[self.obj_rows, self.lambda_col] = coefs

    def set_maximize(self, maximize: bool) -> None:
        self.maximize = maximize


def build_model(problem, row_perm: np.ndarray, col_perm: np.ndarray) -> PolytopeModel:
    """
    Assemble the LP model of a parsed VLP problem.

    Columns without a 'j' line are fixed at zero and rows without an 'i'
    line are free. The lambda column is bounded below by zero and carries
    objective coefficient 1; the objective rows are fixed at the interior
    point.

    Parameters
    ----------
    problem : VlpProblem
        Parsed VLP source.
    row_perm : np.ndarray
        Permutation of the rows + objs internal row positions.
    col_perm : np.ndarray
        Permutation of the cols + 1 internal column positions.
    """
    rows, cols, objs = problem.rows, problem.cols, problem.objs
    n_rows, n_cols = rows + objs, cols + 1

    matrix = np.zeros((n_rows, n_cols))
    for (i, j), value in problem.entries.items():
        matrix[row_perm[i - 1], col_perm[j - 1]] = value
    for (k, j), value in problem.obj_entries.items():
        matrix[row_perm[rows + k - 1], col_perm[j - 1]] = value

    row_lower = np.full(n_rows, -math.inf)
    row_upper = np.full(n_rows, math.inf)
    for i, (lo, up) in problem.row_bounds.items():
        row_lower[row_perm[i - 1]] = lo
        row_upper[row_perm[i - 1]] = up
    interior = np.array(problem.interior, dtype=np.float64)
    obj_rows = row_perm[rows:rows + objs]
    row_lower[obj_rows] = interior
    row_upper[obj_rows] = interior

    col_lower = np.zeros(n_cols)
    col_upper = np.zeros(n_cols)
    for j, (lo, up) in problem.col_bounds.items():
        col_lower[col_perm[j - 1]] = lo
        col_upper[col_perm[j - 1]] = up
    lambda_col = col_perm[cols]
    col_lower[lambda_col] = 0.0
    col_upper[lambda_col] = math.inf

    objective = np.zeros(n_cols)
    objective[lambda_col] = 1.0

    return PolytopeModel(
        matrix=matrix,
        row_lower=row_lower,
        row_upper=row_upper,
        col_lower=col_lower,
        col_upper=col_upper,
        objective=objective,
        maximize=True,
        rows=rows,
        cols=cols,
        objs=objs,
        direction=problem.direction,
        interior=interior,
        row_perm=np.asarray(row_perm),
        col_perm=np.asarray(col_perm),
    )
