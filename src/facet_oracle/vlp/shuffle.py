"""
Random relabeling of LP rows and columns.

Simplex codes can be sensitive to the order in which rows and columns are
presented. Shuffling the internal positions changes nothing in the model
itself, only where each declared row or column lives inside the solver.
"""

from typing import Optional

import numpy as np


def identity(n: int) -> np.ndarray:
    """Return the identity permutation of 0..n-1."""
    return np.arange(n, dtype=np.intp)


def permute(n: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Return a uniformly random permutation of 0..n-1 (Fisher-Yates).

    Parameters
    ----------
    n : int
        Length of the permutation.
    rng : numpy.random.Generator, optional
        Source of randomness. A fresh default generator is used if omitted.

    Returns
    -------
    np.ndarray
        perm[k] is the internal position of the k-th declared item.
    """
    if n < 0:
        raise ValueError(f"Permutation length must be non-negative, got {n}")
    if rng is None:
        rng = np.random.default_rng()
    perm = identity(n)
    for i in range(n - 1):
        j = i + int(rng.integers(n - i))
        perm[i], perm[j] = perm[j], perm[i]
    return perm


def make_permutations(
    n_rows: int,
    n_cols: int,
    shuffle: bool,
    seed: Optional[int] = None,
):
    """
    Build the row and column permutations used by the loader.

    Returns
    -------
    row_perm, col_perm : np.ndarray
        Identity permutations when `shuffle` is False.
    """
    if not shuffle:
        return identity(n_rows), identity(n_cols)
    rng = np.random.default_rng(seed)
    return permute(n_rows, rng), permute(n_cols, rng)
