"""
VLP input module.

Implements:
- Line reader and parser for the VLP polytope format
- Random row/column relabeling
- Loading a VLP source into an LP model

Main entry points:
- `load_vlp(source, config, reporter)`: parse and build the LP model
- `read_vlp(source, reporter)`: parse only
"""

from .reader import (
    BoundType,
    VlpFormatError,
    VlpProblem,
    normalize_line,
    read_vlp,
)

from .shuffle import (
    identity,
    make_permutations,
    permute,
)

from .loader import load_vlp

__all__ = [
    # Reader
    "BoundType",
    "VlpFormatError",
    "VlpProblem",
    "normalize_line",
    "read_vlp",
    # Shuffling
    "identity",
    "make_permutations",
    "permute",
    # Loader
    "load_vlp",
]
