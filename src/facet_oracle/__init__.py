"""
facet_oracle: facet separation oracle for polytopes given in VLP format.

A polytope is described implicitly by a linear system with distinguished
objective rows. The oracle answers, for a query point or direction, whether
it lies inside and otherwise returns a separating supporting hyperplane,
computed from the dual solution of an LP along the segment from a known
interior point.
"""

from . import config
from .oracle import (
    FacetOracle,
    OracleData,
    OracleState,
    OracleStats,
    OracleStatus,
)
from .report import Reporter
from .vlp import VlpFormatError, load_vlp

__version__ = "0.1.0"
__all__ = [
    "config",
    "FacetOracle",
    "OracleData",
    "OracleState",
    "OracleStats",
    "OracleStatus",
    "Reporter",
    "VlpFormatError",
    "load_vlp",
]
