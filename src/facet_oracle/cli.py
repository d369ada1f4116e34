"""
Command-line front end for the facet oracle.

Loads a VLP file, checks the interior point, answers the given queries and
prints the LP statistics.

Usage:
    facet-oracle square.vlp --query 2 0.5 1 --query 1 1 0 --round
    python -m facet_oracle.cli square.vlp --query 2 2 1 --verbose
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import (
    DEFAULT_IT_LIMIT, DEFAULT_TIME_LIMIT, POLYTOPE_EPS,
    OracleConfig,
)
from .oracle import FacetOracle, OracleStatus
from .vlp.reader import VlpFormatError


def _format_facet(facet) -> str:
    return " ".join(f"{v:.10g}" for v in facet)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Facet separation oracle for a polytope in VLP format"
    )
    parser.add_argument("vlp_file", help="VLP polytope description")
    parser.add_argument(
        "--query", type=float, nargs="+", action="append", default=[],
        metavar="V",
        help="Query vertex: objs coordinates, then 1 (point) or 0 (direction)",
    )
    parser.add_argument(
        "--eps", type=float, default=POLYTOPE_EPS,
        help=f"Numeric tolerance (default: {POLYTOPE_EPS})"
    )
    parser.add_argument(
        "--shuffle", action="store_true",
        help="Randomly permute rows and columns of the LP"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed for --shuffle"
    )
    parser.add_argument(
        "--scale", action="store_true",
        help="Rescale the LP before solving"
    )
    parser.add_argument(
        "--method", choices=["primal", "dual"], default="primal",
        help="Simplex method (default: primal)"
    )
    parser.add_argument(
        "--pricing", choices=["std", "steep"], default="std",
        help="Pricing rule (default: std)"
    )
    parser.add_argument(
        "--ratio-test", choices=["std", "harris"], default="std",
        help="Ratio test (default: std)"
    )
    parser.add_argument(
        "--it-limit", type=int, default=DEFAULT_IT_LIMIT,
        help=f"Iteration limit, 0 for none (default: {DEFAULT_IT_LIMIT})"
    )
    parser.add_argument(
        "--time-limit", type=int, default=DEFAULT_TIME_LIMIT,
        help=f"Time limit in seconds, 0 for none (default: {DEFAULT_TIME_LIMIT})"
    )
    parser.add_argument(
        "--round", action="store_true",
        help="Round facet coefficients to simple rationals"
    )
    parser.add_argument(
        "--message", type=int, choices=[0, 1, 2, 3], default=0,
        help="LP solver verbosity (default: 0)"
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Print debug progress"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    config = OracleConfig(
        oracle_message=args.message,
        shuffle_matrix=args.shuffle,
        shuffle_seed=args.seed,
        oracle_scale=args.scale,
        oracle_method=int(args.method == "dual"),
        oracle_pricing=int(args.pricing == "steep"),
        oracle_ratio_test=int(args.ratio_test == "harris"),
        oracle_it_limit=args.it_limit,
        oracle_time_limit=args.time_limit,
        polytope_eps=args.eps,
        round_facets=args.round,
    )

    try:
        oracle = FacetOracle.from_vlp(args.vlp_file, config)
    except (VlpFormatError, OSError):
        return 1

    status = oracle.initialize_consistency()
    print(f"consistency: {status.value}")
    if status is not OracleStatus.OK:
        return 1

    exit_code = 0
    for vertex in args.query:
        if len(vertex) != oracle.objs + 1:
            print(f"query {_format_facet(vertex)}: needs {oracle.objs + 1} values")
            exit_code = 1
            continue
        status, facet = oracle.ask(vertex)
        if status is OracleStatus.OK:
            print(f"query {_format_facet(vertex)}: facet {_format_facet(facet)}")
        else:
            print(f"query {_format_facet(vertex)}: {status.value}")
        if status is OracleStatus.FAIL:
            exit_code = 1
            break

    print(oracle.stats())
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
