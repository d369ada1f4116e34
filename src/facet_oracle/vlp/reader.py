"""
Reader for the VLP polytope description format.

One statement per line, case-insensitive, blanks collapsed, lines longer
than MAX_LINELEN characters truncated:

    c <comment>                      comment (surfaced only before 'p')
    p vlp min|max <rows> <cols> <nz> <objs> [<nz>]
    j <col> f | l <v> | u <v> | s <v> | d <v1> <v2>
    i <row> f | l <v> | u <v> | s <v> | d <v1> <v2>
    a <row> <col> <value>            constraint matrix entry
    o <obj> <col> <value>            objective row entry
    x <obj> <value>                  interior point coordinate
    e                                end of file (optional)

Any malformed statement is fatal: it is reported with the file name, line
number and the offending line, and `VlpFormatError` is raised. There is no
partial result.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np

from ..config import MAX_LINELEN
from ..report import Reporter


class VlpFormatError(ValueError):
    """Raised when a VLP source is malformed or inconsistent."""


class BoundType(Enum):
    """Bound codes of 'j' and 'i' lines with the number of values they take."""
    FREE = "f"
    LOWER = "l"
    UPPER = "u"
    FIXED = "s"
    DOUBLE = "d"

    @property
    def n_values(self) -> int:
        if self is BoundType.FREE:
            return 0
        if self is BoundType.DOUBLE:
            return 2
        return 1

    def bounds(self, values: List[float]) -> Tuple[float, float]:
        """Return (lower, upper) for the given values; missing sides are infinite."""
        if self is BoundType.FREE:
            return (-math.inf, math.inf)
        if self is BoundType.LOWER:
            return (values[0], math.inf)
        if self is BoundType.UPPER:
            return (-math.inf, values[0])
        if self is BoundType.FIXED:
            return (values[0], values[0])
        return (values[0], values[1])


Bounds = Tuple[float, float]


@dataclass
class VlpProblem:
    """
    Parsed content of a VLP source, indices as declared (1-based).

    Objective entries already carry the sign of the declared direction.
    """
    name: str
    rows: int
    cols: int
    objs: int
    direction: str
    col_bounds: Dict[int, Bounds] = field(default_factory=dict)
    row_bounds: Dict[int, Bounds] = field(default_factory=dict)
    entries: Dict[Tuple[int, int], float] = field(default_factory=dict)
    obj_entries: Dict[Tuple[int, int], float] = field(default_factory=dict)
    interior: Optional[np.ndarray] = None
    comments: List[str] = field(default_factory=list)


# =============================================================================
# Line reader
# =============================================================================

def normalize_line(raw: str, max_len: int = MAX_LINELEN) -> str:
    """
    Normalize a raw input line.

    Leading blanks are dropped, runs of blanks and tabs become one space,
    other control characters and non-ASCII characters are ignored, A-Z is
    folded to a-z, and the result is truncated to `max_len` characters.
    """
    out = []
    pending_space = False
    for ch in raw:
        if ch == " " or ch == "\t":
            pending_space = True
            continue
        if ch <= " " or ch > "~":
            continue
        if pending_space and out and len(out) < max_len:
            out.append(" ")
        pending_space = False
        if "A" <= ch <= "Z":
            ch = ch.lower()
        if len(out) < max_len:
            out.append(ch)
    return "".join(out)


def iter_statements(lines: Iterable[str]) -> Iterator[Tuple[int, str]]:
    """Yield (line_number, normalized_line) for every non-empty line."""
    for lineno, raw in enumerate(lines, start=1):
        line = normalize_line(raw.rstrip("\r\n"))
        if line:
            yield lineno, line


# =============================================================================
# Parser
# =============================================================================

class _Parser:
    """Single-use parser state for one VLP source."""

    def __init__(self, name: str, reporter: Reporter):
        self.name = name
        self.reporter = reporter
        self.problem: Optional[VlpProblem] = None
        self.comments: List[str] = []
        self.lineno = 0
        self.line = ""

    def fail(self, what: str) -> VlpFormatError:
        message = (
            f"read_vlp: {what} in {self.name} line {self.lineno}:\n"
            f"   {self.line}"
        )
        self.reporter.fatal(message)
        return VlpFormatError(message)

    def parse(self, lines: Iterable[str]) -> VlpProblem:
        for self.lineno, self.line in iter_statements(lines):
            kind = self.line[0]
            if kind == "c":
                self._comment()
            elif kind == "e":
                break
            elif kind == "p":
                self._problem_line()
            elif kind in "jiaox":
                if self.problem is None:
                    raise self.fail(f"{kind} line before p")
                getattr(self, f"_{kind}_line")()
            else:
                raise self.fail("unknown line")
        if self.problem is None:
            message = f"read_vlp: no 'p' line in {self.name}"
            self.reporter.fatal(message)
            raise VlpFormatError(message)
        return self.problem

    # -- token helpers --------------------------------------------------------

    def _int(self, token: str, what: str) -> int:
        try:
            return int(token)
        except ValueError:
            raise self.fail(f"wrong {what} line") from None

    def _float(self, token: str, what: str) -> float:
        try:
            value = float(token)
        except ValueError:
            raise self.fail(f"wrong {what} line") from None
        if math.isnan(value):
            raise self.fail(f"wrong {what} line")
        return value

    def _index(self, token: str, upper: int, what: str) -> int:
        idx = self._int(token, what)
        if idx < 1 or idx > upper:
            raise self.fail(f"wrong {what} line")
        return idx

    # -- statements -----------------------------------------------------------

    def _comment(self) -> None:
        if self.problem is not None:
            return
        text = self.line[1:].strip()
        if text:
            self.comments.append(text)
            self.reporter.warning(f"C {text}")

    def _problem_line(self) -> None:
        if self.problem is not None:
            raise self.fail("second p line")
        tokens = self.line.split()
        if (len(tokens) not in (7, 8) or tokens[1] != "vlp"
                or tokens[2] not in ("min", "max")):
            raise self.fail("wrong p line")
        rows = self._int(tokens[3], "p")
        cols = self._int(tokens[4], "p")
        self._int(tokens[5], "p")
        objs = self._int(tokens[6], "p")
        if len(tokens) == 8:
            self._int(tokens[7], "p")
        if rows <= 1 or cols <= 1 or objs < 1:
            raise self.fail("wrong p line")
        self.problem = VlpProblem(
            name=self.name, rows=rows, cols=cols, objs=objs,
            direction=tokens[2],
            interior=np.zeros(objs),
            comments=list(self.comments),
        )

    def _bound_line(self, count: int, what: str) -> Tuple[int, Bounds]:
        tokens = self.line.split()
        if len(tokens) < 3:
            raise self.fail(f"wrong {what} line")
        idx = self._index(tokens[1], count, what)
        try:
            btype = BoundType(tokens[2])
        except ValueError:
            raise self.fail(f"wrong {what} line") from None
        values = [self._float(t, what) for t in tokens[3:]]
        if len(values) != btype.n_values:
            raise self.fail(f"wrong {what} line")
        return idx, btype.bounds(values)

    def _j_line(self) -> None:
        col, bounds = self._bound_line(self.problem.cols, "j")
        self.problem.col_bounds[col] = bounds

    def _i_line(self) -> None:
        row, bounds = self._bound_line(self.problem.rows, "i")
        self.problem.row_bounds[row] = bounds

    def _entry(self, row_count: int, what: str) -> Tuple[int, int, float]:
        tokens = self.line.split()
        if len(tokens) != 4:
            raise self.fail(f"wrong {what} line")
        row = self._index(tokens[1], row_count, what)
        col = self._index(tokens[2], self.problem.cols, what)
        return row, col, self._float(tokens[3], what)

    def _a_line(self) -> None:
        row, col, value = self._entry(self.problem.rows, "a")
        self.problem.entries[(row, col)] = value

    def _o_line(self) -> None:
        obj, col, value = self._entry(self.problem.objs, "o")
        sign = -1.0 if self.problem.direction == "max" else 1.0
        self.problem.obj_entries[(obj, col)] = sign * value

    def _x_line(self) -> None:
        tokens = self.line.split()
        if len(tokens) != 3:
            raise self.fail("wrong x line")
        obj = self._index(tokens[1], self.problem.objs, "x")
        self.problem.interior[obj - 1] = self._float(tokens[2], "x")


# =============================================================================
# Entry point
# =============================================================================

Source = Union[str, Path, Iterable[str]]


def read_vlp(source: Source, reporter: Optional[Reporter] = None) -> VlpProblem:
    """
    Parse a VLP source.

    Parameters
    ----------
    source : str, Path or iterable of str
        A file path, or any iterable yielding the lines of the description.
    reporter : Reporter, optional
        Sink for comments and fatal errors.

    Returns
    -------
    VlpProblem

    Raises
    ------
    VlpFormatError
        On any format error; the error has already been reported.
    OSError
        If the file cannot be opened (also reported).
    """
    if reporter is None:
        reporter = Reporter()

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            f = open(path, "r", encoding="latin-1")
        except OSError:
            reporter.fatal(f"Cannot open vlp file {path} for reading")
            raise
        with f:
            return _Parser(str(path), reporter).parse(f)

    return _Parser("<stream>", reporter).parse(source)
