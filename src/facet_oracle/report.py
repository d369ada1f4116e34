"""
Reporting sink for the facet oracle.

Every fatal condition is reported exactly once, at the point where it is
detected, before the failing operation returns. Comments found at the top
of a VLP file are surfaced as warnings. The sink only appends; nothing in
the oracle reads back what was reported.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List


logger = logging.getLogger("facet_oracle")


class Level(Enum):
    FATAL = "fatal"
    WARNING = "warning"
    INFO = "info"


_LOG_LEVELS = {
    Level.FATAL: logging.ERROR,
    Level.WARNING: logging.WARNING,
    Level.INFO: logging.INFO,
}


@dataclass(frozen=True)
class Report:
    """A single reported message."""
    level: Level
    message: str

    def __str__(self) -> str:
        return f"[{self.level.value}] {self.message}"


@dataclass
class Reporter:
    """
    Append-only collection of reports, mirrored to the `facet_oracle` logger.

    Attributes
    ----------
    messages : list of Report
        Everything reported so far, oldest first.
    """
    messages: List[Report] = field(default_factory=list)

    def report(self, level: Level, message: str) -> None:
        message = message.rstrip()
        self.messages.append(Report(level, message))
        logger.log(_LOG_LEVELS[level], message)

    def fatal(self, message: str) -> None:
        self.report(Level.FATAL, message)

    def warning(self, message: str) -> None:
        self.report(Level.WARNING, message)

    def info(self, message: str) -> None:
        self.report(Level.INFO, message)

    def of_level(self, level: Level) -> List[Report]:
        """Return the reports with the given level."""
        return [r for r in self.messages if r.level is level]

    @property
    def fatals(self) -> List[Report]:
        return self.of_level(Level.FATAL)
