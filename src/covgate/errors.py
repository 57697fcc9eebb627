"""Exception hierarchy shared by the parsers, the model and the evaluator."""

from __future__ import annotations


class CoverageError(Exception):
    """Base class for every covgate error."""


class MalformedReportError(CoverageError):
    """A report document could not be turned into a coverage tree."""


class UnknownElementKindError(CoverageError):
    """A name was looked up that is not registered in the element taxonomy."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown coverage element kind: {name!r}")
        self.name = name


class HierarchyError(CoverageError):
    """A node was attached under a parent that is not above it in the taxonomy."""


class NoReportsError(CoverageError):
    """No coverage data was available while ``fail_no_reports`` was requested."""


class ThresholdFailureError(CoverageError):
    """A verdict requested a failing build state."""
