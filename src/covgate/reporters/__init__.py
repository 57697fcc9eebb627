"""Reporters for outputting coverage results."""

from __future__ import annotations

from covgate.reporters.json_reporter import JSONReporter
from covgate.reporters.terminal import CLIReporter, reporter

__all__ = [
    "CLIReporter",
    "JSONReporter",
    "reporter",
]
