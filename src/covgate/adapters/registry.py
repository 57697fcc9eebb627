"""Registry of report dialects.

The set of dialects is closed: configuration selects one by name and the
registry hands out a fresh parser instance.
"""

from __future__ import annotations

from covgate.adapters.base import CoverageParser
from covgate.adapters.cobertura import CoberturaCoverageParser
from covgate.adapters.java import JavaCoverageParser

_PARSERS: dict[str, type[CoverageParser]] = {
    "java": JavaCoverageParser,
    "cobertura": CoberturaCoverageParser,
}


def available_parsers() -> list[str]:
    """Return the names of all known dialects, sorted."""
    return sorted(_PARSERS)


def get_parser(name: str) -> CoverageParser:
    """Return a parser for dialect *name*.

    Raises:
        KeyError: If no dialect has that name.
    """
    key = name.strip().lower()
    parser_class = _PARSERS.get(key)
    if parser_class is None:
        msg = f"Unknown report type {name!r} (available: {', '.join(available_parsers())})"
        raise KeyError(msg)
    return parser_class()
