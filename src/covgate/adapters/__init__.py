"""Report parsers, one per coverage report dialect."""

from covgate.adapters.base import CoverageParser, Document, get_attribute
from covgate.adapters.cobertura import CoberturaCoverageParser
from covgate.adapters.java import JavaCoverageParser, decode_method_name
from covgate.adapters.registry import available_parsers, get_parser

__all__ = [
    "CoberturaCoverageParser",
    "CoverageParser",
    "Document",
    "JavaCoverageParser",
    "available_parsers",
    "decode_method_name",
    "get_attribute",
    "get_parser",
]
