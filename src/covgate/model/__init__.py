"""Coverage data model: element taxonomy, result tree and aggregation."""

from covgate.model.aggregate import AGGREGATED_REPORT_NAME, merge_results, rollup
from covgate.model.elements import (
    AGGREGATED_REPORT,
    BRANCH,
    CLASS,
    ELEMENTS,
    FILE,
    GROUP,
    LINE,
    METHOD,
    PACKAGE,
    REPORT,
    CoverageElement,
    CoverageElementRegistry,
    get_element,
)
from covgate.model.result import CoverageResult, Ratio

__all__ = [
    "AGGREGATED_REPORT",
    "AGGREGATED_REPORT_NAME",
    "BRANCH",
    "CLASS",
    "ELEMENTS",
    "FILE",
    "GROUP",
    "LINE",
    "METHOD",
    "PACKAGE",
    "REPORT",
    "CoverageElement",
    "CoverageElementRegistry",
    "CoverageResult",
    "Ratio",
    "get_element",
    "merge_results",
    "rollup",
]
