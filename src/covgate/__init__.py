"""covgate: merge XML coverage reports and gate builds on health thresholds."""

__version__ = "0.1.0"

from covgate.adapters import CoverageParser, get_parser  # noqa: E402
from covgate.errors import (  # noqa: E402
    CoverageError,
    HierarchyError,
    MalformedReportError,
    NoReportsError,
    ThresholdFailureError,
    UnknownElementKindError,
)
from covgate.model import (  # noqa: E402
    CoverageElement,
    CoverageResult,
    Ratio,
    merge_results,
    rollup,
)
from covgate.processor import CoverageProcessor, ProcessResult, ReportSource  # noqa: E402
from covgate.threshold import HealthStatus, Threshold, Verdict, evaluate  # noqa: E402

__all__ = [
    "CoverageElement",
    "CoverageError",
    "CoverageParser",
    "CoverageProcessor",
    "CoverageResult",
    "HealthStatus",
    "HierarchyError",
    "MalformedReportError",
    "NoReportsError",
    "ProcessResult",
    "Ratio",
    "ReportSource",
    "Threshold",
    "ThresholdFailureError",
    "UnknownElementKindError",
    "Verdict",
    "__version__",
    "evaluate",
    "get_parser",
    "merge_results",
    "rollup",
]
