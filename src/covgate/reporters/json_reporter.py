"""JSON reporter: structured coverage reports.

Produces machine-readable JSON output for downstream tooling from a
finished coverage run.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from covgate import __version__

if TYPE_CHECKING:
    from pathlib import Path

    from covgate.processor import ProcessResult
    from covgate.threshold import Verdict

logger = logging.getLogger(__name__)


class JSONReporter:
    """Generate structured JSON reports from a coverage run.

    Serializes the combined coverage tree, the threshold verdict and any
    skipped adapters into a single JSON document.
    """

    def generate(self, output_path: Path, processed: ProcessResult) -> Path:
        """Write a JSON report file.

        Args:
            output_path: Path to write the JSON file.
            processed: Result of the coverage run.

        Returns:
            The path to the generated JSON file.
        """
        report = _build_report(processed)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(report, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        logger.info("JSON report written to %s", output_path)
        return output_path

    def generate_string(self, processed: ProcessResult) -> str:
        """Return the JSON report as a string."""
        report = _build_report(processed)
        return json.dumps(report, indent=2, ensure_ascii=False, default=str)


def _build_report(processed: ProcessResult) -> dict[str, Any]:
    """Build the JSON report structure."""
    return {
        "tool": "covgate",
        "version": __version__,
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "verdict": _serialize_verdict(processed.verdict),
        "skipped": [
            {
                "type": failure.source.parser.name,
                "document": str(failure.source.document),
                "error": str(failure.error),
            }
            for failure in processed.failures
        ],
        "coverage": processed.result.to_dict(),
    }


def _serialize_verdict(verdict: Verdict) -> dict[str, Any]:
    """Serialize a ``Verdict`` into a JSON-compatible dict."""
    return {
        "status": verdict.status.value,
        "failed": verdict.failed,
        "no_reports": verdict.no_reports,
        "reasons": list(verdict.reasons),
        "thresholds": [
            {
                "element": item.threshold.applies_to.name,
                "unhealthy_min": item.threshold.unhealthy_min,
                "unstable_min": item.threshold.unstable_min,
                "status": item.status.value,
                "covered": item.ratio.covered if item.ratio is not None else None,
                "total": item.ratio.total if item.ratio is not None else None,
                "percentage": round(item.percentage, 2),
                "node": item.node,
            }
            for item in verdict.results
        ],
    }
