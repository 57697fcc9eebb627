"""Coverage processor: parse, merge, roll up and evaluate.

Reports are parsed concurrently, one worker thread per adapter, and joined
with ``asyncio.gather()`` before the single-threaded merge, rollup and
threshold evaluation.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from covgate.adapters.registry import get_parser
from covgate.errors import MalformedReportError
from covgate.model.aggregate import merge_results
from covgate.threshold import evaluate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from covgate.adapters.base import CoverageParser, Document
    from covgate.config import CovgateConfig
    from covgate.model.result import CoverageResult
    from covgate.threshold import Threshold, Verdict

logger = logging.getLogger(__name__)


@dataclass
class ReportSource:
    """One adapter: a parser and the already-located document it reads."""

    parser: CoverageParser
    """Dialect used to read the document."""

    document: Document
    """Path, binary stream or parsed XML element."""

    report_name: str = ""
    """Name given to the report root."""


@dataclass
class AdapterFailure:
    """An adapter whose report could not be parsed."""

    source: ReportSource
    error: Exception


@dataclass
class ProcessResult:
    """Outcome of one coverage run."""

    result: CoverageResult
    """Combined, rolled-up coverage tree."""

    verdict: Verdict
    """Threshold classification and failure decision."""

    failures: list[AdapterFailure] = field(default_factory=list)
    """Adapters skipped because their report was unreadable."""

    @property
    def report_count(self) -> int:
        return len(self.result.children)


def sources_from_config(config: CovgateConfig) -> list[ReportSource]:
    """Build one ``ReportSource`` per configured adapter.

    Raises:
        KeyError: An adapter names an unknown report type.
    """
    root = Path(config.root)
    sources: list[ReportSource] = []
    for adapter in config.adapters:
        path = Path(adapter.path)
        if not path.is_absolute():
            path = root / path
        sources.append(
            ReportSource(
                parser=get_parser(adapter.type),
                document=path,
                report_name=adapter.name or path.stem,
            )
        )
    return sources


class CoverageProcessor:
    """Drive parse → merge → rollup → evaluate for a set of adapters."""

    def __init__(
        self,
        *,
        fail_unhealthy: bool = False,
        fail_unstable: bool = False,
        fail_no_reports: bool = False,
        skip_failed_adapters: bool = False,
    ) -> None:
        """Initialize the processor.

        Args:
            fail_unhealthy: Fail the verdict when any threshold is unhealthy.
            fail_unstable: Fail the verdict when any threshold is unstable
                or worse.
            fail_no_reports: Fail the verdict when there is no coverage data.
            skip_failed_adapters: Drop adapters whose report cannot be parsed
                instead of aborting the run.
        """
        self.fail_unhealthy = fail_unhealthy
        self.fail_unstable = fail_unstable
        self.fail_no_reports = fail_no_reports
        self.skip_failed_adapters = skip_failed_adapters

    @classmethod
    def from_config(cls, config: CovgateConfig) -> CoverageProcessor:
        return cls(
            fail_unhealthy=config.fail_unhealthy,
            fail_unstable=config.fail_unstable,
            fail_no_reports=config.fail_no_reports,
            skip_failed_adapters=config.skip_failed_adapters,
        )

    async def parse_reports(
        self,
        sources: Sequence[ReportSource],
    ) -> tuple[list[CoverageResult], list[AdapterFailure]]:
        """Parse every source concurrently.

        Raises:
            MalformedReportError: A report is malformed and failed adapters
                are not skipped.
            OSError: A report cannot be read and failed adapters are not
                skipped.
        """
        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(source.parser.parse, source.document, source.report_name)
                for source in sources
            ),
            return_exceptions=True,
        )

        results: list[CoverageResult] = []
        failures: list[AdapterFailure] = []
        for source, outcome in zip(sources, outcomes, strict=True):
            if isinstance(outcome, (MalformedReportError, OSError)):
                if not self.skip_failed_adapters:
                    logger.error("Failed to read %s report %s", source.parser.name, source.document)
                    raise outcome
                logger.warning(
                    "Skipping %s report %s: %s", source.parser.name, source.document, outcome
                )
                failures.append(AdapterFailure(source=source, error=outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                logger.info("Parsed %s report %r", source.parser.name, outcome.name)
                results.append(outcome)
        return results, failures

    async def process(
        self,
        sources: Sequence[ReportSource],
        thresholds: Sequence[Threshold],
    ) -> ProcessResult:
        """Parse all sources, combine them and evaluate *thresholds*."""
        logger.info("Publishing coverage for %d report(s)", len(sources))
        results, failures = await self.parse_reports(sources)

        combined = merge_results(results)
        verdict = evaluate(
            combined,
            thresholds,
            fail_unhealthy=self.fail_unhealthy,
            fail_unstable=self.fail_unstable,
            fail_no_reports=self.fail_no_reports,
        )
        if verdict.failed:
            logger.warning("Coverage verdict failed: %s", "; ".join(verdict.reasons))
        else:
            logger.info("Coverage verdict: %s", verdict.status.value)
        return ProcessResult(result=combined, verdict=verdict, failures=failures)

    def perform_coverage_report(
        self,
        sources: Sequence[ReportSource],
        thresholds: Sequence[Threshold],
    ) -> ProcessResult:
        """Blocking wrapper around :meth:`process`."""
        return asyncio.run(self.process(sources, thresholds))
