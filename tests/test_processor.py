"""Tests for the coverage processor (processor.py).

Covers concurrent parsing, merge and evaluation, the skip policy for
unreadable reports, and building sources from configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from covgate.adapters.cobertura import CoberturaCoverageParser
from covgate.adapters.java import JavaCoverageParser
from covgate.config import AdapterConfig, CovgateConfig
from covgate.errors import MalformedReportError
from covgate.model.elements import AGGREGATED_REPORT, CLASS, LINE
from covgate.model.result import Ratio
from covgate.processor import CoverageProcessor, ReportSource, sources_from_config
from covgate.threshold import HealthStatus, Threshold

_JAVA_BACKEND = """\
<report name="jacoco">
  <package name="io.example">
    <file name="io/example/Service.java">
      <class name="io.example.Service">
        <line number="1" hits="1"/>
        <line number="2" hits="0"/>
      </class>
    </file>
  </package>
</report>
"""

_COBERTURA_FRONTEND = """\
<coverage>
  <packages>
    <package name="web">
      <classes>
        <class name="App" filename="web/app.py">
          <lines>
            <line number="1" hits="1"/>
            <line number="2" hits="1"/>
          </lines>
        </class>
      </classes>
    </package>
  </packages>
</coverage>
"""


def _write_file(root: Path, rel: str, content: str) -> Path:
    f = root / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


@pytest.fixture()
def sources(tmp_path: Path) -> list[ReportSource]:
    return [
        ReportSource(
            JavaCoverageParser(),
            _write_file(tmp_path, "backend/coverage.xml", _JAVA_BACKEND),
            "backend",
        ),
        ReportSource(
            CoberturaCoverageParser(),
            _write_file(tmp_path, "frontend/coverage.xml", _COBERTURA_FRONTEND),
            "frontend",
        ),
    ]


# ── Parsing ──────────────────────────────────────────────────────


class TestParseReports:
    @pytest.mark.asyncio
    async def test_parses_all_sources(self, sources: list[ReportSource]) -> None:
        results, failures = await CoverageProcessor().parse_reports(sources)
        assert [r.name for r in results] == ["jacoco: backend", "cobertura: frontend"]
        assert failures == []

    @pytest.mark.asyncio
    async def test_malformed_report_aborts_by_default(
        self, tmp_path: Path, sources: list[ReportSource]
    ) -> None:
        broken = _write_file(tmp_path, "broken.xml", "<report><package>")
        sources.append(ReportSource(JavaCoverageParser(), broken, "broken"))
        with pytest.raises(MalformedReportError):
            await CoverageProcessor().parse_reports(sources)

    @pytest.mark.asyncio
    async def test_malformed_report_skipped_when_requested(
        self, tmp_path: Path, sources: list[ReportSource]
    ) -> None:
        broken = _write_file(tmp_path, "broken.xml", "<report><package>")
        sources.append(ReportSource(JavaCoverageParser(), broken, "broken"))

        results, failures = await CoverageProcessor(skip_failed_adapters=True).parse_reports(
            sources
        )

        assert len(results) == 2
        assert len(failures) == 1
        assert failures[0].source.report_name == "broken"
        assert isinstance(failures[0].error, MalformedReportError)

    @pytest.mark.asyncio
    async def test_missing_file_follows_skip_policy(self, tmp_path: Path) -> None:
        missing = [ReportSource(JavaCoverageParser(), tmp_path / "missing.xml", "missing")]
        with pytest.raises(OSError):
            await CoverageProcessor().parse_reports(missing)

        results, failures = await CoverageProcessor(skip_failed_adapters=True).parse_reports(
            missing
        )
        assert results == []
        assert len(failures) == 1


# ── Processing ───────────────────────────────────────────────────


class TestProcess:
    @pytest.mark.asyncio
    async def test_merges_and_evaluates(self, sources: list[ReportSource]) -> None:
        processed = await CoverageProcessor().process(sources, [Threshold(LINE, 40.0, 60.0)])

        assert processed.result.element == AGGREGATED_REPORT
        assert processed.report_count == 2
        assert processed.result.get_coverage(LINE) == Ratio(3, 4)
        assert processed.verdict.status == HealthStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_structural_threshold_names_weakest_class(
        self, sources: list[ReportSource]
    ) -> None:
        processed = await CoverageProcessor(fail_unstable=True).process(
            sources, [Threshold(CLASS, 40.0, 60.0)]
        )

        result = processed.verdict.results[0]
        assert result.status == HealthStatus.UNSTABLE
        assert result.node.endswith("io.example.Service")
        assert processed.verdict.failed

    @pytest.mark.asyncio
    async def test_no_sources_with_fail_no_reports(self) -> None:
        processed = await CoverageProcessor(fail_no_reports=True).process([], [])
        assert processed.report_count == 0
        assert processed.verdict.failed
        assert processed.verdict.no_reports

    def test_perform_coverage_report_is_blocking(self, sources: list[ReportSource]) -> None:
        processed = CoverageProcessor().perform_coverage_report(sources, [])
        assert processed.report_count == 2
        assert processed.verdict.passed


# ── Configuration ────────────────────────────────────────────────


class TestFromConfig:
    def test_sources_resolve_relative_paths(self, tmp_path: Path) -> None:
        config = CovgateConfig(
            root=str(tmp_path),
            adapters=[
                AdapterConfig(type="java", path="build/jacoco.xml"),
                AdapterConfig(type="Cobertura", path="/abs/coverage.xml", name="web"),
            ],
        )

        built = sources_from_config(config)

        assert built[0].document == tmp_path / "build" / "jacoco.xml"
        assert built[0].report_name == "jacoco"
        assert isinstance(built[0].parser, JavaCoverageParser)
        assert built[1].document == Path("/abs/coverage.xml")
        assert built[1].report_name == "web"
        assert isinstance(built[1].parser, CoberturaCoverageParser)

    def test_unknown_adapter_type(self, tmp_path: Path) -> None:
        config = CovgateConfig(root=str(tmp_path), adapters=[AdapterConfig("lcov", "x.info")])
        with pytest.raises(KeyError):
            sources_from_config(config)

    def test_processor_flags(self, tmp_path: Path) -> None:
        config = CovgateConfig(
            root=str(tmp_path),
            fail_unhealthy=True,
            fail_no_reports=True,
            skip_failed_adapters=True,
        )
        processor = CoverageProcessor.from_config(config)
        assert processor.fail_unhealthy
        assert not processor.fail_unstable
        assert processor.fail_no_reports
        assert processor.skip_failed_adapters
