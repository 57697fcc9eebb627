"""Tests for the native Cobertura parser and the dialect registry.

Covers the coverage.py / Coverlet / gcovr flavoured Cobertura layout:
packages, classes grouped under their source file, methods with JVM and
non-JVM signatures, and branch counting from ``condition-coverage``.
"""

from __future__ import annotations

import pytest

from covgate.adapters.cobertura import CoberturaCoverageParser
from covgate.adapters.java import JavaCoverageParser
from covgate.adapters.registry import available_parsers, get_parser
from covgate.errors import MalformedReportError
from covgate.model.aggregate import rollup
from covgate.model.elements import BRANCH, CLASS, FILE, LINE, METHOD, PACKAGE, REPORT
from covgate.model.result import CoverageResult, Ratio

# ── Sample Cobertura XML ─────────────────────────────────────────

_COBERTURA_XML_SAMPLE = """\
<?xml version="1.0" encoding="utf-8"?>
<coverage line-rate="0.75" branch-rate="0.5" lines-covered="3" lines-valid="4">
  <sources>
    <source>/home/build/src</source>
  </sources>
  <packages>
    <package name="MyApp" line-rate="0.75" branch-rate="0.5">
      <classes>
        <class name="MyApp.Calculator" filename="Calculator.cs" line-rate="0.75">
          <methods>
            <method name="Add" signature="(II)I">
              <lines>
                <line number="10" hits="2"/>
              </lines>
            </method>
            <method name="Divide" signature="(System.Int32,System.Int32)">
              <lines>
                <line number="14" hits="2" branch="true" condition-coverage="50% (1/2)"/>
                <line number="15" hits="0"/>
              </lines>
            </method>
          </methods>
          <lines>
            <line number="10" hits="2"/>
            <line number="11" hits="1"/>
            <line number="14" hits="2" branch="true" condition-coverage="50% (1/2)"/>
            <line number="15" hits="0"/>
          </lines>
        </class>
      </classes>
    </package>
  </packages>
</coverage>
"""

_COBERTURA_XML_PYTHON = """\
<?xml version="1.0" ?>
<coverage version="7.4.0" line-rate="0.5">
  <packages>
    <package name="" line-rate="0.5">
      <classes>
        <class name="cli.py" filename="src/app/cli.py">
          <methods/>
          <lines>
            <line number="1" hits="1"/>
            <line number="2" hits="0"/>
          </lines>
        </class>
        <class name="Helper" filename="src/app/cli.py">
          <lines>
            <line number="9" hits="1"/>
          </lines>
        </class>
        <class name="Orphan">
          <lines>
            <line number="1" hits="0"/>
          </lines>
        </class>
      </classes>
    </package>
  </packages>
</coverage>
"""

_COBERTURA_XML_EMPTY = """\
<?xml version="1.0" encoding="utf-8"?>
<coverage line-rate="0" branch-rate="0">
</coverage>
"""


def _parse(xml: str, report_name: str = "app") -> CoverageResult:
    return CoberturaCoverageParser().parse_string(xml, report_name)


# ── Identity ─────────────────────────────────────────────────────


class TestCoberturaParserIdentity:
    def test_name(self) -> None:
        assert CoberturaCoverageParser().name == "cobertura"


# ── Mapping ──────────────────────────────────────────────────────


class TestCoberturaMapping:
    def test_report_root(self) -> None:
        report = _parse(_COBERTURA_XML_SAMPLE, "frontend")
        assert report.element == REPORT
        assert report.name == "cobertura: frontend"

    def test_class_is_nested_under_its_file(self) -> None:
        report = _parse(_COBERTURA_XML_SAMPLE)
        cls = report.find(CLASS)[0]
        assert cls.path == ("cobertura: app", "MyApp", "Calculator.cs", "MyApp.Calculator")
        file_ = report.find(FILE)[0]
        assert file_.relative_source_path == "Calculator.cs"
        assert file_.find(CLASS) == [cls]

    def test_method_names(self) -> None:
        report = _parse(_COBERTURA_XML_SAMPLE)
        names = sorted(node.name for node in report.find(METHOD))
        assert names == ["Divide(System.Int32,System.Int32)", "int Add(int,int)"]

    def test_method_without_signature(self) -> None:
        xml = (
            '<coverage><packages><package name="p"><classes><class name="C" filename="c.py">'
            '<methods><method name="run" signature=""/></methods>'
            "</class></classes></package></packages></coverage>"
        )
        assert _parse(xml).find(METHOD)[0].name == "run"

    def test_empty_package_name_uses_default(self) -> None:
        report = _parse(_COBERTURA_XML_PYTHON)
        assert report.find(PACKAGE)[0].name == "<default>"

    def test_classes_of_one_file_share_the_file_node(self) -> None:
        report = _parse(_COBERTURA_XML_PYTHON)
        files = report.find(FILE)
        assert [f.name for f in files] == ["src/app/cli.py"]
        assert [c.name for c in files[0].children] == ["cli.py", "Helper"]

    def test_class_without_filename_sits_under_package(self) -> None:
        report = _parse(_COBERTURA_XML_PYTHON)
        orphan = next(node for node in report.find(CLASS) if node.name == "Orphan")
        assert orphan.parent is not None
        assert orphan.parent.element == PACKAGE

    def test_empty_report(self) -> None:
        report = _parse(_COBERTURA_XML_EMPTY)
        assert report.children == []


# ── Counting ─────────────────────────────────────────────────────


class TestCoberturaCounting:
    def test_class_lines_and_branches(self) -> None:
        report = _parse(_COBERTURA_XML_SAMPLE)
        cls = report.find(CLASS)[0]
        assert cls.local_counts[LINE] == Ratio(3, 4)
        assert cls.local_counts[BRANCH] == Ratio(1, 2)

    def test_rollup_prefers_class_lines_over_method_lines(self) -> None:
        report = rollup(_parse(_COBERTURA_XML_SAMPLE))
        assert report.get_coverage(LINE) == Ratio(3, 4)
        assert report.get_coverage(BRANCH) == Ratio(1, 2)
        assert report.get_coverage(METHOD) == Ratio(2, 2)
        assert report.get_coverage(FILE) == Ratio(1, 1)

    def test_python_report_totals(self) -> None:
        report = rollup(_parse(_COBERTURA_XML_PYTHON))
        assert report.get_coverage(LINE) == Ratio(2, 4)
        assert report.get_coverage(CLASS) == Ratio(2, 3)


# ── Malformed ────────────────────────────────────────────────────


class TestCoberturaMalformed:
    def test_not_well_formed(self) -> None:
        with pytest.raises(MalformedReportError, match="cobertura"):
            _parse("<coverage><packages>")

    def test_wrong_root(self) -> None:
        with pytest.raises(MalformedReportError, match="No report element"):
            _parse('<report name="java"><package name="p"/></report>')


# ── Registry ─────────────────────────────────────────────────────


class TestRegistry:
    def test_available_parsers(self) -> None:
        assert available_parsers() == ["cobertura", "java"]

    @pytest.mark.parametrize(
        ("name", "parser_class"),
        [
            ("java", JavaCoverageParser),
            ("JAVA", JavaCoverageParser),
            (" cobertura ", CoberturaCoverageParser),
        ],
    )
    def test_get_parser(self, name: str, parser_class: type) -> None:
        assert isinstance(get_parser(name), parser_class)

    def test_get_parser_returns_fresh_instance(self) -> None:
        assert get_parser("java") is not get_parser("java")

    def test_unknown_parser(self) -> None:
        with pytest.raises(KeyError, match="available: cobertura, java"):
            get_parser("lcov")
