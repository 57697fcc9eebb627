"""Shared fixtures for integration tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

# ── Marker registration ──────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    """Register the ``integration`` marker."""
    config.addinivalue_line("markers", "integration: integration tests")


# ── File creation helpers ────────────────────────────────────────


def write_file(root: Path, rel: str, content: str) -> Path:
    """Write *content* to a file under *root*."""
    f = root / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


def write_config(root: Path, data: dict[str, Any]) -> Path:
    """Write a ``.covgate.yml`` under *root*."""
    return write_file(root, ".covgate.yml", yaml.dump(data))


# ── Report fixtures ──────────────────────────────────────────────

JAVA_REPORT = """\
<report name="jacoco">
  <group name="backend">
    <package name="io.example">
      <file name="io/example/Calculator.java">
        <class name="io.example.Calculator">
          <method name="add" signature="(II)I">
            <line number="1" hits="1"/>
          </method>
          <line number="1" hits="1"/>
          <line number="2" hits="0"/>
        </class>
      </file>
    </package>
  </group>
</report>
"""

COBERTURA_REPORT = """\
<coverage line-rate="0.75" branch-rate="0.5">
  <packages>
    <package name="web">
      <classes>
        <class name="App" filename="web/app.py">
          <methods>
            <method name="run" signature="">
              <lines>
                <line number="3" hits="1"/>
              </lines>
            </method>
          </methods>
          <lines>
            <line number="1" hits="1"/>
            <line number="2" hits="0"/>
            <line number="3" hits="1" branch="true" condition-coverage="50% (1/2)"/>
            <line number="4" hits="1"/>
          </lines>
        </class>
      </classes>
    </package>
  </packages>
</coverage>
"""


@pytest.fixture()
def java_project(tmp_path: Path) -> Path:
    """Create a project with a single Java coverage report."""
    write_file(tmp_path, "build/reports/jacoco.xml", JAVA_REPORT)
    return tmp_path


@pytest.fixture()
def mixed_project(tmp_path: Path) -> Path:
    """Create a project with a Java and a Cobertura coverage report."""
    write_file(tmp_path, "build/reports/jacoco.xml", JAVA_REPORT)
    write_file(tmp_path, "web/coverage.xml", COBERTURA_REPORT)
    write_config(
        tmp_path,
        {
            "adapters": [
                {"type": "java", "path": "build/reports/jacoco.xml", "name": "backend"},
                {"type": "cobertura", "path": "web/coverage.xml", "name": "frontend"},
            ],
            "thresholds": [
                {"target": "line", "unhealthy": 40, "unstable": 60},
                {"target": "branch", "unhealthy": 40, "unstable": 60},
            ],
            "fail_unhealthy": True,
        },
    )
    return tmp_path
