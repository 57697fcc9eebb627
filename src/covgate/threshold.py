"""Health thresholds and the verdict they produce.

A threshold names an element kind and two ascending cutoffs::

    ratio < unhealthy_min                   -> UNHEALTHY
    unhealthy_min <= ratio < unstable_min   -> UNSTABLE
    ratio >= unstable_min                   -> HEALTHY

For counter kinds (Line, Branch) the ratio is taken from the root of the
combined tree. For structural kinds (Report ... Method) every node of that
kind is measured by its line coverage and the least covered one decides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from covgate.errors import NoReportsError, ThresholdFailureError
from covgate.model.aggregate import rollup
from covgate.model.elements import LINE

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covgate.model.elements import CoverageElement
    from covgate.model.result import CoverageResult, Ratio

logger = logging.getLogger(__name__)

_MAX_PERCENTAGE = 100.0


class HealthStatus(Enum):
    """Classification of a coverage ratio."""

    HEALTHY = "healthy"
    UNSTABLE = "unstable"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNSTABLE: 1,
    HealthStatus.UNHEALTHY: 2,
}


def worst_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Return the most severe status, HEALTHY for an empty input."""
    return max(statuses, key=lambda status: status.severity, default=HealthStatus.HEALTHY)


@dataclass(frozen=True)
class Threshold:
    """Minimum coverage percentages for one element kind."""

    applies_to: CoverageElement
    """Element kind the threshold is measured on."""

    unhealthy_min: float = 0.0
    """Below this percentage the result is unhealthy."""

    unstable_min: float = 0.0
    """Below this percentage (and at or above ``unhealthy_min``) it is unstable."""

    def __post_init__(self) -> None:
        for label, value in (
            ("unhealthy_min", self.unhealthy_min),
            ("unstable_min", self.unstable_min),
        ):
            if not 0.0 <= value <= _MAX_PERCENTAGE:
                msg = f"{label} must be between 0 and 100 (got: {value})"
                raise ValueError(msg)
        if self.unhealthy_min > self.unstable_min:
            msg = (
                f"unhealthy_min ({self.unhealthy_min}) must not exceed "
                f"unstable_min ({self.unstable_min})"
            )
            raise ValueError(msg)

    def classify(self, percentage: float) -> HealthStatus:
        if percentage < self.unhealthy_min:
            return HealthStatus.UNHEALTHY
        if percentage < self.unstable_min:
            return HealthStatus.UNSTABLE
        return HealthStatus.HEALTHY


@dataclass
class ThresholdResult:
    """Outcome of one threshold."""

    threshold: Threshold
    status: HealthStatus
    ratio: Ratio | None = None
    """Measured ratio, None when there was no data."""

    node: str = ""
    """Qualified name of the node that decided a structural threshold."""

    @property
    def no_data(self) -> bool:
        return self.ratio is None or self.ratio.is_empty

    @property
    def percentage(self) -> float:
        if self.ratio is None:
            return 100.0
        return self.ratio.percentage

    def describe(self) -> str:
        kind = self.threshold.applies_to.name
        if self.no_data:
            return f"{kind}: no coverage data"
        where = f" ({self.node})" if self.node else ""
        if self.status == HealthStatus.UNHEALTHY:
            return (
                f"{kind} coverage {self.percentage:.2f}%{where} is below the "
                f"unhealthy threshold {self.threshold.unhealthy_min:.2f}%"
            )
        if self.status == HealthStatus.UNSTABLE:
            return (
                f"{kind} coverage {self.percentage:.2f}%{where} is below the "
                f"unstable threshold {self.threshold.unstable_min:.2f}%"
            )
        return f"{kind} coverage {self.percentage:.2f}%{where} is healthy"


@dataclass
class Verdict:
    """Overall health of a coverage tree against a set of thresholds."""

    status: HealthStatus
    results: list[ThresholdResult] = field(default_factory=list)
    failed: bool = False
    """True when the configured failure conditions were met."""

    no_reports: bool = False
    """True when the verdict failed because coverage data was missing."""

    reasons: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failed

    def raise_for_status(self) -> None:
        """Raise if this verdict requests a failing build state."""
        if not self.failed:
            return
        message = "; ".join(self.reasons) or self.status.value
        if self.no_reports:
            raise NoReportsError(message)
        raise ThresholdFailureError(message)


def _measure(result: CoverageResult, element: CoverageElement) -> tuple[Ratio | None, str]:
    if element.counter:
        return result.get_coverage(element), ""

    measured: list[tuple[float, str, Ratio]] = []
    for node in result.find(element):
        line = node.get_coverage(LINE)
        if line is None or line.is_empty:
            continue
        measured.append((line.percentage, node.qualified_name, line))
    if not measured:
        return None, ""
    _, qualified_name, ratio = min(measured, key=lambda item: (item[0], item[1]))
    return ratio, qualified_name


def _has_data(result: CoverageResult | None) -> bool:
    if result is None:
        return False
    line = result.get_coverage(LINE)
    return line is not None and not line.is_empty


def evaluate(
    result: CoverageResult | None,
    thresholds: Iterable[Threshold],
    *,
    fail_unhealthy: bool = False,
    fail_unstable: bool = False,
    fail_no_reports: bool = False,
) -> Verdict:
    """Classify *result* against *thresholds*.

    Missing data counts as 100% unless *fail_no_reports* is set, in which
    case an empty tree, or a threshold whose kind has no data, fails the
    verdict on its own.

    Raises:
        ValueError: Two thresholds apply to the same element kind.
    """
    threshold_list = list(thresholds)
    seen: set[CoverageElement] = set()
    for threshold in threshold_list:
        if threshold.applies_to in seen:
            msg = f"Duplicate threshold for {threshold.applies_to.name}"
            raise ValueError(msg)
        seen.add(threshold.applies_to)

    if result is not None:
        rollup(result)

    results: list[ThresholdResult] = []
    for threshold in threshold_list:
        if result is None:
            ratio, node = None, ""
        else:
            ratio, node = _measure(result, threshold.applies_to)
        percentage = 100.0 if ratio is None else ratio.percentage
        status = threshold.classify(percentage)
        logger.debug(
            "Threshold %s: %.2f%% -> %s",
            threshold.applies_to.name,
            percentage,
            status.value,
        )
        results.append(ThresholdResult(threshold=threshold, status=status, ratio=ratio, node=node))

    status = worst_status(r.status for r in results)
    reasons = [r.describe() for r in results if r.status != HealthStatus.HEALTHY]
    failed = (fail_unhealthy and status == HealthStatus.UNHEALTHY) or (
        fail_unstable and status.severity >= HealthStatus.UNSTABLE.severity
    )

    no_reports = False
    if fail_no_reports:
        if not _has_data(result):
            no_reports = True
            reasons.insert(0, "No coverage reports were found")
        missing = [r for r in results if r.no_data]
        if missing:
            no_reports = True
            reasons.extend(r.describe() for r in missing)
    if no_reports:
        failed = True
        status = HealthStatus.UNHEALTHY

    return Verdict(
        status=status,
        results=results,
        failed=failed,
        no_reports=no_reports,
        reasons=reasons,
    )
