"""Base class for coverage report parsers.

Every dialect walks its XML document depth-first and maps each element to
zero or one tree node; the node produced by an element becomes the active
parent for that element's children. Dialects differ only in their
tag-to-kind mapping and attribute semantics.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, TYPE_CHECKING
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException, ElementTree
from defusedxml.ElementTree import ParseError as DefusedParseError

from covgate.errors import HierarchyError, MalformedReportError
from covgate.model.elements import BRANCH, LINE, REPORT
from covgate.model.result import Ratio

if TYPE_CHECKING:
    from covgate.model.result import CoverageResult

logger = logging.getLogger(__name__)

Document = str | Path | IO[bytes] | Element

# e.g. condition-coverage="50% (1/2)"
_CONDITION_COVERAGE_RE = re.compile(r"(\d*)\s*%\s*\((\d*)/(\d*)\)")


def get_attribute(element: Element, name: str, default: str | None) -> str | None:
    """Return attribute *name* of *element*, or *default* when it is absent."""
    value = element.get(name)
    if value is None:
        return default
    return value


def int_attribute(element: Element, name: str, default: int = 0) -> int:
    value = element.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def local_name(element: Element) -> str:
    """Return the tag of *element* without its namespace."""
    tag = element.tag if isinstance(element.tag, str) else ""
    return tag.split("}")[-1] if "}" in tag else tag


def _parse_condition_coverage(value: str | None) -> Ratio | None:
    if not value:
        return None
    match = _CONDITION_COVERAGE_RE.search(value)
    if match is None or not match.group(2) or not match.group(3):
        return None
    covered = int(match.group(2))
    total = int(match.group(3))
    if total <= 0:
        return None
    return Ratio(min(covered, total), total)


class CoverageParser(ABC):
    """Turn one report document into a ``CoverageResult`` tree."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Dialect identifier used in configuration (e.g. ``'java'``)."""

    @abstractmethod
    def process_element(
        self,
        element: Element,
        parent: CoverageResult | None,
        report_name: str,
    ) -> CoverageResult | None:
        """Handle one element and return the node it produced, if any.

        Args:
            element: The element being visited.
            parent: The currently active node (None above the report root).
            report_name: Name of the report being parsed.

        Returns:
            The new node, which becomes the active parent for the element's
            children, or None when the element produces no node.
        """

    def parse(self, document: Document, report_name: str = "") -> CoverageResult:
        """Parse *document* (a path, binary stream or parsed element).

        Raises:
            MalformedReportError: The document is not well-formed XML or does
                not describe a valid coverage hierarchy.
            OSError: A path could not be read.
        """
        if isinstance(document, Element):
            root_element = document
        else:
            try:
                root_element = ElementTree.parse(document).getroot()
            except (DefusedParseError, DefusedXmlException) as exc:
                logger.error("Failed to parse %s report %s: %s", self.name, report_name, exc)
                msg = f"Malformed {self.name} report {report_name!r}: {exc}"
                raise MalformedReportError(msg) from exc
        return self._build(root_element, report_name)

    def parse_string(self, text: str | bytes, report_name: str = "") -> CoverageResult:
        """Parse a report held in memory."""
        try:
            root_element = ElementTree.fromstring(text)
        except (DefusedParseError, DefusedXmlException) as exc:
            logger.error("Failed to parse %s report %s: %s", self.name, report_name, exc)
            msg = f"Malformed {self.name} report {report_name!r}: {exc}"
            raise MalformedReportError(msg) from exc
        return self._build(root_element, report_name)

    def process_line(self, element: Element, parent: CoverageResult | None) -> None:
        """Count a ``<line>`` element against its enclosing node."""
        if parent is None:
            logger.debug("Ignoring <line> outside of any coverage node")
            return
        hits = max(int_attribute(element, "hits"), 0)
        parent.update_metric(LINE, Ratio(1 if hits > 0 else 0, 1))

        branch = get_attribute(element, "branch", "false") or "false"
        if branch.strip().lower() != "true":
            return
        condition = _parse_condition_coverage(get_attribute(element, "condition-coverage", None))
        if condition is None:
            condition = Ratio(1 if hits > 0 else 0, 1)
        parent.update_metric(BRANCH, condition)

    def _build(self, root_element: Element, report_name: str) -> CoverageResult:
        roots: list[CoverageResult] = []
        try:
            self._walk(root_element, report_name, roots)
        except HierarchyError as exc:
            logger.error("Invalid hierarchy in %s report %s: %s", self.name, report_name, exc)
            msg = f"Invalid {self.name} report {report_name!r}: {exc}"
            raise MalformedReportError(msg) from exc

        if not roots:
            msg = f"No report element found in {self.name} report {report_name!r}"
            raise MalformedReportError(msg)
        root = roots[0]
        logger.debug(
            "Parsed %s report %r: %d node(s)",
            self.name,
            root.name,
            sum(1 for _ in root.iter_nodes()),
        )
        return root

    def _walk(
        self,
        root_element: Element,
        report_name: str,
        roots: list[CoverageResult],
    ) -> None:
        # Pre-order without recursion: wrapper tags may nest arbitrarily deep.
        stack: list[tuple[Element, CoverageResult | None]] = [(root_element, None)]
        while stack:
            element, parent = stack.pop()
            node = self.process_element(element, parent, report_name)
            if node is not None and parent is None:
                if node.element != REPORT:
                    msg = f"{node.element.name} {node.name!r} appears outside of a report"
                    raise HierarchyError(msg)
                if roots:
                    msg = "Document contains more than one report"
                    raise HierarchyError(msg)
                roots.append(node)
            active = node if node is not None else parent
            stack.extend((child, active) for child in reversed(list(element)))
