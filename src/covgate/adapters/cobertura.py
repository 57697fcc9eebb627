"""Native Cobertura XML parser.

Cobertura XML is written by coverage.py, gcovr, Coverlet and the original
Cobertura tool. Each ``<class>`` carries the source ``filename``, so a class
element yields a File node (shared by the classes of that file) with the
Class node beneath it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from covgate.adapters.base import CoverageParser, get_attribute, local_name
from covgate.adapters.java import decode_method_name, is_jvm_signature
from covgate.model.elements import get_element
from covgate.model.result import CoverageResult

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

logger = logging.getLogger(__name__)

REPORT = get_element("Report")
PACKAGE = get_element("Package")
FILE = get_element("File")
CLASS = get_element("Class")
METHOD = get_element("Method")


def _method_name(element: Element) -> str:
    name = get_attribute(element, "name", "") or ""
    signature = get_attribute(element, "signature", "") or ""
    if is_jvm_signature(signature):
        return decode_method_name(name, signature)
    return name + signature


class CoberturaCoverageParser(CoverageParser):
    """Parser for native Cobertura XML (``<coverage>`` root)."""

    @property
    def name(self) -> str:
        return "cobertura"

    def process_element(
        self,
        element: Element,
        parent: CoverageResult | None,
        report_name: str,
    ) -> CoverageResult | None:
        tag = local_name(element)
        if tag == "coverage":
            return CoverageResult(REPORT, parent, f"cobertura: {report_name}")
        if tag == "line":
            self.process_line(element, parent)
            return None
        if tag not in {"package", "class", "method"}:
            return None
        if parent is None:
            logger.debug("Ignoring <%s> outside of a <coverage> root", tag)
            return None

        if tag == "package":
            return parent.get_or_create_child(
                PACKAGE, get_attribute(element, "name", "<default>") or "<default>"
            )
        if tag == "method":
            return parent.get_or_create_child(METHOD, _method_name(element))

        class_name = get_attribute(element, "name", "") or ""
        filename = get_attribute(element, "filename", None)
        if filename is None:
            return parent.get_or_create_child(CLASS, class_name)
        file_result = parent.get_or_create_child(FILE, filename)
        file_result.relative_source_path = filename
        return file_result.get_or_create_child(CLASS, class_name)
