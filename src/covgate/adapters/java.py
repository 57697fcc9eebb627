"""Java standard-format coverage parser.

Reads the normalized report layout produced by the JVM coverage tooling::

    <report name="cobertura">
      <group name="io.example">
        <package name="io.example.parser">
          <file name="Parser.java">
            <class name="io.example.parser.Parser">
              <method name="parse" signature="(Ljava/lang/String;)V">
                <line number="1" hits="1"/>
              </method>
              <line number="1" hits="1" branch="false"/>
            </class>
          </file>
        </package>
      </group>
    </report>

Method names are rebuilt from their JVM descriptors, e.g. ``parse`` with
``(Ljava/lang/String;)V`` becomes ``void parse(java.lang.String)``.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from covgate.adapters.base import CoverageParser, get_attribute, local_name
from covgate.model.elements import get_element
from covgate.model.result import CoverageResult

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

logger = logging.getLogger(__name__)

_METHOD_SIGNATURE_RE = re.compile(r"\((.*)\)(.*)")
_METHOD_ARG_RE = re.compile(r"\[*(?:[TL][^;]*;|[ZCBSIFJDV])")

# J (long) renders as an empty string; existing consumers depend on it.
_PRIMITIVES = {
    "Z": "boolean",
    "C": "char",
    "B": "byte",
    "S": "short",
    "I": "int",
    "F": "float",
    "J": "",
    "D": "double",
    "V": "void",
}

REPORT = get_element("Report")
GROUP = get_element("Group")
PACKAGE = get_element("Package")
FILE = get_element("File")
CLASS = get_element("Class")
METHOD = get_element("Method")

# tag -> (kind, default name)
_NODE_TAGS = {
    "group": (GROUP, "project"),
    "package": (PACKAGE, "<default>"),
    "file": (FILE, ""),
    "class": (CLASS, ""),
}


def _decode_descriptor(descriptor: str) -> str:
    head = descriptor[0]
    if head == "[":
        return _decode_descriptor(descriptor[1:]) + "[]"
    if head in {"L", "T"}:
        return descriptor[1 : descriptor.index(";")].replace("/", ".")
    return _PRIMITIVES.get(head, descriptor)


def decode_method_name(name: str, signature: str) -> str:
    """Render a JVM method descriptor as ``<return> <name>(<args>)``.

    Signatures that do not look like ``(args)return`` leave *name* as is.
    A return descriptor that is not a single type is omitted.
    """
    match = _METHOD_SIGNATURE_RE.fullmatch(signature)
    if match is None:
        return name
    args, return_type = match.groups()

    parts: list[str] = []
    if _METHOD_ARG_RE.fullmatch(return_type):
        parts.append(_decode_descriptor(return_type) + " ")
    parts.append(name)
    parts.append("(")
    parts.append(",".join(_decode_descriptor(arg) for arg in _METHOD_ARG_RE.findall(args)))
    parts.append(")")
    return "".join(parts)


def is_jvm_signature(signature: str) -> bool:
    """Return True if *signature* consists only of JVM type descriptors."""
    match = _METHOD_SIGNATURE_RE.fullmatch(signature)
    if match is None:
        return False
    args, return_type = match.groups()
    if _METHOD_ARG_RE.fullmatch(return_type) is None:
        return False
    return _METHOD_ARG_RE.sub("", args) == ""


class JavaCoverageParser(CoverageParser):
    """Parser for the Java standard coverage format."""

    @property
    def name(self) -> str:
        return "java"

    def process_element(
        self,
        element: Element,
        parent: CoverageResult | None,
        report_name: str,
    ) -> CoverageResult | None:
        tag = local_name(element)
        if tag == "report":
            return CoverageResult(
                REPORT, parent, f"{get_attribute(element, 'name', '')}: {report_name}"
            )
        if tag == "line":
            self.process_line(element, parent)
            return None

        if tag == "method":
            kind = METHOD
            name = decode_method_name(
                get_attribute(element, "name", "") or "",
                get_attribute(element, "signature", "") or "",
            )
        elif tag in _NODE_TAGS:
            kind, default = _NODE_TAGS[tag]
            name = get_attribute(element, "name", default) or ""
        else:
            return None

        if parent is None:
            # Rejected by the walk: only a report may start the tree.
            return CoverageResult(kind, None, name)
        result = parent.get_or_create_child(kind, name)
        if kind == FILE:
            result.relative_source_path = get_attribute(element, "name", None)
        return result
