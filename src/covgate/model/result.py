"""Coverage result tree.

A ``CoverageResult`` is one node of the hierarchy (report, group, package,
file, class, method). Nodes keep two sets of counts:

- ``local_counts``: what the parser observed directly on this node, e.g. the
  ``<line>`` elements of a class.
- ``counts``: the rolled-up view computed by :func:`covgate.model.aggregate.rollup`.

Parent links are weak references used for path computation only; children
are owned by their parent.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from covgate.errors import HierarchyError
from covgate.model.elements import FILE, LINE

if TYPE_CHECKING:
    from collections.abc import Iterator

    from covgate.model.elements import CoverageElement


@dataclass(frozen=True)
class Ratio:
    """Covered / total counter pair."""

    covered: int = 0
    total: int = 0

    def __post_init__(self) -> None:
        if self.covered < 0 or self.total < 0:
            msg = f"Ratio values must be non-negative (got {self.covered}/{self.total})"
            raise ValueError(msg)
        if self.covered > self.total:
            msg = f"Covered exceeds total ({self.covered}/{self.total})"
            raise ValueError(msg)

    def __add__(self, other: Ratio) -> Ratio:
        return Ratio(self.covered + other.covered, self.total + other.total)

    @property
    def is_empty(self) -> bool:
        """Return True when there is no data (``total == 0``)."""
        return self.total == 0

    @property
    def percentage(self) -> float:
        """Return coverage as a percentage; no data counts as 100%."""
        if self.total == 0:
            return 100.0
        return (self.covered / self.total) * 100.0

    def __str__(self) -> str:
        return f"{self.covered}/{self.total}"


class CoverageResult:
    """A node of the coverage tree, keyed by (kind, name) under its parent."""

    def __init__(
        self,
        element: CoverageElement,
        parent: CoverageResult | None = None,
        name: str = "",
    ) -> None:
        if element.counter:
            msg = f"{element.name} is a counter and cannot be a tree node"
            raise HierarchyError(msg)
        self.element = element
        self.name = name
        self.relative_source_path: str | None = None
        self.local_counts: dict[CoverageElement, Ratio] = {}
        self._counts: dict[CoverageElement, Ratio] = {}
        self._children: dict[tuple[CoverageElement, str], CoverageResult] = {}
        self._parent: weakref.ReferenceType[CoverageResult] | None = None
        if parent is not None:
            parent.add_child(self)

    # ── Structure ────────────────────────────────────────────────

    @property
    def parent(self) -> CoverageResult | None:
        if self._parent is None:
            return None
        return self._parent()

    @property
    def children(self) -> list[CoverageResult]:
        return list(self._children.values())

    def add_child(self, child: CoverageResult) -> CoverageResult:
        """Attach *child* beneath this node.

        Raises:
            HierarchyError: If the child's kind is not strictly below this
                node's kind, the child already has a parent, or a sibling
                with the same kind and name exists.
        """
        if not self.element.is_above(child.element):
            msg = f"{child.element.name} {child.name!r} cannot be placed under {self.element.name}"
            raise HierarchyError(msg)
        if child.parent is not None:
            msg = f"{child.element.name} {child.name!r} already has a parent"
            raise HierarchyError(msg)
        key = (child.element, child.name)
        if key in self._children:
            msg = f"Duplicate {child.element.name} {child.name!r} under {self.qualified_name!r}"
            raise HierarchyError(msg)
        self._children[key] = child
        child._parent = weakref.ref(self)
        return child

    def get_child(self, element: CoverageElement, name: str) -> CoverageResult | None:
        return self._children.get((element, name))

    def get_or_create_child(self, element: CoverageElement, name: str) -> CoverageResult:
        """Return the child with this kind and name, creating it when missing."""
        existing = self._children.get((element, name))
        if existing is not None:
            return existing
        return CoverageResult(element, self, name)

    @property
    def path(self) -> tuple[str, ...]:
        """Names from the root down to this node."""
        names: list[str] = []
        node: CoverageResult | None = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return tuple(reversed(names))

    @property
    def qualified_name(self) -> str:
        return "/".join(self.path)

    def iter_nodes(self) -> Iterator[CoverageResult]:
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, element: CoverageElement) -> list[CoverageResult]:
        """Return every node of kind *element* in this subtree."""
        return [node for node in self.iter_nodes() if node.element == element]

    # ── Counts ───────────────────────────────────────────────────

    def update_metric(self, element: CoverageElement, ratio: Ratio) -> None:
        """Add *ratio* to the counts observed directly on this node."""
        self.local_counts[element] = self.local_counts.get(element, Ratio()) + ratio

    @property
    def counts(self) -> dict[CoverageElement, Ratio]:
        """Rolled-up counts, populated by ``rollup``."""
        return dict(self._counts)

    def set_counts(self, counts: dict[CoverageElement, Ratio]) -> None:
        self._counts = dict(counts)

    def get_coverage(self, element: CoverageElement) -> Ratio | None:
        """Return the rolled-up ratio for *element*, or None when absent."""
        return self._counts.get(element)

    @property
    def is_covered(self) -> bool:
        """True when at least one line beneath this node was hit."""
        line = self._counts.get(LINE)
        return line is not None and line.covered > 0

    # ── Serialization ────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.element.name,
            "name": self.name,
            "counts": {
                element.name: {
                    "covered": ratio.covered,
                    "total": ratio.total,
                    "percentage": round(ratio.percentage, 2),
                }
                for element, ratio in sorted(self._counts.items())
            },
            "children": [child.to_dict() for child in self.children],
        }
        if self.element == FILE:
            data["relative_source_path"] = self.relative_source_path
        return data

    def __repr__(self) -> str:
        return f"CoverageResult({self.element.name}, {self.qualified_name!r})"
