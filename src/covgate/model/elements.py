"""Coverage element taxonomy.

Every node of a coverage tree has a kind. Kinds are totally ordered by
``order``: a smaller order sits higher in the hierarchy. Line and Branch are
*counters*: they are never tree nodes, only keys of the counts held by
their enclosing node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from covgate.errors import UnknownElementKindError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class CoverageElement:
    """A level of the coverage hierarchy."""

    order: int
    """Position in the hierarchy (smaller is higher)."""

    name: str
    """Display name, e.g. ``"Package"``."""

    counter: bool = False
    """True for leaf-level counters (Line, Branch) that never become nodes."""

    def is_above(self, other: CoverageElement) -> bool:
        """Return True if nodes of *other* may be created beneath this kind."""
        return self.order < other.order

    def __str__(self) -> str:
        return self.name


AGGREGATED_REPORT = CoverageElement(-1, "AggregatedReport")
REPORT = CoverageElement(0, "Report")
GROUP = CoverageElement(1, "Group")
PACKAGE = CoverageElement(2, "Package")
FILE = CoverageElement(3, "File")
CLASS = CoverageElement(4, "Class")
METHOD = CoverageElement(5, "Method")
LINE = CoverageElement(6, "Line", counter=True)
BRANCH = CoverageElement(7, "Branch", counter=True)

BUILTIN_ELEMENTS = (
    AGGREGATED_REPORT,
    REPORT,
    GROUP,
    PACKAGE,
    FILE,
    CLASS,
    METHOD,
    LINE,
    BRANCH,
)


class CoverageElementRegistry:
    """Name → kind lookup, open for extension.

    Lookups are case-insensitive so that configuration files may say
    ``line`` where dialects say ``Line``.
    """

    def __init__(self, elements: tuple[CoverageElement, ...] = BUILTIN_ELEMENTS) -> None:
        self._elements: dict[str, CoverageElement] = {}
        for element in elements:
            self.register(element)

    def register(self, element: CoverageElement) -> CoverageElement:
        """Register *element*, returning the registered instance.

        Re-registering an identical kind is a no-op. Registering a different
        kind under an existing name, or reusing an order that is already
        taken, raises ``ValueError`` so the built-in ordering stays fixed.
        """
        key = element.name.lower()
        existing = self._elements.get(key)
        if existing is not None:
            if existing != element:
                msg = f"Element {element.name!r} is already registered as {existing!r}"
                raise ValueError(msg)
            return existing
        for other in self._elements.values():
            if other.order == element.order:
                msg = f"Order {element.order} is already taken by {other.name}"
                raise ValueError(msg)
        self._elements[key] = element
        logger.debug("Registered coverage element %s (order %d)", element.name, element.order)
        return element

    def get(self, name: str) -> CoverageElement:
        """Resolve *name* to its kind or raise ``UnknownElementKindError``."""
        try:
            return self._elements[name.strip().lower()]
        except KeyError:
            raise UnknownElementKindError(name) from None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._elements

    def __iter__(self) -> Iterator[CoverageElement]:
        return iter(sorted(self._elements.values()))

    def __len__(self) -> int:
        return len(self._elements)


ELEMENTS = CoverageElementRegistry()


def get_element(name: str) -> CoverageElement:
    """Resolve *name* through the process-wide registry."""
    return ELEMENTS.get(name)
