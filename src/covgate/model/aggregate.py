"""Roll up and merge coverage trees.

Both operations are pure with respect to their inputs' observed data:
``rollup`` recomputes aggregated counts from ``local_counts`` every time, and
``merge_results`` builds a new tree instead of touching its arguments.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from covgate.model.elements import AGGREGATED_REPORT, LINE
from covgate.model.result import CoverageResult, Ratio

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covgate.model.elements import CoverageElement

logger = logging.getLogger(__name__)

AGGREGATED_REPORT_NAME = "All reports"


def _node_counts(
    node: CoverageResult,
    children: Iterable[tuple[CoverageElement, dict[CoverageElement, Ratio]]],
) -> dict[CoverageElement, Ratio]:
    totals: dict[CoverageElement, Ratio] = {}
    for child_element, child_counts in children:
        for element, ratio in child_counts.items():
            totals[element] = totals.get(element, Ratio()) + ratio
        line = child_counts.get(LINE)
        unit = Ratio(1 if line is not None and line.covered > 0 else 0, 1)
        totals[child_element] = totals.get(child_element, Ratio()) + unit
    totals.update(node.local_counts)
    return totals


def rollup(result: CoverageResult) -> CoverageResult:
    """Recompute rolled-up counts for every node beneath *result*.

    For each node the counts are, per kind:

    - the sum of all children's rolled-up counts,
    - plus one unit of the child's own kind per child, covered when the
      child has at least one covered line,
    - overridden by the node's own ``local_counts`` for the same kind.

    Returns *result* for chaining. Running it twice changes nothing.
    """
    # Post-order without recursion: parents are finalized after children.
    for node in reversed(list(result.iter_nodes())):
        node.set_counts(
            _node_counts(node, ((child.element, child.counts) for child in node.children))
        )
    return result


def _effective_counts(result: CoverageResult) -> dict[CoverageElement, Ratio]:
    """Return the counts ``rollup`` would give *result*, without storing them."""
    computed: dict[int, dict[CoverageElement, Ratio]] = {}
    for node in reversed(list(result.iter_nodes())):
        computed[id(node)] = _node_counts(
            node, ((child.element, computed[id(child)]) for child in node.children)
        )
    return computed[id(result)]


def merge_results(
    results: Iterable[CoverageResult],
    name: str = AGGREGATED_REPORT_NAME,
) -> CoverageResult:
    """Combine several trees into one rolled-up ``AggregatedReport`` tree.

    Nodes that share kind and qualified path are unified and their observed
    counts summed; nodes unique to one input are copied. Inputs that are
    already aggregated roots are flattened into the new root, so the
    result does not depend on how the inputs were grouped or ordered.
    """
    combined = CoverageResult(AGGREGATED_REPORT, None, name)
    count = 0
    for result in results:
        count += 1
        if result.element == AGGREGATED_REPORT:
            _merge_local(combined, result)
            for child in result.children:
                _merge_into(combined, child)
        else:
            _merge_into(combined, result)
    logger.debug("Merged %d coverage tree(s) into %r", count, name)
    return rollup(combined)


def _merge_into(parent: CoverageResult, source: CoverageResult) -> CoverageResult:
    target = parent.get_or_create_child(source.element, source.name)
    _merge_local(target, source)
    for child in source.children:
        _merge_into(target, child)
    return target


def _merge_local(target: CoverageResult, source: CoverageResult) -> None:
    """Add the counts observed on *source* to *target*.

    A kind observed locally on only one side is first turned into a local
    count on the other side from that side's rolled-up value, so the local
    override never hides what the other input measured through its children.
    """
    target_kinds = set(target.local_counts)
    source_kinds = set(source.local_counts)
    only_source = source_kinds - target_kinds
    only_target = target_kinds - source_kinds
    target_counts = _effective_counts(target) if only_source else {}
    source_counts = _effective_counts(source) if only_target else {}
    for element in only_source:
        target.local_counts[element] = target_counts.get(element, Ratio())
    for element in only_target:
        target.update_metric(element, source_counts.get(element, Ratio()))

    for element, ratio in source.local_counts.items():
        target.update_metric(element, ratio)
    if target.relative_source_path is None:
        target.relative_source_path = source.relative_source_path
