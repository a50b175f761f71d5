# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Mutable reduction recipes for Stream.collect().

A Collector describes how to fold elements into a mutable container:

- supplier: creates an empty container (one per chunk in parallel mode)
- accumulator: folds one element into a container
- combiner: merges two containers, left then right, and returns the result
- finisher: converts the final container into the result (optional)

Containers that are immutable Python values (ints, strings) are wrapped in a
one-element list so the accumulator can mutate them in place.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set

from .models import SummaryStatistics
from .optional import Optional as StreamOptional

logger = logging.getLogger(__name__)


class Characteristics:
    """Collector characteristics.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    IDENTITY_FINISH = "identity_finish"  # finisher is the identity
    UNORDERED = "unordered"  # result does not depend on encounter order


@dataclass(frozen=True)
class Collector:
    """A recipe for a mutable reduction."""

    supplier: Callable[[], Any]
    accumulator: Callable[[Any, Any], None]
    combiner: Callable[[Any, Any], Any]
    finisher: Optional[Callable[[Any], Any]] = None
    characteristics: FrozenSet[str] = field(default_factory=frozenset)

    def finish(self, container: Any) -> Any:
        if self.finisher is None:
            return container
        return self.finisher(container)


def _extend(left: List[Any], right: List[Any]) -> List[Any]:
    left.extend(right)
    return left


def _update(left: Set[Any], right: Set[Any]) -> Set[Any]:
    left |= right
    return left


def _box_sum(left: List[Any], right: List[Any]) -> List[Any]:
    left[0] += right[0]
    return left


def to_list() -> Collector:
    return Collector(
        supplier=list,
        accumulator=list.append,
        combiner=_extend,
        characteristics=frozenset({Characteristics.IDENTITY_FINISH}),
    )


def to_set() -> Collector:
    return Collector(
        supplier=set,
        accumulator=set.add,
        combiner=_update,
        characteristics=frozenset({Characteristics.IDENTITY_FINISH, Characteristics.UNORDERED}),
    )


def to_dict(
    key_fn: Callable[[Any], Any],
    value_fn: Callable[[Any], Any] = lambda x: x,
    merge_fn: Optional[Callable[[Any, Any], Any]] = None,
) -> Collector:
    """Collect into a dict.

    Raises (at collect time):
        ValueError: On a duplicate key when no merge_fn is given.
    """

    def put(container: Dict[Any, Any], key: Any, value: Any) -> None:
        if key in container:
            if merge_fn is None:
                raise ValueError(
                    f"Duplicate key {key!r} (attempted merging values "
                    f"{container[key]!r} and {value!r})"
                )
            value = merge_fn(container[key], value)
        container[key] = value

    def accumulate(container: Dict[Any, Any], item: Any) -> None:
        put(container, key_fn(item), value_fn(item))

    def combine(left: Dict[Any, Any], right: Dict[Any, Any]) -> Dict[Any, Any]:
        for key, value in right.items():
            put(left, key, value)
        return left

    return Collector(
        supplier=dict,
        accumulator=accumulate,
        combiner=combine,
        characteristics=frozenset({Characteristics.IDENTITY_FINISH}),
    )


def joining(separator: str = "", prefix: str = "", suffix: str = "") -> Collector:
    """Concatenate str() of each element."""
    return Collector(
        supplier=list,
        accumulator=lambda parts, item: parts.append(str(item)),
        combiner=_extend,
        finisher=lambda parts: prefix + separator.join(parts) + suffix,
    )


def counting() -> Collector:
    def accumulate(box: List[int], item: Any) -> None:
        box[0] += 1

    return Collector(
        supplier=lambda: [0],
        accumulator=accumulate,
        combiner=_box_sum,
        finisher=lambda box: box[0],
    )


def summing(fn: Callable[[Any], Any] = lambda x: x) -> Collector:
    def accumulate(box: List[Any], item: Any) -> None:
        box[0] += fn(item)

    return Collector(
        supplier=lambda: [0],
        accumulator=accumulate,
        combiner=_box_sum,
        finisher=lambda box: box[0],
    )


def summarizing(fn: Callable[[Any], Any] = lambda x: x) -> Collector:
    """Collect SummaryStatistics over fn(element)."""
    return Collector(
        supplier=SummaryStatistics,
        accumulator=lambda stats, item: stats.accept(fn(item)),
        combiner=lambda left, right: left.combine(right),
    )


def averaging(fn: Callable[[Any], Any] = lambda x: x) -> Collector:
    """Arithmetic mean of fn(element); 0.0 for no elements."""
    inner = summarizing(fn)
    return Collector(
        supplier=inner.supplier,
        accumulator=inner.accumulator,
        combiner=inner.combiner,
        finisher=lambda stats: stats.average,
    )


def reducing(identity: Any, op: Callable[[Any, Any], Any]) -> Collector:
    def accumulate(box: List[Any], item: Any) -> None:
        box[0] = op(box[0], item)

    def combine(left: List[Any], right: List[Any]) -> List[Any]:
        left[0] = op(left[0], right[0])
        return left

    return Collector(
        supplier=lambda: [identity],
        accumulator=accumulate,
        combiner=combine,
        finisher=lambda box: box[0],
    )


def _best_by(key: Callable[[Any], Any], prefer: Callable[[Any, Any], bool]) -> Collector:
    # prefer(candidate_key, current_key) decides whether the candidate replaces the current best
    def accumulate(box: List[Any], item: Any) -> None:
        if not box or prefer(key(item), key(box[0])):
            box[:] = [item]

    def combine(left: List[Any], right: List[Any]) -> List[Any]:
        if right:
            accumulate(left, right[0])
        return left

    return Collector(
        supplier=list,
        accumulator=accumulate,
        combiner=combine,
        finisher=lambda box: StreamOptional.of_nullable(box[0] if box else None),
    )


def min_by(key: Callable[[Any], Any] = lambda x: x) -> Collector:
    """Smallest element by key as an Optional; ties keep the first seen."""
    return _best_by(key, lambda candidate, current: candidate < current)


def max_by(key: Callable[[Any], Any] = lambda x: x) -> Collector:
    """Largest element by key as an Optional; ties keep the first seen."""
    return _best_by(key, lambda candidate, current: candidate > current)


def mapping(fn: Callable[[Any], Any], downstream: Collector) -> Collector:
    return Collector(
        supplier=downstream.supplier,
        accumulator=lambda container, item: downstream.accumulator(container, fn(item)),
        combiner=downstream.combiner,
        finisher=downstream.finisher,
        characteristics=downstream.characteristics,
    )


def filtering(predicate: Callable[[Any], bool], downstream: Collector) -> Collector:
    def accumulate(container: Any, item: Any) -> None:
        if predicate(item):
            downstream.accumulator(container, item)

    return Collector(
        supplier=downstream.supplier,
        accumulator=accumulate,
        combiner=downstream.combiner,
        finisher=downstream.finisher,
        characteristics=downstream.characteristics,
    )


def collecting_and_then(downstream: Collector, finisher: Callable[[Any], Any]) -> Collector:
    return Collector(
        supplier=downstream.supplier,
        accumulator=downstream.accumulator,
        combiner=downstream.combiner,
        finisher=lambda container: finisher(downstream.finish(container)),
    )


def grouping_by(key_fn: Callable[[Any], Any], downstream: Optional[Collector] = None) -> Collector:
    """Group elements by key; each group is reduced with downstream.

    Groups appear in the order their keys are first encountered.
    """
    inner = downstream or to_list()

    def accumulate(groups: Dict[Any, Any], item: Any) -> None:
        key = key_fn(item)
        if key not in groups:
            groups[key] = inner.supplier()
        inner.accumulator(groups[key], item)

    def combine(left: Dict[Any, Any], right: Dict[Any, Any]) -> Dict[Any, Any]:
        for key, container in right.items():
            left[key] = inner.combiner(left[key], container) if key in left else container
        return left

    def finish(groups: Dict[Any, Any]) -> Dict[Any, Any]:
        return {key: inner.finish(container) for key, container in groups.items()}

    return Collector(supplier=dict, accumulator=accumulate, combiner=combine, finisher=finish)


def partitioning_by(
    predicate: Callable[[Any], bool], downstream: Optional[Collector] = None
) -> Collector:
    """Split elements into {False: ..., True: ...}; both keys are always present."""
    inner = downstream or to_list()

    def accumulate(parts: Dict[bool, Any], item: Any) -> None:
        inner.accumulator(parts[bool(predicate(item))], item)

    def combine(left: Dict[bool, Any], right: Dict[bool, Any]) -> Dict[bool, Any]:
        return {flag: inner.combiner(left[flag], right[flag]) for flag in (False, True)}

    return Collector(
        supplier=lambda: {False: inner.supplier(), True: inner.supplier()},
        accumulator=accumulate,
        combiner=combine,
        finisher=lambda parts: {flag: inner.finish(c) for flag, c in parts.items()},
    )
