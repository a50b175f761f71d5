# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for stream pipelines.

This module defines the small data structures shared by the pipeline code:
- StageKind: Enum-like class for intermediate stage kinds
- Stage: One lazy intermediate step of a pipeline
- SummaryStatistics: count/sum/min/max/average over numeric input
- ExecutionStatistics: Diagnostics for the last parallel evaluation

All models use JSON-compatible primitives for serialization.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]


class StageKind:
    """Kinds of intermediate stages.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    MAP = "map"  # one output per input
    FILTER = "filter"  # zero or one output per input
    FLAT_MAP = "flat_map"  # zero or more outputs per input
    PEEK = "peek"  # side effect, passes input through
    DISTINCT = "distinct"  # stateful: remembers seen elements
    SORTED = "sorted"  # stateful: needs the full input
    LIMIT = "limit"  # stateful, short-circuits
    SKIP = "skip"  # stateful
    TAKE_WHILE = "take_while"  # stateful, short-circuits
    DROP_WHILE = "drop_while"  # stateful

    STATEFUL = frozenset({DISTINCT, SORTED, LIMIT, SKIP, TAKE_WHILE, DROP_WHILE})
    SHORT_CIRCUIT = frozenset({LIMIT, TAKE_WHILE})


@dataclass(frozen=True)
class Stage:
    """A lazy intermediate step.

    ``fn`` maps an upstream iterator to a downstream iterator. Nothing is
    pulled from upstream until the downstream iterator is advanced.
    """

    kind: str  # StageKind value
    fn: Callable[[Iterator[Any]], Iterator[Any]]
    name: Optional[str] = None

    @property
    def stateful(self) -> bool:
        """Whether the stage needs to see elements beyond the current one."""
        return self.kind in StageKind.STATEFUL

    @property
    def short_circuit(self) -> bool:
        """Whether the stage can stop pulling from an infinite upstream."""
        return self.kind in StageKind.SHORT_CIRCUIT

    def apply(self, upstream: Iterator[Any]) -> Iterator[Any]:
        return self.fn(upstream)

    def describe(self) -> str:
        return self.name or self.kind


def run_stages(stages: Iterable[Stage], upstream: Iterator[Any]) -> Iterator[Any]:
    """Thread an iterator through stages in order. Lazy."""
    for stage in stages:
        upstream = stage.apply(upstream)
    return upstream


@dataclass
class SummaryStatistics:
    """Running statistics over numeric values.

    ``min`` and ``max`` stay ``None`` until the first value is accepted.
    """

    count: int = 0
    sum: Number = 0
    min: Optional[Number] = None
    max: Optional[Number] = None

    def accept(self, value: Number) -> None:
        self.count += 1
        self.sum += value
        if self.min is None or value < self.min:
            self.min = value
        if self.max is None or value > self.max:
            self.max = value

    def combine(self, other: "SummaryStatistics") -> "SummaryStatistics":
        """Merge another instance into this one and return self."""
        if other.count == 0:
            return self
        self.count += other.count
        self.sum += other.sum
        if self.min is None or (other.min is not None and other.min < self.min):
            self.min = other.min
        if self.max is None or (other.max is not None and other.max > self.max):
            self.max = other.max
        return self

    @property
    def average(self) -> float:
        """Arithmetic mean, 0.0 for no values."""
        if self.count == 0:
            return 0.0
        return self.sum / self.count

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "count": self.count,
            "sum": self.sum,
            "min": self.min,
            "max": self.max,
            "average": self.average,
        }


@dataclass
class ExecutionStatistics:
    """Diagnostics for one parallel evaluation.

    Tracks how the source was split so tests and logs can explain why a
    non-associative reduction produced a given value.
    """

    mode: str = "parallel"  # "parallel" or "sequential_fallback"
    source_size: int = 0
    chunk_size: int = 0
    chunk_count: int = 0
    worker_count: int = 0
    segment_count: int = 0  # groups of stages separated by barriers
    barriers: List[str] = field(default_factory=list)  # names of barrier stages

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "mode": self.mode,
            "source_size": self.source_size,
            "chunk_size": self.chunk_size,
            "chunk_count": self.chunk_count,
            "worker_count": self.worker_count,
            "segment_count": self.segment_count,
            "barriers": list(self.barriers),
        }
