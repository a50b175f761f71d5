# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Lazy, single-use stream pipelines over in-memory sources.

A Stream is a source iterable plus an ordered tuple of Stage objects.
Intermediate operations return a new Stream that links to the old one;
nothing is pulled from the source until a terminal operation runs. The
stages themselves are the runtime's own lazy primitives (map, filter,
itertools.islice, itertools.takewhile, ...), composed rather than
reimplemented.

Lifecycle:
1. Build from a source: Stream.of(), Stream.of_iterable(), Stream.iterate(), ...
2. Chain zero or more intermediate operations (each links the previous stream)
3. Invoke exactly one terminal operation
4. Any further use of a linked or consumed stream raises StreamStateError

Parallel streams hand terminal evaluation to ParallelExecutor (see
streamlab.parallel). Sequential streams never touch the thread pool.
"""

import functools
import itertools
import logging
import math
import operator
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from .collectors import Collector, summarizing
from .collectors import to_list as _to_list_collector
from .comparators import Comparator, KeyFunc, as_key
from .config import Config, get_default_config
from .models import ExecutionStatistics, Stage, StageKind, SummaryStatistics, run_stages
from .optional import Optional as StreamOptional
from .parallel import ParallelExecutor

logger = logging.getLogger(__name__)

# Marks "no element" in per-chunk partial results; None is a legal element
_MISSING = object()


class StreamStateError(RuntimeError):
    """Raised when a stream is reused after being linked, consumed or closed."""

    pass


class _PipelineState:
    """State shared by every stream object of one pipeline."""

    __slots__ = ("close_handlers", "closed")

    def __init__(self) -> None:
        self.close_handlers: List[Callable[[], Any]] = []
        self.closed = False


def _concat_lists(parts: List[List[Any]]) -> List[Any]:
    return list(itertools.chain.from_iterable(parts))


def _check_count(value: int, what: str) -> int:
    value = operator.index(value)
    if value < 0:
        raise ValueError(f"{what} must be non-negative, got {value}")
    return value


class Stream:
    """A lazy, single-use sequence of elements supporting stream operations.

    Usage:
        names = (
            Stream.of("One", "Two", "Three")
            .filter(lambda s: s.startswith("T"))
            .map(str.upper)
            .to_list()
        )
    """

    def __init__(
        self,
        source: Iterable[Any] = (),
        *,
        stages: Sequence[Stage] = (),
        parallel: bool = False,
        ordered: bool = True,
        bounded: bool = True,
        config: Optional[Config] = None,
        _state: Optional[_PipelineState] = None,
    ) -> None:
        self._source = source
        self._stages: Tuple[Stage, ...] = tuple(stages)
        self._parallel = parallel
        self._ordered = ordered
        self._bounded = bounded
        self._config = config
        self._state = _state or _PipelineState()
        self._linked = False
        self.execution_statistics: Optional[ExecutionStatistics] = None

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    @classmethod
    def of(cls, *values: Any) -> "Stream":
        """Sequential ordered stream whose elements are the given values."""
        return cls(values)

    @classmethod
    def of_iterable(cls, iterable: Iterable[Any], *, bounded: bool = True) -> "Stream":
        """Stream over an existing iterable.

        Pass bounded=False for an endless iterable such as itertools.count();
        parallel evaluation then stops reading it at the first limit or
        take_while stage instead of materialising it.
        """
        return cls(iterable, bounded=bounded)

    @classmethod
    def of_nullable(cls, value: Any) -> "Stream":
        return cls(() if value is None else (value,))

    @classmethod
    def empty(cls) -> "Stream":
        return cls(())

    @staticmethod
    def builder() -> "StreamBuilder":
        return StreamBuilder()

    @staticmethod
    def concat(first: "Stream", second: "Stream") -> "Stream":
        """Lazily concatenate two streams.

        The result is parallel if either input is parallel. Closing the
        result closes both inputs.
        """
        first._link()
        second._link()

        def concatenated() -> Iterator[Any]:
            yield from first._pipeline()
            yield from second._pipeline()

        result = Stream(
            concatenated(),
            parallel=first._parallel or second._parallel,
            ordered=first._ordered and second._ordered,
            bounded=first._bounded and second._bounded,
            config=first._config or second._config,
        )
        result._state.close_handlers.extend([first.close, second.close])
        return result

    @classmethod
    def iterate(cls, seed: Any, *args: Callable[..., Any]) -> "Stream":
        """Stream of seed, f(seed), f(f(seed)), ...

        Call as iterate(seed, f) for an infinite stream, or
        iterate(seed, has_next, f) to stop at the first value for which
        has_next returns False.
        """
        if len(args) == 1:
            has_next, step = None, args[0]
        elif len(args) == 2:
            has_next, step = args
        else:
            raise TypeError(f"iterate() takes a seed and 1 or 2 functions, got {len(args)}")

        def generate() -> Iterator[Any]:
            value = seed
            while has_next is None or has_next(value):
                yield value
                value = step(value)

        return cls(generate(), bounded=has_next is not None)

    @classmethod
    def generate(cls, supplier: Callable[[], Any]) -> "Stream":
        """Infinite unordered stream of supplier() results. Bound it with limit()."""
        return cls(itertools.starmap(supplier, itertools.repeat(())), ordered=False, bounded=False)

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _check_usable(self) -> None:
        if self._state.closed:
            raise StreamStateError("stream has already been closed")
        if self._linked:
            raise StreamStateError("stream has already been operated upon or closed")

    def _link(self) -> None:
        self._check_usable()
        self._linked = True

    def _spawn_kwargs(self) -> dict:
        return {}

    def _chain(self, stage: Optional[Stage], cls: Optional[type] = None, **kwargs: Any) -> "Stream":
        self._link()
        target = cls or type(self)
        if cls is None:
            kwargs = {**self._spawn_kwargs(), **kwargs}
        return target(
            self._source,
            stages=self._stages + ((stage,) if stage is not None else ()),
            parallel=self._parallel,
            ordered=self._ordered,
            bounded=self._bounded,
            config=self._config,
            _state=self._state,
            **kwargs,
        )

    def _resolved_config(self) -> Config:
        return self._config or get_default_config()

    def _pipeline(self) -> Iterator[Any]:
        """Build the sequential downstream iterator. Lazy."""
        if self._resolved_config().log_pipeline_stages:
            names = " -> ".join(["source"] + [s.describe() for s in self._stages])
            logger.debug(f"Evaluating pipeline: {names} (parallel={self._parallel})")
        return run_stages(self._stages, iter(self._source))

    def _terminal(
        self,
        chunk_fn: Callable[[Iterator[Any]], Any],
        combine: Callable[[List[Any]], Any],
        ordered: bool = True,
    ) -> Any:
        """Run a terminal operation.

        chunk_fn reduces a downstream iterator to a partial result. In
        sequential mode it sees the whole pipeline once. In parallel mode it
        runs once per chunk and combine merges the partials, so combine must
        return the same kind of value as chunk_fn.
        """
        self._link()
        if not self._parallel:
            return chunk_fn(self._pipeline())

        config = self._resolved_config()
        stages = self._stages
        if self._bounded:
            items = list(self._source)
        else:
            cut = self._short_circuit_index()
            if cut is None:
                return chunk_fn(self._sequential_fallback())
            # Bound the source sequentially, then parallelize the rest
            items = list(run_stages(stages[: cut + 1], iter(self._source)))
            stages = stages[cut + 1 :]

        if config.log_pipeline_stages:
            names = " -> ".join(["source"] + [s.describe() for s in stages])
            logger.debug(f"Evaluating parallel pipeline over {len(items)} elements: {names}")

        executor = ParallelExecutor(config)
        partials = executor.evaluate(items, stages, chunk_fn, ordered=ordered)
        self.execution_statistics = executor.last_statistics
        return combine(partials)

    def _short_circuit_index(self) -> Optional[int]:
        return next((i for i, s in enumerate(self._stages) if s.short_circuit), None)

    def _sequential_fallback(self) -> Iterator[Any]:
        """Lazy sequential pipeline for a parallel stream that cannot be split."""
        logger.warning(
            "Parallel stream over an unbounded source has no limit or take_while "
            "stage; evaluating sequentially"
        )
        self.execution_statistics = ExecutionStatistics(mode="sequential_fallback", worker_count=1)
        return self._pipeline()

    # ------------------------------------------------------------------
    # Execution mode
    # ------------------------------------------------------------------

    def parallel(self, config: Optional[Config] = None) -> "Stream":
        """Mark the pipeline for parallel evaluation. Returns this stream."""
        self._check_usable()
        self._parallel = True
        if config is not None:
            self._config = config
        return self

    def sequential(self) -> "Stream":
        self._check_usable()
        self._parallel = False
        return self

    def unordered(self) -> "Stream":
        """Drop the encounter-order guarantee for find_first in parallel mode."""
        self._check_usable()
        self._ordered = False
        return self

    def is_parallel(self) -> bool:
        return self._parallel

    def on_close(self, handler: Callable[[], Any]) -> "Stream":
        self._check_usable()
        self._state.close_handlers.append(handler)
        return self

    def close(self) -> None:
        """Run close handlers once, in registration order.

        Every handler runs even if an earlier one fails; the first
        exception is re-raised afterwards.
        """
        if self._state.closed:
            return
        self._state.closed = True
        first_error: Optional[BaseException] = None
        for handler in self._state.close_handlers:
            try:
                handler()
            except Exception as e:
                logger.warning(f"Stream close handler {handler!r} failed: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Intermediate operations
    # ------------------------------------------------------------------

    def map(self, mapper: Callable[[Any], Any]) -> "Stream":
        return self._chain(Stage(StageKind.MAP, lambda it: map(mapper, it)))

    def filter(self, predicate: Callable[[Any], bool]) -> "Stream":
        return self._chain(Stage(StageKind.FILTER, lambda it: filter(predicate, it)))

    def flat_map(self, mapper: Callable[[Any], Any]) -> "Stream":
        """Replace each element with the contents of mapper(element).

        mapper may return a Stream, any iterable, or None (treated as empty).
        Returned streams are closed once their contents have been consumed.
        """
        return self._chain(Stage(StageKind.FLAT_MAP, lambda it: _flatten(mapper, it)))

    def peek(self, action: Callable[[Any], Any]) -> "Stream":
        def peeking(it: Iterator[Any]) -> Iterator[Any]:
            for item in it:
                action(item)
                yield item

        return self._chain(Stage(StageKind.PEEK, peeking))

    def distinct(self) -> "Stream":
        """Keep the first occurrence of each element, by equality."""

        def unique(it: Iterator[Any]) -> Iterator[Any]:
            seen = set()
            for item in it:
                if item not in seen:
                    seen.add(item)
                    yield item

        return self._chain(Stage(StageKind.DISTINCT, unique))

    def sorted(
        self,
        comparator: Optional[Comparator] = None,
        key: Optional[KeyFunc] = None,
        reverse: bool = False,
    ) -> "Stream":
        """Sort by natural order, a comparator, or a key function. Stable."""
        sort_key = as_key(comparator, key)
        return self._chain(
            Stage(StageKind.SORTED, lambda it: iter(sorted(it, key=sort_key, reverse=reverse)))
        )

    def limit(self, max_size: int) -> "Stream":
        max_size = _check_count(max_size, "limit")
        return self._chain(
            Stage(StageKind.LIMIT, lambda it: itertools.islice(it, max_size), f"limit({max_size})")
        )

    def skip(self, n: int) -> "Stream":
        n = _check_count(n, "skip")
        return self._chain(Stage(StageKind.SKIP, lambda it: itertools.islice(it, n, None), f"skip({n})"))

    def take_while(self, predicate: Callable[[Any], bool]) -> "Stream":
        return self._chain(Stage(StageKind.TAKE_WHILE, lambda it: itertools.takewhile(predicate, it)))

    def drop_while(self, predicate: Callable[[Any], bool]) -> "Stream":
        return self._chain(Stage(StageKind.DROP_WHILE, lambda it: itertools.dropwhile(predicate, it)))

    def map_to_int(self, mapper: Callable[[Any], Any]) -> "NumericStream":
        """Map to a NumericStream of ints; mapper must return an integer."""
        stage = Stage(StageKind.MAP, lambda it: (operator.index(mapper(x)) for x in it), "map_to_int")
        return self._chain(stage, cls=NumericStream, element_type=int)

    def map_to_float(self, mapper: Callable[[Any], Any]) -> "NumericStream":
        stage = Stage(StageKind.MAP, lambda it: (float(mapper(x)) for x in it), "map_to_float")
        return self._chain(stage, cls=NumericStream, element_type=float)

    def flat_map_to_int(self, mapper: Callable[[Any], Any]) -> "NumericStream":
        stage = Stage(
            StageKind.FLAT_MAP,
            lambda it: map(operator.index, _flatten(mapper, it)),
            "flat_map_to_int",
        )
        return self._chain(stage, cls=NumericStream, element_type=int)

    def flat_map_to_float(self, mapper: Callable[[Any], Any]) -> "NumericStream":
        stage = Stage(
            StageKind.FLAT_MAP, lambda it: map(float, _flatten(mapper, it)), "flat_map_to_float"
        )
        return self._chain(stage, cls=NumericStream, element_type=float)

    # ------------------------------------------------------------------
    # Terminal operations
    # ------------------------------------------------------------------

    def for_each(self, action: Callable[[Any], Any]) -> None:
        """Apply action to every element.

        In parallel mode the action runs in worker threads with no
        ordering guarantee; use for_each_ordered to keep encounter order.
        """

        def run(it: Iterator[Any]) -> None:
            for item in it:
                action(item)

        self._terminal(run, lambda partials: None)

    def for_each_ordered(self, action: Callable[[Any], Any]) -> None:
        for item in self.iterator():
            action(item)

    def iterator(self) -> Iterator[Any]:
        """Return an iterator over the elements. Sequential streams stay lazy."""
        if not self._parallel:
            self._link()
            return self._pipeline()
        if not self._bounded and self._short_circuit_index() is None:
            self._link()
            return self._sequential_fallback()
        return iter(self._terminal(list, _concat_lists))

    def __iter__(self) -> Iterator[Any]:
        return self.iterator()

    def collect(
        self,
        collector_or_supplier: Any,
        accumulator: Optional[Callable[[Any, Any], Any]] = None,
        combiner: Optional[Callable[[Any, Any], Any]] = None,
    ) -> Any:
        """Mutable reduction.

        Call as collect(collector) or collect(supplier, accumulator, combiner).
        In the three-argument form combiner(left, right) folds right into
        left in place; its return value is ignored.
        """
        if isinstance(collector_or_supplier, Collector):
            if accumulator is not None or combiner is not None:
                raise TypeError("collect(collector) takes no accumulator or combiner")
            collector = collector_or_supplier
        else:
            if accumulator is None or combiner is None:
                raise TypeError("collect(supplier, accumulator, combiner) needs all three arguments")
            merge = combiner

            def merge_into_left(left: Any, right: Any) -> Any:
                merge(left, right)
                return left

            collector = Collector(collector_or_supplier, accumulator, merge_into_left)

        def fold(it: Iterator[Any]) -> Any:
            container = collector.supplier()
            for item in it:
                collector.accumulator(container, item)
            return container

        def combine(partials: List[Any]) -> Any:
            if not partials:
                return collector.supplier()
            return functools.reduce(collector.combiner, partials)

        return collector.finish(self._terminal(fold, combine))

    def to_list(self) -> List[Any]:
        return self.collect(_to_list_collector())

    def reduce(self, *args: Any) -> Any:
        """Reduce the elements to a single value.

        Forms:
            reduce(accumulator) -> Optional
            reduce(identity, accumulator) -> value
            reduce(identity, accumulator, combiner) -> value

        In parallel mode every chunk folds from identity and the partial
        results are merged with combiner (or accumulator). Results match
        sequential evaluation only when identity is a true identity and the
        functions are associative.
        """
        if len(args) == 1:
            return self._reduce_optional(args[0])
        if len(args) == 2:
            identity, accumulator = args
            combiner = accumulator
        elif len(args) == 3:
            identity, accumulator, combiner = args
        else:
            raise TypeError(f"reduce() takes 1 to 3 arguments, got {len(args)}")

        def fold(it: Iterator[Any]) -> Any:
            return functools.reduce(accumulator, it, identity)

        def combine(partials: List[Any]) -> Any:
            if not partials:
                return identity
            return functools.reduce(combiner, partials)

        return self._terminal(fold, combine)

    def _reduce_optional(self, accumulator: Callable[[Any, Any], Any]) -> StreamOptional:
        def fold(it: Iterator[Any]) -> Any:
            return _fold_present(accumulator, it)

        def combine(partials: List[Any]) -> Any:
            return _fold_present(accumulator, iter(partials))

        result = self._terminal(fold, combine)
        return StreamOptional.empty() if result is _MISSING else StreamOptional.of_nullable(result)

    def min(self, comparator: Optional[Comparator] = None, key: Optional[KeyFunc] = None) -> StreamOptional:
        """Smallest element as an Optional; ties keep the first in encounter order."""
        return self._extreme(min, as_key(comparator, key))

    def max(self, comparator: Optional[Comparator] = None, key: Optional[KeyFunc] = None) -> StreamOptional:
        """Largest element as an Optional; ties keep the first in encounter order."""
        return self._extreme(max, as_key(comparator, key))

    def _extreme(self, pick: Callable[..., Any], key: Optional[KeyFunc]) -> StreamOptional:
        def choose(it: Iterator[Any]) -> Any:
            present = (x for x in it if x is not _MISSING)
            if key is None:
                return pick(present, default=_MISSING)
            return pick(present, key=key, default=_MISSING)

        result = self._terminal(choose, lambda partials: choose(iter(partials)))
        return StreamOptional.empty() if result is _MISSING else StreamOptional.of_nullable(result)

    def count(self) -> int:
        return self._terminal(lambda it: sum(1 for _ in it), sum)

    def any_match(self, predicate: Callable[[Any], bool]) -> bool:
        return self._terminal(lambda it: any(predicate(x) for x in it), any)

    def all_match(self, predicate: Callable[[Any], bool]) -> bool:
        return self._terminal(lambda it: all(predicate(x) for x in it), all)

    def none_match(self, predicate: Callable[[Any], bool]) -> bool:
        return self._terminal(lambda it: not any(predicate(x) for x in it), all)

    def find_first(self) -> StreamOptional:
        """First element in encounter order, or an empty Optional."""
        return self._find(ordered=self._ordered)

    def find_any(self) -> StreamOptional:
        """Some element, or an empty Optional. Parallel streams may return any one."""
        return self._find(ordered=False)

    def _find(self, ordered: bool) -> StreamOptional:
        def first(it: Iterator[Any]) -> Any:
            return next(it, _MISSING)

        def combine(partials: List[Any]) -> Any:
            return next((p for p in partials if p is not _MISSING), _MISSING)

        result = self._terminal(first, combine, ordered=ordered)
        return StreamOptional.empty() if result is _MISSING else StreamOptional.of_nullable(result)


def _fold_present(accumulator: Callable[[Any, Any], Any], it: Iterator[Any]) -> Any:
    """Fold without a seed, skipping _MISSING partials; _MISSING if nothing is left."""
    result = _MISSING
    for item in it:
        if item is _MISSING:
            continue
        result = item if result is _MISSING else accumulator(result, item)
    return result


def _flatten(mapper: Callable[[Any], Any], it: Iterator[Any]) -> Iterator[Any]:
    for item in it:
        mapped = mapper(item)
        if mapped is None:
            continue
        if isinstance(mapped, Stream):
            with mapped:
                yield from mapped.iterator()
            continue
        try:
            inner = iter(mapped)
        except TypeError:
            raise TypeError(
                f"flat_map mapper must return a Stream or an iterable, got {type(mapped).__name__}"
            ) from None
        yield from inner


class NumericStream(Stream):
    """A Stream of ints or floats with arithmetic terminal operations."""

    def __init__(self, source: Iterable[Any] = (), *, element_type: type = int, **kwargs: Any) -> None:
        super().__init__(source, **kwargs)
        self.element_type = element_type

    @classmethod
    def range(cls, start: int, end: int) -> "NumericStream":
        """Ints from start (inclusive) to end (exclusive)."""
        return cls(range(start, end), element_type=int)

    @classmethod
    def range_closed(cls, start: int, end: int) -> "NumericStream":
        """Ints from start to end, both inclusive."""
        return cls(range(start, end + 1), element_type=int)

    @classmethod
    def of(cls, *values: Any) -> "NumericStream":
        element_type = float if any(isinstance(v, float) for v in values) else int
        return cls(values, element_type=element_type)

    def _spawn_kwargs(self) -> dict:
        return {"element_type": self.element_type}

    def sum(self) -> Any:
        if self.element_type is float:
            # A single fsum over every element; per-chunk fsums would round
            # at chunk boundaries
            return math.fsum(self._terminal(list, _concat_lists))
        return self._terminal(sum, sum)

    def summary_statistics(self) -> SummaryStatistics:
        return self.collect(summarizing())

    def average(self) -> StreamOptional:
        """Arithmetic mean as an Optional float; empty for no elements."""
        stats = self.summary_statistics()
        if stats.count == 0:
            return StreamOptional.empty()
        return StreamOptional.of(stats.average)

    def boxed(self) -> Stream:
        """Return a plain Stream over the same elements."""
        return self._chain(None, cls=Stream)

    def map_to_obj(self, mapper: Callable[[Any], Any]) -> Stream:
        return self._chain(Stage(StageKind.MAP, lambda it: map(mapper, it)), cls=Stream)

    def as_float_stream(self) -> "NumericStream":
        return self._chain(Stage(StageKind.MAP, lambda it: map(float, it), "as_float"), element_type=float)


class StreamBuilder:
    """Mutable builder for a Stream; single use.

    Usage:
        stream = Stream.builder().add("One").add("Two").build()
    """

    def __init__(self) -> None:
        self._items: List[Any] = []
        self._built = False

    def accept(self, value: Any) -> None:
        if self._built:
            raise StreamStateError("builder has already been built")
        self._items.append(value)

    def add(self, value: Any) -> "StreamBuilder":
        self.accept(value)
        return self

    def build(self) -> Stream:
        if self._built:
            raise StreamStateError("builder has already been built")
        self._built = True
        return Stream(self._items)
