# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Chunked evaluation of stream pipelines on a thread pool.

A parallel pipeline is evaluated in segments. Each segment is a run of
stateless stages optionally followed by one stateful stage (a barrier):

    source -> [map, filter] -> sorted -> [map] -> terminal
              \\_ segment 1 _/  barrier  \\_ segment 2 (final) _/

Stateless stages run per chunk inside worker threads. A barrier joins the
chunk outputs in encounter order, runs over the joined sequence in the
calling thread, and the result is re-split for the next segment. The final
segment is fused with the terminal operation's per-chunk work, so a
terminal such as reduce() folds each chunk independently and the caller
combines the partial results.

Chunk size is max(min_chunk_size, ceil(n / (parallelism * split_factor))).
With the default configuration a small source is split into one element per
chunk, which makes the effect of a non-identity reduce seed visible.

Thread Safety:
- Each evaluate() call owns its ThreadPoolExecutor
- User callables must tolerate concurrent invocation
- Exceptions raised in workers propagate from evaluate() via Future.result()
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import chain
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from .config import Config, get_default_config
from .logging_setup import EXECUTION_LOGGER_NAME
from .models import ExecutionStatistics, Stage, run_stages

logger = logging.getLogger(__name__)
execution_logger = logging.getLogger(EXECUTION_LOGGER_NAME)

ChunkFn = Callable[[Iterator[Any]], Any]


def segment_stages(stages: Sequence[Stage]) -> List[Tuple[List[Stage], Optional[Stage]]]:
    """Split stages into (stateless_run, barrier) pairs.

    The last pair always has barrier None and may have an empty run.
    """
    segments: List[Tuple[List[Stage], Optional[Stage]]] = []
    current: List[Stage] = []
    for stage in stages:
        if stage.stateful:
            segments.append((current, stage))
            current = []
        else:
            current.append(stage)
    segments.append((current, None))
    return segments


class ParallelExecutor:
    """Runs pipeline segments over chunks of a materialised source.

    Usage:
        executor = ParallelExecutor(config)
        partials = executor.evaluate(items, stages, chunk_fn=sum)
        total = sum(partials)
        stats = executor.last_statistics
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self._config = config or get_default_config()
        self.last_statistics: Optional[ExecutionStatistics] = None

    @property
    def parallelism(self) -> int:
        return self._config.parallelism

    def chunk_size_for(self, size: int) -> int:
        target_chunks = self._config.parallelism * self._config.split_factor
        return max(self._config.min_chunk_size, math.ceil(size / target_chunks))

    def split(self, items: Sequence[Any]) -> List[List[Any]]:
        """Split items into contiguous chunks in encounter order."""
        if not items:
            return []
        size = self.chunk_size_for(len(items))
        return [list(items[i : i + size]) for i in range(0, len(items), size)]

    def evaluate(
        self,
        items: Sequence[Any],
        stages: Sequence[Stage],
        chunk_fn: ChunkFn,
        ordered: bool = True,
    ) -> List[Any]:
        """Evaluate stages over items and apply chunk_fn to each final chunk.

        Args:
            items: Materialised source elements.
            stages: Intermediate stages, in pipeline order.
            chunk_fn: Terminal work for one chunk; receives the chunk's
                downstream iterator and runs inside a worker thread.
            ordered: Return partial results in encounter order. If False,
                results are returned in completion order.

        Returns:
            One chunk_fn result per final chunk. Empty if there are no elements.
        """
        segments = segment_stages(stages)
        stats = ExecutionStatistics(
            source_size=len(items),
            chunk_size=self.chunk_size_for(len(items)) if items else 0,
            worker_count=self.parallelism,
            segment_count=len(segments),
            barriers=[barrier.describe() for _, barrier in segments if barrier is not None],
        )

        chunks = self.split(items)
        with ThreadPoolExecutor(
            max_workers=self.parallelism, thread_name_prefix="streamlab"
        ) as pool:
            for run, barrier in segments[:-1]:
                assert barrier is not None
                if run:
                    outputs = list(pool.map(lambda chunk, r=run: list(run_stages(r, iter(chunk))), chunks))
                else:
                    outputs = chunks
                joined = list(barrier.apply(chain.from_iterable(outputs)))
                chunks = self.split(joined)

            final_run = segments[-1][0]

            def work(chunk: List[Any]) -> Any:
                return chunk_fn(run_stages(final_run, iter(chunk)))

            stats.chunk_count = len(chunks)
            if ordered:
                results = list(pool.map(work, chunks))
            else:
                futures = [pool.submit(work, chunk) for chunk in chunks]
                results = [future.result() for future in as_completed(futures)]

        self.last_statistics = stats
        execution_logger.info(
            f"Parallel evaluation over {stats.source_size} elements "
            f"in {stats.chunk_count} chunks",
            extra={"extra_fields": stats.to_dict()},
        )
        return results
