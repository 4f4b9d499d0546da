"""Run one coroutine per chunk under a declared concurrency strategy."""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Sequence, TypeVar

from termslens.chunker import Chunk

T = TypeVar("T")


class ChunkConcurrency(str, Enum):
    """How a pipeline schedules its per-chunk engine calls."""

    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


async def map_chunks(
    chunks: Sequence[Chunk],
    worker: Callable[[Chunk], Awaitable[T]],
    concurrency: ChunkConcurrency,
) -> List[T]:
    """Apply *worker* to every chunk and return results in chunk-index order.

    ``PARALLEL`` issues every call at once and awaits them jointly;
    ``SEQUENTIAL`` awaits each call before starting the next. Either way the
    first exception a worker raises propagates, so workers that must tolerate
    failures handle them themselves.
    """

    ordered = sorted(chunks, key=lambda chunk: chunk.index)
    if concurrency is ChunkConcurrency.SEQUENTIAL:
        results: List[T] = []
        for chunk in ordered:
            results.append(await worker(chunk))
        return results
    return list(await asyncio.gather(*(worker(chunk) for chunk in ordered)))


__all__ = ["ChunkConcurrency", "map_chunks"]
