import asyncio

from termslens.chunker import Chunk
from termslens.fanout import ChunkConcurrency, map_chunks


def _chunks(count: int):
    return [Chunk(text=f"chunk {i}", index=i, total=count, start=i * 10, end=i * 10 + 7) for i in range(count)]


def test_parallel_results_follow_chunk_order_not_completion_order():
    finished = []

    async def _worker(chunk: Chunk) -> str:
        # later chunks finish first
        await asyncio.sleep(0.01 * (chunk.total - chunk.index))
        finished.append(chunk.index)
        return chunk.text.upper()

    results = asyncio.run(map_chunks(list(reversed(_chunks(4))), _worker, ChunkConcurrency.PARALLEL))

    assert results == ["CHUNK 0", "CHUNK 1", "CHUNK 2", "CHUNK 3"]
    assert finished == [3, 2, 1, 0]


def test_parallel_calls_overlap():
    state = {"active": 0, "peak": 0}

    async def _worker(chunk: Chunk) -> int:
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        await asyncio.sleep(0.01)
        state["active"] -= 1
        return chunk.index

    asyncio.run(map_chunks(_chunks(3), _worker, ChunkConcurrency.PARALLEL))

    assert state["peak"] == 3


def test_sequential_calls_never_overlap():
    state = {"active": 0, "peak": 0}
    order = []

    async def _worker(chunk: Chunk) -> int:
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        order.append(chunk.index)
        await asyncio.sleep(0)
        state["active"] -= 1
        return chunk.index

    results = asyncio.run(map_chunks(_chunks(4), _worker, ChunkConcurrency.SEQUENTIAL))

    assert results == [0, 1, 2, 3]
    assert order == [0, 1, 2, 3]
    assert state["peak"] == 1
