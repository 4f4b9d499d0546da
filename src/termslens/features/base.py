"""Shared plumbing for the chunk-aware feature pipelines."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator, List, Optional, TypeVar

from termslens.chunker import Chunk, chunk_content, validate_content_length
from termslens.config import AnalysisConfig
from termslens.errors import InvalidInput, PipelineError
from termslens.fanout import ChunkConcurrency, map_chunks
from termslens.llm.gateway import ModelGateway
from termslens.telemetry import emit_exception, traced_duration

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class FeaturePipeline:
    """Validate, chunk, fan out per chunk, fan in.

    Subclasses declare ``name`` (the prefix of wrapped error messages) and
    ``concurrency`` (how per-chunk calls are scheduled).
    """

    name: str = "Analysis"
    concurrency: ChunkConcurrency = ChunkConcurrency.PARALLEL

    def __init__(self, gateway: ModelGateway, config: Optional[AnalysisConfig] = None) -> None:
        self.gateway = gateway
        self.config = config or AnalysisConfig()

    def prepare(self, document: Optional[str]) -> List[Chunk]:
        validate_content_length(document, self.config.limits)
        return chunk_content(document, self.config.limits)

    async def map_chunks(self, chunks: List[Chunk], worker: Callable[[Chunk], Awaitable[T]]) -> List[T]:
        return await map_chunks(chunks, worker, self.concurrency)

    @contextmanager
    def guard(self) -> Iterator[None]:
        """Trace the run and wrap non-validation failures in :class:`PipelineError`."""

        try:
            with traced_duration("pipeline", logger=LOGGER, pipeline=self.name):
                yield
        except InvalidInput:
            raise
        except PipelineError:
            raise
        except Exception as error:
            emit_exception(module=f"{type(self).__module__}.{type(self).__name__}", error=error)
            raise PipelineError(self.name, error) from error


__all__ = ["FeaturePipeline"]
