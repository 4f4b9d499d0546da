"""Chunk-aware summarization."""
from __future__ import annotations

import logging
from typing import Optional

from termslens.chunker import Chunk, with_chunk_context
from termslens.fanout import ChunkConcurrency
from termslens.features.base import FeaturePipeline
from termslens.merger import synthesize_summaries
from termslens.models import SummaryFormat, SummaryLength, SummaryOptions, SummaryType

LOGGER = logging.getLogger(__name__)


class Summarizer(FeaturePipeline):
    name = "Summarization"
    concurrency = ChunkConcurrency.PARALLEL

    def default_options(self) -> SummaryOptions:
        return SummaryOptions(
            type=SummaryType(self.config.default_summary_type),
            format=SummaryFormat.MARKDOWN,
            length=SummaryLength(self.config.default_summary_length),
        )

    async def summarize(self, document: Optional[str], options: Optional[SummaryOptions] = None) -> str:
        with self.guard():
            options = options or self.default_options()
            chunks = self.prepare(document)
            if len(chunks) == 1:
                return await self.gateway.summarize(chunks[0].text, options)

            async def _summarize_chunk(chunk: Chunk) -> str:
                return await self.gateway.summarize(with_chunk_context(chunk), options)

            summaries = await self.map_chunks(chunks, _summarize_chunk)
            outcome = await synthesize_summaries(
                self.gateway,
                [(chunk.index, summary) for chunk, summary in zip(chunks, summaries)],
                options,
            )
            if outcome.degraded:
                LOGGER.warning("Summary merge degraded to %s", outcome.strategy)
            return str(outcome.value)


__all__ = ["Summarizer"]
