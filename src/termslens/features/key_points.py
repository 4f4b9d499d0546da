"""Key-point extraction: the important clauses a user should be aware of."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from termslens.chunker import Chunk, with_chunk_context
from termslens.errors import ModelError
from termslens.fanout import ChunkConcurrency
from termslens.features.base import FeaturePipeline
from termslens.merger import rank_key_points
from termslens.models import Category, Importance, KeyPoint
from termslens.prompts import key_points_prompt
from termslens.structured import decode_key_points

LOGGER = logging.getLogger(__name__)

EXTRACTION_FAILED_POINT = "Unable to extract key points. Please review the document manually."
NO_KEY_POINTS_MESSAGE = "No key points found."

CATEGORY_LABELS: Dict[Category, str] = {
    Category.PRIVACY: "Privacy",
    Category.DATA: "Data Collection",
    Category.RIGHTS: "Your Rights",
    Category.LEGAL: "Legal Terms",
    Category.FINANCIAL: "Payment & Billing",
    Category.OTHER: "General",
}

CATEGORY_ICONS: Dict[Category, str] = {
    Category.PRIVACY: "🔒",
    Category.DATA: "📊",
    Category.RIGHTS: "⚖️",
    Category.LEGAL: "📜",
    Category.FINANCIAL: "💰",
    Category.OTHER: "📌",
}


class KeyPointExtractor(FeaturePipeline):
    """One deterministic JSON completion per chunk, ranked together when chunked."""

    name = "Key points extraction"
    concurrency = ChunkConcurrency.PARALLEL

    async def extract(self, document: Optional[str]) -> List[KeyPoint]:
        with self.guard():
            chunks = self.prepare(document)
            per_chunk = await self.map_chunks(chunks, self._extract_from_chunk)
            points = [point for group in per_chunk for point in group]

            if len(chunks) > 1:
                outcome = await rank_key_points(self.gateway, points, self.config.key_point_limit)
                LOGGER.info(
                    "Merged %s key points from %s chunks into %s via %s",
                    len(points),
                    len(chunks),
                    len(outcome.value),
                    outcome.strategy,
                )
                return list(outcome.value)
            return points

    async def _extract_from_chunk(self, chunk: Chunk) -> List[KeyPoint]:
        try:
            return await self.gateway.structured_completion(
                key_points_prompt(with_chunk_context(chunk)),
                lambda raw: decode_key_points(raw, chunk.index),
            )
        except ModelError as error:
            LOGGER.warning("Key point extraction failed for chunk %s: %s", chunk.index, error)
            return [
                KeyPoint(
                    point=EXTRACTION_FAILED_POINT,
                    importance=Importance.HIGH,
                    category=Category.OTHER,
                    chunk_index=chunk.index,
                )
            ]


def format_key_points(key_points: Optional[Sequence[KeyPoint]]) -> str:
    """Render key points as markdown sections grouped by category."""

    if not key_points:
        return NO_KEY_POINTS_MESSAGE

    grouped: Dict[Category, List[KeyPoint]] = {}
    for key_point in key_points:
        grouped.setdefault(key_point.category, []).append(key_point)

    sections: List[str] = []
    for category, points in grouped.items():
        lines = [f"### {CATEGORY_ICONS.get(category, '•')} {CATEGORY_LABELS.get(category, category.value)}"]
        lines.extend(f"- {point.point}" for point in points)
        sections.append("\n\n".join(lines))

    return "\n\n\n".join(sections).strip()


__all__ = [
    "CATEGORY_ICONS",
    "CATEGORY_LABELS",
    "EXTRACTION_FAILED_POINT",
    "KeyPointExtractor",
    "NO_KEY_POINTS_MESSAGE",
    "format_key_points",
]
