"""Combine per-chunk partial results into one artifact.

Each merge is an ordered list of strategies. They are tried in turn, the first
success wins, and callers receive a :class:`MergeOutcome` naming the strategy
that produced the value plus the failures of the ones tried before it. The last
strategy of every chain is local and cannot fail.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Sequence, Tuple

from termslens.errors import ModelError, ModelUnavailable, ShapeError
from termslens.llm.gateway import CompletionMode, ModelGateway
from termslens.models import KeyPoint, MergeOutcome, SummaryOptions
from termslens.prompts import label_parts, merge_summaries_system_prompt, rank_key_points_prompt
from termslens.structured import decode_key_points
from termslens.telemetry import emit_merge_event

LOGGER = logging.getLogger(__name__)

Strategy = Tuple[str, Callable[[], Awaitable[object]]]

PART_SEPARATOR = "\n\n---\n\n"
DEFAULT_KEY_POINT_LIMIT = 10


async def run_strategies(strategies: Sequence[Strategy], *, fragments: int) -> MergeOutcome:
    errors: List[str] = []
    for name, attempt in strategies:
        try:
            value = await attempt()
        except (ModelError, ModelUnavailable) as error:
            LOGGER.warning("Merge strategy %s failed, trying next: %s", name, error)
            errors.append(f"{name}: {error}")
            continue
        emit_merge_event(strategy=name, fragments=fragments, errors=errors)
        return MergeOutcome(value=value, strategy=name, errors=errors)
    raise ModelError("All merge strategies failed: " + "; ".join(errors))


def concatenate(fragments: Sequence[str], separator: str = "\n\n") -> str:
    return separator.join(fragments)


async def synthesize_summaries(
    gateway: ModelGateway,
    fragments: Sequence[Tuple[int, str]],
    options: SummaryOptions,
) -> MergeOutcome:
    """Merge ``(chunk_index, summary)`` fragments into one summary.

    The model is asked to deduplicate and reorganise the labelled parts; any
    gateway failure degrades to plain concatenation.
    """

    ordered = sorted(fragments, key=lambda item: item[0])
    combined = PART_SEPARATOR.join(label_parts(ordered))

    async def _synthesis() -> object:
        return await gateway.completion(
            combined,
            merge_summaries_system_prompt(options),
            CompletionMode.CREATIVE,
        )

    async def _concatenation() -> object:
        return concatenate([text for _, text in ordered])

    return await run_strategies(
        [("synthesis", _synthesis), ("concatenation", _concatenation)],
        fragments=len(ordered),
    )


def deduplicate_key_points(points: Sequence[KeyPoint], limit: int = DEFAULT_KEY_POINT_LIMIT) -> List[KeyPoint]:
    """Keep the first point per normalised text, most important first, at most *limit*."""

    seen: set[str] = set()
    unique: List[KeyPoint] = []
    for point in points:
        key = point.point.lower().strip()
        if key in seen:
            continue
        seen.add(key)
        unique.append(point)

    # sorted() is stable, so equal importance keeps arrival order
    unique = sorted(unique, key=lambda point: point.importance.rank)
    return unique[:limit]


async def rank_key_points(
    gateway: ModelGateway,
    points: Sequence[KeyPoint],
    limit: int = DEFAULT_KEY_POINT_LIMIT,
) -> MergeOutcome:
    """Deduplicate and rank key points collected from several chunks."""

    if not points:
        return MergeOutcome(value=[], strategy="empty")

    async def _model_rank() -> object:
        ranked = await gateway.structured_completion(
            rank_key_points_prompt(points, limit),
            decode_key_points,
        )
        if not ranked:
            raise ShapeError("Model returned no key points for a non-empty input")
        return ranked[:limit]

    async def _local_rank() -> object:
        return deduplicate_key_points(points, limit)

    return await run_strategies(
        [("model-rank", _model_rank), ("local-dedup", _local_rank)],
        fragments=len(points),
    )


__all__ = [
    "DEFAULT_KEY_POINT_LIMIT",
    "PART_SEPARATOR",
    "concatenate",
    "deduplicate_key_points",
    "rank_key_points",
    "run_strategies",
    "synthesize_summaries",
]
