import asyncio
import logging

import pytest

from termslens.errors import ModelError
from termslens.llm.engines import EngineSet
from termslens.llm.gateway import ModelGateway
from termslens.merger import (
    concatenate,
    deduplicate_key_points,
    rank_key_points,
    run_strategies,
    synthesize_summaries,
)
from termslens.models import Category, Importance, KeyPoint, SummaryOptions

from conftest import TrackingCompletionEngine, key_points_json


def _point(text: str, importance: Importance = Importance.MEDIUM, chunk_index: int = 0) -> KeyPoint:
    return KeyPoint(point=text, importance=importance, category=Category.OTHER, chunk_index=chunk_index)


def _failing_gateway() -> ModelGateway:
    async def _boom(system_prompt: str, text: str) -> str:
        raise RuntimeError("engine crashed")

    return ModelGateway(EngineSet(completion=TrackingCompletionEngine(_boom)))


def test_concatenate_joins_with_blank_line():
    assert concatenate(["one", "two"]) == "one\n\ntwo"
    assert concatenate(["a", "b"], separator="|") == "a|b"


def test_deduplicate_keeps_first_occurrence_and_sorts_by_importance():
    points = [
        _point("Low thing", Importance.LOW, 0),
        _point("Shares data", Importance.MEDIUM, 0),
        _point("  shares DATA ", Importance.HIGH, 1),
        _point("Arbitration", Importance.HIGH, 1),
        _point("Cookies", Importance.MEDIUM, 2),
    ]

    result = deduplicate_key_points(points, limit=3)

    assert [point.point for point in result] == ["Arbitration", "Shares data", "Cookies"]
    assert result[1].chunk_index == 0


def test_deduplicate_is_idempotent():
    points = [_point(f"Point {n % 4}", list(Importance)[n % 3], n) for n in range(12)]

    once = deduplicate_key_points(points)

    assert deduplicate_key_points(once) == once


def test_run_strategies_reports_degraded_outcome():
    async def _fails() -> object:
        raise ModelError("nope")

    async def _works() -> object:
        return "fallback"

    outcome = asyncio.run(run_strategies([("first", _fails), ("second", _works)], fragments=2))

    assert outcome.value == "fallback"
    assert outcome.strategy == "second"
    assert outcome.degraded
    assert outcome.errors == ["first: nope"]


def test_run_strategies_raises_when_every_strategy_fails():
    async def _fails() -> object:
        raise ModelError("nope")

    with pytest.raises(ModelError, match="All merge strategies failed"):
        asyncio.run(run_strategies([("only", _fails)], fragments=1))


def test_synthesize_summaries_labels_parts_in_order(mock_gateway, responder):
    responder.on("merge them into one", "Merged summary")

    outcome = asyncio.run(
        synthesize_summaries(mock_gateway, [(1, "second part"), (0, "first part")], SummaryOptions())
    )

    assert outcome.value == "Merged summary"
    assert outcome.strategy == "synthesis"
    _, text = responder.calls_matching("merge them into one")[0]
    assert text == "Part 1:\nfirst part\n\n---\n\nPart 2:\nsecond part"


def test_synthesize_summaries_falls_back_to_concatenation(caplog):
    with caplog.at_level(logging.INFO, logger="termslens.telemetry"):
        outcome = asyncio.run(
            synthesize_summaries(_failing_gateway(), [(0, "alpha"), (1, "beta")], SummaryOptions())
        )

    assert outcome.strategy == "concatenation"
    assert outcome.value == "alpha\n\nbeta"
    assert outcome.degraded
    steps = [record.msg.get("step") for record in caplog.records if isinstance(record.msg, dict)]
    assert "merge.fallback" in steps


def test_rank_key_points_uses_model_result_truncated(mock_gateway, responder):
    responder.on(
        "Deduplicate, merge related points",
        key_points_json(("Merged A", "high", "privacy"), ("Merged B", "low", "data"), ("Merged C", "low", "legal")),
    )
    points = [_point("A"), _point("B"), _point("a")]

    outcome = asyncio.run(rank_key_points(mock_gateway, points, limit=2))

    assert outcome.strategy == "model-rank"
    assert [point.point for point in outcome.value] == ["Merged A", "Merged B"]
    assert all(point.chunk_index is None for point in outcome.value)


def test_rank_key_points_falls_back_on_unparseable_output(mock_gateway, responder):
    responder.on("Deduplicate, merge related points", "I cannot produce JSON today")
    points = [_point("Same"), _point("same "), _point("Urgent", Importance.HIGH)]

    outcome = asyncio.run(rank_key_points(mock_gateway, points, limit=10))

    assert outcome.strategy == "local-dedup"
    assert [point.point for point in outcome.value] == ["Urgent", "Same"]


def test_rank_key_points_falls_back_on_empty_model_result(mock_gateway, responder):
    responder.on("Deduplicate, merge related points", "[]")

    outcome = asyncio.run(rank_key_points(mock_gateway, [_point("Only")], limit=10))

    assert outcome.strategy == "local-dedup"
    assert [point.point for point in outcome.value] == ["Only"]


def test_rank_key_points_short_circuits_empty_input(mock_gateway, responder):
    outcome = asyncio.run(rank_key_points(mock_gateway, []))

    assert outcome.value == []
    assert outcome.strategy == "empty"
    assert responder.calls == []
