"""Shared fixtures: scripted engines and small chunking limits."""
from __future__ import annotations

import asyncio
import json
from typing import Callable, List, Optional, Tuple

import pytest

from termslens.config import AnalysisConfig, ChunkingLimits
from termslens.llm.engines import (
    Availability,
    CompletionEngine,
    EngineSession,
    EngineSet,
    LanguageDetectorEngine,
    TranslatorEngine,
)
from termslens.llm.gateway import ModelGateway
from termslens.llm.mock import MockCompletionEngine, MockSummarizerEngine, MockTranslatorEngine

SMALL_LIMITS = ChunkingLimits(max_document_chars=5_000, max_chunk_chars=300, overlap_chars=20)


class ScriptedResponder:
    """Answer completions by matching a marker in the system prompt or user text.

    Unmatched prompts get ``default``. Every call is recorded as
    ``(system_prompt, text)``.
    """

    def __init__(self, default: str = "MOCK_ANSWER") -> None:
        self.rules: List[Tuple[str, Callable[[str, str], str]]] = []
        self.calls: List[Tuple[str, str]] = []
        self.default = default

    def on(self, marker: str, reply) -> "ScriptedResponder":
        handler = reply if callable(reply) else (lambda system, text, _reply=reply: _reply)
        self.rules.append((marker, handler))
        return self

    def __call__(self, system_prompt: str, text: str) -> str:
        self.calls.append((system_prompt, text))
        for marker, handler in self.rules:
            if marker in system_prompt or marker in text:
                return handler(system_prompt, text)
        return self.default

    def calls_matching(self, marker: str) -> List[Tuple[str, str]]:
        return [call for call in self.calls if marker in call[0] or marker in call[1]]


class _TrackedSession(EngineSession):
    def __init__(self, engine: "TrackingCompletionEngine", system_prompt: str) -> None:
        self._engine = engine
        self._system_prompt = system_prompt

    async def run(self, text: str) -> str:
        return await self._engine.behaviour(self._system_prompt, text)

    async def close(self) -> None:
        self._engine.open_sessions -= 1
        self._engine.closed += 1


class TrackingCompletionEngine(CompletionEngine):
    """Counts open sessions; ``behaviour`` is an async callable per run."""

    def __init__(self, behaviour=None, availability: Availability = Availability.AVAILABLE) -> None:
        self.behaviour = behaviour or _echo_async
        self._availability = availability
        self.open_sessions = 0
        self.created = 0
        self.closed = 0
        self.sampling: List[Tuple[float, int]] = []

    async def availability(self) -> Availability:
        return self._availability

    def unavailable_reason(self) -> Optional[str]:
        return "disabled in tests" if self._availability is Availability.UNAVAILABLE else None

    async def create_session(self, system_prompt: str, *, temperature: float, top_k: int) -> EngineSession:
        self.created += 1
        self.open_sessions += 1
        self.sampling.append((temperature, top_k))
        return _TrackedSession(self, system_prompt)


async def _echo_async(system_prompt: str, text: str) -> str:
    return f"echo: {text[:40]}"


class FixedDetector(LanguageDetectorEngine):
    def __init__(self, code: str) -> None:
        self.code = code

    async def availability(self) -> Availability:
        return Availability.AVAILABLE

    async def create_session(self) -> EngineSession:
        code = self.code

        class _Session(EngineSession):
            async def run(self, text: str) -> str:
                return code

        return _Session()


class RecordingTranslator(TranslatorEngine):
    """Upper-cases text and records call order plus overlap."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def availability(self) -> Availability:
        return Availability.AVAILABLE

    async def create_session(self, source_language: str, target_language: str) -> EngineSession:
        translator = self

        class _Session(EngineSession):
            async def run(self, text: str) -> str:
                translator.active += 1
                translator.max_active = max(translator.max_active, translator.active)
                translator.calls.append(text)
                await asyncio.sleep(0)
                translator.active -= 1
                return f"{target_language}:{text.upper()}"

        return _Session()


def key_points_json(*points: Tuple[str, str, str]) -> str:
    return json.dumps([{"point": p, "importance": i, "category": c} for p, i, c in points])


@pytest.fixture
def small_config() -> AnalysisConfig:
    return AnalysisConfig(limits=SMALL_LIMITS, request_timeout_seconds=5.0)


@pytest.fixture
def responder() -> ScriptedResponder:
    return ScriptedResponder()


@pytest.fixture
def mock_gateway(responder: ScriptedResponder) -> ModelGateway:
    engines = EngineSet(
        completion=MockCompletionEngine(responder),
        summarizer=MockSummarizerEngine(),
        translator=MockTranslatorEngine(),
        detector=FixedDetector("en"),
    )
    return ModelGateway(engines, timeout_seconds=5.0)


def paragraph(label: str, size: int = 120) -> str:
    body = f"{label} clause covers data sharing and account rights. "
    return (body * (size // len(body) + 1))[:size].strip()


@pytest.fixture
def long_document() -> str:
    """Six ~120 char paragraphs: several chunks under ``SMALL_LIMITS``."""

    return "\n\n".join(paragraph(f"Section {number}") for number in range(1, 7))
