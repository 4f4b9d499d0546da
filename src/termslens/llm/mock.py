"""Deterministic engines used when no real model backend is configured."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from termslens.llm.engines import (
    Availability,
    CompletionEngine,
    EngineSession,
    SummarizerEngine,
    TranslatorEngine,
)
from termslens.models import SummaryOptions

Responder = Callable[[str, str], str]


def _echo(system_prompt: str, text: str) -> str:
    del system_prompt
    return f"MOCK_ANSWER: {text[:100]}"


@dataclass(slots=True)
class _MockCompletionSession(EngineSession):
    system_prompt: str
    responder: Responder

    async def run(self, text: str) -> str:
        return self.responder(self.system_prompt, text)


class MockCompletionEngine(CompletionEngine):
    """Return a predictable completion for any prompt.

    A *responder* callable can replace the default echo, which makes the
    engine usable for scripted scenarios.
    """

    def __init__(self, responder: Optional[Responder] = None) -> None:
        self._responder = responder or _echo

    async def availability(self) -> Availability:
        return Availability.AVAILABLE

    async def create_session(self, system_prompt: str, *, temperature: float, top_k: int) -> EngineSession:
        del temperature, top_k  # The mock backend is deterministic anyway.
        return _MockCompletionSession(system_prompt=system_prompt, responder=self._responder)


@dataclass(slots=True)
class _MockSummarySession(EngineSession):
    options: SummaryOptions

    async def run(self, text: str) -> str:
        return f"MOCK_SUMMARY[{self.options.length.value}]: {text[:100]}"


class MockSummarizerEngine(SummarizerEngine):
    async def availability(self) -> Availability:
        return Availability.AVAILABLE

    async def create_session(self, options: SummaryOptions, *, shared_context: str) -> EngineSession:
        del shared_context
        return _MockSummarySession(options=options)


@dataclass(slots=True)
class _MockTranslationSession(EngineSession):
    target_language: str

    async def run(self, text: str) -> str:
        return f"[{self.target_language}] {text}"


class MockTranslatorEngine(TranslatorEngine):
    async def availability(self) -> Availability:
        return Availability.AVAILABLE

    async def create_session(self, source_language: str, target_language: str) -> EngineSession:
        del source_language
        return _MockTranslationSession(target_language=target_language)


__all__ = [
    "MockCompletionEngine",
    "MockSummarizerEngine",
    "MockTranslatorEngine",
    "Responder",
]
