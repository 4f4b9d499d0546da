"""Abstract inference engines sitting behind the model gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from termslens.models import SummaryOptions

__all__ = [
    "Availability",
    "CompletionEngine",
    "EngineSession",
    "EngineSet",
    "LanguageDetectorEngine",
    "SummarizerEngine",
    "TranslatorEngine",
]


class Availability(str, Enum):
    AVAILABLE = "available"
    NEEDS_DOWNLOAD = "needs-download"
    UNAVAILABLE = "unavailable"


class EngineSession(ABC):
    """Single-use stateful handle to an engine; closed right after one call."""

    @abstractmethod
    async def run(self, text: str) -> str:
        """Process *text* and return the engine output."""

    async def close(self) -> None:
        """Release resources held by the session."""


class _Engine(ABC):
    name: str = "engine"

    @abstractmethod
    async def availability(self) -> Availability:
        """Report whether the engine can serve requests."""

    def unavailable_reason(self) -> Optional[str]:
        return None


class CompletionEngine(_Engine):
    name = "completion"

    @abstractmethod
    async def create_session(self, system_prompt: str, *, temperature: float, top_k: int) -> EngineSession:
        """Open a fresh completion session primed with *system_prompt*."""


class SummarizerEngine(_Engine):
    name = "summarization"

    @abstractmethod
    async def create_session(self, options: SummaryOptions, *, shared_context: str) -> EngineSession:
        """Open a summarizer configured for the requested type/format/length."""


class TranslatorEngine(_Engine):
    name = "translation"

    @abstractmethod
    async def create_session(self, source_language: str, target_language: str) -> EngineSession:
        """Open a translator for one language pair."""


class LanguageDetectorEngine(_Engine):
    name = "detection"

    @abstractmethod
    async def create_session(self) -> EngineSession:
        """Open a detector whose ``run`` returns an ISO 639-1 code."""


@dataclass(slots=True)
class EngineSet:
    """The engines available to one gateway; any but completion may be absent."""

    completion: CompletionEngine
    summarizer: Optional[SummarizerEngine] = None
    translator: Optional[TranslatorEngine] = None
    detector: Optional[LanguageDetectorEngine] = None
