"""Uniform async interface to the external inference engines.

The gateway is the only module that talks to an engine. Every call acquires a
fresh engine session and releases it on every exit path; sessions are never
pooled or shared. The gateway does not retry: fallbacks belong to callers.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, TypeVar

from termslens.errors import ModelError, ModelUnavailable
from termslens.llm.engines import Availability, EngineSession, EngineSet
from termslens.models import SummaryOptions
from termslens.prompts import (
    DETECTION_SYSTEM_PROMPT,
    JSON_SYSTEM_PROMPT,
    SHARED_CONTEXT,
    translation_system_prompt,
)
from termslens.structured import JsonKind, decode_json
from termslens.telemetry import emit_inference_request, emit_inference_result

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DETECTION_PREVIEW_CHARS = 500


class CompletionMode(str, Enum):
    """Sampling mode: creative prose or pinned, reproducible output."""

    CREATIVE = "creative"
    DETERMINISTIC = "deterministic"


_SAMPLING = {
    CompletionMode.CREATIVE: (0.3, 3),
    CompletionMode.DETERMINISTIC: (0.0, 1),
}


class ModelGateway:
    """Completion, summarization, translation and detection over an :class:`EngineSet`."""

    def __init__(self, engines: EngineSet, *, timeout_seconds: Optional[float] = 120.0) -> None:
        self._engines = engines
        self._timeout = timeout_seconds

    async def completion(
        self,
        user_text: str,
        system_prompt: str = "",
        mode: CompletionMode = CompletionMode.CREATIVE,
    ) -> str:
        """Run one free-form completion and return the raw model text."""

        temperature, top_k = _SAMPLING[mode]
        engine = self._engines.completion
        await self._ensure_available(engine)
        return await self._invoke(
            "completion",
            lambda: engine.create_session(system_prompt, temperature=temperature, top_k=top_k),
            user_text,
            temperature=temperature,
            top_k=top_k,
        )

    async def structured_completion(
        self,
        user_text: str,
        decoder: Optional[Callable[[str], T]] = None,
        *,
        expect: JsonKind = "array",
        system_prompt: str = JSON_SYSTEM_PROMPT,
    ) -> Any:
        """Deterministic completion decoded into a validated value.

        Raises :class:`~termslens.errors.ParseError` or
        :class:`~termslens.errors.ShapeError` when the response cannot be used.
        """

        raw = await self.completion(user_text, system_prompt, CompletionMode.DETERMINISTIC)
        if decoder is None:
            return decode_json(raw, expect)
        return decoder(raw)

    async def summarize(self, text: str, options: SummaryOptions) -> str:
        engine = self._engines.summarizer
        if engine is None:
            raise ModelUnavailable("summarization", "no summarizer engine is configured")
        await self._ensure_available(engine)
        return await self._invoke(
            "summarize",
            lambda: engine.create_session(options, shared_context=SHARED_CONTEXT),
            text,
        )

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: Optional[str] = None,
    ) -> str:
        """Translate *text*; falls back to an instructed completion without a translator."""

        engine = self._engines.translator
        source = source_language or "en"
        if engine is not None and await engine.availability() is not Availability.UNAVAILABLE:
            try:
                return await self._invoke(
                    "translate",
                    lambda: engine.create_session(source, target_language),
                    text,
                )
            except ModelUnavailable as error:
                LOGGER.info("Translator unavailable for %s->%s (%s); using completion", source, target_language, error)
        return await self.completion(text, translation_system_prompt(target_language))

    async def detect_language(self, text: str) -> str:
        """Return the ISO 639-1 code of *text*."""

        engine = self._engines.detector
        if engine is not None and await engine.availability() is not Availability.UNAVAILABLE:
            try:
                code = await self._invoke("detect", engine.create_session, text)
                return code.strip().lower()
            except ModelUnavailable as error:
                LOGGER.info("Language detector unavailable (%s); using completion", error)
        result = await self.completion(text[:DETECTION_PREVIEW_CHARS], DETECTION_SYSTEM_PROMPT)
        return result.strip().lower()

    async def check_availability(self) -> Dict[str, Availability]:
        """Report availability for each engine kind."""

        report: Dict[str, Availability] = {}
        for key, engine in (
            ("completion", self._engines.completion),
            ("summarization", self._engines.summarizer),
            ("translation", self._engines.translator),
            ("detection", self._engines.detector),
        ):
            if engine is None:
                report[key] = Availability.UNAVAILABLE
                continue
            try:
                report[key] = await engine.availability()
            except Exception as error:  # pragma: no cover - engine-specific
                LOGGER.warning("Availability check for %s failed: %s", key, error)
                report[key] = Availability.UNAVAILABLE
        return report

    async def _ensure_available(self, engine) -> None:
        if await engine.availability() is Availability.UNAVAILABLE:
            raise ModelUnavailable(engine.name, engine.unavailable_reason())

    @asynccontextmanager
    async def _session(self, factory: Callable[[], Awaitable[EngineSession]]) -> AsyncIterator[EngineSession]:
        session = await self._bounded(factory())
        try:
            yield session
        finally:
            try:
                await session.close()
            except Exception as error:  # pragma: no cover - engine-specific
                LOGGER.warning("Failed to release engine session: %s", error)

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        if self._timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    async def _invoke(
        self,
        operation: str,
        factory: Callable[[], Awaitable[EngineSession]],
        text: str,
        *,
        temperature: float | None = None,
        top_k: int | None = None,
    ) -> str:
        req_id = uuid.uuid4().hex
        emit_inference_request(
            req_id=req_id,
            operation=operation,
            prompt_preview=text,
            prompt_len=len(text),
            temperature=temperature,
            top_k=top_k,
        )
        started = time.perf_counter()
        try:
            async with self._session(factory) as session:
                result = await self._bounded(session.run(text))
        except (ModelUnavailable, ModelError) as error:
            self._report_failure(req_id, operation, started, error)
            raise
        except asyncio.TimeoutError as error:
            self._report_failure(req_id, operation, started, error)
            raise ModelError(f"{operation} timed out after {self._timeout}s") from error
        except Exception as error:
            self._report_failure(req_id, operation, started, error)
            raise ModelError(f"{operation} failed: {error}") from error

        emit_inference_result(
            req_id=req_id,
            operation=operation,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            answer_preview=result,
        )
        return result

    @staticmethod
    def _report_failure(req_id: str, operation: str, started: float, error: BaseException) -> None:
        emit_inference_result(
            req_id=req_id,
            operation=operation,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            answer_preview=None,
            error=error,
        )


__all__ = ["CompletionMode", "DETECTION_PREVIEW_CHARS", "ModelGateway"]
