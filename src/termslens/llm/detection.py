"""Language detection backed by langdetect."""
from __future__ import annotations

import logging

from langdetect import DetectorFactory, LangDetectException, detect

from termslens.errors import ModelError
from termslens.llm.engines import Availability, EngineSession, LanguageDetectorEngine

LOGGER = logging.getLogger(__name__)
DetectorFactory.seed = 0


class _LangdetectSession(EngineSession):
    async def run(self, text: str) -> str:
        cleaned = text.strip()
        if not cleaned:
            raise ModelError("Cannot detect the language of empty text")
        try:
            language = detect(cleaned)
        except LangDetectException as error:
            LOGGER.info("Unable to determine language for text of length %s", len(text))
            raise ModelError(f"Language detection failed: {error}") from error
        # langdetect reports regional variants such as zh-cn
        code = language.split("-")[0].lower()
        LOGGER.debug("Detected language: %s", code)
        return code


class LangdetectDetectorEngine(LanguageDetectorEngine):
    """Wraps langdetect behind the detector engine contract."""

    async def availability(self) -> Availability:
        return Availability.AVAILABLE

    async def create_session(self) -> EngineSession:
        return _LangdetectSession()
