"""Translation of terms/policies, one chunk at a time and in order."""
from __future__ import annotations

import logging
from typing import List, Optional

from termslens.chunker import PARAGRAPH_SEPARATOR, Chunk, chunk_content, validate_content_length
from termslens.errors import ModelError
from termslens.fanout import ChunkConcurrency
from termslens.features.base import FeaturePipeline
from termslens.models import Language, TranslationResult

LOGGER = logging.getLogger(__name__)

ALREADY_IN_TARGET_NOTE = "Content is already in the target language"
FALLBACK_SOURCE_LANGUAGE = "en"

SUPPORTED_LANGUAGES = (
    Language("en", "English"),
    Language("es", "Spanish"),
    Language("fr", "French"),
    Language("de", "German"),
    Language("it", "Italian"),
    Language("pt", "Portuguese"),
    Language("nl", "Dutch"),
    Language("pl", "Polish"),
    Language("ru", "Russian"),
    Language("ja", "Japanese"),
    Language("ko", "Korean"),
    Language("zh", "Chinese (Simplified)"),
    Language("ar", "Arabic"),
    Language("hi", "Hindi"),
    Language("tr", "Turkish"),
    Language("vi", "Vietnamese"),
    Language("th", "Thai"),
    Language("sv", "Swedish"),
    Language("no", "Norwegian"),
    Language("da", "Danish"),
    Language("fi", "Finnish"),
)


def get_supported_languages() -> List[Language]:
    return list(SUPPORTED_LANGUAGES)


class Translator(FeaturePipeline):
    """Translate chunk by chunk.

    Chunks run sequentially: the output must keep document order and a
    translator session is not safe to drive concurrently.
    """

    name = "Translation"
    concurrency = ChunkConcurrency.SEQUENTIAL

    async def translate(
        self,
        document: Optional[str],
        target_language: Optional[str] = None,
        source_language: Optional[str] = None,
    ) -> TranslationResult:
        target = (target_language or self.config.default_language).strip().lower()
        validate_content_length(document, self.config.limits)

        with self.guard():
            if source_language and source_language.strip():
                source = source_language.strip().lower()
            else:
                source = await self._detect_source(document)

            if source == target:
                LOGGER.info("Skipping translation: content already in %s", target)
                return TranslationResult(
                    translated_text=document,
                    source_language=source,
                    target_language=target,
                    note=ALREADY_IN_TARGET_NOTE,
                )

            chunks = chunk_content(document, self.config.limits)

            async def _translate_chunk(chunk: Chunk) -> str:
                return await self.gateway.translate(chunk.text, target, source)

            translated = await self.map_chunks(chunks, _translate_chunk)
            return TranslationResult(
                translated_text=PARAGRAPH_SEPARATOR.join(translated),
                source_language=source,
                target_language=target,
                chunks_processed=len(chunks),
            )

    async def _detect_source(self, document: str) -> str:
        try:
            return await self.gateway.detect_language(document)
        except ModelError as error:
            LOGGER.warning(
                "Language detection failed (%s); assuming %s", error, FALLBACK_SOURCE_LANGUAGE
            )
            return FALLBACK_SOURCE_LANGUAGE


__all__ = [
    "ALREADY_IN_TARGET_NOTE",
    "FALLBACK_SOURCE_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "Translator",
    "get_supported_languages",
]
