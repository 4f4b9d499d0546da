from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from termslens.config import AnalysisConfig
from termslens.documents import extract_document_text
from termslens.errors import TermsLensError
from termslens.features import (
    KeyPointExtractor,
    QuestionAnswerer,
    Summarizer,
    Translator,
    format_key_points,
    get_supported_languages,
)
from termslens.llm import Availability, ModelGateway, build_engines
from termslens.logging_config import AUDIT_LOGGER_NAME
from termslens.models import KeyPoint, Language, SummaryOptions, TranslationResult
from termslens.sessions import SessionDocumentStore, StoredDocument

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


class DocumentNotFound(TermsLensError, LookupError):
    """Raised when a session has no stored document."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No document stored for session {session_id}")
        self.session_id = session_id


@dataclass(slots=True)
class KeyPointsResult:
    points: List[KeyPoint]
    formatted: str


class AnalysisService:
    """High level entry points for analysing a terms of service or privacy policy.

    Every feature is available both on raw document text and on the document
    stored for a session. One gateway and one config snapshot are shared by
    all pipelines built here.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        *,
        gateway: ModelGateway | None = None,
        store: SessionDocumentStore | None = None,
    ) -> None:
        self.config = config or AnalysisConfig.from_env()
        self.gateway = gateway or ModelGateway(
            build_engines(self.config.engines),
            timeout_seconds=self.config.request_timeout_seconds,
        )
        self.store = store or SessionDocumentStore()
        self._key_points = KeyPointExtractor(self.gateway, self.config)
        self._summarizer = Summarizer(self.gateway, self.config)
        self._translator = Translator(self.gateway, self.config)
        self._qa = QuestionAnswerer(self.gateway, self.config)

    # Session documents -------------------------------------------------

    def store_document(self, session_id: str, text: str, *, source: str = "text") -> StoredDocument:
        document = self.store.set(session_id, text, source=source)
        LOGGER.info("Stored %s chars for session %s (%s)", len(text), session_id, source)
        return document

    def store_upload(
        self, session_id: str, data: bytes, file_name: str, mime_type: Optional[str] = None
    ) -> StoredDocument:
        text = extract_document_text(data, file_name, mime_type)
        return self.store_document(session_id, text, source=file_name)

    def get_document(self, session_id: str) -> str:
        document = self.store.get(session_id)
        if document is None:
            raise DocumentNotFound(session_id)
        return document.text

    def clear_document(self, session_id: str) -> bool:
        return self.store.clear(session_id)

    # Features ----------------------------------------------------------

    async def summarize_content(
        self,
        document: Optional[str],
        options: Optional[SummaryOptions] = None,
        *,
        session_id: str | None = None,
    ) -> str:
        started = time.perf_counter()
        summary = await self._summarizer.summarize(document, options)
        self._audit("summary", session_id, started, document, summary_chars=len(summary))
        return summary

    async def extract_key_points(self, document: Optional[str], *, session_id: str | None = None) -> List[KeyPoint]:
        started = time.perf_counter()
        points = await self._key_points.extract(document)
        self._audit("key_points", session_id, started, document, points=len(points))
        return points

    def format_key_points(self, points: List[KeyPoint]) -> str:
        return format_key_points(points)

    async def key_points_report(self, document: Optional[str], *, session_id: str | None = None) -> KeyPointsResult:
        points = await self.extract_key_points(document, session_id=session_id)
        return KeyPointsResult(points=points, formatted=format_key_points(points))

    async def translate_content(
        self,
        document: Optional[str],
        target_language: Optional[str] = None,
        source_language: Optional[str] = None,
        *,
        session_id: str | None = None,
    ) -> TranslationResult:
        started = time.perf_counter()
        result = await self._translator.translate(document, target_language, source_language)
        self._audit(
            "translation",
            session_id,
            started,
            document,
            source_language=result.source_language,
            target_language=result.target_language,
            chunks=result.chunks_processed,
        )
        return result

    def get_supported_languages(self) -> List[Language]:
        return get_supported_languages()

    async def answer_question(
        self, document: Optional[str], question: Optional[str], *, session_id: str | None = None
    ) -> str:
        started = time.perf_counter()
        answer = await self._qa.answer(document, question)
        self._audit("question", session_id, started, document, question=question)
        return answer

    async def get_suggested_questions(self, document: Optional[str]) -> List[str]:
        return await self._qa.suggest_questions(document)

    async def check_availability(self) -> Dict[str, Availability]:
        return await self.gateway.check_availability()

    def _audit(
        self,
        event: str,
        session_id: str | None,
        started: float,
        document: Optional[str],
        **fields: object,
    ) -> None:
        record: Dict[str, object] = {
            "event": event,
            "session_id": session_id,
            "document_chars": len(document.strip()) if document else 0,
            "duration_ms": round((time.perf_counter() - started) * 1000.0, 3),
        }
        record.update(fields)
        AUDIT_LOGGER.info(record)


_analysis_service: AnalysisService | None = None


def get_analysis_service() -> AnalysisService:
    """FastAPI dependency returning the shared :class:`AnalysisService` instance."""

    global _analysis_service
    if _analysis_service is None:
        _analysis_service = AnalysisService()
    return _analysis_service


__all__ = [
    "AnalysisService",
    "DocumentNotFound",
    "KeyPointsResult",
    "get_analysis_service",
]
