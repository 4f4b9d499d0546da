"""API router exposing the analysis features for a session's document."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from termslens.errors import (
    ContentTooLarge,
    InvalidInput,
    ModelUnavailable,
    PipelineError,
    TermsLensError,
)
from termslens.models import SummaryFormat, SummaryLength, SummaryOptions, SummaryType
from termslens.services.analysis import AnalysisService, DocumentNotFound, get_analysis_service

router = APIRouter(prefix="/sessions", tags=["analysis"])


class DocumentRequest(BaseModel):
    """Plain document text to analyse in this session."""

    text: str = Field(..., description="Terms of service or privacy policy text.")


class DocumentResponse(BaseModel):
    session_id: str
    source: str
    chars: int


class DocumentOverride(BaseModel):
    text: Optional[str] = Field(
        None, description="Analyse this text instead of the session's stored document."
    )


class SummaryRequest(DocumentOverride):
    type: Optional[SummaryType] = None
    format: Optional[SummaryFormat] = None
    length: Optional[SummaryLength] = None


class SummaryResponse(BaseModel):
    session_id: str
    summary: str


class KeyPointModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    point: str
    importance: str
    category: str
    chunk_index: Optional[int] = None


class KeyPointsResponse(BaseModel):
    session_id: str
    points: list[KeyPointModel]
    formatted: str


class TranslationRequest(DocumentOverride):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_language: Optional[str] = None
    source_language: Optional[str] = None


class TranslationResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    translated_text: str
    source_language: str
    target_language: str
    note: Optional[str] = None
    chunks_processed: Optional[int] = None


class QuestionRequest(DocumentOverride):
    question: str = Field("", description="Question about the document.")


class QuestionResponse(BaseModel):
    session_id: str
    question: str
    answer: str


class SuggestedQuestionsResponse(BaseModel):
    session_id: str
    questions: list[str]


def _http_error(error: TermsLensError) -> HTTPException:
    if isinstance(error, DocumentNotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ContentTooLarge):
        return HTTPException(status_code=413, detail=str(error))
    if isinstance(error, InvalidInput):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, ModelUnavailable) or isinstance(error.__cause__, ModelUnavailable):
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, PipelineError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _resolve_document(service: AnalysisService, session_id: str, override: DocumentOverride) -> str:
    if override.text is not None:
        return override.text
    return service.get_document(session_id)


@router.put("/{session_id}/document", response_model=DocumentResponse)
def put_document(
    session_id: str,
    request: DocumentRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> DocumentResponse:
    """Store document text for the session, replacing any previous one."""

    stored = service.store_document(session_id, request.text)
    return DocumentResponse(session_id=session_id, source=stored.source, chars=len(stored.text))


@router.post("/{session_id}/document/upload", response_model=DocumentResponse)
async def upload_document(
    session_id: str,
    file: UploadFile = File(...),
    service: AnalysisService = Depends(get_analysis_service),
) -> DocumentResponse:
    """Extract text from a TXT, PDF or DOCX upload and store it for the session."""

    data = await file.read()
    try:
        stored = service.store_upload(session_id, data, file.filename or "upload.txt", file.content_type)
    except TermsLensError as exc:
        raise _http_error(exc) from exc
    return DocumentResponse(session_id=session_id, source=stored.source, chars=len(stored.text))


@router.delete("/{session_id}/document", status_code=204)
def delete_document(
    session_id: str,
    service: AnalysisService = Depends(get_analysis_service),
) -> None:
    if not service.clear_document(session_id):
        raise _http_error(DocumentNotFound(session_id))


@router.post("/{session_id}/summary", response_model=SummaryResponse)
async def summarize(
    session_id: str,
    request: SummaryRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> SummaryResponse:
    defaults = SummaryOptions(
        type=SummaryType(service.config.default_summary_type),
        length=SummaryLength(service.config.default_summary_length),
    )
    options = SummaryOptions(
        type=request.type or defaults.type,
        format=request.format or defaults.format,
        length=request.length or defaults.length,
    )
    try:
        document = _resolve_document(service, session_id, request)
        summary = await service.summarize_content(document, options, session_id=session_id)
    except TermsLensError as exc:
        raise _http_error(exc) from exc
    return SummaryResponse(session_id=session_id, summary=summary)


@router.post("/{session_id}/key-points", response_model=KeyPointsResponse)
async def key_points(
    session_id: str,
    request: DocumentOverride,
    service: AnalysisService = Depends(get_analysis_service),
) -> KeyPointsResponse:
    try:
        document = _resolve_document(service, session_id, request)
        report = await service.key_points_report(document, session_id=session_id)
    except TermsLensError as exc:
        raise _http_error(exc) from exc
    return KeyPointsResponse(
        session_id=session_id,
        points=[KeyPointModel.model_validate(point.as_dict()) for point in report.points],
        formatted=report.formatted,
    )


@router.post(
    "/{session_id}/translation",
    response_model=TranslationResponse,
    response_model_exclude_none=True,
)
async def translate(
    session_id: str,
    request: TranslationRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> TranslationResponse:
    """Translate the document; the response uses camelCase field names."""

    try:
        document = _resolve_document(service, session_id, request)
        result = await service.translate_content(
            document,
            request.target_language,
            request.source_language,
            session_id=session_id,
        )
    except TermsLensError as exc:
        raise _http_error(exc) from exc
    return TranslationResponse.model_validate(result.as_dict())


@router.post("/{session_id}/questions", response_model=QuestionResponse)
async def ask_question(
    session_id: str,
    request: QuestionRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> QuestionResponse:
    try:
        document = _resolve_document(service, session_id, request)
        answer = await service.answer_question(document, request.question, session_id=session_id)
    except TermsLensError as exc:
        raise _http_error(exc) from exc
    return QuestionResponse(session_id=session_id, question=request.question, answer=answer)


@router.get("/{session_id}/suggested-questions", response_model=SuggestedQuestionsResponse)
async def suggested_questions(
    session_id: str,
    service: AnalysisService = Depends(get_analysis_service),
) -> SuggestedQuestionsResponse:
    try:
        document = service.get_document(session_id)
    except DocumentNotFound as exc:
        raise _http_error(exc) from exc
    questions = await service.get_suggested_questions(document)
    return SuggestedQuestionsResponse(session_id=session_id, questions=questions)
