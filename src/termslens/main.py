import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from termslens.api.analysis import router as analysis_router
from termslens.llm import Availability
from termslens.logging_config import configure_logging
from termslens.services.analysis import AnalysisService, get_analysis_service
from termslens.telemetry import emit_app_startup_event

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="TermsLens API")
app.include_router(analysis_router)


class LanguageModel(BaseModel):
    code: str
    name: str


@app.on_event("startup")
async def _startup() -> None:
    emit_app_startup_event()


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
async def healthcheck(service: AnalysisService = Depends(get_analysis_service)) -> str:
    """Liveness probe; fails when no completion engine can be used."""

    report = await service.check_availability()
    if report.get("completion") is Availability.UNAVAILABLE:
        raise HTTPException(status_code=503, detail="Completion engine is not available")
    return "ok"


@app.get("/capabilities")
async def capabilities(service: AnalysisService = Depends(get_analysis_service)) -> dict[str, str]:
    """Report availability for each engine kind."""

    report = await service.check_availability()
    return {name: availability.value for name, availability in report.items()}


@app.get("/languages", response_model=list[LanguageModel])
def languages(service: AnalysisService = Depends(get_analysis_service)) -> list[LanguageModel]:
    return [LanguageModel(code=language.code, name=language.name) for language in service.get_supported_languages()]
