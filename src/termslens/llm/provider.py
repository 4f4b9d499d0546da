"""Build the engine set behind the gateway from the configured backend."""

from __future__ import annotations

import logging

from termslens.config import EngineSettings
from termslens.llm.detection import LangdetectDetectorEngine
from termslens.llm.engines import EngineSet
from termslens.llm.mock import MockCompletionEngine, MockSummarizerEngine, MockTranslatorEngine
from termslens.llm.transformers_engine import (
    TransformersCompletionEngine,
    TransformersSummarizerEngine,
    TransformersTranslatorEngine,
    heavy_dependencies_available,
)
from termslens.telemetry import emit_llm_provider_init

LOGGER = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("mock", "transformers")


def build_engines(settings: EngineSettings) -> EngineSet:
    """Return the engines for ``settings.backend``.

    The transformers backend only gets a summarizer when
    ``SUMMARIZER_MODEL_PATH`` is set; without one, summarization requests
    surface as :class:`~termslens.errors.ModelUnavailable`.
    """

    backend = settings.backend
    if backend not in SUPPORTED_BACKENDS:
        LOGGER.warning("Unknown LLM backend %r; using mock engines.", backend)
        backend = "mock"

    if backend == "transformers" and not heavy_dependencies_available():
        LOGGER.warning("LLM_BACKEND=transformers but PyTorch/Transformers are missing; using mock engines.")
        backend = "mock"

    detector = LangdetectDetectorEngine()
    if backend == "mock":
        engines = EngineSet(
            completion=MockCompletionEngine(),
            summarizer=MockSummarizerEngine(),
            translator=MockTranslatorEngine(),
            detector=detector,
        )
    else:
        engines = EngineSet(
            completion=TransformersCompletionEngine(settings),
            summarizer=TransformersSummarizerEngine(settings) if settings.summarizer_model_path else None,
            translator=TransformersTranslatorEngine(settings),
            detector=detector,
        )

    for name in ("completion", "summarizer", "translator", "detector"):
        engine = getattr(engines, name)
        emit_llm_provider_init(
            engine=name,
            provider=backend if engine is not None else "none",
            ready=engine is not None,
            reason=engine.unavailable_reason() if engine is not None else "not configured",
        )
    return engines


__all__ = ["SUPPORTED_BACKENDS", "build_engines"]
