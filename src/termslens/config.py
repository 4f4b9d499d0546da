"""Configuration snapshot passed into every pipeline invocation."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

LOGGER = logging.getLogger(__name__)

MAX_DOCUMENT_CHARS = 50_000
MAX_CHUNK_CHARS = 3_500
CHUNK_OVERLAP_CHARS = 200
TRANSLATION_MODEL_TEMPLATE = "Helsinki-NLP/opus-mt-{source}-{target}"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None:
        return default
    if value.strip().lower() in {"", "none", "off"}:
        return None
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_choice(name: str, choices: type[Enum], default: str) -> str:
    value = _env_str(name, default)
    try:
        return choices(value.lower()).value
    except ValueError:
        LOGGER.warning("Invalid value for %s: %s; using default %s", name, value, default)
        return default


@dataclass(frozen=True, slots=True)
class ChunkingLimits:
    """Size limits applied by the chunker."""

    max_document_chars: int = MAX_DOCUMENT_CHARS
    max_chunk_chars: int = MAX_CHUNK_CHARS
    overlap_chars: int = CHUNK_OVERLAP_CHARS

    def __post_init__(self) -> None:
        if self.max_chunk_chars <= 0:
            raise ValueError("max_chunk_chars must be a positive integer")
        if self.overlap_chars < 0:
            raise ValueError("overlap_chars must be a non-negative integer")
        if self.max_document_chars < self.max_chunk_chars:
            raise ValueError("max_document_chars must not be smaller than max_chunk_chars")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Backend selection for the inference engines behind the gateway."""

    backend: str = "mock"
    model_path: Optional[str] = None
    summarizer_model_path: Optional[str] = None
    translation_model_template: str = TRANSLATION_MODEL_TEMPLATE
    max_new_tokens: int = 512
    device: str = "auto"


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Immutable settings snapshot.

    The caller loads this once (usually via :meth:`from_env`) and hands the same
    snapshot to every pipeline call; nothing in the pipeline mutates it.
    """

    limits: ChunkingLimits = field(default_factory=ChunkingLimits)
    key_point_limit: int = 10
    relevance_top_k: int = 3
    relevance_min_score: int = 0
    request_timeout_seconds: Optional[float] = 120.0
    default_language: str = "en"
    default_summary_type: str = "key-points"
    default_summary_length: str = "short"
    engines: EngineSettings = field(default_factory=EngineSettings)

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        from termslens.models import SummaryLength, SummaryType

        limits = ChunkingLimits(
            max_document_chars=_env_int("TERMSLENS_MAX_DOCUMENT_CHARS", MAX_DOCUMENT_CHARS),
            max_chunk_chars=_env_int("TERMSLENS_MAX_CHUNK_CHARS", MAX_CHUNK_CHARS),
            overlap_chars=_env_int("TERMSLENS_CHUNK_OVERLAP", CHUNK_OVERLAP_CHARS),
        )
        backend = "mock" if _env_flag("LLM_STUB") else _env_str("LLM_BACKEND", "mock").lower()
        engines = EngineSettings(
            backend=backend,
            model_path=os.getenv("LLM_MODEL_PATH") or None,
            summarizer_model_path=os.getenv("SUMMARIZER_MODEL_PATH") or None,
            translation_model_template=_env_str(
                "TRANSLATION_MODEL_TEMPLATE", TRANSLATION_MODEL_TEMPLATE
            ),
            max_new_tokens=_env_int("LLM_MAX_TOKENS", 512),
            device=_env_str("LLM_DEVICE", "auto").lower(),
        )
        return cls(
            limits=limits,
            key_point_limit=_env_int("TERMSLENS_KEY_POINT_LIMIT", 10),
            relevance_top_k=_env_int("TERMSLENS_RELEVANCE_TOP_K", 3),
            relevance_min_score=_env_int("TERMSLENS_RELEVANCE_MIN_SCORE", 0),
            request_timeout_seconds=_env_float("TERMSLENS_REQUEST_TIMEOUT", 120.0),
            default_language=_env_str("TERMSLENS_DEFAULT_LANGUAGE", "en"),
            default_summary_type=_env_choice("TERMSLENS_SUMMARY_TYPE", SummaryType, "key-points"),
            default_summary_length=_env_choice("TERMSLENS_SUMMARY_LENGTH", SummaryLength, "short"),
            engines=engines,
        )


__all__ = [
    "AnalysisConfig",
    "CHUNK_OVERLAP_CHARS",
    "ChunkingLimits",
    "EngineSettings",
    "MAX_CHUNK_CHARS",
    "MAX_DOCUMENT_CHARS",
]
