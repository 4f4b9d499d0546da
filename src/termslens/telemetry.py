"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations
import logging
import os
import platform
import subprocess
import sys
import time
import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from termslens.config import ChunkingLimits


LOGGER = logging.getLogger("termslens.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "LLM_BACKEND",
    "LLM_STUB",
    "LLM_MODEL_PATH",
    "LLM_DEVICE",
    "LLM_MAX_TOKENS",
    "SUMMARIZER_MODEL_PATH",
    "TRANSLATION_MODEL_TEMPLATE",
    "TERMSLENS_MAX_DOCUMENT_CHARS",
    "TERMSLENS_MAX_CHUNK_CHARS",
    "TERMSLENS_CHUNK_OVERLAP",
    "TERMSLENS_KEY_POINT_LIMIT",
    "TERMSLENS_RELEVANCE_TOP_K",
    "TERMSLENS_RELEVANCE_MIN_SCORE",
    "TERMSLENS_REQUEST_TIMEOUT",
    "TERMSLENS_DEFAULT_LANGUAGE",
)


def _run_command(command: list[str], *, timeout: float = 5.0) -> tuple[int, str, str]:
    try:
        completed = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except Exception as error:  # pragma: no cover - depends on runtime
        return 1, "", str(error)
    stdout = completed.stdout.strip()
    stderr = completed.stderr.strip()
    return completed.returncode, stdout, stderr


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    session_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if session_id:
        event["session_id"] = session_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "cwd": str(Path.cwd()),
        "commit": _resolve_git_commit(),
        "env": env_values,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    log_event(LOGGER, "app.startup", details=details)


def emit_llm_provider_init(*, engine: str, provider: str, ready: bool, reason: str | None = None) -> None:
    details = {
        "engine": engine,
        "provider": provider,
        "ready": ready,
        "reason": reason,
    }
    log_event(LOGGER, "llm.provider.init", details=details)


def emit_chunking_event(*, length: int, chunks: int, limits: "ChunkingLimits") -> None:
    details = {
        "length": length,
        "chunks": chunks,
        "max_chunk_chars": limits.max_chunk_chars,
        "overlap_chars": limits.overlap_chars,
    }
    log_event(LOGGER, "chunking.split", level="debug", details=details)


def emit_inference_request(
    *,
    req_id: str,
    operation: str,
    prompt_preview: str,
    prompt_len: int,
    temperature: float | None = None,
    top_k: int | None = None,
) -> None:
    details = {
        "operation": operation,
        "prompt_preview": prompt_preview[:120],
        "prompt_len": prompt_len,
        "temperature": temperature,
        "top_k": top_k,
    }
    log_event(LOGGER, "inference.request", level="debug", req_id=req_id, details=details)


def emit_inference_result(
    *,
    req_id: str,
    operation: str,
    duration_ms: float,
    answer_preview: str | None,
    fallback: bool = False,
    error: BaseException | None = None,
) -> None:
    details = {
        "operation": operation,
        "answer_preview": (answer_preview or "")[:120],
        "fallback": fallback,
    }
    level = "warning" if error else "debug"
    log_event(
        LOGGER,
        "inference.result",
        level=level,
        req_id=req_id,
        duration_ms=duration_ms,
        details=details,
        exc=error,
    )


def emit_merge_event(*, strategy: str, fragments: int, errors: list[str]) -> None:
    details = {"strategy": strategy, "fragments": fragments, "errors": errors}
    if errors:
        log_event(LOGGER, "merge.fallback", level="warning", details=details)
    else:
        log_event(LOGGER, "merge.complete", details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    session_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        session_id=session_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


def _resolve_git_commit() -> Optional[str]:
    returncode, stdout, _ = _run_command(["git", "rev-parse", "HEAD"])
    if returncode != 0:
        return None
    return stdout.strip() or None


__all__ = [
    "emit_app_startup_event",
    "emit_chunking_event",
    "emit_exception",
    "emit_inference_request",
    "emit_inference_result",
    "emit_llm_provider_init",
    "emit_merge_event",
    "log_event",
    "traced_duration",
]
