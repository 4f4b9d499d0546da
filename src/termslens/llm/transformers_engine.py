"""Local HuggingFace Transformers backends for the inference engines."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from termslens.config import EngineSettings
from termslens.errors import ModelError, ModelUnavailable
from termslens.llm.engines import (
    Availability,
    CompletionEngine,
    EngineSession,
    SummarizerEngine,
    TranslatorEngine,
)
from termslens.models import SummaryFormat, SummaryLength, SummaryOptions, SummaryType
from termslens.telemetry import emit_exception, log_event

try:  # pragma: no cover - optional heavy dependencies
    import torch
    from transformers import AutoModelForCausalLM, AutoTokenizer, pipeline
except Exception as import_error:  # pragma: no cover - optional heavy deps
    AutoModelForCausalLM = None
    AutoTokenizer = None
    pipeline = None
    torch = None  # type: ignore[assignment]
    _IMPORT_ERROR: Optional[Exception] = import_error
else:  # pragma: no cover - executed when heavy deps installed
    _IMPORT_ERROR = None


LOGGER = logging.getLogger(__name__)

_SUMMARY_MAX_TOKENS = {
    SummaryLength.SHORT: 96,
    SummaryLength.MEDIUM: 192,
    SummaryLength.LONG: 384,
}
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


def heavy_dependencies_available() -> bool:
    return _IMPORT_ERROR is None


def _resolve_device(preference: str) -> str:
    want = preference.strip().lower()
    if want == "cpu" or torch is None:
        return "cpu"
    return "cuda" if torch.cuda.is_available() else "cpu"


def _local_or_remote(model_path: Optional[str]) -> Availability:
    if not model_path or not heavy_dependencies_available():
        return Availability.UNAVAILABLE
    if Path(model_path).expanduser().exists():
        return Availability.AVAILABLE
    # not on disk: treat as a hub id fetched on first use
    return Availability.NEEDS_DOWNLOAD


def _require_heavy(engine: str) -> None:
    if not heavy_dependencies_available():
        raise ModelUnavailable(engine, f"PyTorch/Transformers are not installed ({_IMPORT_ERROR})")


class _CompletionSession(EngineSession):
    def __init__(self, engine: "TransformersCompletionEngine", system_prompt: str, temperature: float, top_k: int) -> None:
        self._engine = engine
        self._system_prompt = system_prompt.strip()
        self._temperature = temperature
        self._top_k = top_k

    async def run(self, text: str) -> str:
        prompt = f"{self._system_prompt}\n\n{text.strip()}" if self._system_prompt else text.strip()
        return await asyncio.to_thread(self._engine.generate, prompt, self._temperature, self._top_k)


class TransformersCompletionEngine(CompletionEngine):
    """Lazy-loading wrapper around ``AutoModelForCausalLM``."""

    def __init__(self, settings: EngineSettings) -> None:
        self._settings = settings
        self._model: Any = None
        self._tokenizer: Any = None
        self._lock = threading.RLock()
        self._load_error: Optional[Exception] = None
        self._device = "cpu"

    async def availability(self) -> Availability:
        if self._model is not None:
            return Availability.AVAILABLE
        if self._load_error is not None:
            return Availability.UNAVAILABLE
        return _local_or_remote(self._settings.model_path)

    def unavailable_reason(self) -> Optional[str]:
        if not heavy_dependencies_available():
            return "PyTorch/Transformers are not installed"
        if not self._settings.model_path:
            return "LLM_MODEL_PATH is not configured"
        if self._load_error is not None:
            return str(self._load_error)
        return None

    async def create_session(self, system_prompt: str, *, temperature: float, top_k: int) -> EngineSession:
        await asyncio.to_thread(self._ensure_loaded)
        return _CompletionSession(self, system_prompt, temperature, top_k)

    def _ensure_loaded(self) -> None:
        if self._model is not None:
            return
        with self._lock:
            if self._model is not None:
                return
            _require_heavy(self.name)
            if not self._settings.model_path:
                raise ModelUnavailable(self.name, "LLM_MODEL_PATH is not configured")

            device = _resolve_device(self._settings.device)
            use_cuda = device == "cuda"
            started = time.perf_counter()
            LOGGER.info("trying to load LLM from %s (device=%s)", self._settings.model_path, device)
            try:
                model = AutoModelForCausalLM.from_pretrained(
                    self._settings.model_path,
                    device_map="auto" if use_cuda else "cpu",
                    torch_dtype="auto" if use_cuda else torch.float32,
                    low_cpu_mem_usage=True,
                    trust_remote_code=False,
                )
                tokenizer = AutoTokenizer.from_pretrained(self._settings.model_path)
            except Exception as error:  # pragma: no cover - depends on hw/config
                self._load_error = error
                emit_exception(module=__name__, error=error)
                raise ModelUnavailable(self.name, f"Failed to load the language model: {error}") from error

            if tokenizer.pad_token_id is None and tokenizer.eos_token_id is not None:  # pragma: no cover
                tokenizer.pad_token_id = tokenizer.eos_token_id

            self._model = model
            self._tokenizer = tokenizer
            self._device = "cuda:0" if use_cuda else "cpu"
            self._load_error = None
            log_event(
                LOGGER,
                "model.load.success",
                duration_ms=(time.perf_counter() - started) * 1000.0,
                details={"model": self._settings.model_path, "device": self._device},
            )

    def generate(self, prompt: str, temperature: float, top_k: int) -> str:  # pragma: no cover - needs weights
        try:
            inputs = self._tokenizer(
                prompt,
                return_tensors="pt",
                truncation=True,
                max_length=getattr(self._tokenizer, "model_max_length", 4096),
            ).to(self._device)
            generation_args: Dict[str, Any] = {
                "max_new_tokens": self._settings.max_new_tokens,
                "pad_token_id": self._tokenizer.pad_token_id,
                "eos_token_id": self._tokenizer.eos_token_id,
            }
            if temperature > 0.0:
                generation_args.update(do_sample=True, temperature=temperature, top_k=top_k)
            else:
                generation_args["do_sample"] = False
            output_ids = self._model.generate(**inputs, **generation_args)
            generated = output_ids[0, inputs["input_ids"].shape[1] :]
            return self._tokenizer.decode(generated, skip_special_tokens=True).strip()
        except Exception as error:
            LOGGER.exception("LLM generation failed")
            raise ModelError("LLM generation failed") from error


class _PipelineSession(EngineSession):
    def __init__(self, runner: Any, postprocess=None, **call_kwargs: Any) -> None:
        self._runner = runner
        self._postprocess = postprocess
        self._call_kwargs = call_kwargs

    async def run(self, text: str) -> str:
        output = await asyncio.to_thread(self._call, text)
        return self._postprocess(output) if self._postprocess else output

    def _call(self, text: str) -> str:  # pragma: no cover - needs weights
        try:
            result = self._runner(text, truncation=True, **self._call_kwargs)
        except Exception as error:
            raise ModelError(f"Pipeline call failed: {error}") from error
        first = result[0] if isinstance(result, list) and result else {}
        return str(first.get("summary_text") or first.get("translation_text") or "").strip()


class _PipelineCache:
    """Loads each transformers pipeline once; sessions never share call state."""

    def __init__(self, task: str, device: str) -> None:
        self._task = task
        self._device = device
        self._pipelines: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, model: str) -> Any:
        with self._lock:
            runner = self._pipelines.get(model)
            if runner is None:
                LOGGER.info("Loading %s pipeline from %s", self._task, model)
                device = 0 if _resolve_device(self._device) == "cuda" else -1
                try:
                    runner = pipeline(self._task, model=model, device=device)
                except Exception as error:  # pragma: no cover - depends on model files
                    emit_exception(module=__name__, error=error)
                    raise ModelUnavailable(self._task, f"Failed to load {model}: {error}") from error
                self._pipelines[model] = runner
            return runner

    def __contains__(self, model: str) -> bool:
        return model in self._pipelines


def _format_summary(options: SummaryOptions):
    def _apply(text: str) -> str:
        if options.type is SummaryType.HEADLINE:
            return _SENTENCE_RE.split(text, maxsplit=1)[0]
        if options.type is SummaryType.KEY_POINTS:
            sentences = [sentence for sentence in _SENTENCE_RE.split(text) if sentence]
            bullet = "- " if options.format is SummaryFormat.MARKDOWN else "* "
            return "\n".join(f"{bullet}{sentence}" for sentence in sentences)
        return text

    return _apply


class TransformersSummarizerEngine(SummarizerEngine):
    """Abstractive summarization through a ``summarization`` pipeline."""

    def __init__(self, settings: EngineSettings) -> None:
        self._settings = settings
        self._cache = _PipelineCache("summarization", settings.device)

    async def availability(self) -> Availability:
        if self._settings.summarizer_model_path in self._cache:
            return Availability.AVAILABLE
        return _local_or_remote(self._settings.summarizer_model_path)

    async def create_session(self, options: SummaryOptions, *, shared_context: str) -> EngineSession:
        del shared_context  # seq2seq summarizers take no instructions
        _require_heavy(self.name)
        if not self._settings.summarizer_model_path:
            raise ModelUnavailable(self.name, "SUMMARIZER_MODEL_PATH is not configured")
        runner = await asyncio.to_thread(self._cache.get, self._settings.summarizer_model_path)
        return _PipelineSession(
            runner,
            postprocess=_format_summary(options),
            max_new_tokens=_SUMMARY_MAX_TOKENS[options.length],
        )


class TransformersTranslatorEngine(TranslatorEngine):
    """Machine translation through per-language-pair ``translation`` pipelines."""

    def __init__(self, settings: EngineSettings) -> None:
        self._settings = settings
        self._cache = _PipelineCache("translation", settings.device)

    async def availability(self) -> Availability:
        if not heavy_dependencies_available() or not self._settings.translation_model_template:
            return Availability.UNAVAILABLE
        return Availability.NEEDS_DOWNLOAD

    async def create_session(self, source_language: str, target_language: str) -> EngineSession:
        _require_heavy(self.name)
        model = self._settings.translation_model_template.format(
            source=source_language, target=target_language
        )
        runner = await asyncio.to_thread(self._cache.get, model)
        return _PipelineSession(runner)


__all__ = [
    "TransformersCompletionEngine",
    "TransformersSummarizerEngine",
    "TransformersTranslatorEngine",
    "heavy_dependencies_available",
]
