"""Exception hierarchy shared by the chunking pipeline and its engines."""
from __future__ import annotations


class TermsLensError(RuntimeError):
    """Base exception for all analysis failures."""


class InvalidInput(TermsLensError, ValueError):
    """Raised when content or a question is missing or unusable."""


class ContentTooLarge(InvalidInput):
    """Raised when a document exceeds the configured size ceiling."""

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(f"Content too long ({length} chars). Maximum: {limit} chars.")
        self.length = length
        self.limit = limit


class ModelUnavailable(TermsLensError):
    """Raised when an inference engine is unsupported or disabled."""

    def __init__(self, engine: str, reason: str | None = None) -> None:
        message = f"{engine} engine is not available"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.engine = engine
        self.reason = reason


class ModelError(TermsLensError):
    """Raised when a single engine call fails at runtime."""


class ParseError(ModelError):
    """Raised when no JSON literal can be decoded from a model response."""


class ShapeError(ParseError):
    """Raised when decoded JSON does not match the expected schema."""


class PipelineError(TermsLensError):
    """Wraps a failure at a pipeline entry point, prefixed with the pipeline name."""

    def __init__(self, pipeline: str, error: BaseException) -> None:
        super().__init__(f"{pipeline} failed: {error}")
        self.pipeline = pipeline
        self.__cause__ = error


__all__ = [
    "ContentTooLarge",
    "InvalidInput",
    "ModelError",
    "ModelUnavailable",
    "ParseError",
    "PipelineError",
    "ShapeError",
    "TermsLensError",
]
