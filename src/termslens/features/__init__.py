"""Feature pipelines built on the chunker, gateway and merger."""

from .key_points import KeyPointExtractor, format_key_points
from .qa import QuestionAnswerer
from .summarizer import Summarizer
from .translator import Translator, get_supported_languages

__all__ = [
    "KeyPointExtractor",
    "QuestionAnswerer",
    "Summarizer",
    "Translator",
    "format_key_points",
    "get_supported_languages",
]
