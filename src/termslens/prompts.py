"""Prompt templates for the terms-of-service analysis features."""
from __future__ import annotations

from typing import Iterable, List, Sequence

from termslens.models import KeyPoint, SummaryOptions

SHARED_CONTEXT = "This is a terms of service or privacy policy document"

JSON_SYSTEM_PROMPT = (
    "You are a JSON generator. You MUST respond ONLY with valid JSON. "
    "Do not include any conversational text, explanations, or markdown formatting."
)
JSON_FOOTER = "\n\nReturn ONLY the JSON (no other text), nothing else."

_KEY_POINT_SCHEMA = """Return a JSON array:
[{"point": "description", "importance": "high", "category": "privacy"}]

Valid importance: "high", "medium", "low"
Valid category: "privacy", "data", "rights", "legal", "financial", "other\""""

QA_SYSTEM_PROMPT = """You are analyzing a terms of service or privacy policy document. Answer the user's question based ONLY on the provided document content.

Rules:
- If the answer is in the document, provide a clear, concise answer
- Quote relevant sections when helpful
- If the information is not in the document, say "This information is not found in the document"
- Be honest if you're uncertain
- Keep answers focused and relevant

Answer the question clearly and helpfully."""

DETECTION_SYSTEM_PROMPT = (
    "You are a language detector. Respond ONLY with the ISO 639-1 language code (2 letters) "
    "of the text. Examples: en, es, fr, de, ja, zh. Nothing else."
)


def key_points_prompt(document: str) -> str:
    return (
        "Analyze this terms of service/privacy policy and extract 3-7 MOST IMPORTANT points.\n\n"
        "Focus on: data collection, user rights, privacy, restrictions, legal terms, changes, "
        "termination, third-party sharing, payments.\n\n"
        f"{_KEY_POINT_SCHEMA}{JSON_FOOTER}\n\n"
        f"Document:\n{document}"
    )


def rank_key_points_prompt(points: Sequence[KeyPoint], limit: int) -> str:
    lines = "\n".join(
        f"{number}. [{point.importance.value}] [{point.category.value}] {point.point}"
        for number, point in enumerate(points, start=1)
    )
    return (
        f"Deduplicate, merge related points, and keep TOP {limit} most important.\n\n"
        f"{_KEY_POINT_SCHEMA.replace('Return a JSON array', 'Return JSON array')}{JSON_FOOTER}\n\n"
        f"Points:\n{lines}"
    )


def merge_summaries_system_prompt(options: SummaryOptions) -> str:
    length = options.length.value
    fmt = options.format.value
    return (
        "You are summarizing a terms of service or privacy policy document. You will receive "
        "summaries from different parts of the document. Your task is to merge them into one "
        f"coherent, well-organized {length} summary in {fmt} format.\n\n"
        "Rules:\n"
        "- Remove duplicate information\n"
        "- Organize logically (don't just concatenate)\n"
        "- Maintain the most important points from all parts\n"
        f"- Use {fmt} formatting\n"
        f"- Keep the {length} length constraint\n\n"
        "Respond **ONLY** with the merged summary, nothing else."
    )


def label_parts(fragments: Iterable[tuple[int, str]], template: str = "Part {number}:\n{text}") -> List[str]:
    return [template.format(number=index + 1, text=text) for index, text in fragments]


def answer_prompt(document: str, question: str) -> str:
    return f"Document:\n\n{document}\n\n---\n\nQuestion: {question}"


def relevance_prompt(question: str, chunk_text: str, number: int, total: int, preview_chars: int = 1000) -> str:
    return (
        "Rate relevance (0-10) of this chunk for answering the question.\n\n"
        'Return JSON: {"score": 7, "reasoning": "brief explanation"}\n\n'
        f"Score: 0-3: Not relevant, 4-6: Somewhat relevant, 7-10: Highly relevant{JSON_FOOTER}\n\n"
        f"Question: {question}\n\n"
        f"Chunk (Part {number} of {total}):\n{chunk_text[:preview_chars]}..."
    )


def suggested_questions_prompt(preview: str, count: int = 5) -> str:
    example = ", ".join(f'"Question {number}?"' for number in range(1, count + 1))
    return (
        f"Generate {count} helpful questions users commonly want to know about this "
        "terms/privacy document.\n\n"
        "Focus on: data collection, data usage, account deletion, privacy rights, concerning clauses.\n\n"
        f"Return JSON array: [{example}]{JSON_FOOTER}\n\n"
        f"Document preview:\n{preview}"
    )


def translation_system_prompt(target_language: str) -> str:
    return (
        f"You are a translator. Translate the following text to {target_language}. "
        "Preserve formatting and structure. Only respond with the translation, nothing else."
    )


__all__ = [
    "DETECTION_SYSTEM_PROMPT",
    "JSON_FOOTER",
    "JSON_SYSTEM_PROMPT",
    "QA_SYSTEM_PROMPT",
    "SHARED_CONTEXT",
    "answer_prompt",
    "key_points_prompt",
    "label_parts",
    "merge_summaries_system_prompt",
    "rank_key_points_prompt",
    "relevance_prompt",
    "suggested_questions_prompt",
    "translation_system_prompt",
]
