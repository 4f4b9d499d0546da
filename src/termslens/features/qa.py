"""Question answering over a document, with chunk relevance ranking."""
from __future__ import annotations

import logging
from typing import List, Optional

from termslens.chunker import Chunk
from termslens.errors import InvalidInput, ModelError, ModelUnavailable
from termslens.fanout import ChunkConcurrency
from termslens.features.base import FeaturePipeline
from termslens.llm.gateway import CompletionMode
from termslens.merger import PART_SEPARATOR
from termslens.models import RelevanceScore
from termslens.prompts import QA_SYSTEM_PROMPT, answer_prompt, relevance_prompt, suggested_questions_prompt
from termslens.structured import decode_relevance, decode_string_list

LOGGER = logging.getLogger(__name__)

NOT_FOUND_ANSWER = "I couldn't find relevant information in the document to answer this question."
SUGGESTION_PREVIEW_CHARS = 2000
DEFAULT_SUGGESTED_QUESTIONS = (
    "What personal data is collected?",
    "How is my data shared with third parties?",
    "Can I delete my account and data?",
    "What are my privacy rights?",
    "Are there any important restrictions I should know about?",
)


def keyword_match_score(question: str, chunk: Chunk) -> RelevanceScore:
    """Score a chunk by how many of the question's longer words it contains."""

    keywords = [word for word in question.lower().split() if len(word) > 3]
    haystack = chunk.text.lower()
    matches = sum(1 for keyword in keywords if keyword in haystack)
    return RelevanceScore(chunk=chunk, score=min(10, matches * 2), reasoning="Keyword matching fallback")


class QuestionAnswerer(FeaturePipeline):
    name = "Q&A"
    concurrency = ChunkConcurrency.PARALLEL

    async def answer(self, document: Optional[str], question: Optional[str]) -> str:
        if question is None or not question.strip():
            raise InvalidInput("Please provide a question")

        with self.guard():
            chunks = self.prepare(document)
            if len(chunks) == 1:
                return await self._answer_from(chunks[0].text, question)

            relevant = await self.find_relevant_chunks(chunks, question)
            if not relevant:
                return NOT_FOUND_ANSWER

            context = PART_SEPARATOR.join(f"[Part {chunk.index + 1}]\n{chunk.text}" for chunk in relevant)
            return await self._answer_from(context, question)

    async def find_relevant_chunks(self, chunks: List[Chunk], question: str) -> List[Chunk]:
        """Return up to ``relevance_top_k`` chunks scoring above the minimum, best first."""

        async def _score(chunk: Chunk) -> RelevanceScore:
            return await self.score_chunk(chunk, question)

        scores = await self.map_chunks(chunks, _score)
        ranked = sorted(scores, key=lambda item: item.score, reverse=True)
        top = ranked[: self.config.relevance_top_k]
        LOGGER.debug("Relevance scores: %s", [(item.chunk.index, item.score) for item in ranked])
        return [item.chunk for item in top if item.score > self.config.relevance_min_score]

    async def score_chunk(self, chunk: Chunk, question: str) -> RelevanceScore:
        try:
            score, reasoning = await self.gateway.structured_completion(
                relevance_prompt(question, chunk.text, chunk.index + 1, chunk.total),
                decode_relevance,
            )
        except (ModelError, ModelUnavailable) as error:
            LOGGER.warning("Relevance scoring failed for chunk %s: %s", chunk.index, error)
            return keyword_match_score(question, chunk)
        return RelevanceScore(chunk=chunk, score=score, reasoning=reasoning)

    async def suggest_questions(self, document: Optional[str]) -> List[str]:
        """Generate five starter questions; falls back to a fixed list on any failure."""

        if document is None or not document.strip():
            return list(DEFAULT_SUGGESTED_QUESTIONS)
        try:
            return await self.gateway.structured_completion(
                suggested_questions_prompt(document[:SUGGESTION_PREVIEW_CHARS]),
                decode_string_list,
            )
        except (ModelError, ModelUnavailable) as error:
            LOGGER.warning("Suggested questions generation failed: %s", error)
            return list(DEFAULT_SUGGESTED_QUESTIONS)

    async def _answer_from(self, text: str, question: str) -> str:
        return await self.gateway.completion(
            answer_prompt(text, question),
            QA_SYSTEM_PROMPT,
            CompletionMode.CREATIVE,
        )


__all__ = [
    "DEFAULT_SUGGESTED_QUESTIONS",
    "NOT_FOUND_ANSWER",
    "QuestionAnswerer",
    "keyword_match_score",
]
