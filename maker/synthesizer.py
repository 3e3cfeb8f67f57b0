"""Answer synthesis.

Merges the answers of several resolved sub-questions into one final
answer with a single oracle call, and derives the final confidence from
the synthesis call and the sub-answers.
"""

from __future__ import annotations

import logging
from typing import Any

from maker.consensus.confidence import coerce_confidence, rollup_confidence
from maker.prompts import render_prompt, render_template
from maker.providers.base import Oracle
from maker.schemas.config import SynthesisConfig
from maker.schemas.messages import CompletionRequest
from maker.schemas.results import NO_ANSWER, SubQuestionResult, SynthesisResult
from maker.schemas.voting import ConfidenceLevel

logger = logging.getLogger(__name__)


def parse_synthesis(content: Any) -> tuple[str, ConfidenceLevel]:
    """Parse a synthesis response into (answer, confidence)."""
    if isinstance(content, dict):
        answer = (
            content.get("final_answer")
            or content.get("finalAnswer")
            or content.get("answer")
            or ""
        )
        return str(answer), coerce_confidence(content.get("confidence"))
    if isinstance(content, str):
        return content, ConfidenceLevel.MEDIUM
    return "", ConfidenceLevel.LOW


def format_sub_answers(sub_results: list[SubQuestionResult]) -> str:
    """Enumerate sub-question/answer pairs for a synthesis prompt."""
    return "\n\n".join(
        f"Question {i}: {sr.question}\nAnswer {i}: {sr.answer}"
        for i, sr in enumerate(sub_results, start=1)
    )


def fallback_answer(sub_results: list[SubQuestionResult]) -> str:
    """Concatenate the non-empty sub-answers in order."""
    if not sub_results:
        return NO_ANSWER
    return " ".join(sr.answer.strip() for sr in sub_results if sr.answer and sr.answer.strip())


class Synthesizer:
    """Combines sub-question answers into a coherent final answer."""

    def __init__(self, provider: Oracle, config: SynthesisConfig | None = None) -> None:
        self._provider = provider
        self._config = config or SynthesisConfig()

    @property
    def enabled(self) -> bool:
        """Whether synthesis is enabled."""
        return self._config.enabled

    @property
    def language(self) -> str:
        """Language of the final answer."""
        return self._config.language

    def build_prompt(self, original_question: str, sub_results: list[SubQuestionResult]) -> str:
        """Render the synthesis prompt for the configured language or template."""
        if self._config.prompt:
            return render_template(
                self._config.prompt,
                question=original_question,
                original_question=original_question,
                originalQuestion=original_question,
                answers=format_sub_answers(sub_results),
                language=self._config.language,
            )
        template = "synthesize_de" if self._config.language.lower().startswith("de") else "synthesize"
        return render_prompt(
            template,
            question=original_question,
            sub_results=sub_results,
            language=self._config.language,
        )

    async def synthesize(
        self, original_question: str, sub_results: list[SubQuestionResult]
    ) -> SynthesisResult:
        """Merge sub-answers into one answer.

        No sub-results yields a fixed fallback at low confidence. A single
        sub-result (or disabled synthesis) is returned unchanged without an
        oracle call.
        """
        if not sub_results:
            return SynthesisResult(answer=NO_ANSWER, confidence=ConfidenceLevel.LOW)

        if len(sub_results) == 1 or not self._config.enabled:
            first = sub_results[0]
            return SynthesisResult(answer=first.answer, confidence=first.confidence)

        prompt = self.build_prompt(original_question, sub_results)
        try:
            response = await self._provider.complete(CompletionRequest.from_prompt(prompt))
            answer, synthesis_confidence = parse_synthesis(response.content)
        except Exception as e:
            logger.warning("Synthesis call failed, concatenating sub-answers: %s", e)
            answer, synthesis_confidence = "", ConfidenceLevel.LOW

        if not answer.strip():
            answer = fallback_answer(sub_results)

        return SynthesisResult(
            answer=answer,
            confidence=rollup_confidence(
                synthesis_confidence, (sr.confidence for sr in sub_results),
            ),
        )
