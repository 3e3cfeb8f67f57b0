"""Question classification and decomposition.

Classifies a question as atomic or compound and, when compound, splits it
into ordered atomic sub-questions plus a synthesis strategy tag. Any
failure along the way degrades to treating the question as atomic.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from maker.prompts import render_prompt, render_template
from maker.providers.base import Oracle
from maker.schemas.config import DecompositionConfig
from maker.schemas.messages import CompletionRequest
from maker.schemas.questions import (
    Classification,
    DecompositionResult,
    QuestionType,
    SubQuestion,
)

logger = logging.getLogger(__name__)

# Strategy tag for plans that need no synthesis
_NO_SYNTHESIS = "none"
_DEFAULT_STRATEGY = "combine"

_TRUE_STRINGS = {"true", "yes", "1"}


def _pick(data: dict[str, Any], *keys: str) -> Any:
    """Return the first present value among ``keys`` (snake_case or camelCase)."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_question_type(value: Any) -> QuestionType:
    try:
        return QuestionType(str(value).strip().lower())
    except ValueError:
        return QuestionType.FACTUAL


def parse_classification(content: Any) -> Classification:
    """Parse a classifier response, defaulting any missing or invalid field."""
    if isinstance(content, Classification):
        return content
    if not isinstance(content, dict):
        return Classification()

    try:
        complexity = int(_pick(content, "complexity") or 5)
    except (TypeError, ValueError):
        complexity = 5

    reasoning = _pick(content, "reasoning")
    return Classification(
        needs_decomposition=_as_bool(
            _pick(content, "needs_decomposition", "needsDecomposition")
        ),
        complexity=min(max(complexity, 1), 10),
        question_type=_as_question_type(
            _pick(content, "question_type", "questionType") or QuestionType.FACTUAL
        ),
        reasoning=str(reasoning) if reasoning else None,
    )


def parse_decomposition(content: Any) -> tuple[list[SubQuestion], str]:
    """Parse a decomposer response into sub-questions and a strategy tag.

    Blank sub-questions are dropped and the rest are re-indexed in order.
    Missing or repeated ids are replaced by the first free ``sq<n>``,
    counting up from the item's position, so ids stay unique.
    """
    if not isinstance(content, dict):
        return [], _DEFAULT_STRATEGY

    raw_items = _pick(content, "sub_questions", "subQuestions")
    strategy = str(
        _pick(content, "synthesis_strategy", "synthesisStrategy") or _DEFAULT_STRATEGY
    )
    if not isinstance(raw_items, list):
        return [], strategy

    sub_questions: list[SubQuestion] = []
    seen_ids: set[str] = set()
    for item in raw_items:
        data = item if isinstance(item, dict) else {"question": item}
        text = str(data.get("question") or "").strip()
        if not text:
            continue
        index = len(sub_questions)
        sq_id = str(data.get("id") or "").strip()
        if not sq_id or sq_id in seen_ids:
            n = index + 1
            while f"sq{n}" in seen_ids:
                n += 1
            sq_id = f"sq{n}"
        seen_ids.add(sq_id)
        dependencies = data.get("dependencies")
        sub_questions.append(
            SubQuestion(
                id=sq_id,
                question=text,
                dependencies=(
                    [str(d) for d in dependencies] if isinstance(dependencies, list) else []
                ),
                type=_as_question_type(data.get("type") or QuestionType.FACTUAL),
                index=index,
            )
        )

    return sub_questions, strategy


def _single(question: str, question_type: QuestionType = QuestionType.FACTUAL) -> SubQuestion:
    """Wrap the original question as the only sub-question of a plan."""
    return SubQuestion(id="sq1", question=question, type=question_type, index=0)


class Decomposer:
    """Classifies questions and decomposes compound ones.

    Uses the oracle at temperature 0 with JSON output for both steps, or a
    caller-supplied classifier function and decomposition template.
    """

    def __init__(self, provider: Oracle, config: DecompositionConfig | None = None) -> None:
        self._provider = provider
        self._config = config or DecompositionConfig()

    @property
    def enabled(self) -> bool:
        """Whether decomposition is enabled."""
        return self._config.enabled

    @property
    def max_sub_questions(self) -> int:
        """Upper bound on sub-questions per plan."""
        return self._config.max_sub_questions

    async def classify(self, question: str, context: str | None = None) -> Classification:
        """Decide whether ``question`` is atomic, and what kind it is.

        A custom classifier (sync or async) takes precedence. Otherwise one
        oracle call is made; an oracle failure yields the default
        classification (atomic, complexity 5, factual).
        """
        classifier = self._config.classifier
        if callable(classifier):
            result = classifier(question, context)
            if inspect.isawaitable(result):
                result = await result
            return parse_classification(result)

        prompt = render_prompt("classify", question=question, context=context or "")
        try:
            response = await self._provider.complete(CompletionRequest.from_prompt(prompt))
        except Exception as e:
            logger.warning("Classification failed, treating question as atomic: %s", e)
            return Classification()

        return parse_classification(response.content)

    async def decompose(self, question: str, context: str | None = None) -> DecompositionResult:
        """Build the question plan.

        Returns the question itself as the single sub-question when
        decomposition is disabled, unnecessary, or fails.
        """
        if not self._config.enabled:
            return DecompositionResult(
                sub_questions=[_single(question)],
                synthesis_strategy=_NO_SYNTHESIS,
                classification=Classification(
                    needs_decomposition=False,
                    complexity=1,
                    question_type=QuestionType.FACTUAL,
                ),
            )

        classification = await self.classify(question, context)
        atomic = DecompositionResult(
            sub_questions=[_single(question, classification.question_type)],
            synthesis_strategy=_NO_SYNTHESIS,
            classification=classification,
        )
        if not classification.needs_decomposition:
            return atomic

        if self._config.prompt:
            prompt = render_template(
                self._config.prompt, question=question, context=context or "",
            )
        else:
            prompt = render_prompt(
                "decompose",
                question=question,
                context=context or "",
                max_sub_questions=self._config.max_sub_questions,
            )

        try:
            response = await self._provider.complete(CompletionRequest.from_prompt(prompt))
        except Exception as e:
            logger.warning("Decomposition failed, treating question as atomic: %s", e)
            return atomic

        sub_questions, strategy = parse_decomposition(response.content)
        if len(sub_questions) > self._config.max_sub_questions:
            logger.info(
                "Truncating plan from %d to %d sub-questions",
                len(sub_questions), self._config.max_sub_questions,
            )
            sub_questions = sub_questions[: self._config.max_sub_questions]

        if not sub_questions:
            logger.info("Decomposer returned no sub-questions, treating question as atomic")
            return atomic

        logger.info(
            "Decomposed into %d sub-questions (strategy=%s)", len(sub_questions), strategy,
        )
        return DecompositionResult(
            sub_questions=sub_questions,
            synthesis_strategy=strategy,
            classification=classification,
        )
