"""Question planning schemas.

Defines the classifier's verdict on a question, the atomic sub-questions
produced by decomposition, and the plan bundling them together.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class QuestionType(StrEnum):
    """Kind of reasoning a question requires."""

    FACTUAL = "factual"
    COMPARATIVE = "comparative"
    MULTI_HOP = "multi-hop"
    AGGREGATIVE = "aggregative"
    PROCEDURAL = "procedural"
    ANALYTICAL = "analytical"


class Classification(BaseModel):
    """Classifier verdict for a top-level question."""

    model_config = ConfigDict(frozen=True)

    needs_decomposition: bool = Field(
        default=False, description="Whether the question must be split"
    )
    complexity: int = Field(default=5, ge=1, le=10, description="Complexity score (1-10)")
    question_type: QuestionType = Field(
        default=QuestionType.FACTUAL, description="Kind of question"
    )
    reasoning: str | None = Field(default=None, description="Why it was classified this way")


class SubQuestion(BaseModel):
    """An atomic unit of a decomposed question."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier within the plan (e.g. 'sq1')")
    question: str = Field(description="The sub-question text")
    dependencies: list[str] = Field(
        default_factory=list,
        description="IDs of sub-questions this one depends on (informational)",
    )
    type: QuestionType = Field(default=QuestionType.FACTUAL, description="Kind of question")
    index: int = Field(default=0, ge=0, description="Position in the plan")


class DecompositionResult(BaseModel):
    """A question plan: ordered sub-questions and how to merge their answers."""

    sub_questions: list[SubQuestion] = Field(description="Sub-questions in execution order")
    synthesis_strategy: str = Field(
        default="none",
        description="Merge strategy tag ('none', 'combine', 'compare', 'aggregate', 'sequence')",
    )
    classification: Classification = Field(description="The classifier verdict")
