"""Result schemas returned by the synthesizer and the orchestrator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from maker.schemas.voting import ConfidenceLevel, VotingStats

# Answer used whenever nothing could be determined
NO_ANSWER = "Unable to determine answer."


class SubQuestionResult(BaseModel):
    """Durable record of one resolved sub-question."""

    model_config = ConfigDict(frozen=True)

    question: str = Field(description="The sub-question text")
    answer: str = Field(description="The winning answer")
    confidence: ConfidenceLevel = Field(description="Confidence of the winning answer")
    consensus_reached: bool = Field(description="Whether the vote reached consensus")
    voting_stats: VotingStats = Field(description="Counters of the voting session")


class SynthesisResult(BaseModel):
    """Merged answer produced by the synthesizer."""

    answer: str = Field(description="Final answer text")
    confidence: ConfidenceLevel = Field(description="Final confidence")


class MakerResult(BaseModel):
    """Final output of ``Maker.ask``."""

    answer: str = Field(description="The final synthesized answer")
    confidence: ConfidenceLevel = Field(description="Overall confidence")
    consensus_reached: bool = Field(
        description="True only when every sub-question reached consensus"
    )
    is_decomposed: bool = Field(description="Whether the question was split")
    sub_questions: list[SubQuestionResult] = Field(
        default_factory=list, description="Per sub-question results in plan order"
    )
    synthesis_strategy: str = Field(default="none", description="Strategy tag from the plan")
    voting_stats: VotingStats = Field(description="Aggregated voting statistics")
    total_tokens: int = Field(default=0, ge=0, description="Tokens reported by the oracle")
    execution_time_ms: float = Field(default=0.0, ge=0.0, description="Wall-clock duration")
