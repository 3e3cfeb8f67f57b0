"""Voting and red-flag schemas.

Defines single oracle samples (Vote), the outcome of a voting session
(VotingResult, VotingStats), and the admission filter's verdicts
(RedFlagResult, RedFlagStats).
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ConfidenceLevel(StrEnum):
    """Self-reported confidence of an answer. Ordered high > medium > low."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RedFlagReason(StrEnum):
    """Why a sample was rejected by the admission filter.

    The built-in checks only produce the first three reasons; the rest are
    available to custom validators.
    """

    RESPONSE_TOO_LONG = "response_too_long"
    RESPONSE_TOO_SHORT = "response_too_short"
    INVALID_FORMAT = "invalid_format"
    CIRCULAR_REASONING = "circular_reasoning"
    LOW_CONFIDENCE_ERROR = "low_confidence_error"
    CUSTOM = "custom"


class Vote(BaseModel):
    """One oracle sample for a single question."""

    vote_index: int = Field(ge=0, description="Position of this sample in the session")
    answer: str = Field(default="", description="The answer text")
    confidence: ConfidenceLevel = Field(
        default=ConfidenceLevel.MEDIUM, description="Confidence reported by the oracle"
    )
    reasoning: str | None = Field(default=None, description="Optional reasoning text")
    temperature: float = Field(default=0.0, ge=0.0, description="Temperature used")
    parse_succeeded: bool = Field(
        default=True, description="Whether the structured response had the expected shape"
    )
    red_flagged: bool = Field(default=False, description="Whether the sample was rejected")
    red_flag_reason: RedFlagReason | None = Field(
        default=None, description="Reason for rejection, if rejected"
    )


class VotingStats(BaseModel):
    """Counters describing one voting session (or an aggregate of several)."""

    model_config = ConfigDict(frozen=True)

    total_votes: int = Field(default=0, ge=0, description="Samples drawn")
    valid_votes: int = Field(default=0, ge=0, description="Samples admitted by the filter")
    red_flagged_votes: int = Field(default=0, ge=0, description="Samples rejected by the filter")
    winning_vote_count: int = Field(default=0, ge=0, description="Votes for the leading answer")
    margin: int = Field(default=0, description="Leader count minus runner-up count")
    k: int = Field(default=0, ge=0, description="Required lead margin")


class VotingResult(BaseModel):
    """Terminal outcome of one voting session."""

    consensus_reached: bool = Field(description="Whether the leader got k votes ahead")
    winner: str | None = Field(
        default=None, description="Original-case text of the leading answer, if any"
    )
    confidence: ConfidenceLevel | None = Field(
        default=None, description="Best confidence seen for the winning answer"
    )
    stats: VotingStats = Field(description="Session counters")


class RedFlagResult(BaseModel):
    """Verdict of the admission filter for a single sample."""

    model_config = ConfigDict(frozen=True)

    red_flagged: bool = Field(description="True when the sample must be discarded")
    reason: RedFlagReason | None = Field(default=None, description="Why it was discarded")


class RedFlagStats(BaseModel):
    """Summary over a batch of admission verdicts."""

    total: int = Field(default=0, ge=0)
    flagged: int = Field(default=0, ge=0)
    valid: int = Field(default=0, ge=0)
    by_reason: dict[RedFlagReason, int] = Field(
        default_factory=dict, description="Rejections per reason"
    )
