"""MAKER schema definitions.

All Pydantic v2 models used across voting, decomposition, synthesis and
the oracle boundary.
"""

from maker.schemas.config import (
    AzureConfig,
    DecompositionConfig,
    MakerConfig,
    ProviderConfig,
    RedFlagConfig,
    SynthesisConfig,
    VotingConfig,
)
from maker.schemas.messages import (
    CompletionRequest,
    CompletionResponse,
    Message,
    ResponseFormat,
    Role,
    TokenUsage,
)
from maker.schemas.questions import (
    Classification,
    DecompositionResult,
    QuestionType,
    SubQuestion,
)
from maker.schemas.results import (
    NO_ANSWER,
    MakerResult,
    SubQuestionResult,
    SynthesisResult,
)
from maker.schemas.voting import (
    ConfidenceLevel,
    RedFlagReason,
    RedFlagResult,
    RedFlagStats,
    Vote,
    VotingResult,
    VotingStats,
)

__all__ = [
    "NO_ANSWER",
    "AzureConfig",
    "Classification",
    "CompletionRequest",
    "CompletionResponse",
    "ConfidenceLevel",
    "DecompositionConfig",
    "DecompositionResult",
    "MakerConfig",
    "MakerResult",
    "Message",
    "ProviderConfig",
    "QuestionType",
    "RedFlagConfig",
    "RedFlagReason",
    "RedFlagResult",
    "RedFlagStats",
    "ResponseFormat",
    "Role",
    "SubQuestion",
    "SubQuestionResult",
    "SynthesisConfig",
    "SynthesisResult",
    "TokenUsage",
    "Vote",
    "VotingConfig",
    "VotingResult",
    "VotingStats",
]
