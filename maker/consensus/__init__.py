"""Consensus layer for the MAKER pipeline.

Provides the red-flag admission filter, first-to-ahead-by-K voting,
answer normalization, and confidence rollup rules.
"""

from maker.consensus.confidence import (
    coerce_confidence,
    compare_confidence,
    rollup_confidence,
)
from maker.consensus.red_flags import (
    DEFAULT_CONFUSION_PATTERNS,
    RedFlagFilter,
    estimate_tokens,
)
from maker.consensus.voting import (
    VoteData,
    VotingEngine,
    normalize_answer,
    parse_answer,
)

__all__ = [
    "DEFAULT_CONFUSION_PATTERNS",
    "RedFlagFilter",
    "VoteData",
    "VotingEngine",
    "coerce_confidence",
    "compare_confidence",
    "estimate_tokens",
    "normalize_answer",
    "parse_answer",
    "rollup_confidence",
]
