"""Red-flag admission filter.

Judges a single oracle sample as admissible or rejected before it can
reach the vote tally. Only two signals of a confused sample are used: a
response that is too long, and a response that could not be parsed into
the expected structure. Empty or very short answers are rejected too.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from maker.schemas.config import RedFlagConfig
from maker.schemas.voting import RedFlagReason, RedFlagResult, RedFlagStats

logger = logging.getLogger(__name__)

# Extension point only: no confusion heuristics are applied by default
DEFAULT_CONFUSION_PATTERNS: tuple[str, ...] = ()

# Rough token estimate used for the length check
_CHARS_PER_TOKEN = 4

_ADMITTED = RedFlagResult(red_flagged=False)


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` at four characters per token."""
    return math.ceil(len(text) / _CHARS_PER_TOKEN)


class RedFlagFilter:
    """Filters out unreliable oracle samples.

    Checks run in a fixed priority order and stop at the first match:
    too short, too long, invalid format, then the optional custom validator.
    """

    def __init__(self, config: RedFlagConfig | None = None) -> None:
        self._config = config or RedFlagConfig()

    @property
    def max_tokens(self) -> int:
        """Estimated-token ceiling above which a sample is rejected."""
        return self._config.max_tokens

    @property
    def min_chars(self) -> int:
        """Minimum trimmed length for a sample to be admitted."""
        return self._config.min_chars

    def check(self, answer: str | None, parse_succeeded: bool = True) -> RedFlagResult:
        """Decide whether a single sample must be discarded.

        Args:
            answer: The sample's answer text (``None`` is treated as empty).
            parse_succeeded: Whether the structured response had the
                expected shape.

        Returns:
            RedFlagResult with ``red_flagged`` and the reason when rejected.
        """
        trimmed = answer.strip() if answer else ""

        if not trimmed or len(trimmed) < self._config.min_chars:
            return RedFlagResult(red_flagged=True, reason=RedFlagReason.RESPONSE_TOO_SHORT)

        if estimate_tokens(trimmed) > self._config.max_tokens:
            return RedFlagResult(red_flagged=True, reason=RedFlagReason.RESPONSE_TOO_LONG)

        if not parse_succeeded:
            return RedFlagResult(red_flagged=True, reason=RedFlagReason.INVALID_FORMAT)

        validator = self._config.custom_validator
        if validator is not None:
            custom = validator(trimmed)
            if custom.red_flagged:
                logger.debug("Custom validator flagged sample (%s)", custom.reason)
                return custom

        return _ADMITTED

    def check_many(
        self,
        items: Iterable[str | tuple[str, bool | None]],
        parse_succeeded: bool = True,
    ) -> list[RedFlagResult]:
        """Check a batch of samples item by item.

        Each item is either a bare answer or an ``(answer, parse_succeeded)``
        pair; a missing or ``None`` per-item flag falls back to the shared
        ``parse_succeeded`` default.
        """
        results: list[RedFlagResult] = []
        for item in items:
            if isinstance(item, tuple):
                answer, item_parsed = item
            else:
                answer, item_parsed = item, None
            parsed = parse_succeeded if item_parsed is None else item_parsed
            results.append(self.check(answer, parsed))
        return results

    @staticmethod
    def get_stats(results: Iterable[RedFlagResult]) -> RedFlagStats:
        """Aggregate verdicts into total/flagged/valid counts and a reason histogram."""
        total = flagged = 0
        by_reason: dict[RedFlagReason, int] = {}
        for result in results:
            total += 1
            if result.red_flagged:
                flagged += 1
                if result.reason is not None:
                    by_reason[result.reason] = by_reason.get(result.reason, 0) + 1

        return RedFlagStats(
            total=total, flagged=flagged, valid=total - flagged, by_reason=by_reason,
        )
