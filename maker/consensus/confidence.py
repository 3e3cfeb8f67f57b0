"""Confidence ordering and rollup rules."""

from __future__ import annotations

from collections.abc import Iterable

from maker.schemas.voting import ConfidenceLevel

_RANK: dict[ConfidenceLevel, int] = {
    ConfidenceLevel.HIGH: 3,
    ConfidenceLevel.MEDIUM: 2,
    ConfidenceLevel.LOW: 1,
}


def compare_confidence(a: ConfidenceLevel, b: ConfidenceLevel) -> int:
    """Positive if ``a`` ranks above ``b``, negative if below, 0 if equal."""
    return _RANK[a] - _RANK[b]


def coerce_confidence(
    value: object, default: ConfidenceLevel = ConfidenceLevel.MEDIUM
) -> ConfidenceLevel:
    """Map an oracle-reported confidence onto ConfidenceLevel, else ``default``."""
    if isinstance(value, str):
        try:
            return ConfidenceLevel(value.strip().lower())
        except ValueError:
            pass
    return default


def rollup_confidence(
    primary: ConfidenceLevel, parts: Iterable[ConfidenceLevel]
) -> ConfidenceLevel:
    """Combine a primary confidence with the confidences of its parts.

    Low if the primary or any part is low; medium if the primary is medium
    or medium parts outnumber high ones; high otherwise.
    """
    counts = {level: 0 for level in ConfidenceLevel}
    for level in parts:
        counts[level] += 1

    if primary == ConfidenceLevel.LOW or counts[ConfidenceLevel.LOW] > 0:
        return ConfidenceLevel.LOW
    if (
        primary == ConfidenceLevel.MEDIUM
        or counts[ConfidenceLevel.MEDIUM] > counts[ConfidenceLevel.HIGH]
    ):
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.HIGH
