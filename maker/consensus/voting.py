"""First-to-ahead-by-K voting.

Samples the oracle one answer at a time until a single normalized answer
is K votes ahead of every other answer. Samples rejected by the red-flag
filter are discarded before they reach the tally. The per-session tally
is a local mapping that never leaves the voting call.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from maker.consensus.confidence import coerce_confidence, compare_confidence
from maker.consensus.red_flags import RedFlagFilter
from maker.prompts import render_prompt
from maker.providers.base import Oracle
from maker.schemas.config import VotingConfig
from maker.schemas.messages import CompletionRequest
from maker.schemas.voting import (
    ConfidenceLevel,
    RedFlagReason,
    Vote,
    VotingResult,
    VotingStats,
)

logger = logging.getLogger(__name__)

# Temperature schedule: deterministic first sample, slight variation after
_FIRST_TEMPERATURE = 0.0
_FOLLOWUP_TEMPERATURE = 0.1

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"[.,!?;:]+$")


@dataclass
class VoteData:
    """Tally entry for one normalized answer."""

    count: int
    original_answer: str
    confidence: ConfidenceLevel


# Progress callback: (vote, read-only view of the live tally)
OnVote = Callable[[Vote, Mapping[str, VoteData]], None]


def normalize_answer(answer: str | None) -> str:
    """Normalize an answer into its tally key.

    Lowercase, trim, collapse whitespace runs to one space, and strip a
    trailing run of ``. , ! ? ; :``.
    """
    if not answer:
        return ""
    text = str(answer).lower().strip()
    text = _WHITESPACE_RE.sub(" ", text)
    return _TRAILING_PUNCT_RE.sub("", text)


def parse_answer(content: str | dict[str, Any]) -> tuple[str, ConfidenceLevel, str | None, bool]:
    """Interpret an answer-prompt response.

    Returns:
        (answer, confidence, reasoning, parse_succeeded). Only a JSON object
        with an ``answer`` field counts as a successful parse; plain text is
        kept as the answer but marked as a format failure.
    """
    if isinstance(content, dict) and content.get("answer") is not None:
        reasoning = content.get("reasoning")
        return (
            str(content["answer"]),
            coerce_confidence(content.get("confidence")),
            str(reasoning) if reasoning is not None else None,
            True,
        )
    if isinstance(content, str):
        return content, ConfidenceLevel.MEDIUM, None, False
    return "", ConfidenceLevel.MEDIUM, None, False


def _add_to_tally(tally: dict[str, VoteData], key: str, vote: Vote) -> None:
    """Count a vote under ``key``, keeping the best confidence seen."""
    entry = tally.get(key)
    if entry is None:
        tally[key] = VoteData(
            count=1, original_answer=vote.answer, confidence=vote.confidence,
        )
        return
    entry.count += 1
    if compare_confidence(vote.confidence, entry.confidence) > 0:
        entry.confidence = vote.confidence


def _standings(tally: Mapping[str, VoteData]) -> tuple[VoteData | None, int]:
    """Return the leading entry and the runner-up count.

    Ties for the lead go to the answer that entered the tally first.
    """
    if not tally:
        return None, 0
    ranked = sorted(tally.values(), key=lambda d: d.count, reverse=True)
    runner_up = ranked[1].count if len(ranked) > 1 else 0
    return ranked[0], runner_up


class VotingEngine:
    """First-to-ahead-by-K voting over an oracle.

    ``vote_until_consensus`` is the primary entry point. ``determine_winner``
    and ``collect_votes`` are kept for fixed-sample scoring and batch tests.
    """

    def __init__(self, config: VotingConfig | None = None) -> None:
        self._config = config or VotingConfig()

    @property
    def k(self) -> int:
        """Required lead over the runner-up."""
        return self._config.k

    @property
    def max_votes(self) -> int:
        """Safety cutoff on samples per session."""
        return self._config.max_votes

    @property
    def samples(self) -> int:
        """Deprecated: fixed sample count used by collect_votes()."""
        return self._config.samples

    def _stats(self, total: int, valid: int, winning: int, runner_up: int) -> VotingStats:
        return VotingStats(
            total_votes=total,
            valid_votes=valid,
            red_flagged_votes=total - valid,
            winning_vote_count=winning,
            margin=winning - runner_up,
            k=self.k,
        )

    async def vote_until_consensus(
        self,
        provider: Oracle,
        question: str,
        context: str | None,
        red_flag_filter: RedFlagFilter,
        on_vote: OnVote | None = None,
    ) -> VotingResult:
        """Sample until one answer is K votes ahead of all others.

        Each sample is checked by ``red_flag_filter``; rejected samples are
        counted in ``total_votes`` and reported to ``on_vote`` but never
        tallied. The session stops at consensus or, without consensus, once
        ``max_votes`` samples have been drawn or the configured session
        timeout has elapsed. A sample still pending at the timeout is
        abandoned and not counted.

        Args:
            provider: The oracle to sample.
            question: The (sub-)question to answer.
            context: Optional background text for the answer prompt.
            red_flag_filter: Admission filter applied to every sample.
            on_vote: Optional callback invoked after every sample, in order.

        Returns:
            VotingResult with the winner (or best-effort leader) and stats.
        """
        prompt = render_prompt("answer", question=question, context=context or "")
        tally: dict[str, VoteData] = {}
        view = MappingProxyType(tally)
        total = 0
        valid = 0

        timeout = self._config.timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            temperature = _FIRST_TEMPERATURE if total == 0 else _FOLLOWUP_TEMPERATURE
            sample = self._generate_vote(provider, prompt, temperature, total)
            if deadline is None:
                vote = await sample
            else:
                try:
                    vote = await asyncio.wait_for(
                        sample, timeout=max(deadline - time.monotonic(), 0),
                    )
                except TimeoutError:
                    logger.warning(
                        "Voting timed out after %.1fs and %d votes for %r",
                        timeout, total, question,
                    )
                    return self._cutoff_result(tally, total, valid)
            total += 1

            verdict = red_flag_filter.check(vote.answer, vote.parse_succeeded)
            if vote.red_flagged or verdict.red_flagged:
                vote = vote.model_copy(update={
                    "red_flagged": True,
                    "red_flag_reason": vote.red_flag_reason or verdict.reason,
                })
                logger.debug("Vote %d red-flagged: %s", vote.vote_index, vote.red_flag_reason)
                if on_vote is not None:
                    on_vote(vote, view)
            else:
                valid += 1
                key = normalize_answer(vote.answer)
                if key:
                    _add_to_tally(tally, key, vote)
                if on_vote is not None:
                    on_vote(vote, view)

                leader, runner_up = _standings(tally)
                if key and leader is not None and leader.count >= self.k + runner_up:
                    logger.info(
                        "Consensus after %d votes: %r (%d ahead)",
                        total, leader.original_answer, leader.count - runner_up,
                    )
                    return VotingResult(
                        consensus_reached=True,
                        winner=leader.original_answer,
                        confidence=leader.confidence,
                        stats=self._stats(total, valid, leader.count, runner_up),
                    )

            if total >= self.max_votes:
                logger.warning(
                    "No consensus after %d votes (k=%d) for %r", total, self.k, question,
                )
                return self._cutoff_result(tally, total, valid)

    def _cutoff_result(
        self, tally: Mapping[str, VoteData], total: int, valid: int
    ) -> VotingResult:
        """Best-effort result for a session stopped without consensus."""
        leader, runner_up = _standings(tally)
        return VotingResult(
            consensus_reached=False,
            winner=leader.original_answer if leader else None,
            confidence=leader.confidence if leader else None,
            stats=self._stats(total, valid, leader.count if leader else 0, runner_up),
        )

    async def collect_votes(
        self,
        provider: Oracle,
        question: str,
        context: str | None,
    ) -> list[Vote]:
        """Draw a fixed number of samples concurrently.

        Deprecated: no early stopping. Use vote_until_consensus() instead.
        """
        samples = self._config.samples
        temperatures = self._config.temperatures
        if temperatures is None:
            temperatures = [_FIRST_TEMPERATURE] + [_FOLLOWUP_TEMPERATURE] * (samples - 1)

        prompt = render_prompt("answer", question=question, context=context or "")
        return list(await asyncio.gather(*(
            self._generate_vote(
                provider,
                prompt,
                temperatures[i] if i < len(temperatures) else _FOLLOWUP_TEMPERATURE,
                i,
            )
            for i in range(samples)
        )))

    def determine_winner(self, votes: Iterable[Vote]) -> VotingResult:
        """Score a fixed list of votes with first-to-ahead-by-K.

        Deprecated one-shot variant of the voting loop. Votes already marked
        red-flagged are excluded. With a single distinct answer, consensus
        needs ``count >= k``; otherwise the leader must be ``k`` ahead of
        the runner-up.
        """
        all_votes = list(votes)
        valid_votes = [v for v in all_votes if not v.red_flagged]

        tally: dict[str, VoteData] = {}
        for vote in valid_votes:
            key = normalize_answer(vote.answer)
            if key:
                _add_to_tally(tally, key, vote)

        leader, runner_up = _standings(tally)
        if leader is None:
            return VotingResult(
                consensus_reached=False,
                winner=None,
                stats=self._stats(len(all_votes), len(valid_votes), 0, 0),
            )

        if len(tally) == 1:
            consensus = leader.count >= self.k
        else:
            consensus = leader.count - runner_up >= self.k

        return VotingResult(
            consensus_reached=consensus,
            winner=leader.original_answer,
            confidence=leader.confidence,
            stats=self._stats(len(all_votes), len(valid_votes), leader.count, runner_up),
        )

    async def _generate_vote(
        self,
        provider: Oracle,
        prompt: str,
        temperature: float,
        vote_index: int,
    ) -> Vote:
        """Draw one sample. Oracle failures become a flagged vote."""
        request = CompletionRequest.from_prompt(prompt, temperature=temperature)
        try:
            response = await provider.complete(request)
        except Exception as e:
            logger.warning("Vote %d failed, counting as invalid_format: %s", vote_index, e)
            return Vote(
                vote_index=vote_index,
                answer="",
                confidence=ConfidenceLevel.LOW,
                temperature=temperature,
                parse_succeeded=False,
                red_flagged=True,
                red_flag_reason=RedFlagReason.INVALID_FORMAT,
            )

        answer, confidence, reasoning, parsed = parse_answer(response.content)
        return Vote(
            vote_index=vote_index,
            answer=answer,
            confidence=confidence,
            reasoning=reasoning,
            temperature=temperature,
            parse_succeeded=parsed,
        )
