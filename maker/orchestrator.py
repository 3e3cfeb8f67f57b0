"""MAKER orchestrator.

Answers a question in three steps: Decomposer -> VotingEngine for each
sub-question (strictly in plan order, one vote at a time) -> Synthesizer.
Aggregates voting statistics and confidence into a MakerResult and emits
progress events along the way.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from maker.consensus.confidence import rollup_confidence
from maker.consensus.red_flags import RedFlagFilter
from maker.consensus.voting import VoteData, VotingEngine
from maker.decomposer import Decomposer
from maker.events import EventListener, EventType, MakerEventEmitter
from maker.prompts import compile_template
from maker.providers.base import Oracle
from maker.providers.registry import create_provider
from maker.schemas.config import MakerConfig, VotingConfig
from maker.schemas.messages import CompletionRequest, CompletionResponse
from maker.schemas.questions import SubQuestion
from maker.schemas.results import NO_ANSWER, MakerResult, SubQuestionResult
from maker.schemas.voting import ConfidenceLevel, Vote, VotingStats
from maker.synthesizer import Synthesizer

logger = logging.getLogger(__name__)


class _TokenMeter:
    """Oracle wrapper that sums reported token usage for one ask() call."""

    def __init__(self, provider: Oracle) -> None:
        self._provider = provider
        self.total_tokens = 0

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        response = await self._provider.complete(request)
        usage = response.usage
        if usage is not None:
            self.total_tokens += usage.total_tokens or (
                usage.prompt_tokens + usage.completion_tokens
            )
        return response


def aggregate_voting_stats(sub_results: list[SubQuestionResult], k: int) -> VotingStats:
    """Roll per-sub-question stats into one record.

    Vote counters are summed; winning-vote count and margin take the
    minimum across sub-questions (the weakest link).
    """
    if not sub_results:
        return VotingStats(k=k)

    stats = [sr.voting_stats for sr in sub_results]
    return VotingStats(
        total_votes=sum(s.total_votes for s in stats),
        valid_votes=sum(s.valid_votes for s in stats),
        red_flagged_votes=sum(s.red_flagged_votes for s in stats),
        winning_vote_count=min(s.winning_vote_count for s in stats),
        margin=min(s.margin for s in stats),
        k=k,
    )


def overall_confidence(
    sub_results: list[SubQuestionResult], synthesis_confidence: ConfidenceLevel
) -> ConfidenceLevel:
    """Final confidence: a sub-question without consensus counts as low."""
    if not sub_results:
        return ConfidenceLevel.LOW
    return rollup_confidence(
        synthesis_confidence,
        (
            sr.confidence if sr.consensus_reached else ConfidenceLevel.LOW
            for sr in sub_results
        ),
    )


def _check_custom_templates(config: MakerConfig) -> None:
    """Compile caller-supplied prompt templates so bad syntax fails early.

    Raises:
        ValueError: If a custom decomposition or synthesis template is invalid.
    """
    for section, template in (
        ("decomposition", config.decomposition.prompt),
        ("synthesis", config.synthesis.prompt),
    ):
        if template:
            try:
                compile_template(template)
            except ValueError as e:
                raise ValueError(f"{section}.prompt: {e}") from e


class Maker:
    """Reliable question answering over an unreliable oracle.

    The provider is resolved once, at construction; an unknown provider tag
    raises ValueError immediately, as does a custom prompt template with
    invalid syntax. ``ask`` itself does not raise for oracle
    failures: they surface as low confidence or missing consensus.

    Example::

        maker = Maker(MakerConfig(provider="openai", model="gpt-4o-mini"))
        maker.on(EventType.VOTE_PROGRESS, print)
        result = await maker.ask("What is the capital of France?")
    """

    def __init__(
        self,
        config: MakerConfig | None = None,
        emitter: MakerEventEmitter | None = None,
    ) -> None:
        self._config = config or MakerConfig()
        self._provider = create_provider(self._config)
        _check_custom_templates(self._config)
        self._red_flag_filter = RedFlagFilter(self._config.red_flags)
        self._emitter = emitter or MakerEventEmitter()

    @property
    def config(self) -> MakerConfig:
        """The configuration this instance was built with."""
        return self._config

    @property
    def provider(self) -> Oracle:
        """The resolved oracle."""
        return self._provider

    @property
    def emitter(self) -> MakerEventEmitter:
        """The event sink owned by this instance."""
        return self._emitter

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe ``listener`` to one event type."""
        self._emitter.add_listener(listener, event_type)

    async def ask(
        self,
        question: str,
        *,
        context: str | None = None,
        k: int | None = None,
    ) -> MakerResult:
        """Answer ``question`` with decomposition, voting and synthesis.

        Args:
            question: The question to answer.
            context: Optional background text passed to every oracle call.
            k: Optional override of the voting lead margin for this call.

        Returns:
            MakerResult with the answer, confidence and voting statistics.
        """
        start = time.monotonic()
        meter = _TokenMeter(self._provider)

        voting_config = self._config.voting
        if k is not None:
            voting_config = VotingConfig.model_validate(
                {**voting_config.model_dump(), "k": k}
            )
        engine = VotingEngine(voting_config)

        # --- Plan ---
        plan = await Decomposer(meter, self._config.decomposition).decompose(question, context)
        self._emitter.emit(EventType.CLASSIFICATION_COMPLETE, classification=plan.classification)
        self._emitter.emit(EventType.DECOMPOSED, sub_questions=list(plan.sub_questions))

        # --- Vote, strictly in plan order ---
        sub_results: list[SubQuestionResult] = []
        for index, sub_question in enumerate(plan.sub_questions):
            sub_results.append(
                await self._resolve(engine, meter, index, sub_question, context)
            )

        # --- Synthesize ---
        self._emitter.emit(EventType.SYNTHESIS_START, sub_results=list(sub_results))
        synthesis = await Synthesizer(meter, self._config.synthesis).synthesize(
            question, sub_results,
        )
        self._emitter.emit(EventType.SYNTHESIS_COMPLETE, answer=synthesis.answer)

        result = MakerResult(
            answer=synthesis.answer,
            confidence=overall_confidence(sub_results, synthesis.confidence),
            consensus_reached=all(sr.consensus_reached for sr in sub_results),
            is_decomposed=len(plan.sub_questions) > 1,
            sub_questions=sub_results,
            synthesis_strategy=plan.synthesis_strategy,
            voting_stats=aggregate_voting_stats(sub_results, engine.k),
            total_tokens=meter.total_tokens,
            execution_time_ms=(time.monotonic() - start) * 1000,
        )

        logger.info(
            "Answered in %.0fms (confidence=%s, consensus=%s, votes=%d)",
            result.execution_time_ms,
            result.confidence,
            result.consensus_reached,
            result.voting_stats.total_votes,
        )
        self._emitter.emit(EventType.COMPLETE, result=result)
        return result

    async def _resolve(
        self,
        engine: VotingEngine,
        provider: Oracle,
        index: int,
        sub_question: SubQuestion,
        context: str | None,
    ) -> SubQuestionResult:
        """Run one voting session and report it."""
        self._emitter.emit(
            EventType.VOTING_START, sub_question_index=index, question=sub_question.question,
        )
        logger.info("Voting on sub-question %d: %s", index, sub_question.question)

        def on_vote(vote: Vote, tally: Mapping[str, VoteData]) -> None:
            self._emitter.emit(
                EventType.VOTE_PROGRESS,
                sub_question_index=index,
                vote_index=vote.vote_index,
                vote_counts={key: entry.count for key, entry in tally.items()},
                red_flagged=vote.red_flagged,
            )
            if vote.red_flagged and vote.red_flag_reason is not None:
                self._emitter.emit(
                    EventType.RED_FLAGGED, answer=vote.answer, reason=vote.red_flag_reason,
                )

        voting = await engine.vote_until_consensus(
            provider, sub_question.question, context, self._red_flag_filter, on_vote,
        )

        sub_result = SubQuestionResult(
            question=sub_question.question,
            answer=voting.winner if voting.winner is not None else NO_ANSWER,
            confidence=voting.confidence or ConfidenceLevel.LOW,
            consensus_reached=voting.consensus_reached,
            voting_stats=voting.stats,
        )

        self._emitter.emit(
            EventType.VOTING_COMPLETE,
            sub_question_index=index,
            consensus_reached=voting.consensus_reached,
            answer=sub_result.answer,
        )
        self._emitter.emit(EventType.SUB_QUESTION_RESOLVED, index=index, result=sub_result)
        return sub_result
