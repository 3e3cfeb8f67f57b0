"""Progress events emitted while a question is being answered.

Each Maker instance owns one MakerEventEmitter. Events are immutable
records pushed synchronously to the listeners subscribed to their type,
in the order the pipeline produces them: plan order for sub-questions,
vote-index order within a sub-question.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Recent events kept for late subscribers and debugging
_DEFAULT_HISTORY_LIMIT = 1000


class EventType(StrEnum):
    """Types of progress events."""

    CLASSIFICATION_COMPLETE = "classification_complete"
    DECOMPOSED = "decomposed"
    VOTING_START = "voting_start"
    VOTE_PROGRESS = "vote_progress"
    VOTING_COMPLETE = "voting_complete"
    RED_FLAGGED = "red_flagged"
    SUB_QUESTION_RESOLVED = "sub_question_resolved"
    SYNTHESIS_START = "synthesis_start"
    SYNTHESIS_COMPLETE = "synthesis_complete"
    COMPLETE = "complete"


class MakerEvent(BaseModel):
    """A single progress event."""

    model_config = ConfigDict(frozen=True)

    type: EventType = Field(description="Event type")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the event occurred",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload, varies by event type",
    )


# Type alias for event listener callbacks
EventListener = Callable[[MakerEvent], Any]


class MakerEventEmitter:
    """Dispatches progress events to registered listeners.

    A listener registered without event types receives every event.
    Listener exceptions are logged but never propagate into the pipeline.
    """

    def __init__(self, history_limit: int = _DEFAULT_HISTORY_LIMIT) -> None:
        self._listeners: list[tuple[EventListener, frozenset[EventType]]] = []
        self._history: deque[MakerEvent] = deque(maxlen=history_limit)

    @property
    def history(self) -> list[MakerEvent]:
        """Most recent events, oldest first."""
        return list(self._history)

    def add_listener(self, listener: EventListener, *event_types: EventType) -> None:
        """Register a listener, optionally restricted to some event types."""
        self._listeners.append((listener, frozenset(event_types)))

    def remove_listener(self, listener: EventListener) -> None:
        """Remove every registration of a previously added listener."""
        self._listeners = [
            (ln, types) for ln, types in self._listeners if ln != listener
        ]

    def emit(self, event_type: EventType, **data: Any) -> MakerEvent:
        """Build an event and push it to every interested listener."""
        event = MakerEvent(type=event_type, data=data)
        self._history.append(event)

        for listener, types in self._listeners:
            if types and event_type not in types:
                continue
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener error for %s", event_type)

        return event
