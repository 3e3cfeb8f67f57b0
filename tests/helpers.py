"""Scripted oracles and factories shared by the test modules."""

from __future__ import annotations

from typing import Any

from maker.schemas.messages import CompletionRequest, CompletionResponse, TokenUsage

# Prompt markers used to route calls to the right script
CLASSIFY = "question classifier"
DECOMPOSE = "question decomposer"
SYNTHESIZE = "Synthesize a coherent"
SYNTHESIZE_DE = "Synthetisiere"
ANSWER = "Answer the following question"


def answer(text: str, confidence: str = "high") -> dict[str, Any]:
    """Structured answer payload as the answer prompt requests it."""
    return {"answer": text, "confidence": confidence}


def _to_response(item: Any, tokens: int) -> CompletionResponse:
    if isinstance(item, CompletionResponse):
        return item
    raw = item if isinstance(item, str) else str(item)
    return CompletionResponse(
        content=item,
        raw=raw,
        usage=TokenUsage(prompt_tokens=tokens, completion_tokens=0, total_tokens=tokens),
    )


class ScriptedOracle:
    """Replays responses in order.

    Items may be content (str or dict), a CompletionResponse, or an
    exception instance to raise. The last item repeats once the script
    runs out.
    """

    def __init__(self, responses: list[Any], tokens_per_call: int = 0) -> None:
        self._responses = list(responses)
        self._tokens = tokens_per_call
        self.requests: list[CompletionRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def prompts(self) -> list[str]:
        return [r.messages[-1].content for r in self.requests]

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self._responses) - 1)
        item = self._responses[index]
        if isinstance(item, Exception):
            raise item
        return _to_response(item, self._tokens)


class RoutedOracle:
    """Routes each call to a script by a marker found in the prompt.

    ``routes`` maps a prompt substring to a list of responses; the first
    matching marker (in insertion order) wins. Each script behaves like
    a ScriptedOracle of its own.
    """

    def __init__(self, routes: dict[str, list[Any]], tokens_per_call: int = 0) -> None:
        self._routes = {marker: list(items) for marker, items in routes.items()}
        self._cursor = {marker: 0 for marker in routes}
        self._tokens = tokens_per_call
        self.requests: list[CompletionRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def calls_for(self, marker: str) -> int:
        return self._cursor.get(marker, 0)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        prompt = request.messages[-1].content
        for marker, items in self._routes.items():
            if marker in prompt:
                index = min(self._cursor[marker], len(items) - 1)
                self._cursor[marker] += 1
                item = items[index]
                if isinstance(item, Exception):
                    raise item
                return _to_response(item, self._tokens)
        raise AssertionError(f"Unexpected prompt: {prompt[:80]!r}")
