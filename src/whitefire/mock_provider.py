"""Scripted provider for deterministic tests and offline runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence, Union

from .providers import ProviderRequest, ProviderResponse

ScriptItem = Union[str, BaseException]


@dataclass
class ScriptedProvider:
    """Replays a queue of replies; exceptions in the queue are raised instead.

    ``generate_fn`` takes priority over the queue. Once the queue is empty the
    provider answers with ``default_reply``.
    """

    replies: Sequence[ScriptItem] = ()
    generate_fn: Callable[[ProviderRequest], str] | None = None
    default_reply: str = "[THINKING]\nNothing to add.\n[SPEECH]\nI will wait and watch."
    requests: list[ProviderRequest] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._queue = list(self.replies)

    def push(self, *items: ScriptItem) -> None:
        self._queue.extend(items)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        self.requests.append(request)
        if self.generate_fn is not None:
            return ProviderResponse(text=self.generate_fn(request))
        if self._queue:
            item = self._queue.pop(0)
            if isinstance(item, BaseException):
                raise item
            return ProviderResponse(text=item)
        return ProviderResponse(text=self.default_reply)


__all__ = ["ScriptedProvider"]
