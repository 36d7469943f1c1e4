"""Visibility-scoped message log for Whitefire game sessions."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Sequence, Tuple

from .enums import Channel, GamePhase, MessageType, NightPhase

if TYPE_CHECKING:  # pragma: no cover - import only for type hints
    from .players import Player
    from .state import GameState

NARRATOR = "Narrator"
SPIRIT = "Mountain Spirit"


class VisibilityScope(str, Enum):
    """Indicates who should have access to a message."""

    EVERYONE = "everyone"
    CHANNEL = "channel"
    PLAYER = "player"
    PAIR = "pair"


@dataclass(frozen=True, slots=True)
class Visibility:
    """Audience of a message: everyone, one channel, one player or a pair."""

    scope: VisibilityScope = VisibilityScope.EVERYONE
    channel: Optional[Channel] = None
    players: Tuple[str, ...] = ()

    @classmethod
    def everyone(cls) -> "Visibility":
        return cls()

    @classmethod
    def for_channel(cls, channel: Channel) -> "Visibility":
        return cls(scope=VisibilityScope.CHANNEL, channel=channel)

    @classmethod
    def for_player(cls, name: str) -> "Visibility":
        return cls(scope=VisibilityScope.PLAYER, players=(name,))

    @classmethod
    def for_pair(cls, first: str, second: str) -> "Visibility":
        if first == second:
            raise ValueError("A pair visibility needs two distinct players")
        return cls(scope=VisibilityScope.PAIR, players=(first, second))

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope.value,
            "channel": self.channel.value if self.channel else None,
            "players": list(self.players),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Visibility":
        channel_raw = data.get("channel")
        return cls(
            scope=VisibilityScope(data.get("scope", VisibilityScope.EVERYONE.value)),
            channel=Channel(channel_raw) if channel_raw else None,
            players=tuple(str(name) for name in data.get("players") or ()),
        )


@dataclass(frozen=True, slots=True)
class Message:
    """Immutable entry in the message log."""

    id: str
    type: MessageType
    sender: str
    content: str
    timestamp: datetime
    round_number: int
    phase: GamePhase
    visibility: Visibility = field(default_factory=Visibility)
    night_phase: Optional[NightPhase] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert the message into a JSON-serialisable dictionary."""

        return {
            "id": self.id,
            "type": self.type.value,
            "sender": self.sender,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "round_number": self.round_number,
            "phase": self.phase.value,
            "night_phase": self.night_phase.value if self.night_phase else None,
            "visibility": self.visibility.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Reconstruct a message from a dictionary produced by :meth:`to_dict`."""

        timestamp_str = data.get("timestamp")
        if not isinstance(timestamp_str, str):
            raise ValueError("Message timestamp must be a string")
        night_raw = data.get("night_phase")
        return cls(
            id=str(data["id"]),
            type=MessageType(data["type"]),
            sender=str(data["sender"]),
            content=str(data["content"]),
            timestamp=datetime.fromisoformat(timestamp_str),
            round_number=int(data["round_number"]),
            phase=GamePhase(data["phase"]),
            night_phase=NightPhase(night_raw) if night_raw else None,
            visibility=Visibility.from_dict(data.get("visibility") or {}),
        )


class MessageLog:
    """Append-only ordered log of :class:`Message` instances.

    The only ways to shrink the log are :meth:`truncate` and :meth:`remove`,
    which exist for failed-turn rollback and operator retries.
    """

    def __init__(self, messages: Sequence[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages) if messages else []

    def record(
        self,
        sender: str,
        content: str,
        message_type: MessageType,
        *,
        round_number: int,
        phase: GamePhase,
        night_phase: NightPhase | None = None,
        visibility: Visibility | None = None,
        timestamp: datetime | None = None,
    ) -> Message:
        """Append a new message to the log and return it."""

        message = Message(
            id=uuid.uuid4().hex,
            type=message_type,
            sender=sender,
            content=content,
            timestamp=timestamp or datetime.now(timezone.utc),
            round_number=round_number,
            phase=phase,
            night_phase=night_phase,
            visibility=visibility or Visibility.everyone(),
        )
        self._messages.append(message)
        return message

    @property
    def messages(self) -> tuple[Message, ...]:
        """Return all messages recorded so far."""

        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(tuple(self._messages))

    def truncate(self, length: int) -> None:
        """Drop every message appended after the log had ``length`` entries."""

        if length < 0:
            raise ValueError("length may not be negative")
        del self._messages[length:]

    def remove(self, message_ids: Iterable[str]) -> int:
        """Remove messages by id and return how many were dropped."""

        doomed = set(message_ids)
        before = len(self._messages)
        self._messages = [message for message in self._messages if message.id not in doomed]
        return before - len(self._messages)

    def visible_to(self, player: "Player") -> tuple[Message, ...]:
        return visible_to(player, self._messages)

    def to_jsonl(self) -> str:
        """Serialise the log to newline-delimited JSON."""

        return "\n".join(
            json.dumps(message.to_dict(), separators=(",", ":"), ensure_ascii=False)
            for message in self._messages
        )

    @classmethod
    def from_jsonl(cls, raw: str) -> "MessageLog":
        """Create a log from newline-delimited JSON produced by :meth:`to_jsonl`."""

        lines = [line for line in raw.splitlines() if line.strip()]
        return cls([Message.from_dict(json.loads(line)) for line in lines])


def is_visible_to(player: "Player", message: Message) -> bool:
    """Return True when ``player`` is allowed to read ``message``."""

    visibility = message.visibility
    if visibility.scope is VisibilityScope.EVERYONE:
        return True
    if message.type is MessageType.THINKING and message.sender == player.name:
        return True
    if visibility.scope is VisibilityScope.CHANNEL:
        return visibility.channel is not None and player.channel is visibility.channel
    return player.name in visibility.players


def visible_to(player: "Player", messages: Iterable[Message]) -> tuple[Message, ...]:
    """Filter ``messages`` down to the ones ``player`` may see."""

    return tuple(message for message in messages if is_visible_to(player, message))


def append_message(
    state: "GameState",
    sender: str,
    content: str,
    message_type: MessageType = MessageType.SPEECH,
    visibility: Visibility | None = None,
) -> Message:
    """Stamp a message with the state's round and phase and append it."""

    return state.messages.record(
        sender,
        content,
        message_type,
        round_number=state.round_number,
        phase=state.phase,
        night_phase=state.night_phase if state.phase is GamePhase.NIGHT else None,
        visibility=visibility,
    )


def narrate(
    state: "GameState",
    content: str,
    visibility: Visibility | None = None,
    *,
    sender: str = NARRATOR,
) -> Message:
    """Append a narrator system message."""

    return append_message(state, sender, content, MessageType.SYSTEM, visibility)


__all__ = [
    "Message",
    "MessageLog",
    "NARRATOR",
    "SPIRIT",
    "Visibility",
    "VisibilityScope",
    "append_message",
    "is_visible_to",
    "narrate",
    "visible_to",
]
