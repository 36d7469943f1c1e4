"""Serialization helpers for saving and loading Whitefire game state."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from .config import GameConfig, Relationship, RetrySettings
from .enums import (
    EmotionalState,
    Faction,
    GamePhase,
    MeetingPolicy,
    MeetingTiming,
    NightPhase,
    PlayerType,
    RoleType,
)
from .exceptions import InvalidActionError
from .messages import Message, MessageLog
from .players import Player
from .retry import RetryLogEntry
from .state import (
    Ballot,
    CoronerReport,
    GameState,
    GuardRecord,
    ListenerCheck,
    NarrativeEvent,
    PendingMeeting,
    SecretMeetingRecord,
    StateChange,
)

SNAPSHOT_VERSION = 1


@dataclass(frozen=True, slots=True)
class GameStateSnapshot:
    """Structured representation of a :class:`GameState` suitable for persistence."""

    payload: dict[str, Any]

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise the snapshot to JSON."""

        return json.dumps(self.payload, indent=indent, ensure_ascii=False)

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the underlying payload."""

        return json.loads(json.dumps(self.payload))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameStateSnapshot":
        """Build a snapshot from raw dictionary data."""

        return cls(payload=dict(data))

    @classmethod
    def from_game_state(cls, state: GameState) -> "GameStateSnapshot":
        """Capture the provided game state as a snapshot."""

        return cls(payload=_state_to_payload(state))

    def restore(self) -> GameState:
        """Rehydrate the snapshot back into a fresh, independent :class:`GameState`."""

        return _payload_to_state(self.to_dict())

    def save(self, path: str | Path, *, indent: int = 2) -> None:
        """Persist the snapshot to disk as JSON."""

        Path(path).write_text(self.to_json(indent=indent), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> "GameStateSnapshot":
        """Load a snapshot from disk."""

        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(data)


def snapshot_game_state(state: GameState) -> GameStateSnapshot:
    """Produce a :class:`GameStateSnapshot` for the supplied state."""

    return GameStateSnapshot.from_game_state(state)


def restore_game_state(snapshot: GameStateSnapshot) -> GameState:
    """Restore a :class:`GameState` instance from ``snapshot``."""

    return snapshot.restore()


def copy_game_state(state: GameState) -> GameState:
    """Deep copy through a JSON round trip."""

    return restore_game_state(snapshot_game_state(state))


@dataclass(frozen=True, slots=True)
class SavedGame:
    """A named save slot."""

    id: str
    name: str
    saved_at: datetime
    snapshot: GameStateSnapshot

    @property
    def round_number(self) -> int:
        return int(self.snapshot.payload["state"]["round_number"])

    @property
    def phase(self) -> str:
        return str(self.snapshot.payload["state"]["phase"])


class SaveSlotStore:
    """Named save slots stored as one JSON file each in a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, slot_id: str) -> Path:
        if not slot_id or any(char in slot_id for char in "/\\."):
            raise InvalidActionError(f"Invalid save id: {slot_id!r}")
        return self.directory / f"{slot_id}.json"

    def save(self, name: str, state: GameState) -> SavedGame:
        if not name or not name.strip():
            raise InvalidActionError("A save needs a name")
        saved = SavedGame(
            id=uuid.uuid4().hex,
            name=name.strip(),
            saved_at=datetime.now(timezone.utc),
            snapshot=snapshot_game_state(state),
        )
        document = {
            "id": saved.id,
            "name": saved.name,
            "saved_at": saved.saved_at.isoformat(),
            "state": saved.snapshot.payload,
        }
        self._path(saved.id).write_text(
            json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        return saved

    def get(self, slot_id: str) -> SavedGame:
        path = self._path(slot_id)
        if not path.exists():
            raise InvalidActionError(f"No saved game with id {slot_id}")
        return _document_to_saved(json.loads(path.read_text(encoding="utf-8")))

    def load(self, slot_id: str) -> GameState:
        return self.get(slot_id).snapshot.restore()

    def delete(self, slot_id: str) -> None:
        path = self._path(slot_id)
        if not path.exists():
            raise InvalidActionError(f"No saved game with id {slot_id}")
        path.unlink()

    def list(self) -> list[SavedGame]:
        """Return every save, newest first."""

        saves = [
            _document_to_saved(json.loads(path.read_text(encoding="utf-8")))
            for path in self.directory.glob("*.json")
        ]
        return sorted(saves, key=lambda saved: saved.saved_at, reverse=True)


def _document_to_saved(document: Mapping[str, Any]) -> SavedGame:
    return SavedGame(
        id=str(document["id"]),
        name=str(document["name"]),
        saved_at=datetime.fromisoformat(document["saved_at"]),
        snapshot=GameStateSnapshot.from_dict(document["state"]),
    )


def _state_to_payload(state: GameState) -> dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "config": _config_to_dict(state.config),
        "players": [_player_to_dict(player) for player in state.players],
        "state": {
            "phase": state.phase.value,
            "night_phase": state.night_phase.value if state.night_phase else None,
            "round_number": state.round_number,
            "current_player_index": state.current_player_index,
            "winner": state.winner.value if state.winner else None,
            "twin_pair": list(state.twin_pair) if state.twin_pair else None,
            "last_guarded_player": state.last_guarded_player,
            "last_guarded_round": state.last_guarded_round,
            "last_sacrificed_player": state.last_sacrificed_player,
            "pending_kill_target": state.pending_kill_target,
            "is_revote": state.is_revote,
            "tied_players": list(state.tied_players),
            "revote_round": state.revote_round,
            "prologue_done": state.prologue_done,
            "heretic_converted": state.heretic_converted,
        },
        "votes": [_ballot_to_dict(ballot) for ballot in state.votes],
        "night_votes": [_ballot_to_dict(ballot) for ballot in state.night_votes],
        "vote_history": [_ballot_to_dict(ballot) for ballot in state.vote_history],
        "night_vote_history": [_ballot_to_dict(ballot) for ballot in state.night_vote_history],
        "listener_checks": [
            {
                "round_number": record.round_number,
                "listener": record.listener,
                "target": record.target,
                "is_clean": record.is_clean,
            }
            for record in state.listener_checks
        ],
        "coroner_reports": [
            {
                "round_number": record.round_number,
                "coroner": record.coroner,
                "target": record.target,
                "is_clean": record.is_clean,
            }
            for record in state.coroner_reports
        ],
        "guard_records": [
            {"round_number": record.round_number, "guard": record.guard, "target": record.target}
            for record in state.guard_records
        ],
        "pending_meeting": _meeting_to_dict(state.pending_meeting),
        "meeting_history": [
            {
                "round_number": record.round_number,
                "timing": record.timing.value,
                "participants": list(record.participants),
                "message_ids": list(record.message_ids),
                "skipped": record.skipped,
            }
            for record in state.meeting_history
        ],
        "narrative_events": [
            {"round_number": event.round_number, "key": event.key, "text": event.text}
            for event in state.narrative_events
        ],
        "pending_state_changes": [
            {
                "player": change.player,
                "emotional_state": change.emotional_state.value,
                "deceased": change.deceased,
                "kind": change.kind,
                "round_number": change.round_number,
            }
            for change in state.pending_state_changes
        ],
        "retry_log": [entry.to_dict() for entry in state.retry_log],
        "messages": [message.to_dict() for message in state.messages],
        "seed": state.seed,
        "rng_state": _rng_state_to_list(state.rng.getstate()),
    }


def _payload_to_state(payload: Mapping[str, Any]) -> GameState:
    config = _dict_to_config(payload["config"])
    players = [_dict_to_player(raw) for raw in payload["players"]]
    block = payload["state"]
    night_raw = block.get("night_phase")
    winner_raw = block.get("winner")
    twin_raw = block.get("twin_pair")

    state = GameState(
        config=config,
        players=players,
        phase=GamePhase(block["phase"]),
        night_phase=NightPhase(night_raw) if night_raw else None,
        round_number=block["round_number"],
        current_player_index=block["current_player_index"],
        winner=Faction(winner_raw) if winner_raw else None,
        messages=MessageLog([Message.from_dict(raw) for raw in payload.get("messages", [])]),
        votes=[_dict_to_ballot(raw) for raw in payload.get("votes", [])],
        night_votes=[_dict_to_ballot(raw) for raw in payload.get("night_votes", [])],
        vote_history=[_dict_to_ballot(raw) for raw in payload.get("vote_history", [])],
        night_vote_history=[
            _dict_to_ballot(raw) for raw in payload.get("night_vote_history", [])
        ],
        listener_checks=[ListenerCheck(**raw) for raw in payload.get("listener_checks", [])],
        coroner_reports=[CoronerReport(**raw) for raw in payload.get("coroner_reports", [])],
        guard_records=[GuardRecord(**raw) for raw in payload.get("guard_records", [])],
        twin_pair=(twin_raw[0], twin_raw[1]) if twin_raw else None,
        last_guarded_player=block.get("last_guarded_player"),
        last_guarded_round=block.get("last_guarded_round"),
        last_sacrificed_player=block.get("last_sacrificed_player"),
        pending_kill_target=block.get("pending_kill_target"),
        is_revote=block.get("is_revote", False),
        tied_players=tuple(block.get("tied_players", [])),
        revote_round=block.get("revote_round", 0),
        pending_meeting=_dict_to_meeting(payload.get("pending_meeting")),
        meeting_history=[
            SecretMeetingRecord(
                round_number=raw["round_number"],
                timing=MeetingTiming(raw["timing"]),
                participants=tuple(raw["participants"]),
                message_ids=tuple(raw.get("message_ids", [])),
                skipped=raw.get("skipped", False),
            )
            for raw in payload.get("meeting_history", [])
        ],
        narrative_events=[NarrativeEvent(**raw) for raw in payload.get("narrative_events", [])],
        pending_state_changes=[
            StateChange(
                player=raw["player"],
                emotional_state=EmotionalState(raw["emotional_state"]),
                deceased=raw["deceased"],
                kind=raw["kind"],
                round_number=raw["round_number"],
            )
            for raw in payload.get("pending_state_changes", [])
        ],
        retry_log=[RetryLogEntry.from_dict(raw) for raw in payload.get("retry_log", [])],
        prologue_done=block.get("prologue_done", False),
        heretic_converted=block.get("heretic_converted", False),
        seed=payload.get("seed"),
    )
    rng_state = payload.get("rng_state")
    if rng_state:
        state.rng.setstate(_list_to_rng_state(rng_state))
    return state


def _config_to_dict(config: GameConfig) -> dict[str, Any]:
    return {
        "player_count": config.player_count,
        "roles": [role.value for role in config.roles],
        "random_seed": config.random_seed,
        "meeting_policy": config.meeting_policy.value,
        "night_revote_limit": config.night_revote_limit,
        "relationships": [
            {
                "character": item.character,
                "target": item.target,
                "kind": item.kind,
                "virtue_on_death": item.virtue_on_death,
            }
            for item in config.relationships
        ],
        "thinking_marker": config.thinking_marker,
        "speech_marker": config.speech_marker,
        "retry": {
            "max_attempts": config.retry.max_attempts,
            "base_delay": config.retry.base_delay,
            "max_delay": config.retry.max_delay,
        },
    }


def _dict_to_config(data: Mapping[str, Any]) -> GameConfig:
    retry = data.get("retry") or {}
    return GameConfig(
        player_count=data["player_count"],
        roles=tuple(RoleType(role) for role in data["roles"]),
        random_seed=data.get("random_seed"),
        meeting_policy=MeetingPolicy(data.get("meeting_policy", MeetingPolicy.ASK.value)),
        night_revote_limit=data.get("night_revote_limit"),
        relationships=tuple(Relationship(**item) for item in data.get("relationships", [])),
        thinking_marker=data["thinking_marker"],
        speech_marker=data["speech_marker"],
        retry=RetrySettings(**retry),
    )


def _player_to_dict(player: Player) -> dict[str, Any]:
    return {
        "name": player.name,
        "role": player.role.value,
        "alive": player.alive,
        "personality": player.personality,
        "player_type": player.player_type.value,
        "emotional_state": player.emotional_state.value if player.emotional_state else None,
    }


def _dict_to_player(data: Mapping[str, Any]) -> Player:
    emotional = data.get("emotional_state")
    return Player(
        name=data["name"],
        role=RoleType(data["role"]),
        alive=data.get("alive", True),
        personality=data.get("personality", ""),
        player_type=PlayerType(data.get("player_type", PlayerType.AGENT.value)),
        emotional_state=EmotionalState(emotional) if emotional else None,
    )


def _ballot_to_dict(ballot: Ballot) -> dict[str, Any]:
    return {"voter": ballot.voter, "target": ballot.target, "round_number": ballot.round_number}


def _dict_to_ballot(data: Mapping[str, Any]) -> Ballot:
    return Ballot(voter=data["voter"], target=data["target"], round_number=data["round_number"])


def _meeting_to_dict(meeting: Optional[PendingMeeting]) -> Optional[dict[str, Any]]:
    if meeting is None:
        return None
    return {
        "timing": meeting.timing.value,
        "round_number": meeting.round_number,
        "participants": list(meeting.participants),
    }


def _dict_to_meeting(data: Optional[Mapping[str, Any]]) -> Optional[PendingMeeting]:
    if not data:
        return None
    return PendingMeeting(
        timing=MeetingTiming(data["timing"]),
        round_number=data["round_number"],
        participants=tuple(data.get("participants", [])),
    )


def _rng_state_to_list(rng_state: tuple) -> list[Any]:
    version, internal, gauss = rng_state
    return [version, list(internal), gauss]


def _list_to_rng_state(data: list[Any]) -> tuple:
    version, internal, gauss = data
    return (version, tuple(internal), gauss)


__all__ = [
    "GameStateSnapshot",
    "SaveSlotStore",
    "SavedGame",
    "copy_game_state",
    "restore_game_state",
    "snapshot_game_state",
]
