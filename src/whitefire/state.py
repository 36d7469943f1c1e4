"""Game state aggregate for Whitefire sessions."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import GameConfig
from .enums import EmotionalState, Faction, GamePhase, MeetingTiming, NightPhase, RoleType
from .exceptions import ConfigurationError, InvalidActionError
from .messages import MessageLog
from .players import Player
from .retry import RetryLogEntry


@dataclass(frozen=True, slots=True)
class Ballot:
    """A single vote, day or night."""

    voter: str
    target: str
    round_number: int


@dataclass(frozen=True, slots=True)
class ListenerCheck:
    round_number: int
    listener: str
    target: str
    is_clean: bool


@dataclass(frozen=True, slots=True)
class CoronerReport:
    round_number: int
    coroner: str
    target: str
    is_clean: bool


@dataclass(frozen=True, slots=True)
class GuardRecord:
    round_number: int
    guard: str
    target: str


@dataclass(frozen=True, slots=True)
class PendingMeeting:
    """A secret meeting waiting for participants or for their turns."""

    timing: MeetingTiming
    round_number: int
    participants: Tuple[str, ...] = ()

    @property
    def awaiting_selection(self) -> bool:
        return not self.participants


@dataclass(frozen=True, slots=True)
class SecretMeetingRecord:
    round_number: int
    timing: MeetingTiming
    participants: Tuple[str, ...]
    message_ids: Tuple[str, ...] = ()
    skipped: bool = False


@dataclass(frozen=True, slots=True)
class NarrativeEvent:
    round_number: int
    key: str
    text: str


@dataclass(frozen=True, slots=True)
class StateChange:
    """Emotional state applied to a survivor after a death, awaiting operator review."""

    player: str
    emotional_state: EmotionalState
    deceased: str
    kind: str
    round_number: int


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Lengths and scalars captured before a turn so a failure can be undone."""

    phase: GamePhase
    night_phase: Optional[NightPhase]
    round_number: int
    cursor: int
    message_count: int
    vote_count: int
    night_vote_count: int
    listener_check_count: int
    guard_record_count: int
    last_guarded_player: Optional[str]
    last_guarded_round: Optional[int]


@dataclass(slots=True)
class GameState:
    """Mutable representation of an in-progress Whitefire game.

    All mutation goes through the named methods below so that the controller,
    the executor and the role resolvers share one audited path.
    """

    config: GameConfig
    players: List[Player]
    phase: GamePhase = GamePhase.PROLOGUE
    night_phase: Optional[NightPhase] = None
    round_number: int = 0
    current_player_index: int = 0
    winner: Optional[Faction] = None
    messages: MessageLog = field(default_factory=MessageLog, repr=False)
    votes: List[Ballot] = field(default_factory=list, repr=False)
    night_votes: List[Ballot] = field(default_factory=list, repr=False)
    vote_history: List[Ballot] = field(default_factory=list, repr=False)
    night_vote_history: List[Ballot] = field(default_factory=list, repr=False)
    listener_checks: List[ListenerCheck] = field(default_factory=list, repr=False)
    coroner_reports: List[CoronerReport] = field(default_factory=list, repr=False)
    guard_records: List[GuardRecord] = field(default_factory=list, repr=False)
    twin_pair: Optional[Tuple[str, str]] = None
    last_guarded_player: Optional[str] = None
    last_guarded_round: Optional[int] = None
    last_sacrificed_player: Optional[str] = None
    pending_kill_target: Optional[str] = None
    is_revote: bool = False
    tied_players: Tuple[str, ...] = ()
    revote_round: int = 0
    pending_meeting: Optional[PendingMeeting] = None
    meeting_history: List[SecretMeetingRecord] = field(default_factory=list, repr=False)
    narrative_events: List[NarrativeEvent] = field(default_factory=list, repr=False)
    pending_state_changes: List[StateChange] = field(default_factory=list, repr=False)
    retry_log: List[RetryLogEntry] = field(default_factory=list, repr=False)
    prologue_done: bool = False
    heretic_converted: bool = False
    seed: Optional[int] = None
    rng: random.Random = field(default=None, repr=False, compare=False)  # type: ignore[assignment]
    _players_by_name: Dict[str, Player] = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        player_map = {player.name: player for player in self.players}
        if len(player_map) != len(self.players):
            raise ConfigurationError("Duplicate player names detected in game state")
        if self.config.player_count != len(self.players):
            raise ConfigurationError("Player roster does not match configuration count")
        self._players_by_name = player_map
        if self.rng is None:
            self.rng = random.Random(self.seed)

    # Queries ---------------------------------------------------------------

    def player(self, name: str) -> Player:
        try:
            return self._players_by_name[name]
        except KeyError as exc:
            raise InvalidActionError(f"Unknown player: {name}") from exc

    def find_player(self, name: str) -> Optional[Player]:
        return self._players_by_name.get(name)

    @property
    def alive_players(self) -> Tuple[Player, ...]:
        return tuple(player for player in self.players if player.alive)

    @property
    def living_names(self) -> Tuple[str, ...]:
        return tuple(player.name for player in self.players if player.alive)

    def living_with_role(self, role: RoleType) -> Tuple[Player, ...]:
        return tuple(player for player in self.players if player.alive and player.role is role)

    @property
    def is_over(self) -> bool:
        return self.phase is GamePhase.END

    # Phase and cursor ------------------------------------------------------

    def set_phase(self, phase: GamePhase, night_phase: Optional[NightPhase] = None) -> None:
        """Move to ``phase``; every actor-scope change resets the cursor."""

        if phase is GamePhase.NIGHT and night_phase is None:
            raise InvalidActionError("Entering the night requires a sub-phase")
        self.phase = phase
        self.night_phase = night_phase if phase is GamePhase.NIGHT else None
        self.current_player_index = 0

    def set_night_phase(self, night_phase: NightPhase) -> None:
        self.set_phase(GamePhase.NIGHT, night_phase)

    def advance_cursor(self) -> None:
        self.current_player_index += 1

    def reset_cursor(self) -> None:
        self.current_player_index = 0

    def start_next_round(self) -> None:
        self.round_number += 1
        self.is_revote = False
        self.tied_players = ()
        self.revote_round = 0

    def end_game(self, winner: Faction) -> None:
        self.winner = winner
        self.phase = GamePhase.END
        self.night_phase = None
        self.current_player_index = 0
        self.pending_meeting = None

    # Ballots ---------------------------------------------------------------

    def cast_vote(self, voter: str, target: str) -> Ballot:
        ballot = Ballot(voter=voter, target=target, round_number=self.round_number)
        self.votes.append(ballot)
        return ballot

    def cast_night_vote(self, voter: str, target: str) -> Ballot:
        ballot = Ballot(voter=voter, target=target, round_number=self.round_number)
        self.night_votes.append(ballot)
        return ballot

    def archive_votes(self) -> Tuple[Ballot, ...]:
        """Copy the working day ballots into history with the round stamp, then clear."""

        archived = tuple(
            Ballot(ballot.voter, ballot.target, self.round_number) for ballot in self.votes
        )
        self.vote_history.extend(archived)
        self.votes.clear()
        return archived

    def archive_night_votes(self) -> Tuple[Ballot, ...]:
        archived = tuple(
            Ballot(ballot.voter, ballot.target, self.round_number) for ballot in self.night_votes
        )
        self.night_vote_history.extend(archived)
        self.night_votes.clear()
        return archived

    # Life and death --------------------------------------------------------

    def kill(self, name: str) -> Player:
        player = self.player(name)
        if not player.alive:
            raise InvalidActionError(f"{name} is already dead")
        player.alive = False
        return player

    def relabel_role(self, name: str, role: RoleType) -> Player:
        player = self.player(name)
        player.role = role
        return player

    def clear_pending_state_changes(self) -> int:
        cleared = len(self.pending_state_changes)
        self.pending_state_changes.clear()
        return cleared

    # Checkpoints -----------------------------------------------------------

    def checkpoint(self) -> Checkpoint:
        """Capture everything a single turn may append to or overwrite."""

        return Checkpoint(
            phase=self.phase,
            night_phase=self.night_phase,
            round_number=self.round_number,
            cursor=self.current_player_index,
            message_count=len(self.messages),
            vote_count=len(self.votes),
            night_vote_count=len(self.night_votes),
            listener_check_count=len(self.listener_checks),
            guard_record_count=len(self.guard_records),
            last_guarded_player=self.last_guarded_player,
            last_guarded_round=self.last_guarded_round,
        )

    def rollback(self, checkpoint: Checkpoint) -> None:
        """Undo a turn. The retry log survives rollbacks."""

        if (checkpoint.phase, checkpoint.night_phase, checkpoint.round_number) != (
            self.phase,
            self.night_phase,
            self.round_number,
        ):
            raise InvalidActionError("Cannot roll back across a phase or round change")
        self.messages.truncate(checkpoint.message_count)
        del self.votes[checkpoint.vote_count:]
        del self.night_votes[checkpoint.night_vote_count:]
        del self.listener_checks[checkpoint.listener_check_count:]
        del self.guard_records[checkpoint.guard_record_count:]
        self.last_guarded_player = checkpoint.last_guarded_player
        self.last_guarded_round = checkpoint.last_guarded_round
        self.current_player_index = checkpoint.cursor


__all__ = [
    "Ballot",
    "Checkpoint",
    "CoronerReport",
    "GameState",
    "GuardRecord",
    "ListenerCheck",
    "NarrativeEvent",
    "PendingMeeting",
    "SecretMeetingRecord",
    "StateChange",
]
