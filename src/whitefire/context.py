"""Private per-turn context for a single acting player."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .abilities import twin_partner
from .controller import briefing_role
from .enums import EmotionalState, Faction, GamePhase, MessageType, NightPhase, RoleType
from .messages import Message, visible_to
from .players import Player
from .roles import role_faction
from .state import CoronerReport, GameState, GuardRecord, ListenerCheck


@dataclass(frozen=True, slots=True)
class TurnContext:
    """Everything one player is allowed to know when taking a turn.

    ``role`` is the role the player believes they hold, so a dormant seat sees
    itself as an innocent until the heretic wakes.
    """

    # Identity
    name: str
    role: RoleType
    faction: Faction
    personality: str
    emotional_state: Optional[EmotionalState]

    # Where the game stands
    phase: GamePhase
    night_phase: Optional[NightPhase]
    round_number: int
    living_players: Tuple[str, ...]
    dead_players: Tuple[str, ...]

    # Role knowledge
    fellow_marked: Tuple[str, ...] = ()
    twin_partner: Optional[str] = None
    listener_checks: Tuple[ListenerCheck, ...] = ()
    coroner_reports: Tuple[CoronerReport, ...] = ()
    guard_records: Tuple[GuardRecord, ...] = ()
    unavailable_guard_target: Optional[str] = None

    # Phase details
    is_revote: bool = False
    tied_players: Tuple[str, ...] = ()
    meeting_partner: Optional[str] = None

    # Visible history, oldest first, without rendered prompts
    history: Tuple[Message, ...] = ()

    @property
    def valid_targets(self) -> Tuple[str, ...]:
        """Living players this seat may name in its current action."""

        others = tuple(name for name in self.living_players if name != self.name)
        if self.phase is GamePhase.VOTING and self.is_revote and self.tied_players:
            return tuple(name for name in others if name in self.tied_players)
        if self.night_phase in (NightPhase.MARKED_DISCUSS, NightPhase.MARKED_VOTE):
            return tuple(name for name in others if name not in self.fellow_marked)
        if self.night_phase is NightPhase.GUARD and self.unavailable_guard_target:
            return tuple(name for name in others if name != self.unavailable_guard_target)
        return others


def build_context(state: GameState, player: Player) -> TurnContext:
    """Assemble the private context for ``player`` from the shared state."""

    role = briefing_role(player)
    history = tuple(
        message
        for message in visible_to(player, state.messages)
        if message.type is not MessageType.PROMPT
    )
    fellow_marked: Tuple[str, ...] = ()
    if player.role is RoleType.MARKED:
        fellow_marked = tuple(
            other.name
            for other in state.players
            if other.role is RoleType.MARKED and other.name != player.name
        )

    unavailable_guard_target = None
    if (
        player.role is RoleType.GUARD
        and state.last_guarded_round == state.round_number - 1
    ):
        unavailable_guard_target = state.last_guarded_player

    meeting_partner = None
    meeting = state.pending_meeting
    if state.phase is GamePhase.SECRET_MEETING and meeting and player.name in meeting.participants:
        meeting_partner = next(name for name in meeting.participants if name != player.name)

    return TurnContext(
        name=player.name,
        role=role,
        faction=role_faction(role),
        personality=player.personality,
        emotional_state=player.emotional_state,
        phase=state.phase,
        night_phase=state.night_phase,
        round_number=state.round_number,
        living_players=state.living_names,
        dead_players=tuple(other.name for other in state.players if not other.alive),
        fellow_marked=fellow_marked,
        twin_partner=twin_partner(state, player.name),
        listener_checks=tuple(
            record for record in state.listener_checks if record.listener == player.name
        ),
        coroner_reports=tuple(
            record for record in state.coroner_reports if record.coroner == player.name
        ),
        guard_records=tuple(record for record in state.guard_records if record.guard == player.name),
        unavailable_guard_target=unavailable_guard_target,
        is_revote=state.is_revote,
        tied_players=state.tied_players,
        meeting_partner=meeting_partner,
        history=history,
    )


__all__ = ["TurnContext", "build_context"]
