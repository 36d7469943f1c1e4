"""Phase controller: the round structure as an iterative state machine."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from .abilities import convert_heretic, coroner_reveal, was_guarded_this_round
from .emotions import apply_death_reactions
from .enums import (
    Channel,
    Faction,
    GamePhase,
    MeetingPolicy,
    MeetingTiming,
    MessageType,
    NightPhase,
    RoleType,
)
from .exceptions import InvalidActionError
from .meetings import (
    complete_meeting,
    meeting_actors,
    random_participants,
    select_participants,
    skip_meeting,
    start_meeting,
)
from .messages import NARRATOR, SPIRIT, Visibility, append_message, narrate
from .narrative import generate_event
from .players import Player
from .state import GameState
from .voting import VoteResult, resolve_day_vote, resolve_night_vote
from .win import WinEvaluator, evaluate_winner

_NIGHT_ORDER: Tuple[NightPhase, ...] = (
    NightPhase.LISTENER,
    NightPhase.MARKED_DISCUSS,
    NightPhase.MARKED_VOTE,
    NightPhase.GUARD,
    NightPhase.CORONER,
)

ROLE_BRIEFINGS = {
    RoleType.MARKED: "You are one of the marked. Each night you and the other marked choose a lamb to harvest.",
    RoleType.LISTENER: "You are the listener. Each night you may learn whether one living player is clean.",
    RoleType.CORONER: "You are the coroner. After each sacrifice you learn whether the body was clean.",
    RoleType.TWIN: "You are a twin. Your sibling is the one person you can trust.",
    RoleType.GUARD: "You are the guard. Each night you may protect one other player, never the same one twice in a row.",
    RoleType.INNOCENT: "You are an innocent. Find the marked and offer them to the fire.",
    RoleType.HERETIC: "You are the heretic. You serve the harvest in secret.",
}


class Settlement(str, Enum):
    """Why phase advancement stopped."""

    ACTORS = "actors"
    AWAITING_OPERATOR = "awaiting_operator"
    ENDED = "ended"


def briefing_role(player: Player) -> RoleType:
    """Dormant seats believe they are innocents until the heretic wakes."""

    return RoleType.INNOCENT if player.role is RoleType.DORMANT else player.role


class PhaseController:
    """Owns every phase transition.

    ``advance`` loops until the game reaches a phase that has someone to act,
    needs an operator decision or has ended. Transitions never call one
    another, so long chains of empty phases or repeated night ties cannot
    deepen the stack.
    """

    def __init__(self, win_evaluator: WinEvaluator = evaluate_winner, max_transitions: int = 256):
        self.win_evaluator = win_evaluator
        self.max_transitions = max_transitions

    # Queries ---------------------------------------------------------------

    def actors(self, state: GameState) -> Tuple[Player, ...]:
        """Return the ordered players who act in the current (sub-)phase."""

        phase = state.phase
        if phase is GamePhase.DAY:
            silenced = set(state.tied_players) if state.is_revote else set()
            return tuple(player for player in state.alive_players if player.name not in silenced)
        if phase is GamePhase.VOTING:
            return state.alive_players
        if phase is GamePhase.SECRET_MEETING:
            return meeting_actors(state)
        if phase is GamePhase.NIGHT:
            night = state.night_phase
            if night is NightPhase.LISTENER:
                return state.living_with_role(RoleType.LISTENER)
            if night in (NightPhase.MARKED_DISCUSS, NightPhase.MARKED_VOTE):
                return state.living_with_role(RoleType.MARKED)
            if night is NightPhase.GUARD:
                return state.living_with_role(RoleType.GUARD)
        return ()

    def current_actor(self, state: GameState) -> Optional[Player]:
        actors = self.actors(state)
        if state.current_player_index < len(actors):
            return actors[state.current_player_index]
        return None

    def awaiting_operator(self, state: GameState) -> bool:
        return (
            state.phase is GamePhase.SECRET_MEETING
            and state.pending_meeting is not None
            and state.pending_meeting.awaiting_selection
        )

    def check_winner(self, state: GameState) -> Optional[Faction]:
        """End the game if a faction has won; return the winner."""

        if state.phase is GamePhase.END:
            return state.winner
        winner = self.win_evaluator(state.players)
        if winner is None:
            return None
        state.end_game(winner)
        label = "The lambs" if winner is Faction.LAMB else "The harvest"
        narrate(state, f"{label} have won. The white fire goes out.", sender=SPIRIT)
        roster = ", ".join(f"{player.name} ({player.role.value})" for player in state.players)
        narrate(state, f"Roles: {roster}.")
        return winner

    # Advancement -----------------------------------------------------------

    def advance(self, state: GameState) -> Settlement:
        """Transition until the game settles."""

        for _ in range(self.max_transitions):
            if self.check_winner(state) is not None:
                return Settlement.ENDED
            if self.awaiting_operator(state):
                return Settlement.AWAITING_OPERATOR
            self._transition(state)
            if self.check_winner(state) is not None:
                return Settlement.ENDED
            if self.awaiting_operator(state):
                return Settlement.AWAITING_OPERATOR
            if self.actors(state):
                return Settlement.ACTORS
        raise InvalidActionError(
            f"Phase advancement did not settle within {self.max_transitions} transitions"
        )

    def settle(self, state: GameState) -> Settlement:
        """Report the current settlement, advancing only if nobody is left to act."""

        if self.check_winner(state) is not None:
            return Settlement.ENDED
        if self.awaiting_operator(state):
            return Settlement.AWAITING_OPERATOR
        if self.current_actor(state) is not None:
            return Settlement.ACTORS
        return self.advance(state)

    def select_meeting(self, state: GameState, first: str, second: str) -> Settlement:
        select_participants(state, first, second)
        return self.settle(state)

    def skip_meeting(self, state: GameState) -> Settlement:
        record = skip_meeting(state)
        narrate(state, "No one slips away to talk in secret.")
        self._leave_meeting(state, record.timing)
        return self.settle(state)

    def _transition(self, state: GameState) -> None:
        phase = state.phase
        if phase is GamePhase.PROLOGUE:
            self._finish_prologue(state)
        elif phase is GamePhase.SECRET_MEETING:
            record = complete_meeting(state)
            self._leave_meeting(state, record.timing)
        elif phase is GamePhase.DAY:
            state.set_phase(GamePhase.VOTING)
            narrate(state, "Discussion is over. Each of you must name someone to offer to the fire.")
        elif phase is GamePhase.VOTING:
            self._resolve_day(state)
        elif phase is GamePhase.EVENT:
            generate_event(state)
            self._enter_night(state, NightPhase.LISTENER)
        elif phase is GamePhase.NIGHT:
            self._night_transition(state)
        else:
            raise InvalidActionError(f"No transition out of phase {phase.value}")

    # Transitions -----------------------------------------------------------

    def _finish_prologue(self, state: GameState) -> None:
        narrate(
            state,
            "Snow has sealed the mountain lodge. Among you walk the marked, "
            "and the white fire demands a sacrifice each day.",
            sender=SPIRIT,
        )
        for player in state.players:
            briefing = ROLE_BRIEFINGS[briefing_role(player)]
            narrate(state, f"{player.name}, {briefing}", Visibility.for_player(player.name))
        marked = [player.name for player in state.players if player.role is RoleType.MARKED]
        narrate(
            state,
            f"The marked are: {', '.join(marked)}.",
            Visibility.for_channel(Channel.MARKED),
        )
        if state.twin_pair is not None:
            narrate(
                state,
                f"The twins are {state.twin_pair[0]} and {state.twin_pair[1]}.",
                Visibility.for_channel(Channel.TWINS),
            )
        state.prologue_done = True
        state.start_next_round()
        self._open_meeting(state, MeetingTiming.BEFORE_DISCUSSION)

    def _open_meeting(self, state: GameState, timing: MeetingTiming) -> None:
        start_meeting(state, timing)
        policy = state.config.meeting_policy
        if policy is MeetingPolicy.SKIP or len(state.living_names) < 2:
            skip_meeting(state)
            self._leave_meeting(state, timing)
        elif policy is MeetingPolicy.RANDOM:
            first, second = random_participants(state)
            select_participants(state, first, second)

    def _leave_meeting(self, state: GameState, timing: MeetingTiming) -> None:
        if timing is MeetingTiming.BEFORE_DISCUSSION:
            state.set_phase(GamePhase.DAY)
            narrate(state, f"Day {state.round_number} begins. Speak, and choose carefully.")
        else:
            state.set_phase(GamePhase.EVENT)

    def _resolve_day(self, state: GameState) -> None:
        outcome = self._resolve_day_vote(state)
        if outcome is VoteResult.REVOTE:
            state.set_phase(GamePhase.DAY)
            narrate(
                state,
                f"The vote is tied between {', '.join(state.tied_players)}. "
                "They must stay silent while the others speak once more before a final vote.",
            )
            return
        self._open_meeting(state, MeetingTiming.AFTER_SACRIFICE)

    def _resolve_day_vote(self, state: GameState) -> VoteResult:
        outcome = resolve_day_vote(state)
        if outcome.result is VoteResult.DECIDED and outcome.target is not None:
            self._kill(state, outcome.target, f"{outcome.target} is offered to the white fire.")
            state.last_sacrificed_player = outcome.target
        elif outcome.result is VoteResult.NO_RESULT:
            state.last_sacrificed_player = None
            if outcome.tally.counts:
                narrate(state, "The vote is tied once more. No one is sacrificed today.")
            else:
                narrate(state, "No valid ballots were cast. No one is sacrificed today.")
        return outcome.result

    def _enter_night(self, state: GameState, night_phase: NightPhase) -> None:
        state.set_night_phase(night_phase)
        if night_phase is NightPhase.LISTENER:
            narrate(state, f"Night {state.round_number} falls over the lodge.")

    def _night_transition(self, state: GameState) -> None:
        night = state.night_phase
        if night is NightPhase.MARKED_VOTE:
            self._resolve_night_vote(state)
            return
        if night is NightPhase.CORONER:
            self._finish_night(state)
            return
        assert night is not None
        self._enter_night(state, _NIGHT_ORDER[_NIGHT_ORDER.index(night) + 1])

    def _resolve_night_vote(self, state: GameState) -> None:
        channel = Visibility.for_channel(Channel.MARKED)
        outcome = resolve_night_vote(state, state.config.night_revote_limit)
        if outcome.result is VoteResult.REVOTE:
            narrate(
                state,
                f"Your choices are split between {', '.join(outcome.tally.leaders)}. "
                "Talk again and agree on one.",
                channel,
            )
            self._enter_night(state, NightPhase.MARKED_DISCUSS)
            return
        if outcome.result is VoteResult.DECIDED:
            state.pending_kill_target = outcome.target
            narrate(state, f"The marked have chosen {outcome.target}.", channel)
        else:
            state.pending_kill_target = None
            narrate(state, "The marked could not agree. No one will be harvested tonight.", channel)
        self._enter_night(state, NightPhase.GUARD)

    def _finish_night(self, state: GameState) -> None:
        coroner_reveal(state)
        target = state.pending_kill_target
        state.pending_kill_target = None
        if target is None:
            dawn = "Dawn comes. Everyone is still alive."
        elif was_guarded_this_round(state, target):
            dawn = "Dawn comes. Someone was attacked in the night, but the guard held."
        elif not state.player(target).alive:
            dawn = "Dawn comes. Everyone is still alive."
        else:
            dawn = None

        state.start_next_round()
        if dawn is None:
            assert target is not None
            self._kill(state, target, f"Dawn comes. {target} was found dead in the snow.")
        else:
            narrate(state, dawn)
        convert_heretic(state)
        if self.check_winner(state) is None:
            self._open_meeting(state, MeetingTiming.BEFORE_DISCUSSION)

    def _kill(self, state: GameState, name: str, announcement: str) -> None:
        state.kill(name)
        append_message(state, NARRATOR, announcement, MessageType.DEATH, Visibility.everyone())
        apply_death_reactions(state, name)


__all__ = ["PhaseController", "ROLE_BRIEFINGS", "Settlement", "briefing_role"]
