from __future__ import annotations

from typing import Sequence

import pytest

from whitefire.config import GameConfig, Relationship
from whitefire.controller import PhaseController, Settlement
from whitefire.enums import (
    Channel,
    EmotionalState,
    Faction,
    GamePhase,
    MeetingPolicy,
    MeetingTiming,
    MessageType,
    NightPhase,
    RoleType,
)
from whitefire.exceptions import InvalidActionError
from whitefire.messages import SPIRIT, VisibilityScope
from whitefire.players import Player
from whitefire.state import GameState, GuardRecord
from whitefire.win import evaluate_winner

_TABLE = (
    ("Alice", RoleType.MARKED),
    ("Bob", RoleType.MARKED),
    ("Carol", RoleType.LISTENER),
    ("Dave", RoleType.GUARD),
    ("Erin", RoleType.CORONER),
    ("Frank", RoleType.TWIN),
    ("Grace", RoleType.TWIN),
    ("Heidi", RoleType.DORMANT),
    ("Ivan", RoleType.INNOCENT),
)


def _state(
    policy: MeetingPolicy = MeetingPolicy.SKIP,
    *,
    night_revote_limit: int | None = None,
    relationships: Sequence[Relationship] = (),
) -> GameState:
    config = GameConfig(
        player_count=len(_TABLE),
        roles=tuple(role for _, role in _TABLE),
        meeting_policy=policy,
        night_revote_limit=night_revote_limit,
        relationships=tuple(relationships),
    )
    return GameState(
        config=config,
        players=[Player(name, role) for name, role in _TABLE],
        twin_pair=("Frank", "Grace"),
        seed=17,
    )


def _finish_phase(controller: PhaseController, state: GameState) -> Settlement:
    """Pretend every actor in the current (sub-)phase has taken their turn."""

    state.current_player_index = len(controller.actors(state))
    return controller.advance(state)


def _names(players: Sequence[Player]) -> list[str]:
    return [player.name for player in players]


def test_prologue_briefs_players_and_opens_day_one() -> None:
    controller = PhaseController()
    state = _state()

    assert controller.advance(state) is Settlement.ACTORS

    assert state.phase is GamePhase.DAY
    assert state.round_number == 1
    assert state.prologue_done
    assert _names(controller.actors(state)) == [name for name, _ in _TABLE]

    briefings = {
        message.visibility.players[0]: message.content
        for message in state.messages
        if message.visibility.scope is VisibilityScope.PLAYER
    }
    assert "innocent" in briefings["Heidi"]
    assert "listener" in briefings["Carol"]
    marked = [m for m in state.messages if m.visibility.channel is Channel.MARKED]
    assert "Alice" in marked[0].content and "Bob" in marked[0].content
    twins = [m for m in state.messages if m.visibility.channel is Channel.TWINS]
    assert "Frank" in twins[0].content
    assert state.meeting_history[0].skipped


def test_ask_policy_waits_for_operator() -> None:
    controller = PhaseController()
    state = _state(MeetingPolicy.ASK)

    assert controller.advance(state) is Settlement.AWAITING_OPERATOR
    assert state.phase is GamePhase.SECRET_MEETING
    assert state.pending_meeting is not None
    assert state.pending_meeting.timing is MeetingTiming.BEFORE_DISCUSSION
    assert controller.actors(state) == ()

    assert controller.select_meeting(state, "Carol", "Ivan") is Settlement.ACTORS
    assert _names(controller.actors(state)) == ["Carol", "Ivan"]

    assert _finish_phase(controller, state) is Settlement.ACTORS
    assert state.phase is GamePhase.DAY
    assert state.meeting_history[-1].participants == ("Carol", "Ivan")


def test_meeting_participants_must_be_alive_and_distinct() -> None:
    controller = PhaseController()
    state = _state(MeetingPolicy.ASK)
    controller.advance(state)
    state.kill("Ivan")

    with pytest.raises(InvalidActionError):
        controller.select_meeting(state, "Carol", "Carol")
    with pytest.raises(InvalidActionError):
        controller.select_meeting(state, "Carol", "Ivan")


def test_operator_can_skip_meeting() -> None:
    controller = PhaseController()
    state = _state(MeetingPolicy.ASK)
    controller.advance(state)

    assert controller.skip_meeting(state) is Settlement.ACTORS
    assert state.phase is GamePhase.DAY
    assert state.meeting_history[-1].skipped


def test_random_policy_picks_two_living_players() -> None:
    controller = PhaseController()
    state = _state(MeetingPolicy.RANDOM)

    assert controller.advance(state) is Settlement.ACTORS
    assert state.phase is GamePhase.SECRET_MEETING
    pair = state.pending_meeting.participants if state.pending_meeting else ()
    assert len(set(pair)) == 2
    assert all(state.player(name).alive for name in pair)


def test_day_leads_to_voting_and_a_sacrifice() -> None:
    controller = PhaseController()
    state = _state()
    controller.advance(state)

    assert _finish_phase(controller, state) is Settlement.ACTORS
    assert state.phase is GamePhase.VOTING

    for voter in ("Alice", "Carol", "Dave"):
        state.cast_vote(voter, "Ivan")
    state.cast_vote("Ivan", "Alice")

    assert _finish_phase(controller, state) is Settlement.ACTORS
    assert not state.player("Ivan").alive
    assert state.last_sacrificed_player == "Ivan"
    deaths = [m for m in state.messages if m.type is MessageType.DEATH]
    assert len(deaths) == 1 and "Ivan" in deaths[0].content
    # The after-sacrifice meeting is skipped, the event fires and night begins.
    assert state.phase is GamePhase.NIGHT
    assert state.night_phase is NightPhase.LISTENER
    assert len(state.narrative_events) == 1
    assert _names(controller.actors(state)) == ["Carol"]


def test_day_tie_silences_tied_players_for_the_revote() -> None:
    controller = PhaseController()
    state = _state()
    controller.advance(state)
    _finish_phase(controller, state)
    state.cast_vote("Alice", "Frank")
    state.cast_vote("Carol", "Grace")

    _finish_phase(controller, state)

    assert state.phase is GamePhase.DAY
    assert state.is_revote
    actors = _names(controller.actors(state))
    assert "Frank" not in actors and "Grace" not in actors
    assert len(actors) == 7

    _finish_phase(controller, state)
    assert _names(controller.actors(state)) == [name for name, _ in _TABLE]

    state.cast_vote("Alice", "Frank")
    state.cast_vote("Carol", "Grace")
    _finish_phase(controller, state)

    assert all(player.alive for player in state.players)
    assert state.last_sacrificed_player is None
    assert state.phase is GamePhase.NIGHT
    assert any("No one is sacrificed" in m.content for m in state.messages)


def _enter_night(controller: PhaseController, state: GameState) -> None:
    controller.advance(state)
    _finish_phase(controller, state)
    _finish_phase(controller, state)
    assert state.phase is GamePhase.NIGHT


def test_night_runs_in_sub_phase_order() -> None:
    controller = PhaseController()
    state = _state()
    _enter_night(controller, state)

    seen = []
    for _ in range(3):
        seen.append((state.night_phase, _names(controller.actors(state))))
        _finish_phase(controller, state)

    assert seen == [
        (NightPhase.LISTENER, ["Carol"]),
        (NightPhase.MARKED_DISCUSS, ["Alice", "Bob"]),
        (NightPhase.MARKED_VOTE, ["Alice", "Bob"]),
    ]
    assert state.night_phase is NightPhase.GUARD


def test_guarded_target_survives_the_night() -> None:
    controller = PhaseController()
    state = _state()
    _enter_night(controller, state)
    _finish_phase(controller, state)
    _finish_phase(controller, state)
    state.cast_night_vote("Alice", "Ivan")
    state.cast_night_vote("Bob", "Ivan")
    _finish_phase(controller, state)
    assert state.night_phase is NightPhase.GUARD
    state.guard_records.append(
        GuardRecord(1, "Dave", "Ivan")
    )

    _finish_phase(controller, state)

    assert state.player("Ivan").alive
    assert state.round_number == 2
    assert state.phase is GamePhase.DAY
    assert any("the guard held" in m.content for m in state.messages)


def test_unguarded_target_dies_and_relationships_react() -> None:
    controller = PhaseController()
    bond = Relationship(character="Carol", target="Ivan", kind="sibling", virtue_on_death=False)
    state = _state(relationships=[bond])
    _enter_night(controller, state)
    _finish_phase(controller, state)
    _finish_phase(controller, state)
    state.cast_night_vote("Alice", "Ivan")
    state.cast_night_vote("Bob", "Ivan")
    _finish_phase(controller, state)

    _finish_phase(controller, state)

    assert not state.player("Ivan").alive
    assert state.round_number == 2
    assert state.player("Carol").emotional_state is EmotionalState.SIN
    change = state.pending_state_changes[0]
    assert (change.player, change.deceased, change.kind) == ("Carol", "Ivan", "sibling")
    reaction = [m for m in state.messages if m.sender == SPIRIT and m.visibility.players == ("Carol",)]
    assert len(reaction) == 1


def test_night_tie_returns_to_discussion() -> None:
    controller = PhaseController()
    state = _state()
    _enter_night(controller, state)
    _finish_phase(controller, state)
    _finish_phase(controller, state)
    state.cast_night_vote("Alice", "Ivan")
    state.cast_night_vote("Bob", "Frank")

    _finish_phase(controller, state)

    assert state.night_phase is NightPhase.MARKED_DISCUSS
    assert state.revote_round == 1
    assert state.round_number == 1


def test_heretic_wakes_when_round_two_begins() -> None:
    controller = PhaseController()
    state = _state()
    _enter_night(controller, state)
    for _ in range(4):
        _finish_phase(controller, state)

    assert state.round_number == 2
    assert state.player("Heidi").role is RoleType.HERETIC
    assert state.heretic_converted


def test_lambs_win_when_marked_are_gone() -> None:
    controller = PhaseController()
    state = _state()
    controller.advance(state)
    state.kill("Alice")
    state.kill("Bob")

    assert _finish_phase(controller, state) is Settlement.ENDED
    assert state.winner is Faction.LAMB
    assert state.phase is GamePhase.END
    assert "Alice (marked)" in state.messages.messages[-1].content


def test_evaluate_winner() -> None:
    state = _state()
    assert evaluate_winner(state.players) is None

    for name in ("Carol", "Dave", "Erin", "Frank", "Grace"):
        state.kill(name)
    assert evaluate_winner(state.players) is Faction.HARVEST


def test_heretic_counts_for_the_harvest() -> None:
    state = _state()
    state.relabel_role("Heidi", RoleType.HERETIC)
    for name in ("Carol", "Dave", "Erin", "Frank"):
        state.kill(name)

    assert evaluate_winner(state.players) is Faction.HARVEST
