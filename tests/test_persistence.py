from __future__ import annotations

from pathlib import Path

import pytest

from whitefire.config import GameConfig, Relationship
from whitefire.controller import PhaseController
from whitefire.enums import GamePhase, MeetingPolicy, NightPhase, RoleType
from whitefire.exceptions import InvalidActionError
from whitefire.persistence import (
    GameStateSnapshot,
    SaveSlotStore,
    copy_game_state,
    restore_game_state,
    snapshot_game_state,
)
from whitefire.players import Player
from whitefire.state import GameState, GuardRecord, ListenerCheck

_TABLE = (
    ("Alice", RoleType.MARKED),
    ("Bob", RoleType.MARKED),
    ("Carol", RoleType.LISTENER),
    ("Dave", RoleType.GUARD),
    ("Erin", RoleType.CORONER),
    ("Frank", RoleType.INNOCENT),
    ("Grace", RoleType.INNOCENT),
)


def _initial_state() -> GameState:
    config = GameConfig(
        player_count=len(_TABLE),
        roles=tuple(role for _, role in _TABLE),
        meeting_policy=MeetingPolicy.RANDOM,
        night_revote_limit=2,
        relationships=(Relationship("Frank", "Grace", "lover", virtue_on_death=False),),
    )
    return GameState(config=config, players=[Player(name, role) for name, role in _TABLE], seed=31)


def _build_progressed_state() -> GameState:
    state = _initial_state()
    controller = PhaseController()
    controller.advance(state)
    state.current_player_index = 2
    controller.advance(state)
    state.set_phase(GamePhase.VOTING)
    state.cast_vote("Alice", "Grace")
    state.cast_vote("Carol", "Grace")
    state.current_player_index = len(state.alive_players)
    controller.advance(state)
    assert state.phase is GamePhase.SECRET_MEETING
    state.listener_checks.append(ListenerCheck(1, "Carol", "Alice", False))
    state.guard_records.append(GuardRecord(1, "Dave", "Carol"))
    state.last_guarded_player = "Carol"
    state.last_guarded_round = 1
    return state


def test_snapshot_round_trip_restores_equivalent_state() -> None:
    state = _build_progressed_state()
    snapshot = snapshot_game_state(state)
    restored = restore_game_state(snapshot)

    assert restored.phase is state.phase
    assert restored.round_number == state.round_number
    assert restored.current_player_index == state.current_player_index
    assert restored.config == state.config
    assert [(p.name, p.role, p.alive, p.emotional_state) for p in restored.players] == [
        (p.name, p.role, p.alive, p.emotional_state) for p in state.players
    ]
    assert restored.vote_history == state.vote_history
    assert restored.listener_checks == state.listener_checks
    assert restored.guard_records == state.guard_records
    assert restored.last_guarded_player == "Carol"
    assert restored.last_sacrificed_player == "Grace"
    assert restored.pending_meeting == state.pending_meeting
    assert restored.meeting_history == state.meeting_history
    assert restored.narrative_events == state.narrative_events
    assert restored.pending_state_changes == state.pending_state_changes
    assert restored.messages.messages == state.messages.messages


def test_restored_random_stream_continues() -> None:
    state = _build_progressed_state()
    restored = copy_game_state(state)

    assert [restored.rng.random() for _ in range(3)] == [state.rng.random() for _ in range(3)]


def test_restored_state_is_independent() -> None:
    state = _build_progressed_state()
    restored = copy_game_state(state)

    restored.kill("Alice")

    assert state.player("Alice").alive


def test_snapshot_file_round_trip(tmp_path: Path) -> None:
    state = _build_progressed_state()
    path = tmp_path / "snapshot.json"

    snapshot_game_state(state).save(path)
    loaded = GameStateSnapshot.load(path).restore()

    assert loaded.phase is GamePhase.SECRET_MEETING
    assert loaded.night_phase is None
    assert len(loaded.messages) == len(state.messages)


def test_night_state_survives_round_trip() -> None:
    state = _initial_state()
    state.round_number = 2
    state.set_night_phase(NightPhase.MARKED_VOTE)
    state.cast_night_vote("Alice", "Frank")
    state.revote_round = 1

    restored = copy_game_state(state)

    assert restored.night_phase is NightPhase.MARKED_VOTE
    assert restored.night_votes == state.night_votes
    assert restored.revote_round == 1


def test_save_slots(tmp_path: Path) -> None:
    store = SaveSlotStore(tmp_path / "saves")
    state = _build_progressed_state()

    first = store.save("before the vote", state)
    state.kill("Frank")
    second = store.save("  after  ", state)

    listed = store.list()
    assert {saved.id for saved in listed} == {first.id, second.id}
    assert listed[0].saved_at >= listed[1].saved_at
    assert store.get(second.id).name == "after"
    assert store.get(first.id).round_number == state.round_number
    assert store.get(first.id).phase == GamePhase.SECRET_MEETING.value

    assert store.load(first.id).player("Frank").alive
    assert not store.load(second.id).player("Frank").alive

    store.delete(first.id)
    assert [saved.id for saved in store.list()] == [second.id]
    with pytest.raises(InvalidActionError):
        store.get(first.id)


@pytest.mark.parametrize("slot_id", ["../escape", "a/b", "name.json", ""])
def test_save_slot_ids_are_checked(tmp_path: Path, slot_id: str) -> None:
    store = SaveSlotStore(tmp_path)

    with pytest.raises(InvalidActionError):
        store.get(slot_id)


def test_save_needs_a_name(tmp_path: Path) -> None:
    store = SaveSlotStore(tmp_path)

    with pytest.raises(InvalidActionError):
        store.save("   ", _initial_state())
