from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from whitefire.config import GameConfig, ProviderSettings, Relationship
from whitefire.config_loader import GameSetupConfig
from whitefire.emotions import apply_death_reactions
from whitefire.enums import GamePhase, MeetingPolicy, MessageType, RoleType
from whitefire.executor import StepOutcome, TurnExecutor
from whitefire.interaction import OperatorConsole, format_message
from whitefire.messages import Visibility, append_message
from whitefire.mock_provider import ScriptedProvider
from whitefire.persistence import SaveSlotStore
from whitefire.players import Player
from whitefire.session import GameSession
from whitefire.setup import PlayerRegistration
from whitefire.state import GameState

_TABLE = (
    ("Alice", RoleType.MARKED),
    ("Bob", RoleType.MARKED),
    ("Carol", RoleType.LISTENER),
    ("Dave", RoleType.GUARD),
    ("Erin", RoleType.CORONER),
    ("Frank", RoleType.INNOCENT),
    ("Grace", RoleType.INNOCENT),
)


class ScriptedIO:
    def __init__(self, responses: Iterable[str] = ()) -> None:
        self.responses = list(responses)
        self.writes: List[str] = []

    def read(self, prompt: str) -> str:
        self.writes.append(prompt)
        if not self.responses:
            raise EOFError
        return self.responses.pop(0)

    def write(self, message: str) -> None:
        self.writes.append(message)


def _session(tmp_path: Path, policy: MeetingPolicy = MeetingPolicy.ASK) -> GameSession:
    config = GameConfig(
        player_count=len(_TABLE),
        roles=tuple(role for _, role in _TABLE),
        meeting_policy=policy,
        relationships=(Relationship("Carol", "Frank", "friend"),),
    )
    state = GameState(config=config, players=[Player(name, role) for name, role in _TABLE], seed=9)
    executor = TurnExecutor(
        ScriptedProvider(),
        ProviderSettings(api_key="test-key"),
        sleep=lambda _: None,
        notify=lambda _: None,
    )
    return GameSession(state, executor, store=SaveSlotStore(tmp_path / "saves"), pause=0)


def test_session_waits_for_meeting_selection(tmp_path: Path) -> None:
    session = _session(tmp_path)

    result = session.next_step()

    assert result.outcome is StepOutcome.AWAITING_OPERATOR
    assert session.next_step().outcome is StepOutcome.AWAITING_OPERATOR

    chosen = session.select_meeting_participants("Carol", "Frank")

    assert chosen.outcome is StepOutcome.ADVANCED
    assert session.current_actor is not None
    assert session.current_actor.name == "Carol"

    session.run_phase()
    secret = [m for m in session.state.messages if m.type is MessageType.SECRET]
    assert len(secret) == 2
    assert all(m.visibility.players == ("Carol", "Frank") for m in secret)
    assert session.state.phase is GamePhase.DAY
    assert session.state.meeting_history[-1].message_ids == tuple(m.id for m in secret)


def test_session_skip_meeting(tmp_path: Path) -> None:
    session = _session(tmp_path)
    session.next_step()

    result = session.skip_meeting()

    assert result.outcome is StepOutcome.ADVANCED
    assert session.state.phase is GamePhase.DAY


def test_clear_pending_state_changes_returns_them(tmp_path: Path) -> None:
    session = _session(tmp_path, MeetingPolicy.SKIP)
    session.next_step()
    session.state.kill("Frank")
    apply_death_reactions(session.state, "Frank")

    changes = session.clear_pending_state_changes()

    assert [change.player for change in changes] == ["Carol"]
    assert session.state.pending_state_changes == []


def test_save_and_load_through_session(tmp_path: Path) -> None:
    session = _session(tmp_path, MeetingPolicy.SKIP)
    session.next_step()
    session.next_step()
    saved = session.save("first speech")

    session.next_step()
    assert session.state.current_player_index == 2

    session.load(saved.id)

    assert session.state.current_player_index == 1
    assert session.executor.last_turn is None
    assert [s.id for s in session.list_saves()] == [saved.id]

    session.delete_save(saved.id)
    assert session.list_saves() == []


def test_update_personality(tmp_path: Path) -> None:
    session = _session(tmp_path)

    player = session.update_personality("Erin", "  Grim and patient.  ")

    assert player.personality == "Grim and patient."


def test_from_setup_config_uses_given_provider(tmp_path: Path) -> None:
    setup_config = GameSetupConfig(
        game_config=GameConfig.default(5, random_seed=3, meeting_policy=MeetingPolicy.SKIP),
        registrations=tuple(PlayerRegistration(name) for name in ("A1", "B2", "C3", "D4", "E5")),
        provider=ProviderSettings(api_key="k"),
        save_directory=tmp_path / "saves",
    )
    provider = ScriptedProvider()

    session = GameSession.from_setup_config(setup_config, provider=provider, notify=lambda _: None)
    session.next_step()
    session.next_step()

    assert provider.call_count == 1
    assert session.store is not None
    assert session.store.directory == tmp_path / "saves"


def test_format_message_shows_audience() -> None:
    config = GameConfig(player_count=len(_TABLE), roles=tuple(role for _, role in _TABLE))
    state = GameState(config=config, players=[Player(name, role) for name, role in _TABLE])
    pair = append_message(
        state, "Carol", "Trust me.", MessageType.SECRET, Visibility.for_pair("Carol", "Frank")
    )
    thought = append_message(
        state, "Carol", "Frank is clean.", MessageType.THINKING, Visibility.for_player("Carol")
    )

    assert format_message(pair) == "<Carol & Frank> Carol: Trust me."
    assert format_message(thought) == "<Carol> Carol thinks: Frank is clean."


def test_console_commands(tmp_path: Path) -> None:
    session = _session(tmp_path)
    io = ScriptedIO(["n", "meet Carol Frank", "n", "players", "save checkpoint", "saves", "bogus", "q"])
    console = OperatorConsole(session, io)

    console.loop()

    output = "\n".join(io.writes)
    assert "A secret meeting is pending" in output
    assert "slip away" in output
    assert "Carol: listener, alive" in output
    assert "Saved as" in output
    assert "checkpoint" in output
    assert "Unknown command" in output


def test_console_reports_invalid_actions(tmp_path: Path) -> None:
    session = _session(tmp_path)
    io = ScriptedIO()
    console = OperatorConsole(session, io)

    assert console.handle("meet Carol Carol")
    assert console.handle("p")

    assert any("Not allowed" in line for line in io.writes)


def test_console_hides_prompts(tmp_path: Path) -> None:
    session = _session(tmp_path, MeetingPolicy.SKIP)
    io = ScriptedIO()
    console = OperatorConsole(session, io)

    console.handle("n")
    console.handle("n")

    prompts = [m.content for m in session.state.messages if m.type is MessageType.PROMPT]
    assert prompts
    assert not any(prompt in io.writes for prompt in prompts)
    assert any(line.startswith("Alice: ") for line in io.writes)
    assert console.handle("quit") is False


def test_console_prints_the_redone_turn(tmp_path: Path) -> None:
    session = _session(tmp_path, MeetingPolicy.SKIP)
    session.executor.provider = ScriptedProvider(["[SPEECH] First words.", "[SPEECH] Second words."])
    io = ScriptedIO()
    console = OperatorConsole(session, io)

    console.handle("n")
    console.handle("n")
    console.handle("p")

    assert "Alice: First words." in io.writes
    assert "Alice: Second words." in io.writes
