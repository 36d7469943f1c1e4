"""Plain-text operator console for driving Whitefire games."""

from __future__ import annotations

import shlex
import sys
from dataclasses import dataclass
from typing import Protocol, Sequence

from .enums import MessageType
from .exceptions import ConfigurationError, InvalidActionError, ProviderError
from .executor import StepOutcome, StepResult
from .messages import Message, VisibilityScope
from .session import GameSession

HELP_TEXT = """Commands:
  n | next                 take one step
  a | auto                 run until the phase changes
  r | retry                retry the current turn after a failure
  p | previous             redo the previous turn
  meet <name> <name>       choose the secret meeting pair
  skip                     skip the pending secret meeting
  save <name>              save the game
  saves                    list saved games
  load <id>                load a saved game
  clear                    acknowledge pending emotional state changes
  persona <name> <text>    change a player's personality
  players                  show the roster
  q | quit                 leave"""


class InteractionIO(Protocol):
    """Minimal IO surface for the operator console."""

    def read(self, prompt: str) -> str:
        """Return a response to a visible prompt."""
        ...

    def write(self, message: str) -> None:
        """Display a message to the operator."""
        ...


@dataclass
class CLIInteraction:
    """Console-backed IO using ``input`` and ``print``."""

    def read(self, prompt: str) -> str:
        return input(prompt)

    def write(self, message: str) -> None:
        print(message)


def format_message(message: Message) -> str:
    """Render one log entry for the operator, who sees every channel."""

    scope = message.visibility.scope
    if scope is VisibilityScope.CHANNEL and message.visibility.channel is not None:
        audience = f"<{message.visibility.channel.value}> "
    elif scope in (VisibilityScope.PLAYER, VisibilityScope.PAIR):
        audience = f"<{' & '.join(message.visibility.players)}> "
    else:
        audience = ""
    if message.type is MessageType.THINKING:
        return f"{audience}{message.sender} thinks: {message.content}"
    return f"{audience}{message.sender}: {message.content}"


class OperatorConsole:
    """Reads operator commands and prints new log entries as they appear."""

    def __init__(self, session: GameSession, io: InteractionIO | None = None) -> None:
        self.session = session
        self.io = io or CLIInteraction()
        self._shown: set[str] = set()

    def _flush(self) -> None:
        # Retried turns reuse log positions; message ids never repeat.
        for message in self.session.state.messages:
            if message.id in self._shown:
                continue
            self._shown.add(message.id)
            if message.type is not MessageType.PROMPT:
                self.io.write(format_message(message))

    def _status(self) -> str:
        state = self.session.state
        phase = state.phase.value
        if state.night_phase is not None:
            phase = f"{phase}/{state.night_phase.value}"
        actor = self.session.current_actor
        waiting = f", next: {actor.name}" if actor else ""
        return f"[round {state.round_number}, {phase}{waiting}]"

    def _report(self, result: StepResult) -> None:
        if result.outcome is StepOutcome.AWAITING_OPERATOR:
            living = ", ".join(self.session.state.living_names)
            self.io.write(f"A secret meeting is pending. Use 'meet' or 'skip'. Living: {living}")
        elif result.outcome is StepOutcome.GAME_OVER:
            winner = self.session.state.winner
            self.io.write(f"Game over: {winner.value if winner else 'nobody'} wins")

    def handle(self, line: str) -> bool:
        """Run one command; return False when the operator wants to quit."""

        try:
            parts = shlex.split(line)
        except ValueError as exc:
            self.io.write(f"Could not parse command: {exc}")
            return True
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        try:
            if command in ("q", "quit", "exit"):
                return False
            if command in ("h", "help", "?"):
                self.io.write(HELP_TEXT)
            elif command in ("n", "next"):
                self._report(self.session.next_step())
            elif command in ("a", "auto"):
                results = self.session.run_phase()
                if results:
                    self._report(results[-1])
            elif command in ("r", "retry"):
                self._report(self.session.retry_current_turn())
            elif command in ("p", "previous"):
                self._report(self.session.retry_previous_turn())
            elif command == "meet" and len(args) == 2:
                self._report(self.session.select_meeting_participants(args[0], args[1]))
            elif command == "skip":
                self._report(self.session.skip_meeting())
            elif command == "save" and args:
                saved = self.session.save(" ".join(args))
                self.io.write(f"Saved as {saved.id}")
            elif command == "saves":
                for saved in self.session.list_saves():
                    self.io.write(
                        f"{saved.id}  {saved.name}  round {saved.round_number} "
                        f"({saved.phase})  {saved.saved_at:%Y-%m-%d %H:%M}"
                    )
            elif command == "load" and len(args) == 1:
                self.session.load(args[0])
                self._shown.clear()
                self.io.write("Game loaded.")
            elif command == "clear":
                for change in self.session.clear_pending_state_changes():
                    self.io.write(
                        f"{change.player}: {change.emotional_state.value} "
                        f"(after the death of {change.deceased})"
                    )
            elif command == "persona" and len(args) >= 2:
                self.session.update_personality(args[0], " ".join(args[1:]))
            elif command == "players":
                for player in self.session.state.players:
                    status = "alive" if player.alive else "dead"
                    self.io.write(f"{player.name}: {player.role.value}, {status}")
            else:
                self.io.write("Unknown command. Type 'help' for the list.")
        except ProviderError as exc:
            self.io.write(f"Provider error: {exc}. Use 'retry' to try the turn again.")
        except InvalidActionError as exc:
            self.io.write(f"Not allowed: {exc}")
        finally:
            self._flush()
        return True

    def loop(self) -> None:
        self.io.write(HELP_TEXT)
        self._flush()
        while True:
            try:
                line = self.io.read(f"{self._status()} > ")
            except EOFError:
                break
            if not self.handle(line):
                break


def main(argv: Sequence[str] | None = None) -> int:  # pragma: no cover - CLI entry point
    """Run the operator console for a YAML configuration file."""

    from .config_loader import load_config_file

    args = list(sys.argv[1:] if argv is None else argv)
    backend = CLIInteraction()
    if args and args[0] in ("--config", "-c"):
        args = args[1:]
    if not args:
        backend.write("Usage: whitefire <config.yaml>")
        return 1

    try:
        setup_config = load_config_file(args[0])
    except (FileNotFoundError, ConfigurationError) as exc:
        backend.write(f"Error loading config: {exc}")
        return 1

    backend.write(f"Loaded configuration from {args[0]}")
    backend.write(
        f"Game: {setup_config.game_config.player_count} players, "
        f"provider {setup_config.provider.api_type}"
    )

    def ask_human(context, prompt: str) -> str:
        backend.write(f"\n--- {context.name}, it is your turn ---\n{prompt}")
        return backend.read(f"{context.name} > ")

    try:
        session = GameSession.from_setup_config(setup_config, human_input=ask_human)
    except ConfigurationError as exc:
        backend.write(f"Error creating game: {exc}")
        return 1
    OperatorConsole(session, backend).loop()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())


__all__ = [
    "CLIInteraction",
    "InteractionIO",
    "OperatorConsole",
    "format_message",
    "main",
]
