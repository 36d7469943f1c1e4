"""Per-player turn transcripts and a provider call log."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .context import TurnContext
    from .parsing import NameMatch, ParsedReply
    from .retry import RetryLogEntry


class LoggingManager:
    """Manages detailed logging of agent turns for debugging and analysis."""

    def __init__(self, enabled: bool = False, base_dir: Path | None = None) -> None:
        """Initialize the logging manager.

        Args:
            enabled: Whether transcript logging is enabled
            base_dir: Base directory for logs (defaults to ./logs)
        """
        self.enabled = enabled
        if not enabled:
            return

        if base_dir is None:
            base_dir = Path("logs")
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_dir = base_dir / timestamp
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.api_log = self.log_dir / "api.log"

        self.player_files: dict[str, Path] = {}

    def _get_log_file(self, player_name: str) -> Path:
        if player_name not in self.player_files:
            safe = "".join(char if char.isalnum() else "_" for char in player_name)
            self.player_files[player_name] = self.log_dir / f"player_{safe}.log"
        return self.player_files[player_name]

    def _append(self, path: Path, content: str) -> None:
        with open(path, "a", encoding="utf-8") as handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            handle.write(f"\n{'=' * 80}\n")
            handle.write(f"[{timestamp}]\n")
            handle.write(content)
            handle.write("\n")

    def log_turn(
        self,
        context: TurnContext,
        prompt: str,
        reply: ParsedReply,
        match: Optional[NameMatch] = None,
    ) -> None:
        """Log one committed turn: the prompt, the reasoning and the statement."""
        if not self.enabled:
            return

        phase = context.phase.value
        if context.night_phase is not None:
            phase = f"{phase}/{context.night_phase.value}"
        target = "n/a"
        if match is not None:
            target = match.name or f"unresolved ({match.reason.value})"

        content = f"""TURN: round {context.round_number}, {phase}
  Role: {context.role.value}
  Living: {', '.join(context.living_players)}

PROMPT:
{prompt}

THINKING:
{reply.thinking or '(none)'}

SPEECH:
{reply.speech}

RESOLVED TARGET: {target}
"""
        self._append(self._get_log_file(context.name), content)

    def log_retry(self, entry: RetryLogEntry) -> None:
        if not self.enabled:
            return
        self._append(
            self._get_log_file(entry.player),
            f"RETRY {entry.attempt} after {entry.delay:.1f}s: {entry.reason}",
        )

    def log_request(self, player_name: str, model: str, prompt: str) -> None:
        if not self.enabled:
            return
        self._append(self.api_log, f"REQUEST for {player_name} ({model}), {len(prompt)} chars")

    def log_response(self, player_name: str, text: str) -> None:
        if not self.enabled:
            return
        self._append(self.api_log, f"RESPONSE for {player_name}, {len(text)} chars:\n{text}")

    def log_error(self, player_name: str, error: BaseException) -> None:
        if not self.enabled:
            return
        self._append(self.api_log, f"ERROR for {player_name}: {type(error).__name__}: {error}")


__all__ = ["LoggingManager"]
