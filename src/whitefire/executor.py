"""Turn executor: drives one agent turn at a time against the provider."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .abilities import cast_kill_ballot, guard_protect, listener_check
from .config import ProviderSettings
from .context import TurnContext, build_context
from .controller import PhaseController, Settlement
from .enums import Channel, GamePhase, MessageType, NightPhase, PlayerType
from .exceptions import InvalidActionError, ProviderError
from .logging_manager import LoggingManager
from .messages import Message, Visibility, append_message
from .parsing import NameMatch, ParsedReply, parse_reply, resolve_name
from .players import Player
from .prompts import DefaultPromptBuilder, PromptBuilder
from .providers import TextProvider, build_request
from .retry import RetryLogEntry, RetryPolicy, now_utc
from .state import Checkpoint, GameState
from .voting import cast_day_ballot

HumanInput = Callable[[TurnContext, str], str]


class StepOutcome(str, Enum):
    """What a single step did."""

    ACTED = "acted"
    ADVANCED = "advanced"
    AWAITING_OPERATOR = "awaiting_operator"
    GAME_OVER = "game_over"


_SETTLEMENT_OUTCOMES = {
    Settlement.ACTORS: StepOutcome.ADVANCED,
    Settlement.AWAITING_OPERATOR: StepOutcome.AWAITING_OPERATOR,
    Settlement.ENDED: StepOutcome.GAME_OVER,
}


def outcome_for(settlement: Settlement) -> StepOutcome:
    return _SETTLEMENT_OUTCOMES[settlement]


@dataclass(frozen=True, slots=True)
class StepResult:
    outcome: StepOutcome
    player: Optional[str] = None
    message: Optional[Message] = None
    match: Optional[NameMatch] = None


@dataclass(frozen=True, slots=True)
class CommittedTurn:
    """The most recent committed turn, kept so the operator can redo it."""

    player: str
    checkpoint: Checkpoint


class TurnExecutor:
    """Runs turns with checkpoint, retry with backoff, and rollback on failure.

    A step either takes the current actor's turn or, when nobody is left to
    act in the phase, asks the controller to advance. A failed attempt leaves
    the state exactly as it was before the turn; the retry log is the only
    thing that survives.
    """

    def __init__(
        self,
        provider: TextProvider,
        settings: ProviderSettings | None = None,
        *,
        controller: PhaseController | None = None,
        prompt_builder: PromptBuilder | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        notify: Callable[[str], None] = print,
        logging_manager: LoggingManager | None = None,
        human_input: HumanInput | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings or ProviderSettings()
        self.controller = controller or PhaseController()
        self.prompt_builder = prompt_builder or DefaultPromptBuilder()
        self.retry_policy = retry_policy
        self.sleep = sleep
        self.notify = notify
        self.logging_manager = logging_manager or LoggingManager(enabled=False)
        self.human_input = human_input
        self.last_turn: Optional[CommittedTurn] = None

    def _policy_for(self, state: GameState) -> RetryPolicy:
        if self.retry_policy is not None:
            return self.retry_policy
        retry = state.config.retry
        return RetryPolicy(retry.max_attempts, retry.base_delay, retry.max_delay)

    # Steps -----------------------------------------------------------------

    def execute_turn(self, state: GameState) -> StepResult:
        """Take one step of the game."""

        if self.controller.check_winner(state) is not None:
            return StepResult(StepOutcome.GAME_OVER)
        if self.controller.awaiting_operator(state):
            return StepResult(StepOutcome.AWAITING_OPERATOR)

        actor = self.controller.current_actor(state)
        if actor is None:
            settlement = self.controller.advance(state)
            return StepResult(outcome_for(settlement))

        checkpoint = state.checkpoint()

        def attempt() -> Tuple[Optional[Message], Optional[NameMatch]]:
            try:
                return self._take_turn(state, actor)
            except ProviderError:
                raise
            except Exception:
                state.rollback(checkpoint)
                raise

        def on_failure(error: ProviderError) -> None:
            state.rollback(checkpoint)
            self.logging_manager.log_error(actor.name, error)

        def on_retry(attempt_number: int, delay: float, error: ProviderError) -> None:
            entry = RetryLogEntry(
                player=actor.name,
                attempt=attempt_number,
                delay=delay,
                reason=str(error),
                round_number=state.round_number,
                phase=_phase_label(state),
                timestamp=now_utc(),
            )
            state.retry_log.append(entry)
            self.logging_manager.log_retry(entry)
            self.notify(
                f"{actor.name}'s turn failed ({error}). "
                f"Retrying in {delay:.1f}s (attempt {attempt_number + 1})..."
            )

        message, match = self._policy_for(state).run(
            actor.name,
            attempt,
            on_failure=on_failure,
            on_retry=on_retry,
            sleep=self.sleep,
        )
        self.last_turn = CommittedTurn(player=actor.name, checkpoint=checkpoint)
        return StepResult(StepOutcome.ACTED, player=actor.name, message=message, match=match)

    def retry_current_turn(self, state: GameState) -> StepResult:
        """Run the pending turn again after automatic retries were exhausted."""

        if self.controller.current_actor(state) is None:
            raise InvalidActionError("Nobody is waiting to act")
        return self.execute_turn(state)

    def retry_previous_turn(self, state: GameState) -> StepResult:
        """Discard the last committed turn and take it again.

        Only allowed while the game is still in the phase, sub-phase and round
        of that turn and nobody else has acted since.
        """

        committed = self.last_turn
        if committed is None:
            raise InvalidActionError("There is no previous turn to retry")
        checkpoint = committed.checkpoint
        if (
            checkpoint.phase is not state.phase
            or checkpoint.night_phase is not state.night_phase
            or checkpoint.round_number != state.round_number
            or state.current_player_index != checkpoint.cursor + 1
        ):
            raise InvalidActionError("The previous turn can no longer be retried")

        state.rollback(checkpoint)
        self.last_turn = None
        return self.execute_turn(state)

    # Turn internals --------------------------------------------------------

    def _take_turn(
        self, state: GameState, actor: Player
    ) -> Tuple[Optional[Message], Optional[NameMatch]]:
        config = state.config
        context = build_context(state, actor)
        prompt = self.prompt_builder.build(context, config.thinking_marker, config.speech_marker)
        append_message(
            state, actor.name, prompt, MessageType.PROMPT, Visibility.for_player(actor.name)
        )

        text = self._generate(actor, context, prompt)
        reply = parse_reply(text, config.thinking_marker, config.speech_marker)
        if reply.thinking:
            append_message(
                state,
                actor.name,
                reply.thinking,
                MessageType.THINKING,
                Visibility.for_player(actor.name),
            )

        message, match = self._commit_action(state, actor, reply)
        self.logging_manager.log_turn(context, prompt, reply, match)
        state.advance_cursor()
        return message, match

    def _generate(self, actor: Player, context: TurnContext, prompt: str) -> str:
        if actor.player_type is PlayerType.HUMAN and self.human_input is not None:
            return self.human_input(context, prompt)
        request = build_request(self.settings, prompt)
        self.logging_manager.log_request(actor.name, request.model, prompt)
        response = self.provider.generate(request)
        self.logging_manager.log_response(actor.name, response.text)
        return response.text

    def _commit_action(
        self, state: GameState, actor: Player, reply: ParsedReply
    ) -> Tuple[Message, Optional[NameMatch]]:
        speech = reply.speech
        roster = list(state.living_names)

        if state.phase is GamePhase.DAY:
            return append_message(state, actor.name, speech, MessageType.SPEECH), None

        if state.phase is GamePhase.VOTING:
            match = resolve_name(speech, roster)
            message = append_message(state, actor.name, speech, MessageType.VOTE)
            cast_day_ballot(state, actor, match.name)
            return message, match

        if state.phase is GamePhase.SECRET_MEETING:
            meeting = state.pending_meeting
            assert meeting is not None
            first, second = meeting.participants
            message = append_message(
                state, actor.name, speech, MessageType.SECRET, Visibility.for_pair(first, second)
            )
            return message, None

        night = state.night_phase
        if night is NightPhase.LISTENER:
            match = resolve_name(speech, roster)
            message = append_message(
                state,
                actor.name,
                speech,
                MessageType.ACTION,
                Visibility.for_channel(Channel.LISTENER),
            )
            listener_check(state, actor, match.name)
            return message, match
        if night is NightPhase.MARKED_DISCUSS:
            message = append_message(
                state,
                actor.name,
                speech,
                MessageType.SPEECH,
                Visibility.for_channel(Channel.MARKED),
            )
            return message, None
        if night is NightPhase.MARKED_VOTE:
            match = resolve_name(speech, roster)
            message = append_message(
                state,
                actor.name,
                speech,
                MessageType.VOTE,
                Visibility.for_channel(Channel.MARKED),
            )
            cast_kill_ballot(state, actor, match.name)
            return message, match
        if night is NightPhase.GUARD:
            match = resolve_name(speech, roster)
            message = append_message(
                state,
                actor.name,
                speech,
                MessageType.ACTION,
                Visibility.for_channel(Channel.GUARD),
            )
            guard_protect(state, actor, match.name)
            return message, match

        raise InvalidActionError(f"Nobody acts during {_phase_label(state)}")


def _phase_label(state: GameState) -> str:
    if state.night_phase is not None:
        return f"{state.phase.value}/{state.night_phase.value}"
    return state.phase.value


class AutoRunner:
    """Steps the game until the phase or round changes, the game stops, or it is told to stop.

    The stop signal is checked between steps, never in the middle of a turn.
    Errors propagate and end the run.
    """

    def __init__(
        self,
        executor: TurnExecutor,
        pause: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.executor = executor
        self.pause = pause
        self.sleep = sleep
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self, state: GameState, *, max_steps: int | None = None) -> List[StepResult]:
        self._stop.clear()
        start = (state.phase, state.night_phase, state.round_number)
        results: List[StepResult] = []
        while not self._stop.is_set():
            result = self.executor.execute_turn(state)
            results.append(result)
            if result.outcome in (StepOutcome.GAME_OVER, StepOutcome.AWAITING_OPERATOR):
                break
            if (state.phase, state.night_phase, state.round_number) != start:
                break
            if max_steps is not None and len(results) >= max_steps:
                break
            if self.pause > 0:
                self.sleep(self.pause)
        return results


__all__ = [
    "AutoRunner",
    "CommittedTurn",
    "HumanInput",
    "StepOutcome",
    "outcome_for",
    "StepResult",
    "TurnExecutor",
]
