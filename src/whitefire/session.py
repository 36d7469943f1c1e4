"""Operator surface for a running Whitefire game."""

from __future__ import annotations

from typing import Callable, List, Optional

from .config_loader import GameSetupConfig
from .exceptions import InvalidActionError
from .executor import AutoRunner, HumanInput, StepResult, TurnExecutor, outcome_for
from .logging_manager import LoggingManager
from .persistence import SaveSlotStore, SavedGame
from .players import Player
from .providers import TextProvider, build_provider
from .setup import new_game
from .state import GameState, StateChange


class GameSession:
    """Single owner of the live game state.

    Every operator action goes through here, so there is exactly one state
    object and nothing else mutates it.
    """

    def __init__(
        self,
        state: GameState,
        executor: TurnExecutor,
        *,
        store: SaveSlotStore | None = None,
        pause: float = 0.5,
    ) -> None:
        self.state = state
        self.executor = executor
        self.store = store
        self.runner = AutoRunner(executor, pause=pause, sleep=executor.sleep)

    @classmethod
    def from_setup_config(
        cls,
        setup_config: GameSetupConfig,
        *,
        provider: TextProvider | None = None,
        human_input: HumanInput | None = None,
        notify: Callable[[str], None] = print,
    ) -> "GameSession":
        state = new_game(setup_config.game_config, setup_config.registrations)
        executor = TurnExecutor(
            provider or build_provider(setup_config.provider),
            setup_config.provider,
            notify=notify,
            logging_manager=LoggingManager(
                enabled=setup_config.log_enabled, base_dir=setup_config.log_directory
            ),
            human_input=human_input,
        )
        return cls(state, executor, store=SaveSlotStore(setup_config.save_directory))

    # Stepping --------------------------------------------------------------

    def next_step(self) -> StepResult:
        return self.executor.execute_turn(self.state)

    def run_phase(self, *, max_steps: int | None = None) -> List[StepResult]:
        """Step until the phase or round changes, the game pauses or it is stopped."""

        return self.runner.run(self.state, max_steps=max_steps)

    def stop_auto_run(self) -> None:
        """Ask a running ``run_phase`` to stop after the current step."""

        self.runner.stop()

    def retry_current_turn(self) -> StepResult:
        return self.executor.retry_current_turn(self.state)

    def retry_previous_turn(self) -> StepResult:
        return self.executor.retry_previous_turn(self.state)

    @property
    def current_actor(self) -> Optional[Player]:
        return self.executor.controller.current_actor(self.state)

    @property
    def is_over(self) -> bool:
        return self.state.is_over

    # Secret meetings -------------------------------------------------------

    def select_meeting_participants(self, first: str, second: str) -> StepResult:
        settlement = self.executor.controller.select_meeting(self.state, first, second)
        return StepResult(outcome_for(settlement))

    def skip_meeting(self) -> StepResult:
        settlement = self.executor.controller.skip_meeting(self.state)
        return StepResult(outcome_for(settlement))

    # Players ---------------------------------------------------------------

    def clear_pending_state_changes(self) -> List[StateChange]:
        changes = list(self.state.pending_state_changes)
        self.state.clear_pending_state_changes()
        return changes

    def update_personality(self, name: str, personality: str) -> Player:
        player = self.state.player(name)
        player.personality = personality.strip()
        return player

    # Saves -----------------------------------------------------------------

    def _require_store(self) -> SaveSlotStore:
        if self.store is None:
            raise InvalidActionError("No save directory is configured")
        return self.store

    def save(self, name: str) -> SavedGame:
        return self._require_store().save(name, self.state)

    def load(self, slot_id: str) -> GameState:
        """Replace the live state with a saved one."""

        self.state = self._require_store().load(slot_id)
        self.executor.last_turn = None
        return self.state

    def list_saves(self) -> List[SavedGame]:
        return self._require_store().list()

    def delete_save(self, slot_id: str) -> None:
        self._require_store().delete(slot_id)


__all__ = ["GameSession"]
