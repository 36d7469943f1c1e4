"""Whitefire social-deduction game engine package."""

from .config import GameConfig, ProviderSettings, Relationship, RetrySettings
from .controller import PhaseController, Settlement
from .enums import (
    Channel,
    EmotionalState,
    Faction,
    GamePhase,
    MeetingPolicy,
    MeetingTiming,
    MessageType,
    NightPhase,
    PlayerType,
    RoleType,
)
from .messages import Message, MessageLog, Visibility, append_message, visible_to
from .persistence import (
    GameStateSnapshot,
    SavedGame,
    SaveSlotStore,
    restore_game_state,
    snapshot_game_state,
)
from .players import Player
from .roles import ROLE_DEFINITIONS, RoleDefinition, build_role_list, validate_role_selection
from .setup import PlayerRegistration, SetupResult, new_game, perform_setup
from .state import Ballot, CoronerReport, GameState, GuardRecord, ListenerCheck
from .win import evaluate_winner

__all__ = [
    "Ballot",
    "Channel",
    "CoronerReport",
    "EmotionalState",
    "Faction",
    "GameConfig",
    "GamePhase",
    "GameState",
    "GameStateSnapshot",
    "GuardRecord",
    "ListenerCheck",
    "MeetingPolicy",
    "MeetingTiming",
    "Message",
    "MessageLog",
    "MessageType",
    "NightPhase",
    "PhaseController",
    "Player",
    "PlayerRegistration",
    "PlayerType",
    "ProviderSettings",
    "ROLE_DEFINITIONS",
    "Relationship",
    "RetrySettings",
    "RoleDefinition",
    "RoleType",
    "SavedGame",
    "SaveSlotStore",
    "Settlement",
    "SetupResult",
    "Visibility",
    "append_message",
    "build_role_list",
    "evaluate_winner",
    "new_game",
    "perform_setup",
    "restore_game_state",
    "snapshot_game_state",
    "validate_role_selection",
    "visible_to",
]
