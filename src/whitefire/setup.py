"""Seating, role dealing and twin pairing for a new table."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .config import GameConfig
from .enums import PlayerType, RoleType
from .exceptions import ConfigurationError
from .players import Player
from .state import GameState


@dataclass(frozen=True, slots=True)
class PlayerRegistration:
    """A seat requested before roles are dealt."""

    name: str
    personality: str = ""
    player_type: PlayerType = PlayerType.AGENT


@dataclass(frozen=True, slots=True)
class SetupResult:
    """A dealt table: every seat has its role, and the twins are paired."""

    config: GameConfig
    players: Tuple[Player, ...]
    twin_pair: Optional[Tuple[str, str]]
    seed: Optional[int]

    @property
    def seating(self) -> Tuple[str, ...]:
        """Names in seating order, which is also the speaking order."""

        return tuple(player.name for player in self.players)

    def to_game_state(self) -> GameState:
        """Create the initial game state for this table."""

        return GameState(
            config=self.config,
            players=list(self.players),
            twin_pair=self.twin_pair,
            seed=self.seed,
        )


def perform_setup(
    config: GameConfig,
    registrations: Sequence[PlayerRegistration],
    *,
    seed: Optional[int] = None,
) -> SetupResult:
    """Deal the configured roles to the registered seats in a seeded shuffle."""

    _validate_registration_count(config, registrations)
    normalized = _normalize_registrations(registrations)
    assigned_seed = seed if seed is not None else config.random_seed
    rng = random.Random(assigned_seed)
    roles = list(config.roles)
    rng.shuffle(roles)

    players = tuple(
        Player(
            name=registration.name,
            role=roles[index],
            personality=registration.personality,
            player_type=registration.player_type,
        )
        for index, registration in enumerate(normalized)
    )
    twins = tuple(player.name for player in players if player.role is RoleType.TWIN)
    twin_pair = (twins[0], twins[1]) if len(twins) == 2 else None

    return SetupResult(config=config, players=players, twin_pair=twin_pair, seed=assigned_seed)


def new_game(
    config: GameConfig,
    registrations: Sequence[PlayerRegistration],
    *,
    seed: Optional[int] = None,
) -> GameState:
    """Shortcut for ``perform_setup(...).to_game_state()``."""

    return perform_setup(config, registrations, seed=seed).to_game_state()


def _validate_registration_count(
    config: GameConfig, registrations: Sequence[PlayerRegistration]
) -> None:
    if len(registrations) != config.player_count:
        raise ConfigurationError(
            "Seat count does not match the configured table: "
            f"{len(registrations)} seats for {config.player_count} players"
        )


def _normalize_registrations(
    registrations: Sequence[PlayerRegistration],
) -> Tuple[PlayerRegistration, ...]:
    seen_names: set[str] = set()
    normalized: list[PlayerRegistration] = []

    for registration in registrations:
        name = registration.name.strip()
        if not name:
            raise ConfigurationError("Player names must be non-empty")

        lowered = name.casefold()
        if lowered in seen_names:
            raise ConfigurationError(f"Duplicate player name detected: {name}")
        seen_names.add(lowered)
        normalized.append(
            PlayerRegistration(
                name=name,
                personality=registration.personality.strip(),
                player_type=registration.player_type,
            )
        )

    return tuple(normalized)
