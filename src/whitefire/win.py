"""Win evaluation."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from .enums import Faction, RoleType
from .players import Player

WinEvaluator = Callable[[Iterable[Player]], Optional[Faction]]


def evaluate_winner(players: Iterable[Player]) -> Optional[Faction]:
    """Return the winning faction, or ``None`` while the game goes on.

    The lambs win once no living marked remain. The harvest wins once its
    living members are at least as many as the living lambs.
    """

    living = [player for player in players if player.alive]
    if not any(player.role is RoleType.MARKED for player in living):
        return Faction.LAMB
    harvest = sum(1 for player in living if player.faction is Faction.HARVEST)
    if harvest >= len(living) - harvest:
        return Faction.HARVEST
    return None


__all__ = ["WinEvaluator", "evaluate_winner"]
