"""Death reactions driven by configured character relationships."""

from __future__ import annotations

from typing import List

from .enums import EmotionalState
from .messages import SPIRIT, Visibility, narrate
from .state import GameState, StateChange

_REACTIONS = {
    EmotionalState.VIRTUE: (
        "The loss of {deceased} ({kind}) hardens your resolve. "
        "You see the table more clearly than before."
    ),
    EmotionalState.SIN: (
        "The loss of {deceased} ({kind}) crushes something inside you. "
        "Grief and suspicion cloud your judgement."
    ),
}


def apply_death_reactions(state: GameState, deceased: str) -> List[StateChange]:
    """Tag every living character bound to ``deceased`` with virtue or sin.

    Each affected survivor gets a private narration and a pending state change
    the operator can review and clear.
    """

    changes: List[StateChange] = []
    for relationship in state.config.relationships:
        if relationship.target != deceased:
            continue
        survivor = state.find_player(relationship.character)
        if survivor is None or not survivor.alive:
            continue

        emotional_state = (
            EmotionalState.VIRTUE if relationship.virtue_on_death else EmotionalState.SIN
        )
        survivor.emotional_state = emotional_state
        change = StateChange(
            player=survivor.name,
            emotional_state=emotional_state,
            deceased=deceased,
            kind=relationship.kind,
            round_number=state.round_number,
        )
        state.pending_state_changes.append(change)
        narrate(
            state,
            _REACTIONS[emotional_state].format(deceased=deceased, kind=relationship.kind),
            Visibility.for_player(survivor.name),
            sender=SPIRIT,
        )
        changes.append(change)
    return changes


__all__ = ["apply_death_reactions"]
