"""Event-phase narrative beats."""

from __future__ import annotations

from typing import Tuple

from .messages import SPIRIT, narrate
from .state import GameState, NarrativeEvent

# (key, text) pairs grouped by how grim the table has become.
_QUIET_BEATS: Tuple[Tuple[str, str], ...] = (
    ("snowfall", "Fresh snow buries the path down the mountain. No one is leaving tonight."),
    ("bell", "A bell tolls somewhere above the lodge, though no one keeps a bell up there."),
    ("fire", "The white fire in the hearth burns cold and bright, and it does not go out."),
)
_GRIM_BEATS: Tuple[Tuple[str, str], ...] = (
    ("footprints", "Footprints circle the lodge in the snow, and none of them lead away."),
    ("empty_chair", "An empty chair has been pulled up to the fire, as if someone is expected."),
    ("names", "Someone has carved the names of the dead into the door frame."),
)
_DESPERATE_BEATS: Tuple[Tuple[str, str], ...] = (
    ("harvest_moon", "The moon rises red. The harvest is close to its end."),
    ("last_candles", "Only a handful of candles are left. Whoever is still here counts them twice."),
)


def generate_event(state: GameState) -> NarrativeEvent:
    """Pick a beat that fits how many have died, announce it and store it."""

    dead = sum(1 for player in state.players if not player.alive)
    alive = len(state.players) - dead
    if dead == 0:
        pool = _QUIET_BEATS
    elif alive <= 4:
        pool = _DESPERATE_BEATS
    else:
        pool = _GRIM_BEATS

    used = {event.key for event in state.narrative_events}
    fresh = [beat for beat in pool if beat[0] not in used] or list(pool)
    key, text = state.rng.choice(fresh)
    event = NarrativeEvent(round_number=state.round_number, key=key, text=text)
    state.narrative_events.append(event)
    narrate(state, text, sender=SPIRIT)
    return event


__all__ = ["generate_event"]
