"""Vote tallying and tie handling for the day sacrifice and the night kill."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple

from .exceptions import InvalidActionError
from .messages import Visibility, narrate
from .players import Player
from .state import Ballot, GameState


class VoteResult(str, Enum):
    """How a round of ballots resolved."""

    DECIDED = "decided"
    REVOTE = "revote"
    NO_RESULT = "no_result"


@dataclass(frozen=True, slots=True)
class VoteTally:
    counts: Mapping[str, int]
    leaders: Tuple[str, ...]

    @property
    def is_tie(self) -> bool:
        return len(self.leaders) > 1

    @property
    def winner(self) -> Optional[str]:
        return self.leaders[0] if len(self.leaders) == 1 else None


@dataclass(frozen=True, slots=True)
class VoteOutcome:
    result: VoteResult
    tally: VoteTally
    target: Optional[str] = None
    archived: Tuple[Ballot, ...] = ()


def tally(ballots: Iterable[Ballot]) -> VoteTally:
    """Count ballots per target; leaders keep first-vote order for stable output."""

    counts: Counter[str] = Counter()
    for ballot in ballots:
        counts[ballot.target] += 1
    if not counts:
        return VoteTally(counts={}, leaders=())
    top = max(counts.values())
    leaders = tuple(name for name, count in counts.items() if count == top)
    return VoteTally(counts=dict(counts), leaders=leaders)


def cast_day_ballot(
    state: GameState, voter: Player, target_name: Optional[str]
) -> Optional[Ballot]:
    """Record a day ballot against a living player other than the voter."""

    if not voter.alive:
        raise InvalidActionError(f"{voter.name} is dead and cannot vote")
    private = Visibility.for_player(voter.name)
    target = state.find_player(target_name) if target_name else None
    if target is None or not target.alive:
        narrate(state, "Your ballot names no living soul and is discarded.", private)
        return None
    if target.name == voter.name:
        narrate(state, "You cannot offer yourself to the fire. Your ballot is discarded.", private)
        return None
    if state.is_revote and state.tied_players and target.name not in state.tied_players:
        narrate(
            state,
            f"This revote is between {', '.join(state.tied_players)} only. "
            "Your ballot is discarded.",
            private,
        )
        return None
    return state.cast_vote(voter.name, target.name)


def resolve_day_vote(state: GameState) -> VoteOutcome:
    """Resolve the day vote.

    A unique plurality decides the sacrifice. The first tie triggers exactly
    one revote between the tied players; a second consecutive tie, or an empty
    ballot box, ends the day without a sacrifice.
    """

    result = tally(state.votes)
    archived = state.archive_votes()

    if result.winner is not None:
        state.is_revote = False
        state.tied_players = ()
        return VoteOutcome(VoteResult.DECIDED, result, result.winner, archived)

    if result.is_tie and not state.is_revote:
        state.is_revote = True
        state.tied_players = result.leaders
        return VoteOutcome(VoteResult.REVOTE, result, None, archived)

    state.is_revote = False
    state.tied_players = ()
    return VoteOutcome(VoteResult.NO_RESULT, result, None, archived)


def resolve_night_vote(state: GameState, revote_limit: Optional[int] = None) -> VoteOutcome:
    """Resolve the marked players' kill ballots.

    Ties send the marked back to discussion with ``revote_round`` bumped. With
    ``revote_limit`` set, reaching it ends the night without a kill.
    """

    result = tally(state.night_votes)
    archived = state.archive_night_votes()

    if result.winner is not None:
        state.revote_round = 0
        return VoteOutcome(VoteResult.DECIDED, result, result.winner, archived)

    if result.is_tie:
        if revote_limit is None or state.revote_round < revote_limit:
            state.revote_round += 1
            return VoteOutcome(VoteResult.REVOTE, result, None, archived)

    state.revote_round = 0
    return VoteOutcome(VoteResult.NO_RESULT, result, None, archived)


__all__ = [
    "VoteOutcome",
    "VoteResult",
    "VoteTally",
    "cast_day_ballot",
    "resolve_day_vote",
    "resolve_night_vote",
    "tally",
]
