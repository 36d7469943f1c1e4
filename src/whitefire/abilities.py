"""Role ability resolvers.

Each resolver either commits an ability record together with a narrator
message on the role's channel, or emits a rejection narration on that channel
and returns ``None``. Resolvers never raise for a bad target; a turn whose
target cannot be used still counts as taken.
"""

from __future__ import annotations

from typing import Optional

from .enums import Channel, Faction, RoleType
from .exceptions import InvalidActionError
from .messages import SPIRIT, Visibility, narrate
from .players import Player
from .state import Ballot, CoronerReport, GameState, GuardRecord, ListenerCheck


def is_clean(player: Player) -> bool:
    """A player reads clean when their role is outside the harvest faction."""

    return player.faction is not Faction.HARVEST


def _require_role(player: Player, role: RoleType) -> None:
    if player.role is not role:
        raise InvalidActionError(f"{player.name} is not the {role.value}")
    if not player.alive:
        raise InvalidActionError(f"{player.name} is dead and cannot act")


def _living_target(state: GameState, target_name: Optional[str]) -> Optional[Player]:
    if target_name is None:
        return None
    target = state.find_player(target_name)
    if target is None or not target.alive:
        return None
    return target


def listener_check(
    state: GameState, listener: Player, target_name: Optional[str]
) -> Optional[ListenerCheck]:
    """Learn whether a living player is clean."""

    _require_role(listener, RoleType.LISTENER)
    channel = Visibility.for_channel(Channel.LISTENER)
    target = _living_target(state, target_name)
    if target is None:
        narrate(state, "The whispers fall silent; there is no living soul by that name.", channel)
        return None

    record = ListenerCheck(
        round_number=state.round_number,
        listener=listener.name,
        target=target.name,
        is_clean=is_clean(target),
    )
    state.listener_checks.append(record)
    verdict = "clean" if record.is_clean else "marked by the harvest"
    narrate(state, f"The whispers reveal that {target.name} is {verdict}.", channel)
    return record


def guard_protect(
    state: GameState, guard: Player, target_name: Optional[str]
) -> Optional[GuardRecord]:
    """Protect a living player other than the guard for the coming kill.

    The same player may not be protected on two consecutive nights.
    """

    _require_role(guard, RoleType.GUARD)
    channel = Visibility.for_channel(Channel.GUARD)
    target = _living_target(state, target_name)
    if target is None:
        narrate(state, "Your ward finds no living soul by that name. No one is protected.", channel)
        return None
    if target.name == guard.name:
        narrate(state, "The ward cannot be turned upon its bearer. No one is protected.", channel)
        return None
    if (
        state.last_guarded_player == target.name
        and state.last_guarded_round == state.round_number - 1
    ):
        narrate(
            state,
            f"{target.name} was protected last night and cannot be protected again. "
            "No one is protected.",
            channel,
        )
        return None

    record = GuardRecord(round_number=state.round_number, guard=guard.name, target=target.name)
    state.guard_records.append(record)
    state.last_guarded_player = target.name
    state.last_guarded_round = state.round_number
    narrate(state, f"You stand watch over {target.name} tonight.", channel)
    return record


def cast_kill_ballot(
    state: GameState, voter: Player, target_name: Optional[str]
) -> Optional[Ballot]:
    """Record a marked player's ballot for the collective night kill."""

    _require_role(voter, RoleType.MARKED)
    channel = Visibility.for_channel(Channel.MARKED)
    target = _living_target(state, target_name)
    if target is None:
        narrate(state, f"{voter.name}'s choice names no living soul; the ballot is void.", channel)
        return None
    if target.role is RoleType.MARKED:
        narrate(state, f"{voter.name} cannot offer a fellow marked to the harvest.", channel)
        return None
    return state.cast_night_vote(voter.name, target.name)


def was_guarded_this_round(state: GameState, name: str) -> bool:
    return any(
        record.target == name and record.round_number == state.round_number
        for record in state.guard_records
    )


def coroner_reveal(state: GameState) -> Optional[CoronerReport]:
    """Tell a living coroner whether yesterday's sacrifice was clean.

    Passive: runs on entering the coroner sub-phase. Consumes
    ``last_sacrificed_player`` so the same body is only examined once.
    """

    sacrificed = state.last_sacrificed_player
    coroners = state.living_with_role(RoleType.CORONER)
    if sacrificed is None or not coroners:
        return None

    coroner = coroners[0]
    body = state.player(sacrificed)
    record = CoronerReport(
        round_number=state.round_number,
        coroner=coroner.name,
        target=body.name,
        is_clean=is_clean(body),
    )
    state.coroner_reports.append(record)
    state.last_sacrificed_player = None
    verdict = "clean" if record.is_clean else "marked by the harvest"
    narrate(
        state,
        f"You examine the remains of {body.name}. They were {verdict}.",
        Visibility.for_channel(Channel.CORONER),
    )
    return record


def twin_partner(state: GameState, name: str) -> Optional[str]:
    """Return the other twin's name, or ``None`` when ``name`` is not a twin."""

    if state.twin_pair is None or name not in state.twin_pair:
        return None
    first, second = state.twin_pair
    return second if name == first else first


def convert_heretic(state: GameState) -> Optional[Player]:
    """Wake the dormant seat as the heretic once the second round begins."""

    if state.heretic_converted or state.round_number < 2:
        return None
    dormant = next(
        (player for player in state.players if player.role is RoleType.DORMANT and player.alive),
        None,
    )
    if dormant is None:
        return None

    state.relabel_role(dormant.name, RoleType.HERETIC)
    state.heretic_converted = True
    narrate(
        state,
        "The mountain has claimed you. You now serve the harvest as the heretic, "
        "unknown to the marked. Help them without revealing yourself.",
        Visibility.for_player(dormant.name),
        sender=SPIRIT,
    )
    narrate(
        state,
        "A hidden ally now walks among the lambs. You do not know their face.",
        Visibility.for_channel(Channel.MARKED),
        sender=SPIRIT,
    )
    return dormant


__all__ = [
    "cast_kill_ballot",
    "convert_heretic",
    "coroner_reveal",
    "guard_protect",
    "is_clean",
    "listener_check",
    "twin_partner",
    "was_guarded_this_round",
]
