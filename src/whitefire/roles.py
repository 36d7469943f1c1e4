"""Role metadata and validation helpers for Whitefire."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .enums import Channel, Faction, NightPhase, RoleType
from .exceptions import ConfigurationError

MIN_PLAYERS = 5
MAX_PLAYERS = 15


@dataclass(frozen=True, slots=True)
class RoleDefinition:
    """Canonical metadata for a single Whitefire role."""

    role: RoleType
    faction: Faction
    channel: Optional[Channel] = None
    night_phase: Optional[NightPhase] = None
    unique: bool = False


ROLE_DEFINITIONS: Mapping[RoleType, RoleDefinition] = {
    RoleType.MARKED: RoleDefinition(
        role=RoleType.MARKED,
        faction=Faction.HARVEST,
        channel=Channel.MARKED,
        night_phase=NightPhase.MARKED_VOTE,
    ),
    RoleType.HERETIC: RoleDefinition(
        role=RoleType.HERETIC,
        faction=Faction.HARVEST,
        unique=True,
    ),
    RoleType.LISTENER: RoleDefinition(
        role=RoleType.LISTENER,
        faction=Faction.LAMB,
        channel=Channel.LISTENER,
        night_phase=NightPhase.LISTENER,
        unique=True,
    ),
    RoleType.CORONER: RoleDefinition(
        role=RoleType.CORONER,
        faction=Faction.LAMB,
        channel=Channel.CORONER,
        night_phase=NightPhase.CORONER,
        unique=True,
    ),
    RoleType.TWIN: RoleDefinition(
        role=RoleType.TWIN,
        faction=Faction.LAMB,
        channel=Channel.TWINS,
    ),
    RoleType.GUARD: RoleDefinition(
        role=RoleType.GUARD,
        faction=Faction.LAMB,
        channel=Channel.GUARD,
        night_phase=NightPhase.GUARD,
        unique=True,
    ),
    RoleType.INNOCENT: RoleDefinition(
        role=RoleType.INNOCENT,
        faction=Faction.LAMB,
    ),
    # Dormant seats count as lambs until the heretic conversion relabels them.
    RoleType.DORMANT: RoleDefinition(
        role=RoleType.DORMANT,
        faction=Faction.LAMB,
        unique=True,
    ),
}


def role_faction(role: RoleType) -> Faction:
    """Return the faction for the provided role."""

    return ROLE_DEFINITIONS[role].faction


def is_harvest(role: RoleType) -> bool:
    """Determine whether the role belongs to the harvest faction."""

    return role_faction(role) is Faction.HARVEST


def is_lamb(role: RoleType) -> bool:
    """Determine whether the role belongs to the lamb faction."""

    return role_faction(role) is Faction.LAMB


def role_channel(role: RoleType) -> Optional[Channel]:
    """Return the private channel a role listens on, if any."""

    return ROLE_DEFINITIONS[role].channel


def default_marked_count(player_count: int) -> int:
    if player_count <= 6:
        return 1
    if player_count <= 9:
        return 2
    return 3


def build_role_list(
    player_count: int,
    *,
    marked_count: int | None = None,
    include_coroner: bool | None = None,
    include_twins: bool | None = None,
    include_dormant: bool | None = None,
) -> tuple[RoleType, ...]:
    """Build a role list for ``player_count`` seats.

    The listener and guard are always present. The coroner joins from seven
    players, the twins from eight and the dormant heretic from nine unless the
    caller decides otherwise. Remaining lamb seats are filled with innocents.

    Raises:
        ConfigurationError: If the combination cannot be seated.
    """
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ConfigurationError(f"Unsupported player count: {player_count}")

    marked = default_marked_count(player_count) if marked_count is None else marked_count
    coroner = player_count >= 7 if include_coroner is None else include_coroner
    twins = player_count >= 8 if include_twins is None else include_twins
    dormant = player_count >= 9 if include_dormant is None else include_dormant

    roles: list[RoleType] = [RoleType.MARKED] * marked
    roles.extend((RoleType.LISTENER, RoleType.GUARD))
    if coroner:
        roles.append(RoleType.CORONER)
    if twins:
        roles.extend((RoleType.TWIN, RoleType.TWIN))
    if dormant:
        roles.append(RoleType.DORMANT)

    if len(roles) > player_count:
        raise ConfigurationError(
            f"{len(roles)} special roles do not fit into {player_count} seats"
        )
    roles.extend([RoleType.INNOCENT] * (player_count - len(roles)))
    validate_role_selection(player_count, roles)
    return tuple(roles)


def validate_role_selection(player_count: int, roles: Sequence[RoleType]) -> None:
    """Ensure the provided role selection can produce a playable game."""

    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ConfigurationError(f"Unsupported player count: {player_count}")

    if len(roles) != player_count:
        raise ConfigurationError(f"Expected {player_count} roles, received {len(roles)}")

    counts = Counter(roles)
    if counts[RoleType.HERETIC]:
        raise ConfigurationError("The heretic is not dealt at setup; use a dormant seat")
    if counts[RoleType.MARKED] < 1:
        raise ConfigurationError("At least one marked player is required")

    for role, definition in ROLE_DEFINITIONS.items():
        if definition.unique and counts[role] > 1:
            raise ConfigurationError(f"Role {role.value} may only appear once")

    if counts[RoleType.TWIN] not in (0, 2):
        raise ConfigurationError("Twins must be dealt as a pair")

    harvest = counts[RoleType.MARKED]
    lamb = player_count - harvest
    if harvest >= lamb:
        raise ConfigurationError(
            f"Harvest faction ({harvest}) must be smaller than the lamb faction ({lamb})"
        )
