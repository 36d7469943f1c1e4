"""Player-related domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Channel, EmotionalState, Faction, PlayerType, RoleType
from .roles import ROLE_DEFINITIONS, RoleDefinition, role_faction


@dataclass(slots=True)
class Player:
    """A seat at the table.

    Players are never removed from the roster; dead players stay for display and
    audit. Only role resolvers flip ``alive`` and only the death-reaction
    collaborator touches ``emotional_state``.
    """

    name: str
    role: RoleType
    alive: bool = True
    personality: str = ""
    player_type: PlayerType = PlayerType.AGENT
    emotional_state: Optional[EmotionalState] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("name may not be empty")

    @property
    def faction(self) -> Faction:
        """Return the player's current faction."""

        return role_faction(self.role)

    @property
    def role_definition(self) -> RoleDefinition:
        """Convenience accessor for role metadata."""

        return ROLE_DEFINITIONS[self.role]

    @property
    def channel(self) -> Optional[Channel]:
        return self.role_definition.channel

    @property
    def is_agent(self) -> bool:
        """Return True if this player is controlled by an LLM agent."""

        return self.player_type is PlayerType.AGENT
