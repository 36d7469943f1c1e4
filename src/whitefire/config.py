"""Configuration models and validation helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from .enums import Faction, MeetingPolicy, RoleType
from .exceptions import ConfigurationError
from .roles import build_role_list, role_faction, validate_role_selection

DEFAULT_THINKING_MARKER = "[THINKING]"
DEFAULT_SPEECH_MARKER = "[SPEECH]"

API_KEY_ENV_VARS: Dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}
DEFAULT_MODELS: Dict[str, str] = {
    "gemini": "gemini-1.5-flash",
    "openai": "gpt-4o-mini",
}
DEFAULT_ENDPOINTS: Dict[str, str] = {
    "gemini": "https://generativelanguage.googleapis.com",
    "openai": "https://api.openai.com/v1/chat/completions",
}


@dataclass(frozen=True, slots=True)
class Relationship:
    """A bond between two characters that colours how one reacts to the other's death."""

    character: str
    target: str
    kind: str
    virtue_on_death: bool = True

    def __post_init__(self) -> None:
        if not self.character or not self.target:
            raise ConfigurationError("Relationships need both a character and a target")
        if self.character == self.target:
            raise ConfigurationError(f"{self.character} cannot be related to themselves")


@dataclass(frozen=True, slots=True)
class RetrySettings:
    """Exponential backoff parameters for provider calls."""

    max_attempts: int = 10
    base_delay: float = 1.0
    max_delay: float = 32.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("Retry delays may not be negative")
        if self.max_delay < self.base_delay:
            raise ConfigurationError("max_delay must be at least base_delay")


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    """Connection details for the text-generation provider."""

    api_type: str = "gemini"
    api_key: Optional[str] = None
    api_url: Optional[str] = None
    model: Optional[str] = None
    timeout: float = 60.0

    def __post_init__(self) -> None:
        if self.api_type not in API_KEY_ENV_VARS:
            raise ConfigurationError(
                f"Unsupported provider {self.api_type!r}; expected one of {sorted(API_KEY_ENV_VARS)}"
            )
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

    def resolved_api_key(self) -> Optional[str]:
        """Return the configured key, falling back to the provider's environment variable."""

        if self.api_key:
            return self.api_key
        return os.getenv(API_KEY_ENV_VARS[self.api_type]) or None

    def resolved_endpoint(self) -> str:
        return self.api_url or DEFAULT_ENDPOINTS[self.api_type]

    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.api_type]


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Immutable game configuration validated against the table rules."""

    player_count: int
    roles: Tuple[RoleType, ...]
    random_seed: Optional[int] = None
    meeting_policy: MeetingPolicy = MeetingPolicy.ASK
    night_revote_limit: Optional[int] = None
    relationships: Tuple[Relationship, ...] = ()
    thinking_marker: str = DEFAULT_THINKING_MARKER
    speech_marker: str = DEFAULT_SPEECH_MARKER
    retry: RetrySettings = field(default_factory=RetrySettings)

    def __post_init__(self) -> None:
        validate_role_selection(self.player_count, self.roles)
        if self.night_revote_limit is not None and self.night_revote_limit < 1:
            raise ConfigurationError("night_revote_limit must be at least 1 when set")
        if not self.thinking_marker or not self.speech_marker:
            raise ConfigurationError("Reply markers may not be empty")
        if self.thinking_marker == self.speech_marker:
            raise ConfigurationError("Reply markers must differ")

    def faction_counts(self) -> Dict[Faction, int]:
        """Compute the faction distribution for the configured roles."""

        counts = {Faction.HARVEST: 0, Faction.LAMB: 0}
        for role in self.roles:
            counts[role_faction(role)] += 1
        return counts

    def with_roles(self, roles: Sequence[RoleType]) -> "GameConfig":
        """Return a new ``GameConfig`` with the provided role selection."""

        return GameConfig(
            player_count=len(roles),
            roles=tuple(roles),
            random_seed=self.random_seed,
            meeting_policy=self.meeting_policy,
            night_revote_limit=self.night_revote_limit,
            relationships=self.relationships,
            thinking_marker=self.thinking_marker,
            speech_marker=self.speech_marker,
            retry=self.retry,
        )

    @classmethod
    def default(
        cls,
        player_count: int,
        *,
        random_seed: Optional[int] = None,
        meeting_policy: MeetingPolicy = MeetingPolicy.ASK,
    ) -> "GameConfig":
        """Instantiate the default table for the given player count."""

        return cls(
            player_count=player_count,
            roles=build_role_list(player_count),
            random_seed=random_seed,
            meeting_policy=meeting_policy,
        )
