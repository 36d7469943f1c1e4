"""Read a Whitefire table, its provider and its output folders from YAML."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]

from .config import (
    DEFAULT_SPEECH_MARKER,
    DEFAULT_THINKING_MARKER,
    GameConfig,
    ProviderSettings,
    Relationship,
    RetrySettings,
)
from .enums import MeetingPolicy, PlayerType, RoleType
from .exceptions import ConfigurationError
from .roles import build_role_list
from .setup import PlayerRegistration


@dataclass(frozen=True, slots=True)
class GameSetupConfig:
    """Everything needed to open a session: rules, seats, provider and folders."""

    game_config: GameConfig
    registrations: tuple[PlayerRegistration, ...]
    provider: ProviderSettings
    log_enabled: bool = False
    log_directory: Path = Path("logs")
    save_directory: Path = Path("saves")


def load_config_file(config_path: str | Path) -> GameSetupConfig:
    """Read ``config_path`` and hand the mapping to :func:`parse_config`.

    Args:
        config_path: YAML file describing the table.

    Returns:
        GameSetupConfig with the game rules, seats, provider and output settings.

    Raises:
        ConfigurationError: The YAML is malformed or a field fails validation.
        FileNotFoundError: Nothing exists at ``config_path``.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open("r", encoding="utf-8") as f:
        try:
            data: dict[str, Any] = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML file: {exc}") from exc

    return parse_config(data)


def parse_config(data: Any) -> GameSetupConfig:
    """Validate an already-parsed configuration mapping."""

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a YAML mapping")

    registrations = _parse_players(data.get("players"))
    player_count = len(registrations)
    roles = _parse_roles(data, player_count)

    random_seed = data.get("random_seed")
    if random_seed is not None and not isinstance(random_seed, int):
        raise ConfigurationError("'random_seed' must be an integer")

    policy_raw = str(data.get("meeting_policy", MeetingPolicy.ASK.value)).lower().strip()
    try:
        meeting_policy = MeetingPolicy(policy_raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid meeting_policy: {policy_raw}. Must be 'ask', 'random' or 'skip'"
        ) from None

    revote_limit = data.get("night_revote_limit")
    if revote_limit is not None and (not isinstance(revote_limit, int) or isinstance(revote_limit, bool)):
        raise ConfigurationError("'night_revote_limit' must be an integer")

    markers = _mapping(data, "reply_markers")
    game_config = GameConfig(
        player_count=player_count,
        roles=roles,
        random_seed=random_seed,
        meeting_policy=meeting_policy,
        night_revote_limit=revote_limit,
        relationships=_parse_relationships(data.get("relationships", [])),
        thinking_marker=str(markers.get("thinking", DEFAULT_THINKING_MARKER)),
        speech_marker=str(markers.get("speech", DEFAULT_SPEECH_MARKER)),
        retry=_parse_retry(_mapping(data, "retry")),
    )

    logging_block = _mapping(data, "logging")
    log_enabled = logging_block.get("enabled", False)
    if not isinstance(log_enabled, bool):
        raise ConfigurationError("'logging.enabled' must be true or false")
    saves_block = _mapping(data, "saves")

    return GameSetupConfig(
        game_config=game_config,
        registrations=registrations,
        provider=_parse_provider(_mapping(data, "provider")),
        log_enabled=log_enabled,
        log_directory=Path(str(logging_block.get("directory", "logs"))),
        save_directory=Path(str(saves_block.get("directory", "saves"))),
    )


def _mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    block = data.get(key) or {}
    if not isinstance(block, dict):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return block


def _parse_players(player_data: Any) -> tuple[PlayerRegistration, ...]:
    if not player_data:
        raise ConfigurationError("Config file must specify 'players' list")
    if not isinstance(player_data, list):
        raise ConfigurationError("'players' must be a list")

    registrations: list[PlayerRegistration] = []
    for idx, player_entry in enumerate(player_data):
        if isinstance(player_entry, str):
            registrations.append(PlayerRegistration(name=player_entry))
        elif isinstance(player_entry, dict):
            name = player_entry.get("name")
            if not name:
                raise ConfigurationError(f"Player entry {idx + 1} missing 'name' field")

            type_str = player_entry.get("type", "agent")
            if not isinstance(type_str, str):
                raise ConfigurationError(f"Player {name}: 'type' must be a string")
            try:
                player_type = PlayerType(type_str.lower().strip())
            except ValueError:
                raise ConfigurationError(
                    f"Player {name}: invalid type '{type_str}'. Must be 'human' or 'agent'"
                ) from None

            personality = player_entry.get("personality", "")
            if not isinstance(personality, str):
                raise ConfigurationError(f"Player {name}: 'personality' must be a string")

            registrations.append(
                PlayerRegistration(
                    name=str(name), personality=personality, player_type=player_type
                )
            )
        else:
            raise ConfigurationError(
                f"Player entry {idx + 1} must be a string or dict with 'name' field"
            )
    return tuple(registrations)


def _parse_roles(data: dict[str, Any], player_count: int) -> tuple[RoleType, ...]:
    explicit = data.get("roles")
    if explicit is not None:
        if not isinstance(explicit, list):
            raise ConfigurationError("'roles' must be a list of role names")
        roles: list[RoleType] = []
        for role_name in explicit:
            try:
                roles.append(RoleType(str(role_name).lower().strip()))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown role type: {role_name}. "
                    f"Available: {', '.join(sorted(role.value for role in RoleType))}"
                ) from None
        return tuple(roles)

    options = _mapping(data, "role_options")
    marked_count: Optional[int] = options.get("marked")
    if marked_count is not None and not isinstance(marked_count, int):
        raise ConfigurationError("'role_options.marked' must be an integer")
    flags: dict[str, Optional[bool]] = {}
    for key in ("coroner", "twins", "dormant"):
        value = options.get(key)
        if value is not None and not isinstance(value, bool):
            raise ConfigurationError(f"'role_options.{key}' must be true or false")
        flags[key] = value
    return build_role_list(
        player_count,
        marked_count=marked_count,
        include_coroner=flags["coroner"],
        include_twins=flags["twins"],
        include_dormant=flags["dormant"],
    )


def _parse_relationships(raw: Any) -> tuple[Relationship, ...]:
    if not isinstance(raw, list):
        raise ConfigurationError("'relationships' must be a list")
    relationships: list[Relationship] = []
    for idx, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Relationship entry {idx + 1} must be a mapping")
        try:
            relationships.append(
                Relationship(
                    character=str(entry["character"]),
                    target=str(entry["target"]),
                    kind=str(entry.get("kind", "acquaintance")),
                    virtue_on_death=bool(entry.get("virtue_on_death", True)),
                )
            )
        except KeyError as exc:
            raise ConfigurationError(f"Relationship entry {idx + 1} missing {exc}") from exc
    return tuple(relationships)


def _parse_retry(block: dict[str, Any]) -> RetrySettings:
    try:
        max_attempts = int(block.get("max_attempts", 10))
        base_delay = float(block.get("base_delay", 1.0))
        max_delay = float(block.get("max_delay", 32.0))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid retry settings: {exc}") from exc
    return RetrySettings(max_attempts=max_attempts, base_delay=base_delay, max_delay=max_delay)


def _parse_provider(block: dict[str, Any]) -> ProviderSettings:
    timeout = block.get("timeout", 60.0)
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
        raise ConfigurationError("'provider.timeout' must be a number")
    return ProviderSettings(
        api_type=str(block.get("type", "gemini")).lower().strip(),
        api_key=block.get("api_key"),
        api_url=block.get("api_url"),
        model=block.get("model"),
        timeout=float(timeout),
    )


__all__ = ["GameSetupConfig", "load_config_file", "parse_config"]
