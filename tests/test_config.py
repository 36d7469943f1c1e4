from __future__ import annotations

import pytest

from whitefire.config import GameConfig, ProviderSettings, Relationship, RetrySettings
from whitefire.enums import Faction, MeetingPolicy, RoleType
from whitefire.exceptions import ConfigurationError


def test_default_config_counts_factions() -> None:
    config = GameConfig.default(7, random_seed=5, meeting_policy=MeetingPolicy.SKIP)

    assert config.faction_counts() == {Faction.HARVEST: 2, Faction.LAMB: 5}
    assert config.random_seed == 5
    assert config.meeting_policy is MeetingPolicy.SKIP
    assert config.night_revote_limit is None
    assert config.retry == RetrySettings()


def test_with_roles_keeps_other_settings() -> None:
    config = GameConfig(
        player_count=5,
        roles=(RoleType.MARKED, RoleType.LISTENER, RoleType.GUARD, RoleType.INNOCENT, RoleType.INNOCENT),
        night_revote_limit=2,
        thinking_marker="<think>",
        speech_marker="<say>",
    )
    widened = config.with_roles(config.roles + (RoleType.CORONER,))

    assert widened.player_count == 6
    assert widened.night_revote_limit == 2
    assert widened.thinking_marker == "<think>"


def test_reply_markers_must_differ() -> None:
    with pytest.raises(ConfigurationError, match="differ"):
        GameConfig(
            player_count=5,
            roles=GameConfig.default(5).roles,
            thinking_marker="[X]",
            speech_marker="[X]",
        )


def test_reply_markers_may_not_be_empty() -> None:
    with pytest.raises(ConfigurationError, match="empty"):
        GameConfig(player_count=5, roles=GameConfig.default(5).roles, speech_marker="")


def test_night_revote_limit_must_be_positive() -> None:
    with pytest.raises(ConfigurationError):
        GameConfig(player_count=5, roles=GameConfig.default(5).roles, night_revote_limit=0)


def test_retry_settings_validation() -> None:
    with pytest.raises(ConfigurationError):
        RetrySettings(max_attempts=0)
    with pytest.raises(ConfigurationError):
        RetrySettings(base_delay=4.0, max_delay=2.0)
    with pytest.raises(ConfigurationError):
        RetrySettings(base_delay=-1.0)


def test_relationship_needs_two_people() -> None:
    with pytest.raises(ConfigurationError):
        Relationship(character="Ada", target="Ada", kind="self")
    with pytest.raises(ConfigurationError):
        Relationship(character="", target="Ada", kind="sibling")


def test_provider_settings_reject_unknown_type() -> None:
    with pytest.raises(ConfigurationError, match="Unsupported provider"):
        ProviderSettings(api_type="carrier-pigeon")


def test_provider_settings_fall_back_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    settings = ProviderSettings()

    assert settings.resolved_api_key() == "from-env"
    assert settings.resolved_model() == "gemini-1.5-flash"
    assert settings.resolved_endpoint().startswith("https://generativelanguage")


def test_explicit_provider_settings_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    settings = ProviderSettings(
        api_type="openai",
        api_key="explicit",
        api_url="http://localhost:8080/v1/chat/completions",
        model="local-model",
    )

    assert settings.resolved_api_key() == "explicit"
    assert settings.resolved_endpoint() == "http://localhost:8080/v1/chat/completions"
    assert settings.resolved_model() == "local-model"


def test_missing_key_resolves_to_none(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    assert ProviderSettings(api_type="openai").resolved_api_key() is None
