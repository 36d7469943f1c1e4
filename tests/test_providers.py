from __future__ import annotations

from typing import Any

import pytest
import requests
from google.api_core import exceptions as google_exceptions

from whitefire import providers
from whitefire.config import ProviderSettings
from whitefire.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ProviderValidationError,
    TransportError,
    UpstreamError,
)
from whitefire.mock_provider import ScriptedProvider
from whitefire.openai_provider import OpenAICompatibleProvider
from whitefire.providers import (
    GeminiProvider,
    ProviderRequest,
    build_provider,
    build_request,
    validate_request,
)


def _request(**overrides: Any) -> ProviderRequest:
    values = {
        "api_key": "key",
        "endpoint": "https://example.test/v1/chat/completions",
        "model": "model",
        "prompt": "Say something.",
    }
    values.update(overrides)
    return ProviderRequest(**values)


class _FakeResponse:
    def __init__(self, status: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status
        self.ok = 200 <= status < 300
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _patch_post(monkeypatch: pytest.MonkeyPatch, outcome: Any) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake_post(**kwargs: Any) -> _FakeResponse:
        calls.append(kwargs)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(requests, "post", fake_post)
    return calls


@pytest.mark.parametrize(
    "field", ["api_key", "endpoint", "model", "prompt"],
)
def test_validation_rejects_missing_fields(field: str) -> None:
    with pytest.raises(ProviderValidationError):
        validate_request(_request(**{field: ""}))


def test_openai_success(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = {
        "choices": [{"message": {"content": "[SPEECH] Hi."}}],
        "usage": {"total_tokens": 12},
    }
    calls = _patch_post(monkeypatch, _FakeResponse(200, payload))

    response = OpenAICompatibleProvider(timeout=5).generate(_request())

    assert response.text == "[SPEECH] Hi."
    assert response.usage == {"total_tokens": 12}
    assert calls[0]["url"] == "https://example.test/v1/chat/completions"
    assert calls[0]["headers"]["Authorization"] == "Bearer key"
    assert calls[0]["json"]["messages"] == [{"role": "user", "content": "Say something."}]
    assert calls[0]["timeout"] == 5


def test_openai_server_error_is_retryable(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_post(monkeypatch, _FakeResponse(503, text="overloaded"))

    with pytest.raises(UpstreamError) as excinfo:
        OpenAICompatibleProvider().generate(_request())

    assert excinfo.value.status == 503
    assert excinfo.value.details == "overloaded"
    assert excinfo.value.retryable


def test_openai_rate_limit_is_retryable_but_bad_request_is_not(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_post(monkeypatch, _FakeResponse(429))
    with pytest.raises(UpstreamError) as limited:
        OpenAICompatibleProvider().generate(_request())
    assert limited.value.retryable

    _patch_post(monkeypatch, _FakeResponse(400, text="bad"))
    with pytest.raises(UpstreamError) as rejected:
        OpenAICompatibleProvider().generate(_request())
    assert not rejected.value.retryable


def test_openai_connection_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_post(monkeypatch, requests.exceptions.ConnectionError("refused"))

    with pytest.raises(TransportError):
        OpenAICompatibleProvider().generate(_request())


@pytest.mark.parametrize(
    "payload",
    [
        ValueError("not json"),
        {"choices": []},
        {"choices": [{"message": {"content": "   "}}]},
    ],
)
def test_openai_malformed_bodies(monkeypatch: pytest.MonkeyPatch, payload: Any) -> None:
    _patch_post(monkeypatch, _FakeResponse(200, payload))

    with pytest.raises(MalformedResponseError):
        OpenAICompatibleProvider().generate(_request())


class _FakeModel:
    outcome: Any = None

    def __init__(self, name: str) -> None:
        self.name = name

    def generate_content(self, prompt: str, generation_config: Any = None) -> Any:
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class _FakeGeminiResponse:
    def __init__(self, text: str) -> None:
        self.text = text
        self.usage_metadata = None


def _patch_gemini(monkeypatch: pytest.MonkeyPatch, outcome: Any) -> list[dict[str, Any]]:
    configured: list[dict[str, Any]] = []
    monkeypatch.setattr(_FakeModel, "outcome", outcome)
    monkeypatch.setattr(providers.genai, "GenerativeModel", _FakeModel)
    monkeypatch.setattr(providers.genai, "configure", lambda **kwargs: configured.append(kwargs))
    return configured


def test_gemini_success(monkeypatch: pytest.MonkeyPatch) -> None:
    configured = _patch_gemini(monkeypatch, _FakeGeminiResponse("[SPEECH] Hello."))
    settings = ProviderSettings(api_key="g-key")

    response = GeminiProvider().generate(build_request(settings, "prompt"))

    assert response.text == "[SPEECH] Hello."
    assert configured == [{"api_key": "g-key", "client_options": None}]


def test_gemini_custom_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    configured = _patch_gemini(monkeypatch, _FakeGeminiResponse("ok"))
    settings = ProviderSettings(api_key="g-key", api_url="proxy.example.test")

    GeminiProvider().generate(build_request(settings, "prompt"))

    assert configured[0]["client_options"] == {"api_endpoint": "proxy.example.test"}


def test_gemini_api_errors_keep_status(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_gemini(monkeypatch, google_exceptions.ServiceUnavailable("busy"))

    with pytest.raises(UpstreamError) as excinfo:
        GeminiProvider().generate(build_request(ProviderSettings(api_key="g"), "prompt"))

    assert excinfo.value.status == 503
    assert excinfo.value.retryable


def test_gemini_empty_text_is_malformed(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_gemini(monkeypatch, _FakeGeminiResponse(""))

    with pytest.raises(MalformedResponseError):
        GeminiProvider().generate(build_request(ProviderSettings(api_key="g"), "prompt"))


def test_build_provider_by_type() -> None:
    assert isinstance(build_provider(ProviderSettings()), GeminiProvider)
    openai = build_provider(ProviderSettings(api_type="openai", timeout=12))
    assert isinstance(openai, OpenAICompatibleProvider)
    assert openai.timeout == 12


def test_build_provider_rejects_unknown_type() -> None:
    settings = ProviderSettings()
    object.__setattr__(settings, "api_type", "fax")

    with pytest.raises(ConfigurationError):
        build_provider(settings)


def test_scripted_provider_replays_queue() -> None:
    provider = ScriptedProvider(["one", TransportError("down")], default_reply="fallback")
    provider.push("three")

    assert provider.generate(_request()).text == "one"
    with pytest.raises(TransportError):
        provider.generate(_request())
    assert provider.generate(_request()).text == "three"
    assert provider.generate(_request()).text == "fallback"
    assert provider.call_count == 4
