"""Text-generation provider contract and the Gemini provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .config import DEFAULT_ENDPOINTS, ProviderSettings
from .exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ProviderValidationError,
    TransportError,
    UpstreamError,
)


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    api_key: str
    endpoint: str
    model: str
    prompt: str


@dataclass(frozen=True, slots=True)
class ProviderResponse:
    text: str
    usage: Mapping[str, Any] = field(default_factory=dict)


class TextProvider(Protocol):
    """Anything that turns a prompt into text.

    Implementations raise the provider error taxonomy: validation errors for
    missing inputs, transport errors when unreachable, upstream errors with the
    HTTP status, malformed-response errors for empty or unparsable bodies.
    """

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        ...


def validate_request(request: ProviderRequest) -> None:
    if not request.api_key:
        raise ProviderValidationError("An API key is required")
    if not request.endpoint:
        raise ProviderValidationError("An endpoint is required")
    if not request.model:
        raise ProviderValidationError("A model name is required")
    if not request.prompt or not request.prompt.strip():
        raise ProviderValidationError("The prompt is empty")


@dataclass
class GeminiProvider:
    """Google Gemini through ``google-generativeai``."""

    temperature: float = 0.9
    max_output_tokens: int = 1024

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        validate_request(request)
        options = None
        if request.endpoint != DEFAULT_ENDPOINTS["gemini"]:
            options = {"api_endpoint": request.endpoint}
        genai.configure(api_key=request.api_key, client_options=options)
        model = genai.GenerativeModel(request.model)

        try:
            response = model.generate_content(
                request.prompt,
                generation_config=genai.GenerationConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except google_exceptions.RetryError as exc:
            raise TransportError(f"Gemini unreachable: {exc}") from exc
        except google_exceptions.GoogleAPICallError as exc:
            status = int(exc.code) if exc.code is not None else 500
            raise UpstreamError(status, f"Gemini error {status}", str(exc)) from exc

        try:
            text = response.text
        except ValueError as exc:
            # Raised when the candidate was blocked or carries no text part.
            raise MalformedResponseError(f"Gemini returned no text: {exc}") from exc
        if not text or not text.strip():
            raise MalformedResponseError("Gemini returned an empty reply")

        usage: dict[str, Any] = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = {
                "prompt_tokens": getattr(metadata, "prompt_token_count", None),
                "completion_tokens": getattr(metadata, "candidates_token_count", None),
                "total_tokens": getattr(metadata, "total_token_count", None),
            }
        return ProviderResponse(text=text, usage=usage)


def build_provider(settings: ProviderSettings) -> TextProvider:
    """Instantiate the provider named by ``settings.api_type``."""

    if settings.api_type == "gemini":
        return GeminiProvider()
    if settings.api_type == "openai":
        from .openai_provider import OpenAICompatibleProvider

        return OpenAICompatibleProvider(timeout=settings.timeout)
    raise ConfigurationError(f"Unsupported provider: {settings.api_type}")


def build_request(settings: ProviderSettings, prompt: str) -> ProviderRequest:
    return ProviderRequest(
        api_key=settings.resolved_api_key() or "",
        endpoint=settings.resolved_endpoint(),
        model=settings.resolved_model(),
        prompt=prompt,
    )


__all__ = [
    "GeminiProvider",
    "ProviderRequest",
    "ProviderResponse",
    "TextProvider",
    "build_provider",
    "build_request",
    "validate_request",
]
