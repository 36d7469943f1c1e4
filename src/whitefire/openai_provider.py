"""OpenAI-compatible chat-completions provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests  # type: ignore[import-untyped]

from .exceptions import MalformedResponseError, TransportError, UpstreamError
from .providers import ProviderRequest, ProviderResponse, validate_request


@dataclass
class OpenAICompatibleProvider:
    """Any endpoint that speaks the OpenAI chat-completions protocol.

    ``endpoint`` is the full URL of the chat-completions route, which lets the
    same provider talk to OpenAI, OpenRouter or a local server.
    """

    temperature: float = 0.9
    max_tokens: int = 1024
    timeout: float = 60.0

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        validate_request(request)
        try:
            response = requests.post(
                url=request.endpoint,
                headers={
                    "Authorization": f"Bearer {request.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": request.model,
                    "messages": [{"role": "user", "content": request.prompt}],
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                },
                timeout=self.timeout,
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
            raise TransportError(f"Provider unreachable: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"Request failed: {exc}") from exc

        if not response.ok:
            raise UpstreamError(
                response.status_code,
                f"Provider returned HTTP {response.status_code}",
                response.text[:500] if response.text else None,
            )

        try:
            result: dict[str, Any] = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Provider returned invalid JSON") from exc

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedResponseError("Provider response has no message content") from exc
        if not content or not str(content).strip():
            raise MalformedResponseError("Provider returned an empty reply")

        return ProviderResponse(text=str(content), usage=result.get("usage") or {})


__all__ = ["OpenAICompatibleProvider"]
