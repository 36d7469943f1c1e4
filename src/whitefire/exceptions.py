"""Custom exception types for Whitefire configuration, game flow and providers."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when game configuration data violates the game rules."""


class InvalidActionError(RuntimeError):
    """Raised when a game action violates the current rules or phase."""


class ProviderError(RuntimeError):
    """Base class for failures talking to the text-generation provider."""

    retryable: bool = False


class ProviderValidationError(ProviderError):
    """Missing credential, endpoint or prompt; never retried."""


class TransportError(ProviderError):
    """The provider could not be reached."""

    retryable = True


class UpstreamError(ProviderError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status: int, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.details = details

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status == 429 or self.status >= 500


class MalformedResponseError(ProviderError):
    """The provider answered with an empty or unparsable body."""

    retryable = True


class RetryExhaustedError(ProviderError):
    """Automatic retries ran out; the operator may retry the turn manually."""

    def __init__(self, player_name: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"{player_name}'s turn failed after {attempts} attempt(s): {last_error}"
        )
        self.player_name = player_name
        self.attempts = attempts
        self.last_error = last_error
