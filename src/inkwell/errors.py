"""Inkwell exception hierarchy.

All Inkwell-specific exceptions inherit from InkwellError,
enabling structured error handling and cleaner catch clauses.
"""


class InkwellError(Exception):
    """Base exception for all Inkwell errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ProviderError(InkwellError):
    """Error communicating with a generation backend."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class GenerationError(ProviderError):
    """Backend answered with a non-success status."""

    def __init__(
        self,
        message: str = "",
        *,
        status_code: int = 0,
        provider: str = "",
        details: str = "",
        retryable: bool = True,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.status_code = status_code
        self.provider = provider
        self.details = details


class ProviderTransportError(ProviderError):
    """Connection to the backend failed or dropped mid-stream."""


class ProviderConfigError(ProviderError):
    """Backend cannot be called with the current configuration."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message, retryable=retryable)


class ConfigError(InkwellError):
    """Invalid or missing configuration."""
