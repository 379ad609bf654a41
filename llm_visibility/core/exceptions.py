"""Exception hierarchy for the visibility pipeline."""


class VisibilityError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(VisibilityError):
    """Raised when the process cannot start a batch (no providers, no judge key)."""


class ProviderAdapterError(VisibilityError):
    """Raised when a provider call fails (transport, auth, HTTP status, empty answer)."""

    def __init__(self, provider: str, message: str, status_code: int = 0):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class JudgeError(VisibilityError):
    """Raised when the secondary analysis call fails or returns unusable output."""
