"""Exception hierarchy for the routing core."""


class ModelGateError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str, provider_name: str | None = None) -> None:
        self.message = message
        self.provider_name = provider_name
        super().__init__(message)


class InvalidProviderConfig(ModelGateError):
    """Raised when a provider definition fails validation."""

    def __init__(self, provider_name: str | None, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Invalid provider config for '{provider_name}': {reason}", provider_name
        )


class UnknownProvider(ModelGateError):
    """Raised when an operation names a provider that is not registered."""

    def __init__(self, provider_name: str) -> None:
        super().__init__(f"Provider '{provider_name}' is not registered", provider_name)


class NoKeysAvailable(ModelGateError):
    """Raised when a key selector has no keys to hand out."""

    def __init__(self, provider_name: str | None = None) -> None:
        target = f" for provider '{provider_name}'" if provider_name else ""
        super().__init__(f"No API keys available{target}", provider_name)


class UpstreamError(ModelGateError):
    """Raised when every attempt to reach an upstream provider failed."""

    def __init__(
        self, provider_name: str, message: str, status_code: int | None = None
    ) -> None:
        self.status_code = status_code
        super().__init__(message, provider_name)
