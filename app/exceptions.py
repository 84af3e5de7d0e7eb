"""Domain exceptions raised by connectors and services.

Routers translate these to HTTP responses; main.py maps any that escape
to a 502 so gateway detail never reaches the client.
"""


class UpstreamError(Exception):
    """A third-party API failed or returned an unusable reply."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class PaymentProcessingError(Exception):
    """A payment gateway call failed. The message is safe to show users."""

    def __init__(self, message: str, processor: str):
        self.processor = processor
        super().__init__(message)


class StorageError(Exception):
    """Object storage upload, delete or signing failed."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class AuthenticationError(Exception):
    """Login or token refresh rejected. The message is safe to show users."""


class EmailTakenError(ValueError):
    """Registration for an email that already has an account."""


class EnergyLabelUnavailable(LookupError):
    """No registered energy label exists for the address."""
