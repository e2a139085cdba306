"""Error taxonomy of the notification subsystem."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification delivery errors."""


class ProviderError(NotificationError):
    """A delivery provider failed to send (network, timeout, bad response)."""

    def __init__(self, provider: str, detail: str = "") -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider}: {detail}" if detail else provider)


class ProviderNotConfigured(ProviderError):
    """Provider is disabled or its credentials are missing."""

    def __init__(self, provider: str, detail: str = "not configured") -> None:
        super().__init__(provider, detail)


class EmailDeliveryFailed(NotificationError):
    """Every provider of the email chain raised."""

    def __init__(self, recipient: str, errors: list[Exception]) -> None:
        self.recipient = recipient
        self.errors = list(errors)
        summary = "; ".join(str(error) for error in self.errors) or "no providers configured"
        super().__init__(f"All email providers failed for {recipient}: {summary}")


class UnknownChannelError(NotificationError, ValueError):
    """Channel name is not one of the supported channels."""

    def __init__(self, names: list[str]) -> None:
        self.names = list(names)
        super().__init__(f"Unknown notification channel(s): {', '.join(self.names)}")


class MissingRecipientError(NotificationError):
    """No channel of a job can resolve a recipient."""
