"""Versioned snapshot of the notification settings.

The snapshot is built once from Django settings and passed into the
dispatcher and poller, so a running worker never re-reads settings
mid-batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from django.conf import settings  # type: ignore


DEFAULTS: dict[str, Any] = {
    "SETTINGS_VERSION": 1,
    "POLL_INTERVAL_SECONDS": 15.0,
    "BATCH_SIZE": 50,
    "SEND_TIMEOUT_SECONDS": 10.0,
    "SUPPORT_EMAIL": "",
    "SUPPORT_PHONE": "",
    "LOGIN_URL": "",
    "OWNER_DASHBOARD_URL": "",
    "EVENTS": {},
}


@dataclass(frozen=True)
class NotificationSettings:
    version: int = 1
    poll_interval: float = 15.0
    batch_size: int = 50
    send_timeout: float = 10.0
    support_email: str = ""
    support_phone: str = ""
    login_url: str = ""
    owner_dashboard_url: str = ""
    brand_name: str = "RentalHub"
    events: Mapping[str, Mapping[str, bool]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be positive")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        frozen = {event: MappingProxyType(dict(toggles)) for event, toggles in dict(self.events).items()}
        object.__setattr__(self, "events", MappingProxyType(frozen))

    @classmethod
    def from_django(cls, overrides: Mapping[str, Any] | None = None) -> "NotificationSettings":
        """Собирает снимок из settings.NOTIFICATIONS (+ overrides)."""
        raw = dict(DEFAULTS)
        raw.update(getattr(settings, "NOTIFICATIONS", {}) or {})
        raw.update(overrides or {})
        return cls(
            version=int(raw["SETTINGS_VERSION"]),
            poll_interval=float(raw["POLL_INTERVAL_SECONDS"]),
            batch_size=int(raw["BATCH_SIZE"]),
            send_timeout=float(raw["SEND_TIMEOUT_SECONDS"]),
            support_email=raw["SUPPORT_EMAIL"] or "",
            support_phone=raw["SUPPORT_PHONE"] or "",
            login_url=raw["LOGIN_URL"] or "",
            owner_dashboard_url=raw["OWNER_DASHBOARD_URL"] or "",
            brand_name=getattr(settings, "BRAND_NAME", "RentalHub"),
            events=raw["EVENTS"] or {},
        )

    def channel_enabled(self, event: str, channel: str) -> bool:
        # Не указанное событие или канал считается включённым
        toggles = self.events.get(event)
        if toggles is None:
            return True
        return bool(toggles.get(str(channel), True))
