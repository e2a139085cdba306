"""Delivery channels supported by notification jobs."""

from __future__ import annotations

from typing import Iterable, NamedTuple

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .exceptions import UnknownChannelError


class Channel(models.TextChoices):
    INAPP = "inapp", _("In-app")
    EMAIL = "email", _("Email")
    WHATSAPP = "whatsapp", _("WhatsApp")
    SMS = "sms", _("SMS")
    PUSH = "push", _("Push")


ALIASES = {
    "in_app": Channel.INAPP,
    "in-app": Channel.INAPP,
    "chat": Channel.WHATSAPP,
    "chat-messaging": Channel.WHATSAPP,
}


class ParsedChannels(NamedTuple):
    channels: list[Channel]
    unknown: list[str]


def parse_channel(value: str) -> Channel | None:
    key = str(value or "").strip().lower()
    if key in ALIASES:
        return ALIASES[key]
    try:
        return Channel(key)
    except ValueError:
        return None


def parse_channels(values: Iterable[str], strict: bool = True) -> ParsedChannels:
    """Разбор списка каналов без учёта регистра.

    Дубликаты удаляются с сохранением порядка. В строгом режиме
    неизвестные имена приводят к UnknownChannelError, иначе они
    возвращаются отдельно, чтобы вызывающий код мог их залогировать.
    """
    channels: list[Channel] = []
    unknown: list[str] = []
    for value in values or ():
        channel = parse_channel(value)
        if channel is None:
            unknown.append(str(value))
        elif channel not in channels:
            channels.append(channel)

    if strict and unknown:
        raise UnknownChannelError(unknown)
    return ParsedChannels(channels, unknown)
