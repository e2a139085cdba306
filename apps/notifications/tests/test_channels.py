from __future__ import annotations

import pytest

from apps.notifications.channels import Channel, parse_channels
from apps.notifications.exceptions import UnknownChannelError


def test_parse_channels_normalises_aliases_and_duplicates():
    parsed = parse_channels(["Email", "in-app", "chat", "EMAIL", "whatsapp"])

    assert parsed.channels == [Channel.EMAIL, Channel.INAPP, Channel.WHATSAPP]
    assert parsed.unknown == []


def test_strict_parsing_rejects_unknown_names():
    with pytest.raises(UnknownChannelError) as exc_info:
        parse_channels(["email", "fax"])

    assert exc_info.value.names == ["fax"]
    assert isinstance(exc_info.value, ValueError)


def test_lenient_parsing_reports_unknown_names():
    parsed = parse_channels(["fax", "sms", ""], strict=False)

    assert parsed.channels == [Channel.SMS]
    assert parsed.unknown == ["fax", ""]
