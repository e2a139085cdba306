"""Channel senders that have no real provider behind them."""

from __future__ import annotations

import logging

import pytest

from apps.notifications.senders import PushSender, SMSSender


@pytest.fixture
def sender_logs(caplog, monkeypatch):
    # логгер "apps" не пропагирует записи к root, где висит handler caplog
    monkeypatch.setattr(logging.getLogger("apps"), "propagate", True)
    caplog.set_level(logging.WARNING, logger="apps.notifications.senders")
    return caplog


def test_sms_stub_logs_placeholder_warning(sender_logs):
    SMSSender().send("+233241234567", "Hi", "Body")

    records = [r for r in sender_logs.records if r.name == "apps.notifications.senders"]
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    assert "+233241234567" in records[0].getMessage()
    assert "placeholder" in records[0].getMessage()


def test_push_stub_logs_placeholder_warning(sender_logs):
    PushSender().send("user-42", "Hi", "Body")

    records = [r for r in sender_logs.records if r.name == "apps.notifications.senders"]
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    assert "user-42" in records[0].getMessage()
    assert "placeholder" in records[0].getMessage()
