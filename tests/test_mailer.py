from __future__ import annotations

from dataclasses import replace
import logging
import smtplib
from types import SimpleNamespace

import pytest

from accounts_api.core.config import get_settings
from accounts_api.core.mailer import Envelope, MailDeliveryError, Mailer

USER = SimpleNamespace(name="Ana", email="ana@example.com")


def _configured():
    return replace(
        get_settings(),
        smtp_host="smtp.test",
        smtp_port=587,
        smtp_user="bot",
        smtp_password="pw",
        mail_sender="noreply@accounts.test",
    )


def test_render_verification_template():
    body = Mailer(get_settings()).render("verification", {"user": USER, "url": "https://x.test/auth/verify?token=abc"})
    assert "Hello Ana" in body
    assert "https://x.test/auth/verify?token=abc" in body


def test_unconfigured_smtp_skips_with_warning(caplog):
    mailer = Mailer(replace(get_settings(), smtp_host=""))
    with caplog.at_level(logging.WARNING, logger="accounts_api.mailer"):
        sent = mailer.send("reset", {"user": USER, "url": "u"}, Envelope(to_email=USER.email, subject="s"))
    assert sent is False
    assert "SMTP not configured" in caplog.text


def test_delivery_failure_raises(monkeypatch):
    mailer = Mailer(_configured())

    def boom(*args, **kwargs):
        raise smtplib.SMTPException("refused")

    monkeypatch.setattr(mailer, "_deliver", boom)
    with pytest.raises(MailDeliveryError):
        mailer.send("reset", {"user": USER, "url": "u"}, Envelope(to_email=USER.email, subject="s"))


def test_send_builds_message(monkeypatch):
    mailer = Mailer(_configured())
    captured = {}
    monkeypatch.setattr(mailer, "_deliver", lambda sender, to, payload: captured.update(sender=sender, to=to, payload=payload))

    assert mailer.send("reset", {"user": USER, "url": "https://x.test/r"}, Envelope(to_email=USER.email, to_name="Ana", subject="Reset your password"))
    assert captured["sender"] == "noreply@accounts.test"
    assert captured["to"] == "ana@example.com"
    assert "Subject: Reset your password" in captured["payload"]
