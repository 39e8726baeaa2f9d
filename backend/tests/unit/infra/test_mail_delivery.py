"""Unit tests for mail templates and the SMTP sender."""

from __future__ import annotations

from unittest import mock

import pytest
from storefront.infra.mail.smtp_sender import SMTPMailSender
from storefront.infra.mail.templates import render
from storefront.services._shared.ports.mail_queue import MailMessage


def test_verify_template_mentions_code_and_ttl() -> None:
    html, text = render("verify-email", {"name": "Asha", "otp": "042042", "ttl_minutes": 10})
    assert "042042" in html and "042042" in text
    assert "10 minutes" in text
    assert "Hi Asha" in text


def test_template_escapes_html() -> None:
    html, _ = render("password-reset", {"name": "<b>x</b>", "otp": "111111"})
    assert "<b>x</b>" not in html
    assert "&lt;b&gt;" in html


def test_text_part_is_not_escaped_and_name_defaults() -> None:
    html, text = render("verify-email", {"name": "Ravi & Co", "otp": "123456"})
    assert "Hi Ravi & Co," in text
    assert "Ravi &amp; Co" in html

    _, anonymous = render("verify-email", {"otp": "123456"})
    assert anonymous.startswith("Hi there,")


def test_unknown_template_raises_key_error() -> None:
    with pytest.raises(KeyError):
        render("welcome", {})


def test_disabled_sender_skips_delivery() -> None:
    sender = SMTPMailSender(host=None)
    message = MailMessage(to="a@example.com", subject="S", template="verify-email", data={})
    with mock.patch("smtplib.SMTP") as smtp:
        assert sender.send(message) is False
    smtp.assert_not_called()


def test_sender_uses_starttls_and_login() -> None:
    sender = SMTPMailSender(
        host="smtp.example.com",
        port=2525,
        username="mailer",
        password="pw",
        sender="shop@example.com",
    )
    message = MailMessage(
        to="a@example.com",
        subject="Reset your password",
        template="password-reset",
        data={"name": "A", "otp": "123456", "ttl_minutes": 10},
    )
    with mock.patch("smtplib.SMTP") as smtp_cls:
        assert sender.send(message) is True

    smtp_cls.assert_called_once_with("smtp.example.com", 2525, timeout=10.0)
    smtp = smtp_cls.return_value.__enter__.return_value
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("mailer", "pw")
    sent = smtp.send_message.call_args.args[0]
    assert sent["To"] == "a@example.com"
    assert sent["From"] == "shop@example.com"
    assert sent["Subject"] == "Reset your password"
