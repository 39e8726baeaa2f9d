"""Tests for the mail worker loop and its ``flask mail worker`` command."""

from __future__ import annotations

from unittest import mock

import pytest
from storefront.cli.mail import drain, process_next
from storefront.infra.mail.smtp_sender import SMTPMailSender
from storefront.services._shared.ports.mail_queue import (
    InMemoryMailQueue,
    MailMessage,
    MailPayloadError,
)


def _message(template: str = "verify-email") -> MailMessage:
    return MailMessage(
        to="asha@example.com",
        subject="Verify your email",
        template=template,
        data={"name": "Asha", "otp": "123456", "ttl_minutes": 10},
    )


@pytest.fixture()
def sender():
    fake = mock.Mock(spec=SMTPMailSender)
    fake.send.return_value = True
    return fake


def test_empty_queue_returns_none(sender):
    assert process_next(InMemoryMailQueue(), sender) is None
    sender.send.assert_not_called()


def test_delivers_one_job(sender):
    queue = InMemoryMailQueue()
    queue.enqueue(_message())

    assert process_next(queue, sender) is True
    sender.send.assert_called_once_with(_message())
    assert len(queue) == 0


def test_undecodable_payload_is_dropped(sender):
    queue = mock.Mock()
    queue.pop.side_effect = MailPayloadError("bad json")
    assert process_next(queue, sender) is False
    sender.send.assert_not_called()


def test_unknown_template_is_dropped(sender):
    queue = InMemoryMailQueue()
    queue.enqueue(_message("welcome"))
    sender.send.side_effect = KeyError("welcome")
    assert process_next(queue, sender) is False


def test_drain_once_survives_smtp_outage(sender):
    queue = InMemoryMailQueue()
    for _ in range(3):
        queue.enqueue(_message())
    sender.send.side_effect = [True, OSError("connection refused"), True]

    assert drain(queue, sender, timeout=0, once=True) == 3
    assert sender.send.call_count == 3
    assert len(queue) == 0


def test_cli_worker_once(app, infra):
    infra.mail_queue.enqueue(_message())
    infra.mail_queue.enqueue(_message("password-reset"))

    runner = app.test_cli_runner()
    with mock.patch("smtplib.SMTP"):
        result = runner.invoke(args=["mail", "worker", "--once", "--timeout", "0"])

    assert result.exit_code == 0, result.output
    assert "Processed 2 mail job(s)." in result.output
    assert len(infra.mail_queue) == 0
