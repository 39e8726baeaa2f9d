"""Flask CLI commands for draining the transactional mail queue."""

from __future__ import annotations

import logging
import time

import click
from flask import current_app
from flask.cli import with_appcontext

from storefront.core.extensions import get_infrastructure
from storefront.infra.mail.smtp_sender import SMTPMailSender
from storefront.services._shared.ports.mail_queue import MailPayloadError, MailQueue

LOGGER = logging.getLogger(__name__)

IDLE_SLEEP_SECONDS = 1.0


def build_sender() -> SMTPMailSender:
    """SMTP sender configured from the current app."""
    cfg = current_app.config
    return SMTPMailSender(
        host=cfg.get("SMTP_HOST"),
        port=int(cfg.get("SMTP_PORT", 587)),
        username=cfg.get("SMTP_USER"),
        password=cfg.get("SMTP_PASSWORD"),
        use_tls=bool(cfg.get("SMTP_USE_TLS", True)),
        sender=cfg.get("MAIL_FROM", "no-reply@localhost"),
    )


def process_next(queue: MailQueue, sender: SMTPMailSender, *, timeout: int = 0) -> bool | None:
    """Handle one queued job.

    Returns ``None`` when the queue was empty, ``True`` when a job was
    delivered and ``False`` when it was dropped or skipped. Jobs that cannot
    be decoded or name an unknown template are dropped with an error log;
    SMTP failures propagate so the worker loop can report them.
    """
    try:
        message = queue.pop(timeout=timeout)
    except MailPayloadError:
        LOGGER.error("mail.payload_undecodable", exc_info=True)
        return False
    if message is None:
        return None

    try:
        sent = sender.send(message)
    except KeyError:
        LOGGER.error("mail.unknown_template", extra={"template": message.template})
        return False
    if sent:
        LOGGER.info("mail.sent", extra={"template": message.template})
    return sent


def drain(queue: MailQueue, sender: SMTPMailSender, *, timeout: int, once: bool) -> int:
    """Run the worker loop; returns the number of jobs taken off the queue."""
    handled = 0
    while True:
        try:
            outcome = process_next(queue, sender, timeout=timeout)
        except OSError:
            # SMTP outage: the job is lost, the worker keeps going
            LOGGER.exception("mail.send_failed")
            outcome = False
        if outcome is None:
            if once:
                return handled
            if timeout == 0:
                time.sleep(IDLE_SLEEP_SECONDS)
            continue
        handled += 1


@click.group("mail")
def mail_cli() -> None:
    """Transactional mail commands."""


@mail_cli.command("worker")
@click.option("--once", is_flag=True, help="Exit once the queue is empty.")
@click.option(
    "--timeout",
    type=click.IntRange(min=0),
    default=5,
    show_default=True,
    help="Seconds to block waiting for a job.",
)
@with_appcontext
def worker_command(once: bool, timeout: int) -> None:
    """Consume the mail queue and deliver jobs over SMTP."""

    queue = get_infrastructure().mail_queue
    sender = build_sender()
    if not sender.enabled:
        LOGGER.warning("mail.smtp_not_configured")
    LOGGER.info("mail.worker_started", extra={"reason": "once" if once else "loop"})
    handled = drain(queue, sender, timeout=timeout, once=once)
    click.echo(f"Processed {handled} mail job(s).")
