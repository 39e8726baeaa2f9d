# storefront/infra/mail/smtp_sender.py
from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage

from storefront.infra.mail.templates import render
from storefront.services._shared.ports.mail_queue import MailMessage

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SMTPMailSender:
    """
    Deliver queued mail jobs over SMTP (STARTTLS by default).

    When ``host`` is empty the sender is disabled: jobs are logged and skipped.
    """

    host: str | None
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    sender: str = "no-reply@localhost"
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def build(self, message: MailMessage) -> EmailMessage:
        html, text = render(message.template, message.data)
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self.sender
        msg["To"] = message.to
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, message: MailMessage) -> bool:
        """Send one job. Returns ``False`` when delivery was skipped."""
        email = self.build(message)
        if not self.enabled:
            log.warning("mail.smtp_not_configured", extra={"template": message.template})
            return False
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(email)
        return True
