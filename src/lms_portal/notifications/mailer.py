from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, *, to: str, subject: str, body: str, html: Optional[str] = None) -> None:
        """Deliver one message; raise on failure."""

        raise NotImplementedError


@dataclass(frozen=True)
class SMTPConfig:
    host: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    sender: str = "no-reply@lms.local"
    timeout: int = 10


class SMTPMailer(Mailer):
    def __init__(self, config: SMTPConfig):
        self._config = config

    def send(self, *, to: str, subject: str, body: str, html: Optional[str] = None) -> None:
        msg = EmailMessage()
        msg["From"] = self._config.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        if html:
            msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(self._config.host, self._config.port, timeout=self._config.timeout) as smtp:
            if self._config.use_tls:
                smtp.starttls()
            if self._config.username:
                smtp.login(self._config.username, self._config.password or "")
            smtp.send_message(msg)
        logger.info("email sent to=%s subject=%r", to, subject)


class LogMailer(Mailer):
    """Used when no SMTP server is configured: writes the message to the log."""

    def send(self, *, to: str, subject: str, body: str, html: Optional[str] = None) -> None:
        logger.info("email (not delivered, MAIL_SERVER unset) to=%s subject=%r", to, subject)


def build_mailer(*, host: Optional[str], port: int, username: Optional[str], password: Optional[str], use_tls: bool, sender: str) -> Mailer:
    if not host:
        return LogMailer()
    return SMTPMailer(SMTPConfig(host=host, port=port, username=username, password=password, use_tls=use_tls, sender=sender))
