"""Message transports for operator notifications.

- ``MsmtpTransport``: pipes the message into ``msmtp -a <account> <to>``.
- ``SmtpTransport``: talks SMTP directly through aiosmtplib.
"""

from __future__ import annotations

import asyncio
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import TYPE_CHECKING

import aiosmtplib

from pgwarden.collaborators._process import run_command
from pgwarden.errors import CommandFailedError, DeliveryError

if TYPE_CHECKING:
    from pgwarden.collaborators import MessageTransport
    from pgwarden.config import WardenSettings


def build_message(from_address: str, to_address: str, subject: str, body: str) -> EmailMessage:
    """Plain-text message with From/To/Subject/Date/Message-ID headers."""
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = from_address
    message["To"] = to_address
    message["Date"] = formatdate(localtime=True)
    message["Message-ID"] = make_msgid(domain=from_address.rpartition("@")[2] or None)
    message.set_content(body)
    return message


class MsmtpTransport:
    """Delivery through a locally configured msmtp account."""

    def __init__(self, account: str = "default", binary: str = "msmtp") -> None:
        self.account = account
        self.binary = binary

    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        body: str,
        timeout: float,
    ) -> None:
        message = build_message(from_address, to_address, subject, body)
        command = [self.binary, "-a", self.account, to_address]
        try:
            run_command(command, timeout=timeout, input_bytes=message.as_bytes())
        except CommandFailedError as exc:
            raise DeliveryError(
                f"msmtp did not accept the message for {to_address}",
                diagnostic=exc.diagnostic,
            ) from exc


class SmtpTransport:
    """Direct SMTP delivery.

    Parameters
    ----------
    host, port:
        SMTP server.
    username, password:
        Credentials; login is skipped when ``username`` is empty.
    use_tls:
        Upgrade the connection with STARTTLS.
    """

    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    async def _deliver(self, message: EmailMessage, timeout: float) -> None:
        smtp = aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            start_tls=self.use_tls,
            timeout=timeout,
        )
        async with smtp:
            if self.username:
                await smtp.login(self.username, self.password or "")
            await smtp.send_message(message)

    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        body: str,
        timeout: float,
    ) -> None:
        message = build_message(from_address, to_address, subject, body)
        try:
            asyncio.run(self._deliver(message, timeout))
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise DeliveryError(
                f"SMTP delivery to {to_address} via {self.host}:{self.port} failed",
                diagnostic=str(exc).strip(),
            ) from exc


def build_transport(config: WardenSettings) -> MessageTransport:
    """Transport selected by ``config.mail_transport``."""
    if config.mail_transport == "smtp":
        password = config.smtp_password.get_secret_value() if config.smtp_password else None
        return SmtpTransport(
            config.smtp_host,
            config.smtp_port,
            username=config.smtp_username,
            password=password,
            use_tls=config.smtp_use_tls,
        )
    return MsmtpTransport(account=config.msmtp_account)
