"""
pillar_broadcast.mail.transport

Email transport boundary.

Responsibilities:
- Define the `EmailTransport` contract: hand out a `MailSession`, which sends one
  message to one recipient and either succeeds or raises.
- Provide an SMTP implementation on aiosmtplib that pools authenticated connections
  under a bound on open connections.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Protocol

import aiosmtplib

from pillar_broadcast.observability.logging import get_logger
from pillar_broadcast.settings import Settings

log = get_logger(__name__)


class MailSession(Protocol):
    async def send(self, *, to: str, subject: str, html: str) -> None: ...


class EmailTransport(Protocol):
    def session(self) -> AbstractAsyncContextManager[MailSession]: ...


class _SmtpSession:
    def __init__(
        self, client: aiosmtplib.SMTP, build: Callable[..., EmailMessage]
    ) -> None:
        self._client = client
        self._build = build
        self.reusable = True

    async def send(self, *, to: str, subject: str, html: str) -> None:
        # Stays False if the send raises or is cancelled midway.
        self.reusable = False
        await self._client.send_message(self._build(to=to, subject=subject, html=html))
        self.reusable = True


class SmtpTransport:
    """
    Pooled SMTP sessions. Port 465 uses implicit TLS, any other port STARTTLS.

    At most `max_connections` connections are open at once. A connection goes back to
    the pool after a clean send and is closed after a failed or cancelled one.
    """

    def __init__(
        self,
        *,
        hostname: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        max_connections: int = 10,
        timeout: float = 30.0,
    ) -> None:
        self._hostname = hostname
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender or username
        self._timeout = timeout
        self._slots = asyncio.Semaphore(max_connections)
        self._idle: list[aiosmtplib.SMTP] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> SmtpTransport:
        return cls(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            sender=settings.smtp_sender,
            max_connections=settings.smtp_max_connections,
        )

    @property
    def implicit_tls(self) -> bool:
        return self._port == 465

    def build_message(self, *, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = to
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=False)
        msg["Message-ID"] = make_msgid()
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    async def _connect(self) -> aiosmtplib.SMTP:
        client = aiosmtplib.SMTP(
            hostname=self._hostname,
            port=self._port,
            use_tls=self.implicit_tls,
            start_tls=False,
            timeout=self._timeout,
        )
        await client.connect()
        try:
            if not self.implicit_tls:
                await client.starttls()
            await client.login(self._username, self._password)
        except BaseException:
            client.close()
            raise
        log.info("smtp_connected", host=self._hostname, port=self._port)
        return client

    async def _checkout(self) -> aiosmtplib.SMTP:
        while self._idle:
            client = self._idle.pop()
            if not client.is_connected:
                continue
            try:
                await client.noop()
            except aiosmtplib.SMTPException:
                client.close()
                continue
            return client
        return await self._connect()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[_SmtpSession]:
        async with self._slots:
            client = await self._checkout()
            smtp_session = _SmtpSession(client, self.build_message)
            try:
                yield smtp_session
            finally:
                if smtp_session.reusable and client.is_connected:
                    self._idle.append(client)
                else:
                    client.close()

    async def aclose(self) -> None:
        idle, self._idle = self._idle, []
        for client in idle:
            try:
                await client.quit()
            except aiosmtplib.SMTPException:
                client.close()


# --- Module Notes -----------------------------------------------------------
# aiosmtplib raises `SMTPException` subclasses on rejection; the dispatch engine turns
# any exception into a failed `SendResult`.
