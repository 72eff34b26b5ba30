"""
pillar_broadcast.services.dispatch

Concurrent broadcast dispatch engine.

Responsibilities:
- Render one message per recipient and send it through the email transport.
- Run all sends concurrently, each under its own deadline, inside a batch deadline.
- Isolate per-recipient failures and aggregate them into a summary.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from pillar_broadcast.deadlines import TimedOut, run_with_deadline
from pillar_broadcast.mail.rendering import PreparedMessage
from pillar_broadcast.mail.transport import EmailTransport
from pillar_broadcast.observability.logging import get_logger
from pillar_broadcast.security.validation import is_valid_email
from pillar_broadcast.services.recipients import Recipient

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SendResult:
    email: str
    success: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class DispatchSummary:
    results: tuple[SendResult, ...]
    timed_out: bool = False

    @property
    def recipient_count(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)


class DispatchEngine:
    """
    At most one send attempt per recipient per call; nothing is retried.

    If the batch deadline expires, unfinished sends are cancelled and reported as
    failures, so the summary always holds exactly one result per recipient.
    """

    def __init__(
        self,
        *,
        transport: EmailTransport,
        send_timeout: float = 5.0,
        batch_timeout: float = 15.0,
    ) -> None:
        self._transport = transport
        self._send_timeout = send_timeout
        self._batch_timeout = batch_timeout

    async def dispatch(
        self,
        *,
        subject: str,
        content: str,
        recipients: Sequence[Recipient],
    ) -> DispatchSummary:
        if not recipients:
            return DispatchSummary(results=())

        message = PreparedMessage.prepare(subject=subject, content=content)
        tasks = [asyncio.create_task(self._send_one(message, r)) for r in recipients]
        try:
            _, pending = await asyncio.wait(tasks, timeout=self._batch_timeout)
        finally:
            # Also covers cancellation of the request itself.
            for task in tasks:
                if not task.done():
                    task.cancel()

        if pending:
            log.warning(
                "dispatch_batch_timeout",
                after=self._batch_timeout,
                unfinished=len(pending),
                total=len(tasks),
            )

        results = tuple(_collect(task, r) for task, r in zip(tasks, recipients, strict=True))
        return DispatchSummary(results=results, timed_out=bool(pending))

    async def _send_one(self, message: PreparedMessage, recipient: Recipient) -> SendResult:
        if not is_valid_email(recipient.email):
            log.warning("recipient_email_invalid", pillar=recipient.pillar)
            return SendResult(email=recipient.email, success=False, error="Invalid email format")

        html = message.render_for(recipient.name)
        try:
            # The deadline starts once a session is held, not while queued for one.
            async with self._transport.session() as session:
                outcome = await run_with_deadline(
                    session.send(to=recipient.email, subject=message.subject, html=html),
                    timeout=self._send_timeout,
                )
        except Exception as e:
            log.warning("send_failed", email=recipient.email, error=str(e))
            return SendResult(email=recipient.email, success=False, error="Send failed")

        if isinstance(outcome, TimedOut):
            log.warning("send_timeout", email=recipient.email, after=outcome.after)
            return SendResult(email=recipient.email, success=False, error="Send timed out")
        return SendResult(email=recipient.email, success=True)


def _collect(task: asyncio.Task[SendResult], recipient: Recipient) -> SendResult:
    if not task.done() or task.cancelled():
        return SendResult(email=recipient.email, success=False, error="Batch timed out")
    if task.exception() is not None:
        return SendResult(email=recipient.email, success=False, error="Send failed")
    return task.result()


# --- Module Notes -----------------------------------------------------------
# Recipient tuple and `PreparedMessage` are immutable and shared by reference across
# send tasks; each task only produces its own `SendResult`.
