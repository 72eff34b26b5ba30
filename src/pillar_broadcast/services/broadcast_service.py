"""
pillar_broadcast.services.broadcast_service

Request orchestrator for pillar broadcasts.

Responsibilities:
- Run the request pipeline in order: config check, bearer extraction, authentication,
  rate limiting, admin authorization, body parsing, validation, recipient resolution.
- Audit every audited rejection and the initiated/completed (or simulated) dispatch.
- Hand the validated request to the dispatch engine and summarize the outcome.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from pillar_broadcast.auth.admin import AdminAuthorizer
from pillar_broadcast.auth.identity import IdentityVerifier, authenticate
from pillar_broadcast.errors import (
    AuthenticationError,
    BroadcastError,
    ClientInputError,
    ConfigurationError,
    RateLimitError,
)
from pillar_broadcast.mail.transport import EmailTransport
from pillar_broadcast.observability.logging import get_logger
from pillar_broadcast.security.rate_limit import RateLimiter
from pillar_broadcast.security.sanitize import sanitize
from pillar_broadcast.security.validation import validate_broadcast
from pillar_broadcast.services.audit import UNKNOWN_ACTOR, AuditRecorder, RequestMeta
from pillar_broadcast.services.dispatch import DispatchEngine
from pillar_broadcast.services.recipients import RecipientResolver
from pillar_broadcast.settings import Settings

log = get_logger(__name__)

_BEARER_PREFIX = "Bearer "

UNAUTHORIZED_SEND = "unauthorized_email_attempt"
UNAUTHORIZED_READ = "unauthorized_dashboard_access"


@dataclass(frozen=True, slots=True)
class BroadcastRequest:
    pillar: str
    subject: str
    content: str


@dataclass(frozen=True, slots=True)
class BroadcastOutcome:
    recipient_count: int
    success_count: int
    failure_count: int
    simulated: bool = False
    timed_out: bool = False

    @property
    def message(self) -> str:
        if self.simulated:
            return f"Email simulated for {self.recipient_count} employees"
        return f"Emails sent successfully to {self.success_count} employees"


def bearer_token(authorization: str | None, *, min_length: int) -> str:
    # Not audited: nothing about the caller is known yet.
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise AuthenticationError("missing bearer token")
    token = authorization[len(_BEARER_PREFIX) :].strip()
    if len(token) < min_length:
        raise AuthenticationError("malformed bearer token")
    return token


def parse_request(body: bytes, *, max_bytes: int) -> dict[str, Any]:
    if not body or len(body) > max_bytes:
        raise ClientInputError("invalid body size", audit_action="invalid_request_body")
    try:
        parsed = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise ClientInputError("body is not valid JSON", audit_action="invalid_request_body") from e
    if not isinstance(parsed, dict):
        raise ClientInputError("body is not a JSON object", audit_action="invalid_request_body")
    return parsed


def validated_request(fields: dict[str, Any]) -> BroadcastRequest:
    pillar, subject, content = fields.get("pillar"), fields.get("subject"), fields.get("content")
    errors = validate_broadcast(pillar, subject, content)
    if errors:
        raise ClientInputError(
            "; ".join(errors),
            audit_action="email_validation_failed",
            audit_details={"errors": errors, "pillar": sanitize(pillar)},
        )
    return BroadcastRequest(pillar=pillar, subject=subject, content=content)


class BroadcastService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        identity: IdentityVerifier,
        rate_limiter: RateLimiter,
        audit: AuditRecorder,
        transport: EmailTransport | None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._identity = identity
        self._rate_limiter = rate_limiter
        self._audit = audit
        self._transport = transport

    async def authorize_caller(
        self,
        *,
        authorization: str | None,
        meta: RequestMeta,
        rate_limited: bool = True,
        denied_action: str = UNAUTHORIZED_SEND,
    ) -> str:
        """
        Resolve the caller to an admin user id, or raise the matching `BroadcastError`.

        `rate_limited` charges the caller's send budget; read-only endpoints pass False.
        `denied_action` is the audit action for failed authentication or authorization.
        """

        actor = UNKNOWN_ACTOR
        try:
            missing = self._settings.missing_required()
            if missing:
                log.error("service_misconfigured", missing=missing)
                raise ConfigurationError("missing required configuration")

            token = bearer_token(authorization, min_length=self._settings.min_token_length)
            actor = await authenticate(
                self._identity,
                token,
                timeout=self._settings.identity_timeout_seconds,
                audit_action=denied_action,
            )
            if rate_limited and not await self._rate_limiter.allow(actor):
                raise RateLimitError("rate limit exceeded", audit_action="rate_limit_exceeded")
            await AdminAuthorizer(self._session).require_admin(actor, audit_action=denied_action)
        except BroadcastError as e:
            await self._reject(actor, e, meta)
            raise
        return actor

    async def broadcast(
        self, *, authorization: str | None, body: bytes, meta: RequestMeta
    ) -> BroadcastOutcome:
        admin_id = await self.authorize_caller(authorization=authorization, meta=meta)

        try:
            request = validated_request(
                parse_request(body, max_bytes=self._settings.max_body_bytes)
            )
            recipients = await RecipientResolver(
                self._session,
                fetch_limit=self._settings.recipient_fetch_limit,
                send_limit=self._settings.recipient_send_limit,
            ).resolve(request.pillar)
        except BroadcastError as e:
            await self._reject(admin_id, e, meta)
            raise

        pillar = sanitize(request.pillar)
        await self._audit.record(
            admin_id,
            "email_send_initiated",
            {
                "pillar": pillar,
                "subject": sanitize(request.subject)[:100],
                "recipientCount": len(recipients),
            },
            meta,
        )

        if self._transport is None:
            await self._audit.record(
                admin_id,
                "email_send_simulated",
                {
                    "pillar": pillar,
                    "recipientCount": len(recipients),
                    "note": "SMTP credentials not configured",
                },
                meta,
            )
            log.info("broadcast_simulated", recipients=len(recipients))
            return BroadcastOutcome(
                recipient_count=len(recipients),
                success_count=len(recipients),
                failure_count=0,
                simulated=True,
            )

        engine = DispatchEngine(
            transport=self._transport,
            send_timeout=self._settings.send_timeout_seconds,
            batch_timeout=self._settings.batch_timeout_seconds,
        )
        summary = await engine.dispatch(
            subject=request.subject, content=request.content, recipients=recipients
        )

        await self._audit.record(
            admin_id,
            "email_send_completed",
            {
                "pillar": pillar,
                "successCount": summary.success_count,
                "failureCount": summary.failure_count,
                "totalRecipients": summary.recipient_count,
                "timedOut": summary.timed_out,
            },
            meta,
        )
        log.info(
            "broadcast_dispatched",
            recipients=summary.recipient_count,
            succeeded=summary.success_count,
            failed=summary.failure_count,
            timed_out=summary.timed_out,
        )
        return BroadcastOutcome(
            recipient_count=summary.recipient_count,
            success_count=summary.success_count,
            failure_count=summary.failure_count,
            timed_out=summary.timed_out,
        )

    async def _reject(self, actor: str, error: BroadcastError, meta: RequestMeta) -> None:
        log.info(
            "request_rejected",
            status_code=error.status_code,
            reason=error.reason,
            audit_action=error.audit_action,
        )
        if error.audit_action is not None:
            await self._audit.record(actor, error.audit_action, error.audit_details, meta)


# --- Module Notes -----------------------------------------------------------
# Read-only admin endpoints call `authorize_caller` without the rate limit and with
# their own denial action; `broadcast` charges the send budget.
