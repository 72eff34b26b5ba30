"""
pillar_broadcast.auth.identity

Caller identity verification.

Responsibilities:
- Define the identity-verifier contract: bearer token -> user id.
- Provide a local JWT verifier and an HTTP verifier for an external identity provider.
- Bound verification with a deadline and collapse every failure into `AuthenticationError`.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from pillar_broadcast.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from pillar_broadcast.deadlines import Completed, run_with_deadline
from pillar_broadcast.errors import AuthenticationError
from pillar_broadcast.observability.logging import get_logger

log = get_logger(__name__)


class IdentityError(Exception):
    pass


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> str: ...


class JwtIdentityVerifier:
    def __init__(self, cfg: JwtConfig) -> None:
        self._cfg = cfg

    async def verify(self, token: str) -> str:
        try:
            payload = decode_and_validate(cfg=self._cfg, token=token)
        except JwtValidationError as e:
            raise IdentityError(str(e)) from e
        subject = str(payload.get("sub", ""))
        if not subject:
            raise IdentityError("token has no subject")
        return subject


class HttpIdentityVerifier:
    """
    Verifies the caller's token against an external identity provider.

    Only the caller tier is used here: the caller's own token plus the caller-scoped
    `api_key`. The service database credential never leaves the storage layer.
    """

    def __init__(self, *, http: httpx.AsyncClient, api_key: str) -> None:
        self._http = http
        self._api_key = api_key

    async def verify(self, token: str) -> str:
        try:
            r = await self._http.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self._api_key},
            )
            r.raise_for_status()
            body = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IdentityError(str(e)) from e
        user_id = body.get("id") if isinstance(body, dict) else None
        if not user_id:
            raise IdentityError("identity provider returned no user id")
        return str(user_id)


async def authenticate(
    verifier: IdentityVerifier,
    token: str,
    *,
    timeout: float,
    audit_action: str = "unauthorized_email_attempt",
) -> str:
    try:
        outcome = await run_with_deadline(verifier.verify(token), timeout=timeout)
    except IdentityError as e:
        log.info("identity_rejected", error=str(e))
        reason = "invalid token"
    else:
        if isinstance(outcome, Completed):
            return outcome.value
        log.warning("identity_timeout", after=outcome.after)
        reason = "identity verification timed out"

    raise AuthenticationError(
        reason,
        audit_action=audit_action,
        audit_details={"error": "Invalid token"},
    )


# --- Module Notes -----------------------------------------------------------
# Audit details stay "Invalid token" for malformed, expired and timed-out tokens alike.
