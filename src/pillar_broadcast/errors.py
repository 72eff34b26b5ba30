"""
pillar_broadcast.errors

Request-level error taxonomy.

Responsibilities:
- Map every rejection of the broadcast pipeline to an HTTP status.
- Carry the audit action/details recorded for the rejection.
- Provide the fixed, non-revealing client message vocabulary.
"""

from __future__ import annotations

from typing import Any

GENERIC_MESSAGES: dict[int, str] = {
    400: "Invalid request parameters",
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    405: "Method not allowed",
    429: "Too many requests",
    500: "Internal server error",
}


def generic_message(status_code: int) -> str:
    return GENERIC_MESSAGES.get(status_code, "An error occurred")


class BroadcastError(Exception):
    """
    Base for all rejections raised along the request pipeline.

    `reason` is for server-side logs only; clients only ever see `generic_message(status_code)`.
    `audit_action` of None means the rejection is not audited (e.g. a missing header).
    """

    status_code: int = 500

    def __init__(
        self,
        reason: str,
        *,
        audit_action: str | None = None,
        audit_details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.audit_action = audit_action
        self.audit_details = audit_details or {}

    @property
    def client_message(self) -> str:
        return generic_message(self.status_code)


class ClientInputError(BroadcastError):
    status_code = 400


class TooManyRecipientsError(ClientInputError):
    pass


class AuthenticationError(BroadcastError):
    status_code = 401


class AuthorizationError(BroadcastError):
    status_code = 403


class NotFoundError(BroadcastError):
    status_code = 404


class NoRecipientsError(NotFoundError):
    pass


class MethodNotAllowedError(BroadcastError):
    status_code = 405


class RateLimitError(BroadcastError):
    status_code = 429


class ConfigurationError(BroadcastError):
    status_code = 500


class UnexpectedError(BroadcastError):
    status_code = 500


class DirectoryError(UnexpectedError):
    pass


# --- Module Notes -----------------------------------------------------------
# Per-recipient send failures are deliberately absent here: they are data carried in
# `services.dispatch.SendResult`, not exceptions.
