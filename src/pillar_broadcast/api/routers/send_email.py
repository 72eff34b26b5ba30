"""
pillar_broadcast.api.routers.send_email

The bulk-send endpoint.

Responsibilities:
- Accept POST broadcasts, answer CORS preflight, reject any other method with 405.
- Read the raw body with a hard size bound and delegate to `BroadcastService`.
- Map every failure to a generic JSON error; internal detail stays in server logs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from starlette.responses import JSONResponse, Response

from pillar_broadcast.api.deps import broadcast_service, settings_dep
from pillar_broadcast.api.responses import CORS_HEADERS, error_response, preflight_response
from pillar_broadcast.errors import BroadcastError
from pillar_broadcast.observability.logging import get_logger
from pillar_broadcast.services.audit import RequestMeta
from pillar_broadcast.services.broadcast_service import BroadcastService
from pillar_broadcast.settings import Settings

log = get_logger(__name__)

router = APIRouter(tags=["broadcast"])

SEND_EMAIL_PATHS = ("/functions/v1/send-email", "/send-email")


class BroadcastResponse(BaseModel):
    success: bool = True
    message: str
    recipients: int
    failures: int
    total: int
    timed_out: bool = False
    note: str | None = None


async def read_body_limited(request: Request, limit: int) -> bytes:
    # Stop reading one byte past the limit; the service rejects anything that long.
    buf = bytearray()
    async for chunk in request.stream():
        buf.extend(chunk)
        if len(buf) > limit:
            break
    return bytes(buf)


async def send_email(
    request: Request,
    service: BroadcastService = Depends(broadcast_service),
    settings: Settings = Depends(settings_dep),
) -> Response:
    try:
        body = await read_body_limited(request, settings.max_body_bytes)
        outcome = await service.broadcast(
            authorization=request.headers.get("authorization"),
            body=body,
            meta=RequestMeta.from_headers(request.headers),
        )
    except BroadcastError as e:
        return error_response(e.status_code)
    except Exception:
        log.exception("send_email_failed")
        return error_response(500)

    payload = BroadcastResponse(
        message=outcome.message,
        recipients=outcome.success_count,
        failures=outcome.failure_count,
        total=outcome.recipient_count,
        timed_out=outcome.timed_out,
        note="Configure SMTP credentials to send actual emails" if outcome.simulated else None,
    )
    return JSONResponse(payload.model_dump(exclude_none=True), headers=CORS_HEADERS)


async def send_email_preflight() -> Response:
    return preflight_response()


async def method_not_allowed(request: Request) -> Response:
    return error_response(405)


for _path in SEND_EMAIL_PATHS:
    router.add_api_route(_path, send_email, methods=["POST"])
    router.add_api_route(_path, send_email_preflight, methods=["OPTIONS"])
    # Plain route without a method list: catches every other method.
    router.add_route(_path, method_not_allowed, include_in_schema=False)


# --- Module Notes -----------------------------------------------------------
# `/functions/v1/send-email` keeps existing portal frontends working; `/send-email` is
# the short alias.
