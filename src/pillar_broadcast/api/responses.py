"""
pillar_broadcast.api.responses

Shared HTTP response helpers.

Responsibilities:
- CORS headers attached to every portal response.
- Generic JSON error responses that never carry internal detail.
"""

from __future__ import annotations

from starlette.responses import JSONResponse, PlainTextResponse

from pillar_broadcast.errors import generic_message


def cors_headers(methods: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Max-Age": "86400",
    }


CORS_HEADERS = cors_headers("POST, OPTIONS")
READ_CORS_HEADERS = cors_headers("GET, OPTIONS")


def error_response(status_code: int, *, headers: dict[str, str] = CORS_HEADERS) -> JSONResponse:
    return JSONResponse(
        {"error": generic_message(status_code)},
        status_code=status_code,
        headers=headers,
    )


def preflight_response(*, headers: dict[str, str] = CORS_HEADERS) -> PlainTextResponse:
    return PlainTextResponse("ok", headers=headers)
