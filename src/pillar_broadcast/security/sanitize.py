"""
pillar_broadcast.security.sanitize

HTML sanitization for text that is embedded into outgoing HTML mail.

Responsibilities:
- Remove inline script blocks and event-handler attributes.
- Escape HTML metacharacters to entities.
- Strip dangerous URI schemes (javascript:, data:, vbscript:).
"""

from __future__ import annotations

import re
from typing import Any

_ENTITIES: dict[str, str] = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}
_ENTITY_RE = re.compile("[" + re.escape("".join(_ENTITIES)) + "]")

_SCRIPT_BLOCK_RE = re.compile(r"<script[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_QUOTED_HANDLER_RE = re.compile(r"""on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE)
_BARE_HANDLER_RE = re.compile(r"on\w+\s*=\s*[^>\s]+", re.IGNORECASE)
_SCHEME_RE = re.compile(r"(?:javascript|data|vbscript):", re.IGNORECASE)


def escape_html(text: str) -> str:
    # Single pass so "&" introduced by an entity is never re-escaped within one call.
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(0)], text)


def strip_schemes(text: str) -> str:
    # Repeat until stable: removing "javascript:" from "javajavascript:script:" must not
    # leave a freshly assembled scheme behind.
    while True:
        stripped = _SCHEME_RE.sub("", text)
        if stripped == text:
            return stripped
        text = stripped


def sanitize(value: Any) -> str:
    """
    Neutralize untrusted text for embedding in HTML.

    Non-string and empty input yields "". Applying `sanitize` twice escapes the
    entities produced by the first pass once more, but never yields raw markup.
    """

    if not value or not isinstance(value, str):
        return ""

    text = _SCRIPT_BLOCK_RE.sub("", value)
    text = _QUOTED_HANDLER_RE.sub("", text)
    text = _BARE_HANDLER_RE.sub("", text)
    text = escape_html(text)
    return strip_schemes(text)


def sanitize_multiline(value: Any) -> str:
    """`sanitize` plus newline-to-`<br>` conversion for message bodies."""

    return sanitize(value).replace("\r", "").replace("\n", "<br>")


# --- Module Notes -----------------------------------------------------------
# The validation denylist (`security.validation`) rejects most of these inputs up front;
# sanitization is still applied to everything rendered, including directory data
# (recipient names) that never passed request validation.
