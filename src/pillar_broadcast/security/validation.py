"""
pillar_broadcast.security.validation

Validation of broadcast requests and recipient addresses.

Responsibilities:
- Check pillar/subject/content against length and character constraints.
- Reject text matching a denylist of dangerous markup patterns.
- Syntactically validate recipient email addresses at send time.
"""

from __future__ import annotations

import re
from typing import Any

PILLAR_MAX_LENGTH = 100
SUBJECT_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 10_000

_PILLAR_RE = re.compile(r"[A-Za-z0-9\s\-_]+")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

# Heuristic and known-incomplete (no decoding of entity/percent-encoded payloads).
# Sanitization at render time is the primary defense.
DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"<script",
        r"javascript:",
        r"on\w+\s*=",
        r"<iframe",
        r"<object",
        r"<embed",
        r"<form",
        r"data:",
        r"vbscript:",
        r"<link",
        r"<meta",
        r"eval\s*\(",
        r"expression\s*\(",
    )
)


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_broadcast(pillar: Any, subject: Any, content: Any) -> list[str]:
    """
    Return every violated constraint as a message; an empty list means the request is valid.

    Values of the wrong type are reported as missing rather than raising.
    """

    errors: list[str] = []

    if _blank(pillar):
        errors.append("Pillar is required")
    elif len(pillar) > PILLAR_MAX_LENGTH:
        errors.append("Invalid pillar format")
    elif not _PILLAR_RE.fullmatch(pillar):
        errors.append("Pillar contains invalid characters")

    if _blank(subject):
        errors.append("Subject is required")
    elif len(subject) > SUBJECT_MAX_LENGTH:
        errors.append("Subject must be less than 200 characters")

    if _blank(content):
        errors.append("Content is required")
    elif len(content) > CONTENT_MAX_LENGTH:
        errors.append("Content must be less than 10,000 characters")

    combined = " ".join(v for v in (subject, content) if isinstance(v, str))
    if any(p.search(combined) for p in DANGEROUS_PATTERNS):
        errors.append("Content contains potentially unsafe elements")

    return errors


def is_valid_email(address: Any) -> bool:
    return isinstance(address, str) and _EMAIL_RE.fullmatch(address) is not None


# --- Module Notes -----------------------------------------------------------
# Directory data is not trusted: `is_valid_email` runs again per recipient in
# `services.dispatch` even though addresses come from our own store.
