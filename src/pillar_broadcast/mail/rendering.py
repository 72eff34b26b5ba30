"""
pillar_broadcast.mail.rendering

HTML rendering of broadcast messages.

Responsibilities:
- Sanitize subject, recipient name and content before rendering.
- Embed them in the branded portal template (header, greeting, message, signature, footer).
"""

from __future__ import annotations

from dataclasses import dataclass

from jinja2 import Environment, StrictUndefined

from pillar_broadcast.security.sanitize import sanitize, sanitize_multiline

# Autoescape is off: every value is passed through `sanitize` first, and escaping
# twice would render entities literally in mail clients.
_env = Environment(autoescape=False, undefined=StrictUndefined, trim_blocks=True)

_TEMPLATE = _env.from_string(
    """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ subject }}</title></head>
<body>
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; background-color: #ffffff;">
  <div style="background-color: #f8f9fa; padding: 20px; border-bottom: 3px solid #d97706;">
    <h2 style="color: #8B4513; margin: 0;">Message from Admin Portal</h2>
  </div>
  <div style="padding: 20px;">
    <p>Dear {{ name }},</p>
    <div style="background-color: #FDF5E6; padding: 20px; border-left: 4px solid #D2B48C; margin: 20px 0; border-radius: 4px;">
      {{ content }}
    </div>
    <p>Best regards,<br>Admin Portal Team</p>
  </div>
  <div style="background-color: #f8f9fa; padding: 10px; text-align: center; font-size: 12px; color: #666;">
    This email was sent from the Corporate Communications Portal
  </div>
</div>
</body>
</html>
"""
)


@dataclass(frozen=True, slots=True)
class PreparedMessage:
    """Sanitized, recipient-independent parts of a broadcast; shared by all send tasks."""

    subject: str
    content_html: str

    @classmethod
    def prepare(cls, *, subject: str, content: str) -> PreparedMessage:
        return cls(subject=sanitize(subject), content_html=sanitize_multiline(content))

    def render_for(self, name: str) -> str:
        return _TEMPLATE.render(subject=self.subject, name=sanitize(name), content=self.content_html)


# --- Module Notes -----------------------------------------------------------
# Only the greeting varies per recipient; subject and body are sanitized once per request.
