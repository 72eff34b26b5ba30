"""
pillar_broadcast.mail

Outgoing mail package.

Responsibilities:
- Render the branded HTML broadcast message.
- Email transport contract and the SMTP implementation.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Transports send exactly one message per call and never retry.
