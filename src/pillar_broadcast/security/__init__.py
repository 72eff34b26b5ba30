"""
pillar_broadcast.security

Input hardening and abuse controls.

Responsibilities:
- HTML sanitization of free text embedded into outgoing mail.
- Validation of broadcast requests and recipient addresses.
- Per-caller request rate limiting.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Everything here is pure or in-memory; no module in this package touches I/O.
