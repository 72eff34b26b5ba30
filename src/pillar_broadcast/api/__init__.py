"""
pillar_broadcast.api

API package for the Pillar Broadcast service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and response helpers.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer should remain thin: request plumbing + delegation to services.
