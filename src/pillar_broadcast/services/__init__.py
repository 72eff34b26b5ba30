"""
pillar_broadcast.services

Service layer.

Responsibilities:
- Audit recording, recipient resolution, concurrent dispatch.
- The broadcast orchestrator that wires them into the request pipeline.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers construct services per request; shared, app-lifetime collaborators
# (rate limiter, identity verifier, transport) live on `app.state`.
