"""
pillar_broadcast.api.routers

HTTP routers: health, dev auth, the send endpoint and read-only admin endpoints.
"""

# Package marker.
