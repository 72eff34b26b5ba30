"""
pillar_broadcast.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The audit trail (`services.audit`) is a separate, durable concern; this package only
# covers local process logs.
