"""
pillar_broadcast.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories for the employee
  directory, the admin allow-list and the admin audit log.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# All access goes through the service credential in `Settings.database_url`.
