"""
pillar_broadcast.auth

Authentication/authorization package.

Responsibilities:
- Resolve a caller bearer token to a user id (identity verifiers).
- Check the admin allow-list for that user id.
- JWT helpers for local/dev identity.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Tokens only ever prove *who* the caller is. Admin status is looked up in storage on
# every request and is never read from token claims.
