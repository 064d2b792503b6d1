"""
mentaro.services

Service layer (use cases over repositories and domain rules).

Responsibilities:
- Compose repositories and domain rules into request-level use cases.
- Raise `mentaro.errors` exceptions; never touch HTTP objects.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services flush but do not commit; the router commits once per request so a use case
# that touches several tables is all-or-nothing.
