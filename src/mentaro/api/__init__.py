"""
mentaro.api

HTTP API package for the course marketplace.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error mapping and response shaping.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers parse input, call one service, commit once and shape the response.
