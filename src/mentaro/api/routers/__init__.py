"""
mentaro.api.routers

Router modules, one per resource area, all mounted under `/api` (health excepted).
"""

# Package marker.
