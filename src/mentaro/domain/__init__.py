"""
mentaro.domain

Pure business rules (no I/O).

Responsibilities:
- Discount validity and calculation.
- Enrollment progress bookkeeping.
- Platform/instructor revenue split.
- Course aggregate recomputation and chapter normalization.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Everything here operates on already-loaded objects and explicit `now` values so it
# can be unit tested without a database or a clock.
