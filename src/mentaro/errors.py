"""
mentaro.errors

Domain-level exceptions raised by services and mapped to HTTP statuses by the API layer.

Responsibilities:
- Give every business failure a stable type and a user-facing message.
- Keep HTTP concerns out of the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class MentaroError(Exception):
    """
    Base class. `status_code` is the HTTP status the API layer responds with.
    """

    message: str
    extra: dict[str, Any] = field(default_factory=dict)

    status_code = 500

    def __str__(self) -> str:
        return self.message


class BusinessRuleError(MentaroError):
    status_code = 400


class ConflictError(BusinessRuleError):
    # Duplicates (email, enrollment, coupon code, cart item...). Reported as 400.
    pass


class AuthenticationError(MentaroError):
    status_code = 401


class ForbiddenError(MentaroError):
    status_code = 403


class NotFoundError(MentaroError):
    status_code = 404


# --- Module Notes -----------------------------------------------------------
# `api.errors.register_exception_handlers` renders these as {"message": ..., **extra}.
