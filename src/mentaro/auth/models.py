"""
mentaro.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from mentaro.db.models import User, UserRole


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller: the freshly loaded, active user row.
    """

    user: User

    @property
    def id(self) -> uuid.UUID:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.user.role == UserRole.admin

    @property
    def is_approved_instructor(self) -> bool:
        return self.user.role == UserRole.instructor and bool(self.user.is_approved)


# --- Module Notes -----------------------------------------------------------
# Keep this model minimal; it is used across API and service layers.
