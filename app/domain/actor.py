"""
app/domain/actor.py

Authenticated caller identity forwarded by the auth gateway.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

ROLE_USER = "user"
ROLE_ADMIN = "admin"
KNOWN_ROLES = frozenset({ROLE_USER, ROLE_ADMIN})


@dataclass(frozen=True)
class Actor:
    user_id: uuid.UUID
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
