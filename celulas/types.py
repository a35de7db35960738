"""
Shared enums for roles and account status.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    MEMBRO = "MEMBRO"
    LIDER = "LIDER"
    SUPERVISOR = "SUPERVISOR"
    COORDENADOR = "COORDENADOR"
    PASTOR = "PASTOR"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: str | None) -> "Role | None":
        """Return the matching role or None for unknown values."""
        if not value:
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


# Ascending tiers; index doubles as rank.
ROLE_ORDER = (
    Role.MEMBRO,
    Role.LIDER,
    Role.SUPERVISOR,
    Role.COORDENADOR,
    Role.PASTOR,
    Role.ADMIN,
)


def role_rank(role: Role | str) -> int:
    return ROLE_ORDER.index(Role(role))
