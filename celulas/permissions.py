"""
Authorization policy: who may see and change which users and cells.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from celulas.db import CellRecord, UserRecord
from celulas.types import Role

ADMIN_ROLES = frozenset({Role.ADMIN, Role.PASTOR, Role.COORDENADOR})
SUPERVISOR_ROLES = frozenset(
    {Role.SUPERVISOR, Role.COORDENADOR, Role.PASTOR, Role.ADMIN}
)
USER_ADMIN_ROLES = ADMIN_ROLES


def has_role(user: UserRecord, roles) -> bool:
    role = Role.parse(user.role)
    return role is not None and role in roles


def is_admin(user: UserRecord) -> bool:
    return has_role(user, ADMIN_ROLES)


def _supervises(user: UserRecord, cell: CellRecord) -> bool:
    return cell.supervisor_id is not None and cell.supervisor_id == user.id


def _leads(user: UserRecord, cell: CellRecord) -> bool:
    return user.id in cell.leader_ids


def can_view_cell(user: UserRecord, cell: CellRecord) -> bool:
    return (
        is_admin(user)
        or _supervises(user, cell)
        or _leads(user, cell)
        or user.cell_id == cell.id
    )


def can_manage_members(user: UserRecord, cell: CellRecord) -> bool:
    return is_admin(user) or _supervises(user, cell) or _leads(user, cell)


def can_manage_leaders(user: UserRecord, cell: CellRecord) -> bool:
    return is_admin(user) or _supervises(user, cell)


def can_view_user(
    viewer: UserRecord, target: UserRecord, target_cell: Optional[CellRecord]
) -> bool:
    """
    Self, admin roles, and the supervisor or a leader of the target's cell.
    """
    if viewer.id == target.id or is_admin(viewer):
        return True
    if target_cell is None:
        return False
    return _supervises(viewer, target_cell) or _leads(viewer, target_cell)


def require(allowed: bool, message: str = "Acesso negado") -> None:
    if not allowed:
        raise HTTPException(status_code=403, detail=message)
