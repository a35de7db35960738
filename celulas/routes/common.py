"""
Lookup and authorization helpers shared by the route modules.
"""

from __future__ import annotations

import re
from typing import Optional

from fastapi import HTTPException

from celulas.db import CellRecord, DbClient, UserRecord
from celulas.permissions import can_view_user, require

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def get_user_or_404(db: DbClient, user_id: str) -> UserRecord:
    user = db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return user


def get_cell_or_404(db: DbClient, cell_id: str) -> CellRecord:
    cell = db.get_cell(cell_id)
    if not cell:
        raise HTTPException(status_code=404, detail="Célula não encontrada")
    return cell


def cell_of(db: DbClient, user: UserRecord) -> Optional[CellRecord]:
    return db.get_cell(user.cell_id) if user.cell_id else None


def ensure_can_view_user(db: DbClient, viewer: UserRecord, target: UserRecord) -> None:
    require(
        can_view_user(viewer, target, cell_of(db, target)),
        "Você não tem permissão para ver este usuário",
    )
