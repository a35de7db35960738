"""
User administration: listing, detail, updates, status and supervision.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from celulas.db import DbClient, UserRecord
from celulas.dependencies import get_current_user, get_db_client, get_today, require_roles
from celulas.permissions import SUPERVISOR_ROLES, USER_ADMIN_ROLES, has_role, require
from celulas.routes.common import (
    ensure_can_view_user,
    get_user_or_404,
    is_valid_email,
)
from celulas.schemas import UserStatusRequest, UserUpdateRequest
from celulas.stats import calendar_dates
from celulas.types import Role, UserStatus

logger = logging.getLogger(__name__)

router = APIRouter()

_list_users_guard = require_roles(
    SUPERVISOR_ROLES, "Você não tem permissão para listar usuários"
)
_user_admin_guard = require_roles(
    USER_ADMIN_ROLES, "Você não tem permissão para gerenciar usuários"
)


@router.get("")
def list_users(
    role: Optional[str] = None,
    cell_id: Optional[str] = None,
    search: Optional[str] = None,
    status: Optional[str] = None,
    without_cell: bool = False,
    _: UserRecord = Depends(_list_users_guard),
    db: DbClient = Depends(get_db_client),
):
    role_filter = None
    if role:
        parsed = Role.parse(role)
        if parsed is None:
            raise HTTPException(status_code=400, detail="Role inválido")
        role_filter = parsed.value
    status_filter = None
    if status:
        status_filter = status.strip().upper()
        if status_filter not in {s.value for s in UserStatus}:
            raise HTTPException(status_code=400, detail="Status inválido")

    users = db.list_users(
        role=role_filter,
        cell_id=cell_id,
        search=search.strip() if search else None,
        status=status_filter,
        without_cell=without_cell,
    )
    return {"users": [user.as_dict() for user in users]}


@router.get("/{user_id}/supervised-cells")
def supervised_cells(
    user_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    require(current.id == user_id or has_role(current, SUPERVISOR_ROLES))
    return {"cells": db.list_cell_options(supervisor_id=user_id)}


@router.get("/{user_id}/prayer-calendar")
def prayer_calendar(
    user_id: str,
    year: Optional[int] = Query(default=None, ge=1900, le=2100),
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    target = get_user_or_404(db, user_id)
    ensure_can_view_user(db, current, target)
    year = year or today.year
    dates = db.list_prayer_dates(
        target.id, start=date(year, 1, 1), end=date(year, 12, 31)
    )
    return {
        "user_id": target.id,
        "year": year,
        "dates": [day.isoformat() for day in calendar_dates(dates, year)],
    }


@router.get("/{user_id}")
def get_user(
    user_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    target = get_user_or_404(db, user_id)
    ensure_can_view_user(db, current, target)
    dates = db.list_prayer_dates(target.id)
    profile = target.as_dict(include_profile=True)
    profile["is_cell_secretary"] = db.is_cell_secretary(target.id)
    return {
        "profile": profile,
        "stats": {
            "total_prayers": len(dates),
            "last_prayer_date": dates[-1] if dates else None,
        },
    }


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    current: UserRecord = Depends(_user_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    target = get_user_or_404(db, user_id)
    fields = payload.model_dump(exclude_unset=True)
    cell_ids = fields.pop("cell_ids", None)

    if "name" in fields:
        name = (fields["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Nome não pode ser vazio")
        fields["name"] = name
    if "email" in fields:
        email = (fields["email"] or "").strip().lower()
        if not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Formato de email inválido")
        if db.email_in_use(email, exclude_user_id=target.id):
            raise HTTPException(status_code=400, detail="Este email já está em uso")
        fields["email"] = email
    if "role" in fields:
        role = Role.parse(fields["role"])
        if role is None:
            raise HTTPException(status_code=400, detail="Role inválido")
        fields["role"] = role.value
    if "cell_id" in fields:
        fields["cell_id"] = fields["cell_id"] or None
    if fields.get("cell_id") and not db.get_cell(fields["cell_id"]):
        raise HTTPException(status_code=400, detail="Célula não encontrada")

    if cell_ids is not None:
        resulting_role = Role.parse(fields.get("role", target.role))
        if resulting_role not in SUPERVISOR_ROLES:
            raise HTTPException(
                status_code=400,
                detail="Apenas supervisores podem ser designados a células",
            )
        for cell_id in cell_ids:
            if not db.get_cell(cell_id):
                raise HTTPException(status_code=400, detail="Célula não encontrada")

    if not fields and cell_ids is None:
        raise HTTPException(status_code=400, detail="Nenhum campo para atualizar")

    updated = db.update_user(target.id, fields, supervised_cell_ids=cell_ids)
    logger.info("User %s updated by %s", target.id, current.id)
    return {"message": "Usuário atualizado com sucesso", "user": updated.as_dict()}


@router.patch("/{user_id}/status")
def update_status(
    user_id: str,
    payload: UserStatusRequest,
    current: UserRecord = Depends(_user_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    target = get_user_or_404(db, user_id)
    if target.id == current.id and payload.status == UserStatus.INACTIVE:
        raise HTTPException(
            status_code=400, detail="Você não pode desativar sua própria conta"
        )
    updated = db.update_user(target.id, {"status": payload.status.value})
    logger.info("User %s status set to %s", target.id, payload.status.value)
    message = (
        "Usuário ativado com sucesso"
        if payload.status == UserStatus.ACTIVE
        else "Usuário desativado com sucesso"
    )
    return {"message": message, "user": updated.as_dict()}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    current: UserRecord = Depends(_user_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    target = get_user_or_404(db, user_id)
    if target.id == current.id:
        raise HTTPException(
            status_code=400, detail="Você não pode excluir sua própria conta"
        )
    db.delete_user(target.id)
    logger.info("User %s deleted by %s", target.id, current.id)
    return {"message": "Usuário excluído com sucesso"}
