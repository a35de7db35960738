"""
Cells: listing by role, CRUD, members, leaders, supervisor and secretary.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from celulas.config import get_settings
from celulas.db import MAX_CELL_LEADERS, CellRecord, DbClient, UserRecord
from celulas.dependencies import get_current_user, get_db_client, get_today, require_roles
from celulas.naming import normalize_cell_name
from celulas.permissions import (
    ADMIN_ROLES,
    SUPERVISOR_ROLES,
    can_manage_leaders,
    can_manage_members,
    can_view_cell,
    has_role,
    is_admin,
    require,
)
from celulas.routes.common import get_cell_or_404, get_user_or_404
from celulas.schemas import (
    CellCreateRequest,
    CellLeaderRequest,
    CellMemberRequest,
    CellSecretaryRequest,
    CellSupervisorRequest,
    CellUpdateRequest,
)
from celulas.types import Role

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_NAME = "Já existe uma célula com este nome"

_cell_admin_guard = require_roles(
    ADMIN_ROLES, "Você não tem permissão para gerenciar células"
)


def _members_since(today: date) -> date:
    return today - timedelta(days=get_settings().default_stats_days)


def _summary(user: Optional[UserRecord]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def _clean_name(db: DbClient, name: Optional[str], exclude_cell_id: Optional[str] = None):
    name = (name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Nome da célula é obrigatório")
    key = normalize_cell_name(name)
    if db.find_cell_by_normalized_name(key, exclude_cell_id=exclude_cell_id):
        raise HTTPException(status_code=400, detail=DUPLICATE_NAME)
    return name, key


def _check_supervisor(db: DbClient, supervisor_id: str) -> UserRecord:
    supervisor = db.get_user(supervisor_id)
    if not supervisor or not has_role(supervisor, SUPERVISOR_ROLES):
        raise HTTPException(
            status_code=400,
            detail="O supervisor precisa ter papel de supervisor ou superior",
        )
    return supervisor


def _check_secretary(db: DbClient, secretary_id: str, cell_id: Optional[str]) -> UserRecord:
    secretary = db.get_user(secretary_id)
    if not secretary:
        raise HTTPException(status_code=400, detail="Secretário não encontrado")
    if cell_id is not None and secretary.cell_id != cell_id:
        raise HTTPException(
            status_code=400, detail="O secretário precisa ser membro da célula"
        )
    return secretary


def _check_leaders(
    db: DbClient, leader_ids: Iterable[str], cell_id: Optional[str]
) -> list[str]:
    leader_ids = list(dict.fromkeys(leader_ids))
    if len(leader_ids) > MAX_CELL_LEADERS:
        raise HTTPException(
            status_code=400,
            detail=f"Uma célula pode ter no máximo {MAX_CELL_LEADERS} líderes",
        )
    for leader_id in leader_ids:
        leader = db.get_user(leader_id)
        if not leader:
            raise HTTPException(status_code=400, detail="Líder não encontrado")
        if leader.cell_id and leader.cell_id != cell_id:
            raise HTTPException(
                status_code=400,
                detail=f"{leader.name} já pertence a outra célula",
            )
    return leader_ids


def _cell_for(
    db: DbClient, cell_id: str, user: UserRecord, check, message: str
) -> CellRecord:
    cell = get_cell_or_404(db, cell_id)
    require(check(user, cell), message)
    return cell


@router.get("")
def list_cells(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    role = Role.parse(current.role)
    if is_admin(current):
        cells = db.list_all_cells()
    elif role == Role.SUPERVISOR:
        cells = db.list_cells_supervised_by(current.id)
    elif role == Role.LIDER:
        cells = db.list_cells_led_by(current.id)
    else:
        own = db.get_cell(current.cell_id) if current.cell_id else None
        cells = [own] if own else []
    return {"cells": [cell.as_dict() for cell in cells]}


@router.get("/list")
def list_cell_options(
    _: UserRecord = Depends(_cell_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    return {"cells": db.list_cell_options()}


@router.get("/my-cell/members")
def my_cell_members(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    cell = db.get_cell(current.cell_id) if current.cell_id else None
    if not cell:
        raise HTTPException(status_code=404, detail="Célula do usuário não encontrada")
    members = db.list_cell_members(cell.id, _members_since(today))
    return {
        "cell_id": cell.id,
        "cell_name": cell.name,
        "members": [member.as_dict() for member in members],
    }


@router.post("", status_code=201)
def create_cell(
    payload: CellCreateRequest,
    current: UserRecord = Depends(_cell_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    name, key = _clean_name(db, payload.name)
    if payload.supervisor_id:
        _check_supervisor(db, payload.supervisor_id)
    if payload.secretary_id:
        _check_secretary(db, payload.secretary_id, None)
    leader_ids = _check_leaders(db, payload.leader_ids, None)

    try:
        cell = db.create_cell(
            name,
            key,
            supervisor_id=payload.supervisor_id or None,
            secretary_id=payload.secretary_id or None,
            leader_ids=leader_ids,
        )
    except IntegrityError:
        raise HTTPException(status_code=400, detail=DUPLICATE_NAME)
    logger.info("Cell %s (%s) created by %s", cell.id, cell.name, current.id)
    return {"message": "Célula criada com sucesso", "cell": cell.as_dict()}


@router.get("/{cell_id}")
def get_cell(
    cell_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cell = _cell_for(
        db, cell_id, current, can_view_cell, "Você não tem permissão para ver esta célula"
    )
    return {"cell": cell.as_dict()}


@router.api_route("/{cell_id}", methods=["PUT", "PATCH"])
def update_cell(
    cell_id: str,
    payload: CellUpdateRequest,
    current: UserRecord = Depends(_cell_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    cell = get_cell_or_404(db, cell_id)
    fields = payload.model_dump(exclude_unset=True)
    leader_ids = fields.pop("leader_ids", None)
    for key in ("supervisor_id", "secretary_id"):
        if key in fields:
            fields[key] = fields[key] or None

    if "name" in fields:
        fields["name"], fields["normalized_name"] = _clean_name(
            db, fields["name"], exclude_cell_id=cell.id
        )
    if fields.get("supervisor_id"):
        _check_supervisor(db, fields["supervisor_id"])
    if fields.get("secretary_id"):
        _check_secretary(db, fields["secretary_id"], cell.id)
    if leader_ids is not None:
        leader_ids = _check_leaders(db, leader_ids, cell.id)

    if not fields and leader_ids is None:
        raise HTTPException(status_code=400, detail="Nenhum campo para atualizar")

    try:
        updated = db.update_cell(cell.id, fields, leader_ids=leader_ids)
    except IntegrityError:
        # Only the name carries a unique constraint.
        if "name" not in fields:
            raise
        raise HTTPException(status_code=400, detail=DUPLICATE_NAME)
    logger.info("Cell %s updated by %s", cell.id, current.id)
    return {"message": "Célula atualizada com sucesso", "cell": updated.as_dict()}


@router.delete("/{cell_id}")
def delete_cell(
    cell_id: str,
    current: UserRecord = Depends(_cell_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    cell = get_cell_or_404(db, cell_id)
    active = db.count_active_members(cell.id)
    if active > 0:
        raise HTTPException(
            status_code=400,
            detail=(
                "Não é possível excluir a célula. "
                f"Há {active} membro(s) vinculado(s) a ela."
            ),
        )
    db.delete_cell(cell.id)
    logger.info("Cell %s deleted by %s", cell.id, current.id)
    return {"message": "Célula excluída com sucesso"}


@router.get("/{cell_id}/members")
def list_members(
    cell_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    cell = _cell_for(
        db, cell_id, current, can_view_cell, "Você não tem permissão para ver esta célula"
    )
    members = db.list_cell_members(cell.id, _members_since(today))
    return {"cell_id": cell.id, "members": [member.as_dict() for member in members]}


@router.post("/{cell_id}/members")
def add_member(
    cell_id: str,
    payload: CellMemberRequest,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cell = _cell_for(
        db,
        cell_id,
        current,
        can_manage_members,
        "Você não tem permissão para gerenciar membros desta célula",
    )
    user = get_user_or_404(db, payload.user_id)
    if user.cell_id == cell.id:
        raise HTTPException(status_code=400, detail="Usuário já é membro desta célula")
    if user.cell_id:
        raise HTTPException(status_code=400, detail="Usuário já pertence a outra célula")

    db.set_user_cell(user.id, cell.id)
    logger.info("User %s added to cell %s", user.id, cell.id)
    return {
        "message": "Membro adicionado com sucesso",
        "member": db.get_user(user.id).as_dict(),
        "cell": db.get_cell(cell.id).as_dict(),
    }


@router.delete("/{cell_id}/members/{user_id}")
def remove_member(
    cell_id: str,
    user_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cell = _cell_for(
        db,
        cell_id,
        current,
        can_manage_members,
        "Você não tem permissão para gerenciar membros desta célula",
    )
    user = get_user_or_404(db, user_id)
    if user.cell_id != cell.id:
        raise HTTPException(status_code=400, detail="Usuário não é membro desta célula")
    if user.id == current.id and cell.leader_ids == [user.id]:
        raise HTTPException(
            status_code=400,
            detail="Você não pode remover a si mesmo sendo o único líder da célula",
        )

    db.remove_cell_member(cell.id, user.id)
    logger.info("User %s removed from cell %s", user.id, cell.id)
    return {"message": "Membro removido com sucesso"}


@router.post("/{cell_id}/leaders")
def add_leader(
    cell_id: str,
    payload: CellLeaderRequest,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cell = _cell_for(
        db,
        cell_id,
        current,
        can_manage_leaders,
        "Você não tem permissão para gerenciar líderes desta célula",
    )
    user = get_user_or_404(db, payload.user_id)
    if user.cell_id != cell.id:
        raise HTTPException(status_code=400, detail="O usuário precisa ser membro da célula")
    if user.id in cell.leader_ids:
        raise HTTPException(status_code=400, detail="Usuário já é líder desta célula")
    if len(cell.leader_ids) >= MAX_CELL_LEADERS:
        raise HTTPException(
            status_code=400,
            detail=f"A célula já possui o número máximo de líderes ({MAX_CELL_LEADERS})",
        )

    try:
        db.add_cell_leader(cell.id, user.id)
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Usuário já é líder desta célula")
    logger.info("User %s is now a leader of cell %s", user.id, cell.id)
    return {
        "message": "Líder adicionado com sucesso",
        "leader": db.get_user(user.id).as_dict(),
    }


@router.delete("/{cell_id}/leaders/{user_id}")
def remove_leader(
    cell_id: str,
    user_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cell = _cell_for(
        db,
        cell_id,
        current,
        can_manage_leaders,
        "Você não tem permissão para gerenciar líderes desta célula",
    )
    if not db.remove_cell_leader(cell.id, user_id):
        raise HTTPException(status_code=404, detail="Líder não encontrado nesta célula")
    logger.info("User %s is no longer a leader of cell %s", user_id, cell.id)
    return {"message": "Líder removido com sucesso"}


@router.put("/{cell_id}/supervisor")
def set_supervisor(
    cell_id: str,
    payload: CellSupervisorRequest,
    current: UserRecord = Depends(_cell_admin_guard),
    db: DbClient = Depends(get_db_client),
):
    cell = get_cell_or_404(db, cell_id)
    supervisor = None
    if payload.supervisor_id:
        supervisor = _check_supervisor(db, payload.supervisor_id)
    db.update_cell(cell.id, {"supervisor_id": supervisor.id if supervisor else None})
    logger.info("Cell %s supervisor set to %s", cell.id, payload.supervisor_id)
    message = (
        "Supervisor atribuído com sucesso" if supervisor else "Supervisor removido com sucesso"
    )
    return {"message": message, "supervisor": _summary(supervisor)}


@router.put("/{cell_id}/secretary")
def set_secretary(
    cell_id: str,
    payload: CellSecretaryRequest,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    cell = _cell_for(
        db,
        cell_id,
        current,
        can_manage_leaders,
        "Você não tem permissão para definir o secretário desta célula",
    )
    secretary = None
    if payload.secretary_id:
        secretary = _check_secretary(db, payload.secretary_id, cell.id)
    db.update_cell(cell.id, {"secretary_id": secretary.id if secretary else None})
    logger.info("Cell %s secretary set to %s", cell.id, payload.secretary_id)
    message = (
        "Secretário definido com sucesso" if secretary else "Secretário removido com sucesso"
    )
    return {"message": message, "secretary": _summary(secretary)}
