"""
The authenticated user's own profile.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from celulas.db import DbClient, UserRecord
from celulas.dependencies import get_current_user, get_db_client
from celulas.schemas import ProfileUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _profile(db: DbClient, user: UserRecord) -> dict:
    data = user.as_dict(include_profile=True)
    data["is_cell_secretary"] = db.is_cell_secretary(user.id)
    return data


@router.get("")
def get_profile(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return {"message": "Perfil obtido com sucesso", "user": _profile(db, current)}


@router.put("")
def update_profile(
    payload: ProfileUpdateRequest,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    fields = payload.changes()
    if "name" in fields:
        fields["name"] = fields["name"].strip()
        if not fields["name"]:
            raise HTTPException(status_code=400, detail="Nome não pode ser vazio")
    if not fields:
        raise HTTPException(status_code=400, detail="Nenhum campo para atualizar")

    updated = db.update_user(current.id, fields)
    logger.info("User %s updated own profile (%s)", current.id, ", ".join(sorted(fields)))
    return {"message": "Perfil atualizado com sucesso", "user": _profile(db, updated)}
