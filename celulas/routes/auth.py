"""
Registration and login.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from celulas.db import DbClient
from celulas.dependencies import get_db_client
from celulas.routes.common import is_valid_email
from celulas.schemas import LoginRequest, RegisterRequest
from celulas.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: DbClient = Depends(get_db_client)):
    name = payload.name.strip()
    email = payload.email.strip().lower()
    if not name:
        raise HTTPException(status_code=400, detail="Nome é obrigatório")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Formato de email inválido")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400, detail="A senha deve ter pelo menos 6 caracteres"
        )
    if payload.confirm_password is not None and payload.confirm_password != payload.password:
        raise HTTPException(status_code=400, detail="As senhas não coincidem")
    if db.email_in_use(email):
        raise HTTPException(status_code=409, detail="Este email já está cadastrado")

    try:
        user = db.create_user(name, email, hash_password(payload.password))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Este email já está cadastrado")

    logger.info("Registered user %s", user.id)
    token = create_access_token(user.id, user.email, user.role)
    return {
        "message": "Usuário cadastrado com sucesso",
        "user": user.as_dict(),
        "token": token,
    }


@router.post("/login")
def login(payload: LoginRequest, db: DbClient = Depends(get_db_client)):
    user = db.get_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash or ""):
        raise HTTPException(status_code=401, detail="Credenciais inválidas")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Usuário inativo")

    logger.info("User %s logged in", user.id)
    token = create_access_token(user.id, user.email, user.role)
    return {"message": "Login realizado com sucesso", "user": user.as_dict(), "token": token}
