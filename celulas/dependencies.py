"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from celulas.config import get_settings
from celulas.db import DbClient, SqlDbClient, UserRecord
from celulas.permissions import has_role
from celulas.security import TokenError, decode_access_token
from celulas.stats import local_today

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None

_bearer = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client shared by every request.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = SqlDbClient("sqlite+pysqlite://")
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_today() -> date:
    """Today's date in the configured time zone."""
    return local_today(get_settings().timezone)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: DbClient = Depends(get_db_client),
) -> UserRecord:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Token de acesso requerido")
    try:
        payload = decode_access_token(credentials.credentials)
    except TokenError as exc:
        logger.info("Rejected access token: %s", exc)
        raise HTTPException(status_code=401, detail="Token inválido ou expirado")

    # Role and status come from the database, not the token.
    user = db.get_user(str(payload["userId"]))
    if user is None:
        raise HTTPException(status_code=401, detail="Usuário não encontrado")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Usuário inativo")
    return user


def require_roles(roles, message: str = "Acesso negado") -> Callable[..., UserRecord]:
    """Dependency factory that admits only users holding one of ``roles``."""

    def dependency(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if not has_role(user, roles):
            raise HTTPException(status_code=403, detail=message)
        return user

    return dependency
