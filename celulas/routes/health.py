from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from celulas import __version__
from celulas.db import DbClient
from celulas.dependencies import get_db_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(db: DbClient = Depends(get_db_client)):
    try:
        database = db.ping()
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database = False
    return {
        "status": "OK",
        "message": "API funcionando",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "database": database,
    }
