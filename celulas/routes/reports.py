"""
PDF downloads for a member's sheet and yearly prayer calendar.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from celulas.db import DbClient, UserRecord
from celulas.dependencies import get_current_user, get_db_client, get_today
from celulas.naming import slugify
from celulas.reports import build_member_sheet, build_prayer_calendar
from celulas.routes.common import ensure_can_view_user, get_user_or_404
from celulas.stats import summarize

logger = logging.getLogger(__name__)

router = APIRouter()


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/member/{user_id}/pdf")
def member_sheet(
    user_id: str,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    target = get_user_or_404(db, user_id)
    ensure_can_view_user(db, current, target)
    summary = summarize(db.list_prayer_dates(target.id), today)
    content = build_member_sheet(target, summary)
    logger.info("Member sheet for %s generated by %s", target.id, current.id)
    return _pdf_response(content, f"ficha-{slugify(target.name)}.pdf")


@router.get("/calendar/{user_id}/pdf")
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
    content = build_prayer_calendar(target, year, dates)
    logger.info("Prayer calendar %s for %s generated by %s", year, target.id, current.id)
    return _pdf_response(
        content, f"calendario-oracao-{slugify(target.name)}-{year}.pdf"
    )
