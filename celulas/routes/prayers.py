"""
Daily prayer logging and prayer statistics.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from celulas.config import get_settings
from celulas.db import DbClient, UserRecord
from celulas.dependencies import get_current_user, get_db_client, get_today
from celulas.routes.common import ensure_can_view_user, get_user_or_404
from celulas.stats import (
    WEEK_WINDOW_DAYS,
    clamp_days,
    count_since,
    daily_history,
    summarize,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
def log_prayer(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    """Record today's prayer; a second call on the same day is rejected."""
    if db.get_prayer_log(current.id, today):
        raise HTTPException(status_code=400, detail="Você já registrou sua oração hoje")
    try:
        prayer = db.add_prayer_log(current.id, today)
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Você já registrou sua oração hoje")
    logger.info("Prayer logged for user %s on %s", current.id, today)
    return {"message": "Oração registrada com sucesso", "prayer": prayer.as_dict()}


@router.post("/register")
@router.post("/log-daily")
def register_prayer(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    """Idempotent daily check-in."""
    already = db.get_prayer_log(current.id, today) is not None
    if not already:
        try:
            db.add_prayer_log(current.id, today)
        except IntegrityError:
            already = True
    if already:
        db.touch_prayer_log(current.id, today)
        return {
            "success": True,
            "message": "Oração de hoje já estava registrada",
            "already_registered": True,
        }
    logger.info("Prayer logged for user %s on %s", current.id, today)
    return {
        "success": True,
        "message": "Oração registrada com sucesso",
        "already_registered": False,
    }


@router.get("/status-today")
def status_today(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    return {"has_prayed": db.get_prayer_log(current.id, today) is not None}


@router.get("/stats")
def prayer_stats(
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    week_start = today - timedelta(days=WEEK_WINDOW_DAYS)
    month_start = today.replace(day=1)
    dates = db.list_prayer_dates(current.id, start=min(week_start, month_start))
    return {
        "prayed_today": today in dates,
        "prayers_this_week": count_since(dates, week_start, today),
        "prayers_this_month": count_since(dates, month_start, today),
    }


@router.get("/my-stats")
def my_stats(
    days: Optional[str] = None,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    window = clamp_days(days, get_settings().default_stats_days)
    summary = summarize(db.list_prayer_dates(current.id), today, window)
    stats = summary.as_dict()
    stats["days"] = window
    return {
        "stats": stats,
        "history": [day.isoformat() for day in summary.history],
    }


@router.get("/stats/{user_id}")
def user_prayer_stats(
    user_id: str,
    days: Optional[str] = None,
    current: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    today: date = Depends(get_today),
):
    target = get_user_or_404(db, user_id)
    ensure_can_view_user(db, current, target)
    window = clamp_days(days, get_settings().default_stats_days)
    dates = db.list_prayer_dates(target.id)
    summary = summarize(dates, today, window)
    return {
        "user": {"id": target.id, "name": target.name, "email": target.email},
        "total_prayers": summary.total_prayers,
        "recent_prayers": summary.recent_prayers,
        "prayers_this_month": summary.month_prayers,
        "prayers_this_week": summary.week_prayers,
        "average_per_week": summary.average_per_week,
        "streak_days": summary.streak_days,
        "last_prayer_date": summary.last_prayer_date,
        "prayer_history": daily_history(dates, today),
    }
