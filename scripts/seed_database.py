"""
Create the database tables and the demo accounts used in development.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from celulas.config import get_settings
from celulas.db import SqlDbClient
from celulas.naming import normalize_cell_name
from celulas.security import hash_password
from celulas.types import Role

logger = logging.getLogger(__name__)

DEMO_USERS = (
    ("Administrador", "admin@igreja.com", "admin123", Role.ADMIN),
    ("Pastor João", "pastor@igreja.com", "pastor123", Role.PASTOR),
    ("Líder Maria", "lider@igreja.com", "lider123", Role.LIDER),
    ("Membro José", "membro@igreja.com", "membro123", Role.MEMBRO),
)
DEMO_CELL = "Célula 1"


def seed(db: SqlDbClient, *, admin_only: bool = False, with_cell: bool = False) -> int:
    created = 0
    users = DEMO_USERS[:1] if admin_only else DEMO_USERS
    for name, email, password, role in users:
        if db.email_in_use(email):
            logger.info("Skipping %s (already exists)", email)
            continue
        db.create_user(name, email, hash_password(password), role)
        created += 1
        logger.info("Created %s: %s / %s", role.value, email, password)

    if with_cell and not admin_only:
        key = normalize_cell_name(DEMO_CELL)
        if db.find_cell_by_normalized_name(key):
            logger.info("Skipping cell %s (already exists)", DEMO_CELL)
        else:
            leader = db.get_user_by_email("lider@igreja.com")
            member = db.get_user_by_email("membro@igreja.com")
            cell = db.create_cell(DEMO_CELL, key, leader_ids=[leader.id] if leader else [])
            if member and not member.cell_id:
                db.set_user_cell(member.id, cell.id)
            logger.info("Created cell %s", DEMO_CELL)
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the cell-group database")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete every row before seeding",
    )
    parser.add_argument(
        "--admin-only",
        action="store_true",
        help="Seed only the administrator account",
    )
    parser.add_argument(
        "--with-cell",
        action="store_true",
        help="Also create a demo cell led by the demo leader",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    db = SqlDbClient(args.database_url or get_settings().database_url)
    if args.reset:
        logger.warning("Deleting all users, cells and prayer logs")
        db.reset()
    created = seed(db, admin_only=args.admin_only, with_cell=args.with_cell)
    logger.info("Seed finished: %d user(s) created, %d total", created, db.count_users())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
