"""
Database abstraction over SQLAlchemy for Postgres (production) and SQLite
(development and tests).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.orm import Session, aliased, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from celulas.types import Role, UserStatus, role_rank

PROFILE_FIELDS = (
    "full_name",
    "phone",
    "whatsapp",
    "gender",
    "birth_city",
    "birth_state",
    "birth_date",
    "address",
    "address_number",
    "neighborhood",
    "zip_code",
    "address_reference",
    "father_name",
    "mother_name",
    "marital_status",
    "spouse_name",
    "education_level",
    "education_course",
    "profession",
    "conversion_date",
    "transfer_info",
    "has_children",
    "oikos1",
    "oikos2",
)

MAX_CELL_LEADERS = 2


class DbClient(Protocol):
    """Interface for database access."""

    # Users
    def create_user(
        self, name: str, email: str, password_hash: str, role: Role = Role.MEMBRO
    ) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def email_in_use(self, email: str, exclude_user_id: Optional[str] = None) -> bool:
        ...

    def list_users(
        self,
        *,
        role: Optional[str] = None,
        cell_id: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        without_cell: bool = False,
    ) -> list["UserRecord"]:
        ...

    def update_user(
        self,
        user_id: str,
        fields: dict,
        *,
        supervised_cell_ids: Optional[list[str]] = None,
    ) -> Optional["UserRecord"]:
        ...

    def delete_user(self, user_id: str) -> bool:
        ...

    # Cells
    def create_cell(
        self,
        name: str,
        normalized_name: str,
        *,
        supervisor_id: Optional[str] = None,
        secretary_id: Optional[str] = None,
        leader_ids: Iterable[str] = (),
    ) -> "CellRecord":
        ...

    def get_cell(self, cell_id: str) -> Optional["CellRecord"]:
        ...

    def find_cell_by_normalized_name(
        self, normalized_name: str, exclude_cell_id: Optional[str] = None
    ) -> Optional["CellRecord"]:
        ...

    def list_all_cells(self) -> list["CellRecord"]:
        ...

    def list_cells_supervised_by(self, user_id: str) -> list["CellRecord"]:
        ...

    def list_cells_led_by(self, user_id: str) -> list["CellRecord"]:
        ...

    def list_cell_options(self, supervisor_id: Optional[str] = None) -> list[dict]:
        ...

    def update_cell(
        self,
        cell_id: str,
        fields: dict,
        *,
        leader_ids: Optional[list[str]] = None,
    ) -> Optional["CellRecord"]:
        ...

    def delete_cell(self, cell_id: str) -> bool:
        ...

    def count_active_members(self, cell_id: str) -> int:
        ...

    def list_cell_members(self, cell_id: str, since: date) -> list["CellMemberRecord"]:
        ...

    def set_user_cell(self, user_id: str, cell_id: Optional[str]) -> None:
        ...

    def remove_cell_member(self, cell_id: str, user_id: str) -> None:
        ...

    def add_cell_leader(self, cell_id: str, user_id: str) -> None:
        ...

    def remove_cell_leader(self, cell_id: str, user_id: str) -> bool:
        ...

    def is_cell_secretary(self, user_id: str) -> bool:
        ...

    # Prayers
    def get_prayer_log(self, user_id: str, day: date) -> Optional["PrayerLogRecord"]:
        ...

    def add_prayer_log(self, user_id: str, day: date) -> "PrayerLogRecord":
        ...

    def touch_prayer_log(self, user_id: str, day: date) -> bool:
        ...

    def list_prayer_dates(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[date]:
        ...

    def ping(self) -> bool:
        ...


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserRecord:
    id: str
    name: str
    email: str
    role: str
    status: str = UserStatus.ACTIVE.value
    cell_id: Optional[str] = None
    cell_name: Optional[str] = None
    password_hash: Optional[str] = field(default=None, repr=False)
    profile: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    def as_dict(self, *, include_profile: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "cell_id": self.cell_id,
            "cell_name": self.cell_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_profile:
            data.update(self.profile)
        return data


@dataclass
class CellRecord:
    id: str
    name: str
    supervisor_id: Optional[str] = None
    supervisor_name: Optional[str] = None
    secretary_id: Optional[str] = None
    secretary_name: Optional[str] = None
    member_count: int = 0
    leaders: list[dict] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def leader_ids(self) -> list[str]:
        return [leader["id"] for leader in self.leaders]

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "supervisor_id": self.supervisor_id,
            "supervisor_name": self.supervisor_name,
            "secretary_id": self.secretary_id,
            "secretary_name": self.secretary_name,
            "member_count": self.member_count,
            "leaders": list(self.leaders),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class CellMemberRecord:
    id: str
    name: str
    email: str
    role: str
    status: str
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    address: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    oikos1: Optional[str] = None
    oikos2: Optional[str] = None
    is_leader: bool = False
    prayer_count: int = 0
    last_prayer: Optional[date] = None
    joined_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "address": self.address,
            "birth_date": self.birth_date,
            "gender": self.gender,
            "marital_status": self.marital_status,
            "oikos1": self.oikos1,
            "oikos2": self.oikos2,
            "is_leader": self.is_leader,
            "prayer_count": self.prayer_count,
            "last_prayer": self.last_prayer,
            "joined_at": self.joined_at,
        }


@dataclass
class PrayerLogRecord:
    id: str
    user_id: str
    prayer_date: date
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "prayer_date": self.prayer_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:") or (
        ":memory:" in database_url
    )


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (Postgres in
    production, SQLite for development and tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            # Sync routes run in a thread pool.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(database_url):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _to_user_record(
        self, row: "UserRow", cell_name: Optional[str] = None
    ) -> UserRecord:
        return UserRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            role=row.role,
            status=row.status,
            cell_id=row.cell_id,
            cell_name=cell_name,
            password_hash=row.password_hash,
            profile={name: getattr(row, name) for name in PROFILE_FIELDS},
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_prayer_record(self, row: "PrayerLogRow") -> PrayerLogRecord:
        return PrayerLogRecord(
            id=row.id,
            user_id=row.user_id,
            prayer_date=row.prayer_date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _user_select(self):
        return select(UserRow, CellRow.name).outerjoin(
            CellRow, UserRow.cell_id == CellRow.id
        )

    def _load_cells(self, session: Session, condition=None) -> list[CellRecord]:
        supervisor = aliased(UserRow)
        secretary = aliased(UserRow)
        stmt = (
            select(CellRow, supervisor.name, secretary.name)
            .outerjoin(supervisor, CellRow.supervisor_id == supervisor.id)
            .outerjoin(secretary, CellRow.secretary_id == secretary.id)
            .order_by(CellRow.name.asc())
        )
        if condition is not None:
            stmt = stmt.where(condition)
        rows = session.execute(stmt).all()
        if not rows:
            return []

        cell_ids = [cell.id for cell, _, _ in rows]
        counts = dict(
            session.execute(
                select(UserRow.cell_id, func.count(UserRow.id))
                .where(
                    UserRow.cell_id.in_(cell_ids),
                    UserRow.status == UserStatus.ACTIVE.value,
                )
                .group_by(UserRow.cell_id)
            ).all()
        )
        leaders: dict[str, list[dict]] = {}
        leader_rows = session.execute(
            select(CellLeaderRow.cell_id, UserRow.id, UserRow.name, UserRow.email)
            .join(UserRow, UserRow.id == CellLeaderRow.user_id)
            .where(CellLeaderRow.cell_id.in_(cell_ids))
            .order_by(UserRow.name.asc())
        ).all()
        for cell_id, user_id, name, email in leader_rows:
            leaders.setdefault(cell_id, []).append(
                {"id": user_id, "name": name, "email": email}
            )

        return [
            CellRecord(
                id=cell.id,
                name=cell.name,
                supervisor_id=cell.supervisor_id,
                supervisor_name=supervisor_name,
                secretary_id=cell.secretary_id,
                secretary_name=secretary_name,
                member_count=int(counts.get(cell.id, 0)),
                leaders=leaders.get(cell.id, []),
                created_at=cell.created_at,
                updated_at=cell.updated_at,
            )
            for cell, supervisor_name, secretary_name in rows
        ]

    # ------------------------------------------------------------------
    # Role bookkeeping shared by leader/member operations
    # ------------------------------------------------------------------

    def _promote_to_leader(self, session: Session, user_id: str) -> None:
        session.execute(
            update(UserRow)
            .where(UserRow.id == user_id, UserRow.role == Role.MEMBRO.value)
            .values(role=Role.LIDER.value, updated_at=_now())
        )

    def _demote_if_idle(self, session: Session, user_id: str) -> None:
        remaining = session.execute(
            select(func.count()).select_from(CellLeaderRow).where(
                CellLeaderRow.user_id == user_id
            )
        ).scalar_one()
        if remaining == 0:
            session.execute(
                update(UserRow)
                .where(UserRow.id == user_id, UserRow.role == Role.LIDER.value)
                .values(role=Role.MEMBRO.value, updated_at=_now())
            )

    def _release_cell_duties(
        self, session: Session, user_id: str, keep_cell_id: Optional[str]
    ) -> None:
        leaders = delete(CellLeaderRow).where(CellLeaderRow.user_id == user_id)
        secretary = update(CellRow).where(CellRow.secretary_id == user_id)
        if keep_cell_id:
            leaders = leaders.where(CellLeaderRow.cell_id != keep_cell_id)
            secretary = secretary.where(CellRow.id != keep_cell_id)
        session.execute(leaders)
        session.execute(secretary.values(secretary_id=None, updated_at=_now()))

    def _insert_leader(self, session: Session, cell_id: str, user_id: str) -> None:
        session.execute(
            update(UserRow)
            .where(UserRow.id == user_id, UserRow.cell_id.is_(None))
            .values(cell_id=cell_id, updated_at=_now())
        )
        session.add(CellLeaderRow(cell_id=cell_id, user_id=user_id, created_at=_now()))
        session.flush()
        self._promote_to_leader(session, user_id)

    def _replace_leaders(
        self, session: Session, cell_id: str, leader_ids: list[str]
    ) -> None:
        current = set(
            session.execute(
                select(CellLeaderRow.user_id).where(CellLeaderRow.cell_id == cell_id)
            ).scalars()
        )
        wanted = list(dict.fromkeys(leader_ids))
        for user_id in current - set(wanted):
            session.execute(
                delete(CellLeaderRow).where(
                    CellLeaderRow.cell_id == cell_id, CellLeaderRow.user_id == user_id
                )
            )
            session.flush()
            self._demote_if_idle(session, user_id)
        for user_id in wanted:
            if user_id not in current:
                self._insert_leader(session, cell_id, user_id)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(
        self, name: str, email: str, password_hash: str, role: Role = Role.MEMBRO
    ) -> UserRecord:
        now = _now()
        with self.Session() as session:
            row = UserRow(
                id=_new_id(),
                name=name,
                email=email,
                password_hash=password_hash,
                role=Role(role).value,
                status=UserStatus.ACTIVE.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            result = session.execute(
                self._user_select().where(UserRow.id == user_id)
            ).first()
            if not result:
                return None
            row, cell_name = result
            return self._to_user_record(row, cell_name)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            result = session.execute(
                self._user_select().where(
                    func.lower(UserRow.email) == email.strip().lower()
                )
            ).first()
            if not result:
                return None
            row, cell_name = result
            return self._to_user_record(row, cell_name)

    def email_in_use(self, email: str, exclude_user_id: Optional[str] = None) -> bool:
        with self.Session() as session:
            stmt = select(UserRow.id).where(
                func.lower(UserRow.email) == email.strip().lower()
            )
            if exclude_user_id:
                stmt = stmt.where(UserRow.id != exclude_user_id)
            return session.execute(stmt.limit(1)).first() is not None

    def list_users(
        self,
        *,
        role: Optional[str] = None,
        cell_id: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        without_cell: bool = False,
    ) -> list[UserRecord]:
        stmt = self._user_select()
        if role:
            stmt = stmt.where(UserRow.role == role)
        if cell_id:
            stmt = stmt.where(UserRow.cell_id == cell_id)
        if without_cell:
            stmt = stmt.where(UserRow.cell_id.is_(None))
        if status:
            stmt = stmt.where(UserRow.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(UserRow.name.ilike(pattern), UserRow.email.ilike(pattern))
            )
        stmt = stmt.order_by(UserRow.name.asc())
        with self.Session() as session:
            return [
                self._to_user_record(row, cell_name)
                for row, cell_name in session.execute(stmt).all()
            ]

    def update_user(
        self,
        user_id: str,
        fields: dict,
        *,
        supervised_cell_ids: Optional[list[str]] = None,
    ) -> Optional[UserRecord]:
        """
        Apply ``fields`` to the user and, when ``supervised_cell_ids`` is
        given, make the user supervisor of exactly those cells. Both happen
        in one transaction.

        Moving the user to another cell drops their leadership and secretary
        duty elsewhere. Setting a role below LIDER drops every leadership, and
        below SUPERVISOR releases the cells they supervise.
        """
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            previous_cell_id = row.cell_id
            if fields:
                session.execute(
                    update(UserRow)
                    .where(UserRow.id == user_id)
                    .values(**fields, updated_at=_now())
                )
            if "cell_id" in fields and fields["cell_id"] != previous_cell_id:
                self._release_cell_duties(session, user_id, fields["cell_id"])
            if "role" in fields:
                rank = role_rank(fields["role"])
                if rank < role_rank(Role.LIDER):
                    session.execute(
                        delete(CellLeaderRow).where(CellLeaderRow.user_id == user_id)
                    )
                if rank < role_rank(Role.SUPERVISOR) and supervised_cell_ids is None:
                    session.execute(
                        update(CellRow)
                        .where(CellRow.supervisor_id == user_id)
                        .values(supervisor_id=None, updated_at=_now())
                    )
            elif "cell_id" in fields:
                session.flush()
                self._demote_if_idle(session, user_id)
            if supervised_cell_ids is not None:
                wanted = list(dict.fromkeys(supervised_cell_ids))
                release = update(CellRow).where(CellRow.supervisor_id == user_id)
                if wanted:
                    release = release.where(CellRow.id.not_in(wanted))
                session.execute(release.values(supervisor_id=None, updated_at=_now()))
                if wanted:
                    session.execute(
                        update(CellRow)
                        .where(CellRow.id.in_(wanted))
                        .values(supervisor_id=user_id, updated_at=_now())
                    )
            session.commit()
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> bool:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return False
            session.execute(delete(PrayerLogRow).where(PrayerLogRow.user_id == user_id))
            session.execute(delete(CellLeaderRow).where(CellLeaderRow.user_id == user_id))
            session.execute(
                update(CellRow)
                .where(CellRow.supervisor_id == user_id)
                .values(supervisor_id=None)
            )
            session.execute(
                update(CellRow)
                .where(CellRow.secretary_id == user_id)
                .values(secretary_id=None)
            )
            session.delete(row)
            session.commit()
            return True

    def count_users(self) -> int:
        with self.Session() as session:
            return session.execute(select(func.count()).select_from(UserRow)).scalar_one()

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def create_cell(
        self,
        name: str,
        normalized_name: str,
        *,
        supervisor_id: Optional[str] = None,
        secretary_id: Optional[str] = None,
        leader_ids: Iterable[str] = (),
    ) -> CellRecord:
        now = _now()
        cell_id = _new_id()
        with self.Session() as session:
            session.add(
                CellRow(
                    id=cell_id,
                    name=name,
                    normalized_name=normalized_name,
                    supervisor_id=supervisor_id,
                    secretary_id=secretary_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.flush()
            for user_id in dict.fromkeys(leader_ids):
                self._insert_leader(session, cell_id, user_id)
            session.commit()
            return self._load_cells(session, CellRow.id == cell_id)[0]

    def get_cell(self, cell_id: str) -> Optional[CellRecord]:
        with self.Session() as session:
            cells = self._load_cells(session, CellRow.id == cell_id)
            return cells[0] if cells else None

    def find_cell_by_normalized_name(
        self, normalized_name: str, exclude_cell_id: Optional[str] = None
    ) -> Optional[CellRecord]:
        with self.Session() as session:
            stmt = select(CellRow).where(CellRow.normalized_name == normalized_name)
            if exclude_cell_id:
                stmt = stmt.where(CellRow.id != exclude_cell_id)
            row = session.execute(stmt.limit(1)).scalar_one_or_none()
            if not row:
                return None
            return CellRecord(
                id=row.id,
                name=row.name,
                supervisor_id=row.supervisor_id,
                secretary_id=row.secretary_id,
                created_at=row.created_at,
                updated_at=row.updated_at,
            )

    def list_all_cells(self) -> list[CellRecord]:
        with self.Session() as session:
            return self._load_cells(session)

    def list_cells_supervised_by(self, user_id: str) -> list[CellRecord]:
        with self.Session() as session:
            return self._load_cells(session, CellRow.supervisor_id == user_id)

    def list_cells_led_by(self, user_id: str) -> list[CellRecord]:
        led = select(CellLeaderRow.cell_id).where(CellLeaderRow.user_id == user_id)
        with self.Session() as session:
            return self._load_cells(session, CellRow.id.in_(led))

    def list_cell_options(self, supervisor_id: Optional[str] = None) -> list[dict]:
        stmt = select(CellRow.id, CellRow.name).order_by(CellRow.name.asc())
        if supervisor_id:
            stmt = stmt.where(CellRow.supervisor_id == supervisor_id)
        with self.Session() as session:
            return [{"id": cell_id, "name": name} for cell_id, name in session.execute(stmt)]

    def update_cell(
        self,
        cell_id: str,
        fields: dict,
        *,
        leader_ids: Optional[list[str]] = None,
    ) -> Optional[CellRecord]:
        with self.Session() as session:
            if session.get(CellRow, cell_id) is None:
                return None
            session.execute(
                update(CellRow)
                .where(CellRow.id == cell_id)
                .values(**fields, updated_at=_now())
            )
            if leader_ids is not None:
                self._replace_leaders(session, cell_id, leader_ids)
            session.commit()
            return self._load_cells(session, CellRow.id == cell_id)[0]

    def delete_cell(self, cell_id: str) -> bool:
        with self.Session() as session:
            row = session.get(CellRow, cell_id)
            if row is None:
                return False
            leader_ids = list(
                session.execute(
                    select(CellLeaderRow.user_id).where(CellLeaderRow.cell_id == cell_id)
                ).scalars()
            )
            session.execute(delete(CellLeaderRow).where(CellLeaderRow.cell_id == cell_id))
            session.flush()
            for user_id in leader_ids:
                self._demote_if_idle(session, user_id)
            session.execute(
                update(UserRow).where(UserRow.cell_id == cell_id).values(cell_id=None)
            )
            session.delete(row)
            session.commit()
            return True

    def count_active_members(self, cell_id: str) -> int:
        with self.Session() as session:
            return session.execute(
                select(func.count())
                .select_from(UserRow)
                .where(
                    UserRow.cell_id == cell_id,
                    UserRow.status == UserStatus.ACTIVE.value,
                )
            ).scalar_one()

    def list_cell_members(self, cell_id: str, since: date) -> list[CellMemberRecord]:
        """Members of a cell with their prayer activity since ``since``."""
        prayer_stats = (
            select(
                PrayerLogRow.user_id.label("user_id"),
                func.count(PrayerLogRow.id).label("prayer_count"),
                func.max(PrayerLogRow.prayer_date).label("last_prayer"),
            )
            .where(PrayerLogRow.prayer_date >= since)
            .group_by(PrayerLogRow.user_id)
            .subquery()
        )
        leader = aliased(CellLeaderRow)
        stmt = (
            select(
                UserRow,
                leader.user_id,
                prayer_stats.c.prayer_count,
                prayer_stats.c.last_prayer,
            )
            .outerjoin(
                leader, (leader.user_id == UserRow.id) & (leader.cell_id == cell_id)
            )
            .outerjoin(prayer_stats, prayer_stats.c.user_id == UserRow.id)
            .where(UserRow.cell_id == cell_id)
            .order_by(leader.user_id.is_(None), UserRow.name.asc())
        )
        with self.Session() as session:
            return [
                CellMemberRecord(
                    id=row.id,
                    name=row.name,
                    email=row.email,
                    role=row.role,
                    status=row.status,
                    phone=row.phone,
                    whatsapp=row.whatsapp,
                    address=row.address,
                    birth_date=row.birth_date,
                    gender=row.gender,
                    marital_status=row.marital_status,
                    oikos1=row.oikos1,
                    oikos2=row.oikos2,
                    is_leader=leader_id is not None,
                    prayer_count=int(prayer_count or 0),
                    last_prayer=last_prayer,
                    joined_at=row.created_at,
                )
                for row, leader_id, prayer_count, last_prayer in session.execute(stmt)
            ]

    def set_user_cell(self, user_id: str, cell_id: Optional[str]) -> None:
        with self.Session() as session:
            session.execute(
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(cell_id=cell_id, updated_at=_now())
            )
            session.commit()

    def remove_cell_member(self, cell_id: str, user_id: str) -> None:
        """Detach a user from a cell, dropping leadership and secretary duty."""
        with self.Session() as session:
            session.execute(
                delete(CellLeaderRow).where(
                    CellLeaderRow.cell_id == cell_id, CellLeaderRow.user_id == user_id
                )
            )
            session.execute(
                update(CellRow)
                .where(CellRow.id == cell_id, CellRow.secretary_id == user_id)
                .values(secretary_id=None, updated_at=_now())
            )
            session.execute(
                update(UserRow)
                .where(UserRow.id == user_id, UserRow.cell_id == cell_id)
                .values(cell_id=None, updated_at=_now())
            )
            session.flush()
            self._demote_if_idle(session, user_id)
            session.commit()

    def add_cell_leader(self, cell_id: str, user_id: str) -> None:
        with self.Session() as session:
            self._insert_leader(session, cell_id, user_id)
            session.commit()

    def remove_cell_leader(self, cell_id: str, user_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(CellLeaderRow).where(
                    CellLeaderRow.cell_id == cell_id, CellLeaderRow.user_id == user_id
                )
            )
            if not result.rowcount:
                return False
            session.flush()
            self._demote_if_idle(session, user_id)
            session.commit()
            return True

    def is_cell_secretary(self, user_id: str) -> bool:
        with self.Session() as session:
            return (
                session.execute(
                    select(CellRow.id).where(CellRow.secretary_id == user_id).limit(1)
                ).first()
                is not None
            )

    # ------------------------------------------------------------------
    # Prayers
    # ------------------------------------------------------------------

    def get_prayer_log(self, user_id: str, day: date) -> Optional[PrayerLogRecord]:
        with self.Session() as session:
            row = session.execute(
                select(PrayerLogRow).where(
                    PrayerLogRow.user_id == user_id, PrayerLogRow.prayer_date == day
                )
            ).scalar_one_or_none()
            return self._to_prayer_record(row) if row else None

    def add_prayer_log(self, user_id: str, day: date) -> PrayerLogRecord:
        now = _now()
        with self.Session() as session:
            row = PrayerLogRow(
                id=_new_id(),
                user_id=user_id,
                prayer_date=day,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_prayer_record(row)

    def touch_prayer_log(self, user_id: str, day: date) -> bool:
        with self.Session() as session:
            result = session.execute(
                update(PrayerLogRow)
                .where(PrayerLogRow.user_id == user_id, PrayerLogRow.prayer_date == day)
                .values(updated_at=_now())
            )
            session.commit()
            return bool(result.rowcount)

    def list_prayer_dates(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[date]:
        stmt = select(PrayerLogRow.prayer_date).where(PrayerLogRow.user_id == user_id)
        if start is not None:
            stmt = stmt.where(PrayerLogRow.prayer_date >= start)
        if end is not None:
            stmt = stmt.where(PrayerLogRow.prayer_date <= end)
        with self.Session() as session:
            return list(
                session.execute(stmt.order_by(PrayerLogRow.prayer_date.asc())).scalars()
            )

    def ping(self) -> bool:
        with self.Session() as session:
            return session.execute(select(1)).scalar_one() == 1

    def reset(self) -> None:
        """Delete every row (useful for scripts and tests)."""
        with self.Session() as session:
            session.execute(delete(PrayerLogRow))
            session.execute(delete(CellLeaderRow))
            session.execute(update(UserRow).values(cell_id=None))
            session.execute(update(CellRow).values(supervisor_id=None, secretary_id=None))
            session.execute(delete(CellRow))
            session.execute(delete(UserRow))
            session.commit()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.MEMBRO.value, index=True)
    cell_id = Column(
        String(36), ForeignKey("cells.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status = Column(String(10), nullable=False, default=UserStatus.ACTIVE.value)

    full_name = Column(String(255), nullable=True)
    phone = Column(String(40), nullable=True)
    whatsapp = Column(String(40), nullable=True)
    gender = Column(String(20), nullable=True)
    birth_city = Column(String(120), nullable=True)
    birth_state = Column(String(60), nullable=True)
    birth_date = Column(Date, nullable=True)
    address = Column(String(255), nullable=True)
    address_number = Column(String(20), nullable=True)
    neighborhood = Column(String(120), nullable=True)
    zip_code = Column(String(20), nullable=True)
    address_reference = Column(String(255), nullable=True)
    father_name = Column(String(255), nullable=True)
    mother_name = Column(String(255), nullable=True)
    marital_status = Column(String(40), nullable=True)
    spouse_name = Column(String(255), nullable=True)
    education_level = Column(String(80), nullable=True)
    education_course = Column(String(120), nullable=True)
    profession = Column(String(120), nullable=True)
    conversion_date = Column(Date, nullable=True)
    transfer_info = Column(String(255), nullable=True)
    has_children = Column(Boolean, nullable=True)
    oikos1 = Column(String(255), nullable=True)
    oikos2 = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class CellRow(Base):
    __tablename__ = "cells"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    normalized_name = Column(String(255), nullable=False, unique=True)
    supervisor_id = Column(
        String(36),
        ForeignKey("users.id", use_alter=True, name="fk_cells_supervisor_id_users"),
        nullable=True,
        index=True,
    )
    secretary_id = Column(
        String(36),
        ForeignKey("users.id", use_alter=True, name="fk_cells_secretary_id_users"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class CellLeaderRow(Base):
    __tablename__ = "cell_leaders"

    cell_id = Column(
        String(36), ForeignKey("cells.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False)


class PrayerLogRow(Base):
    __tablename__ = "daily_prayer_log"
    __table_args__ = (
        UniqueConstraint("user_id", "prayer_date", name="uq_daily_prayer_user_date"),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    prayer_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
