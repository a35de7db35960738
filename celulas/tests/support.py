"""
Shared fixtures for API tests.
"""

from __future__ import annotations

import unittest
from datetime import date
from typing import Optional

from fastapi.testclient import TestClient

from celulas.app import create_app
from celulas.db import CellRecord, SqlDbClient, UserRecord
from celulas.dependencies import get_db_client, get_today
from celulas.naming import normalize_cell_name, slugify
from celulas.security import create_access_token, hash_password
from celulas.types import Role

TODAY = date(2024, 3, 15)
PASSWORD = "secret123"


class ApiTestCase(unittest.TestCase):
    today = TODAY

    def setUp(self):
        self.db = SqlDbClient("sqlite+pysqlite://")
        self.app = create_app()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_today] = lambda: self.today
        self.client = TestClient(self.app)

    def make_user(
        self,
        name: str,
        role: Role = Role.MEMBRO,
        email: Optional[str] = None,
        cell: Optional[CellRecord] = None,
    ) -> UserRecord:
        user = self.db.create_user(
            name,
            email or f"{slugify(name)}@example.com",
            hash_password(PASSWORD, rounds=4),
            role,
        )
        if cell is not None:
            self.db.set_user_cell(user.id, cell.id)
        return self.db.get_user(user.id)

    def make_cell(self, name: str, **kwargs) -> CellRecord:
        return self.db.create_cell(name, normalize_cell_name(name), **kwargs)

    def auth(self, user: UserRecord) -> dict:
        token = create_access_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}
