import unittest

from fastapi import HTTPException

from celulas.db import CellRecord, UserRecord
from celulas.permissions import (
    can_manage_leaders,
    can_manage_members,
    can_view_cell,
    can_view_user,
    require,
)


def user(user_id, role="MEMBRO", cell_id=None):
    return UserRecord(
        id=user_id, name=user_id, email=f"{user_id}@x.com", role=role, cell_id=cell_id
    )


class PermissionTests(unittest.TestCase):
    def setUp(self):
        self.cell = CellRecord(
            id="c1",
            name="Cell",
            supervisor_id="sup",
            leaders=[{"id": "lead", "name": "lead", "email": "lead@x.com"}],
        )
        self.admin = user("adm", "PASTOR")
        self.supervisor = user("sup", "SUPERVISOR")
        self.other_supervisor = user("sup2", "SUPERVISOR")
        self.leader = user("lead", "LIDER", "c1")
        self.member = user("mem", "MEMBRO", "c1")
        self.outsider = user("out", "MEMBRO", "c2")

    def test_view_cell(self):
        for viewer in (self.admin, self.supervisor, self.leader, self.member):
            self.assertTrue(can_view_cell(viewer, self.cell), viewer.id)
        self.assertFalse(can_view_cell(self.outsider, self.cell))
        self.assertFalse(can_view_cell(self.other_supervisor, self.cell))

    def test_manage_members(self):
        self.assertTrue(can_manage_members(self.leader, self.cell))
        self.assertTrue(can_manage_members(self.supervisor, self.cell))
        self.assertFalse(can_manage_members(self.member, self.cell))

    def test_manage_leaders(self):
        self.assertTrue(can_manage_leaders(self.admin, self.cell))
        self.assertTrue(can_manage_leaders(self.supervisor, self.cell))
        self.assertFalse(can_manage_leaders(self.leader, self.cell))

    def test_view_user(self):
        self.assertTrue(can_view_user(self.member, self.member, self.cell))
        self.assertTrue(can_view_user(self.admin, self.outsider, None))
        self.assertTrue(can_view_user(self.leader, self.member, self.cell))
        self.assertTrue(can_view_user(self.supervisor, self.member, self.cell))
        self.assertFalse(can_view_user(self.member, self.leader, self.cell))
        self.assertFalse(can_view_user(self.supervisor, self.outsider, None))

    def test_require(self):
        require(True)
        with self.assertRaises(HTTPException) as ctx:
            require(False, "nope")
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.detail, "nope")


if __name__ == "__main__":
    unittest.main()
