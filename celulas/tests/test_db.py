import unittest
from datetime import date

from sqlalchemy.exc import IntegrityError

from celulas.db import SqlDbClient
from celulas.naming import normalize_cell_name
from celulas.types import Role, UserStatus


class SqlDbClientTests(unittest.TestCase):
    """
    Runs against in-memory SQLite through the same SQLAlchemy code used for Postgres.
    """

    def setUp(self):
        self.db = SqlDbClient("sqlite+pysqlite://")

    def _user(self, name, role=Role.MEMBRO):
        return self.db.create_user(name, f"{name.lower()}@example.com", "hash", role)

    def _cell(self, name, **kwargs):
        return self.db.create_cell(name, normalize_cell_name(name), **kwargs)

    def test_create_and_find_user(self):
        user = self._user("Ana")
        self.assertEqual(user.role, "MEMBRO")
        self.assertEqual(user.status, "ACTIVE")
        self.assertEqual(self.db.get_user_by_email("ANA@example.com ").id, user.id)
        self.assertTrue(self.db.email_in_use("ana@example.com"))
        self.assertFalse(self.db.email_in_use("ana@example.com", exclude_user_id=user.id))
        self.assertNotIn("password_hash", user.as_dict(include_profile=True))

    def test_duplicate_email_is_rejected(self):
        self._user("Ana")
        with self.assertRaises(IntegrityError):
            self._user("Ana")

    def test_list_users_filters(self):
        cell = self._cell("Alpha")
        ana = self._user("Ana")
        bruno = self._user("Bruno", Role.SUPERVISOR)
        self.db.set_user_cell(ana.id, cell.id)
        self.db.update_user(bruno.id, {"status": UserStatus.INACTIVE.value})

        names = lambda users: [u.name for u in users]
        self.assertEqual(names(self.db.list_users()), ["Ana", "Bruno"])
        self.assertEqual(names(self.db.list_users(role="SUPERVISOR")), ["Bruno"])
        self.assertEqual(names(self.db.list_users(cell_id=cell.id)), ["Ana"])
        self.assertEqual(names(self.db.list_users(without_cell=True)), ["Bruno"])
        self.assertEqual(names(self.db.list_users(status="ACTIVE")), ["Ana"])
        self.assertEqual(names(self.db.list_users(search="BRU")), ["Bruno"])
        self.assertEqual(self.db.list_users(cell_id=cell.id)[0].cell_name, "Alpha")

    def test_cell_aggregates(self):
        supervisor = self._user("Sup", Role.SUPERVISOR)
        leader = self._user("Lia")
        cell = self._cell("Alpha", supervisor_id=supervisor.id, leader_ids=[leader.id])
        member = self._user("Mia")
        self.db.set_user_cell(member.id, cell.id)

        cell = self.db.get_cell(cell.id)
        self.assertEqual(cell.supervisor_name, "Sup")
        self.assertEqual(cell.member_count, 2)
        self.assertEqual(cell.leader_ids, [leader.id])
        # Leaders join the cell and are promoted.
        promoted = self.db.get_user(leader.id)
        self.assertEqual(promoted.cell_id, cell.id)
        self.assertEqual(promoted.role, "LIDER")

        self.assertEqual([c.id for c in self.db.list_cells_supervised_by(supervisor.id)], [cell.id])
        self.assertEqual([c.id for c in self.db.list_cells_led_by(leader.id)], [cell.id])
        self.assertEqual(self.db.list_cell_options(), [{"id": cell.id, "name": "Alpha"}])

    def test_normalized_name_is_unique(self):
        self._cell("Célula 01")
        self.assertIsNotNone(self.db.find_cell_by_normalized_name("celula 1"))
        with self.assertRaises(IntegrityError):
            self._cell("celula 1")

    def test_remove_leader_demotes_only_without_other_leadership(self):
        leader = self._user("Lia")
        alpha = self._cell("Alpha", leader_ids=[leader.id])
        beta = self._cell("Beta")
        self.db.add_cell_leader(beta.id, leader.id)

        self.assertTrue(self.db.remove_cell_leader(alpha.id, leader.id))
        self.assertEqual(self.db.get_user(leader.id).role, "LIDER")
        self.assertTrue(self.db.remove_cell_leader(beta.id, leader.id))
        self.assertEqual(self.db.get_user(leader.id).role, "MEMBRO")
        self.assertFalse(self.db.remove_cell_leader(beta.id, leader.id))

    def test_remove_member_clears_leadership_and_secretary(self):
        leader = self._user("Lia")
        cell = self._cell("Alpha", leader_ids=[leader.id])
        self.db.update_cell(cell.id, {"secretary_id": leader.id})

        self.db.remove_cell_member(cell.id, leader.id)
        user = self.db.get_user(leader.id)
        self.assertIsNone(user.cell_id)
        self.assertEqual(user.role, "MEMBRO")
        cell = self.db.get_cell(cell.id)
        self.assertEqual(cell.leaders, [])
        self.assertIsNone(cell.secretary_id)
        self.assertFalse(self.db.is_cell_secretary(leader.id))

    def test_replace_leaders(self):
        first = self._user("Ana")
        second = self._user("Bia")
        cell = self._cell("Alpha", leader_ids=[first.id])
        updated = self.db.update_cell(cell.id, {}, leader_ids=[second.id])
        self.assertEqual(updated.leader_ids, [second.id])
        self.assertEqual(self.db.get_user(first.id).role, "MEMBRO")
        self.assertEqual(self.db.get_user(second.id).role, "LIDER")

    def test_update_user_replaces_supervised_cells(self):
        supervisor = self._user("Sup", Role.SUPERVISOR)
        alpha = self._cell("Alpha", supervisor_id=supervisor.id)
        beta = self._cell("Beta")
        self.db.update_user(supervisor.id, {}, supervised_cell_ids=[beta.id])
        self.assertIsNone(self.db.get_cell(alpha.id).supervisor_id)
        self.assertEqual(self.db.get_cell(beta.id).supervisor_id, supervisor.id)

        self.db.update_user(supervisor.id, {}, supervised_cell_ids=[])
        self.assertEqual(self.db.list_cells_supervised_by(supervisor.id), [])

    def test_delete_user_cleans_up_links(self):
        user = self._user("Ana", Role.SUPERVISOR)
        cell = self._cell("Alpha", supervisor_id=user.id, leader_ids=[user.id])
        self.db.add_prayer_log(user.id, date(2024, 3, 1))

        self.assertTrue(self.db.delete_user(user.id))
        self.assertIsNone(self.db.get_user(user.id))
        cell = self.db.get_cell(cell.id)
        self.assertIsNone(cell.supervisor_id)
        self.assertEqual(cell.leaders, [])
        self.assertEqual(self.db.list_prayer_dates(user.id), [])
        self.assertFalse(self.db.delete_user(user.id))

    def test_delete_cell(self):
        leader = self._user("Lia")
        cell = self._cell("Alpha", leader_ids=[leader.id])
        self.assertEqual(self.db.count_active_members(cell.id), 1)
        self.assertTrue(self.db.delete_cell(cell.id))
        self.assertIsNone(self.db.get_cell(cell.id))
        user = self.db.get_user(leader.id)
        self.assertIsNone(user.cell_id)
        self.assertEqual(user.role, "MEMBRO")

    def test_prayer_log_is_unique_per_day(self):
        user = self._user("Ana")
        day = date(2024, 3, 15)
        self.db.add_prayer_log(user.id, day)
        with self.assertRaises(IntegrityError):
            self.db.add_prayer_log(user.id, day)
        self.assertTrue(self.db.touch_prayer_log(user.id, day))
        self.assertFalse(self.db.touch_prayer_log(user.id, date(2024, 3, 16)))
        self.assertEqual(self.db.list_prayer_dates(user.id), [day])

    def test_list_prayer_dates_range(self):
        user = self._user("Ana")
        for day in (date(2023, 12, 31), date(2024, 1, 1), date(2024, 6, 1)):
            self.db.add_prayer_log(user.id, day)
        self.assertEqual(
            self.db.list_prayer_dates(
                user.id, start=date(2024, 1, 1), end=date(2024, 12, 31)
            ),
            [date(2024, 1, 1), date(2024, 6, 1)],
        )

    def test_cell_members_with_prayer_activity(self):
        leader = self._user("Zoe")
        cell = self._cell("Alpha", leader_ids=[leader.id])
        member = self._user("Ana")
        self.db.set_user_cell(member.id, cell.id)
        self.db.add_prayer_log(member.id, date(2024, 3, 10))
        self.db.add_prayer_log(member.id, date(2024, 3, 14))
        self.db.add_prayer_log(member.id, date(2024, 1, 1))

        members = self.db.list_cell_members(cell.id, since=date(2024, 2, 14))
        self.assertEqual([m.name for m in members], ["Zoe", "Ana"])
        self.assertTrue(members[0].is_leader)
        self.assertEqual(members[1].prayer_count, 2)
        self.assertEqual(members[1].last_prayer, date(2024, 3, 14))
        self.assertEqual(members[0].prayer_count, 0)

    def test_reset(self):
        user = self._user("Ana")
        self._cell("Alpha", leader_ids=[user.id])
        self.db.reset()
        self.assertEqual(self.db.count_users(), 0)
        self.assertEqual(self.db.list_all_cells(), [])


if __name__ == "__main__":
    unittest.main()
