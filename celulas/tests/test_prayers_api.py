import unittest
from datetime import timedelta

from celulas.tests.support import ApiTestCase
from celulas.types import Role


class PrayerApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.member = self.make_user("Mia")
        self.headers = self.auth(self.member)

    def _log(self, *offsets):
        for offset in offsets:
            self.db.add_prayer_log(self.member.id, self.today - timedelta(days=offset))

    def test_strict_log_rejects_second_prayer(self):
        first = self.client.post("/api/prayers", headers=self.headers)
        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["prayer"]["prayer_date"], self.today.isoformat())
        second = self.client.post("/api/prayers", headers=self.headers)
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["error"], "Você já registrou sua oração hoje")

    def test_register_is_idempotent(self):
        for path in ("/api/prayers/register", "/api/prayers/log-daily"):
            response = self.client.post(path, headers=self.headers)
            self.assertEqual(response.status_code, 200)
            self.assertTrue(response.json()["success"])
        first, second = (
            self.client.post("/api/prayers/register", headers=self.auth(self.make_user("Ana"))).json(),
            self.client.post("/api/prayers/log-daily", headers=self.headers).json(),
        )
        self.assertFalse(first["already_registered"])
        self.assertTrue(second["already_registered"])
        self.assertEqual(self.db.list_prayer_dates(self.member.id), [self.today])

    def test_status_today(self):
        response = self.client.get("/api/prayers/status-today", headers=self.headers)
        self.assertEqual(response.json(), {"has_prayed": False})
        self._log(0)
        response = self.client.get("/api/prayers/status-today", headers=self.headers)
        self.assertEqual(response.json(), {"has_prayed": True})

    def test_stats(self):
        # 2024-03-15: offsets 0, 3 and 10 fall in March, 20 does not.
        self._log(0, 3, 10, 20)
        response = self.client.get("/api/prayers/stats", headers=self.headers)
        self.assertEqual(
            response.json(),
            {"prayed_today": True, "prayers_this_week": 2, "prayers_this_month": 3},
        )

    def test_my_stats(self):
        self._log(0, 1, 2, 40)
        response = self.client.get(
            "/api/prayers/my-stats", headers=self.headers, params={"days": "30"}
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["stats"]["total_prayers"], 4)
        self.assertEqual(payload["stats"]["recent_prayers"], 3)
        self.assertEqual(payload["stats"]["streak_days"], 3)
        self.assertEqual(payload["stats"]["days"], 30)
        self.assertEqual(payload["history"][0], self.today.isoformat())

        fallback = self.client.get(
            "/api/prayers/my-stats", headers=self.headers, params={"days": "abc"}
        )
        self.assertEqual(fallback.json()["stats"]["days"], 30)

    def test_streak_is_zero_without_prayer_today(self):
        self._log(1, 2, 3)
        response = self.client.get("/api/prayers/my-stats", headers=self.headers)
        self.assertEqual(response.json()["stats"]["streak_days"], 0)

    def test_user_stats_visibility(self):
        self._log(0, 1, 8)
        leader = self.make_user("Lia")
        cell = self.make_cell("Alpha", leader_ids=[leader.id])
        self.db.set_user_cell(self.member.id, cell.id)
        outsider = self.make_user("Out")
        url = f"/api/prayers/stats/{self.member.id}"

        response = self.client.get(url, headers=self.auth(self.db.get_user(leader.id)))
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["user"]["id"], self.member.id)
        self.assertEqual(payload["total_prayers"], 3)
        self.assertEqual(payload["prayers_this_week"], 2)
        self.assertEqual(payload["streak_days"], 2)
        self.assertEqual(
            payload["prayer_history"],
            [
                {"date": self.today.isoformat(), "count": 1},
                {"date": (self.today - timedelta(days=1)).isoformat(), "count": 1},
            ],
        )

        self.assertEqual(self.client.get(url, headers=self.auth(outsider)).status_code, 403)
        admin = self.make_user("Adm", Role.COORDENADOR)
        self.assertEqual(self.client.get(url, headers=self.auth(admin)).status_code, 200)
        self.assertEqual(
            self.client.get("/api/prayers/stats/missing", headers=self.auth(admin)).status_code,
            404,
        )


if __name__ == "__main__":
    unittest.main()
