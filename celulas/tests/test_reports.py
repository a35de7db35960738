import io
import unittest
from datetime import date

from pdfminer.high_level import extract_text
from pypdf import PdfReader

from celulas.db import UserRecord
from celulas.reports import build_member_sheet, build_prayer_calendar
from celulas.stats import summarize
from celulas.tests.support import ApiTestCase
from celulas.types import Role


def _user():
    return UserRecord(
        id="u1",
        name="Joao Silva",
        email="joao@example.com",
        role="MEMBRO",
        cell_name="Alpha",
        profile={"phone": "11 99999-0000", "oikos1": "Vizinho Pedro", "has_children": True},
    )


class ReportBuilderTests(unittest.TestCase):
    def test_member_sheet(self):
        dates = [date(2024, 3, 14), date(2024, 3, 15)]
        content = build_member_sheet(_user(), summarize(dates, date(2024, 3, 15)))
        self.assertTrue(content.startswith(b"%PDF"))
        self.assertGreaterEqual(len(PdfReader(io.BytesIO(content)).pages), 1)
        text = extract_text(io.BytesIO(content))
        self.assertIn("Ficha do Membro", text)
        self.assertIn("Joao Silva", text)
        self.assertIn("Vizinho Pedro", text)
        self.assertIn("15/03/2024", text)

    def test_prayer_calendar(self):
        dates = [date(2024, 1, 5), date(2024, 2, 29), date(2024, 12, 25), date(2023, 5, 1)]
        content = build_prayer_calendar(_user(), 2024, dates)
        reader = PdfReader(io.BytesIO(content))
        self.assertEqual(len(reader.pages), 1)
        text = extract_text(io.BytesIO(content))
        self.assertIn("Joao Silva", text)
        self.assertIn("Janeiro", text)
        self.assertIn("Dezembro", text)
        self.assertIn("2024: 3", text)


class ReportApiTests(ApiTestCase):
    def test_member_sheet_download(self):
        member = self.make_user("Joao Silva")
        response = self.client.get(
            f"/api/users/reports/member/{member.id}/pdf", headers=self.auth(member)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "application/pdf")
        self.assertEqual(
            response.headers["content-disposition"],
            'attachment; filename="ficha-joao-silva.pdf"',
        )
        self.assertTrue(response.content.startswith(b"%PDF"))

    def test_calendar_download(self):
        member = self.make_user("Joao Silva")
        self.db.add_prayer_log(member.id, self.today)
        admin = self.make_user("Admin", Role.ADMIN)
        response = self.client.get(
            f"/api/users/reports/calendar/{member.id}/pdf",
            headers=self.auth(admin),
            params={"year": 2024},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn(
            'filename="calendario-oracao-joao-silva-2024.pdf"',
            response.headers["content-disposition"],
        )
        self.assertIn("2024: 1", extract_text(io.BytesIO(response.content)))

    def test_reports_require_permission(self):
        member = self.make_user("Joao Silva")
        outsider = self.make_user("Out")
        for url in (
            f"/api/users/reports/member/{member.id}/pdf",
            f"/api/users/reports/calendar/{member.id}/pdf",
        ):
            self.assertEqual(self.client.get(url, headers=self.auth(outsider)).status_code, 403)
        missing = self.client.get(
            "/api/users/reports/member/missing/pdf", headers=self.auth(outsider)
        )
        self.assertEqual(missing.status_code, 404)


if __name__ == "__main__":
    unittest.main()
