"""
PDF reports: member sheet ("Ficha do Membro") and yearly prayer calendar.
"""

from __future__ import annotations

import calendar
import io
from datetime import date, datetime
from typing import Iterable, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from celulas.db import UserRecord
from celulas.stats import PrayerSummary

MONTH_NAMES = (
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
)
WEEKDAY_HEADER = ("D", "S", "T", "Q", "Q", "S", "S")

HEADER_COLOR = colors.HexColor("#2c3e50")
ACCENT_COLOR = colors.HexColor("#3498db")
LABEL_BACKGROUND = colors.HexColor("#ecf0f1")
GRID_COLOR = colors.HexColor("#bdc3c7")
PRAYED_COLOR = colors.HexColor("#27ae60")


def _styles():
    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="ReportTitle",
            parent=styles["Heading1"],
            fontSize=18,
            spaceAfter=12,
            alignment=TA_CENTER,
            textColor=HEADER_COLOR,
        )
    )
    styles.add(
        ParagraphStyle(
            name="Section",
            parent=styles["Heading2"],
            fontSize=13,
            spaceBefore=14,
            spaceAfter=6,
            textColor=colors.HexColor("#34495e"),
        )
    )
    styles.add(
        ParagraphStyle(
            name="Caption",
            parent=styles["Normal"],
            fontSize=9,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#7f8c8d"),
        )
    )
    return styles


def _fmt(value) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    return str(value)


def _field_table(rows: list[tuple[str, object]]) -> Table:
    table = Table(
        [[label, Paragraph(escape(_fmt(value)))] for label, value in rows],
        colWidths=[4.5 * cm, 10.8 * cm],
    )
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (0, -1), LABEL_BACKGROUND),
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    return table


def _footer(styles, generated_at: datetime) -> Paragraph:
    return Paragraph(
        f"Documento gerado em {generated_at.strftime('%d/%m/%Y às %H:%M')}",
        styles["Caption"],
    )


def build_member_sheet(
    user: UserRecord,
    summary: PrayerSummary,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render the member sheet for ``user`` and return the PDF bytes."""
    generated_at = generated_at or datetime.now()
    profile = user.profile
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
        title=f"Ficha do Membro - {user.name}",
    )
    styles = _styles()

    sections = [
        (
            "Identificação",
            [
                ("Nome", user.name),
                ("Nome completo", profile.get("full_name")),
                ("Sexo", profile.get("gender")),
                ("Data de nascimento", profile.get("birth_date")),
                ("Naturalidade", profile.get("birth_city")),
                ("UF de nascimento", profile.get("birth_state")),
            ],
        ),
        (
            "Contato",
            [
                ("Email", user.email),
                ("Telefone", profile.get("phone")),
                ("WhatsApp", profile.get("whatsapp")),
            ],
        ),
        (
            "Endereço",
            [
                ("Logradouro", profile.get("address")),
                ("Número", profile.get("address_number")),
                ("Bairro", profile.get("neighborhood")),
                ("CEP", profile.get("zip_code")),
                ("Referência", profile.get("address_reference")),
            ],
        ),
        (
            "Família",
            [
                ("Pai", profile.get("father_name")),
                ("Mãe", profile.get("mother_name")),
                ("Estado civil", profile.get("marital_status")),
                ("Cônjuge", profile.get("spouse_name")),
                ("Tem filhos", profile.get("has_children")),
            ],
        ),
        (
            "Formação e profissão",
            [
                ("Escolaridade", profile.get("education_level")),
                ("Curso", profile.get("education_course")),
                ("Profissão", profile.get("profession")),
            ],
        ),
        (
            "Dados eclesiásticos",
            [
                ("Papel", user.role),
                ("Status", user.status),
                ("Célula", user.cell_name),
                ("Data de conversão", profile.get("conversion_date")),
                ("Transferência", profile.get("transfer_info")),
            ],
        ),
        (
            "Oikos",
            [
                ("Oikos 1", profile.get("oikos1")),
                ("Oikos 2", profile.get("oikos2")),
            ],
        ),
        (
            "Estatísticas de Oração",
            [
                ("Orações registradas", summary.total_prayers),
                ("Orações no mês", summary.month_prayers),
                ("Sequência atual (dias)", summary.streak_days),
                ("Média por semana", summary.average_per_week),
                ("Última oração", summary.last_prayer_date or "Nunca"),
            ],
        ),
    ]

    story = [Paragraph("Ficha do Membro", styles["ReportTitle"])]
    for title, rows in sections:
        story.append(Paragraph(title, styles["Section"]))
        story.append(_field_table(rows))
    story.append(Spacer(1, 20))
    story.append(_footer(styles, generated_at))

    doc.build(story)
    return buffer.getvalue()


def _month_table(year: int, month: int, prayed: set[date]) -> Table:
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(year, month)
    data = [[MONTH_NAMES[month - 1]] + [""] * 6, list(WEEKDAY_HEADER)]
    commands = [
        ("SPAN", (0, 0), (-1, 0)),
        ("BACKGROUND", (0, 0), (-1, 0), ACCENT_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 7),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("GRID", (0, 1), (-1, -1), 0.25, GRID_COLOR),
        ("TOPPADDING", (0, 0), (-1, -1), 1),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
    ]
    for row_index, week in enumerate(weeks, start=2):
        data.append([str(day) if day else "" for day in week])
        for col_index, day in enumerate(week):
            if day and date(year, month, day) in prayed:
                commands.append(
                    ("BACKGROUND", (col_index, row_index), (col_index, row_index), PRAYED_COLOR)
                )
                commands.append(
                    ("TEXTCOLOR", (col_index, row_index), (col_index, row_index), colors.white)
                )
    table = Table(data, colWidths=[0.68 * cm] * 7)
    table.setStyle(TableStyle(commands))
    return table


def build_prayer_calendar(
    user: UserRecord,
    year: int,
    dates: Iterable[date],
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render a one-page calendar of ``year`` with prayed days highlighted."""
    generated_at = generated_at or datetime.now()
    prayed = {day for day in dates if day.year == year}
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        title=f"Calendário de Oração - {year}",
    )
    styles = _styles()

    months = [_month_table(year, month, prayed) for month in range(1, 13)]
    grid = Table(
        [months[row * 3 : row * 3 + 3] for row in range(4)],
        colWidths=[5.1 * cm] * 3,
    )
    grid.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ]
        )
    )

    story = [
        Paragraph(f"Calendário de Oração - {year}", styles["ReportTitle"]),
        Paragraph(f"Membro: {escape(user.name)}", styles["Normal"]),
        Paragraph(f"Célula: {escape(user.cell_name or '-')}", styles["Normal"]),
        Spacer(1, 12),
        grid,
        Spacer(1, 12),
        Paragraph(
            f"Total de dias com oração em {year}: {len(prayed)}", styles["Section"]
        ),
        Spacer(1, 12),
        _footer(styles, generated_at),
    ]
    doc.build(story)
    return buffer.getvalue()
