"""
Render asset report rows to PDF (reportlab) or XLSX (openpyxl).
"""
import io
from datetime import datetime
from typing import Iterable, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models.models import Asset


COLUMNS = ("Name", "Category", "Condition", "Owner", "QR Code", "Archived", "Created")


def _row(asset: Asset) -> List[str]:
    created = asset.created_at.strftime("%Y-%m-%d") if asset.created_at else ""
    return [
        asset.name,
        asset.category,
        asset.condition,
        asset.owner or "Unassigned",
        asset.qr_code,
        "Yes" if asset.is_archived else "No",
        created,
    ]


def rows_for(assets: Iterable[Asset]) -> List[List[str]]:
    return [_row(a) for a in assets]


def render_pdf(title: str, rows: Sequence[Sequence[str]], generated_at: datetime) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=12 * mm,
        rightMargin=12 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title=title,
    )
    styles = getSampleStyleSheet()
    story = [
        Paragraph(title, styles["Title"]),
        Paragraph(f"Generated {generated_at.strftime('%Y-%m-%d %H:%M UTC')} - {len(rows)} assets", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]
    table = Table([list(COLUMNS)] + [list(r) for r in rows], repeatRows=1)
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#d62c1a")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f4f4f4")]),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(table)
    doc.build(story)
    return buf.getvalue()


def render_xlsx(title: str, rows: Sequence[Sequence[str]], generated_at: datetime) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Assets"
    ws.append([title])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append([f"Generated {generated_at.strftime('%Y-%m-%d %H:%M UTC')}"])
    ws.append([])
    ws.append(list(COLUMNS))
    for cell in ws[4]:
        cell.font = Font(bold=True)
    for r in rows:
        ws.append(list(r))
    for idx, width in enumerate((30, 14, 14, 24, 44, 10, 12), start=1):
        ws.column_dimensions[ws.cell(row=4, column=idx).column_letter].width = width
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
