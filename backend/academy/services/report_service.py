"""
Excel export of the legacy ledger (leads and paid rows) for one course.
"""

import io
import re
from typing import List

from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.ledger import LegacyUser

EXPORT_COLUMNS = ["S.No", "Name", "Mobile", "Email", "Course", "Receipt No", "Amount",
                  "Payment Status", "Payment Date", "Registered At"]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_filename(course: str) -> str:
    return f"{re.sub(r'[^A-Za-z0-9._-]+', '_', course) or 'course'}-users.xlsx"


async def ledger_rows_for_course(db: AsyncSession, course: str) -> List[LegacyUser]:
    result = await db.execute(
        select(LegacyUser).where(LegacyUser.course == course).order_by(LegacyUser.created_at)
    )
    return list(result.scalars().all())


def build_course_workbook(rows: List[LegacyUser]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Users"

    ws.append(EXPORT_COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    total = 0
    for index, row in enumerate(rows, start=1):
        ws.append([
            index,
            row.name,
            row.mobile,
            row.email or "",
            row.course or "",
            row.receipt_number or "",
            row.amount,
            row.payment_status or "lead",
            row.payment_date.strftime("%d/%m/%Y %H:%M") if row.payment_date else "",
            row.created_at.strftime("%d/%m/%Y %H:%M") if row.created_at else "",
        ])
        if row.payment_status == "paid" and row.amount:
            total += row.amount

    ws.append(["", "", "", "", "TOTAL", "", total, "", "", ""])
    ws.cell(row=ws.max_row, column=5).font = Font(bold=True)

    for column_cells in ws.columns:
        width = max(len(str(c.value)) if c.value is not None else 0 for c in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = min(width + 2, 40)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


async def export_course(db: AsyncSession, course: str) -> bytes:
    return build_course_workbook(await ledger_rows_for_course(db, course))
