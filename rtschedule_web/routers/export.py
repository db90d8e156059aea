"""Export a cycle to Excel: rows = therapists, cols = cycle dates."""
import io

import openpyxl
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from rtschedule.dates import build_date_range
from rtschedule.models import SHIFT_TYPES, counts_toward_coverage

from .. import store
from ..database import get_db
from ..models import Shift, Therapist

router = APIRouter()

STATUS_CODES = {"on_call": "OC", "sick": "S", "called_off": "OFF"}
SHIFT_CODES = {"day": "D", "night": "N"}

COLORS = {
    "D": "FFFEF08A",
    "N": "FF93C5FD",
    "OC": "FFE2E8F0",
    "S": "FFFCA5A5",
    "OFF": "FFFCA5A5",
}


def cell_code(shift: Shift) -> str:
    """D/N for working shifts (L suffix for the designated lead), status code otherwise."""
    if shift.status in STATUS_CODES:
        return STATUS_CODES[shift.status]
    code = SHIFT_CODES.get(shift.shift_type, "?")
    return code + "L" if shift.role == "lead" else code


def build_cycle_workbook(cycle, therapists, shifts) -> openpyxl.Workbook:
    dates = build_date_range(cycle.start_date, cycle.end_date)
    col_for = {d: i + 3 for i, d in enumerate(dates)}
    by_user = {}
    for s in shifts:
        by_user.setdefault(s.user_id, []).append(s)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = (cycle.label or "Schedule")[:31]

    thin_side = Side(border_style="thin", color="cbd5e1")
    center = Alignment(horizontal="center", vertical="center")
    bold_font = Font(bold=True, size=11, name="Arial")
    header_fill = PatternFill(start_color="F8FAFC", end_color="F8FAFC", fill_type="solid")

    ws.cell(1, 1, "Therapist")
    ws.cell(1, 2, "Shift")
    for d, col in col_for.items():
        ws.cell(1, col, d.strftime("%a %m/%d"))
    total_col = len(dates) + 3
    ws.cell(1, total_col, "Worked")
    for col in range(1, total_col + 1):
        c = ws.cell(1, col)
        c.font = bold_font
        c.alignment = center
        c.fill = header_fill
        c.border = Border(bottom=thin_side, right=thin_side)

    row_idx = 2
    for t in therapists:
        ws.cell(row_idx, 1, t.full_name).font = Font(bold=True)
        ws.cell(row_idx, 2, t.shift_type).alignment = center
        worked = 0
        for s in by_user.get(t.id, []):
            col = col_for.get(s.date)
            if col is None:
                continue
            code = cell_code(s)
            cell = ws.cell(row_idx, col, code)
            cell.alignment = center
            if s.role == "lead":
                cell.font = Font(bold=True)
            color = COLORS.get(code.rstrip("L"))
            if color:
                cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            if counts_toward_coverage(s.status):
                worked += 1
        ws.cell(row_idx, total_col, worked).alignment = center
        for col in range(1, total_col + 1):
            ws.cell(row_idx, col).border = Border(bottom=thin_side, right=thin_side)
        row_idx += 1

    # Coverage footer per shift type
    for shift_type in SHIFT_TYPES:
        ws.cell(row_idx, 1, f"{shift_type.title()} coverage").font = bold_font
        for d, col in col_for.items():
            n = sum(1 for s in shifts
                    if s.date == d and s.shift_type == shift_type and counts_toward_coverage(s.status))
            ws.cell(row_idx, col, n).alignment = center
        row_idx += 1

    ws.freeze_panes = "C2"
    ws.column_dimensions["A"].width = 25
    ws.column_dimensions["B"].width = 8
    for col in col_for.values():
        ws.column_dimensions[get_column_letter(col)].width = 9
    return wb


@router.get("/cycle/{cycle_id}.xlsx")
def export_cycle(cycle_id: int, db: Session = Depends(get_db)):
    cycle = store.get_cycle(db, cycle_id)
    therapists = db.query(Therapist).order_by(Therapist.full_name).all()
    shifts = db.query(Shift).filter(Shift.cycle_id == cycle_id).all()
    wb = build_cycle_workbook(cycle, therapists, shifts)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    filename = f"schedule_cycle_{cycle.id}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
