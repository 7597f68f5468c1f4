"""
Monthly attendance grid: which days a program meets, the per-cell effective
values (drafts over cache), lock flags, per-student absences and per-day
presence counts.
"""

import calendar
from datetime import date as date_cls
from typing import Optional

from rollcall.schemas.academic import Student
from rollcall.schemas.attendance import (
    ABSENT_STATUSES,
    PRESENT_STATUSES,
    AttendanceStatus,
    CellUpdate,
)
from rollcall.schemas.grid import GridCell, GridDay, GridRow, GridView, Program
from rollcall.services.roster import Roster
from rollcall.sync.engine import SyncEngine

# date.weekday(): Monday == 0
PROGRAM_WEEKDAYS = {
    "arena": (5,),
    "projeto": (1, 4, 5),
}

WEEK_DAYS_SHORT = ["SEG", "TER", "QUA", "QUI", "SEX", "SÁB", "DOM"]


def attendance_days(year: int, month: int, program: Program) -> list[GridDay]:
    if program not in PROGRAM_WEEKDAYS:
        raise ValueError(f"Unknown program: {program}")
    allowed = PROGRAM_WEEKDAYS[program]
    _, last_day = calendar.monthrange(year, month)

    days = []
    for day in range(1, last_day + 1):
        d = date_cls(year, month, day)
        if d.weekday() in allowed:
            days.append(GridDay(day=f"{day:02d}", weekday=WEEK_DAYS_SHORT[d.weekday()], date=d.isoformat()))
    return days


def is_locked(student: Student, date: str) -> bool:
    """Cells before the student's (re)registration date are read-only."""
    return bool(student.registration_date) and date < student.registration_date


def build_grid(
    engine: SyncEngine,
    roster: Roster,
    program: Program,
    year: int,
    month: int,
    class_id: Optional[str] = None,
) -> GridView:
    days = attendance_days(year, month, program)
    students = roster.active_students(class_id)
    drafts = engine.drafts

    rows = []
    day_presence = {d.date: 0 for d in days}
    for student in students:
        cells = []
        absences = 0
        for day in days:
            value = drafts.effective_value(student.id, day.date)
            status = value.status if value else None
            if status in ABSENT_STATUSES:
                absences += 1
            elif status in PRESENT_STATUSES:
                day_presence[day.date] += 1
            cells.append(
                GridCell(
                    date=day.date,
                    status=status,
                    note=value.note if value else "",
                    dirty=drafts.is_dirty(student.id, day.date),
                    locked=is_locked(student, day.date),
                    saving=engine.is_in_flight(student.id, day.date),
                )
            )
        rows.append(
            GridRow(
                student_id=student.id,
                name=student.name,
                class_name=roster.class_name(student.class_id),
                absences=absences,
                cells=cells,
            )
        )

    return GridView(
        program=program,
        year=year,
        month=month,
        class_id=class_id,
        days=days,
        rows=rows,
        day_presence=day_presence,
        pending_drafts=drafts.pending_count(),
        batch_in_progress=engine.batch_in_progress,
    )


def mark_all_updates(
    roster: Roster,
    date: str,
    status: Optional[AttendanceStatus],
    class_id: Optional[str] = None,
) -> list[CellUpdate]:
    """One update per active student (in the class filter) registered on or before `date`."""
    return [
        CellUpdate(student_id=s.id, date=date, status=status)
        for s in roster.active_students(class_id)
        if not is_locked(s, date)
    ]
