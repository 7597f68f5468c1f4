"""
Pydantic schemas for the monthly attendance grid and absence alerts.
"""

from pydantic import BaseModel
from typing import Literal, Optional, List, Dict

from rollcall.schemas.attendance import AttendanceStatus

Program = Literal["arena", "projeto"]


# ---- Grid ----
class GridDay(BaseModel):
    day: str
    weekday: str
    date: str


class GridCell(BaseModel):
    date: str
    status: Optional[AttendanceStatus] = None
    note: str = ""
    dirty: bool = False
    locked: bool = False
    saving: bool = False


class GridRow(BaseModel):
    student_id: str
    name: str
    class_name: str
    absences: int = 0
    cells: List[GridCell]


class GridView(BaseModel):
    program: Program
    year: int
    month: int
    class_id: Optional[str] = None
    days: List[GridDay]
    rows: List[GridRow]
    day_presence: Dict[str, int]
    pending_drafts: int = 0
    batch_in_progress: bool = False


# ---- Alerts ----
class AbsenceAlert(BaseModel):
    student_id: str
    name: str
    class_name: str
    absences: int
    critical: bool
    cycle_start: str


class InactiveStudent(BaseModel):
    student_id: str
    name: str
    deactivation_date: Optional[str] = None


class AlertsReport(BaseModel):
    threshold: int
    alerts: List[AbsenceAlert]
    inactive: List[InactiveStudent]


class DashboardStats(BaseModel):
    active_students: int
    critical_alerts: int
    classes: int
