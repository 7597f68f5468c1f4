"""
Pydantic schemas for attendance records, cell edits and sync outcomes.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, model_validator
from typing import Optional, List, Tuple

CellKey = Tuple[str, str]


class AttendanceStatus(str, Enum):
    PRESENT = "P"
    ABSENT = "F"
    EXCUSED_PRESENT = "A"
    JUSTIFIED = "J"


PRESENT_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.EXCUSED_PRESENT)
ABSENT_STATUSES = (AttendanceStatus.ABSENT, AttendanceStatus.JUSTIFIED)


def clean_note(status: Optional[AttendanceStatus], note: Optional[str]) -> str:
    # Only a justified absence carries a note.
    if status != AttendanceStatus.JUSTIFIED:
        return ""
    return (note or "").strip()


# ---- Records ----
class AttendanceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: str
    date: str
    status: AttendanceStatus
    note: str = ""
    user_id: Optional[str] = None

    @property
    def key(self) -> CellKey:
        return (self.student_id, self.date)

    def to_row(self) -> dict:
        return {
            "student_id": self.student_id,
            "attendance_date": self.date,
            "status": self.status.value,
            "note": self.note or "",
            "user_id": self.user_id,
        }


class CellValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Optional[AttendanceStatus] = None
    note: str = ""


# ---- Edits ----
class CellUpdate(BaseModel):
    student_id: str
    date: str
    status: Optional[AttendanceStatus] = None
    note: str = ""

    @model_validator(mode="after")
    def _drop_stray_note(self):
        self.note = clean_note(self.status, self.note)
        return self

    @property
    def key(self) -> CellKey:
        return (self.student_id, self.date)


class BatchUpdate(BaseModel):
    updates: List[CellUpdate]


class MarkAllRequest(BaseModel):
    date: str
    status: Optional[AttendanceStatus] = None
    class_id: Optional[str] = None


class DraftContext(BaseModel):
    program: str = "arena"
    year: int
    month: int
    class_id: Optional[str] = None


# ---- Outcomes ----
class SyncOutcome(BaseModel):
    """Result of a sync call. Failures are raised, never returned."""

    committed: bool = True
    noop: bool = False
    upserted: int = 0
    deleted: int = 0
    refreshed: bool = False
