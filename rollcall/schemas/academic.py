"""
Pydantic schemas for the class/student roster read by attendance views.
"""

from pydantic import BaseModel
from typing import Literal, Optional

from rollcall.core.dates import normalize_date


# ---- Class ----
class SchoolClass(BaseModel):
    id: str
    name: str
    category: str = ""
    start_time: str = ""
    end_time: str = ""
    day: str = ""
    capacity: int = 25
    student_count: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "SchoolClass":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            category=row.get("category") or "",
            start_time=row.get("start_time") or "",
            end_time=row.get("end_time") or "",
            day=row.get("day") or "",
            capacity=row.get("capacity") or 25,
        )


# ---- Student ----
class Student(BaseModel):
    id: str
    name: str
    class_id: Optional[str] = None
    birth_date: Optional[str] = None
    registration_date: str = ""
    deactivation_date: Optional[str] = None
    status: Literal["ativo", "inativo"] = "ativo"

    @property
    def is_active(self) -> bool:
        return self.status == "ativo"

    @classmethod
    def from_row(cls, row: dict) -> "Student":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            class_id=str(row["class_id"]) if row.get("class_id") is not None else None,
            birth_date=normalize_date(row.get("birth_date")) or None,
            registration_date=normalize_date(row.get("registration_date")),
            deactivation_date=normalize_date(row.get("deactivation_date")) or None,
            status=row.get("status") or "ativo",
        )
