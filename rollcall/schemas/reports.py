"""
Pydantic schemas for the period reports (per-class counts and trends).
"""

from pydantic import BaseModel
from typing import List, Dict


class ClassCount(BaseModel):
    class_id: str
    name: str
    active_students: int


class ClassPresence(BaseModel):
    class_id: str
    name: str
    presences: int = 0
    absences: int = 0


class TrendPoint(BaseModel):
    label: str
    # class name -> presences (P or A) in the bucket
    values: Dict[str, int]


class PeriodReport(BaseModel):
    year: int
    month: int
    period: int
    start: str
    end: str
    active_by_class: List[ClassCount]
    presence_by_class: List[ClassPresence]
    trend: List[TrendPoint]
