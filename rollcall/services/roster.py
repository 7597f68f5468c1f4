"""
Read-only class/student roster used by grid views and alerts.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from rollcall.core.store import RemoteStore
from rollcall.schemas.academic import SchoolClass, Student

logger = logging.getLogger(__name__)


def _parse_rows(model, rows: list[dict]) -> list:
    parsed = []
    for row in rows:
        try:
            parsed.append(model.from_row(row))
        except (KeyError, ValidationError) as e:
            logger.warning("Skipping %s row %r: %s", model.__name__, row.get("id"), e)
    return parsed


class Roster:
    def __init__(self, classes: list[SchoolClass] = None, students: list[Student] = None):
        self._classes = list(classes or [])
        self.students = list(students or [])

    async def load(self, store: RemoteStore) -> None:
        class_rows = await store.select("classes")
        student_rows = await store.select("students")
        self._classes = _parse_rows(SchoolClass, class_rows)
        self.students = _parse_rows(Student, student_rows)
        logger.info("Roster loaded: %d classes, %d students", len(self._classes), len(self.students))

    @property
    def classes(self) -> list[SchoolClass]:
        """Classes with student_count set to their active enrollment."""
        counts: dict[str, int] = {}
        for s in self.students:
            if s.is_active and s.class_id:
                counts[s.class_id] = counts.get(s.class_id, 0) + 1
        return [c.model_copy(update={"student_count": counts.get(c.id, 0)}) for c in self._classes]

    def get_student(self, student_id: str) -> Optional[Student]:
        for s in self.students:
            if s.id == student_id:
                return s
        return None

    def class_name(self, class_id: Optional[str]) -> str:
        for c in self._classes:
            if c.id == class_id:
                return c.name
        return "S/ TURMA"

    def active_students(self, class_id: Optional[str] = None) -> list[Student]:
        students = [s for s in self.students if s.is_active]
        if class_id:
            students = [s for s in students if s.class_id == class_id]
        return sorted(students, key=lambda s: s.name.lower())
