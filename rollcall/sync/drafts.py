"""
Pending-edit layer for the attendance grid.

A draft shadows the cache value of its cell until it is committed through
the sync engine or discarded. Drafts are bound to the grid's filter context
(program, month, class): moving to another context throws them away so that
edits made for one month never leak into another.
"""

from typing import Optional

from rollcall.schemas.attendance import (
    AttendanceStatus,
    CellKey,
    CellUpdate,
    CellValue,
    DraftContext,
    clean_note,
)
from rollcall.sync.cache import AttendanceCache


class DraftOverlay:
    def __init__(self, cache: AttendanceCache):
        self.cache = cache
        self._drafts: dict[CellKey, CellValue] = {}
        self._context: Optional[DraftContext] = None

    @property
    def context(self) -> Optional[DraftContext]:
        return self._context

    def set_draft(
        self,
        student_id: str,
        date: str,
        status: Optional[AttendanceStatus],
        note: str = "",
    ) -> None:
        """Stage or replace the pending value of a cell. A None status stages a clear."""
        self._drafts[(student_id, date)] = CellValue(status=status, note=clean_note(status, note))

    def discard(self, student_id: str, date: str) -> None:
        self._drafts.pop((student_id, date), None)

    def cache_value(self, student_id: str, date: str) -> Optional[CellValue]:
        record = self.cache.lookup(student_id, date)
        if record is None:
            return None
        return CellValue(status=record.status, note=record.note)

    def effective_value(self, student_id: str, date: str) -> Optional[CellValue]:
        """Draft if present, else the cached record, else None (unmarked)."""
        draft = self._drafts.get((student_id, date))
        if draft is None:
            return self.cache_value(student_id, date)
        if draft.status is None:
            return None
        return draft

    def is_dirty(self, student_id: str, date: str) -> bool:
        return (student_id, date) in self._drafts

    def pending_count(self) -> int:
        return len(self._drafts)

    def pending(self, diff_only: bool = False) -> list[CellUpdate]:
        """
        Staged edits as CellUpdates, in staging order.

        With diff_only, drafts whose value already matches the cache are
        left out.
        """
        updates = []
        for (student_id, date), value in self._drafts.items():
            if diff_only:
                current = self.cache_value(student_id, date)
                if current == value or (current is None and value.status is None):
                    continue
            updates.append(
                CellUpdate(student_id=student_id, date=date, status=value.status, note=value.note)
            )
        return updates

    def clear(self) -> None:
        self._drafts.clear()

    def staged(self) -> dict[CellKey, CellValue]:
        return dict(self._drafts)

    def discard_committed(self, committed: dict[CellKey, CellValue]) -> None:
        """Drop drafts still holding the committed value; later edits stay pending."""
        for key, value in committed.items():
            if self._drafts.get(key) == value:
                del self._drafts[key]

    def bind_context(self, context: DraftContext) -> bool:
        """Switch filter context. Returns True when pending drafts were dropped."""
        changed = self._context is not None and context != self._context
        self._context = context
        if changed and self._drafts:
            self.clear()
            return True
        return False
