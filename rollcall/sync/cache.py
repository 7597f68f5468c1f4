"""
In-memory mirror of the remote `attendance` table for the current session,
indexed by (student_id, date).

Writes go through the sync engine only. Every mutation here is synchronous,
so with a single event loop no reader ever observes a half-applied change.
"""

import logging
from typing import Iterable, Mapping, Optional

from rollcall.core.dates import is_date_key, normalize_date
from rollcall.core.store import ATTENDANCE_TABLE, RemoteStore
from rollcall.schemas.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    CellKey,
    clean_note,
)

logger = logging.getLogger(__name__)


class CacheSnapshot:
    """
    Opaque rollback handle.

    A full snapshot (keys=None) restores the whole cache verbatim. A scoped
    snapshot only restores the keys it captured.
    """

    def __init__(self, entries: dict, keys: Optional[frozenset] = None):
        self._entries = entries
        self._keys = keys


def record_from_row(row: dict) -> Optional[AttendanceRecord]:
    date_key = normalize_date(row.get("attendance_date"))
    if not is_date_key(date_key):
        logger.warning("Skipping attendance row with unusable date: %r", row.get("attendance_date"))
        return None
    try:
        status = AttendanceStatus(row.get("status"))
    except ValueError:
        logger.warning("Skipping attendance row with unknown status: %r", row.get("status"))
        return None
    return AttendanceRecord(
        student_id=str(row["student_id"]),
        date=date_key,
        status=status,
        note=row.get("note") or "",
        user_id=row.get("user_id"),
    )


class AttendanceCache:
    def __init__(self, records: Iterable[AttendanceRecord] = ()):
        self._entries: dict[CellKey, AttendanceRecord] = {r.key: r for r in records}

    # ---- Loading ----
    async def load_all(self, store: RemoteStore, limit: int) -> list[AttendanceRecord]:
        # Newest first, so the ceiling drops the oldest history.
        rows = await store.select(ATTENDANCE_TABLE, order="attendance_date", desc=True, limit=limit)
        if len(rows) >= limit:
            logger.warning(
                "Attendance fetch hit the %d row ceiling; history up to %s may be incomplete",
                limit,
                normalize_date(rows[-1].get("attendance_date")),
            )

        entries = {}
        for row in rows:
            record = record_from_row(row)
            if record is not None:
                entries[record.key] = record

        self.replace(entries)
        logger.info("Attendance cache loaded with %d records", len(entries))
        return list(entries.values())

    def replace(self, entries: Mapping[CellKey, AttendanceRecord]) -> None:
        self._entries = dict(entries)

    # ---- Reads ----
    def lookup(self, student_id: str, date: str) -> Optional[AttendanceRecord]:
        return self._entries.get((student_id, date))

    def records(self) -> list[AttendanceRecord]:
        return list(self._entries.values())

    def for_student(self, student_id: str) -> list[AttendanceRecord]:
        return [r for r in self._entries.values() if r.student_id == student_id]

    def as_mapping(self) -> dict[CellKey, AttendanceRecord]:
        return dict(self._entries)

    def __len__(self):
        return len(self._entries)

    # ---- Optimistic mutation ----
    def apply_local_mutation(
        self,
        student_id: str,
        date: str,
        status: Optional[AttendanceStatus],
        note: str = "",
        user_id: Optional[str] = None,
    ) -> None:
        self._entries.pop((student_id, date), None)
        if status is None:
            return
        self._entries[(student_id, date)] = AttendanceRecord(
            student_id=student_id,
            date=date,
            status=status,
            note=clean_note(status, note),
            user_id=user_id,
        )

    # ---- Rollback ----
    def snapshot(self, keys: Optional[Iterable[CellKey]] = None) -> CacheSnapshot:
        if keys is None:
            return CacheSnapshot(dict(self._entries))
        keys = frozenset(keys)
        return CacheSnapshot({k: self._entries[k] for k in keys if k in self._entries}, keys)

    def restore(self, snapshot: CacheSnapshot) -> None:
        if snapshot._keys is None:
            self._entries = dict(snapshot._entries)
            return
        entries = dict(self._entries)
        for key in snapshot._keys:
            if key in snapshot._entries:
                entries[key] = snapshot._entries[key]
            else:
                entries.pop(key, None)
        self._entries = entries
