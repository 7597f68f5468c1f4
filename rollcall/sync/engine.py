"""
Sync engine — optimistic attendance writes reconciled against the remote store.

Flow for every write:
1. Resolve the author (no identity, no write).
2. Normalize dates, take the cell/grid lock.
3. Snapshot the cache and apply the change locally, so readers see it at once.
4. Run the remote effect: deletes first, then one upsert keyed on
   (student_id, attendance_date).
5. On any failure restore the snapshot and raise RemoteWriteFailure.
   On success the optimistic state is kept as the committed state.

Confirmed writes are remembered for RECENT_WRITE_WINDOW_SECONDS and laid
over any reload inside that window, so a lagging read replica can not make
freshly saved cells disappear.
"""

import asyncio
import logging
import time
from collections import defaultdict
from typing import Callable, Iterable, Mapping, Optional, Union

from pydantic import BaseModel

from rollcall.core.dates import to_date_key
from rollcall.core.errors import Busy, RemoteStoreError, RemoteWriteFailure
from rollcall.core.store import ATTENDANCE_CONFLICT_TARGET, ATTENDANCE_TABLE, RemoteStore
from rollcall.schemas.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    CellKey,
    CellUpdate,
    DraftContext,
    SyncOutcome,
    clean_note,
)
from rollcall.schemas.auth import Identity
from rollcall.sync.cache import AttendanceCache
from rollcall.sync.drafts import DraftOverlay
from rollcall.sync.identity import IdentityResolver

logger = logging.getLogger(__name__)

StatusInput = Union[AttendanceStatus, str, None]


class RemoteEffect(BaseModel):
    # attendance_date -> student ids to delete on that date
    deletes: dict[str, list[str]] = {}
    upserts: list[dict] = []

    @property
    def is_empty(self) -> bool:
        return not self.deletes and not self.upserts

    @property
    def delete_count(self) -> int:
        return sum(len(ids) for ids in self.deletes.values())


def coerce_status(status: StatusInput) -> Optional[AttendanceStatus]:
    if status is None or status == "":
        return None
    return AttendanceStatus(status)


def plan_mutations(
    current: Mapping[CellKey, AttendanceRecord],
    updates: Iterable[CellUpdate],
    user_id: str,
) -> tuple[dict[CellKey, AttendanceRecord], RemoteEffect]:
    """
    Pure planner: next cache state plus the remote writes that produce it.

    Updates must already carry normalized dates. A key that appears more
    than once keeps its last update.
    """
    latest: dict[CellKey, CellUpdate] = {}
    for u in updates:
        latest.pop(u.key, None)
        latest[u.key] = u

    next_state = dict(current)
    deletes: dict[str, list[str]] = defaultdict(list)
    upserts = []
    for key, u in latest.items():
        next_state.pop(key, None)
        if u.status is None:
            deletes[u.date].append(u.student_id)
            continue
        record = AttendanceRecord(
            student_id=u.student_id,
            date=u.date,
            status=u.status,
            note=u.note,
            user_id=user_id,
        )
        next_state[key] = record
        upserts.append(record.to_row())

    return next_state, RemoteEffect(deletes=dict(deletes), upserts=upserts)


def _failure_reason(exc: BaseException) -> Optional[str]:
    return getattr(exc, "message", None) or str(exc) or None


class SyncEngine:
    def __init__(
        self,
        store: RemoteStore,
        cache: AttendanceCache,
        drafts: DraftOverlay,
        identity: Optional[IdentityResolver] = None,
        fetch_limit: int = 10000,
        refresh_after_batch: bool = False,
        recent_write_window: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.cache = cache
        self.drafts = drafts
        self.identity = identity or IdentityResolver(store)
        self.fetch_limit = fetch_limit
        self.refresh_after_batch = refresh_after_batch
        self.recent_write_window = recent_write_window
        self._clock = clock

        self._in_flight: set[CellKey] = set()
        self._batch_in_progress = False
        self._recent_writes: dict[CellKey, tuple[Optional[AttendanceRecord], float]] = {}

    # ---- Guards ----
    @property
    def batch_in_progress(self) -> bool:
        return self._batch_in_progress

    def is_in_flight(self, student_id: str, date: str) -> bool:
        return self._batch_in_progress or (student_id, date) in self._in_flight

    def _lock_grid(self) -> None:
        if self._batch_in_progress or self._in_flight:
            raise Busy()
        self._batch_in_progress = True

    def _ensure_grid_free(self) -> None:
        if self._batch_in_progress:
            raise Busy()

    # ---- Reload ----
    async def refresh(self) -> list[AttendanceRecord]:
        """Reload the whole cache from the store (explicit, user-triggered)."""
        self._lock_grid()
        try:
            await self.cache.load_all(self.store, self.fetch_limit)
            self._merge_recent_writes()
        finally:
            self._batch_in_progress = False
        return self.cache.records()

    def _remember(self, key: CellKey, record: Optional[AttendanceRecord]) -> None:
        self._recent_writes[key] = (record, self._clock())

    def _merge_recent_writes(self) -> None:
        cutoff = self._clock() - self.recent_write_window
        expired = [k for k, (_, at) in self._recent_writes.items() if at < cutoff]
        for key in expired:
            del self._recent_writes[key]

        for (student_id, date), (record, _) in self._recent_writes.items():
            if record is None:
                self.cache.apply_local_mutation(student_id, date, None)
            else:
                self.cache.apply_local_mutation(
                    student_id, date, record.status, record.note, record.user_id
                )
        if self._recent_writes:
            logger.debug("Re-applied %d recent writes over reload", len(self._recent_writes))

    # ---- Single cell ----
    async def sync_one(
        self,
        student_id: str,
        date,
        status: StatusInput,
        note: str = "",
        identity: Optional[Identity] = None,
    ) -> SyncOutcome:
        user = await self.identity.resolve(identity)
        date = to_date_key(date)
        status = coerce_status(status)
        note = clean_note(status, note)
        key = (student_id, date)

        self._ensure_grid_free()
        if key in self._in_flight:
            raise Busy()
        self._in_flight.add(key)
        try:
            snapshot = self.cache.snapshot([key])
            self.cache.apply_local_mutation(student_id, date, status, note, user.user_id)
            try:
                if status is None:
                    await self.store.delete(
                        ATTENDANCE_TABLE, {"student_id": student_id, "attendance_date": date}
                    )
                else:
                    record = self.cache.lookup(student_id, date)
                    await self.store.upsert(
                        ATTENDANCE_TABLE, [record.to_row()], on_conflict=ATTENDANCE_CONFLICT_TARGET
                    )
            except asyncio.CancelledError:
                self.cache.restore(snapshot)
                raise
            except Exception as e:
                self.cache.restore(snapshot)
                logger.error("Attendance sync failed for %s on %s: %s", student_id, date, e)
                raise RemoteWriteFailure(_failure_reason(e)) from e

            self._remember(key, self.cache.lookup(student_id, date))
        finally:
            self._in_flight.discard(key)

        if status is None:
            return SyncOutcome(deleted=1)
        return SyncOutcome(upserted=1)

    # ---- Batch ----
    def normalize_updates(self, updates: Iterable[CellUpdate]) -> list[CellUpdate]:
        normalized = []
        for u in updates:
            key = to_date_key(u.date)
            normalized.append(u if key == u.date else u.model_copy(update={"date": key}))
        return normalized

    async def sync_batch(
        self,
        updates: Iterable[CellUpdate],
        identity: Optional[Identity] = None,
    ) -> SyncOutcome:
        updates = list(updates)
        if not updates:
            return SyncOutcome(noop=True)

        user = await self.identity.resolve(identity)
        updates = self.normalize_updates(updates)

        self._lock_grid()
        try:
            next_state, effect = plan_mutations(self.cache.as_mapping(), updates, user.user_id)
            snapshot = self.cache.snapshot()
            self.cache.replace(next_state)
            try:
                await self._run_effect(effect)
            except asyncio.CancelledError:
                self.cache.restore(snapshot)
                raise
            except Exception as e:
                self.cache.restore(snapshot)
                logger.error("Batch attendance sync of %d cells failed: %s", len(updates), e)
                raise RemoteWriteFailure(_failure_reason(e), batch=True) from e

            for date, student_ids in effect.deletes.items():
                for student_id in student_ids:
                    self._remember((student_id, date), None)
            for row in effect.upserts:
                key = (row["student_id"], row["attendance_date"])
                self._remember(key, next_state[key])
        finally:
            self._batch_in_progress = False

        logger.info(
            "Batch attendance sync: %d upserted, %d deleted", len(effect.upserts), effect.delete_count
        )
        outcome = SyncOutcome(upserted=len(effect.upserts), deleted=effect.delete_count)
        if self.refresh_after_batch:
            try:
                await self.refresh()
                outcome.refreshed = True
            except (RemoteStoreError, Busy) as e:
                logger.warning("Reload after batch failed, keeping optimistic state: %s", e)
        return outcome

    async def _run_effect(self, effect: RemoteEffect) -> None:
        for date, student_ids in effect.deletes.items():
            await self.store.delete(
                ATTENDANCE_TABLE, {"attendance_date": date, "student_id": student_ids}
            )
        if effect.upserts:
            await self.store.upsert(
                ATTENDANCE_TABLE, effect.upserts, on_conflict=ATTENDANCE_CONFLICT_TARGET
            )

    # ---- Drafts ----
    def set_draft(self, student_id: str, date, status: StatusInput, note: str = "") -> str:
        self._ensure_grid_free()
        date = to_date_key(date)
        self.drafts.set_draft(student_id, date, coerce_status(status), note)
        return date

    def discard_draft(self, student_id: str, date) -> None:
        self._ensure_grid_free()
        self.drafts.discard(student_id, to_date_key(date))

    def clear_drafts(self) -> None:
        self._ensure_grid_free()
        self.drafts.clear()

    def bind_context(self, context: DraftContext) -> bool:
        self._ensure_grid_free()
        return self.drafts.bind_context(context)

    async def commit_drafts(self, identity: Optional[Identity] = None) -> SyncOutcome:
        """
        Send every draft that differs from the cache as one batch, then drop
        the committed drafts. Drafts staged while the batch was in flight stay
        pending.
        """
        committed = self.drafts.staged()
        updates = self.drafts.pending(diff_only=True)
        if not updates:
            self.clear_drafts()
            return SyncOutcome(noop=True)
        outcome = await self.sync_batch(updates, identity)
        self.drafts.discard_committed(committed)
        return outcome
