"""
AttendanceContext — the per-application bundle of attendance state.

Built once in the FastAPI lifespan and kept on app.state; routers reach it
through the get_context dependency. Tests build their own with a fake
store.
"""

import asyncio
import logging

from fastapi import Request

from rollcall.core.config import settings
from rollcall.core.store import RemoteStore
from rollcall.services.roster import Roster
from rollcall.sync.cache import AttendanceCache
from rollcall.sync.drafts import DraftOverlay
from rollcall.sync.engine import SyncEngine

logger = logging.getLogger(__name__)


class AttendanceContext:
    def __init__(self, store: RemoteStore, **engine_options):
        self.store = store
        self.cache = AttendanceCache()
        self.drafts = DraftOverlay(self.cache)
        self.roster = Roster()
        options = {
            "fetch_limit": settings.ATTENDANCE_FETCH_LIMIT,
            "refresh_after_batch": settings.REFRESH_AFTER_BATCH,
            "recent_write_window": settings.RECENT_WRITE_WINDOW_SECONDS,
        }
        options.update(engine_options)
        self.engine = SyncEngine(store, self.cache, self.drafts, **options)

    async def refresh(self) -> None:
        """Reload roster and attendance together."""
        # Both loads run to completion before an error surfaces.
        results = await asyncio.gather(
            self.roster.load(self.store), self.engine.refresh(), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result


def get_context(request: Request) -> AttendanceContext:
    return request.app.state.attendance
