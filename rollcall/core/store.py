"""
Remote store port — the request/response data API of the BaaS.

The sync engine only ever talks to this interface. SupabaseStore is the
production adapter; tests inject an in-memory implementation.

Filters are plain dicts: a scalar value is an equality filter, a list,
tuple or set value is an `in` filter.
"""

import logging
from typing import Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from rollcall.core.config import settings
from rollcall.core.errors import RemoteStoreError
from rollcall.schemas.auth import Identity

logger = logging.getLogger(__name__)

ATTENDANCE_TABLE = "attendance"
ATTENDANCE_CONFLICT_TARGET = "student_id,attendance_date"


class RemoteStore(Protocol):
    async def select(
        self,
        table: str,
        filters: Optional[dict] = None,
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]: ...

    async def insert(self, table: str, rows: list[dict]) -> list[dict]: ...

    async def update(self, table: str, patch: dict, filters: dict) -> list[dict]: ...

    async def delete(self, table: str, filters: dict) -> list[dict]: ...

    async def upsert(self, table: str, rows: list[dict], on_conflict: str) -> list[dict]: ...

    async def get_session(self) -> Optional[Identity]: ...

    async def get_user(self, token: str) -> Optional[Identity]: ...


def _apply_filters(query, filters: Optional[dict]):
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            query = query.in_(column, list(value))
        else:
            query = query.eq(column, value)
    return query


class SupabaseStore:
    """RemoteStore backed by the async supabase-py client."""

    def __init__(self, client: AsyncClient, page_size: int = settings.SUPABASE_PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    async def _execute(self, query, action: str, table: str) -> list[dict]:
        try:
            result = await query.execute()
        except APIError as e:
            logger.warning("Supabase %s on %s failed: %s", action, table, e.message)
            raise RemoteStoreError(e.message or str(e), code=e.code) from e
        except httpx.HTTPError as e:
            logger.warning("Supabase %s on %s failed: %s", action, table, e)
            raise RemoteStoreError(str(e) or type(e).__name__) from e
        return result.data or []

    async def select(self, table, filters=None, order=None, desc=False, limit=None):
        """
        Select rows page by page with range().

        The server silently caps a single response at its max-rows setting,
        so a plain limit above that cap would truncate without notice.
        """
        rows = []
        while limit is None or len(rows) < limit:
            start = len(rows)
            size = self.page_size if limit is None else min(self.page_size, limit - start)
            query = _apply_filters(self.client.table(table).select("*"), filters)
            if order:
                query = query.order(order, desc=desc)
            page = await self._execute(query.range(start, start + size - 1), "select", table)
            rows.extend(page)
            if len(page) < size:
                break
        return rows

    async def insert(self, table, rows):
        return await self._execute(self.client.table(table).insert(rows), "insert", table)

    async def update(self, table, patch, filters):
        query = _apply_filters(self.client.table(table).update(patch), filters)
        return await self._execute(query, "update", table)

    async def delete(self, table, filters):
        query = _apply_filters(self.client.table(table).delete(), filters)
        return await self._execute(query, "delete", table)

    async def upsert(self, table, rows, on_conflict):
        query = self.client.table(table).upsert(rows, on_conflict=on_conflict)
        return await self._execute(query, "upsert", table)

    async def get_session(self) -> Optional[Identity]:
        session = await self.client.auth.get_session()
        if not session or not session.user:
            return None
        return Identity(user_id=session.user.id, email=session.user.email or "")

    async def get_user(self, token: str) -> Optional[Identity]:
        try:
            response = await self.client.auth.get_user(token)
        except Exception as e:
            logger.info("Token rejected by Supabase auth: %s", e)
            return None
        if not response or not response.user:
            return None
        return Identity(user_id=response.user.id, email=response.user.email or "")
