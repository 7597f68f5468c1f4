"""
Attendance router — cache reads, single-cell and batch sync, mark-all, toggle.
Every write goes through the sync engine; the caller's identity is the author.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from rollcall.context import AttendanceContext, get_context
from rollcall.core.dates import to_date_key
from rollcall.core.security import get_current_user
from rollcall.schemas.attendance import BatchUpdate, CellUpdate, MarkAllRequest
from rollcall.schemas.auth import Identity
from rollcall.services.grid import is_locked, mark_all_updates
from rollcall.sync.cycle import toggle_cell
from rollcall.utils.response import success_response, sync_response

router = APIRouter(prefix="/api/attendance", tags=["Attendance"])


class ToggleRequest(BaseModel):
    student_id: str
    date: str
    # Justification for entering J; None cancels that step.
    note: Optional[str] = None
    draft: bool = False


def _cell_payload(ctx: AttendanceContext, student_id: str, date: str) -> dict:
    value = ctx.drafts.effective_value(student_id, date)
    return {
        "student_id": student_id,
        "date": date,
        "status": value.status if value else None,
        "note": value.note if value else "",
        "dirty": ctx.drafts.is_dirty(student_id, date),
        "saving": ctx.engine.is_in_flight(student_id, date),
    }


@router.get("")
async def list_attendance(
    student_id: Optional[str] = None,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    records = ctx.cache.for_student(student_id) if student_id else ctx.cache.records()
    records.sort(key=lambda r: (r.date, r.student_id))
    return success_response(data=[r.model_dump(mode="json") for r in records])


@router.post("/refresh")
async def refresh_attendance(
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    await ctx.refresh()
    return success_response(
        data={"records": len(ctx.cache), "students": len(ctx.roster.students)},
        message="Data reloaded",
    )


@router.get("/cell")
async def get_cell(
    student_id: str,
    date: str,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    return success_response(data=_cell_payload(ctx, student_id, to_date_key(date)))


@router.put("/cell")
async def sync_cell(
    body: CellUpdate,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    outcome = await ctx.engine.sync_one(
        body.student_id, body.date, body.status, body.note, identity=user
    )
    return sync_response(outcome)


@router.post("/batch")
async def sync_batch(
    body: BatchUpdate,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    outcome = await ctx.engine.sync_batch(body.updates, identity=user)
    return sync_response(outcome)


@router.post("/mark-all")
async def mark_all(
    body: MarkAllRequest,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    """Mark every eligible student of the (optional) class on one date."""
    date = to_date_key(body.date)
    updates = mark_all_updates(ctx.roster, date, body.status, body.class_id)
    outcome = await ctx.engine.sync_batch(updates, identity=user)
    return sync_response(outcome)


@router.post("/toggle")
async def toggle(
    body: ToggleRequest,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    """Advance a cell one step through the status cycle."""
    date = to_date_key(body.date)
    student = ctx.roster.get_student(body.student_id)
    locked = student is not None and is_locked(student, date)
    prompted = []

    async def prompt(current_note: str) -> Optional[str]:
        prompted.append(current_note)
        return body.note

    await toggle_cell(
        ctx.engine,
        body.student_id,
        date,
        prompt=prompt,
        locked=locked,
        draft=body.draft,
        identity=user,
    )
    data = _cell_payload(ctx, body.student_id, date)
    data["locked"] = locked
    data["justification_required"] = bool(prompted) and body.note is None
    return success_response(data=data)
