"""
Drafts router — pending grid edits that are committed as one batch.
"""

from fastapi import APIRouter, Depends

from rollcall.context import AttendanceContext, get_context
from rollcall.core.security import get_current_user
from rollcall.schemas.attendance import CellUpdate, DraftContext
from rollcall.schemas.auth import Identity
from rollcall.utils.response import success_response, sync_response

router = APIRouter(prefix="/api/drafts", tags=["Drafts"])


@router.get("")
async def get_drafts(
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    context = ctx.drafts.context
    return success_response(data={
        "pending_count": ctx.drafts.pending_count(),
        "context": context.model_dump() if context else None,
        "pending": [u.model_dump(mode="json") for u in ctx.drafts.pending()],
    })


@router.put("/cell")
async def set_draft(
    body: CellUpdate,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    date = ctx.engine.set_draft(body.student_id, body.date, body.status, body.note)
    return success_response(
        data={"date": date, "pending_count": ctx.drafts.pending_count()},
        message="Draft saved",
    )


@router.delete("/cell")
async def discard_draft(
    student_id: str,
    date: str,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    ctx.engine.discard_draft(student_id, date)
    return success_response(data={"pending_count": ctx.drafts.pending_count()})


@router.delete("")
async def clear_drafts(
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    ctx.engine.clear_drafts()
    return success_response(data={"pending_count": 0}, message="Drafts discarded")


@router.post("/context")
async def bind_context(
    body: DraftContext,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    """Tell the overlay which month/class the grid shows; a change drops pending drafts."""
    reset = ctx.engine.bind_context(body)
    return success_response(data={"reset": reset, "pending_count": ctx.drafts.pending_count()})


@router.post("/commit")
async def commit_drafts(
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    outcome = await ctx.engine.commit_drafts(identity=user)
    return sync_response(outcome)
