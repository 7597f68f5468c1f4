"""
Dashboard router — monthly grid, absence alerts, period reports and headline counters.
Read-only: everything here is computed from the cache, drafts and roster.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from rollcall.context import AttendanceContext, get_context
from rollcall.core.config import settings
from rollcall.core.security import get_current_user
from rollcall.schemas.auth import Identity
from rollcall.schemas.grid import Program
from rollcall.services.alerts import absence_alerts, dashboard_stats
from rollcall.services.grid import build_grid
from rollcall.services.reports import REPORT_PERIODS, period_report
from rollcall.utils.response import success_response

router = APIRouter(prefix="/api", tags=["Dashboard"])


@router.get("/grid")
async def get_grid(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    program: Program = "arena",
    class_id: Optional[str] = None,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    grid = build_grid(ctx.engine, ctx.roster, program, year, month, class_id)
    return success_response(data=grid.model_dump(mode="json"))


@router.get("/alerts")
async def get_alerts(
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    report = absence_alerts(ctx.roster, ctx.cache, settings.ABSENCE_ALERT_THRESHOLD)
    return success_response(data=report.model_dump())


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    stats = dashboard_stats(ctx.roster, ctx.cache, settings.ABSENCE_ALERT_THRESHOLD)
    return success_response(data=stats.model_dump())


@router.get("/reports")
async def get_report(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    period: int = 1,
    ctx: AttendanceContext = Depends(get_context),
    user: Identity = Depends(get_current_user),
):
    """Per-class counts and presence trend for the period ending in year/month."""
    if period not in REPORT_PERIODS:
        raise HTTPException(status_code=422, detail=f"Period must be one of {list(REPORT_PERIODS)}")
    report = period_report(ctx.roster, ctx.cache, year, month, period)
    return success_response(data=report.model_dump())
