"""
Rollcall — attendance sync service for the Tsunami sports program.
FastAPI entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rollcall.context import AttendanceContext
from rollcall.core.config import settings
from rollcall.core.database import get_supabase
from rollcall.core.errors import RemoteReadFailure, RemoteStoreError, SyncError
from rollcall.core.store import SupabaseStore
from rollcall.routers import attendance, dashboard, drafts
from rollcall.utils.response import error_response

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(context: Optional[AttendanceContext] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if context is not None:
            app.state.attendance = context
        else:
            client = await get_supabase()
            app.state.attendance = AttendanceContext(SupabaseStore(client))
            try:
                await app.state.attendance.refresh()
            except RemoteStoreError as e:
                logger.error("Initial load from Supabase failed. Check SUPABASE_URL and keys.")
                raise RuntimeError("Supabase connection failed.") from e
        yield

    app = FastAPI(
        title=settings.APP_NAME,
        description="Optimistic attendance sync over Supabase",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(SyncError)
    async def sync_error_handler(request: Request, exc: SyncError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(message=exc.user_message),
        )

    @app.exception_handler(RemoteStoreError)
    async def remote_store_error_handler(request: Request, exc: RemoteStoreError):
        return await sync_error_handler(request, RemoteReadFailure(exc.message))

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(attendance.router)
    app.include_router(drafts.router)
    app.include_router(dashboard.router)

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": "1.0.0",
            "status": "running",
            "auth_mode": settings.AUTH_MODE,
        }

    @app.get("/api/health")
    async def health(request: Request):
        ctx = request.app.state.attendance
        return {
            "status": "healthy",
            "auth_mode": settings.AUTH_MODE,
            "records": len(ctx.cache),
            "batch_in_progress": ctx.engine.batch_in_progress,
        }

    return app


app = create_app()
