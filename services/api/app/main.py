from __future__ import annotations

import sqlalchemy as sa
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.api.app import observability
from services.api.app.db import ENGINE, get_session
from services.api.app.errors import ConflictError, InvalidRequestError, NotFoundError
from services.api.app.logging import add_request_context, configure_logging, logger
from services.api.app.routes import (
    admin,
    comments,
    dependencies,
    email_templates,
    gantt,
    inboxes,
    labels,
    organizations,
    projects,
    sprints,
    tasks,
    time_entries,
    users,
    watchers,
    workflows,
    workspaces,
)
from services.api.app.settings import SETTINGS


app = FastAPI(title="TaskPilot API", version="0.1.0")
configure_logging(SETTINGS.log_level)
add_request_context(app)
observability.setup_tracing(app, service_name="api")
observability.add_metrics_middleware(app, service_name="api")
observability.instrument_sqlalchemy(ENGINE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (
    users,
    organizations,
    workspaces,
    workflows,
    projects,
    sprints,
    tasks,
    comments,
    labels,
    dependencies,
    watchers,
    time_entries,
    inboxes,
    gantt,
    email_templates,
    admin,
):
    app.include_router(module.router)


@app.exception_handler(NotFoundError)
async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(InvalidRequestError)
async def invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    # Unique / FK races that slipped past the pre-insert checks.
    logger.warning("integrity_error", error=str(exc.orig))
    return JSONResponse(status_code=409, content={"detail": "conflicts with existing data"})


@app.get("/healthz")
async def healthz(session: AsyncSession = Depends(get_session)) -> dict:
    await session.execute(sa.text("SELECT 1"))
    return {"ok": True}
