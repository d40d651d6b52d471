from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, InvalidRequestError, NotFoundError
from services.api.app.logging import logger
from services.api.app.schemas import SprintCreate, SprintOut


router = APIRouter(prefix="/sprints", tags=["sprints"])


async def _active_sprint(session: AsyncSession, project_id: uuid.UUID) -> dict | None:
    s = schema.sprints
    return await fetch_one(session, sa.select(s).where(s.c.project_id == project_id, s.c.status == "ACTIVE"))


@router.get("", response_model=list[SprintOut])
async def list_sprints(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    s = schema.sprints
    q = (
        sa.select(s)
        .where(s.c.project_id == project_id)
        .order_by(s.c.is_default.desc(), s.c.start_date.nulls_last(), s.c.name)
    )
    return await fetch_all(session, q)


@router.get("/active", response_model=SprintOut)
async def get_active_sprint(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    sprint = await _active_sprint(session, project_id)
    if sprint is None:
        raise NotFoundError("project has no active sprint")
    return sprint


@router.post("", response_model=SprintOut, status_code=201)
async def create_sprint(
    req: SprintCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    await get_or_404(session, schema.projects, req.project_id)
    row = {"id": uuid.uuid4(), **req.model_dump(), "status": "PLANNING", "is_default": False, **audit(user["id"])}
    await session.execute(sa.insert(schema.sprints).values(**row))
    await session.commit()
    return row


@router.get("/{sprint_id}", response_model=SprintOut)
async def get_sprint(sprint_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.sprints, sprint_id)


@router.post("/{sprint_id}/start", response_model=SprintOut)
async def start_sprint(
    sprint_id: uuid.UUID, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    s = schema.sprints
    sprint = await get_or_404(session, s, sprint_id)
    if sprint["status"] != "PLANNING":
        raise InvalidRequestError("only a planning sprint can be started")
    if not sprint["start_date"] or not sprint["end_date"]:
        raise InvalidRequestError("sprint needs start and end dates before it can start")
    if await _active_sprint(session, sprint["project_id"]):
        raise ConflictError("project already has an active sprint")

    await session.execute(sa.update(s).where(s.c.id == sprint_id).values(status="ACTIVE", **audit(user["id"], created=False)))
    await session.commit()
    logger.info("sprint_started", sprint_id=str(sprint_id))
    return await get_or_404(session, s, sprint_id)


@router.post("/{sprint_id}/complete", response_model=SprintOut)
async def complete_sprint(
    sprint_id: uuid.UUID, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    s, t, st = schema.sprints, schema.tasks, schema.task_statuses
    sprint = await get_or_404(session, s, sprint_id)
    if sprint["status"] != "ACTIVE":
        raise InvalidRequestError("only an active sprint can be completed")

    # Unfinished work returns to the project's default sprint.
    default = await fetch_one(
        session, sa.select(s.c.id).where(s.c.project_id == sprint["project_id"], s.c.is_default.is_(True))
    )
    unfinished = sa.select(st.c.id).where(st.c.category != "DONE")
    moved = await session.execute(
        sa.update(t)
        .where(t.c.sprint_id == sprint_id, t.c.status_id.in_(unfinished))
        .values(sprint_id=default["id"] if default else None)
    )
    await session.execute(sa.update(s).where(s.c.id == sprint_id).values(status="COMPLETED", **audit(user["id"], created=False)))
    await session.commit()
    logger.info("sprint_completed", sprint_id=str(sprint_id), moved_tasks=moved.rowcount)
    return await get_or_404(session, s, sprint_id)


@router.delete("/{sprint_id}", status_code=204)
async def delete_sprint(
    sprint_id: uuid.UUID, _: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> None:
    s = schema.sprints
    sprint = await get_or_404(session, s, sprint_id)
    if sprint["status"] == "ACTIVE":
        raise InvalidRequestError("an active sprint cannot be deleted")
    if sprint["is_default"]:
        raise InvalidRequestError("the default sprint cannot be deleted")
    await session.execute(sa.delete(s).where(s.c.id == sprint_id))
    await session.commit()
