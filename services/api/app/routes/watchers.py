from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, NotFoundError
from services.api.app.schemas import WatcherOut, WatchToggle


router = APIRouter(prefix="/tasks/{task_id}/watchers", tags=["watchers"])


async def _watch(session: AsyncSession, task_id: uuid.UUID, user_id: uuid.UUID) -> dict:
    row = {"id": uuid.uuid4(), "task_id": task_id, "user_id": user_id, **audit(user_id)}
    await session.execute(sa.insert(schema.task_watchers).values(**row))
    return row


async def _watching(session: AsyncSession, task_id: uuid.UUID, user_id: uuid.UUID) -> dict | None:
    w = schema.task_watchers
    return await fetch_one(session, sa.select(w).where(w.c.task_id == task_id, w.c.user_id == user_id))


@router.get("", response_model=list[WatcherOut])
async def list_watchers(task_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    w = schema.task_watchers
    await get_or_404(session, schema.tasks, task_id)
    return await fetch_all(session, sa.select(w).where(w.c.task_id == task_id).order_by(w.c.created_at))


@router.post("", response_model=WatcherOut, status_code=201)
async def watch(task_id: uuid.UUID, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)) -> dict:
    await get_or_404(session, schema.tasks, task_id)
    if await _watching(session, task_id, user["id"]):
        raise ConflictError("already watching this task")
    row = await _watch(session, task_id, user["id"])
    await session.commit()
    return row


@router.delete("", status_code=204)
async def unwatch(task_id: uuid.UUID, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)) -> None:
    w = schema.task_watchers
    res = await session.execute(sa.delete(w).where(w.c.task_id == task_id, w.c.user_id == user["id"]))
    if res.rowcount == 0:
        raise NotFoundError("not watching this task")
    await session.commit()


@router.post("/toggle", response_model=WatchToggle)
async def toggle(task_id: uuid.UUID, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)) -> dict:
    w = schema.task_watchers
    await get_or_404(session, schema.tasks, task_id)
    existing = await _watching(session, task_id, user["id"])
    if existing:
        await session.execute(sa.delete(w).where(w.c.id == existing["id"]))
    else:
        await _watch(session, task_id, user["id"])
    await session.commit()
    return {"watching": existing is None}
