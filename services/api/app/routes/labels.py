from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, InvalidRequestError, NotFoundError
from services.api.app.schemas import LabelCreate, LabelOut


router = APIRouter(tags=["labels"])


@router.get("/labels", response_model=list[LabelOut])
async def list_labels(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    lb = schema.labels
    return await fetch_all(session, sa.select(lb).where(lb.c.project_id == project_id).order_by(lb.c.name))


@router.post("/labels", response_model=LabelOut, status_code=201)
async def create_label(req: LabelCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)) -> dict:
    lb = schema.labels
    await get_or_404(session, schema.projects, req.project_id)
    if await fetch_one(session, sa.select(lb.c.id).where(lb.c.project_id == req.project_id, lb.c.name == req.name)):
        raise ConflictError("label already exists in this project")
    row = {"id": uuid.uuid4(), **req.model_dump(), **audit(user["id"])}
    await session.execute(sa.insert(lb).values(**row))
    await session.commit()
    return row


@router.get("/tasks/{task_id}/labels", response_model=list[LabelOut])
async def task_labels(task_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    lb, tl = schema.labels, schema.task_labels
    await get_or_404(session, schema.tasks, task_id)
    q = sa.select(lb).join(tl, tl.c.label_id == lb.c.id).where(tl.c.task_id == task_id).order_by(lb.c.name)
    return await fetch_all(session, q)


@router.put("/tasks/{task_id}/labels/{label_id}", status_code=204)
async def assign_label(
    task_id: uuid.UUID,
    label_id: uuid.UUID,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    tl = schema.task_labels
    task = await get_or_404(session, schema.tasks, task_id)
    label = await get_or_404(session, schema.labels, label_id)
    if label["project_id"] != task["project_id"]:
        raise InvalidRequestError("label belongs to another project")
    exists = await fetch_one(session, sa.select(tl.c.task_id).where(tl.c.task_id == task_id, tl.c.label_id == label_id))
    if not exists:
        await session.execute(sa.insert(tl).values(task_id=task_id, label_id=label_id, **audit(user["id"])))
        await session.commit()


@router.delete("/tasks/{task_id}/labels/{label_id}", status_code=204)
async def unassign_label(
    task_id: uuid.UUID,
    label_id: uuid.UUID,
    _: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    tl = schema.task_labels
    res = await session.execute(sa.delete(tl).where(tl.c.task_id == task_id, tl.c.label_id == label_id))
    if res.rowcount == 0:
        raise NotFoundError("label is not assigned to this task")
    await session.commit()
