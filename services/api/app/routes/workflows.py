from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from db.defaults import transition_name
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, get_or_404
from services.api.app.errors import ConflictError, InvalidRequestError
from services.api.app.logging import logger
from services.api.app.schemas import (
    StatusReorder,
    TaskStatusCreate,
    TaskStatusOut,
    TransitionCreate,
    TransitionOut,
    WorkflowOut,
)


router = APIRouter(prefix="/workflows", tags=["workflows"])


def _statuses_query(workflow_id: uuid.UUID) -> sa.Select:
    s = schema.task_statuses
    return sa.select(s).where(s.c.workflow_id == workflow_id).order_by(s.c.position, s.c.name)


@router.get("", response_model=list[WorkflowOut])
async def list_workflows(organization_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    w = schema.workflows
    q = sa.select(w).where(w.c.organization_id == organization_id).order_by(w.c.is_default.desc(), w.c.name)
    return await fetch_all(session, q)


@router.get("/{workflow_id}", response_model=WorkflowOut)
async def get_workflow(workflow_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.workflows, workflow_id)


@router.get("/{workflow_id}/statuses", response_model=list[TaskStatusOut])
async def list_statuses(workflow_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    await get_or_404(session, schema.workflows, workflow_id)
    return await fetch_all(session, _statuses_query(workflow_id))


@router.post("/{workflow_id}/statuses", response_model=TaskStatusOut, status_code=201)
async def create_status(
    workflow_id: uuid.UUID,
    req: TaskStatusCreate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    s = schema.task_statuses
    await get_or_404(session, schema.workflows, workflow_id)
    existing = await fetch_all(session, _statuses_query(workflow_id))
    if any(st["name"] == req.name for st in existing):
        raise ConflictError("status name already used in this workflow")

    position = req.position if req.position is not None else len(existing)
    # Make room at the requested position.
    await session.execute(
        sa.update(s).where(s.c.workflow_id == workflow_id, s.c.position >= position).values(position=s.c.position + 1)
    )
    row = {
        "id": uuid.uuid4(),
        **req.model_dump(exclude={"position"}),
        "position": position,
        "is_default": not existing,
        "workflow_id": workflow_id,
        **audit(user["id"]),
    }
    await session.execute(sa.insert(s).values(**row))
    await session.commit()
    logger.info("task_status_created", workflow_id=str(workflow_id), name=req.name, position=position)
    return row


@router.put("/{workflow_id}/statuses/order", response_model=list[TaskStatusOut])
async def reorder_statuses(
    workflow_id: uuid.UUID,
    req: StatusReorder,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> list[dict]:
    s = schema.task_statuses
    await get_or_404(session, schema.workflows, workflow_id)
    current = {st["id"] for st in await fetch_all(session, _statuses_query(workflow_id))}
    if len(req.status_ids) != len(set(req.status_ids)) or set(req.status_ids) != current:
        raise InvalidRequestError("status_ids must list every status of the workflow exactly once")

    for position, status_id in enumerate(req.status_ids):
        await session.execute(sa.update(s).where(s.c.id == status_id).values(position=position, **audit(user["id"], created=False)))
    await session.commit()
    return await fetch_all(session, _statuses_query(workflow_id))


@router.get("/{workflow_id}/transitions", response_model=list[TransitionOut])
async def list_transitions(workflow_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    t = schema.status_transitions
    await get_or_404(session, schema.workflows, workflow_id)
    return await fetch_all(session, sa.select(t).where(t.c.workflow_id == workflow_id).order_by(t.c.created_at, t.c.name))


@router.post("/{workflow_id}/transitions", response_model=TransitionOut, status_code=201)
async def create_transition(
    workflow_id: uuid.UUID,
    req: TransitionCreate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    t = schema.status_transitions
    await get_or_404(session, schema.workflows, workflow_id)
    by_id = {st["id"]: st for st in await fetch_all(session, _statuses_query(workflow_id))}
    if req.from_status_id not in by_id or req.to_status_id not in by_id:
        raise InvalidRequestError("both statuses must belong to the workflow")

    row = {
        "id": uuid.uuid4(),
        "name": req.name or transition_name(by_id[req.from_status_id]["name"], by_id[req.to_status_id]["name"]),
        "description": None,
        "workflow_id": workflow_id,
        "from_status_id": req.from_status_id,
        "to_status_id": req.to_status_id,
        **audit(user["id"]),
    }
    await session.execute(sa.insert(t).values(**row))
    await session.commit()
    return row
