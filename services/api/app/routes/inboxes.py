from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from db.seeders.inbox_rules import default_rules
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, NotFoundError
from services.api.app.logging import logger
from services.api.app.schemas import InboxCreate, InboxOut


router = APIRouter(prefix="/projects/{project_id}/inbox", tags=["inboxes"])


async def _inbox(session: AsyncSession, project_id: uuid.UUID) -> dict:
    i = schema.project_inboxes
    inbox = await fetch_one(session, sa.select(i).where(i.c.project_id == project_id))
    if inbox is None:
        raise NotFoundError("project has no inbox")
    return inbox


@router.get("", response_model=InboxOut)
async def get_inbox(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await _inbox(session, project_id)


@router.post("", response_model=InboxOut, status_code=201)
async def create_inbox(
    project_id: uuid.UUID,
    req: InboxCreate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    i = schema.project_inboxes
    await get_or_404(session, schema.projects, project_id)
    if await fetch_one(session, sa.select(i.c.id).where(i.c.project_id == project_id)):
        raise ConflictError("project already has an inbox")
    row = {"id": uuid.uuid4(), **req.model_dump(), "project_id": project_id, **audit(user["id"])}
    await session.execute(sa.insert(i).values(**row))
    await session.commit()
    return row


@router.post("/default-rules")
async def seed_default_rules(
    project_id: uuid.UUID,
    assignee_id: uuid.UUID | None = None,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    r = schema.inbox_rules
    inbox = await _inbox(session, project_id)
    existing = {row["name"] for row in await fetch_all(session, sa.select(r.c.name).where(r.c.inbox_id == inbox["id"]))}

    rules = default_rules(assignee_id or user["id"])
    rows = [
        {"id": uuid.uuid4(), **rule, "inbox_id": inbox["id"], **audit(user["id"])}
        for rule in rules
        if rule["name"] not in existing
    ]
    skipped = len(rules) - len(rows)
    if rows:
        await session.execute(sa.insert(r), rows)
        await session.commit()
    logger.info("inbox_rules_seeded", inbox_id=str(inbox["id"]), created=len(rows), skipped=skipped)
    return {"created": len(rows), "skipped": skipped}


@router.get("/rules")
async def list_rules(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    r = schema.inbox_rules
    inbox = await _inbox(session, project_id)
    q = sa.select(
        r.c.id, r.c.name, r.c.description, r.c.priority, r.c.enabled, r.c.stop_on_match, r.c.conditions, r.c.actions
    ).where(r.c.inbox_id == inbox["id"]).order_by(r.c.priority.desc(), r.c.name)
    return await fetch_all(session, q)
