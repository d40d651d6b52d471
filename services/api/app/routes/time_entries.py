from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, get_or_404, now
from services.api.app.logging import logger
from services.api.app.schemas import TimeEntryCreate, TimeEntryList, TimeEntryOut


router = APIRouter(tags=["time-entries"])


@router.post("/tasks/{task_id}/time-entries", response_model=TimeEntryOut, status_code=201)
async def log_time(
    task_id: uuid.UUID,
    req: TimeEntryCreate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    t = schema.tasks
    task = await get_or_404(session, t, task_id)
    entry_date = req.date or now()
    row = {
        "id": uuid.uuid4(),
        **req.model_dump(exclude={"date"}),
        "date": entry_date.replace(hour=0, minute=0, second=0, microsecond=0),
        "task_id": task_id,
        "user_id": user["id"],
        **audit(user["id"]),
    }
    await session.execute(sa.insert(schema.time_entries).values(**row))
    if task["remaining_estimate"] is not None:
        remaining = max(0, task["remaining_estimate"] - req.time_spent)
        await session.execute(sa.update(t).where(t.c.id == task_id).values(remaining_estimate=remaining))
    await session.commit()
    logger.info("time_logged", task_id=str(task_id), minutes=req.time_spent)
    return row


@router.get("/tasks/{task_id}/time-entries", response_model=TimeEntryList)
async def list_time_entries(task_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    te = schema.time_entries
    await get_or_404(session, schema.tasks, task_id)
    items = await fetch_all(session, sa.select(te).where(te.c.task_id == task_id).order_by(te.c.date.desc(), te.c.start_time))
    return {"items": items, "total_minutes": sum(i["time_spent"] for i in items)}


@router.delete("/time-entries/{entry_id}", status_code=204)
async def delete_time_entry(
    entry_id: uuid.UUID, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> None:
    te = schema.time_entries
    entry = await get_or_404(session, te, entry_id, "time entry")
    if entry["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="only the owner can delete a time entry")
    await session.execute(sa.delete(te).where(te.c.id == entry_id))
    await session.commit()
