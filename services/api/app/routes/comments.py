from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, get_or_404
from services.api.app.errors import InvalidRequestError
from services.api.app.schemas import CommentCreate, CommentOut


router = APIRouter(prefix="/tasks/{task_id}/comments", tags=["comments"])


def comment_tree(rows: list[dict]) -> list[dict]:
    """Top-level comments oldest first, each with its replies nested under `replies`."""
    by_id = {r["id"]: {**r, "replies": []} for r in rows}
    roots: list[dict] = []
    for r in sorted(by_id.values(), key=lambda c: c["created_at"]):
        parent = by_id.get(r["parent_comment_id"]) if r["parent_comment_id"] else None
        if parent is not None:
            parent["replies"].append(r)
        else:
            roots.append(r)
    return roots


@router.get("", response_model=list[CommentOut])
async def list_comments(task_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    c = schema.task_comments
    await get_or_404(session, schema.tasks, task_id)
    return comment_tree(await fetch_all(session, sa.select(c).where(c.c.task_id == task_id)))


@router.post("", response_model=CommentOut, status_code=201)
async def create_comment(
    task_id: uuid.UUID,
    req: CommentCreate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    c = schema.task_comments
    await get_or_404(session, schema.tasks, task_id)
    if req.parent_comment_id is not None:
        parent = await get_or_404(session, c, req.parent_comment_id, "parent comment")
        if parent["task_id"] != task_id:
            raise InvalidRequestError("reply must belong to the same task as its parent")

    row = {
        "id": uuid.uuid4(),
        "content": req.content,
        "task_id": task_id,
        "author_id": user["id"],
        "parent_comment_id": req.parent_comment_id,
        **audit(user["id"]),
    }
    await session.execute(sa.insert(c).values(**row))
    await session.commit()
    return row


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    task_id: uuid.UUID,
    comment_id: uuid.UUID,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    c = schema.task_comments
    comment = await get_or_404(session, c, comment_id)
    if comment["task_id"] != task_id:
        raise HTTPException(status_code=404, detail="comment not found")
    if comment["author_id"] != user["id"] and user["role"] not in ("SUPER_ADMIN", "ADMIN"):
        raise HTTPException(status_code=403, detail="only the author can delete a comment")
    await session.execute(sa.delete(c).where(c.c.id == comment_id))
    await session.commit()
