from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.errors import NotFoundError
from services.api.app.settings import SETTINGS


def now() -> datetime:
    return datetime.now(tz=UTC)


def audit(actor_id: uuid.UUID | None, *, created: bool = True) -> dict:
    ts = now()
    if not created:
        return {"updated_by_id": actor_id, "updated_at": ts}
    return {"created_by_id": actor_id, "updated_by_id": actor_id, "created_at": ts, "updated_at": ts}


async def fetch_one(session: AsyncSession, q: Any) -> dict | None:
    row = (await session.execute(q)).mappings().first()
    return dict(row) if row else None


async def fetch_all(session: AsyncSession, q: Any) -> list[dict]:
    return [dict(r) for r in (await session.execute(q)).mappings().all()]


async def get_or_404(session: AsyncSession, table: sa.Table, row_id: uuid.UUID, what: str | None = None) -> dict:
    row = await fetch_one(session, sa.select(table).where(table.c.id == row_id))
    if row is None:
        raise NotFoundError(f"{what or table.name.rstrip('s').replace('_', ' ')} not found")
    return row


async def current_user(
    x_user_id: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """
    The acting user named by the `X-User-Id` header.

    Token issuing lives in front of this service; here the header is trusted but must name a real user.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="missing X-User-Id header")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="invalid X-User-Id header")
    u = schema.users
    user = await fetch_one(session, sa.select(u.c.id, u.c.email, u.c.role, u.c.status).where(u.c.id == user_id))
    if user is None or user["status"] == "SUSPENDED":
        raise HTTPException(status_code=401, detail="unknown user")
    return user


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    if x_admin_token != SETTINGS.admin_token:
        raise HTTPException(status_code=403, detail="admin token required")


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def pagination(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> Page:
    return Page(page=page, limit=min(limit or SETTINGS.default_page_size, SETTINGS.max_page_size))
