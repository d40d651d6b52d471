from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.deps import audit, fetch_one, get_or_404, now
from services.api.app.errors import ConflictError
from services.api.app.schemas import MemberAdd


async def unique_slug(session: AsyncSession, table: sa.Table, base: str, *scope) -> str:
    """`base`, or `base-2`, `base-3`... for the first slug not taken within `scope`."""
    taken = {
        r[0]
        for r in (
            await session.execute(sa.select(table.c.slug).where(table.c.slug.like(f"{base}%"), *scope))
        ).all()
    }
    slug, n = base, 1
    while slug in taken:
        n += 1
        slug = f"{base}-{n}"
    return slug


def members_query(members: sa.Table, parent_col: str, parent_id: uuid.UUID) -> sa.Select:
    u = schema.users
    return (
        sa.select(members.c.id, members.c.user_id, members.c.role, members.c.joined_at, u.c.email, u.c.first_name, u.c.last_name)
        .join(u, u.c.id == members.c.user_id)
        .where(members.c[parent_col] == parent_id)
        .order_by(members.c.joined_at, u.c.email)
    )


async def add_member(
    session: AsyncSession, members: sa.Table, parent_col: str, parent_id: uuid.UUID, req: MemberAdd, actor_id
) -> dict:
    await get_or_404(session, schema.users, req.user_id)
    existing = await fetch_one(
        session, sa.select(members.c.id).where(members.c[parent_col] == parent_id, members.c.user_id == req.user_id)
    )
    if existing:
        raise ConflictError("user is already a member")
    await session.execute(
        sa.insert(members).values(
            id=uuid.uuid4(), role=req.role, joined_at=now(), user_id=req.user_id, **{parent_col: parent_id}, **audit(actor_id)
        )
    )
    await session.commit()
    return await fetch_one(session, members_query(members, parent_col, parent_id).where(members.c.user_id == req.user_id))


