from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from db.defaults import DEFAULT_USER_PREFERENCES
from db.security import hash_password
from services.api.app.db import get_session
from services.api.app.deps import Page, current_user, fetch_all, get_or_404, now, pagination
from services.api.app.errors import ConflictError
from services.api.app.logging import logger
from services.api.app.schemas import UserCreate, UserOut


router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
async def list_users(
    q: str | None = None,
    page: Page = Depends(pagination),
    session: AsyncSession = Depends(get_session),
) -> list[dict]:
    u = schema.users
    query = sa.select(u).order_by(u.c.email).limit(page.limit).offset(page.offset)
    if q:
        pattern = f"%{q.lower()}%"
        query = query.where(
            sa.or_(
                sa.func.lower(u.c.email).like(pattern),
                sa.func.lower(u.c.first_name).like(pattern),
                sa.func.lower(u.c.last_name).like(pattern),
            )
        )
    return await fetch_all(session, query)


@router.get("/me", response_model=UserOut)
async def me(user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.users, user["id"])


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.users, user_id)


@router.post("", response_model=UserOut, status_code=201)
async def create_user(req: UserCreate, session: AsyncSession = Depends(get_session)) -> dict:
    u = schema.users
    clash = sa.or_(u.c.email == req.email.lower(), u.c.username == req.username) if req.username else (
        u.c.email == req.email.lower()
    )
    if (await session.execute(sa.select(u.c.id).where(clash))).first():
        raise ConflictError("email or username already registered")

    ts = now()
    password = await run_in_threadpool(hash_password, req.password)
    row = {
        "id": uuid.uuid4(),
        **req.model_dump(exclude={"password", "email"}),
        "email": req.email.lower(),
        "password": password,
        "language": "en",
        "status": "ACTIVE",
        "email_verified": False,
        "preferences": DEFAULT_USER_PREFERENCES,
        "created_at": ts,
        "updated_at": ts,
    }
    await session.execute(sa.insert(u).values(**row))
    await session.commit()
    logger.info("user_created", user_id=str(row["id"]))
    return row
