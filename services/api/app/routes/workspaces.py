from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, get_or_404
from services.api.app.errors import ConflictError
from services.api.app.logging import logger
from services.api.app.memberships import add_member, members_query, unique_slug
from services.api.app.schemas import MemberAdd, MemberOut, WorkspaceCreate, WorkspaceOut


router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("", response_model=list[WorkspaceOut])
async def list_workspaces(organization_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    w = schema.workspaces
    return await fetch_all(session, sa.select(w).where(w.c.organization_id == organization_id).order_by(w.c.name))


@router.post("", response_model=WorkspaceOut, status_code=201)
async def create_workspace(
    req: WorkspaceCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    w = schema.workspaces
    await get_or_404(session, schema.organizations, req.organization_id)
    scope = w.c.organization_id == req.organization_id
    if req.slug:
        if (await session.execute(sa.select(w.c.id).where(scope, w.c.slug == req.slug))).first():
            raise ConflictError("workspace slug already taken in this organization")
        slug = req.slug
    else:
        slug = await unique_slug(session, w, slugify(req.name), scope)

    row = {"id": uuid.uuid4(), **req.model_dump(exclude={"slug"}), "slug": slug, **audit(user["id"])}
    await session.execute(sa.insert(w).values(**row))
    await session.execute(
        sa.insert(schema.workspace_members).values(
            id=uuid.uuid4(), role="OWNER", joined_at=row["created_at"], user_id=user["id"], workspace_id=row["id"], **audit(user["id"])
        )
    )
    await session.commit()
    logger.info("workspace_created", workspace_id=str(row["id"]), slug=slug)
    return row


@router.get("/{workspace_id}", response_model=WorkspaceOut)
async def get_workspace(workspace_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.workspaces, workspace_id)


@router.get("/{workspace_id}/members", response_model=list[MemberOut])
async def list_members(workspace_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    await get_or_404(session, schema.workspaces, workspace_id)
    return await fetch_all(session, members_query(schema.workspace_members, "workspace_id", workspace_id))


@router.post("/{workspace_id}/members", response_model=MemberOut, status_code=201)
async def add_workspace_member(
    workspace_id: uuid.UUID,
    req: MemberAdd,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await get_or_404(session, schema.workspaces, workspace_id)
    return await add_member(session, schema.workspace_members, "workspace_id", workspace_id, req, user["id"])
