from __future__ import annotations

import copy
import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from db.defaults import DEFAULT_ORG_SETTINGS, build_default_workflow_rows
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, NotFoundError
from services.api.app.logging import logger
from services.api.app.memberships import add_member, members_query, unique_slug
from services.api.app.schemas import MemberAdd, MemberOut, OrganizationCreate, OrganizationOut


router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("", response_model=list[OrganizationOut])
async def list_organizations(
    user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> list[dict]:
    o, m = schema.organizations, schema.organization_members
    q = (
        sa.select(o)
        .where(sa.or_(o.c.owner_id == user["id"], o.c.id.in_(sa.select(m.c.organization_id).where(m.c.user_id == user["id"]))))
        .order_by(o.c.name)
    )
    return await fetch_all(session, q)


@router.get("/slug/{slug}", response_model=OrganizationOut)
async def get_organization_by_slug(slug: str, session: AsyncSession = Depends(get_session)) -> dict:
    o = schema.organizations
    org = await fetch_one(session, sa.select(o).where(o.c.slug == slug))
    if org is None:
        raise NotFoundError("organization not found")
    return org


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(organization_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.organizations, organization_id)


@router.post("", response_model=OrganizationOut, status_code=201)
async def create_organization(
    req: OrganizationCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    o = schema.organizations
    if req.slug:
        if (await session.execute(sa.select(o.c.id).where(o.c.slug == req.slug))).first():
            raise ConflictError("organization slug already taken")
        slug = req.slug
    else:
        slug = await unique_slug(session, o, slugify(req.name))

    org = {
        "id": uuid.uuid4(),
        **req.model_dump(exclude={"slug", "settings"}),
        "slug": slug,
        "settings": req.settings if req.settings is not None else copy.deepcopy(DEFAULT_ORG_SETTINGS),
        "owner_id": user["id"],
        **audit(user["id"]),
    }
    await session.execute(sa.insert(o).values(**org))
    await session.execute(
        sa.insert(schema.organization_members).values(
            id=uuid.uuid4(), role="OWNER", joined_at=org["created_at"], user_id=user["id"], organization_id=org["id"], **audit(user["id"])
        )
    )
    workflow, statuses, transitions = build_default_workflow_rows(org["id"], user["id"], org["created_at"])
    await session.execute(sa.insert(schema.workflows).values(**workflow))
    await session.execute(sa.insert(schema.task_statuses), statuses)
    await session.execute(sa.insert(schema.status_transitions), transitions)
    await session.commit()
    logger.info("organization_created", organization_id=str(org["id"]), slug=slug)
    return org


@router.get("/{organization_id}/members", response_model=list[MemberOut])
async def list_members(organization_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    await get_or_404(session, schema.organizations, organization_id)
    return await fetch_all(session, members_query(schema.organization_members, "organization_id", organization_id))


@router.post("/{organization_id}/members", response_model=MemberOut, status_code=201)
async def add_organization_member(
    organization_id: uuid.UUID,
    req: MemberAdd,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await get_or_404(session, schema.organizations, organization_id)
    return await add_member(session, schema.organization_members, "organization_id", organization_id, req, user["id"])


@router.delete("/{organization_id}/members/{user_id}", status_code=204)
async def remove_organization_member(
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    _: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    o, m = schema.organizations, schema.organization_members
    org = await get_or_404(session, o, organization_id)
    if org["owner_id"] == user_id:
        raise ConflictError("the organization owner cannot be removed")
    res = await session.execute(sa.delete(m).where(m.c.organization_id == organization_id, m.c.user_id == user_id))
    if res.rowcount == 0:
        raise NotFoundError("member not found")
    await session.commit()
