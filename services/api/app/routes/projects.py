from __future__ import annotations

import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from db import schema
from db.defaults import DEFAULT_SPRINT
from services.api.app.db import get_session
from services.api.app.deps import audit, current_user, fetch_all, fetch_one, get_or_404
from services.api.app.errors import ConflictError, InvalidRequestError
from services.api.app.logging import logger
from services.api.app.memberships import add_member, members_query, unique_slug
from services.api.app.schemas import MemberAdd, MemberOut, ProjectCreate, ProjectOut, ProjectUpdate


router = APIRouter(prefix="/projects", tags=["projects"])


async def _resolve_workflow(session: AsyncSession, organization_id: uuid.UUID, workflow_id: uuid.UUID | None) -> uuid.UUID:
    w = schema.workflows
    if workflow_id is not None:
        wf = await fetch_one(session, sa.select(w.c.id, w.c.organization_id).where(w.c.id == workflow_id))
        if wf is None or wf["organization_id"] != organization_id:
            raise InvalidRequestError("workflow does not belong to the project's organization")
        return wf["id"]
    wf = await fetch_one(
        session,
        sa.select(w.c.id)
        .where(w.c.organization_id == organization_id)
        .order_by(w.c.is_default.desc(), w.c.created_at)
        .limit(1),
    )
    if wf is None:
        raise InvalidRequestError("organization has no workflow")
    return wf["id"]


@router.get("", response_model=list[ProjectOut])
async def list_projects(
    workspace_id: uuid.UUID,
    status: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> list[dict]:
    p = schema.projects
    q = sa.select(p).where(p.c.workspace_id == workspace_id).order_by(p.c.name)
    if status:
        q = q.where(p.c.status == status)
    return await fetch_all(session, q)


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    req: ProjectCreate, user: dict = Depends(current_user), session: AsyncSession = Depends(get_session)
) -> dict:
    p = schema.projects
    workspace = await get_or_404(session, schema.workspaces, req.workspace_id)
    workflow_id = await _resolve_workflow(session, workspace["organization_id"], req.workflow_id)

    scope = p.c.workspace_id == req.workspace_id
    if req.slug:
        if (await session.execute(sa.select(p.c.id).where(scope, p.c.slug == req.slug))).first():
            raise ConflictError("project slug already taken in this workspace")
        slug = req.slug
    else:
        slug = await unique_slug(session, p, slugify(req.name), scope)

    row = {
        "id": uuid.uuid4(),
        **req.model_dump(exclude={"slug", "workflow_id"}),
        "slug": slug,
        "workflow_id": workflow_id,
        **audit(user["id"]),
    }
    await session.execute(sa.insert(p).values(**row))
    await session.execute(
        sa.insert(schema.sprints).values(id=uuid.uuid4(), **DEFAULT_SPRINT, project_id=row["id"], **audit(user["id"]))
    )
    await session.execute(
        sa.insert(schema.project_members).values(
            id=uuid.uuid4(), role="OWNER", joined_at=row["created_at"], user_id=user["id"], project_id=row["id"], **audit(user["id"])
        )
    )
    await session.commit()
    logger.info("project_created", project_id=str(row["id"]), slug=slug)
    return row


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> dict:
    return await get_or_404(session, schema.projects, project_id)


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: uuid.UUID,
    req: ProjectUpdate,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    p = schema.projects
    project = await get_or_404(session, p, project_id)
    changes = req.model_dump(exclude_unset=True)
    start = changes.get("start_date", project["start_date"])
    end = changes.get("end_date", project["end_date"])
    if start and end and end < start:
        raise InvalidRequestError("project must not end before it starts")
    if changes:
        await session.execute(sa.update(p).where(p.c.id == project_id).values(**changes, **audit(user["id"], created=False)))
        await session.commit()
    return await get_or_404(session, p, project_id)


@router.get("/{project_id}/members", response_model=list[MemberOut])
async def list_members(project_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> list[dict]:
    await get_or_404(session, schema.projects, project_id)
    return await fetch_all(session, members_query(schema.project_members, "project_id", project_id))


@router.post("/{project_id}/members", response_model=MemberOut, status_code=201)
async def add_project_member(
    project_id: uuid.UUID,
    req: MemberAdd,
    user: dict = Depends(current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await get_or_404(session, schema.projects, project_id)
    return await add_member(session, schema.project_members, "project_id", project_id, req, user["id"])
