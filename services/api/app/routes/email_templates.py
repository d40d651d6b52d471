from __future__ import annotations

from fastapi import APIRouter, HTTPException

from services.api.app import email_templates as templates
from services.api.app.schemas import (
    EmailTemplate,
    RenderedTemplate,
    TemplateCategory,
    TemplateRenderRequest,
    TemplateValidateRequest,
    TemplateValidation,
    TemplateVariable,
)


router = APIRouter(prefix="/email-templates", tags=["email-templates"])


@router.get("", response_model=list[EmailTemplate])
async def list_templates(category: str | None = None, q: str | None = None, defaults_only: bool = False) -> list[EmailTemplate]:
    if q:
        found = templates.search_templates(q)
        return [t for t in found if category is None or t.category == category]
    if category and defaults_only:
        return templates.get_default_templates_for_category(category)
    if category:
        return templates.get_templates_by_category(category)
    return templates.get_default_templates()


@router.get("/categories", response_model=list[TemplateCategory])
async def list_categories() -> list[TemplateCategory]:
    return templates.TEMPLATE_CATEGORIES


@router.get("/variables", response_model=list[TemplateVariable])
async def list_variables() -> list[TemplateVariable]:
    return templates.COMMON_VARIABLES


@router.post("/validate", response_model=TemplateValidation)
async def validate(req: TemplateValidateRequest) -> TemplateValidation:
    return templates.validate_template(**req.model_dump())


@router.get("/{template_id}", response_model=EmailTemplate)
async def get_template(template_id: str) -> EmailTemplate:
    template = templates.get_template_by_id(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="template not found")
    return template


@router.post("/{template_id}/render", response_model=RenderedTemplate)
async def render(template_id: str, req: TemplateRenderRequest) -> RenderedTemplate:
    template = await get_template(template_id)
    subject, content = templates.render_template(template, req.values)
    return RenderedTemplate(subject=subject, content=content)
