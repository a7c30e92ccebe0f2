"""Template API endpoints for custom export field selections."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.dependencies import get_async_session, require_role
from order_exporter.core.security import Actor, Role
from order_exporter.models.export_template import ExportTemplate
from order_exporter.schemas.common import PaginationMeta
from order_exporter.schemas.template import (
    PaginatedTemplateResponse,
    TemplateCreateRequest,
    TemplateResponse,
    TemplateUpdateRequest,
)
from order_exporter.services import template_service

templates_router = APIRouter(prefix="/templates", tags=["templates"])

_managers = require_role(Role.ADMIN, Role.SHOP_MANAGER)


async def _get_template_or_404(session: AsyncSession, template_id: uuid.UUID) -> ExportTemplate:
    template = await template_service.get_template(session, template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


@templates_router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    request: TemplateCreateRequest,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(_managers),
) -> TemplateResponse:
    """Create an export template."""
    template = await template_service.create_template(session, request, created_by=actor.id)
    return TemplateResponse.model_validate(template)


@templates_router.get(
    "",
    response_model=PaginatedTemplateResponse,
)
async def list_templates(
    global_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> PaginatedTemplateResponse:
    """List templates, newest first."""
    templates, total = await template_service.list_templates(
        session, global_only=global_only, page=page, page_size=page_size
    )
    return PaginatedTemplateResponse(
        items=[TemplateResponse.model_validate(t) for t in templates],
        pagination=PaginationMeta.build(total, page, page_size),
    )


@templates_router.get(
    "/{template_id}",
    response_model=TemplateResponse,
)
async def get_template(
    template_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> TemplateResponse:
    """Get a template with its resolved columns and headers."""
    return TemplateResponse.model_validate(await _get_template_or_404(session, template_id))


@templates_router.patch(
    "/{template_id}",
    response_model=TemplateResponse,
)
async def update_template(
    template_id: uuid.UUID,
    request: TemplateUpdateRequest,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> TemplateResponse:
    """Update a template."""
    template = await _get_template_or_404(session, template_id)
    template = await template_service.update_template(session, template, request)
    return TemplateResponse.model_validate(template)


@templates_router.post(
    "/{template_id}/duplicate",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_template(
    template_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(_managers),
) -> TemplateResponse:
    """Copy a template."""
    template = await _get_template_or_404(session, template_id)
    copy = await template_service.duplicate_template(session, template, created_by=actor.id)
    return TemplateResponse.model_validate(copy)


@templates_router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_template(
    template_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> Response:
    """Delete a template."""
    template = await _get_template_or_404(session, template_id)
    await template_service.delete_template(session, template)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
