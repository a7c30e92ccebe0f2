"""Template service: CRUD for custom export templates."""

import uuid

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.exceptions import ExportValidationError, TemplateNotFoundError
from order_exporter.models.export_template import ExportTemplate
from order_exporter.schemas.template import TemplateCreateRequest, TemplateUpdateRequest, check_field_subsets

COPY_SUFFIX = " (copy)"


async def create_template(session: AsyncSession, request: TemplateCreateRequest, *, created_by: str) -> ExportTemplate:
    """Create a template; ``field_order`` defaults to the selection order."""
    template = ExportTemplate(
        name=request.name,
        description=request.description,
        selected_fields=list(request.selected_fields),
        field_aliases=dict(request.field_aliases),
        field_order=list(request.field_order) if request.field_order is not None else list(request.selected_fields),
        is_global=request.is_global,
        created_by=str(created_by),
    )
    session.add(template)
    await session.commit()
    await session.refresh(template)
    logger.info(f"Created export template {template.id} ({len(template.selected_fields)} fields)")
    return template


async def get_template(session: AsyncSession, template_id: uuid.UUID) -> ExportTemplate | None:
    """Get a template by ID."""
    return await session.get(ExportTemplate, template_id)


async def require_template(session: AsyncSession, template_id: uuid.UUID | str) -> ExportTemplate:
    """Get a template by ID or raise.

    Raises:
        TemplateNotFoundError: If no template has this ID.
    """
    template_uuid = template_id if isinstance(template_id, uuid.UUID) else uuid.UUID(str(template_id))
    template = await session.get(ExportTemplate, template_uuid)
    if template is None:
        msg = f"Template {template_id} not found"
        raise TemplateNotFoundError(msg)
    return template


async def list_templates(
    session: AsyncSession,
    *,
    global_only: bool = False,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ExportTemplate], int]:
    """List templates newest first.

    Returns:
        Tuple of (templates, total count).
    """
    query = select(ExportTemplate)
    count_query = select(func.count(ExportTemplate.id))
    if global_only:
        query = query.where(ExportTemplate.is_global.is_(True))
        count_query = count_query.where(ExportTemplate.is_global.is_(True))

    total = (await session.execute(count_query)).scalar_one()
    result = await session.execute(
        query.order_by(ExportTemplate.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_template(
    session: AsyncSession,
    template: ExportTemplate,
    request: TemplateUpdateRequest,
) -> ExportTemplate:
    """Apply a partial update, re-checking the field subset rules.

    Order and alias entries for fields dropped from the selection are pruned
    unless the request supplies them explicitly.

    Raises:
        ExportValidationError: If order or aliases reference unselected fields.
    """
    updates = request.model_dump(exclude_unset=True)
    selected = updates.get("selected_fields", template.selected_fields)
    order = updates.get("field_order", template.field_order)
    aliases = updates.get("field_aliases", template.field_aliases)

    if "selected_fields" in updates:
        if "field_order" not in updates and order is not None:
            order = [f for f in order if f in selected]
        if "field_aliases" not in updates:
            aliases = {k: v for k, v in (aliases or {}).items() if k in selected}

    try:
        check_field_subsets(selected, order, aliases)
    except ValueError as exc:
        raise ExportValidationError(str(exc)) from exc

    for key in ("name", "description", "is_global"):
        if key in updates and updates[key] is not None:
            setattr(template, key, updates[key])
    template.selected_fields = list(selected)
    template.field_order = list(order) if order is not None else None
    template.field_aliases = dict(aliases or {})

    await session.commit()
    await session.refresh(template)
    logger.info(f"Updated export template {template.id}")
    return template


async def duplicate_template(session: AsyncSession, template: ExportTemplate, *, created_by: str) -> ExportTemplate:
    """Copy a template under a new ID with ``" (copy)"`` appended to the name."""
    copy = ExportTemplate(
        name=f"{template.name}{COPY_SUFFIX}",
        description=template.description,
        selected_fields=list(template.selected_fields),
        field_aliases=dict(template.field_aliases or {}),
        field_order=list(template.field_order) if template.field_order is not None else None,
        is_global=template.is_global,
        created_by=str(created_by),
    )
    session.add(copy)
    await session.commit()
    await session.refresh(copy)
    logger.info(f"Duplicated export template {template.id} as {copy.id}")
    return copy


async def delete_template(session: AsyncSession, template: ExportTemplate) -> None:
    """Delete a template. Schedules and jobs referencing it fail at run time."""
    await session.delete(template)
    await session.commit()
    logger.info(f"Deleted export template {template.id}")
