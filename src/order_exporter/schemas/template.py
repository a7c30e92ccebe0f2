"""Pydantic v2 schemas for custom export templates."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from order_exporter.schemas.common import PaginationMeta


def _unique_fields(fields: list[str]) -> list[str]:
    cleaned = [f.strip() for f in fields]
    if any(not f for f in cleaned):
        msg = "Field identifiers must not be empty"
        raise ValueError(msg)
    if len(set(cleaned)) != len(cleaned):
        msg = "selected_fields must not contain duplicates"
        raise ValueError(msg)
    return cleaned


def check_field_subsets(
    selected_fields: list[str],
    field_order: list[str] | None,
    field_aliases: dict[str, str] | None,
) -> None:
    """Ensure ordering and alias keys only reference selected fields.

    Raises:
        ValueError: On a reference to an unselected field.
    """
    selected = set(selected_fields)
    unknown_order = [f for f in field_order or [] if f not in selected]
    if unknown_order:
        msg = f"field_order references unselected fields: {', '.join(unknown_order)}"
        raise ValueError(msg)
    unknown_aliases = [f for f in field_aliases or {} if f not in selected]
    if unknown_aliases:
        msg = f"field_aliases references unselected fields: {', '.join(unknown_aliases)}"
        raise ValueError(msg)


class TemplateCreateRequest(BaseModel):
    """Request body for creating an export template."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    selected_fields: list[str] = Field(min_length=1, description="Ordered, unique field identifiers")
    field_aliases: dict[str, str] = Field(default_factory=dict, description="Field identifier to column label")
    field_order: list[str] | None = Field(default=None, description="Column order; defaults to selected_fields")
    is_global: bool = True

    @field_validator("selected_fields")
    @classmethod
    def check_unique(cls, v: list[str]) -> list[str]:
        return _unique_fields(v)

    @model_validator(mode="after")
    def check_subsets(self) -> "TemplateCreateRequest":
        check_field_subsets(self.selected_fields, self.field_order, self.field_aliases)
        return self


class TemplateUpdateRequest(BaseModel):
    """Request body for a partial template update."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    selected_fields: list[str] | None = Field(default=None, min_length=1)
    field_aliases: dict[str, str] | None = None
    field_order: list[str] | None = None
    is_global: bool | None = None

    @field_validator("selected_fields")
    @classmethod
    def check_unique(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else _unique_fields(v)


class TemplateResponse(BaseModel):
    """Export template with resolved columns and headers."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    description: str | None
    selected_fields: list[str]
    field_aliases: dict[str, str]
    field_order: list[str] | None
    columns: list[str]
    headers: list[str]
    is_global: bool
    created_by: str
    created_at: datetime
    updated_at: datetime


class PaginatedTemplateResponse(BaseModel):
    """Paginated list of templates."""

    items: list[TemplateResponse]
    pagination: PaginationMeta
