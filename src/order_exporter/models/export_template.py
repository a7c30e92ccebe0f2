"""ExportTemplate model: field projection for custom exports."""

import re

from sqlalchemy import Boolean, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

from order_exporter.models.base import Base, JSONType, TimestampMixin, UUIDMixin

_LABEL_PREFIXES = ("_billing_", "_shipping_", "_order_", "_wc_", "wc_")


def humanize_field(field: str) -> str:
    """Build a display label from a field identifier.

    ``_billing_first_name`` becomes ``First Name``; virtual fields keep both
    halves (``_additional_terms__marketing`` becomes ``Additional Terms Marketing``).
    """
    label = field
    for prefix in _LABEL_PREFIXES:
        if label.startswith(prefix):
            label = label[len(prefix) :]
            break
    label = re.sub(r"_+", " ", label).strip()
    return " ".join(word[:1].upper() + word[1:] for word in label.split()) or field


class ExportTemplate(Base, UUIDMixin, TimestampMixin):
    """User-defined selection of order fields for the custom export kind."""

    __tablename__ = "export_templates"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_fields: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    field_aliases: Mapped[dict[str, str]] = mapped_column(JSONType, nullable=False, default=dict)
    field_order: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def columns(self) -> list[str]:
        """Field identifiers in CSV column order.

        Fields missing from ``field_order`` are appended in selection order so
        the column count always equals ``len(selected_fields)``.
        """
        selected = list(self.selected_fields or [])
        ordered = [f for f in (self.field_order or []) if f in selected]
        ordered = list(dict.fromkeys(ordered))
        return ordered + [f for f in selected if f not in ordered]

    @property
    def headers(self) -> list[str]:
        """Header labels aligned with :attr:`columns`."""
        aliases = self.field_aliases or {}
        return [aliases.get(field) or humanize_field(field) for field in self.columns]
