"""Tests for template request schemas."""

import pytest
from pydantic import ValidationError

from order_exporter.schemas.template import TemplateCreateRequest, TemplateUpdateRequest, check_field_subsets


class TestTemplateCreateRequest:
    """Tests for TemplateCreateRequest validation."""

    def test_valid_request(self) -> None:
        request = TemplateCreateRequest(
            name="Newsletter",
            selected_fields=["_billing_email", "order_total"],
            field_aliases={"_billing_email": "E-mail"},
            field_order=["order_total", "_billing_email"],
        )
        assert request.is_global is True

    def test_strips_identifiers(self) -> None:
        request = TemplateCreateRequest(name="T", selected_fields=[" a ", "b"])
        assert request.selected_fields == ["a", "b"]

    def test_rejects_duplicates(self) -> None:
        with pytest.raises(ValidationError, match="duplicates"):
            TemplateCreateRequest(name="T", selected_fields=["a", "a"])

    def test_rejects_empty_selection(self) -> None:
        with pytest.raises(ValidationError):
            TemplateCreateRequest(name="T", selected_fields=[])

    def test_rejects_blank_identifier(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            TemplateCreateRequest(name="T", selected_fields=["a", " "])

    def test_order_must_reference_selected_fields(self) -> None:
        with pytest.raises(ValidationError, match="field_order"):
            TemplateCreateRequest(name="T", selected_fields=["a"], field_order=["a", "b"])

    def test_aliases_must_reference_selected_fields(self) -> None:
        with pytest.raises(ValidationError, match="field_aliases"):
            TemplateCreateRequest(name="T", selected_fields=["a"], field_aliases={"b": "B"})


class TestTemplateUpdateRequest:
    """Tests for TemplateUpdateRequest."""

    def test_all_fields_optional(self) -> None:
        assert TemplateUpdateRequest().model_dump(exclude_unset=True) == {}

    def test_rejects_duplicate_selection(self) -> None:
        with pytest.raises(ValidationError):
            TemplateUpdateRequest(selected_fields=["a", "a"])


class TestCheckFieldSubsets:
    """Tests for check_field_subsets."""

    def test_none_values_pass(self) -> None:
        check_field_subsets(["a"], None, None)

    def test_lists_offending_fields(self) -> None:
        with pytest.raises(ValueError, match="x, y"):
            check_field_subsets(["a"], ["x", "y"], {})
