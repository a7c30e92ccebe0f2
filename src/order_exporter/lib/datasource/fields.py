"""Field resolution for custom (template-driven) exports.

A field identifier is either a built-in order attribute, a plain meta key or
a virtual field ``parent__sub`` whose value is extracted from the structured
blob stored under the ``parent`` meta key. :class:`FieldResolver` turns an
identifier into an extraction function over an order record, which is a
mapping of order attributes plus a ``"meta"`` mapping of meta key to raw
value.
"""

import json
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from order_exporter.lib.datasource.consent import ConsentDecoder, blob_entries

Extractor = Callable[[Mapping[str, Any]], Any]

VIRTUAL_SEPARATOR = "__"

# Order attributes addressable directly, including the host's meta-style aliases
BUILTIN_FIELDS: dict[str, str] = {
    "order_id": "order_id",
    "order_date": "order_date",
    "order_status": "order_status",
    "order_total": "order_total",
    "order_currency": "order_currency",
    "customer_id": "customer_id",
    "billing_email": "billing_email",
    "billing_first_name": "billing_first_name",
    "billing_last_name": "billing_last_name",
    "billing_phone": "billing_phone",
    "billing_city": "billing_city",
    "billing_postcode": "billing_postcode",
    "coupons_used": "coupons_used",
    "_order_total": "order_total",
    "_order_currency": "order_currency",
    "_customer_user": "customer_id",
    "_billing_email": "billing_email",
    "_billing_first_name": "billing_first_name",
    "_billing_last_name": "billing_last_name",
    "_billing_phone": "billing_phone",
    "_billing_city": "billing_city",
    "_billing_postcode": "billing_postcode",
    "_used_coupons": "coupons_used",
}


def normalize_label(label: str) -> str:
    """Lowercase a label and collapse non-alphanumerics to underscores."""
    return re.sub(r"[^a-z0-9]+", "_", label.lower()).strip("_")


def split_virtual(field: str) -> tuple[str, str] | None:
    """Split ``parent__sub``; None for plain identifiers."""
    if VIRTUAL_SEPARATOR not in field:
        return None
    parent, sub = field.split(VIRTUAL_SEPARATOR, 1)
    if not parent or not sub:
        return None
    return parent, sub


def _scalar(value: Any) -> Any:
    if isinstance(value, dict | list):
        return json.dumps(value, ensure_ascii=False)
    return value


class FieldResolver:
    """Maps field identifiers to value-extraction functions.

    Args:
        consent_decoder: Decoder used for consent blobs and checkbox entries.
        consent_meta_key: Meta key holding the terms blob; selecting it as a
            plain field yields the decoded consent instead of the raw blob.
        builtin_fields: Identifier to record-attribute mapping.
    """

    def __init__(
        self,
        consent_decoder: ConsentDecoder | None = None,
        *,
        consent_meta_key: str = "_additional_terms",
        builtin_fields: Mapping[str, str] | None = None,
    ) -> None:
        self.consent_decoder = consent_decoder or ConsentDecoder()
        self.consent_meta_key = consent_meta_key
        self.builtin_fields = dict(BUILTIN_FIELDS if builtin_fields is None else builtin_fields)

    def meta_key_for(self, field: str) -> str | None:
        """Meta key that must be loaded to resolve ``field`` (None for built-ins)."""
        if field in self.builtin_fields:
            return None
        virtual = split_virtual(field)
        return virtual[0] if virtual else field

    def meta_keys_for(self, fields: Iterable[str]) -> set[str]:
        return {key for key in (self.meta_key_for(f) for f in fields) if key is not None}

    def resolve(self, field: str) -> Extractor:
        """Return a function extracting ``field`` from an order record."""
        if field in self.builtin_fields:
            attribute = self.builtin_fields[field]
            return lambda record: record.get(attribute)

        if field == self.consent_meta_key:
            return lambda record: self.consent_decoder.decode(_meta(record).get(field))

        virtual = split_virtual(field)
        if virtual is not None:
            parent, sub = virtual
            return lambda record: self.extract_virtual(_meta(record).get(parent), sub)

        return lambda record: _meta(record).get(field)

    def extract_virtual(self, raw: Any, sub: str) -> Any:
        """Extract sub-entry ``sub`` from a structured blob.

        A literal key match wins; otherwise checkbox-like entries carrying
        their own label are matched on the normalized label. Anything
        unresolvable yields ``""``.
        """
        data = self.consent_decoder.load(raw)
        if data is None:
            return ""

        entries = list(blob_entries(data))
        for key, entry in entries:
            if key == sub:
                return self._entry_value(entry)

        wanted = normalize_label(sub)
        if not wanted:
            return ""
        for _key, entry in entries:
            label = self.consent_decoder.entry_label(entry)
            if label is None:
                continue
            normalized = normalize_label(label)
            if normalized == wanted or wanted in normalized:
                return self._entry_value(entry)
        return ""

    def _entry_value(self, entry: Any) -> Any:
        if isinstance(entry, dict):
            if self.consent_decoder.has_status(entry):
                return self.consent_decoder.format_status(entry)
            if "value" in entry:
                return _scalar(entry["value"])
            return _scalar(entry)
        if entry is None:
            return ""
        return _scalar(entry)


def _meta(record: Mapping[str, Any]) -> Mapping[str, Any]:
    return record.get("meta") or {}
