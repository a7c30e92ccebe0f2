"""Decoding of structured terms blobs stored on orders.

Checkout plugins store accepted terms as a structured blob: a list or mapping
of entries such as ``{"name": "Marketing consent", "status": "1"}``. Where
the marketing-consent flag lives inside that blob is not fixed, so the
lookup is a label heuristic kept behind :class:`ConsentDecoder` where it can
be tuned or replaced without touching the query layer.
"""

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

BlobDecoder = Callable[[Any], Any]

_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on", "checked", "tak"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "off", "unchecked", "nie", ""})


def decode_json_blob(raw: Any) -> Any:
    """Decode a JSON blob; already-decoded containers pass through.

    Returns:
        The decoded list/dict, or None when ``raw`` is empty or not a
        JSON container.
    """
    if isinstance(raw, dict | list):
        return raw
    if not isinstance(raw, str | bytes) or not raw:
        return None
    try:
        data = json.loads(raw)
    except (ValueError, TypeError):
        return None
    return data if isinstance(data, dict | list) else None


def blob_entries(data: Any) -> Iterable[tuple[str, Any]]:
    """Iterate ``(key, entry)`` pairs of a decoded blob, keys as strings."""
    if isinstance(data, dict):
        return ((str(k), v) for k, v in data.items())
    if isinstance(data, list):
        return ((str(i), v) for i, v in enumerate(data))
    return ()


def parse_bool(value: Any) -> bool | None:
    """Interpret a boolean-like status value; None when it is not one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
    return None


@dataclass
class ConsentDecoder:
    """Finds the consent entry in a terms blob and renders its status.

    An entry matches when its label contains any of ``keywords``
    (case-insensitive). Anything that cannot be decoded yields ``""``.
    """

    keywords: tuple[str, ...] = ("consent", "marketing")
    true_label: str = "yes"
    false_label: str = "no"
    label_keys: tuple[str, ...] = ("name", "label")
    status_keys: tuple[str, ...] = ("status", "checked")
    decode_blob: BlobDecoder = field(default=decode_json_blob)

    def load(self, raw: Any) -> Any:
        """Decode ``raw`` with the configured blob decoder, None on failure."""
        try:
            return self.decode_blob(raw)
        except (ValueError, TypeError):
            return None

    def entry_label(self, entry: Any) -> str | None:
        if not isinstance(entry, dict):
            return None
        for key in self.label_keys:
            label = entry.get(key)
            if isinstance(label, str) and label.strip():
                return label
        return None

    def has_status(self, entry: Any) -> bool:
        return isinstance(entry, dict) and any(key in entry for key in self.status_keys)

    def format_status(self, entry: dict[str, Any]) -> str:
        """Render the entry's boolean-like status as a label."""
        for key in self.status_keys:
            if key in entry:
                flag = parse_bool(entry[key])
                if flag is None:
                    return ""
                return self.true_label if flag else self.false_label
        return ""

    def decode(self, raw: Any) -> str:
        """Return the consent label for a raw blob, or ``""``."""
        data = self.load(raw)
        if data is None:
            return ""
        for _key, entry in blob_entries(data):
            label = self.entry_label(entry)
            if label is None or not self.has_status(entry):
                continue
            lowered = label.lower()
            if any(keyword in lowered for keyword in self.keywords):
                return self.format_status(entry)
        return ""
