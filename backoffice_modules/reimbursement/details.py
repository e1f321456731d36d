"""
Category detail sanitization.

Pure functions that normalize a reimbursement's ``details`` map against the
configured schema for its category.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from backoffice_config import CategorySchema
from backoffice_kernel.exceptions import DetailFieldRequiredError

# Always accepted, regardless of category
SYSTEM_DETAIL_KEYS = ("has_invoice",)


def normalize_date_value(value: str) -> str | None:
    """ISO ``YYYY-MM-DD`` for a date-like string, or None when unparseable."""
    text = value.strip().replace("/", "-")
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def sanitize_details(
    category: str,
    details: Mapping[str, Any] | None,
    schema: CategorySchema | None,
) -> dict[str, str]:
    """
    Normalize ``details`` for ``category``.

    - No schema (or an empty one): keep every entry with a non-blank key and
      value, stripped.
    - Otherwise keep only allow-listed keys plus ``has_invoice``; strip values
      and drop empty ones; values of keys containing ``date`` become ISO dates
      (unparseable ones are dropped).

    Raises:
        DetailFieldRequiredError: a required field is missing after
            normalization.
    """
    source = details or {}
    if schema is None or not schema.fields:
        cleaned = {}
        for key, raw in source.items():
            k = str(key).strip()
            v = _text(raw)
            if k and v:
                cleaned[k] = v
        return cleaned

    allowed = set(schema.allowed_keys) | set(SYSTEM_DETAIL_KEYS)
    normalized: dict[str, str] = {}
    for key, raw in source.items():
        if key not in allowed:
            continue
        value = _text(raw)
        if not value:
            continue
        if "date" in key.lower():
            iso = normalize_date_value(value)
            if iso:
                normalized[key] = iso
            continue
        normalized[key] = value

    for required in schema.required_keys:
        if not normalized.get(required):
            raise DetailFieldRequiredError(category, required)
    return normalized
