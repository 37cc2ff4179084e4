"""
Field lookup for catalog records with editor-defined field names.

CMS editors name fields freely ("Price", " price ") and some catalogs append
a numeric suffix when a name is reused ("price-1"). Lookups here compare
trimmed lowercase keys and fall back to the numbered variants.

Used for:
- Resolving code/price/inventory on Webflow collection items
- Reading options ("collection_id", "slug") from Foxy cart items
"""

import re
from typing import Any, Mapping, Optional


DEFAULT_FIELDS = {
    "code": "code",
    "price": "price",
    "inventory": "inventory",
}

# Inventory field overrides meaning "do not check inventory at all"
DISABLED_FIELD_VALUES = {"null", "false"}


def _normalize(key: Any) -> str:
    return str(key).strip().lower()


def record_fields(record: Any) -> Mapping:
    """
    Return the mapping holding a record's fields.

    Webflow v2 items keep editable fields under `fieldData`; plain dicts are
    used as they are.
    """
    if not isinstance(record, Mapping):
        return {}
    nested = record.get("fieldData")
    if isinstance(nested, Mapping):
        return nested
    return record


def field_name(logical_name: str, overrides: Optional[Mapping[str, str]] = None) -> str:
    """
    Catalog field name for a logical name.

    Args:
        logical_name: "code", "price", "inventory" or any literal field name
        overrides: Logical name -> configured field name

    Returns:
        Configured override, else the default, else the name itself
    """
    if overrides and overrides.get(logical_name):
        return overrides[logical_name]
    return DEFAULT_FIELDS.get(logical_name, logical_name)


def resolve_key(record: Any, key: str) -> Optional[str]:
    """
    Find the actual key in a record matching `key`.

    Exact match (case-insensitive, trimmed) wins. Otherwise keys shaped like
    `<key>-<digits>` are considered and the lexicographically first is used.

    Returns:
        The record's own key, or None when nothing matches
    """
    fields = record_fields(record)
    wanted = _normalize(key)

    for existing in fields:
        if _normalize(existing) == wanted:
            return existing

    numbered = re.compile(re.escape(wanted) + r"-\d+")
    candidates = sorted(
        (existing for existing in fields if numbered.fullmatch(_normalize(existing))),
        key=_normalize
    )
    return candidates[0] if candidates else None


def lookup_field(
    record: Any,
    logical_name: str,
    overrides: Optional[Mapping[str, str]] = None
) -> Optional[Any]:
    """
    Read a field value through aliasing.

    Args:
        record: Catalog record (plain dict or Webflow item with fieldData)
        logical_name: Logical or literal field name
        overrides: Logical name -> configured field name

    Returns:
        The value, or None when the record has no such field
    """
    key = resolve_key(record, field_name(logical_name, overrides))
    if key is None:
        return None
    return record_fields(record)[key]


def inventory_check_disabled(inventory_field: Optional[str]) -> bool:
    """True when the configured inventory field switches the check off."""
    return inventory_field is not None and _normalize(inventory_field) in DISABLED_FIELD_VALUES
