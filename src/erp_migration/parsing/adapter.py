from __future__ import annotations

import re
from datetime import date
from typing import Any, Iterable, Mapping

from .primitives import clean
from .schema import ParseConfigError, ValueMapping, ValueMappingEntry


BOOLEAN_FIELD_ID_PATTERN = re.compile(r"^(is|give|send|fax|email)[a-z0-9]{2,}$")
DATE_STRING_PATTERN = re.compile(r"^\s*(\d{4}-\d{2}-\d{2}|\d{1,2}[/-]\d{1,2}[/-]\d{4})\s*$")

_TRUE_STRINGS = {"true", "t", "yes", "y"}
_FALSE_STRINGS = {"false", "f", "no", "n"}


def lookup_value_mapping(value: Any, columns: Iterable[str], mapping: ValueMapping | None) -> tuple[bool, Any]:
    """
    Find an exact-match override for `value`.

    Returns `(True, replacement)` when the mapping has a plain replacement for `value`, or a
    `ValueMappingEntry` whose `valid_columns` include one of `columns`. Otherwise `(False, value)`.
    """
    if not mapping or not isinstance(value, str) or value not in mapping:
        return False, value
    entry = mapping[value]
    if isinstance(entry, ValueMappingEntry):
        if any(c in entry.valid_columns for c in columns):
            return True, entry.new_value
        return False, value
    return True, entry


def value_mapping_from_json(obj: Mapping[str, Any]) -> dict[str, Any]:
    """
    Build a `ValueMapping` from its JSON form, where column-scoped entries are written as
    `{"newValue": ..., "validColumns": [...]}`.
    """
    if not isinstance(obj, Mapping):
        raise ParseConfigError(f"value mapping must be a JSON object, got {type(obj).__name__}")
    out: dict[str, Any] = {}
    for raw, entry in obj.items():
        if isinstance(entry, Mapping) and "newValue" in entry:
            cols = entry.get("validColumns") or []
            if isinstance(cols, str):
                cols = [cols]
            out[str(raw)] = ValueMappingEntry(new_value=entry["newValue"], valid_columns=tuple(str(c) for c in cols))
        else:
            out[str(raw)] = entry
    return out


def parse_date_string(s: str) -> date | None:
    """`YYYY-MM-DD` or `M/D/YYYY` (also `M-D-YYYY`) to `date`. `None` when not a real date."""
    s = s.strip()
    try:
        if len(s) == 10 and s[4] == "-":
            return date.fromisoformat(s)
        month, day, year = re.split(r"[/-]", s)
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def transform_value(raw: Any, col_name: str, field_id: str, mapping: ValueMapping | None = None) -> Any:
    """
    Coerce a raw cell read through `col_name` for `field_id`.

    Order:
    - an exact ValueMapping override wins outright,
    - boolean-shaped field ids (`isinactive`, `emailtransactions`, ...) turn true/false words into `bool`,
    - date-shaped strings become `date`,
    - otherwise the cleaned string.
    """
    value = clean(raw)
    matched, mapped = lookup_value_mapping(value, (col_name,), mapping)
    if matched:
        return mapped
    if not value:
        return value

    if BOOLEAN_FIELD_ID_PATTERN.match(field_id):
        low = value.lower()
        if low in _TRUE_STRINGS:
            return True
        if low in _FALSE_STRINGS:
            return False

    if DATE_STRING_PATTERN.match(value):
        d = parse_date_string(value)
        if d is not None:
            return d
    return value
