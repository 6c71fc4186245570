from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Mapping, Sequence, Union

from erp_migration.evaluators.constants import Term
from erp_migration.parsing.primitives import clean

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ColumnSliceOptions:
    """Read `col_name`, taking the extractor match at `min_index` (for cells holding several values)."""
    col_name: str
    min_index: int = 0


ColumnOption = Union[str, ColumnSliceOptions]
Extractor = Callable[[str], Union[Sequence[str], None]]


def field(row: Row, extractor: Extractor, *column_options: ColumnOption) -> str:
    """
    First value `extractor` finds across `column_options`, in order.

    A plain column name uses match 0; a `ColumnSliceOptions` uses its `min_index`, so several
    output fields can draw distinct values out of one crowded cell. `""` when nothing matches.
    """
    for opt in column_options:
        col, index = (opt, 0) if isinstance(opt, str) else (opt.col_name, opt.min_index)
        value = clean(row.get(col))
        if not value:
            continue
        matches = extractor(value)
        if not matches or len(matches) <= index or not matches[index]:
            continue
        return matches[index]
    return ""


def terms(row: Row, terms_column: str, terms_dict: Mapping[str, Term]) -> int | None:
    """Internal id of the payment term named (or keyed) by `row[terms_column]`; `None` if unknown."""
    value = clean(row.get(terms_column))
    if not value:
        return None
    if value in terms_dict:
        return terms_dict[value].internalid
    for term in terms_dict.values():
        if term.name.lower() == value.lower():
            return term.internalid
    logger.warning("unknown terms %r in column %r", value, terms_column)
    return None


def category(row: Row, category_column: str, category_dict: Mapping[str, int]) -> int | None:
    """Internal id of the category label in `row[category_column]`; `None` if unknown."""
    value = clean(row.get(category_column))
    if not value:
        return None
    for label, internalid in category_dict.items():
        if label.lower() == value.lower():
            return internalid
    logger.warning("unknown category %r in column %r", value, category_column)
    return None


_NUMBER_NOISE = re.compile(r"[$,\s]")


def number(row: Row, column: str, places: int | None = None) -> float | None:
    """
    Numeric cell as `float` (currency symbols and thousands separators ignored,
    `(12.50)` read as negative). Rounded half-up to `places` when given. `None` if not numeric.
    """
    raw = clean(row.get(column))
    if not raw:
        return None
    s = _NUMBER_NOISE.sub("", raw)
    negative = s.startswith("(") and s.endswith(")")
    if negative:
        s = s[1:-1]
    try:
        d = Decimal(s)
    except InvalidOperation:
        logger.warning("non-numeric value %r in column %r", raw, column)
        return None
    if not d.is_finite():
        logger.warning("non-finite value %r in column %r", raw, column)
        return None
    if negative:
        d = -d
    if places is not None:
        d = d.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return float(d)
