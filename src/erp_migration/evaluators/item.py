from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from erp_migration.evaluators.common import Row
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.primitives import (
    REPLACE_EM_HYPHEN,
    CleanOptions,
    StripOptions,
    clean,
    extract_leaf,
    extract_sku,
)

logger = logging.getLogger(__name__)

SALES_ORDER_RECORD_TYPE = "salesorder"
SERVICE_ITEM_RECORD_TYPE = "serviceitem"

ACCOUNT_LOOKUP = "account"
DISPLAY_NAME_LOOKUP = "displayname"

# `S. O. #` -> `SO`, `P. O. #` -> `PO`, `Num` -> `INVOICE`
ID_COLUMN_KEY_CLEAN = CleanOptions(
    replace=(
        (re.compile(r"[. #]+"), ""),
        (re.compile(r"^Num$"), "INVOICE"),
    ),
)

# `"Bulk Pacakage - 12 oz."` -> `"BULK_PACKAGE-12"`
ITEM_ID_CLEAN = CleanOptions(
    strip=StripOptions(char="."),
    case="upper",
    replace=(
        REPLACE_EM_HYPHEN,
        (re.compile(r"pacakage", re.IGNORECASE), "PACKAGE"),
        (re.compile(r"\s*-\s*"), "-"),
        (re.compile(r"(?<=\d)\s*(ml|oz)\.?\s*$", re.IGNORECASE), ""),
        (re.compile(r"[%,&#]+"), ""),
        (re.compile(r"\s+(?=\w)"), "_"),
        (re.compile(r"_{2,}"), "_"),
        (re.compile(r"[_.]+\s*$"), ""),
    ),
)

# ids whose `&` the clean above removes
ITEM_ID_OVERRIDES = {"SH": "S&H", "SF": "S&F"}


def _as_internal_id(value: Any) -> Any:
    if value is None:
        return None
    return int(value) if str(value).lstrip("-").isdigit() else value


def item_id(row: Row, item_id_column: str) -> str:
    """
    Item name from a classed item cell: `"Services:Install (On site)"` -> `"INSTALL"`.
    Falls back to the raw cell when nothing survives the clean.
    """
    raw = clean(row.get(item_id_column))
    if not raw:
        return ""
    value = clean(extract_leaf(raw), ITEM_ID_CLEAN)
    if not value:
        logger.warning("item id %r in column %r is empty once cleaned, keeping it as is", raw, item_id_column)
        return raw
    return ITEM_ID_OVERRIDES.get(value, value)


def item_external_id(row: Row, record_type: str, item_id_column: str) -> str:
    """`"<item id><record_type>"`, e.g. `"INSTALL<serviceitem>"`. `""` without an item id."""
    item = item_id(row, item_id_column)
    return f"{item}<{record_type}>" if item else ""


async def item_display_name(
    row: Row,
    description_column: str,
    item_id_column: str,
    *,
    context: ParseContext,
) -> str:
    """
    Display name from the run's `displayname` lookup (keyed by item id) when it has one,
    else `"<item id> (<description>)"`.
    """
    item = item_id(row, item_id_column)
    if not item:
        return ""
    known = await context.lookup(DISPLAY_NAME_LOOKUP, item)
    if known:
        return clean(known)
    description = clean(row.get(description_column))
    return f"{item} ({description})" if description else item


def item_description(row: Row, description_column: str, fallback_column: str | None = None) -> str:
    """Sales description, or the purchase description when the sales one is blank."""
    value = clean(row.get(description_column))
    if not value and fallback_column:
        value = clean(row.get(fallback_column))
    return value


async def account_id(row: Row, account_column: str, *, context: ParseContext) -> Any:
    """Internal id of the account named by the cell's leaf (`"4000 Sales:4010 Services"` -> `"4010 Services"`)."""
    name = extract_leaf(clean(row.get(account_column)))
    if not name:
        return None
    value = await context.lookup(ACCOUNT_LOOKUP, name)
    if value is None:
        logger.warning("account %r in column %r not found", name, account_column)
    return _as_internal_id(value)


def item_sku(row: Row, item_column: str) -> str:
    """SKU text of the line's item cell (`"ABC-1 (Widget)"` -> `"ABC-1"`); `""` when blank."""
    value = clean(row.get(item_column))
    if not value:
        return ""
    return extract_sku(value)


def sales_order_external_id(row: Row, *id_columns: str) -> str:
    """
    External id built from every identifying column, e.g.
    `SO:334854_INVOICE:24-30376_PO:15979<salesorder>`. `""` when all id columns are blank.
    """
    pairs = [(clean(col, ID_COLUMN_KEY_CLEAN), clean(row.get(col))) for col in id_columns]
    if not any(v for _, v in pairs):
        return ""
    return "_".join(f"{k}:{v}" for k, v in pairs) + f"<{SALES_ORDER_RECORD_TYPE}>"


def item_line_id(line: Mapping[str, Any]) -> str:
    """Identity of an item line: `{item:X,quantity:Q,rate:R,amount:A}`."""
    return "{" + ",".join(f"{k}:{line.get(k, '')}" for k in ("item", "quantity", "rate", "amount")) + "}"
