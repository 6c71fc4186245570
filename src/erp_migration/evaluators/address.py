from __future__ import annotations

import logging
import re
from typing import Sequence

from erp_migration.evaluators.common import Row
from erp_migration.evaluators.constants import COUNTRY_ABBREVIATIONS, STATE_ABBREVIATIONS, UNITED_STATES
from erp_migration.evaluators.entity import (
    customer_company,
    entity_id,
    first_name,
    job_title_suffix,
    last_name,
    middle_name,
    salutation,
)
from erp_migration.parsing.primitives import (
    JOB_TITLE_SUFFIX_PATTERN,
    REMOVE_ATTN_PREFIX,
    STRIP_DOT_IF_NOT_ABBREVIATION,
    CleanOptions,
    clean,
    equivalent_alphanumeric,
)

logger = logging.getLogger(__name__)


STREET_LINE_CLEAN = CleanOptions(
    replace=(
        (re.compile(r"^\s*[,.]+\s*$"), ""),
        REMOVE_ATTN_PREFIX,
    ),
)

_STATE_CODES = frozenset(STATE_ABBREVIATIONS.values())
_COUNTRY_CODES = frozenset(COUNTRY_ABBREVIATIONS.values())


def attention(
    row: Row,
    entity_id_column: str,
    *name_columns: str,
    salutation_column: str | None = None,
    first_name_column: str | None = None,
    middle_name_column: str | None = None,
    last_name_column: str | None = None,
    title_column: str | None = None,
) -> str:
    """
    Full name of the person a parcel is addressed to: `"Dr. Jane Q Doe, DDS"`.

    `""` when no first and last name can be found, or when the name is the entity id itself
    (the addressee line already carries it).
    """
    first = first_name(row, first_name_column, *name_columns)
    last = last_name(row, last_name_column, *name_columns)
    if not first or not last:
        return ""
    middle = middle_name(row, middle_name_column, *name_columns)
    sal = salutation(row, salutation_column, *name_columns).rstrip(".")
    title = job_title_suffix(row, title_column, *name_columns)

    full = " ".join(p for p in (f"{sal}." if sal else "", first, middle, last) if p)
    if title and not re.search(rf",?\s*{re.escape(title)}\.?$", full, re.IGNORECASE):
        full = f"{full}, {title}"
    full = clean(full, STRIP_DOT_IF_NOT_ABBREVIATION)

    entity = entity_id(row, entity_id_column)
    if full in (entity, clean(row.get(entity_id_column))):
        return ""
    return full


def addressee(row: Row, entity_id_column: str, company_column: str | None = None) -> str:
    """Name on the first address line: the company when known, else the entity id."""
    return customer_company(row, entity_id_column, company_column)


def _redundant_with(line: str, name: str) -> bool:
    if not line or not name:
        return False
    if name in line or equivalent_alphanumeric(line, name):
        return True
    return equivalent_alphanumeric(
        JOB_TITLE_SUFFIX_PATTERN.sub("", line),
        JOB_TITLE_SUFFIX_PATTERN.sub("", name),
    )


def street(
    row: Row,
    line_number: int,
    *,
    line_one_column: str,
    line_two_column: str,
    entity_id_column: str,
    company_column: str | None = None,
    name_columns: Sequence[str] = (),
) -> str:
    """
    Street line `line_number` (1 or 2) with name lines removed.

    Legacy exports often repeat the addressee or attention name in a street column. A line
    that only restates one of them is dropped:
    - line 1 is street 1, or street 2 when street 1 is a name line or blank,
    - line 2 is street 2 only when street 1 is kept and neither line is a name line.
    """
    if line_number not in (1, 2):
        logger.error("street() line_number must be 1 or 2, got %r", line_number)
        return ""

    one = clean(row.get(line_one_column), STREET_LINE_CLEAN)
    two = clean(row.get(line_two_column), STREET_LINE_CLEAN)
    att = attention(row, entity_id_column, *name_columns)
    adr = addressee(row, entity_id_column, company_column)

    one_redundant = _redundant_with(one, att) or _redundant_with(one, adr)
    two_redundant = _redundant_with(two, att) or _redundant_with(two, adr)

    if line_number == 1:
        if one and not one_redundant:
            return one
        return two if not two_redundant else ""
    if one and not one_redundant and not two_redundant:
        return two
    return ""


def state(row: Row, state_column: str) -> str:
    """Two-letter state code from a state name or code; `""` when unrecognized."""
    value = clean(row.get(state_column), CleanOptions(case="upper"))
    if not value:
        return ""
    if value in STATE_ABBREVIATIONS:
        return STATE_ABBREVIATIONS[value]
    if value in _STATE_CODES:
        return value
    logger.warning("unrecognized state %r in column %r", value, state_column)
    return ""


def country(row: Row, country_column: str, state_column: str | None = None) -> str:
    """
    Two-letter country code from a country name or code. An unrecognized country with a
    recognized US state defaults to the United States.
    """
    value = clean(row.get(country_column), CleanOptions(case="upper"))
    if value in COUNTRY_ABBREVIATIONS:
        return COUNTRY_ABBREVIATIONS[value]
    if value in _COUNTRY_CODES:
        return value
    st = clean(row.get(state_column), CleanOptions(case="upper")) if state_column else ""
    if st and (st in STATE_ABBREVIATIONS or st in _STATE_CODES):
        return UNITED_STATES
    if value or st:
        logger.warning("unrecognized country %r (state %r)", value, st)
    return ""
