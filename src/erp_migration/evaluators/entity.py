from __future__ import annotations

import logging
import re

from erp_migration.evaluators.common import ColumnSliceOptions, Row, field
from erp_migration.evaluators.constants import (
    COMMON_EMAIL_DOMAINS,
    COMPANY_ABBREVIATION_PATTERN,
    COMPANY_KEYWORDS_PATTERN,
    RADIO_FIELD_FALSE,
    RADIO_FIELD_TRUE,
)
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.primitives import (
    ENSURE_SPACE_AROUND_HYPHEN,
    REMOVE_ATTN_PREFIX,
    REMOVE_TRAILING_COMMA,
    REPLACE_EM_HYPHEN,
    SALUTATION_PATTERN,
    STRIP_DOT_IF_NOT_ABBREVIATION,
    CleanOptions,
    NameParts,
    clean,
    ends_with_any,
    equivalent_alphanumeric,
    extract_email,
    extract_job_title_suffix,
    extract_name,
    extract_phone,
    is_valid_email,
)

logger = logging.getLogger(__name__)


ENTITY_ID_CLEAN = CleanOptions(
    strip=STRIP_DOT_IF_NOT_ABBREVIATION,
    replace=(
        (re.compile(r"(\^|\*)+$"), ""),
        (re.compile(r"Scienc$"), "Science"),
        (re.compile(r"(?<= )Ctr\.?$"), "Center"),
        (re.compile(r"(?<= )Ctr\.(?= )"), "Center"),
        (re.compile(r"(?<= )Ctr(?=-.+)"), "Center "),
        REPLACE_EM_HYPHEN,
        ENSURE_SPACE_AROUND_HYPHEN,
    ),
)

COMPANY_NAME_CLEAN = CleanOptions(
    strip=STRIP_DOT_IF_NOT_ABBREVIATION,
    replace=(REPLACE_EM_HYPHEN, ENSURE_SPACE_AROUND_HYPHEN),
)

PERSON_NAME_CLEAN = CleanOptions(
    strip=STRIP_DOT_IF_NOT_ABBREVIATION,
    replace=(REMOVE_ATTN_PREFIX, REMOVE_TRAILING_COMMA),
)

_EDGE_PUNCTUATION = re.compile(r"^[-,;:]+|[-,;:]+$")
_DIGIT_OR_AT = re.compile(r"[0-9@]")
_URL_PREFIX = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)


def _trim_edge_punctuation(s: str) -> str:
    return _EDGE_PUNCTUATION.sub("", s).strip()


## -- entity identity

def entity_id(row: Row, entity_id_column: str) -> str:
    """Cleaned entity id (`"Acme Corp."` -> `"Acme Corp"`, `"Health Ctr"` -> `"Health Center"`)."""
    return clean(row.get(entity_id_column), ENTITY_ID_CLEAN)


def entity_external_id(row: Row, record_type: str, entity_id_column: str) -> str:
    """`"<entity><record_type>"`, e.g. `"Acme Corp<customer>"`. `""` without an entity id."""
    entity = entity_id(row, entity_id_column)
    if not entity:
        return ""
    return f"{entity}<{record_type}>"


def customer_company(row: Row, entity_id_column: str, company_column: str | None = None) -> str:
    """Company column when filled, else the entity id."""
    company = clean(row.get(company_column), COMPANY_NAME_CLEAN) if company_column else ""
    return company or entity_id(row, entity_id_column)


def is_person(
    row: Row,
    entity_id_column: str,
    company_column: str | None = None,
    *,
    context: ParseContext | None = None,
) -> bool:
    """
    Classify the row's entity as a person (`True`) or a company (`False`).

    Checks run in this order and the first decisive one wins:
    1. entity id in the run's human-name overrides -> person
    2. company keyword (`... Group`, `... Services`, `... Corp`) -> company
    3. trailing company abbreviation (`Inc`, `LLC`, `P.C.`) -> company
    4. contains a digit or `@` -> company
    5. single token -> company
    6. company column names a company, or names something other than the entity -> company
    7. otherwise a person
    """
    entity = entity_id(row, entity_id_column)
    company = clean(row.get(company_column), COMPANY_NAME_CLEAN) if company_column else ""
    human_names = context.human_names if context is not None else frozenset()

    if entity in human_names:
        logger.debug("is_person(%r) -> True (human name override)", entity)
        return True
    if (
        COMPANY_KEYWORDS_PATTERN.search(entity)
        or COMPANY_ABBREVIATION_PATTERN.search(entity)
        or _DIGIT_OR_AT.search(entity)
        or len(entity.split()) <= 1
    ):
        logger.debug("is_person(%r) -> False (entity looks like a company)", entity)
        return False
    if company and (COMPANY_KEYWORDS_PATTERN.search(company) or not equivalent_alphanumeric(entity, company)):
        logger.debug("is_person(%r) -> False (company column %r)", entity, company)
        return False
    logger.debug("is_person(%r) -> True", entity)
    return True


def customer_is_person(
    row: Row,
    entity_id_column: str,
    company_column: str | None = None,
    *,
    context: ParseContext | None = None,
) -> str:
    """`is_person` as the ERP's radio-field sentinel, `"T"` or `"F"`."""
    if not entity_id(row, entity_id_column):
        return RADIO_FIELD_FALSE
    person = is_person(row, entity_id_column, company_column, context=context)
    return RADIO_FIELD_TRUE if person else RADIO_FIELD_FALSE


## -- contact details

def phone(row: Row, main_column: str, main_match_index: int = 0, *fallback_columns: str) -> str:
    """
    First phone number found, as `xxx-xxx-xxxx[ ext n]`.

    `main_match_index` picks which number of `main_column` to use, so several phone fields
    can be drawn from one crowded cell; fallback columns always use their first number.
    """
    return field(row, extract_phone, ColumnSliceOptions(main_column, main_match_index), *fallback_columns)


def email(row: Row, main_column: str, main_match_index: int = 0, *fallback_columns: str) -> str:
    """Same column policy as `phone`. `""` unless the result is a well-formed address."""
    value = field(row, extract_email, ColumnSliceOptions(main_column, main_match_index), *fallback_columns)
    return value if is_valid_email(value) else ""


def website(row: Row, website_column: str, *email_columns: str) -> str:
    """
    `https://<domain>` from the website column, or from the domain of the first email
    that is not on a common webmail domain.
    """
    value = clean(row.get(website_column))
    if value:
        value = _URL_PREFIX.sub("", value).rstrip("/")
        return f"https://{value}" if value else ""
    for col in email_columns:
        address = email(row, col)
        if not address or ends_with_any(address, COMMON_EMAIL_DOMAINS):
            continue
        domain = _URL_PREFIX.sub("", address.split("@", 1)[1]).rstrip("/")
        return f"https://{domain}"
    return ""


## -- person names

def salutation(row: Row, salutation_column: str | None = None, *name_columns: str) -> str:
    """Salutation column, else a leading `Mr.`/`Dr.`/... found in the first matching name column."""
    value = clean(row.get(salutation_column)) if salutation_column else ""
    if value:
        return value
    for col in name_columns:
        candidate = clean(row.get(col), PERSON_NAME_CLEAN)
        if not candidate:
            continue
        m = SALUTATION_PATTERN.match(candidate)
        if m:
            return m.group(0)
    return ""


def name(row: Row, *name_columns: str) -> NameParts:
    """Name parts from the first column (in precedence order) yielding both a first and a last name."""
    for col in name_columns:
        candidate = clean(row.get(col), PERSON_NAME_CLEAN)
        if not candidate:
            continue
        parts = extract_name(candidate)
        if parts.first and parts.last:
            return parts
    return NameParts()


def first_name(row: Row, first_name_column: str | None = None, *name_columns: str) -> str:
    """
    Dedicated first-name column, unless it is empty or holds several words (a full name
    typed into the wrong column); then `name()` over that column and `name_columns`.
    """
    first = clean(row.get(first_name_column), STRIP_DOT_IF_NOT_ABBREVIATION) if first_name_column else ""
    if not first or len(first.split()) > 1:
        columns = ((first_name_column,) if first_name_column else ()) + name_columns
        first = name(row, *columns).first
    return _trim_edge_punctuation(first)


def middle_name(row: Row, middle_name_column: str | None = None, *name_columns: str) -> str:
    middle = clean(row.get(middle_name_column)) if middle_name_column else ""
    if not middle or len(middle.split()) > 1:
        middle = name(row, *name_columns).middle
    return _trim_edge_punctuation(middle)


def last_name(row: Row, last_name_column: str | None = None, *name_columns: str) -> str:
    last = clean(row.get(last_name_column), STRIP_DOT_IF_NOT_ABBREVIATION) if last_name_column else ""
    if not last or len(last.split()) > 1:
        last = name(row, *name_columns).last
    return _trim_edge_punctuation(last)


def job_title_suffix(row: Row, job_title_column: str | None = None, *name_columns: str) -> str:
    """Job title column, else a credential suffix (`MD`, `DDS`, `Jr`) trailing one of the name columns."""
    title = clean(row.get(job_title_column)) if job_title_column else ""
    if title:
        return title
    for col in name_columns:
        value = clean(row.get(col))
        if not value:
            continue
        suffix = extract_job_title_suffix(value)
        if suffix:
            return _trim_edge_punctuation(suffix)
    return ""
