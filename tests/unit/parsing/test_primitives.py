from __future__ import annotations

import pytest

from erp_migration.evaluators.entity import ENTITY_ID_CLEAN, PERSON_NAME_CLEAN
from erp_migration.parsing.primitives import (
    STANDARD_CLEAN,
    CleanOptions,
    clean,
    equivalent_alphanumeric,
    extract_email,
    extract_job_title_suffix,
    extract_leaf,
    extract_name,
    extract_phone,
    extract_sku,
)


SAMPLES = [
    "  ..Acme   Corp.. ",
    "Acme Inc.",
    "Health Ctr",
    "Foo — Bar",
    "Smith-  Jones",
    "Attn: Jane Doe,,",
    "N/A",
    "",
    None,
    "x.",
    ". . . . . . . . Acme",
    "Acme . . . . . . . .",
]


@pytest.mark.parametrize("options", [None, STANDARD_CLEAN, ENTITY_ID_CLEAN, PERSON_NAME_CLEAN, CleanOptions(case="upper")])
def test_clean_is_idempotent(options) -> None:
    """Cleaning an already clean value changes nothing."""
    for s in SAMPLES:
        once = clean(s, options)
        assert clean(once, options) == once


def test_clean_strips_interleaved_leading_dots() -> None:
    assert clean(". . . . . . . . Acme", STANDARD_CLEAN) == "Acme"
    assert clean("Acme . . . . . . . .", STANDARD_CLEAN) == "Acme"


def test_clean_strips_trailing_dot_unless_abbreviation() -> None:
    assert clean("Acme Corp.", STANDARD_CLEAN) == "Acme Corp"
    assert clean("Acme Inc.", STANDARD_CLEAN) == "Acme Inc."
    assert clean(".Main St.", STANDARD_CLEAN) == "Main St."


def test_clean_null_like_cells_become_empty() -> None:
    for raw in (None, "", "   ", "null", "NA", "n/a"):
        assert clean(raw) == ""
    # `None` as a word is a legitimate value in legacy exports
    assert clean("None") == "None"


def test_clean_case_and_replace() -> None:
    opts = CleanOptions(case="lower", replace=((r"\s*-\s*", "-"),))
    assert clean("  ABC -  DEF ", opts) == "abc-def"


def test_extract_name_shapes() -> None:
    parts = extract_name("John Smith")
    assert (parts.first, parts.middle, parts.last) == ("John", "", "Smith")

    parts = extract_name("Dr. Jane Q. Doe, MD")
    assert (parts.first, parts.middle, parts.last) == ("Jane", "Q", "Doe")

    parts = extract_name("Doe, Jane")
    assert (parts.first, parts.last) == ("Jane", "Doe")


def test_extract_name_never_raises_on_non_names() -> None:
    for text in ("Acme", "123 Main St", "", None, 42):
        assert extract_name(text).full() == ""


def test_extract_job_title_suffix() -> None:
    assert extract_job_title_suffix("John Smith, MD") == "MD"
    assert extract_job_title_suffix("John Smith Jr.") == "Jr"
    assert extract_job_title_suffix("John Smith") == ""


def test_extract_phone_returns_every_number_in_order() -> None:
    assert extract_phone("555-123-4567 / (555) 987-6543") == ["555-123-4567", "555-987-6543"]
    assert extract_phone("555.123.4567 x 12") == ["555-123-4567 ext 12"]
    assert extract_phone("no phone here") is None
    assert extract_phone(None) is None


def test_extract_email_returns_every_address() -> None:
    assert extract_email("a@x.com; b@y.org") == ["a@x.com", "b@y.org"]
    assert extract_email("nobody") is None


def test_extract_leaf() -> None:
    assert extract_leaf("CLASS:PARENT (description)") == "PARENT"
    assert extract_leaf("A:B:C") == "C"
    assert extract_leaf("plain") == "plain"
    assert extract_leaf(None) == ""


def test_extract_sku() -> None:
    assert extract_sku("ABC-1 (Widget)") == "ABC-1"
    assert extract_sku("DISCOUNT (Discount)") == "DISCOUNT"
    assert extract_sku("S&H (Shipping)") == "S&H"
    assert extract_sku("XYZ") == "XYZ"


def test_equivalent_alphanumeric() -> None:
    assert equivalent_alphanumeric("123 Main St", "123 main st.")
    assert equivalent_alphanumeric("Acme Corp", "ACME, CORP")
    assert not equivalent_alphanumeric("Acme Corp", "Zebra Holdings")
    assert not equivalent_alphanumeric("", "x")
    assert not equivalent_alphanumeric(None, "x")
