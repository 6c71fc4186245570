from __future__ import annotations

from erp_migration.evaluators.address import addressee, attention, country, state, street


def test_attention_redundant_with_entity_is_empty() -> None:
    row = {"entity": "John Smith", "nameCol": "John Smith"}
    assert attention(row, "entity", "nameCol") == ""


def test_attention_builds_full_name() -> None:
    row = {"entity": "Acme Corp", "contact": "Jane Doe", "sal": "Dr", "title": "DDS"}
    assert attention(row, "entity", "contact") == "Jane Doe"
    assert attention(row, "entity", "contact", salutation_column="sal", title_column="title") == "Dr. Jane Doe, DDS"


def test_attention_needs_first_and_last_name() -> None:
    assert attention({"entity": "Acme Corp", "contact": "Jane"}, "entity", "contact") == ""


def test_addressee_prefers_company() -> None:
    assert addressee({"entity": "ACME-01", "company": "Acme Corp"}, "entity", "company") == "Acme Corp"
    assert addressee({"entity": "Acme Corp"}, "entity") == "Acme Corp"


def _street_kwargs() -> dict:
    return {"line_one_column": "s1", "line_two_column": "s2", "entity_id_column": "entity"}


def test_street_lines_pass_through() -> None:
    row = {"entity": "Acme Corp", "s1": "123 Main St", "s2": "Suite 4"}
    assert street(row, 1, **_street_kwargs()) == "123 Main St"
    assert street(row, 2, **_street_kwargs()) == "Suite 4"


def test_street_drops_a_name_line() -> None:
    row = {"entity": "Acme Corp", "s1": "Acme Corp", "s2": "123 Main St"}
    assert street(row, 1, **_street_kwargs()) == "123 Main St"
    assert street(row, 2, **_street_kwargs()) == ""


def test_street_drops_an_attention_line() -> None:
    row = {"entity": "Acme Corp", "contact": "Jane Doe", "s1": "Attn: Jane Doe", "s2": "500 Oak Ave"}
    kwargs = {**_street_kwargs(), "name_columns": ("contact",)}
    assert street(row, 1, **kwargs) == "500 Oak Ave"
    assert street(row, 2, **kwargs) == ""


def test_street_rejects_bad_line_number() -> None:
    assert street({"s1": "123 Main St"}, 3, **_street_kwargs()) == ""


def test_state_name_or_code() -> None:
    assert state({"st": "Illinois"}, "st") == "IL"
    assert state({"st": "il"}, "st") == "IL"
    assert state({"st": "Narnia"}, "st") == ""
    assert state({}, "st") == ""


def test_country_defaults_to_us_for_us_states() -> None:
    assert country({"c": "", "st": "IL"}, "c", "st") == "US"
    assert country({"c": "Canada", "st": "ON"}, "c", "st") == "CA"
    assert country({"c": "united states"}, "c") == "US"
    assert country({}, "c", "st") == ""
