from __future__ import annotations

from erp_migration.evaluators.common import ColumnSliceOptions, category, field, number, terms
from erp_migration.evaluators.constants import DEFAULT_CUSTOMER_CATEGORIES, DEFAULT_TERMS
from erp_migration.evaluators.item import item_line_id, item_sku, sales_order_external_id
from erp_migration.parsing.primitives import extract_phone


def test_field_walks_column_options_in_order() -> None:
    row = {"A": "", "B": "555-111-2222, 555-333-4444"}
    assert field(row, extract_phone, "A", ColumnSliceOptions("B", 1)) == "555-333-4444"
    assert field(row, extract_phone, "A") == ""


def test_terms_by_key_or_name() -> None:
    assert terms({"T": "Net 30"}, "T", DEFAULT_TERMS) == 2
    assert terms({"T": "net 30"}, "T", DEFAULT_TERMS) == 2
    assert terms({"T": "Net 999"}, "T", DEFAULT_TERMS) is None
    assert terms({"T": ""}, "T", DEFAULT_TERMS) is None


def test_category_lookup() -> None:
    assert category({"C": "retail"}, "C", DEFAULT_CUSTOMER_CATEGORIES) == 2
    assert category({"C": "Spaceport"}, "C", DEFAULT_CUSTOMER_CATEGORIES) is None


def test_number_parsing() -> None:
    assert number({"n": "$1,234.50"}, "n") == 1234.5
    assert number({"n": "(12.50)"}, "n") == -12.5
    assert number({"n": "2.345"}, "n", 2) == 2.35
    assert number({"n": "abc"}, "n") is None
    assert number({"n": "NaN"}, "n") is None
    assert number({"n": "Infinity"}, "n") is None
    assert number({"n": "-inf"}, "n") is None
    assert number({}, "n") is None


def test_item_sku() -> None:
    assert item_sku({"Item": "ABC-1 (Widget)"}, "Item") == "ABC-1"
    assert item_sku({"Item": ""}, "Item") == ""


def test_sales_order_external_id() -> None:
    row = {"S. O. #": "334854", "Num": "24-30376", "P. O. #": "15979"}
    assert sales_order_external_id(row, "S. O. #", "Num", "P. O. #") == "SO:334854_INVOICE:24-30376_PO:15979<salesorder>"
    assert sales_order_external_id({}, "S. O. #", "Num", "P. O. #") == ""


def test_item_line_id() -> None:
    line = {"item": "ABC-1", "quantity": 2.0, "rate": 1.5, "amount": 3.0, "description": "ignored"}
    assert item_line_id(line) == "{item:ABC-1,quantity:2.0,rate:1.5,amount:3.0}"
