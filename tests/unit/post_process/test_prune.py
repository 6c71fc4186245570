from __future__ import annotations

from erp_migration.parsing.types import RecordOptions, SubrecordValue
from erp_migration.post_process.prune import (
    prune_address,
    prune_address_book,
    prune_contact,
    prune_entity,
    prune_sales_order,
)


def _address(**fields) -> SubrecordValue:
    return SubrecordValue("address", fields=dict(fields), sublists={"x": [{"line": 0}]})


def _address_book(*addresses: SubrecordValue) -> list[dict]:
    return [{"label": f"L{i}", "line": i, "addressbookaddress": a} for i, a in enumerate(addresses)]


def test_prune_address_requires_addr1() -> None:
    assert prune_address(_address(city="Springfield")) is None
    assert prune_address(None) is None


def test_prune_address_drops_attention_restating_addressee() -> None:
    out = prune_address(_address(addr1="1 Main St", addressee="Acme Corp", attention="ACME corp"))
    assert out is not None
    assert "attention" not in out.fields
    assert out.sublists == {}

    out = prune_address(_address(addr1="1 Main St", addressee="Acme Corp", attention="Jane Doe"))
    assert out.fields["attention"] == "Jane Doe"


def test_prune_address_book_keeps_only_valid_lines() -> None:
    record = RecordOptions(
        "customer",
        sublists={"addressbook": _address_book(_address(addr1="1 Main St"), _address(city="Nowhere"))},
    )
    out = prune_address_book(record)
    assert [line["label"] for line in out.sublists["addressbook"]] == ["L0"]

    record = RecordOptions("customer", sublists={"addressbook": _address_book(_address(city="Nowhere"))})
    assert "addressbook" not in prune_address_book(record).sublists


def test_prune_entity_company_drops_person_fields() -> None:
    record = RecordOptions(
        "customer",
        fields={"entityid": "Acme Corp", "companyname": "Acme Corp", "isperson": "F", "firstname": "Acme", "lastname": "Corp"},
    )
    out = prune_entity(record)
    assert out is not None
    assert out.fields == {"entityid": "Acme Corp", "companyname": "Acme Corp", "isperson": "F"}


def test_prune_entity_person_needs_names() -> None:
    person = {"entityid": "Jane Doe", "companyname": "Jane Doe", "isperson": "T"}
    assert prune_entity(RecordOptions("customer", fields={**person, "firstname": "Jane"})) is None
    assert prune_entity(RecordOptions("customer", fields={**person, "firstname": "Jane", "lastname": "Doe"})) is not None


def test_prune_entity_requires_ids_and_entity_type() -> None:
    assert prune_entity(RecordOptions("customer", fields={"entityid": "Acme Corp"})) is None
    assert prune_entity(RecordOptions("salesorder", fields={"entityid": "A", "companyname": "A"})) is None


def test_prune_contact() -> None:
    base = {"entityid": "Acme Corp", "company": "Acme Corp", "firstname": "Jane", "lastname": "Doe"}

    out = prune_contact(RecordOptions("contact", fields={**base, "isperson": "F"}))
    assert out is not None
    assert "isperson" not in out.fields

    assert prune_contact(RecordOptions("contact", fields={**base, "isperson": "T"})) is None
    assert prune_contact(RecordOptions("contact", fields={"entityid": "Acme Corp", "firstname": "Jane"})) is None
    # the company's own name split into first/last is not a contact
    assert prune_contact(RecordOptions("contact", fields={**base, "firstname": "Acme", "lastname": "Corp"})) is None


def _order(*lines: dict, **fields) -> RecordOptions:
    body = {"entity": "Acme Corp", "trandate": "2024-01-15", "externalid": "SO:1<salesorder>", **fields}
    return RecordOptions("salesorder", fields=body, sublists={"item": list(lines)})


def test_prune_sales_order_drops_unresolved_lines() -> None:
    out = prune_sales_order(_order({"item": 501, "amount": 10.0, "line": 0}, {"item": "NOPE-9", "amount": 1.0, "line": 1}))
    assert out is not None
    assert [line["item"] for line in out.sublists["item"]] == [501]


def test_prune_sales_order_rejects() -> None:
    assert prune_sales_order(_order({"item": "NOPE-9", "amount": 1.0})) is None
    assert prune_sales_order(_order({"item": 501, "amount": -1.0})) is None
    assert prune_sales_order(_order({"item": 501, "amount": float("nan")})) is None
    assert prune_sales_order(_order({"item": 501, "amount": float("inf")})) is None
    assert prune_sales_order(_order({"item": 501})) is None
    assert prune_sales_order(_order({"item": 501, "amount": 1.0}, entity="")) is None


def test_prune_sales_order_deletes_invalid_addresses() -> None:
    out = prune_sales_order(
        _order(
            {"item": 501, "amount": 10.0},
            billingaddress=_address(addr1="1 Main St"),
            shippingaddress=_address(city="Nowhere"),
        )
    )
    assert out is not None
    assert out.fields["billingaddress"].fields == {"addr1": "1 Main St"}
    assert "shippingaddress" not in out.fields
