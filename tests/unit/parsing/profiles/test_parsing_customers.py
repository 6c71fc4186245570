from __future__ import annotations

from typing import Any

import pytest

from erp_migration.ingest.driver import parse_records
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.profiles.customers import (
    CUSTOMER_PARSE_DICTIONARY,
    CUSTOMER_PROCESS_OPTIONS,
    compose_customer_id_options,
)
from erp_migration.parsing.types import IdSearchOptions, RecordOptions, RejectCode
from erp_migration.post_process.processor import process_parse_results


async def _migrate(*rows: dict[str, Any], context: ParseContext | None = None):
    context = context or ParseContext()
    run = await parse_records(list(enumerate(rows, start=1)), CUSTOMER_PARSE_DICTIONARY, context=context)
    return run, await process_parse_results(run.results, CUSTOMER_PROCESS_OPTIONS, context)


@pytest.mark.asyncio
async def test_company_customer_with_billing_address() -> None:
    """A company keeps its address book; its own name is not turned into a contact."""
    row = {
        "Customer": "Acme Corp.",
        "Company": "Acme Corp.",
        "Street1": "123 Main St",
        "City": "Springfield",
        "State": "IL",
        "Zip": "62704",
    }
    run, results = await _migrate(row)

    (parsed,) = run.results["customer"]
    assert parsed.fields["isperson"] == "F"
    assert parsed.fields["entityid"] == "Acme Corp"
    assert parsed.fields["companyname"] == "Acme Corp"

    assert list(results) == ["contact", "customer"]
    (customer,) = results["customer"].valid
    assert "firstname" not in customer.fields
    assert "lastname" not in customer.fields
    assert customer.fields["externalid"] == "Acme Corp<customer>"

    (line,) = customer.sublists["addressbook"]
    assert line["defaultbilling"] is True
    address = line["addressbookaddress"].fields
    assert address["addr1"] == "123 Main St"
    assert address["city"] == "Springfield"
    assert address["state"] == "IL"
    assert address["zip"] == "62704"
    assert address["country"] == "US"
    assert "attention" not in address

    assert customer.id_options == [
        IdSearchOptions("entityid", "is", "Acme Corp"),
        IdSearchOptions("externalid", "is", "Acme Corp&lt;customer&gt;"),
    ]

    assert results["contact"].valid == []
    (invalid,) = results["contact"].invalid
    assert invalid.reason_code is RejectCode.pruned


@pytest.mark.asyncio
async def test_person_customer_has_no_contact() -> None:
    run, results = await _migrate({"Customer": "Jane Doe"})

    (customer,) = results["customer"].valid
    assert customer.fields["isperson"] == "T"
    assert customer.fields["firstname"] == "Jane"
    assert customer.fields["lastname"] == "Doe"
    assert customer.fields["companyname"] == "Jane Doe"
    assert "addressbook" not in customer.sublists

    assert results["contact"].valid == []
    assert len(results["contact"].invalid) == 1


@pytest.mark.asyncio
async def test_rows_without_customer_are_skipped_for_both_record_types() -> None:
    run, results = await _migrate({"Customer": "", "Company": "Orphan Inc"})
    assert run.skipped == {"customer": 1, "contact": 1}
    assert results["customer"].valid == []


def test_customer_id_options_are_deduplicated() -> None:
    record = RecordOptions(
        "customer",
        fields={
            "entityid": "Smith Consulting",
            "companyname": "Smith Consulting",
            "externalid": "Smith Consulting<customer>",
            "firstname": "John",
            "lastname": "Smith",
        },
    )
    out = compose_customer_id_options(record, [], ParseContext())
    assert [(o.id_prop, o.id_value) for o in out] == [
        ("entityid", "Smith Consulting"),
        ("externalid", "Smith Consulting&lt;customer&gt;"),
        ("externalid", "John Smith&lt;customer&gt;"),
    ]
