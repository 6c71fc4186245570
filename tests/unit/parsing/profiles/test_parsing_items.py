from __future__ import annotations

import pytest

from erp_migration.evaluators.item import item_description, item_external_id, item_id
from erp_migration.ingest.driver import parse_records
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.profiles.items import SERVICE_ITEM_PARSE_DICTIONARY, SERVICE_ITEM_PROCESS_OPTIONS
from erp_migration.parsing.types import IdSearchOptions, RecordOptions
from erp_migration.post_process.processor import process_parse_results
from erp_migration.post_process.prune import prune_item


def _row(item: str, description: str = "", price: str = "", account: str = "4000 Sales:4010 Services") -> dict[str, str]:
    return {
        "Item": item,
        "Description": description,
        "Purchase Description": "Vendor install",
        "Account": account,
        "Price": price,
    }


def test_item_id_takes_cleaned_leaf() -> None:
    assert item_id({"Item": "Services:Install (On site)"}, "Item") == "INSTALL"
    assert item_id({"Item": "Bulk Pacakage - 12 oz."}, "Item") == "BULK_PACKAGE-12"
    assert item_id({"Item": "Fees:S&H"}, "Item") == "S&H"
    assert item_id({"Item": ""}, "Item") == ""


def test_item_id_keeps_raw_value_when_clean_empties_it() -> None:
    assert item_id({"Item": "#"}, "Item") == "#"


def test_item_external_id_and_description() -> None:
    assert item_external_id({"Item": "Services:Install"}, "serviceitem", "Item") == "INSTALL<serviceitem>"
    assert item_external_id({"Item": ""}, "serviceitem", "Item") == ""
    row = {"Description": "", "Purchase Description": "Vendor install"}
    assert item_description(row, "Description", "Purchase Description") == "Vendor install"
    assert item_description(row, "Description") == ""


@pytest.mark.asyncio
async def test_service_items_parse_and_resolve_accounts() -> None:
    context = ParseContext(lookups={"account": {"4010 Services": "54"}, "displayname": {"REPAIR": "Repair Visit"}})
    rows = [
        _row("Services:Install (On site)", "Install labor", "$1,250.005"),
        _row("Services:Repair", "", "80", account="Unknown"),
    ]
    run = await parse_records(list(enumerate(rows, start=1)), SERVICE_ITEM_PARSE_DICTIONARY, context=context)
    results = await process_parse_results(run.results, SERVICE_ITEM_PROCESS_OPTIONS, context)

    install, repair = results["serviceitem"].valid
    assert install.fields["itemid"] == "INSTALL"
    assert install.fields["externalid"] == "INSTALL<serviceitem>"
    assert install.fields["displayname"] == "INSTALL (Install labor)"
    assert install.fields["salesdescription"] == "Install labor"
    assert install.fields["location"] == 1
    assert install.fields["taxschedule"] == 2
    assert install.fields["incomeaccount"] == 54
    assert [(line["pricelevel"], line["price"]) for line in install.sublists["price1"]] == [(1, 1250.01)]
    assert install.id_options == [
        IdSearchOptions("externalid", "is", "INSTALL<serviceitem>"),
        IdSearchOptions("itemid", "is", "INSTALL"),
    ]

    assert repair.fields["displayname"] == "Repair Visit"
    assert repair.fields["salesdescription"] == "Vendor install"
    # unresolved account is left to the ERP default
    assert "incomeaccount" not in repair.fields
    assert results["serviceitem"].invalid == []


def test_prune_item() -> None:
    record = RecordOptions(
        "serviceitem",
        fields={"itemid": "INSTALL", "externalid": "INSTALL<serviceitem>", "incomeaccount": 54},
        sublists={"price1": [{"pricelevel": 1, "line": 0}, {"pricelevel": 1, "price": float("nan"), "line": 1}]},
    )
    out = prune_item(record)
    assert out is not None
    assert out.fields["incomeaccount"] == 54
    assert "price1" not in out.sublists

    unresolved = RecordOptions("serviceitem", fields={"itemid": "X", "externalid": "X<serviceitem>", "incomeaccount": "4010 Services"})
    out = prune_item(unresolved)
    assert out is not None
    assert "incomeaccount" not in out.fields

    assert prune_item(RecordOptions("serviceitem", fields={"externalid": "X<serviceitem>"})) is None
    assert prune_item(RecordOptions("salesorder", fields={"itemid": "X", "externalid": "X<salesorder>"})) is None
