from __future__ import annotations

import pytest

from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.types import IdSearchOptions, RecordOptions, RejectCode
from erp_migration.post_process.processor import (
    clone_record,
    compose_record,
    get_composite_dictionaries,
    get_record_id,
    process_parse_results,
    validate_operation_order,
)
from erp_migration.post_process.types import (
    CloneOptions,
    ComposeOptions,
    PostProcessingOperation,
    ProcessOptions,
)


def _customer(entity_id: str, **fields) -> RecordOptions:
    return RecordOptions(
        "customer",
        fields={"entityid": entity_id, **fields},
        sublists={"addressbook": [{"label": "Main", "line": 0}]},
    )


def test_validate_operation_order() -> None:
    assert validate_operation_order("customer", ["prune", "clone", "compose"]) == [
        PostProcessingOperation.prune,
        PostProcessingOperation.clone,
        PostProcessingOperation.compose,
    ]
    with pytest.raises(ValueError):
        validate_operation_order("customer", ["clone", "prune"])
    with pytest.raises(ValueError):
        validate_operation_order("customer", ["clone", "compose", "prune", "prune"])
    with pytest.raises(ValueError):
        validate_operation_order("customer", ["clone", "compose", "delete"])


def test_get_record_id_prefers_composed_id_options() -> None:
    record = _customer("ACME-01")
    assert get_record_id(record, "entityid") == "ACME-01"
    record.id_options = [IdSearchOptions("entityid", "is", "ACME-02")]
    assert get_record_id(record, "entityid") == "ACME-02"


def test_clone_copies_deeply_from_matching_donor() -> None:
    donor = _customer("ACME-01", phone="555-123-4567")
    other = _customer("OTHER", phone="555-000-0000")
    recipient = RecordOptions("contact", fields={"entityid": "ACME-01"})
    options = CloneOptions(
        donor_type="customer", recipient_type="contact", id_prop="entityid",
        field_ids=("phone", "fax"), sublist_ids=("addressbook",),
    )

    out = clone_record({"customer": [other, donor]}, recipient, options)

    assert out.fields == {"entityid": "ACME-01", "phone": "555-123-4567"}
    assert out.sublists["addressbook"] == donor.sublists["addressbook"]
    out.sublists["addressbook"][0]["label"] = "changed"
    assert donor.sublists["addressbook"][0]["label"] == "Main"


def test_clone_without_donor_leaves_recipient_unchanged() -> None:
    recipient = RecordOptions("contact", fields={"entityid": "NOBODY"})
    options = CloneOptions(donor_type="customer", recipient_type="contact", id_prop="entityid", field_ids=("phone",))
    assert clone_record({"customer": [_customer("ACME-01", phone="1")]}, recipient, options).fields == {"entityid": "NOBODY"}


def test_clone_rejects_wrong_recipient_type() -> None:
    options = CloneOptions(donor_type="customer", recipient_type="contact", id_prop="entityid")
    with pytest.raises(ValueError):
        clone_record({}, _customer("ACME-01"), options)


@pytest.mark.asyncio
async def test_compose_runs_sync_and_async_composers() -> None:
    def fields(record, current, context):
        return {**current, "companyname": current["entityid"].title()}

    async def id_options(record, current, context):
        return [*current, IdSearchOptions("entityid", "is", record.fields["entityid"])]

    def labels(record, lines, context):
        return [{**line, "label": line["label"].upper()} for line in lines]

    record = await compose_record(
        _customer("acme"),
        ComposeOptions(id_options=id_options, fields=fields, sublists={"addressbook": labels}),
        ParseContext(),
    )
    assert record.fields["companyname"] == "Acme"
    assert record.id_options == [IdSearchOptions("entityid", "is", "acme")]
    assert record.sublists["addressbook"][0]["label"] == "MAIN"


@pytest.mark.asyncio
async def test_compose_drops_a_sublist_left_empty() -> None:
    record = await compose_record(
        _customer("acme"),
        ComposeOptions(sublists={"addressbook": lambda record, lines, context: []}),
        ParseContext(),
    )
    assert "addressbook" not in record.sublists


@pytest.mark.asyncio
async def test_operations_run_in_configured_order() -> None:
    calls: list[str] = []

    def composer(record, current, context):
        calls.append("compose")
        return current

    def prune(record):
        calls.append("prune")
        return record

    options = ProcessOptions(
        operation_order=("prune", "compose", "clone"),
        compose_options=ComposeOptions(fields=composer),
        prune_func=prune,
    )
    await process_parse_results({"customer": [_customer("A")]}, {"customer": options})
    assert calls == ["prune", "compose"]


@pytest.mark.asyncio
async def test_records_are_partitioned_with_reasons() -> None:
    def composer(record, current, context):
        if current["entityid"] == "BROKEN":
            raise KeyError("boom")
        return current

    prune_calls: list[str] = []

    def prune(record):
        prune_calls.append(record.fields["entityid"])
        return None if record.fields["entityid"] == "EMPTY" else record

    results = await process_parse_results(
        {"customer": [_customer("OK"), _customer("BROKEN"), _customer("EMPTY")]},
        {"customer": ProcessOptions(compose_options=ComposeOptions(fields=composer), prune_func=prune)},
    )

    res = results["customer"]
    assert [r.fields["entityid"] for r in res.valid] == ["OK"]
    assert [(i.record.fields["entityid"], i.reason_code) for i in res.invalid] == [
        ("BROKEN", RejectCode.compose_failed),
        ("EMPTY", RejectCode.pruned),
    ]
    # invalidated records skip the later operations
    assert prune_calls == ["OK", "EMPTY"]


@pytest.mark.asyncio
async def test_prune_that_raises_invalidates_only_that_record() -> None:
    def prune(record):
        if record.fields["entityid"] == "B":
            raise RuntimeError("bad record")
        return record

    results = await process_parse_results(
        {"customer": [_customer("A"), _customer("B")]},
        {"customer": ProcessOptions(prune_func=prune)},
    )
    assert [r.fields["entityid"] for r in results["customer"].valid] == ["A"]
    (invalid,) = results["customer"].invalid
    assert invalid.reason_code is RejectCode.prune_failed
    assert "bad record" in invalid.reason_detail


@pytest.mark.asyncio
async def test_unconfigured_record_types_pass_through() -> None:
    results = await process_parse_results({"customer": [_customer("A")]}, None)
    assert [r.fields["entityid"] for r in results["customer"].valid] == ["A"]
    assert results["customer"].invalid == []


@pytest.mark.asyncio
async def test_bad_operation_order_raises_before_any_record() -> None:
    touched: list[str] = []

    def prune(record):
        touched.append("prune")
        return record

    with pytest.raises(ValueError):
        await process_parse_results(
            {"customer": [_customer("A")]},
            {"customer": ProcessOptions(operation_order=("prune",), prune_func=prune)},
        )
    assert touched == []


@pytest.mark.asyncio
async def test_get_composite_dictionaries() -> None:
    results = await process_parse_results(
        {"customer": [_customer("A"), _customer("B")], "contact": [RecordOptions("contact")]},
        {"customer": ProcessOptions(prune_func=lambda r: r if r.fields["entityid"] == "A" else None)},
    )
    valid, invalid = get_composite_dictionaries(results)
    assert [r.fields["entityid"] for r in valid["customer"]] == ["A"]
    assert len(valid["contact"]) == 1
    assert list(invalid) == ["customer"]


@pytest.mark.asyncio
async def test_partition_depends_on_operation_order() -> None:
    """A contact that only has a phone once cloned is valid after clone, invalid before it."""

    def needs_phone(record):
        return record if record.fields.get("phone") else None

    def run(order):
        options = ProcessOptions(
            operation_order=order,
            clone_options=CloneOptions(
                donor_type="customer", recipient_type="contact", id_prop="entityid", field_ids=("phone",),
            ),
            prune_func=needs_phone,
        )
        initial = {
            "customer": [_customer("ACME-01", phone="555-123-4567")],
            "contact": [RecordOptions("contact", fields={"entityid": "ACME-01"})],
        }
        return process_parse_results(initial, {"contact": options})

    clone_first = (await run(("clone", "compose", "prune")))["contact"]
    prune_first = (await run(("prune", "clone", "compose")))["contact"]

    assert len(clone_first.valid) == 1 and clone_first.invalid == []
    assert prune_first.valid == [] and len(prune_first.invalid) == 1
