from __future__ import annotations

import pytest

from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.interpreter import build_record_options, parse_field_dictionary, resolve_field
from erp_migration.parsing.schema import (
    FieldParseOptions,
    LineIdOptions,
    ParseConfigError,
    RecordParseOptions,
    SublistLineParseOptions,
    SubrecordParseOptions,
    ValueMappingEntry,
)
from erp_migration.parsing.types import LINE_ID_KEY, LINE_ID_PROP_KEY, LINE_KEY, SubrecordValue


def _upper(row, col):
    return str(row.get(col, "")).upper()


def _boom(row, *args):
    raise RuntimeError("evaluator bug")


@pytest.mark.asyncio
async def test_null_like_values_are_omitted_not_none() -> None:
    """A field without a value is absent from the output, not present as `None`."""
    fields = await parse_field_dictionary(
        {"Name": "Acme", "Blank": "  "},
        {
            "companyname": FieldParseOptions(col_name="Name"),
            "comments": FieldParseOptions(col_name="Blank"),
            "missing": FieldParseOptions(col_name="Not In Row"),
            "upper": FieldParseOptions(evaluator=_upper, args=("Blank",)),
        },
        ParseContext(),
    )
    assert fields == {"companyname": "Acme"}
    assert "comments" not in fields
    assert "missing" not in fields
    assert "upper" not in fields


@pytest.mark.asyncio
async def test_default_value_backs_up_empty_sources() -> None:
    ctx = ParseContext()
    assert await resolve_field({}, "taxable", FieldParseOptions(default_value=True), ctx) is True
    assert await resolve_field({"T": ""}, "terms", FieldParseOptions(col_name="T", default_value=2), ctx) == 2
    assert await resolve_field({"T": "x"}, "terms", FieldParseOptions(col_name="T", default_value=2), ctx) == "x"


def test_col_name_and_evaluator_are_mutually_exclusive() -> None:
    with pytest.raises(ParseConfigError):
        FieldParseOptions(col_name="A", evaluator=_upper)
    with pytest.raises(ParseConfigError):
        FieldParseOptions()
    with pytest.raises(ParseConfigError):
        FieldParseOptions(col_name="A", args=("B",))


def test_line_id_options_need_exactly_one_member() -> None:
    with pytest.raises(ParseConfigError):
        LineIdOptions()
    with pytest.raises(ParseConfigError):
        LineIdOptions(line_id_prop="label", line_id_evaluator=lambda line: "x")


@pytest.mark.asyncio
async def test_failing_evaluator_only_loses_its_own_field() -> None:
    fields = await parse_field_dictionary(
        {"Name": "acme"},
        {
            "broken": FieldParseOptions(evaluator=_boom),
            "companyname": FieldParseOptions(evaluator=_upper, args=("Name",)),
        },
        ParseContext(),
    )
    assert fields == {"companyname": "ACME"}


@pytest.mark.asyncio
async def test_value_mapping_overrides_evaluator_output() -> None:
    ctx = ParseContext(value_mapping={"ACME": "Acme Corporation"})
    value = await resolve_field({"Name": "acme"}, "companyname", FieldParseOptions(evaluator=_upper, args=("Name",)), ctx)
    assert value == "Acme Corporation"


@pytest.mark.asyncio
async def test_scoped_value_mapping_applies_only_to_its_columns() -> None:
    ctx = ParseContext(value_mapping={"ACME": ValueMappingEntry(new_value="Acme Corporation", valid_columns=("Name",))})
    row = {"Name": "acme", "Other": "acme"}
    opts_name = FieldParseOptions(evaluator=_upper, args=("Name",))
    opts_other = FieldParseOptions(evaluator=_upper, args=("Other",))
    assert await resolve_field(row, "a", opts_name, ctx) == "Acme Corporation"
    assert await resolve_field(row, "b", opts_other, ctx) == "ACME"


@pytest.mark.asyncio
async def test_async_evaluator_and_context_injection() -> None:
    seen = {}

    async def lookup_evaluator(row, col, *, context):
        seen["context"] = context
        return await context.lookup("item", row[col])

    ctx = ParseContext(lookups={"item": {"ABC-1": 501}})
    opts = FieldParseOptions(evaluator=lookup_evaluator, args=("Item",), with_context=True)
    assert await resolve_field({"Item": "ABC-1"}, "item", opts, ctx) == 501
    assert seen["context"] is ctx


@pytest.mark.asyncio
async def test_subrecords_recurse_and_empty_ones_are_omitted() -> None:
    address = SubrecordParseOptions(
        subrecord_type="address",
        field_options={"addr1": FieldParseOptions(col_name="Street"), "city": FieldParseOptions(col_name="City")},
    )
    fields = await parse_field_dictionary(
        {"Street": "123 Main St", "City": ""},
        {"billingaddress": address, "shippingaddress": SubrecordParseOptions(
            subrecord_type="address", field_options={"addr1": FieldParseOptions(col_name="Ship Street")},
        )},
        ParseContext(),
    )
    assert isinstance(fields["billingaddress"], SubrecordValue)
    assert fields["billingaddress"].subrecord_type == "address"
    assert fields["billingaddress"].field_id == "billingaddress"
    assert fields["billingaddress"].fields == {"addr1": "123 Main St"}
    assert "shippingaddress" not in fields


@pytest.mark.asyncio
async def test_sublist_lines_carry_line_index_and_identity() -> None:
    options = RecordParseOptions(
        key_column="Id",
        field_options={"entityid": FieldParseOptions(col_name="Id")},
        sublist_options={
            "addressbook": (
                SublistLineParseOptions(
                    line_id_options=LineIdOptions(line_id_prop="label"),
                    field_options={"label": FieldParseOptions(col_name="Bill")},
                ),
                SublistLineParseOptions(
                    field_options={"label": FieldParseOptions(col_name="Nothing Here")},
                ),
                SublistLineParseOptions(
                    line=7,
                    line_id_options=LineIdOptions(line_id_evaluator=lambda line, prefix: f"{prefix}{line['label']}", args=("id:",)),
                    field_options={"label": FieldParseOptions(col_name="Ship")},
                ),
            ),
        },
    )
    record = await build_record_options({"Id": "C1", "Bill": "Main", "Ship": "Dock"}, "customer", options)
    assert record.record_type == "customer"
    assert record.fields == {"entityid": "C1"}

    lines = record.sublists["addressbook"]
    assert len(lines) == 2
    assert lines[0] == {"label": "Main", LINE_KEY: 0, LINE_ID_PROP_KEY: "label"}
    assert lines[1][LINE_KEY] == 7
    assert lines[1][LINE_ID_KEY] == "id:Dock"
