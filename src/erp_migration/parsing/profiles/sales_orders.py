from __future__ import annotations

import asyncio
import logging
from typing import Any

from erp_migration.evaluators import address as addr
from erp_migration.evaluators import entity as ent
from erp_migration.evaluators.common import number, terms
from erp_migration.evaluators.constants import DEFAULT_TERMS
from erp_migration.evaluators.item import SALES_ORDER_RECORD_TYPE, item_line_id, item_sku, sales_order_external_id
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.schema import (
    FieldParseOptions,
    LineIdOptions,
    RecordParseOptions,
    SublistLineParseOptions,
    SubrecordParseOptions,
)
from erp_migration.parsing.types import IdProperty, IdSearchOptions, RecordOptions, SearchOperator, SublistLine
from erp_migration.post_process.prune import prune_sales_order
from erp_migration.post_process.types import ComposeOptions, ProcessOptions

logger = logging.getLogger(__name__)


SALES_ORDER = SALES_ORDER_RECORD_TYPE
ITEM_LOOKUP = "item"


class SalesOrderColumns:
    """Column headers of the legacy sales transaction export."""
    TRAN_ID = "S. O. #"
    INVOICE_NUMBER = "Num"
    PO_NUMBER = "P. O. #"
    TRAN_DATE = "Date"
    SHIP_DATE = "Ship Date"
    ENTITY_ID = "Source Name"
    TERMS = "Terms"
    MEMO = "Memo"
    ITEM = "Item"
    ITEM_DESCRIPTION = "Item Description"
    QUANTITY = "Qty"
    RATE = "Sales Price"
    AMOUNT = "Amount"
    PRIMARY_CONTACT = "Name Contact"
    STREET_ONE = "Name Street1"
    STREET_TWO = "Name Street2"
    CITY = "Name City"
    STATE = "Name State"
    ZIP = "Name Zip"
    COUNTRY = "Name Country"
    SHIP_TO_STREET_ONE = "Ship To Address 1"
    SHIP_TO_STREET_TWO = "Ship To Address 2"
    SHIP_TO_CITY = "Ship To City"
    SHIP_TO_STATE = "Ship To State"
    SHIP_TO_ZIP = "Ship Zip"
    SHIP_TO_COUNTRY = "Ship To Country"


SO = SalesOrderColumns

BILLING_NAME_COLUMNS = (SO.STREET_ONE, SO.STREET_TWO, SO.PRIMARY_CONTACT, SO.ENTITY_ID)
SHIPPING_NAME_COLUMNS = (SO.SHIP_TO_STREET_ONE, SO.SHIP_TO_STREET_TWO, SO.PRIMARY_CONTACT, SO.ENTITY_ID)


def _address_options(
    *,
    line_one: str,
    line_two: str,
    city: str,
    state: str,
    zip_code: str,
    country: str,
    name_columns: tuple[str, ...],
) -> SubrecordParseOptions:
    street_kwargs: dict[str, Any] = {
        "line_one_column": line_one,
        "line_two_column": line_two,
        "entity_id_column": SO.ENTITY_ID,
        "name_columns": name_columns,
    }
    return SubrecordParseOptions(
        subrecord_type="address",
        field_options={
            "country": FieldParseOptions(evaluator=addr.country, args=(country, state)),
            "addressee": FieldParseOptions(evaluator=addr.addressee, args=(SO.ENTITY_ID,)),
            "attention": FieldParseOptions(evaluator=addr.attention, args=(SO.ENTITY_ID, *name_columns)),
            "addr1": FieldParseOptions(evaluator=addr.street, args=(1,), kwargs=street_kwargs),
            "addr2": FieldParseOptions(evaluator=addr.street, args=(2,), kwargs=street_kwargs),
            "city": FieldParseOptions(col_name=city),
            "state": FieldParseOptions(evaluator=addr.state, args=(state,)),
            "zip": FieldParseOptions(col_name=zip_code),
        },
    )


SALES_ORDER_PARSE_OPTIONS = RecordParseOptions(
    key_column=SO.TRAN_ID,
    field_options={
        "externalid": FieldParseOptions(
            evaluator=sales_order_external_id, args=(SO.TRAN_ID, SO.INVOICE_NUMBER, SO.PO_NUMBER),
        ),
        "entity": FieldParseOptions(evaluator=ent.entity_id, args=(SO.ENTITY_ID,)),
        "terms": FieldParseOptions(evaluator=terms, args=(SO.TERMS, DEFAULT_TERMS)),
        "trandate": FieldParseOptions(col_name=SO.TRAN_DATE),
        "shipdate": FieldParseOptions(col_name=SO.SHIP_DATE),
        "otherrefnum": FieldParseOptions(col_name=SO.PO_NUMBER),
        "memo": FieldParseOptions(col_name=SO.MEMO),
        "billingaddress": _address_options(
            line_one=SO.STREET_ONE, line_two=SO.STREET_TWO,
            city=SO.CITY, state=SO.STATE, zip_code=SO.ZIP, country=SO.COUNTRY,
            name_columns=BILLING_NAME_COLUMNS,
        ),
        "shippingaddress": _address_options(
            line_one=SO.SHIP_TO_STREET_ONE, line_two=SO.SHIP_TO_STREET_TWO,
            city=SO.SHIP_TO_CITY, state=SO.SHIP_TO_STATE, zip_code=SO.SHIP_TO_ZIP, country=SO.SHIP_TO_COUNTRY,
            name_columns=SHIPPING_NAME_COLUMNS,
        ),
    },
    sublist_options={
        "item": (
            SublistLineParseOptions(
                line_id_options=LineIdOptions(line_id_evaluator=item_line_id),
                field_options={
                    "item": FieldParseOptions(evaluator=item_sku, args=(SO.ITEM,)),
                    "quantity": FieldParseOptions(evaluator=number, args=(SO.QUANTITY,)),
                    "rate": FieldParseOptions(evaluator=number, args=(SO.RATE,)),
                    "amount": FieldParseOptions(evaluator=number, args=(SO.AMOUNT,)),
                    "description": FieldParseOptions(col_name=SO.ITEM_DESCRIPTION),
                },
            ),
        ),
    },
)

SALES_ORDER_PARSE_DICTIONARY = {SALES_ORDER: SALES_ORDER_PARSE_OPTIONS}


## -- post-processing

def _round_cents(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return round(float(value), 2)
    return value


async def compose_item_lines(record: RecordOptions, lines: list[SublistLine], context: ParseContext) -> list[SublistLine]:
    """
    Resolve each line's SKU to the item's internal id through the run's `item` lookup
    (lookups run concurrently, cached per run). Unresolved SKUs stay as text for prune to catch.

    `quantity` is forced to its absolute value; `rate` and `amount` are rounded to cents.
    """
    skus = [line.get("item") if isinstance(line.get("item"), str) else None for line in lines]
    resolved = await asyncio.gather(*(context.lookup(ITEM_LOOKUP, sku) if sku else _none() for sku in skus))

    for line, sku, internalid in zip(lines, skus, resolved):
        if sku:
            if internalid is None:
                logger.warning("%s %r: item %r not found, left unresolved", SALES_ORDER, record.fields.get("externalid"), sku)
            else:
                line["item"] = int(internalid) if str(internalid).lstrip("-").isdigit() else internalid
        quantity = line.get("quantity")
        if isinstance(quantity, (int, float)) and not isinstance(quantity, bool):
            line["quantity"] = abs(quantity)
        for field_id in ("rate", "amount"):
            if field_id in line:
                line[field_id] = _round_cents(line[field_id])
    return lines


async def _none() -> None:
    return None


def compose_sales_order_id_options(
    record: RecordOptions,
    current: list[IdSearchOptions],
    context: ParseContext,
) -> list[IdSearchOptions]:
    """Find an existing order by external id, or by its sales order number."""
    out = list(current)
    external_id = record.fields.get("externalid")
    if not external_id:
        return out
    out.append(IdSearchOptions(IdProperty.externalid.value, SearchOperator.is_.value, external_id))
    # `SO:<number>_...` -> `<number>`
    head = str(external_id).split("_", 1)[0]
    if head.startswith("SO:") and head[3:]:
        out.append(IdSearchOptions(IdProperty.tranid.value, SearchOperator.is_.value, head[3:]))
    return out


SALES_ORDER_PROCESS_OPTIONS = {
    SALES_ORDER: ProcessOptions(
        compose_options=ComposeOptions(
            id_options=compose_sales_order_id_options,
            sublists={"item": compose_item_lines},
        ),
        prune_func=prune_sales_order,
    ),
}
