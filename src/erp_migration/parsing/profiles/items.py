from __future__ import annotations

from erp_migration.evaluators.common import number
from erp_migration.evaluators.item import (
    SERVICE_ITEM_RECORD_TYPE,
    account_id,
    item_description,
    item_display_name,
    item_external_id,
    item_id,
)
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.schema import FieldParseOptions, RecordParseOptions, SublistLineParseOptions
from erp_migration.parsing.types import IdProperty, IdSearchOptions, RecordOptions, SearchOperator
from erp_migration.post_process.prune import prune_item
from erp_migration.post_process.types import ComposeOptions, ProcessOptions


SERVICE_ITEM = SERVICE_ITEM_RECORD_TYPE


class ItemColumns:
    """Column headers of the legacy item list export."""
    ITEM_ID = "Item"
    DESCRIPTION = "Description"
    PURCHASE_DESCRIPTION = "Purchase Description"
    INCOME_ACCOUNT = "Account"
    PRICE = "Price"


C = ItemColumns

# internal ids in the target account
HQ_LOCATION = 1
DEFAULT_TAX_SCHEDULE = 2
BASE_PRICE_LEVEL = 1


SERVICE_ITEM_PARSE_OPTIONS = RecordParseOptions(
    key_column=C.ITEM_ID,
    field_options={
        "externalid": FieldParseOptions(evaluator=item_external_id, args=(SERVICE_ITEM, C.ITEM_ID)),
        "itemid": FieldParseOptions(evaluator=item_id, args=(C.ITEM_ID,)),
        "displayname": FieldParseOptions(
            evaluator=item_display_name, args=(C.DESCRIPTION, C.ITEM_ID), with_context=True,
        ),
        "salesdescription": FieldParseOptions(
            evaluator=item_description, args=(C.DESCRIPTION, C.PURCHASE_DESCRIPTION),
        ),
        "location": FieldParseOptions(default_value=HQ_LOCATION),
        "taxschedule": FieldParseOptions(default_value=DEFAULT_TAX_SCHEDULE),
        "incomeaccount": FieldParseOptions(evaluator=account_id, args=(C.INCOME_ACCOUNT,), with_context=True),
    },
    sublist_options={
        "price1": (
            SublistLineParseOptions(
                field_options={
                    "pricelevel": FieldParseOptions(default_value=BASE_PRICE_LEVEL),
                    "price": FieldParseOptions(evaluator=number, args=(C.PRICE, 2)),
                },
            ),
        ),
    },
)

SERVICE_ITEM_PARSE_DICTIONARY = {SERVICE_ITEM: SERVICE_ITEM_PARSE_OPTIONS}


## -- post-processing

def compose_item_id_options(
    record: RecordOptions,
    current: list[IdSearchOptions],
    context: ParseContext,
) -> list[IdSearchOptions]:
    """Find an existing item by external id, then by item name."""
    out = list(current)
    for prop in (IdProperty.externalid, IdProperty.itemid):
        value = record.fields.get(prop.value)
        if value:
            out.append(IdSearchOptions(prop.value, SearchOperator.is_.value, value))
    return out


SERVICE_ITEM_PROCESS_OPTIONS = {
    SERVICE_ITEM: ProcessOptions(
        compose_options=ComposeOptions(id_options=compose_item_id_options),
        prune_func=prune_item,
    ),
}
