from __future__ import annotations

import logging
import math
from typing import Any

from erp_migration.evaluators.constants import RADIO_FIELD_FALSE, RADIO_FIELD_TRUE
from erp_migration.parsing.primitives import equivalent_alphanumeric, is_null_like
from erp_migration.parsing.types import RecordOptions, SubrecordValue

logger = logging.getLogger(__name__)


ENTITY_RECORD_TYPES = frozenset({"customer", "vendor", "lead", "prospect", "partner", "employee"})
ENTITY_REQUIRED_FIELDS = ("entityid", "companyname")
PERSON_REQUIRED_FIELDS = ("firstname", "lastname")
PERSON_NAME_FIELDS = (*PERSON_REQUIRED_FIELDS, "middlename", "salutation", "title")
ADDRESS_REQUIRED_FIELDS = ("addr1",)
SALES_ORDER_REQUIRED_FIELDS = ("entity", "trandate", "externalid")
SALES_ORDER_ADDRESS_FIELDS = ("billingaddress", "shippingaddress")
ITEM_RECORD_TYPES = frozenset({"serviceitem", "inventoryitem", "noninventoryitem", "otherchargeitem"})
ITEM_REQUIRED_FIELDS = ("itemid", "externalid")
ITEM_PRICE_SUBLIST = "price1"
ADDRESS_BOOK_SUBLIST = "addressbook"
ADDRESS_BOOK_ADDRESS_FIELD = "addressbookaddress"


def _missing(values: dict[str, Any], required: tuple[str, ...]) -> list[str]:
    return [f for f in required if is_null_like(values.get(f))]


def _is_person(record: RecordOptions) -> bool:
    return record.fields.get("isperson") in (RADIO_FIELD_TRUE, True)


def prune_address(address: SubrecordValue | None) -> SubrecordValue | None:
    """
    Address subrecord with `addr1`, or `None`.

    An `attention` that restates the `addressee` is deleted, and the address's own sublists
    are dropped.
    """
    if not isinstance(address, SubrecordValue):
        return None
    missing = _missing(address.fields, ADDRESS_REQUIRED_FIELDS)
    if missing:
        logger.debug("address dropped: required %s, received %s", list(ADDRESS_REQUIRED_FIELDS), sorted(address.fields))
        return None

    addressee = address.fields.get("addressee")
    attention = address.fields.get("attention")
    if (
        isinstance(addressee, str) and addressee
        and isinstance(attention, str) and attention
        and (attention in addressee or equivalent_alphanumeric(addressee, attention))
    ):
        del address.fields["attention"]
    address.sublists = {}
    return address


def prune_address_book(record: RecordOptions) -> RecordOptions:
    """Keep address book lines whose address survives `prune_address`; drop the sublist when none do."""
    lines = record.sublists.get(ADDRESS_BOOK_SUBLIST) or []
    kept = []
    for line in lines:
        address = prune_address(line.get(ADDRESS_BOOK_ADDRESS_FIELD))
        if address is None:
            continue
        line[ADDRESS_BOOK_ADDRESS_FIELD] = address
        kept.append(line)
    if kept:
        record.sublists[ADDRESS_BOOK_SUBLIST] = kept
    else:
        record.sublists.pop(ADDRESS_BOOK_SUBLIST, None)
    return record


def prune_entity(record: RecordOptions) -> RecordOptions | None:
    """
    Customers and other entities.

    Requires `entityid` and `companyname`. A person also needs first and last name; a company
    has any stray name fields deleted. The address book is pruned last.
    """
    if record.record_type not in ENTITY_RECORD_TYPES:
        logger.error("prune_entity(): %r is not an entity record type", record.record_type)
        return None
    missing = _missing(record.fields, ENTITY_REQUIRED_FIELDS)
    if missing:
        logger.warning(
            "%s rejected: required %s, received %s",
            record.record_type, list(ENTITY_REQUIRED_FIELDS), sorted(record.fields),
        )
        return None

    if _is_person(record):
        missing = _missing(record.fields, PERSON_REQUIRED_FIELDS)
        if missing:
            logger.warning(
                "%s %r rejected: person requires %s, received %s",
                record.record_type, record.fields.get("entityid"), list(PERSON_REQUIRED_FIELDS), sorted(record.fields),
            )
            return None
    elif record.fields.get("isperson") in (RADIO_FIELD_FALSE, False):
        for field_id in PERSON_NAME_FIELDS:
            record.fields.pop(field_id, None)
    return prune_address_book(record)


def prune_contact(record: RecordOptions) -> RecordOptions | None:
    """
    A customer's primary contact. Not created when the customer is itself a person;
    otherwise requires first and last name. The address book is pruned last.
    """
    if record.record_type != "contact":
        logger.error("prune_contact(): expected a contact, got %r", record.record_type)
        return None
    if _is_person(record):
        logger.debug("contact %r dropped: customer is a person", record.fields.get("entityid"))
        return None
    missing = _missing(record.fields, PERSON_REQUIRED_FIELDS)
    if missing:
        logger.warning(
            "contact %r rejected: required %s, received %s",
            record.fields.get("entityid"), list(PERSON_REQUIRED_FIELDS), sorted(record.fields),
        )
        return None
    full_name = f"{record.fields['firstname']} {record.fields['lastname']}"
    if any(equivalent_alphanumeric(full_name, record.fields.get(f)) for f in ("entityid", "company")):
        logger.debug("contact %r dropped: name %r is the company's own", record.fields.get("entityid"), full_name)
        return None
    record.fields.pop("isperson", None)
    return prune_address_book(record)


def prune_sales_order(record: RecordOptions) -> RecordOptions | None:
    """
    Sales orders.

    - requires `entity`, `trandate` and `externalid`,
    - item lines whose `item` did not resolve to an internal id are dropped,
    - a missing or negative line `amount` rejects the order,
    - invalid billing/shipping addresses are deleted,
    - at least one item line must remain.
    """
    if record.record_type != "salesorder":
        logger.error("prune_sales_order(): expected a salesorder, got %r", record.record_type)
        return None
    missing = _missing(record.fields, SALES_ORDER_REQUIRED_FIELDS)
    if missing:
        logger.warning(
            "salesorder rejected: required %s, received %s",
            list(SALES_ORDER_REQUIRED_FIELDS), sorted(record.fields),
        )
        return None

    external_id = record.fields["externalid"]
    lines = record.sublists.get("item") or []
    resolved = []
    for line in lines:
        item = line.get("item")
        if isinstance(item, bool) or not isinstance(item, int):
            logger.warning("salesorder %r: item %r is unresolved, line dropped", external_id, item)
            continue
        amount = line.get("amount")
        if amount is None or not math.isfinite(float(amount)) or float(amount) < 0:
            logger.warning("salesorder %r rejected: item %r has amount %r", external_id, item, amount)
            return None
        resolved.append(line)

    for field_id in SALES_ORDER_ADDRESS_FIELDS:
        if field_id not in record.fields:
            continue
        address = prune_address(record.fields[field_id])
        if address is None:
            del record.fields[field_id]
        else:
            record.fields[field_id] = address

    if not resolved:
        logger.warning("salesorder %r rejected: no item line with a resolved item", external_id)
        record.sublists.pop("item", None)
        return None
    record.sublists["item"] = resolved
    return record


def _is_internal_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def prune_item(record: RecordOptions) -> RecordOptions | None:
    """
    An item needs an `itemid` and `externalid`.
    - an unresolved `incomeaccount` is removed, leaving the account to the ERP's default,
    - price lines without a finite, non-negative `price` are dropped.
    """
    if record.record_type not in ITEM_RECORD_TYPES:
        logger.error("prune_item(): expected an item, got %r", record.record_type)
        return None
    missing = _missing(record.fields, ITEM_REQUIRED_FIELDS)
    if missing:
        logger.warning(
            "%s rejected: required %s, received %s",
            record.record_type, list(ITEM_REQUIRED_FIELDS), sorted(record.fields),
        )
        return None

    item = record.fields["itemid"]
    account = record.fields.get("incomeaccount")
    if account is not None and not _is_internal_id(account):
        logger.warning("%s %r: income account %r is unresolved, field removed", record.record_type, item, account)
        del record.fields["incomeaccount"]

    if ITEM_PRICE_SUBLIST in record.sublists:
        prices = []
        for line in record.sublists[ITEM_PRICE_SUBLIST]:
            price = line.get("price")
            if isinstance(price, (int, float)) and not isinstance(price, bool) and math.isfinite(price) and price >= 0:
                prices.append(line)
            else:
                logger.debug("%s %r: price line %s dropped, price %r", record.record_type, item, line.get("line"), price)
        if prices:
            record.sublists[ITEM_PRICE_SUBLIST] = prices
        else:
            del record.sublists[ITEM_PRICE_SUBLIST]
    return record
