from __future__ import annotations

from typing import Any

from erp_migration.evaluators import address as addr
from erp_migration.evaluators import entity as ent
from erp_migration.evaluators.common import category, terms
from erp_migration.evaluators.constants import DEFAULT_CUSTOMER_CATEGORIES, DEFAULT_TERMS
from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.schema import (
    FieldParseOptions,
    LineIdOptions,
    RecordParseOptions,
    SublistLineParseOptions,
    SubrecordParseOptions,
)
from erp_migration.parsing.types import IdProperty, IdSearchOptions, RecordOptions, SearchOperator
from erp_migration.post_process.prune import prune_contact, prune_entity
from erp_migration.post_process.types import CloneOptions, ComposeOptions, ProcessOptions


CUSTOMER = "customer"
CONTACT = "contact"

# the ERP's built-in "Primary Contact" role
PRIMARY_CONTACT_ROLE = -10


class CustomerColumns:
    """Column headers of the legacy customer export."""
    ENTITY_ID = "Customer"
    CATEGORY = "Customer Type"
    SALUTATION = "Mr./Ms./..."
    FIRST_NAME = "First Name"
    MIDDLE_NAME = "M.I."
    LAST_NAME = "Last Name"
    TITLE = "Job Title"
    COMPANY = "Company"
    PRIMARY_CONTACT = "Primary Contact"
    SECONDARY_CONTACT = "Secondary Contact"
    WEBSITE = "Website"
    PHONE = "Main Phone"
    WORK_PHONE = "Work Phone"
    HOME_PHONE = "Home Phone"
    MOBILE_PHONE = "Mobile"
    ALT_PHONE = "Alt. Phone"
    ALT_MOBILE = "Alt. Mobile"
    FAX = "Fax"
    ALT_FAX = "Alt. Fax"
    EMAIL = "Main Email"
    ALT_EMAIL = "Alt. Email 1"
    CC_EMAIL = "CC Email"
    TERMS = "Terms"
    ACCOUNT_NUMBER = "Account No."
    COMMENTS = "Note"
    STREET_ONE = "Street1"
    STREET_TWO = "Street2"
    CITY = "City"
    STATE = "State"
    ZIP = "Zip"
    COUNTRY = "Country"
    SHIP_TO_STREET_ONE = "Ship To Street1"
    SHIP_TO_STREET_TWO = "Ship To Street2"
    SHIP_TO_CITY = "Ship To City"
    SHIP_TO_STATE = "Ship To State"
    SHIP_TO_ZIP = "Ship To Zip"
    SHIP_TO_COUNTRY = "Ship To Country"


C = CustomerColumns

# full names are looked for in these columns when the dedicated name columns are empty
NAME_COLUMNS = (
    C.PRIMARY_CONTACT, C.ENTITY_ID,
    C.STREET_ONE, C.STREET_TWO,
    C.SHIP_TO_STREET_ONE, C.SHIP_TO_STREET_TWO,
    C.SECONDARY_CONTACT,
)
BILLING_NAME_COLUMNS = (C.STREET_ONE, C.STREET_TWO, C.PRIMARY_CONTACT, C.SECONDARY_CONTACT, C.ENTITY_ID)
SHIPPING_NAME_COLUMNS = (C.SHIP_TO_STREET_ONE, C.SHIP_TO_STREET_TWO, C.PRIMARY_CONTACT, C.SECONDARY_CONTACT, C.ENTITY_ID)


def _attention_kwargs() -> dict[str, Any]:
    return {
        "salutation_column": C.SALUTATION,
        "first_name_column": C.FIRST_NAME,
        "middle_name_column": C.MIDDLE_NAME,
        "last_name_column": C.LAST_NAME,
        "title_column": C.TITLE,
    }


def _street_kwargs(line_one: str, line_two: str, name_columns: tuple[str, ...]) -> dict[str, Any]:
    return {
        "line_one_column": line_one,
        "line_two_column": line_two,
        "entity_id_column": C.ENTITY_ID,
        "company_column": C.COMPANY,
        "name_columns": name_columns,
    }


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
    street_kwargs = _street_kwargs(line_one, line_two, name_columns)
    return SubrecordParseOptions(
        subrecord_type="address",
        field_options={
            "country": FieldParseOptions(evaluator=addr.country, args=(country, state)),
            "addressee": FieldParseOptions(evaluator=addr.addressee, args=(C.ENTITY_ID, C.COMPANY)),
            "attention": FieldParseOptions(
                evaluator=addr.attention,
                args=(C.ENTITY_ID, *name_columns),
                kwargs=_attention_kwargs(),
            ),
            "addr1": FieldParseOptions(evaluator=addr.street, args=(1,), kwargs=street_kwargs),
            "addr2": FieldParseOptions(evaluator=addr.street, args=(2,), kwargs=street_kwargs),
            "city": FieldParseOptions(col_name=city),
            "state": FieldParseOptions(evaluator=addr.state, args=(state,)),
            "zip": FieldParseOptions(col_name=zip_code),
        },
    )


BILLING_ADDRESS_OPTIONS = _address_options(
    line_one=C.STREET_ONE, line_two=C.STREET_TWO,
    city=C.CITY, state=C.STATE, zip_code=C.ZIP, country=C.COUNTRY,
    name_columns=BILLING_NAME_COLUMNS,
)
SHIPPING_ADDRESS_OPTIONS = _address_options(
    line_one=C.SHIP_TO_STREET_ONE, line_two=C.SHIP_TO_STREET_TWO,
    city=C.SHIP_TO_CITY, state=C.SHIP_TO_STATE, zip_code=C.SHIP_TO_ZIP, country=C.SHIP_TO_COUNTRY,
    name_columns=SHIPPING_NAME_COLUMNS,
)

ADDRESS_BOOK_SUBLIST_OPTIONS = {
    "addressbook": (
        SublistLineParseOptions(
            line_id_options=LineIdOptions(line_id_prop="label"),
            field_options={
                "label": FieldParseOptions(
                    evaluator=addr.street, args=(1,),
                    kwargs=_street_kwargs(C.STREET_ONE, C.STREET_TWO, BILLING_NAME_COLUMNS),
                ),
                "defaultbilling": FieldParseOptions(default_value=True),
                "addressbookaddress": BILLING_ADDRESS_OPTIONS,
            },
        ),
        SublistLineParseOptions(
            line_id_options=LineIdOptions(line_id_prop="label"),
            field_options={
                "label": FieldParseOptions(
                    evaluator=addr.street, args=(1,),
                    kwargs=_street_kwargs(C.SHIP_TO_STREET_ONE, C.SHIP_TO_STREET_TWO, SHIPPING_NAME_COLUMNS),
                ),
                "defaultshipping": FieldParseOptions(default_value=True),
                "addressbookaddress": SHIPPING_ADDRESS_OPTIONS,
            },
        ),
    ),
}

# customer fields the contact record takes over in post-processing
SHARED_FIELD_OPTIONS = {
    "isperson": FieldParseOptions(
        evaluator=ent.customer_is_person, args=(C.ENTITY_ID, C.COMPANY), with_context=True,
    ),
    "isinactive": FieldParseOptions(default_value=False),
    "email": FieldParseOptions(evaluator=ent.email, args=(C.EMAIL, 0, C.ALT_EMAIL)),
    "altemail": FieldParseOptions(evaluator=ent.email, args=(C.EMAIL, 1, C.ALT_EMAIL, C.CC_EMAIL)),
    "phone": FieldParseOptions(evaluator=ent.phone, args=(C.PHONE, 0, C.ALT_PHONE, C.WORK_PHONE)),
    "mobilephone": FieldParseOptions(evaluator=ent.phone, args=(C.MOBILE_PHONE, 0, C.ALT_MOBILE)),
    "homephone": FieldParseOptions(evaluator=ent.phone, args=(C.HOME_PHONE,)),
    "fax": FieldParseOptions(evaluator=ent.phone, args=(C.FAX, 0, C.ALT_FAX)),
    "salutation": FieldParseOptions(evaluator=ent.salutation, args=(C.SALUTATION, *NAME_COLUMNS)),
    "firstname": FieldParseOptions(evaluator=ent.first_name, args=(C.FIRST_NAME, *NAME_COLUMNS)),
    "middlename": FieldParseOptions(evaluator=ent.middle_name, args=(C.MIDDLE_NAME, *NAME_COLUMNS)),
    "lastname": FieldParseOptions(evaluator=ent.last_name, args=(C.LAST_NAME, *NAME_COLUMNS)),
    "title": FieldParseOptions(evaluator=ent.job_title_suffix, args=(C.TITLE, *NAME_COLUMNS)),
    "comments": FieldParseOptions(col_name=C.COMMENTS),
}

CUSTOMER_PARSE_OPTIONS = RecordParseOptions(
    key_column=C.ENTITY_ID,
    field_options={
        "entityid": FieldParseOptions(evaluator=ent.entity_id, args=(C.ENTITY_ID,)),
        **SHARED_FIELD_OPTIONS,
        "externalid": FieldParseOptions(evaluator=ent.entity_external_id, args=(CUSTOMER, C.ENTITY_ID)),
        "altphone": FieldParseOptions(evaluator=ent.phone, args=(C.PHONE, 1, C.ALT_PHONE, C.WORK_PHONE)),
        "category": FieldParseOptions(evaluator=category, args=(C.CATEGORY, DEFAULT_CUSTOMER_CATEGORIES)),
        "companyname": FieldParseOptions(evaluator=ent.customer_company, args=(C.ENTITY_ID, C.COMPANY)),
        "accountnumber": FieldParseOptions(col_name=C.ACCOUNT_NUMBER),
        "terms": FieldParseOptions(evaluator=terms, args=(C.TERMS, DEFAULT_TERMS)),
        "taxable": FieldParseOptions(default_value=True),
        "url": FieldParseOptions(evaluator=ent.website, args=(C.WEBSITE, C.EMAIL)),
    },
    sublist_options=ADDRESS_BOOK_SUBLIST_OPTIONS,
)

CONTACT_PARSE_OPTIONS = RecordParseOptions(
    key_column=C.ENTITY_ID,
    field_options={
        "entityid": FieldParseOptions(evaluator=ent.entity_id, args=(C.ENTITY_ID,)),
        "externalid": FieldParseOptions(evaluator=ent.entity_external_id, args=(CONTACT, C.ENTITY_ID)),
        "officephone": FieldParseOptions(evaluator=ent.phone, args=(C.WORK_PHONE,)),
        "company": FieldParseOptions(evaluator=ent.customer_company, args=(C.ENTITY_ID, C.COMPANY)),
        "contactrole": FieldParseOptions(default_value=PRIMARY_CONTACT_ROLE),
    },
)

CUSTOMER_PARSE_DICTIONARY = {
    CUSTOMER: CUSTOMER_PARSE_OPTIONS,
    CONTACT: CONTACT_PARSE_OPTIONS,
}


## -- post-processing

CLONE_CUSTOMER_TO_CONTACT = CloneOptions(
    donor_type=CUSTOMER,
    recipient_type=CONTACT,
    id_prop=IdProperty.entityid.value,
    field_ids=tuple(SHARED_FIELD_OPTIONS),
    sublist_ids=("addressbook",),
)


def _encode_external_id(value: str) -> str:
    # the ERP stores `<`/`>` in external ids html-escaped
    return value.replace("<", "&lt;").replace(">", "&gt;")


def compose_customer_id_options(
    record: RecordOptions,
    current: list[IdSearchOptions],
    context: ParseContext,
) -> list[IdSearchOptions]:
    """Every way an existing customer may already be stored: by name, by external id."""
    fields = record.fields
    out = list(current)
    candidates = [
        (IdProperty.entityid, fields.get("companyname")),
        (IdProperty.entityid, fields.get("entityid")),
        (IdProperty.externalid, fields.get("externalid")),
    ]
    if fields.get("companyname"):
        candidates.append((IdProperty.externalid, f"{fields['companyname']}<{CUSTOMER}>"))
    first, last = fields.get("firstname"), fields.get("lastname")
    if first and last and fields.get("entityid") != f"{first} {last}":
        candidates.append((IdProperty.externalid, f"{first} {last}<{CUSTOMER}>"))

    seen = {(o.id_prop, o.id_value) for o in out}
    for prop, value in candidates:
        if not value:
            continue
        if prop is IdProperty.externalid:
            value = _encode_external_id(value)
        key = (prop.value, value)
        if key in seen:
            continue
        seen.add(key)
        out.append(IdSearchOptions(id_prop=prop.value, search_operator=SearchOperator.is_.value, id_value=value))
    return out


CUSTOMER_COMPOSE_OPTIONS = ComposeOptions(id_options=compose_customer_id_options)

# contact first: it clones from the customer before the customer is pruned
CUSTOMER_PROCESS_OPTIONS = {
    CONTACT: ProcessOptions(clone_options=CLONE_CUSTOMER_TO_CONTACT, prune_func=prune_contact),
    CUSTOMER: ProcessOptions(compose_options=CUSTOMER_COMPOSE_OPTIONS, prune_func=prune_entity),
}
