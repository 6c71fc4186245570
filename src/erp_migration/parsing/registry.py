from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from erp_migration.parsing.schema import RecordParseOptions
from erp_migration.post_process.types import PostProcessDictionary


PARSE_CONFIG_NAMES = ("customer", "salesorder", "item")


@dataclass(frozen=True)
class ParseConfig:
    """A named parse configuration: what to build from each row, and how to post-process it."""
    name: str
    parse_options: Mapping[str, RecordParseOptions]     # record type -> parse options
    process_options: PostProcessDictionary


def get_parse_config(name: str) -> ParseConfig:
    """
    A registry mapping a configuration name to its parse and post-processing dictionaries.
    The profile modules are imported on demand.
    """
    if name == "customer":
        from .profiles.customers import CUSTOMER_PARSE_DICTIONARY, CUSTOMER_PROCESS_OPTIONS
        return ParseConfig(name="customer", parse_options=CUSTOMER_PARSE_DICTIONARY, process_options=CUSTOMER_PROCESS_OPTIONS)

    if name == "salesorder":
        from .profiles.sales_orders import SALES_ORDER_PARSE_DICTIONARY, SALES_ORDER_PROCESS_OPTIONS
        return ParseConfig(name="salesorder", parse_options=SALES_ORDER_PARSE_DICTIONARY, process_options=SALES_ORDER_PROCESS_OPTIONS)

    if name == "item":
        from .profiles.items import SERVICE_ITEM_PARSE_DICTIONARY, SERVICE_ITEM_PROCESS_OPTIONS
        return ParseConfig(name="item", parse_options=SERVICE_ITEM_PARSE_DICTIONARY, process_options=SERVICE_ITEM_PROCESS_OPTIONS)

    raise ValueError(f"Unknown parse config: {name}")
