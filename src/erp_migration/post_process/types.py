from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Sequence, Union

from erp_migration.parsing.schema import PruneFunc
from erp_migration.parsing.types import RecordOptions, RejectCode

# Typing:
# Composer is `(record, current_value, context) -> new_value` or an awaitable of one, where
# `current_value` is the record's id options, field dictionary, sublist dictionary or one sublist.
Composer = Callable[..., Any]


class PostProcessingOperation(str, Enum):
    clone = "clone"
    compose = "compose"
    prune = "prune"


DEFAULT_OPERATION_ORDER: tuple[PostProcessingOperation, ...] = (
    PostProcessingOperation.clone,
    PostProcessingOperation.compose,
    PostProcessingOperation.prune,
)


@dataclass(frozen=True, slots=True)
class CloneOptions:
    """
    Copy `field_ids` and whole `sublist_ids` from the `donor_type` record to the
    `recipient_type` record sharing the same `id_prop` value.
    """
    donor_type: str
    recipient_type: str
    id_prop: str
    field_ids: tuple[str, ...] = ()
    sublist_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ComposeOptions:
    """
    Record-type specific derivations run after parsing.

    `sublists` is either one composer for the whole sublist dictionary, or a mapping of
    sublist id -> composer for that sublist's lines.
    """
    id_options: Composer | None = None
    fields: Composer | None = None
    sublists: Union[Composer, Mapping[str, Composer], None] = None


@dataclass(frozen=True, slots=True)
class ProcessOptions:
    """Post-processing of one record type; operations run in `operation_order`."""
    operation_order: Sequence[PostProcessingOperation] = DEFAULT_OPERATION_ORDER
    clone_options: CloneOptions | None = None
    compose_options: ComposeOptions | None = None
    prune_func: PruneFunc | None = None
    prune_args: tuple[Any, ...] = ()


# record type -> its post-processing; key order is processing order
PostProcessDictionary = Mapping[str, ProcessOptions]


@dataclass(frozen=True, slots=True)
class InvalidRecord:
    """A record that did not survive post-processing, with why."""
    record: RecordOptions
    reason_code: RejectCode
    reason_detail: str

    def to_mapping(self) -> dict[str, Any]:
        return {
            "reasonCode": self.reason_code.value,
            "reasonDetail": self.reason_detail,
            "record": self.record.to_mapping(),
        }


@dataclass(slots=True)
class ValidatedResults:
    valid: list[RecordOptions] = field(default_factory=list)
    invalid: list[InvalidRecord] = field(default_factory=list)


# record type -> partitioned records
ValidatedParseResults = dict[str, ValidatedResults]
