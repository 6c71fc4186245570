from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Mapping, Union


# scalar values a field or sublist cell ultimately holds
FieldValue = Union[date, datetime, int, float, Decimal, str, bool, list[int], list[str], None]

# a sublist line maps field ids to values; `line`, `lineIdProp`, `lineId` are line metadata keys
SublistLine = dict[str, Any]

LINE_KEY = "line"
LINE_ID_PROP_KEY = "lineIdProp"
LINE_ID_KEY = "lineId"
LINE_METADATA_KEYS = frozenset({LINE_KEY, LINE_ID_PROP_KEY, LINE_ID_KEY})


class RejectCode(str, Enum):
    """Typed invalidation classifications for post-processed records."""
    pruned = "pruned"                   # prune returned no record (required field/line missing)
    clone_failed = "clone_failed"
    compose_failed = "compose_failed"
    prune_failed = "prune_failed"       # prune raised


class IdProperty(str, Enum):
    """Fields that identify a record in the ERP."""
    internalid = "internalid"
    externalid = "externalid"
    entityid = "entityid"
    itemid = "itemid"
    tranid = "tranid"


class SearchOperator(str, Enum):
    any_of = "anyof"
    is_ = "is"


@dataclass(frozen=True, slots=True)
class IdSearchOptions:
    """One way of finding a record: `{idProp, searchOperator, idValue}`."""
    id_prop: str
    search_operator: str
    id_value: Any

    def to_mapping(self) -> dict[str, Any]:
        return {
            "idProp": _text(self.id_prop),
            "searchOperator": _text(self.search_operator),
            "idValue": self.id_value,
        }


@dataclass(slots=True)
class SubrecordValue:
    """A field (or sublist cell) whose value is itself a nested record, e.g. an address."""
    subrecord_type: str
    fields: dict[str, Any] = field(default_factory=dict)
    sublists: dict[str, list[SublistLine]] = field(default_factory=dict)
    field_id: str | None = None
    sublist_id: str | None = None

    def is_empty(self) -> bool:
        return not self.fields and not any(self.sublists.values())

    def to_mapping(self) -> dict[str, Any]:
        out: dict[str, Any] = {"subrecordType": self.subrecord_type}
        if self.sublist_id is not None:
            out["sublistId"] = self.sublist_id
        if self.field_id is not None:
            out["fieldId"] = self.field_id
        out["fields"] = {k: to_jsonable(v) for k, v in self.fields.items()}
        out["sublists"] = {k: [to_jsonable(line) for line in lines] for k, lines in self.sublists.items()}
        return out


SourceType = Literal["file", "rows"]


@dataclass(slots=True)
class RecordMeta:
    """Traceability back to the source rows a record was built from."""
    source_type: SourceType
    data_source: dict[str, list[int]] = field(default_factory=dict)     # source label -> 1-based row indices

    def add_row(self, source: str, row_index: int) -> None:
        rows = self.data_source.setdefault(source, [])
        if row_index not in rows:
            rows.append(row_index)

    def row_indices(self) -> list[int]:
        return [i for rows in self.data_source.values() for i in rows]

    def to_mapping(self) -> dict[str, Any]:
        return {"sourceType": self.source_type, "dataSource": {k: list(v) for k, v in self.data_source.items()}}


@dataclass(slots=True)
class RecordOptions:
    """
    Parse output handed to the upsert collaborator: `{recordType, isDynamic, fields, sublists}`.

    Created per source row (or per group of rows sharing a key) and mutated in place by
    post-processing (clone/compose/prune).
    """
    record_type: str
    fields: dict[str, Any] = field(default_factory=dict)
    sublists: dict[str, list[SublistLine]] = field(default_factory=dict)
    is_dynamic: bool = False
    id_options: list[IdSearchOptions] = field(default_factory=list)
    meta: RecordMeta | None = None

    def to_mapping(self) -> dict[str, Any]:
        """JSON-ready mapping using the collaborator's key names."""
        out: dict[str, Any] = {
            "recordType": self.record_type,
            "isDynamic": self.is_dynamic,
            "fields": {k: to_jsonable(v) for k, v in self.fields.items()},
            "sublists": {k: [to_jsonable(line) for line in lines] for k, lines in self.sublists.items()},
        }
        if self.id_options:
            out["idOptions"] = [o.to_mapping() for o in self.id_options]
        if self.meta is not None:
            out["meta"] = self.meta.to_mapping()
        return out


def _text(x: Any) -> str:
    # enum-like (value attr) or plain strings
    if isinstance(x, Enum):
        return str(x.value)
    return str(x)


def to_jsonable(value: Any) -> Any:
    """Convert record values (dates, decimals, subrecords) into JSON-compatible ones."""
    if isinstance(value, SubrecordValue):
        return value.to_mapping()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value
