from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

from erp_migration.parsing.types import IdProperty, SubrecordValue, to_jsonable

logger = logging.getLogger(__name__)


ENDPOINT = "DELETE_Record"
REQUEST_KEYS = ("recordType", "idOptions")
ID_OPTION_KEYS = ("idProp", "searchOperator", "idValue")
MAX_LOGS_PER_LEVEL = 500

# field ids whose value is a subrecord, loaded as nested values
SUBRECORD_FIELD_IDS = frozenset({"addressbookaddress", "billingaddress", "shippingaddress", "inventorydetail"})


## -- in-response log

class LogType(str, Enum):
    debug = "debug"
    error = "error"
    audit = "audit"
    emergency = "emergency"


_LEVELS = {
    LogType.debug: logging.DEBUG,
    LogType.error: logging.ERROR,
    LogType.audit: logging.INFO,
    LogType.emergency: logging.CRITICAL,
}


@dataclass(frozen=True, slots=True)
class LogStatement:
    timestamp: str
    type: LogType
    title: str
    details: tuple[Any, ...] = ()

    def to_mapping(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "title": self.title,
            "details": [to_jsonable(d) for d in self.details],
        }


@dataclass(slots=True)
class RunLog:
    """
    Log entries returned with one response. Every entry is mirrored to `logging`.

    At most `limit` entries are kept per log type; later ones are dropped.
    """
    limit: int = MAX_LOGS_PER_LEVEL
    entries: list[LogStatement] = field(default_factory=list)
    counts: dict[LogType, int] = field(default_factory=lambda: {t: 0 for t in LogType})

    def write(self, log_type: LogType, title: str, *details: Any) -> None:
        logger.log(_LEVELS[log_type], "%s %s", title, " | ".join(str(d) for d in details))
        if self.counts[log_type] >= self.limit:
            return
        self.counts[log_type] += 1
        self.entries.append(
            LogStatement(
                timestamp=datetime.now(timezone.utc).isoformat(),
                type=log_type,
                title=title,
                details=details or (title,),
            )
        )


## -- ERP collaborator

@dataclass(slots=True)
class LoadedRecord:
    """A record as loaded from the ERP: body field values and sublist lines."""
    record_type: str
    internalid: int
    fields: dict[str, Any] = field(default_factory=dict)
    sublists: dict[str, list[dict[str, Any]]] = field(default_factory=dict)


class RecordService(Protocol):
    """The ERP calls the endpoint needs."""
    async def search(self, record_type: str, id_prop: str, search_operator: str, values: list[Any]) -> list[int]: ...

    async def load(self, record_type: str, internalid: int) -> LoadedRecord: ...

    async def delete(self, record_type: str, internalid: int) -> None: ...


## -- request / response

@dataclass(frozen=True, slots=True)
class DeleteRecordRequest:
    record_type: str
    id_options: list[dict[str, Any]]
    response_options: dict[str, Any] | None = None


@dataclass(slots=True)
class RecordResult:
    """Snapshot of the record taken before it is deleted."""
    record_type: str
    internalid: int
    fields: dict[str, Any] | None = None
    sublists: dict[str, list[dict[str, Any]]] | None = None

    def to_mapping(self) -> dict[str, Any]:
        out: dict[str, Any] = {"recordType": self.record_type, "internalid": self.internalid}
        if self.fields is not None:
            out["fields"] = {k: to_jsonable(v) for k, v in self.fields.items()}
        if self.sublists is not None:
            out["sublists"] = {k: [to_jsonable(line) for line in lines] for k, lines in self.sublists.items()}
        return out


@dataclass(slots=True)
class RecordResponse:
    status: int
    message: str
    logs: list[LogStatement] = field(default_factory=list)
    results: list[RecordResult] = field(default_factory=list)
    error: str | None = None
    rejects: list[Any] | None = None

    def to_mapping(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "status": self.status,
            "message": self.message,
            "logs": [entry.to_mapping() for entry in self.logs],
            "results": [r.to_mapping() for r in self.results],
        }
        if self.error is not None:
            out["error"] = self.error
        if self.rejects is not None:
            out["rejects"] = list(self.rejects)
        return out


def _error_response(
    run_log: RunLog,
    request: Any,
    source: str,
    details: Sequence[str],
    status: int = 400,
    message: str = f"{ENDPOINT} Bad Request: Invalid Parameter(s)",
    results: list[RecordResult] | None = None,
) -> RecordResponse:
    run_log.write(LogType.error, f"{source} -> {message}", *details, f"requestContent: {request!r}")
    return RecordResponse(
        status=status,
        message=message,
        error=f"{source} {', '.join(details)}",
        logs=run_log.entries,
        results=results or [],
        rejects=[request],
    )


## -- request parsing

def _is_id_option(value: Any) -> bool:
    return isinstance(value, dict) and all(k in value for k in ID_OPTION_KEYS)


def _is_response_options(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    fields = value.get("fields")
    if fields is not None and not isinstance(fields, str) and not (
        isinstance(fields, list) and all(isinstance(f, str) for f in fields)
    ):
        return False
    sublists = value.get("sublists")
    return sublists is None or isinstance(sublists, dict)


def unpack_request(request: Any, run_log: RunLog) -> DeleteRecordRequest | RecordResponse:
    """
    Decode the transport parameters. `idOptions` and `responseOptions` arrive as JSON strings.

    Returns the decoded request, or a 400 `RecordResponse` echoing the raw payload in `rejects`.
    """
    source = f"[{ENDPOINT}.unpack_request()]"
    if not isinstance(request, Mapping) or not all(k in request for k in REQUEST_KEYS):
        return _error_response(run_log, request, source, [
            "request is not an object with the required keys",
            f"Expected: object with keys {list(REQUEST_KEYS)}",
            f"Received: {type(request).__name__}",
        ])

    record_type = request["recordType"]
    if not isinstance(record_type, str) or not record_type.strip():
        return _error_response(run_log, request, source, [
            "Invalid request parameter 'recordType'",
            f"Received: {type(record_type).__name__} = {record_type!r}",
        ])

    try:
        id_options = json.loads(request["idOptions"])
    except (TypeError, ValueError) as e:
        return _error_response(run_log, request, source, [
            "param 'idOptions' is not a valid JSON string",
            f"caught: {e}",
        ])
    if _is_id_option(id_options):
        id_options = [id_options]
    elif not (isinstance(id_options, list) and id_options and all(_is_id_option(o) for o in id_options)):
        return _error_response(run_log, request, source, [
            "idOptions is not a valid array of idSearchOptions",
            "Expected: [{idProp, searchOperator, idValue}, ...]",
            f"Received: {json.dumps(id_options)}",
        ])

    raw_response_options = request.get("responseOptions")
    if not raw_response_options:
        return DeleteRecordRequest(record_type=record_type, id_options=id_options)
    try:
        response_options = json.loads(raw_response_options)
    except (TypeError, ValueError) as e:
        return _error_response(run_log, request, source, [
            "param 'responseOptions' is not a valid JSON string",
            f"caught: {e}",
        ])
    if not _is_response_options(response_options):
        return _error_response(run_log, request, source, [
            "responseOptions is not a valid RecordResponseOptions object",
            "Expected: {fields?: string | string[], sublists?: {[sublistId]: string | string[]}}",
            f"Received: {json.dumps(response_options)}",
        ])
    return DeleteRecordRequest(record_type=record_type, id_options=id_options, response_options=response_options)


## -- search

async def search_for_record_id(
    service: RecordService,
    record_type: str,
    id_options: Sequence[Mapping[str, Any]],
    run_log: RunLog,
) -> int | None:
    """
    Try each id option in order:
    - exactly one match: that record's internal id,
    - several matches for a scalar `idValue`: the first match is kept tentatively and the search continues,
    - no match or a failed search: the next option.

    Returns the tentative id when no option yields a unique match, `None` when nothing matched.
    """
    record_id: int | None = None
    for i, option in enumerate(id_options, start=1):
        id_prop = option["idProp"]
        operator = option["searchOperator"]
        id_value = option["idValue"]
        values = list(id_value) if isinstance(id_value, list) else [id_value]
        try:
            matches = await service.search(record_type, id_prop, operator, values)
        except Exception as e:
            run_log.write(
                LogType.error,
                "[search_for_record_id()] search failed",
                f"'{record_type}' with {id_prop}={id_value!r} and operator={operator!r}",
                f"caught: {e}",
            )
            continue

        if not matches:
            run_log.write(
                LogType.debug,
                f"[search_for_record_id()] 0 records found for idSearchOption {i}/{len(id_options)}",
            )
            continue
        if len(matches) == 1:
            run_log.write(LogType.debug, f"[search_for_record_id()] record found with {id_prop}={id_value!r}")
            return int(matches[0])

        single_expected = not isinstance(id_value, list) or len(id_value) == 1
        if single_expected:
            record_id = int(matches[0])
            run_log.write(
                LogType.debug,
                "[search_for_record_id()] multiple records found",
                f"{len(matches)} '{record_type}' records found with {id_prop}={id_value!r} and operator={operator!r}",
                f"tentatively keeping the first, {record_id}, and continuing",
            )
    return record_id


## -- snapshot

def _response_value(field_id: str, value: Any) -> Any:
    if field_id in SUBRECORD_FIELD_IDS and isinstance(value, SubrecordValue):
        return value.to_mapping()
    return value


def _response_fields(loaded: LoadedRecord, requested: str | list[str]) -> dict[str, Any]:
    field_ids = [requested] if isinstance(requested, str) else requested
    out: dict[str, Any] = {IdProperty.internalid.value: loaded.internalid}
    for field_id in field_ids:
        field_id = field_id.lower()
        if field_id not in loaded.fields:
            continue
        out[field_id] = _response_value(field_id, loaded.fields[field_id])
    return out


def _response_sublists(
    loaded: LoadedRecord,
    requested: Mapping[str, Any],
    run_log: RunLog,
) -> dict[str, list[dict[str, Any]]]:
    out: dict[str, list[dict[str, Any]]] = {}
    for sublist_id, wanted in requested.items():
        if sublist_id not in loaded.sublists:
            run_log.write(LogType.error, "[response_sublists()] invalid sublistId", f"'{sublist_id}' not found on record")
            continue
        lines = loaded.sublists[sublist_id]
        out[sublist_id] = []
        if isinstance(wanted, str):
            field_ids = [wanted]
        elif wanted:
            field_ids = list(wanted)
        else:
            # empty means every field of the sublist
            field_ids = list(dict.fromkeys(k for line in lines for k in line))

        for index, line in enumerate(lines):
            snapshot: dict[str, Any] = {"line": index}
            for key in ("id", IdProperty.internalid.value):
                if key in line:
                    snapshot[key] = line[key]
            for field_id in field_ids:
                if line.get(field_id) is None:
                    continue
                snapshot[field_id] = _response_value(field_id, line[field_id])
            out[sublist_id].append(snapshot)
    return out


async def generate_record_result(
    service: RecordService,
    record_type: str,
    internalid: int,
    response_options: Mapping[str, Any] | None,
    run_log: RunLog,
) -> RecordResult:
    """Load the requested fields and sublists. A failed load leaves the result bare."""
    result = RecordResult(record_type=record_type, internalid=internalid)
    if not response_options:
        return result
    try:
        loaded = await service.load(record_type, internalid)
        if response_options.get("fields"):
            result.fields = _response_fields(loaded, response_options["fields"])
        if response_options.get("sublists"):
            result.sublists = _response_sublists(loaded, response_options["sublists"], run_log)
    except Exception as e:
        run_log.write(
            LogType.error,
            "[generate_record_result()] error processing responseOptions",
            f"recordType: {record_type}",
            f"internalid: {internalid}",
            f"caught: {e}",
        )
    return result


## -- handler

async def handle_delete(request: Any, service: RecordService) -> RecordResponse:
    """
    Delete one record found through the request's `idOptions`.

    - 400: malformed request (payload echoed in `rejects`),
    - 404: no option found the record,
    - 500: delete failed; the pre-delete snapshot is still returned,
    - 200: deleted.

    Never raises.
    """
    run_log = RunLog()
    source = f"[{ENDPOINT}.handle_delete()]"

    unpacked = unpack_request(request, run_log)
    if isinstance(unpacked, RecordResponse):
        return unpacked
    run_log.write(LogType.audit, f"{source} request unpacked")

    record_type = unpacked.record_type
    internalid = await search_for_record_id(service, record_type, unpacked.id_options, run_log)
    if internalid is None:
        return _error_response(run_log, request, source, [
            f"No '{record_type}' record found with provided idOptions",
            f"idOptions received: {json.dumps(unpacked.id_options)}",
            "Unable to delete record",
        ], status=404, message="Record not found")

    run_log.write(LogType.audit, f"{source} found internalid {internalid}, taking snapshot before delete")
    snapshot = await generate_record_result(service, record_type, internalid, unpacked.response_options, run_log)
    try:
        await service.delete(record_type, internalid)
    except Exception as e:
        return _error_response(run_log, request, source, [
            "An error occurred while deleting the record",
            f"Attempted: delete({record_type!r}, {internalid})",
            f"Caught: {e}",
        ], status=500, message=f"Unable to delete '{record_type}' record with internalid '{internalid}'", results=[snapshot])

    message = f"{source} Successfully deleted '{record_type}' record with internalid '{internalid}'"
    run_log.write(LogType.audit, message)
    return RecordResponse(status=200, message=message, logs=run_log.entries, results=[snapshot])
