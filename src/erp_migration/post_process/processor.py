from __future__ import annotations

import copy
import inspect
import logging
from typing import Any, Mapping, Sequence

from erp_migration.parsing.context import ParseContext
from erp_migration.parsing.types import RecordOptions, RejectCode
from erp_migration.post_process.types import (
    CloneOptions,
    ComposeOptions,
    InvalidRecord,
    PostProcessDictionary,
    PostProcessingOperation,
    ProcessOptions,
    ValidatedParseResults,
    ValidatedResults,
)

logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _name(fn: Any) -> str:
    return getattr(fn, "__name__", repr(fn))


def validate_operation_order(record_type: str, order: Sequence[Any]) -> list[PostProcessingOperation]:
    """The order as operations; `ValueError` unless it is a permutation of clone, compose, prune."""
    try:
        ops = [PostProcessingOperation(op) for op in order]
    except ValueError as e:
        raise ValueError(f"{record_type}: unknown post-processing operation in {list(order)!r}") from e
    if sorted(ops, key=lambda o: o.value) != sorted(PostProcessingOperation, key=lambda o: o.value):
        raise ValueError(
            f"{record_type}: operation_order must be a permutation of "
            f"{[o.value for o in PostProcessingOperation]}, got {[o.value for o in ops]}"
        )
    return ops


## -- clone

def get_record_id(record: RecordOptions, id_prop: str) -> Any:
    """Value identifying `record` by `id_prop`: a matching composed id option first, else the field."""
    for opt in record.id_options:
        if str(getattr(opt.id_prop, "value", opt.id_prop)) == id_prop:
            return opt.id_value
    return record.fields.get(id_prop)


def clone_record(records: Mapping[str, Sequence[RecordOptions]], recipient: RecordOptions, options: CloneOptions) -> RecordOptions:
    """
    Deep-copy the configured fields and sublists from the donor sharing the recipient's id.

    A recipient without an id or without a donor is returned unchanged (logged). Donor
    fields/sublists that are absent are skipped.
    """
    if recipient.record_type != options.recipient_type:
        raise ValueError(f"clone recipient is {recipient.record_type!r}, expected {options.recipient_type!r}")

    recipient_id = get_record_id(recipient, options.id_prop)
    if recipient_id in (None, ""):
        logger.warning("%s: no %r to find a %s donor by", options.recipient_type, options.id_prop, options.donor_type)
        return recipient

    donor = next(
        (d for d in records.get(options.donor_type, ()) if get_record_id(d, options.id_prop) == recipient_id),
        None,
    )
    if donor is None:
        logger.warning("%s %r: no %s donor with the same %r", options.recipient_type, recipient_id, options.donor_type, options.id_prop)
        return recipient

    for field_id in options.field_ids:
        if field_id not in donor.fields:
            logger.debug("%s %r: donor has no field %r, skipped", options.recipient_type, recipient_id, field_id)
            continue
        recipient.fields[field_id] = copy.deepcopy(donor.fields[field_id])
    for sublist_id in options.sublist_ids:
        if sublist_id not in donor.sublists:
            logger.warning("%s %r: donor has no sublist %r, skipped", options.recipient_type, recipient_id, sublist_id)
            continue
        recipient.sublists[sublist_id] = copy.deepcopy(donor.sublists[sublist_id])
    return recipient


## -- compose

async def compose_record(record: RecordOptions, options: ComposeOptions, context: ParseContext) -> RecordOptions:
    """Run the configured composers: fields, then id options, then sublists."""
    if options.fields is not None:
        record.fields = dict(await _maybe_await(options.fields(record, record.fields, context)))
    if options.id_options is not None:
        record.id_options = list(await _maybe_await(options.id_options(record, list(record.id_options), context)))

    sublists = options.sublists
    if sublists is None:
        return record
    if callable(sublists):
        record.sublists = dict(await _maybe_await(sublists(record, record.sublists, context)))
        return record
    for sublist_id, composer in sublists.items():
        lines = await _maybe_await(composer(record, record.sublists.get(sublist_id, []), context))
        if lines:
            record.sublists[sublist_id] = list(lines)
        else:
            record.sublists.pop(sublist_id, None)
    return record


## -- orchestration

async def _process_record_type(
    record_type: str,
    records: list[RecordOptions],
    options: ProcessOptions,
    order: list[PostProcessingOperation],
    working: Mapping[str, Sequence[RecordOptions]],
    context: ParseContext,
) -> ValidatedResults:
    invalid: dict[int, InvalidRecord] = {}

    def reject(i: int, code: RejectCode, detail: str) -> None:
        invalid[i] = InvalidRecord(record=records[i], reason_code=code, reason_detail=detail)

    for op in order:
        for i, record in enumerate(records):
            if i in invalid:
                continue

            if op is PostProcessingOperation.clone and options.clone_options is not None:
                try:
                    records[i] = clone_record(working, record, options.clone_options)
                except Exception as e:
                    logger.error("%s[%d]: clone failed", record_type, i, exc_info=True)
                    reject(i, RejectCode.clone_failed, f"{type(e).__name__}: {e}")

            elif op is PostProcessingOperation.compose and options.compose_options is not None:
                try:
                    records[i] = await compose_record(record, options.compose_options, context)
                except Exception as e:
                    logger.error("%s[%d]: compose failed", record_type, i, exc_info=True)
                    reject(i, RejectCode.compose_failed, f"{type(e).__name__}: {e}")

            elif op is PostProcessingOperation.prune and options.prune_func is not None:
                try:
                    result = await _maybe_await(options.prune_func(record, *options.prune_args))
                except Exception as e:
                    logger.error("%s[%d]: prune %s() raised", record_type, i, _name(options.prune_func), exc_info=True)
                    reject(i, RejectCode.prune_failed, f"{type(e).__name__}: {e}")
                    continue
                if result is None:
                    reject(i, RejectCode.pruned, f"{_name(options.prune_func)}() rejected the record")
                else:
                    records[i] = result

    return ValidatedResults(
        valid=[r for i, r in enumerate(records) if i not in invalid],
        invalid=[invalid[i] for i in sorted(invalid)],
    )


async def process_parse_results(
    initial: Mapping[str, Sequence[RecordOptions]],
    process_dictionary: PostProcessDictionary | None = None,
    context: ParseContext | None = None,
) -> ValidatedParseResults:
    """
    Partition parsed records into `valid` and `invalid` per record type.

    Record types in `process_dictionary` run in its key order, each through its operations
    in `operation_order`. A record invalidated by one operation is skipped by the later ones.
    Record types without post-processing pass through as valid.

    Raises `ValueError` up front for an `operation_order` that is not a permutation of
    clone/compose/prune. Failures of individual records are never raised.
    """
    context = context or ParseContext()
    process_dictionary = process_dictionary or {}
    orders = {rt: validate_operation_order(rt, opts.operation_order) for rt, opts in process_dictionary.items()}

    working: dict[str, list[RecordOptions]] = {rt: list(recs) for rt, recs in initial.items()}
    results: ValidatedParseResults = {}

    for record_type, options in process_dictionary.items():
        if record_type not in working:
            logger.warning("post-processing configured for %r but no %r records were parsed", record_type, record_type)
            continue
        results[record_type] = await _process_record_type(
            record_type, working[record_type], options, orders[record_type], working, context,
        )

    for record_type, records in working.items():
        if record_type not in results:
            results[record_type] = ValidatedResults(valid=list(records))

    for record_type, res in results.items():
        logger.info(
            "%s: initial=%d valid=%d invalid=%d",
            record_type, len(initial.get(record_type, ())), len(res.valid), len(res.invalid),
        )
    return results


def get_composite_dictionaries(
    results: ValidatedParseResults,
) -> tuple[dict[str, list[RecordOptions]], dict[str, list[InvalidRecord]]]:
    """`(valid_by_type, invalid_by_type)`; record types without invalid records are left out of the latter."""
    valid = {rt: list(res.valid) for rt, res in results.items()}
    invalid = {rt: list(res.invalid) for rt, res in results.items() if res.invalid}
    return valid, invalid
