from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping

from .adapter import lookup_value_mapping, transform_value
from .context import ParseContext
from .primitives import is_null_like
from .schema import (
    FieldOptions,
    FieldParseOptions,
    RecordParseOptions,
    SublistLineParseOptions,
    SublistOptions,
    SubrecordParseOptions,
)
from .types import LINE_ID_KEY, LINE_ID_PROP_KEY, LINE_KEY, RecordOptions, SublistLine, SubrecordValue

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _name(fn: Any) -> str:
    return getattr(fn, "__name__", repr(fn))


def _argument_columns(row: Row, options: FieldParseOptions) -> list[str]:
    """Evaluator arguments that name columns of `row` (used to scope value-mapping entries)."""
    candidates = [*options.args, *options.kwargs.values()]
    return [a for a in candidates if isinstance(a, str) and a in row]


async def resolve_field(row: Row, field_id: str, options: FieldParseOptions, context: ParseContext) -> Any:
    """
    Resolve one field's value from `row`.

    An exact value-mapping override beats both the column passthrough and the evaluator output.
    An evaluator that raises is logged and yields no value; it never aborts the record.
    """
    value: Any = None

    if options.evaluator is not None:
        kwargs = dict(options.kwargs)
        if options.with_context:
            kwargs["context"] = context
        try:
            value = await _maybe_await(options.evaluator(row, *options.args, **kwargs))
        except Exception:
            logger.warning("evaluator %s() failed for field %r", _name(options.evaluator), field_id, exc_info=True)
            value = None
        matched, mapped = lookup_value_mapping(value, _argument_columns(row, options), context.value_mapping)
        if matched:
            value = mapped

    elif options.col_name is not None:
        value = transform_value(row.get(options.col_name), options.col_name, field_id, context.value_mapping)

    if is_null_like(value) and options.default_value is not None:
        value = options.default_value
    return value


async def parse_field_dictionary(
    row: Row,
    field_options: Mapping[str, FieldOptions],
    context: ParseContext,
    *,
    sublist_id: str | None = None,
) -> dict[str, Any]:
    """
    Build a field dictionary. Null-like values are omitted rather than stored as `None`,
    and so are subrecords that end up with no fields and no sublist lines.
    """
    out: dict[str, Any] = {}
    for field_id, opt in field_options.items():
        if isinstance(opt, SubrecordParseOptions):
            sub = await parse_subrecord(row, opt, context, field_id=field_id, sublist_id=sublist_id)
            if not sub.is_empty():
                out[field_id] = sub
            continue

        value = await resolve_field(row, field_id, opt, context)
        if not is_null_like(value):
            out[field_id] = value
    return out


async def parse_subrecord(
    row: Row,
    options: SubrecordParseOptions,
    context: ParseContext,
    *,
    field_id: str | None = None,
    sublist_id: str | None = None,
) -> SubrecordValue:
    """Recurse into a nested record (e.g. an address), tagged with its `subrecord_type`."""
    fields = await parse_field_dictionary(row, options.field_options, context)
    sublists = await parse_sublist_dictionary(row, options.sublist_options, context)
    return SubrecordValue(
        subrecord_type=options.subrecord_type,
        fields=fields,
        sublists=sublists,
        field_id=field_id,
        sublist_id=sublist_id,
    )


async def parse_sublist_line(
    row: Row,
    sublist_id: str,
    entry: SublistLineParseOptions,
    context: ParseContext,
    *,
    index: int,
) -> SublistLine | None:
    """
    Build one sublist line, or `None` when none of its fields produced a value.

    `line` is the entry's position unless the entry sets one. Line identity from
    `line_id_options` is attached as metadata only.
    """
    values = await parse_field_dictionary(row, entry.field_options, context, sublist_id=sublist_id)
    if not values:
        return None

    line: SublistLine = dict(values)
    line[LINE_KEY] = entry.line if entry.line is not None else index

    id_options = entry.line_id_options
    if id_options is not None:
        if id_options.line_id_prop is not None:
            line[LINE_ID_PROP_KEY] = id_options.line_id_prop
        elif id_options.line_id_evaluator is not None:
            try:
                line_id = await _maybe_await(id_options.line_id_evaluator(dict(values), *id_options.args))
            except Exception:
                logger.warning(
                    "line id evaluator %s() failed for sublist %r line %s",
                    _name(id_options.line_id_evaluator), sublist_id, line[LINE_KEY], exc_info=True,
                )
                line_id = None
            if not is_null_like(line_id):
                line[LINE_ID_KEY] = line_id
    return line


async def parse_sublist_dictionary(row: Row, sublist_options: SublistOptions, context: ParseContext) -> dict[str, list[SublistLine]]:
    """Build every configured sublist; sublists without any produced line are omitted."""
    out: dict[str, list[SublistLine]] = {}
    for sublist_id, entries in sublist_options.items():
        lines: list[SublistLine] = []
        for i, entry in enumerate(entries):
            line = await parse_sublist_line(row, sublist_id, entry, context, index=i)
            if line is not None:
                lines.append(line)
        if lines:
            out[sublist_id] = lines
    return out


async def build_record_options(
    row: Row,
    record_type: str,
    options: RecordParseOptions,
    context: ParseContext | None = None,
) -> RecordOptions:
    """Interpret one record type's parse options against one row."""
    context = context or ParseContext()
    fields = await parse_field_dictionary(row, options.field_options, context)
    sublists = await parse_sublist_dictionary(row, options.sublist_options, context)
    return RecordOptions(record_type=record_type, fields=fields, sublists=sublists)
