from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

from .types import RecordOptions

# Typing:
# Evaluator is `(row, *args, **kwargs) -> FieldValue` or an awaitable of one.
# LineIdEvaluator is `(line, *args) -> str` or an awaitable of one.
# PruneFunc is `(record, *args) -> RecordOptions | None`.
Evaluator = Callable[..., Any]
LineIdEvaluator = Callable[..., Any]
PruneFunc = Callable[..., Union[RecordOptions, None]]


class ParseConfigError(ValueError):
    """A parse configuration is malformed. Raised before any row is processed."""


class MissingColumnsError(ParseConfigError):
    """The input header lacks columns a parse configuration reads directly."""

    def __init__(self, record_type: str, missing: Sequence[str]) -> None:
        self.record_type = record_type
        self.missing = list(missing)
        super().__init__(f"{record_type}: missing required columns {self.missing}")


@dataclass(frozen=True, slots=True)
class ValueMappingEntry:
    """A raw-value replacement that applies only to cells from `valid_columns`."""
    new_value: Any
    valid_columns: tuple[str, ...]

# exact raw cell string -> replacement value, or a column-scoped `ValueMappingEntry`
ValueMapping = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class FieldParseOptions:
    """
    How one field's value is derived. Exactly one source:
    - `default_value` alone (a constant),
    - `col_name` (passthrough of `row[col_name]`, coerced),
    - `evaluator` called as `evaluator(row, *args, **kwargs)`.

    `default_value` also backs up `col_name`/`evaluator` when they produce a null-like value.
    `with_context=True` passes the run's `ParseContext` to the evaluator as `context=`.
    """
    default_value: Any = None
    col_name: str | None = None
    evaluator: Evaluator | None = None
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    with_context: bool = False

    def __post_init__(self) -> None:
        if self.col_name is not None and self.evaluator is not None:
            raise ParseConfigError(
                f"colName {self.col_name!r} and evaluator {getattr(self.evaluator, '__name__', self.evaluator)!r} "
                "are mutually exclusive"
            )
        if self.col_name is None and self.evaluator is None and self.default_value is None:
            raise ParseConfigError("field options need one of default_value, col_name or evaluator")
        if self.evaluator is not None and not callable(self.evaluator):
            raise ParseConfigError(f"evaluator is not callable: {self.evaluator!r}")
        if (self.args or self.kwargs) and self.evaluator is None:
            raise ParseConfigError("args/kwargs are only used with an evaluator")


@dataclass(frozen=True, slots=True)
class SubrecordParseOptions:
    """A field whose value is a nested record; same shape as a top-level record's options."""
    subrecord_type: str
    field_options: Mapping[str, "FieldOptions"] = field(default_factory=dict)
    sublist_options: Mapping[str, Sequence["SublistLineParseOptions"]] = field(default_factory=dict)


FieldOptions = Union[FieldParseOptions, SubrecordParseOptions]


@dataclass(frozen=True, slots=True)
class LineIdOptions:
    """Identity of a sublist line: a designated field, or a custom evaluator over the produced line."""
    line_id_prop: str | None = None
    line_id_evaluator: LineIdEvaluator | None = None
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if (self.line_id_prop is None) == (self.line_id_evaluator is None):
            raise ParseConfigError("line id options need exactly one of line_id_prop or line_id_evaluator")


@dataclass(frozen=True, slots=True)
class SublistLineParseOptions:
    """One sublist line: field-id -> options, optional identity, optional explicit line number."""
    field_options: Mapping[str, FieldOptions]
    line_id_options: LineIdOptions | None = None
    line: int | None = None


SublistOptions = Mapping[str, Sequence[SublistLineParseOptions]]


@dataclass(frozen=True, slots=True)
class RecordParseOptions:
    """
    Parse configuration for one record type.

    `key_column` groups rows into one record (e.g. a transaction's line items).
    `required_columns` adds columns to the eager header check beyond those read via `col_name`.
    """
    key_column: str
    field_options: Mapping[str, FieldOptions] = field(default_factory=dict)
    sublist_options: SublistOptions = field(default_factory=dict)
    prune_func: PruneFunc | None = None
    prune_args: tuple[Any, ...] = ()
    required_columns: tuple[str, ...] = ()


## -- validation

def _validate_field_dictionary(path: str, options: Mapping[str, Any]) -> None:
    if not isinstance(options, Mapping):
        raise ParseConfigError(f"{path}: field options must be a mapping, got {type(options).__name__}")
    for field_id, opt in options.items():
        here = f"{path}.{field_id}"
        if isinstance(opt, SubrecordParseOptions):
            if not opt.subrecord_type:
                raise ParseConfigError(f"{here}: subrecord_type is required")
            _validate_field_dictionary(here, opt.field_options)
            _validate_sublist_dictionary(here, opt.sublist_options)
        elif not isinstance(opt, FieldParseOptions):
            raise ParseConfigError(f"{here}: expected FieldParseOptions or SubrecordParseOptions, got {type(opt).__name__}")


def _validate_sublist_dictionary(path: str, options: Mapping[str, Any]) -> None:
    if not isinstance(options, Mapping):
        raise ParseConfigError(f"{path}: sublist options must be a mapping, got {type(options).__name__}")
    for sublist_id, lines in options.items():
        if isinstance(lines, (str, bytes)) or not isinstance(lines, Sequence):
            raise ParseConfigError(f"{path}.{sublist_id}: expected a sequence of SublistLineParseOptions")
        for i, line in enumerate(lines):
            here = f"{path}.{sublist_id}[{i}]"
            if not isinstance(line, SublistLineParseOptions):
                raise ParseConfigError(f"{here}: expected SublistLineParseOptions, got {type(line).__name__}")
            _validate_field_dictionary(here, line.field_options)


def validate_parse_options(record_type: str, options: RecordParseOptions) -> None:
    """Walk a record's parse options and raise `ParseConfigError` on the first malformed entry."""
    if not isinstance(options, RecordParseOptions):
        raise ParseConfigError(f"{record_type}: expected RecordParseOptions, got {type(options).__name__}")
    if not options.key_column:
        raise ParseConfigError(f"{record_type}: key_column is required")
    if options.prune_func is not None and not callable(options.prune_func):
        raise ParseConfigError(f"{record_type}: prune_func is not callable")
    _validate_field_dictionary(record_type, options.field_options)
    _validate_sublist_dictionary(record_type, options.sublist_options)


def _col_names(options: Mapping[str, Any], out: list[str]) -> None:
    for opt in options.values():
        if isinstance(opt, SubrecordParseOptions):
            _col_names(opt.field_options, out)
            for lines in opt.sublist_options.values():
                for line in lines:
                    _col_names(line.field_options, out)
        elif isinstance(opt, FieldParseOptions) and opt.col_name and opt.col_name not in out:
            out.append(opt.col_name)


def required_columns(options: RecordParseOptions) -> list[str]:
    """Columns a record type cannot be parsed without: key column, `col_name` reads, explicit extras."""
    out: list[str] = [options.key_column]
    _col_names(options.field_options, out)
    for lines in options.sublist_options.values():
        for line in lines:
            _col_names(line.field_options, out)
    for col in options.required_columns:
        if col not in out:
            out.append(col)
    return out


def check_columns(header: Iterable[str], parse_dictionary: Mapping[str, RecordParseOptions]) -> None:
    """
    Validate every record type's options and its columns against `header`.
    Raises before any row is processed.
    """
    present = {str(h).strip() for h in header if h is not None}
    for record_type, options in parse_dictionary.items():
        validate_parse_options(record_type, options)
        missing = [c for c in required_columns(options) if c not in present]
        if missing:
            raise MissingColumnsError(record_type, missing)
