from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Pattern, Union

from rapidfuzz.distance import Levenshtein


# the string `"none"` is a valid value in legacy exports (e.g. `Terms = None`).
_NULL_STRINGS = {"", "null", "na", "n/a"}


def normalize_cell(v: Any) -> Any:
    """Transform a raw CSV/TSV cell into normalized shape (`None` for null synonyms)."""
    if v is None:
        return None
    if isinstance(v, str):
        s = v.strip()
        if s.lower() in _NULL_STRINGS:      # all accepted 'NA' synonyms
            return None
        return s
    return v


def is_null_like(v: Any) -> bool:
    """`None`, blank strings and empty containers carry no value."""
    if v is None:
        return True
    if isinstance(v, str):
        return v.strip() == ""
    if isinstance(v, (list, tuple, dict, set, frozenset)):
        return len(v) == 0
    return False


## -- clean() configuration

Replacement = tuple[Union[Pattern[str], str], str]
CaseOption = Literal["upper", "lower", "title"]


@dataclass(frozen=True, slots=True)
class StripOptions:
    """Which character to strip from either end, and when the right side is kept."""
    char: str = "."
    strip_left: bool = True
    strip_right: bool = True
    keep_right_if: Callable[[str], bool] | None = None      # skip the right strip when True


@dataclass(frozen=True, slots=True)
class CleanOptions:
    """
    Options for `clean()`. Applied in order:
    - `replace` pairs (regex search, replacement),
    - whitespace collapse,
    - `case`,
    - `strip`.
    """
    strip: StripOptions | None = None
    case: CaseOption | None = None
    replace: tuple[Replacement, ...] = ()


# trailing abbreviations whose final dot is part of the value.
KNOWN_ABBREVIATIONS: tuple[str, ...] = (
    "Inc.", "Co.", "Ltd.", "L.L.C.", "P.C.", "P.A.", "N.A.",
    "Jr.", "Sr.", "Dr.", "Mr.", "Mrs.", "Ms.", "St.", "Ave.", "Blvd.",
    "Ph.D.", "M.D.", "D.D.S.", "D.O.", "D.M.D.", "R.N.",
)

_ABBREVIATION_SUFFIX = re.compile(
    r"(?:^|[\s,(])(?:" + "|".join(re.escape(a) for a in KNOWN_ABBREVIATIONS) + r")$",
    re.IGNORECASE,
)


def ends_with_abbreviation(s: str) -> bool:
    """True when `s` ends with one of `KNOWN_ABBREVIATIONS` (dot included)."""
    return bool(_ABBREVIATION_SUFFIX.search(s))


def ends_with_any(s: str, suffixes: Iterable[str], *, ignore_case: bool = True) -> bool:
    """True when `s` (ignoring trailing whitespace) ends with any of `suffixes`."""
    if not s:
        return False
    s = s.rstrip()
    if ignore_case:
        s = s.lower()
        return any(s.endswith(x.lower()) for x in suffixes if x)
    return any(s.endswith(x) for x in suffixes if x)


STRIP_DOT_IF_NOT_ABBREVIATION = StripOptions(char=".", keep_right_if=ends_with_abbreviation)

REPLACE_EM_HYPHEN: Replacement = (re.compile("[—–]"), "-")
ENSURE_SPACE_AROUND_HYPHEN: Replacement = (re.compile(r"(?<=\S) -(?=\S)|(?<=\S)- (?=\S)"), " - ")
REMOVE_ATTN_PREFIX: Replacement = (re.compile(r"^((attention|attn|atn)\s*:)\s*", re.IGNORECASE), "")
REMOVE_TRAILING_COMMA: Replacement = (re.compile(r",+$"), "")

STANDARD_CLEAN = CleanOptions(strip=STRIP_DOT_IF_NOT_ABBREVIATION)

_WHITESPACE = re.compile(r"\s+")


def _strip_ends(s: str, strip: StripOptions) -> str:
    # the char and whitespace interleave (". . Acme"), so both go in one loop
    if strip.strip_left:
        while s and (s.startswith(strip.char) or s[0].isspace()):
            s = s[len(strip.char):] if s.startswith(strip.char) else s[1:]
    if strip.strip_right:
        while s and (s.endswith(strip.char) or s[-1].isspace()):
            if strip.keep_right_if and strip.keep_right_if(s):
                break
            s = s[:-len(strip.char)] if s.endswith(strip.char) else s[:-1]
    return s


def _clean_once(s: str, options: CleanOptions) -> str:
    for pattern, repl in options.replace:
        s = re.sub(pattern, repl, s)
    s = _WHITESPACE.sub(" ", s).strip()

    if options.case == "upper":
        s = s.upper()
    elif options.case == "lower":
        s = s.lower()
    elif options.case == "title":
        s = s.title()

    strip = options.strip
    if strip is not None and strip.char:
        s = _strip_ends(s, strip)
    return s


def clean(value: Any, options: CleanOptions | StripOptions | None = None) -> str:
    """
    Normalize a raw cell to a trimmed `str` (`""` for null-like cells).

    `options` may be a full `CleanOptions` or just a `StripOptions` shorthand.
    Passes repeat until the value is stable, so `clean(clean(x)) == clean(x)`.
    """
    v = normalize_cell(value)
    if v is None:
        return ""
    if isinstance(options, StripOptions):
        options = CleanOptions(strip=options)
    elif options is None:
        options = CleanOptions()

    s = str(v)
    while True:
        nxt = _clean_once(s, options)
        if nxt == s:
            return nxt
        s = nxt


## -- extraction

@dataclass(frozen=True, slots=True)
class NameParts:
    """A person's name split into parts. All-empty when no name shape matched."""
    first: str = ""
    middle: str = ""
    last: str = ""

    def full(self) -> str:
        return " ".join(p for p in (self.first, self.middle, self.last) if p)


_NAME_TOKEN = r"[A-Za-z][A-Za-z'\-]*"
_MIDDLE_TOKEN = rf"(?:[A-Za-z]\.?|{_NAME_TOKEN})"
SALUTATION_PATTERN = re.compile(r"^(mr|mrs|ms|miss|dr|prof)\.?(?=\s)", re.IGNORECASE)
JOB_TITLE_SUFFIX_PATTERN = re.compile(
    r",?\s*\b(jr|sr|ii|iii|iv|md|m\.d|dds|d\.d\.s|d\.o|phd|ph\.d|rn|np|pa-c|dmd|dvm|cpa|esq|mba|fnp|aprn)\.?\s*$",
    re.IGNORECASE,
)
NAME_PATTERN = re.compile(
    rf"^(?:(?:mr|mrs|ms|miss|dr|prof)\.?\s+)?"
    rf"(?P<first>{_NAME_TOKEN})(?:\s+(?P<middle>{_MIDDLE_TOKEN}))?\s+(?P<last>{_NAME_TOKEN})$",
    re.IGNORECASE,
)
LAST_COMMA_FIRST_PATTERN = re.compile(
    rf"^(?P<last>{_NAME_TOKEN}),\s*(?P<first>{_NAME_TOKEN})(?:\s+(?P<middle>{_MIDDLE_TOKEN}))?$",
    re.IGNORECASE,
)


def extract_name(text: Any) -> NameParts:
    """
    Split `text` into first/middle/last with the name-shape patterns.

    Accepts `First Last`, `First M. Last`, `Salutation First Last, Suffix` and `Last, First M`.
    Never raises; returns an all-empty `NameParts` on no match.
    """
    if not isinstance(text, str):
        return NameParts()
    s = _WHITESPACE.sub(" ", text).strip()
    if not s:
        return NameParts()
    m = None
    # suffix-free form first: "John Smith, MD" must not read "MD" as the last name
    for candidate in (JOB_TITLE_SUFFIX_PATTERN.sub("", s).strip(), s):
        m = NAME_PATTERN.match(candidate) or LAST_COMMA_FIRST_PATTERN.match(candidate)
        if m:
            break
    if not m:
        return NameParts()
    middle = (m.group("middle") or "").rstrip(".")
    return NameParts(first=m.group("first"), middle=middle, last=m.group("last"))


def extract_job_title_suffix(text: str) -> str:
    """Trailing credential/generational suffix (`MD`, `Jr.`, ...) or `""`."""
    if not text:
        return ""
    m = JOB_TITLE_SUFFIX_PATTERN.search(text)
    return m.group(1) if m else ""


_PHONE_FIND = re.compile(
    r"(?<!\d)(?:\+?1[-.\s]?)?\(?(\d{3})\)?[-.\s]?(\d{3})[-.\s]?(\d{4})(?:\s*(?:ext\.?|x)\s*(\d{1,5}))?(?!\d)",
    re.IGNORECASE,
)
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_EMAIL_FIND = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def extract_phone(text: Any) -> list[str] | None:
    """
    Every phone number in `text`, formatted `xxx-xxx-xxxx[ ext n]`, in order of appearance.
    `None` when there is none.
    """
    if not isinstance(text, str) or not text:
        return None
    found = [
        f"{a}-{b}-{c}" + (f" ext {ext}" if ext else "")
        for a, b, c, ext in _PHONE_FIND.findall(text)
    ]
    return found or None


def extract_email(text: Any) -> list[str] | None:
    """Every email address in `text`, in order of appearance. `None` when there is none."""
    if not isinstance(text, str) or not text:
        return None
    found = _EMAIL_FIND.findall(text)
    return found or None


def is_valid_email(value: str) -> bool:
    return bool(value) and bool(EMAIL_PATTERN.match(value))


_PARENTHETICAL_SUFFIX = re.compile(r"\s*\([^()]*\)\s*$")


def extract_leaf(value: Any, remove_classes: bool = True, delimiter: str = ":") -> str:
    """
    Leaf of a classed value: `"CLASS:PARENT (description)"` -> `"PARENT"`.

    The parenthetical suffix is removed first, then the text after the last `delimiter`
    is kept (when `remove_classes`). Falls back to the original value if nothing is left.
    """
    if value is None:
        return ""
    original = str(value).strip()
    if not original:
        return ""
    leaf = _PARENTHETICAL_SUFFIX.sub("", original).strip()
    if remove_classes and delimiter in leaf:
        leaf = leaf.rsplit(delimiter, 1)[-1].strip()
    return leaf or original


SKU_EXCEPTIONS = ("DISCOUNT (Discount)", "S&H (Shipping)")


def extract_sku(value: Any) -> str:
    """Item SKU from an item cell: the text before `" ("`, or the first word for known exceptions."""
    if value is None:
        return ""
    s = str(value).strip()
    if s in SKU_EXCEPTIONS:
        return s.split(" ")[0]
    if " (" in s:
        return s.split(" (")[0].strip()
    return s


## -- comparison

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def _alphanumeric_sorted(s: str) -> str:
    return "".join(sorted(_NON_ALPHANUMERIC.sub("", s.lower())))


def equivalent_alphanumeric(s1: Any, s2: Any, tolerance: float = 0.90) -> bool:
    """
    Fuzzy equality for names and address lines.

    Both strings are lowercased, stripped to `[a-z0-9]` and character-sorted. They are
    equivalent when the sorted forms match, when either the raw or sorted Levenshtein
    distance is within `1 - tolerance` of the length, or when one sorted form contains
    the other and covers at least `tolerance` of it.
    """
    if not s1 or not s2 or not isinstance(s1, str) or not isinstance(s2, str):
        return False
    a = _alphanumeric_sorted(s1)
    b = _alphanumeric_sorted(s2)
    if not a or not b:
        return False
    if a == b:
        return True

    max_distance = max(
        math.floor(len(a) * (1 - tolerance)),
        math.floor(len(b) * (1 - tolerance)),
    )
    if Levenshtein.distance(s1, s2) <= max_distance or Levenshtein.distance(a, b) <= max_distance:
        return True

    if len(a) >= len(b) and len(b) / len(a) >= tolerance and b in a:
        return True
    if len(b) >= len(a) and len(a) / len(b) >= tolerance and a in b:
        return True
    return False
