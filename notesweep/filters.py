"""
Predicate model and selector.

A Predicate tests one field of an item; a FilterSet combines predicates
with ALL (default) or ANY semantics. Evaluation is pure and total: once a
predicate or filter set has been constructed, evaluating it against any
item returns a bool and never raises. Everything that can be wrong with a
request (empty filter set, bad pattern, unknown comparator) is rejected at
construction time with ValidationError.

Absent fields
-------------
A selector naming a field the item does not have (or has set to None)
resolves to the MISSING sentinel, which is distinct from the empty string:

- ``==``, ``~`` and ``=~`` are False against MISSING
- ``!=`` and ``!~`` are their exact negations, so True against MISSING

A field explicitly set to ``""`` is present and compares as a string.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from .errors import ValidationError
from .items import live_items
from .types import NOTE_TYPE, Item


class _Missing:
    """Sentinel for a field the item does not carry."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

# Pseudo-fields resolved from the item itself rather than its field mapping
_ID_SELECTORS = frozenset({"id", "uuid"})
_TYPE_SELECTORS = frozenset({"type", "content_type", "contenttype"})


class Comparator(Enum):
    """Closed set of comparators. Values are the tokens used on the command line."""
    EQUALS = "=="
    NOT_EQUALS = "!="
    CONTAINS = "~"
    NOT_CONTAINS = "!~"
    MATCHES = "=~"

    @property
    def negated(self) -> bool:
        return self in (Comparator.NOT_EQUALS, Comparator.NOT_CONTAINS)

    @classmethod
    def parse(cls, token: str) -> "Comparator":
        spelled = token.lower().replace("_", "-")
        for comparator in cls:
            if comparator.value == token or comparator.name.lower().replace("_", "-") == spelled:
                return comparator
        raise ValidationError(f"Unknown comparator: {token!r}")


@dataclass(frozen=True)
class Predicate:
    """A (field selector, comparator, expected value) test over one item.

    Comparisons respect case unless ``fold_case`` is set.
    """
    field: str
    comparator: Comparator
    value: str
    fold_case: bool = False
    _pattern: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.field:
            raise ValidationError("Predicate field selector must not be empty")
        if not isinstance(self.comparator, Comparator):
            object.__setattr__(self, "comparator", Comparator.parse(str(self.comparator)))
        if not isinstance(self.value, str):
            object.__setattr__(self, "value", str(self.value))
        if self.comparator is Comparator.MATCHES:
            object.__setattr__(
                self, "_pattern", compile_pattern(self.value, fold_case=self.fold_case)
            )


@dataclass(frozen=True)
class FilterSet:
    """
    Non-empty sequence of predicates plus a combination policy.

    ``match_any=False`` (default) is conjunction, ``True`` is disjunction.
    ``content_type`` names the item type the filter set is fetched against.
    """
    predicates: tuple[Predicate, ...]
    match_any: bool = False
    content_type: str = NOTE_TYPE

    def __post_init__(self):
        object.__setattr__(self, "predicates", tuple(self.predicates))
        if not self.predicates:
            raise ValidationError("Filter set must contain at least one predicate")


_PREDICATE_RE = re.compile(
    r"^\s*(?P<field>[A-Za-z_][A-Za-z0-9_-]*)\s*(?P<op>==|!=|=~|!~|~)(?P<value>.*)$",
    re.DOTALL,
)


def parse_predicate(expression: str, fold_case: bool = False) -> Predicate:
    """Parse ``<field><op><value>``, e.g. ``Title==TestNoteOne`` or ``text~draft``.

    Raises ValidationError if no known comparator is present.
    """
    match = _PREDICATE_RE.match(expression)
    if not match:
        raise ValidationError(
            f"Invalid filter {expression!r}: expected FIELD<op>VALUE "
            f"with op one of {', '.join(c.value for c in Comparator)}"
        )
    return Predicate(
        field=match.group("field"),
        comparator=Comparator.parse(match.group("op")),
        value=match.group("value"),
        fold_case=fold_case,
    )


def compile_pattern(pattern: str, fold_case: bool = False) -> re.Pattern:
    """Compile a label pattern, converting re.error to ValidationError."""
    try:
        return re.compile(pattern, re.IGNORECASE if fold_case else 0)
    except re.error as e:
        raise ValidationError(f"Invalid regular expression {pattern!r}: {e}") from e


def resolve_field(item: Item, selector: str) -> Any:
    """Resolve a field selector against an item.

    Field names match case-insensitively, with an exact match preferred.
    ``id``/``uuid`` and ``type``/``content_type`` name the item's own
    identifier and type tag. Returns MISSING for unknown or None fields.
    """
    key = selector.casefold()
    if key in _ID_SELECTORS:
        return item.id
    if key in _TYPE_SELECTORS:
        return item.content_type
    if selector in item.fields:
        value = item.fields[selector]
    else:
        value = MISSING
        for name, candidate in item.fields.items():
            if name.casefold() == key:
                value = candidate
                break
    return MISSING if value is None else value


def evaluate(item: Item, predicate: Predicate) -> bool:
    """Test one predicate against one item."""
    actual = resolve_field(item, predicate.field)
    if actual is MISSING:
        return predicate.comparator.negated

    text = actual if isinstance(actual, str) else str(actual)
    expected = predicate.value
    comparator = predicate.comparator

    if comparator is Comparator.MATCHES:
        return predicate._pattern.search(text) is not None

    if predicate.fold_case:
        text = text.casefold()
        expected = expected.casefold()

    if comparator in (Comparator.EQUALS, Comparator.NOT_EQUALS):
        result = text == expected
    else:
        result = expected in text
    return not result if comparator.negated else result


def evaluate_filter_set(item: Item, filter_set: FilterSet) -> bool:
    """Combine predicates with short-circuit AND (default) or OR."""
    if filter_set.match_any:
        return any(evaluate(item, p) for p in filter_set.predicates)
    return all(evaluate(item, p) for p in filter_set.predicates)


def select(items: Iterable[Item], filter_set: Optional[FilterSet] = None) -> list[Item]:
    """
    Return the live, deduplicated items matching a filter set.

    Tombstoned items are dropped and duplicates removed before any predicate
    runs; relative order of the fetch is preserved. With no filter set every
    live item is returned.
    """
    candidates = live_items(items)
    if filter_set is None:
        return candidates
    return [item for item in candidates if evaluate_filter_set(item, filter_set)]


def filter_set_from_expressions(
    expressions: Sequence[str],
    *,
    match_any: bool = False,
    fold_case: bool = False,
    content_type: str = NOTE_TYPE,
) -> FilterSet:
    """Build a FilterSet from CLI-style expressions."""
    return FilterSet(
        predicates=tuple(parse_predicate(e, fold_case=fold_case) for e in expressions),
        match_any=match_any,
        content_type=content_type,
    )
