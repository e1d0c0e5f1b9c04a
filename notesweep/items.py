"""
Pure helpers over item collections.

A raw fetch may repeat an item (paginated responses overlap) and may include
tombstoned items. Both are removed here before any predicate is applied.
"""

from typing import Iterable

from .types import Item, ItemReference


def deduplicate(items: Iterable[Item]) -> list[Item]:
    """Drop items whose identifier was already seen, keeping first occurrences in order."""
    seen: set[str] = set()
    out = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out


def filter_tombstoned(items: Iterable[Item]) -> list[Item]:
    """Return only live items, preserving order. The input is not modified."""
    return [item for item in items if not item.deleted]


def live_items(items: Iterable[Item]) -> list[Item]:
    """Tombstone-filter then deduplicate: the collection every selection starts from."""
    return deduplicate(filter_tombstoned(items))


def project_references(items: Iterable[Item]) -> list[ItemReference]:
    """(identifier, type) view of a collection; never reads field content."""
    return [ItemReference(id=item.id, content_type=item.content_type) for item in items]


def references_to_dicts(refs: Iterable[ItemReference]) -> list[dict[str, str]]:
    """Plain dicts for JSON or YAML output."""
    return [{"uuid": ref.id, "content_type": ref.content_type} for ref in refs]


def string_in_list(value: str, candidates: Iterable[str], fold_case: bool = False) -> bool:
    """Check membership, case-respecting unless fold_case is set."""
    if fold_case:
        folded = value.casefold()
        return any(folded == c.casefold() for c in candidates)
    return any(value == c for c in candidates)


def comma_split(value: str) -> list[str]:
    """Split a comma-separated flag value, stripping whitespace.

    >>> comma_split("a, b,c")
    ['a', 'b', 'c']
    >>> comma_split("")
    []
    """
    parts = [p.strip() for p in value.split(",")]
    if len(parts) == 1 and not parts[0]:
        return []
    return parts


def out_list(values: list[str], sep: str = ", ") -> str:
    """Join values for display; '-' when there are none."""
    if not values:
        return "-"
    return sep.join(values)
