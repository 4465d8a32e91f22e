"""Reorder blocks and the fields within entries."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from bibtidy.fields import FieldIndex, field_text, month_number, resolve_entry
from bibtidy.nodes import Block, Document, Entry, Item

logger = logging.getLogger(__name__)

PAD_WIDTH = 50

SortIndex = Dict[str, Optional[str]]


def sort_value(block: Block, entry: Entry, key: str, index: FieldIndex) -> Optional[str]:
    fields = index.get(entry)
    if fields is None:
        fields = resolve_entry(entry)
    if key == "key":
        value = entry.key or ""
    elif key == "type":
        value = block.command
    elif key == "month":
        number = month_number(field_text(fields, "month"))
        value = str(number) if number else ""
    else:
        value = field_text(fields, key)
    value = value.strip().lower()
    if not value:
        return None
    if value.isdigit():
        return value.zfill(PAD_WIDTH)
    return value


def build_sort_indexes(document: Document, index: FieldIndex, keys: List[str]) -> Dict[Item, SortIndex]:
    """Compute sort values per entry.

    Free text, comments, preambles and strings take the sort index of the
    entry that follows them, so they travel with it.
    """
    sort_indexes: Dict[Item, SortIndex] = {}
    preceding: List[Item] = []
    for item in document.items:
        entry = item.entry if isinstance(item, Block) else None
        if entry is None:
            preceding.append(item)
            continue
        sort_index = {key: sort_value(item, entry, key, index) for key in keys}
        sort_indexes[item] = sort_index
        for meta in preceding:
            sort_indexes[meta] = sort_index
        preceding = []
    return sort_indexes


def sort_entries(document: Document, index: FieldIndex, sort: List[str]) -> None:
    """Stable sort by each key in turn, last key first.

    A ``-`` prefix sorts that key in descending order. Items without a value
    for a key go after every item that has one, in either direction.
    """
    keys = [prefixed.lstrip("-") for prefixed in sort]
    sort_indexes = build_sort_indexes(document, index, keys)
    items = list(document.items)
    for prefixed in reversed(sort):
        key = prefixed.lstrip("-")

        def value(item: Item) -> Optional[str]:
            return sort_indexes.get(item, {}).get(key)

        present = [item for item in items if value(item) is not None]
        missing = [item for item in items if value(item) is None]
        present.sort(key=value, reverse=prefixed.startswith("-"))
        items = present + missing
    document.items = items
    logger.debug("sorted %d items by %s", len(items), ", ".join(sort))


def sort_entry_fields(document: Document, field_order: List[str]) -> None:
    order: Dict[str, int] = {}
    for rank, name in enumerate(field_order):
        order.setdefault(name.lower(), rank)
    for entry in document.entries():
        ordered = sorted(
            entry.fields,
            key=lambda item: order.get(item.name.lower(), len(order)),
        )
        if any(a is not b for a, b in zip(ordered, entry.fields)):
            entry.fields = ordered
            entry.dirty = True
