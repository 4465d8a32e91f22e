"""Resolve field values to plain strings.

The resolved index is built once, right after parsing, and is then shared by
every pass that needs to read field content.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from bibtidy.nodes import Concat, Document, Entry, Literal

MONTH_MACROS = (
    "jan",
    "feb",
    "mar",
    "apr",
    "may",
    "jun",
    "jul",
    "aug",
    "sep",
    "oct",
    "nov",
    "dec",
)
MONTH_NAMES = {
    "jan": "January",
    "feb": "February",
    "mar": "March",
    "apr": "April",
    "may": "May",
    "jun": "June",
    "jul": "July",
    "aug": "August",
    "sep": "September",
    "oct": "October",
    "nov": "November",
    "dec": "December",
}
MONTHS = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}


@dataclass(frozen=True)
class FieldValue:
    value: str
    raw: str


FieldMap = Dict[str, FieldValue]
FieldIndex = Dict[Entry, FieldMap]


def resolve_value(concat: Concat, name: str = "") -> str:
    parts = []
    is_month = name.lower() == "month"
    for segment in concat.segments:
        if is_month and isinstance(segment, Literal):
            parts.append(MONTH_NAMES.get(segment.value.lower(), segment.value))
        else:
            parts.append(segment.value)
    return "".join(parts)


def resolve_entry(entry: Entry) -> FieldMap:
    fields: FieldMap = {}
    for item in entry.fields:
        name = item.name.lower()
        if name in fields:
            continue
        fields[name] = FieldValue(resolve_value(item.value, name), item.value.render())
    return fields


def resolve_fields(document: Document) -> FieldIndex:
    return {entry: resolve_entry(entry) for entry in document.entries()}


def field_text(fields: FieldMap, name: str) -> str:
    item = fields.get(name)
    return item.value if item else ""


def month_number(value: str) -> Optional[int]:
    text = value.strip().strip("{}").strip().lower().rstrip(".")
    if not text:
        return None
    if text.isdigit():
        number = int(text)
        return number if 1 <= number <= 12 else None
    if text in MONTHS:
        return MONTHS[text]
    if len(text) >= 3 and text[:3] in MONTHS:
        return MONTHS[text[:3]]
    return None
