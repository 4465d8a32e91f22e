"""Generate citation keys from a template.

A template mixes literal text with bracketed markers, for example
``[auth:lower][year][veryshorttitle:lower]``. A marker names an author,
title or date component (or any field) and may carry a word count
(``[authors2]``, ``[title3]``) and colon-separated modifiers:

``lower``, ``upper``
    change the case of every word
``capitalize``
    upper-case the first letter of every word
``<N>``
    keep the first N characters

Function words are dropped from titles unless nothing else is left.
Colliding keys get ``a``, ``b``, ... appended in document order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union

from bibtidy.diagnostics import INVALID_OPTION, TidyWarning
from bibtidy.fields import FieldIndex, FieldMap, field_text, month_number, resolve_entry
from bibtidy.latex import FUNCTION_WORDS, plain_text, surnames
from bibtidy.nodes import Document, Entry

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"\[([^\[\]]+)\]")
MARKER_NAME_RE = re.compile(r"^([A-Za-z][A-Za-z.]*?)(\d*)$")
KEY_WORD_RE = re.compile(r"[A-Za-z0-9]+")
INVALID_KEY_CHARS_RE = re.compile(r"[\s,{}\"#%'()=\\~]")
MODIFIERS = ("lower", "upper", "capitalize")
SHORT_TITLE_WORDS = 3


@dataclass
class Marker:
    name: str
    count: Optional[int] = None
    modifiers: List[str] = field(default_factory=list)


TemplatePart = Union[str, Marker]


def parse_template(template: str) -> Tuple[List[TemplatePart], List[str]]:
    """Split a template into literal text and markers.

    Returns the parts and the list of unrecognized modifiers.
    """
    parts: List[TemplatePart] = []
    unknown: List[str] = []
    pos = 0
    for match in MARKER_RE.finditer(template):
        if match.start() > pos:
            parts.append(template[pos : match.start()])
        pos = match.end()
        name, *modifiers = [piece.strip() for piece in match.group(1).split(":")]
        name_match = MARKER_NAME_RE.match(name)
        if not name_match:
            unknown.append(name)
            continue
        base, digits = name_match.groups()
        for modifier in modifiers:
            if modifier not in MODIFIERS and not modifier.isdigit():
                unknown.append(modifier)
        parts.append(Marker(base, int(digits) if digits else None, modifiers))
    if pos < len(template):
        parts.append(template[pos:])
    return parts, unknown


def key_words(value: str) -> List[str]:
    return KEY_WORD_RE.findall(plain_text(value))


def capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def extract_year(fields: FieldMap) -> str:
    for name in ("year", "date"):
        match = re.search(r"\d{4}", field_text(fields, name))
        if match:
            return match.group(0)
    return ""


def title_words(fields: FieldMap, count: Optional[int]) -> List[str]:
    words = key_words(field_text(fields, "title"))
    content = [word for word in words if word.lower() not in FUNCTION_WORDS]
    words = content or words
    if count is not None:
        words = words[:count]
    return [capitalize(word) for word in words]


def author_words(fields: FieldMap) -> List[str]:
    value = field_text(fields, "author") or field_text(fields, "editor")
    return ["".join(capitalize(word) for word in key_words(name)) for name in surnames(value)]


def marker_words(marker: Marker, fields: FieldMap) -> List[str]:
    name = marker.name.lower()
    if name == "auth":
        return author_words(fields)[:1]
    if name == "authetal":
        authors = author_words(fields)
        return authors if len(authors) <= 2 else [authors[0], "EtAl"]
    if name == "authors":
        authors = author_words(fields)
        if marker.count is not None and len(authors) > marker.count:
            return authors[: marker.count] + ["EtAl"]
        return authors
    if name == "year":
        year = extract_year(fields)
        return [year] if year else []
    if name == "month":
        number = month_number(field_text(fields, "month"))
        return [f"{number:02d}"] if number else []
    if name == "title":
        return title_words(fields, marker.count)
    if name == "shorttitle":
        return title_words(fields, SHORT_TITLE_WORDS)
    if name == "veryshorttitle":
        return title_words(fields, 1)
    return [capitalize(word) for word in key_words(field_text(fields, name))]


def apply_modifiers(words: List[str], modifiers: List[str]) -> str:
    for modifier in modifiers:
        if modifier == "lower":
            words = [word.lower() for word in words]
        elif modifier == "upper":
            words = [word.upper() for word in words]
        elif modifier == "capitalize":
            words = [capitalize(word.lower()) for word in words]
    text = "".join(words)
    for modifier in modifiers:
        if modifier.isdigit():
            text = text[: int(modifier)]
    return text


def render_key(parts: List[TemplatePart], fields: FieldMap) -> str:
    """Build a key; empty when no marker produced any text."""
    pieces: List[str] = []
    produced = False
    for part in parts:
        if isinstance(part, str):
            pieces.append(part)
            continue
        text = apply_modifiers(marker_words(part, fields), part.modifiers)
        produced = produced or bool(text)
        pieces.append(text)
    if not produced:
        return ""
    return INVALID_KEY_CHARS_RE.sub("", "".join(pieces))


def suffix_letters(index: int) -> str:
    letters = []
    while index > 0:
        index -= 1
        letters.append(chr(ord("a") + (index % 26)))
        index //= 26
    return "".join(reversed(letters))


def generate_keys(document: Document, index: FieldIndex, template: str) -> List[TidyWarning]:
    parts, unknown = parse_template(template)
    warnings = [
        TidyWarning(INVALID_OPTION, f"Unknown key template modifier or marker {name!r}")
        for name in unknown
    ]
    candidates: Dict[Entry, str] = {}
    used: Set[str] = set()
    for entry in document.entries():
        fields = index.get(entry)
        if fields is None:
            fields = resolve_entry(entry)
        candidate = render_key(parts, fields)
        if candidate:
            candidates[entry] = candidate
        elif entry.key:
            used.add(entry.key)

    changed = 0
    for entry, base in candidates.items():
        key = base
        suffix = 0
        while key in used:
            suffix += 1
            key = f"{base}{suffix_letters(suffix)}"
        used.add(key)
        if key != entry.key:
            entry.key = key
            entry.dirty = True
            changed += 1
    logger.debug("generated %d new keys", changed)
    return warnings
