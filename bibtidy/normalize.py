"""Field-level normalization passes.

Each pass takes ``(document, index, options)``, is a no-op unless its option
is enabled, and marks every entry it changes as dirty. ``NORMALIZATION_PASSES``
fixes the order: delimiter conversion and double-brace stripping run before
numeric unwrapping, and double braces are added last so that they survive
the earlier delimiter passes. Empty fields are dropped after brace stripping.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterator, Tuple
from urllib.parse import quote

from bibtidy.fields import MONTHS, MONTH_MACROS, FieldIndex, resolve_value
from bibtidy.latex import (
    braces_balanced,
    escape_latex,
    has_balanced_outer_braces,
    is_all_caps,
    is_others,
    is_verbatim_field,
    split_names,
    title_case,
)
from bibtidy.nodes import Braced, Document, Entry, Field, Literal, Quoted
from bibtidy.options import Options

logger = logging.getLogger(__name__)

Pass = Callable[[Document, FieldIndex, Options], None]

URL_SAFE = ":/?#[]@!$&'()*+,;=%~"
URL_ESCAPE_RE = re.compile(r"\\([_%&#$])")
INTEGER_RE = re.compile(r"^\d+$")


def iter_fields(document: Document) -> Iterator[Tuple[Entry, Field]]:
    for entry in document.entries():
        for item in list(entry.fields):
            yield entry, item


def is_url_field(name: str) -> bool:
    name = name.lower()
    return name == "url" or name.endswith("url") or name.startswith("bdsk-url")


def keep_fields(entry: Entry, keep: Callable[[Field], bool]) -> None:
    kept = [item for item in entry.fields if keep(item)]
    if len(kept) != len(entry.fields):
        entry.fields = kept
        entry.dirty = True


def omit_fields(document: Document, index: FieldIndex, options: Options) -> None:
    omit = set(options.omit_fields)
    if not omit:
        return
    for entry in document.entries():
        keep_fields(entry, lambda item: item.name.lower() not in omit)


def remove_duplicate_fields(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.remove_duplicate_fields:
        return
    for entry in document.entries():
        seen = set()

        def first_seen(item: Field) -> bool:
            name = item.name.lower()
            if name in seen:
                return False
            seen.add(name)
            return True

        keep_fields(entry, first_seen)


def remove_empty_fields(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.remove_empty_fields:
        return
    for entry in document.entries():
        keep_fields(entry, lambda item: bool(resolve_value(item.value, item.name).strip()))


def truncate_authors(document: Document, index: FieldIndex, options: Options) -> None:
    limit = options.max_authors
    if not limit:
        return
    for entry in document.entries():
        item = entry.get("author")
        if item is None or len(item.value.segments) != 1:
            continue
        segment = item.value.segments[0]
        if isinstance(segment, Literal):
            continue
        names = split_names(segment.value)
        if names and is_others(names[-1]):
            names = names[:-1]
        if len(names) <= limit:
            continue
        segment.value = " and ".join(names[:limit] + ["others"])
        entry.dirty = True


def convert_to_braces(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.curly:
        return
    for entry, item in iter_fields(document):
        concat = item.value
        for idx, segment in enumerate(concat.segments):
            if isinstance(segment, Quoted) and braces_balanced(segment.value):
                concat.replace(idx, Braced(segment.value))
                entry.dirty = True
            elif (
                isinstance(segment, Literal)
                and not options.numeric
                and INTEGER_RE.match(segment.value)
            ):
                concat.replace(idx, Braced(segment.value))
                entry.dirty = True


def strip_enclosing_braces(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.strip_enclosing_braces:
        return
    for entry, item in iter_fields(document):
        for segment in item.value.segments:
            if isinstance(segment, Literal):
                continue
            value = segment.value
            while has_balanced_outer_braces(value):
                value = value[1:-1]
            if value != segment.value:
                segment.value = value
                entry.dirty = True


def month_macro(value: str) -> str:
    text = value.strip().lower()
    if text in MONTH_MACROS:
        return text
    number = MONTHS.get(text)
    return MONTH_MACROS[number - 1] if number else ""


def unwrap_numeric(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.numeric:
        return
    for entry, item in iter_fields(document):
        concat = item.value
        is_month = item.name.lower() == "month" and len(concat.segments) == 1
        for idx, segment in enumerate(concat.segments):
            if isinstance(segment, Literal):
                continue
            text = segment.value.strip()
            if INTEGER_RE.match(text):
                concat.replace(idx, Literal(text))
                entry.dirty = True
            elif is_month and month_macro(text):
                concat.replace(idx, Literal(month_macro(text)))
                entry.dirty = True


def drop_all_caps(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.drop_all_caps:
        return
    for entry, item in iter_fields(document):
        if is_verbatim_field(item.name):
            continue
        for segment in item.value.segments:
            if isinstance(segment, Literal) or not is_all_caps(segment.value):
                continue
            value = title_case(segment.value)
            if value != segment.value:
                segment.value = value
                entry.dirty = True


def escape_special_characters(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.escape:
        return
    for entry, item in iter_fields(document):
        if is_verbatim_field(item.name):
            continue
        for segment in item.value.segments:
            if isinstance(segment, Literal):
                continue
            value = escape_latex(segment.value)
            if value != segment.value:
                segment.value = value
                entry.dirty = True


def encode_url(value: str) -> str:
    return quote(URL_ESCAPE_RE.sub(r"\1", value), safe=URL_SAFE)


def encode_urls(document: Document, index: FieldIndex, options: Options) -> None:
    if not options.encode_urls:
        return
    for entry, item in iter_fields(document):
        if not is_url_field(item.name):
            continue
        for segment in item.value.segments:
            if isinstance(segment, Literal):
                continue
            value = encode_url(segment.value)
            if value != segment.value:
                segment.value = value
                entry.dirty = True


def add_enclosing_braces(document: Document, index: FieldIndex, options: Options) -> None:
    names = set(options.enclosed_fields)
    if not names:
        return
    for entry, item in iter_fields(document):
        if item.name.lower() not in names or len(item.value.segments) != 1:
            continue
        segment = item.value.segments[0]
        if isinstance(segment, Literal) or has_balanced_outer_braces(segment.value):
            continue
        if not braces_balanced(segment.value):
            continue
        item.value.replace(0, Braced(f"{{{segment.value}}}"))
        entry.dirty = True


NORMALIZATION_PASSES: Tuple[Pass, ...] = (
    omit_fields,
    remove_duplicate_fields,
    truncate_authors,
    convert_to_braces,
    strip_enclosing_braces,
    unwrap_numeric,
    remove_empty_fields,
    drop_all_caps,
    escape_special_characters,
    encode_urls,
    add_enclosing_braces,
)


def normalize(document: Document, index: FieldIndex, options: Options) -> None:
    for normalization in NORMALIZATION_PASSES:
        normalization(document, index, options)
    logger.debug(
        "normalization left %d of %d entries changed",
        sum(1 for entry in document.entries() if entry.dirty),
        len(index),
    )
