"""Render a document back to BibTeX text.

Untouched blocks and free text are written back exactly as they were read.
An entry is rendered from the tree only when a pass changed it or when an
entry layout option (indent, alignment, wrapping, trailing commas,
lowercasing) is set.
"""

from __future__ import annotations

from typing import List

from bibtidy.nodes import Block, Braced, Comment, Concat, Document, Entry, Quoted, Text
from bibtidy.options import Options


def split_words(text: str) -> List[str]:
    """Split on whitespace outside nested braces and escape sequences."""
    words: List[str] = []
    current: List[str] = []
    depth = 0
    previous = ""
    for ch in text:
        if ch.isspace() and depth == 0 and previous != "\\":
            if current:
                words.append("".join(current))
                current = []
        else:
            if ch == "{":
                depth += 1
            elif ch == "}" and depth > 0:
                depth -= 1
            current.append(ch)
        previous = ch
    if current:
        words.append("".join(current))
    return words


def wrap_value(concat: Concat, start: int, width: int, continuation: str) -> str:
    """Wrap a single delimited value so lines end before ``width``."""
    if len(concat.segments) != 1 or not isinstance(concat.segments[0], (Braced, Quoted)):
        return concat.render()
    segment = concat.segments[0]
    words = split_words(segment.value)
    if not words:
        return concat.render()
    opening, closing = ("{", "}") if isinstance(segment, Braced) else ('"', '"')
    words[0] = opening + words[0]
    words[-1] = words[-1] + closing
    lines: List[str] = []
    current = ""
    available = width - start
    for word in words:
        candidate = f"{current} {word}" if current else word
        if current and len(candidate) > available:
            lines.append(current)
            current = word
            available = width - len(continuation.expandtabs())
        else:
            current = candidate
    lines.append(current)
    return f"\n{continuation}".join(lines)


def align_column(entry: Entry, options: Options) -> int:
    if options.align is True:
        return max((len(item.name) for item in entry.fields), default=0)
    if options.align:
        return options.align
    return 0


def render_entry(block: Block, entry: Entry, options: Options) -> str:
    command = block.command.lower() if options.lowercase else block.command
    head = f"@{command}{block.open_char}{entry.key or ''}"
    if not entry.fields:
        return head + block.close_char
    if entry.key:
        head += ","

    indent = options.indent
    column = align_column(entry, options)
    wrap = options.wrap_column
    lines: List[str] = []
    for item in entry.fields:
        name = item.name.lower() if options.lowercase else item.name
        prefix = f"{indent}{name.ljust(column)} = "
        if wrap:
            continuation = indent + " " * (len(prefix) - len(indent) + 1)
            value = wrap_value(item.value, len(prefix.expandtabs()), wrap, continuation)
        else:
            value = item.value.render()
        lines.append(prefix + value)
    body = ",\n".join(lines)
    if options.trailing_commas:
        body += ","
    return f"{head}\n{body}\n{block.close_char}"


def render_block(block: Block, options: Options) -> str:
    body = block.body
    if isinstance(body, Entry):
        if body.dirty or options.reformats_entries:
            return render_entry(block, body, options)
        return block.raw
    if isinstance(body, Comment) and options.tidy_comments:
        return f"@{block.command}{block.open_char}{body.raw.strip()}{block.close_char}"
    return block.raw


def render_tidy_layout(document: Document, options: Options) -> str:
    """One item after another with free text trimmed and blank lines between blocks."""
    pieces: List[str] = []
    for item in document.items:
        if isinstance(item, Text):
            text = item.text.strip()
            if text and not options.strip_comments:
                pieces.append(text + "\n")
            continue
        if options.strip_comments and isinstance(item.body, Comment):
            continue
        pieces.append(render_block(item, options).strip() + "\n\n")
    if not pieces:
        return ""
    return "".join(pieces).rstrip() + "\n"


def serialize(document: Document, options: Options) -> str:
    if options.reformats_layout:
        return render_tidy_layout(document, options)
    pieces: List[str] = []
    for item in document.items:
        if isinstance(item, Text):
            pieces.append(item.text)
        else:
            pieces.append(render_block(item, options))
    return "".join(pieces)
