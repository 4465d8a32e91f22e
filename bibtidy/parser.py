"""Tolerant BibTeX parser producing a concrete syntax tree.

The parser never fails on a document. A block whose body cannot be read is
kept as an opaque block holding its source text, and parsing carries on with
the next block. Text outside blocks is kept verbatim.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from bibtidy.diagnostics import (
    MISSING_KEY,
    SYNTAX_ERROR,
    UNTERMINATED_BLOCK,
    BibTeXSyntaxError,
    TidyWarning,
)
from bibtidy.nodes import (
    Block,
    Braced,
    Comment,
    Concat,
    Document,
    Entry,
    Field,
    Literal,
    Preamble,
    Quoted,
    Segment,
    StringDef,
)

logger = logging.getLogger(__name__)

BLOCK_START_RE = re.compile(r"@[ \t\r\n]*([A-Za-z_][\w:.+-]*)[ \t\r\n]*([{(])")
RAW_BODY_TYPES = {
    "comment": Comment,
    "preamble": Preamble,
    "string": StringDef,
}
# characters that end a key, a field name or a bare literal
TOKEN_STOP = set(",={}\"#")


def parse(text: str) -> Tuple[Document, List[TidyWarning]]:
    document = Document()
    warnings: List[TidyWarning] = []
    idx = 0
    while idx < len(text):
        at = find_block_start(text, idx)
        if at == -1:
            document.append_text(text[idx:])
            break
        document.append_text(text[idx:at])
        block, idx = parse_block(text, at, warnings)
        document.append(block)
    logger.debug(
        "parsed %d items (%d entries)",
        len(document.items),
        sum(1 for _ in document.entries()),
    )
    return document, warnings


def find_block_start(text: str, start: int) -> int:
    at = text.find("@", start)
    while at != -1:
        # an @ glued to a word (e.g. an email address) does not open a block
        if at == start or text[at - 1].isspace() or text[at - 1] in "})":
            if BLOCK_START_RE.match(text, at):
                return at
        at = text.find("@", at + 1)
    return -1


def scan_balanced(text: str, start: int, open_char: str) -> Tuple[int, int, int, bool]:
    """Find the end of a block body starting just after its opening delimiter.

    Returns the index after the closing delimiter (or the end of the text),
    the remaining brace and paren depth, and whether the block was closed.
    """
    braces = 1 if open_char == "{" else 0
    parens = 1 if open_char == "(" else 0
    idx = start
    while idx < len(text):
        ch = text[idx]
        idx += 1
        if ch == "{":
            braces += 1
        elif ch == "}":
            braces -= 1
        elif open_char == "(" and braces <= 0:
            if ch == "(":
                parens += 1
            elif ch == ")":
                parens -= 1
        if open_char == "{" and braces == 0:
            return idx, braces, parens, True
        if open_char == "(" and parens == 0:
            return idx, braces, parens, True
    return idx, braces, parens, False


def parse_block(text: str, at: int, warnings: List[TidyWarning]) -> Tuple[Block, int]:
    match = BLOCK_START_RE.match(text, at)
    command, open_char = match.group(1), match.group(2)
    body_start = match.end()
    block = Block(command=command, open_char=open_char)
    kind = command.lower()

    if kind in RAW_BODY_TYPES:
        end, braces, parens, closed = scan_balanced(text, body_start, open_char)
        payload_end = end - 1 if closed else end
        block.set_body(RAW_BODY_TYPES[kind](text[body_start:payload_end], braces, parens))
    else:
        reader = EntryReader(text, body_start, block.close_char)
        try:
            entry = reader.read()
        except BibTeXSyntaxError as exc:
            logger.debug("keeping @%s block verbatim: %s", command, exc)
            end, _, _, closed = scan_balanced(text, body_start, open_char)
            warnings.append(
                TidyWarning(SYNTAX_ERROR, f"Could not parse @{command} block: {exc}")
            )
        else:
            end, closed = reader.pos, reader.terminated
            block.set_body(entry)
            if not entry.key:
                warnings.append(
                    TidyWarning(MISSING_KEY, f"{command} entry does not have a key", entry)
                )

    block.raw = text[at:end]
    block.terminated = closed
    if not closed:
        warnings.append(
            TidyWarning(
                UNTERMINATED_BLOCK,
                f"@{command} block is not closed before the end of the input",
                block.entry,
            )
        )
    return block, end


class EntryReader:
    """Cursor over the body of one entry block."""

    def __init__(self, text: str, pos: int, close_char: str) -> None:
        self.text = text
        self.pos = pos
        self.close_char = close_char
        self.terminated = True

    def peek(self) -> Optional[str]:
        if self.pos < len(self.text):
            return self.text[self.pos]
        return None

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def read_token(self) -> str:
        start = self.pos
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch.isspace() or ch in TOKEN_STOP or ch == self.close_char:
                break
            self.pos += 1
        return self.text[start : self.pos]

    def error(self, message: str) -> BibTeXSyntaxError:
        return BibTeXSyntaxError(message, self.pos)

    def read(self) -> Entry:
        entry = Entry()
        self.skip_whitespace()
        token = self.read_token()
        self.skip_whitespace()
        ch = self.peek()
        if ch is None:
            entry.key = token or None
            self.terminated = False
            return entry
        if ch == "=":
            # no key: the first token is already a field name
            if not token:
                raise self.error("missing field name")
            self.pos += 1
            entry.add_field(Field(token, self.read_value()))
            if not self.finish_field():
                return entry
        elif ch == ",":
            entry.key = token or None
            self.pos += 1
        elif ch == self.close_char:
            entry.key = token or None
            self.pos += 1
            return entry
        else:
            raise self.error(f"unexpected {ch!r} after key")

        while True:
            self.skip_whitespace()
            ch = self.peek()
            if ch is None:
                self.terminated = False
                return entry
            if ch == self.close_char:
                self.pos += 1
                return entry
            if ch == ",":
                self.pos += 1
                continue
            name = self.read_token()
            if not name:
                raise self.error(f"unexpected {ch!r} in place of a field name")
            self.skip_whitespace()
            if self.peek() != "=":
                raise self.error(f"field {name!r} has no value")
            self.pos += 1
            entry.add_field(Field(name, self.read_value()))
            if not self.finish_field():
                return entry

    def finish_field(self) -> bool:
        """Consume what follows a value. Returns False once the entry is over."""
        if not self.terminated:
            return False
        self.skip_whitespace()
        ch = self.peek()
        if ch is None:
            self.terminated = False
            return False
        if ch == ",":
            self.pos += 1
            return True
        if ch == self.close_char:
            self.pos += 1
            return False
        raise self.error(f"unexpected {ch!r} after value")

    def read_value(self) -> Concat:
        concat = Concat()
        while True:
            self.skip_whitespace()
            ch = self.peek()
            if ch is None:
                raise self.error("missing value")
            concat.append(self.read_segment(ch))
            if not self.terminated:
                return concat
            self.skip_whitespace()
            if self.peek() != "#":
                return concat
            self.pos += 1

    def read_segment(self, ch: str) -> Segment:
        if ch == "{":
            self.pos += 1
            return Braced(self.read_delimited("}"))
        if ch == '"':
            self.pos += 1
            return Quoted(self.read_delimited('"'))
        token = self.read_token()
        if not token:
            raise self.error(f"unexpected {ch!r} in place of a value")
        return Literal(token)

    def read_delimited(self, closer: str) -> str:
        start = self.pos
        depth = 0
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if depth == 0 and ch == closer:
                if closer == "}" or self.text[self.pos - 1] != "\\":
                    value = self.text[start : self.pos]
                    self.pos += 1
                    return value
            if ch == "{":
                depth += 1
            elif ch == "}" and depth > 0:
                depth -= 1
            self.pos += 1
        # unmatched delimiter: keep everything through the end of the input
        self.terminated = False
        return self.text[start:]
