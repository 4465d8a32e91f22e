"""Concrete syntax tree for BibTeX documents.

Nodes keep a back-reference to their parent so passes can walk upwards
(field -> entry -> block) without re-traversing the document. Node classes
compare by identity, which lets them be used as dictionary keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union


@dataclass(eq=False)
class Literal:
    """Bare token, e.g. a macro name or a number."""

    value: str
    parent: Optional[Concat] = field(default=None, repr=False)

    def render(self) -> str:
        return self.value


@dataclass(eq=False)
class Braced:
    """``{...}`` delimited text; ``value`` excludes the outer braces."""

    value: str
    parent: Optional[Concat] = field(default=None, repr=False)

    def render(self) -> str:
        return f"{{{self.value}}}"


@dataclass(eq=False)
class Quoted:
    """``"..."`` delimited text; ``value`` excludes the quotes."""

    value: str
    parent: Optional[Concat] = field(default=None, repr=False)

    def render(self) -> str:
        return f'"{self.value}"'


Segment = Union[Literal, Braced, Quoted]


@dataclass(eq=False)
class Concat:
    segments: List[Segment] = field(default_factory=list)
    parent: Optional[Field] = field(default=None, repr=False)

    def append(self, segment: Segment) -> Segment:
        segment.parent = self
        self.segments.append(segment)
        return segment

    def replace(self, index: int, segment: Segment) -> None:
        segment.parent = self
        self.segments[index] = segment

    def render(self) -> str:
        return " # ".join(segment.render() for segment in self.segments)


@dataclass(eq=False)
class Field:
    name: str
    value: Concat = field(default_factory=Concat)
    parent: Optional[Entry] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.value.parent = self

    def copy(self) -> Field:
        concat = Concat()
        for segment in self.value.segments:
            concat.append(type(segment)(segment.value))
        return Field(self.name, concat)


@dataclass(eq=False)
class Entry:
    key: Optional[str] = None
    fields: List[Field] = field(default_factory=list)
    parent: Optional[Block] = field(default=None, repr=False)
    # set by the duplicate detector
    duplicate_of: Optional[Entry] = field(default=None, repr=False)
    # set by any pass that changes the entry, forces re-rendering
    dirty: bool = False

    def add_field(self, item: Field) -> Field:
        item.parent = self
        self.fields.append(item)
        return item

    def get(self, name: str) -> Optional[Field]:
        lowered = name.lower()
        for item in self.fields:
            if item.name.lower() == lowered:
                return item
        return None

    @property
    def command(self) -> str:
        return self.parent.command if self.parent else ""


@dataclass(eq=False)
class Comment:
    raw: str
    braces: int = 0
    parens: int = 0
    parent: Optional[Block] = field(default=None, repr=False)


@dataclass(eq=False)
class Preamble:
    raw: str
    braces: int = 0
    parens: int = 0
    parent: Optional[Block] = field(default=None, repr=False)


@dataclass(eq=False)
class StringDef:
    raw: str
    braces: int = 0
    parens: int = 0
    parent: Optional[Block] = field(default=None, repr=False)


BlockBody = Union[Comment, Preamble, StringDef, Entry]


@dataclass(eq=False)
class Block:
    """An ``@command{...}`` unit.

    ``raw`` holds the exact source text of the block. ``body`` is None when
    the body could not be parsed, in which case the block is opaque and is
    always written back verbatim.
    """

    command: str
    raw: str = ""
    body: Optional[BlockBody] = None
    open_char: str = "{"
    terminated: bool = True
    parent: Optional[Document] = field(default=None, repr=False)

    def set_body(self, body: BlockBody) -> BlockBody:
        body.parent = self
        self.body = body
        return body

    @property
    def close_char(self) -> str:
        return ")" if self.open_char == "(" else "}"

    @property
    def entry(self) -> Optional[Entry]:
        return self.body if isinstance(self.body, Entry) else None


@dataclass(eq=False)
class Text:
    """Free text between blocks, kept verbatim."""

    text: str
    parent: Optional[Document] = field(default=None, repr=False)


Item = Union[Text, Block]


@dataclass(eq=False)
class Document:
    items: List[Item] = field(default_factory=list)

    def append(self, item: Item) -> Item:
        item.parent = self
        self.items.append(item)
        return item

    def append_text(self, text: str) -> None:
        if not text:
            return
        if self.items and isinstance(self.items[-1], Text):
            self.items[-1].text += text
            return
        self.append(Text(text))

    def entries(self) -> Iterator[Entry]:
        for item in self.items:
            if isinstance(item, Block) and isinstance(item.body, Entry):
                yield item.body

    def remove_block(self, block: Block) -> None:
        """Remove a block together with the whitespace directly before it."""
        index = self.items.index(block)
        del self.items[index]
        if index > 0:
            previous = self.items[index - 1]
            if isinstance(previous, Text) and not previous.text.strip():
                del self.items[index - 1]
        elif self.items:
            following = self.items[0]
            if isinstance(following, Text) and not following.text.strip():
                del self.items[0]
