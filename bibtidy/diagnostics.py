"""Warning records returned alongside the tidied document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from bibtidy.nodes import Entry

MISSING_KEY = "MISSING_KEY"
DUPLICATE_KEY = "DUPLICATE_KEY"
DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
UNTERMINATED_BLOCK = "UNTERMINATED_BLOCK"
SYNTAX_ERROR = "SYNTAX_ERROR"
INVALID_OPTION = "INVALID_OPTION"


@dataclass
class TidyWarning:
    code: str
    message: str
    entry: Optional[Entry] = field(default=None, repr=False)
    duplicate_of: Optional[Entry] = field(default=None, repr=False)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class BibTeXSyntaxError(ValueError):
    """Raised by the parser for a block body it cannot read.

    Always caught at block level; the block is then kept verbatim.
    """

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset
