"""Clean up and normalize BibTeX bibliographies."""

from bibtidy.diagnostics import TidyWarning
from bibtidy.options import Options
from bibtidy.parser import parse
from bibtidy.serialize import serialize
from bibtidy.tidy import TidyResult, tidy

__all__ = ["Options", "TidyResult", "TidyWarning", "parse", "serialize", "tidy"]
