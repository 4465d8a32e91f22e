"""Parse, clean up and re-serialize a BibTeX document."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from bibtidy.diagnostics import TidyWarning
from bibtidy.duplicates import find_duplicates, merge_duplicates
from bibtidy.fields import resolve_fields
from bibtidy.keys import generate_keys
from bibtidy.normalize import normalize
from bibtidy.options import Options
from bibtidy.parser import parse
from bibtidy.serialize import serialize
from bibtidy.sort import sort_entries, sort_entry_fields

logger = logging.getLogger(__name__)


@dataclass
class TidyResult:
    bibtex: str
    warnings: List[TidyWarning]
    count: int


def tidy(text: str, options: Union[Options, Mapping[str, Any], None] = None) -> TidyResult:
    """Run the whole pipeline over ``text``.

    Passes run in a fixed order: field normalization, duplicate detection
    and merging, entry sorting, field sorting, key generation, then
    serialization. Problems are reported as warnings; nothing is raised for
    malformed input or bad options.
    """
    warnings: List[TidyWarning] = []
    if options is None:
        options = Options()
    elif isinstance(options, Options):
        options = dataclasses.replace(options)
    else:
        options, option_warnings = Options.from_dict(options)
        warnings.extend(option_warnings)
    warnings.extend(options.validate())

    document, parse_warnings = parse(text)
    warnings.extend(parse_warnings)
    index = resolve_fields(document)
    count = len(index)

    normalize(document, index, options)

    clusters, duplicate_warnings = find_duplicates(document, index, options.duplicate_strategies)
    warnings.extend(duplicate_warnings)
    merge = options.merge_strategy
    if merge and clusters:
        merge_duplicates(document, index, clusters, merge)

    if options.sort:
        sort_entries(document, index, options.sort_keys)
    if options.sort_fields:
        sort_entry_fields(document, options.field_order)

    template: Optional[str] = options.key_template
    if template:
        warnings.extend(generate_keys(document, index, template))

    bibtex = serialize(document, options)
    logger.debug("tidied %d entries with %d warnings", count, len(warnings))
    return TidyResult(bibtex=bibtex, warnings=warnings, count=count)
