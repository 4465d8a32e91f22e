"""Configuration for a tidy run.

Every option defaults to off, so ``Options()`` leaves a document unchanged.
``Options.from_dict`` accepts the camelCase option names used by the
command line and web front ends.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from bibtidy.diagnostics import INVALID_OPTION, TidyWarning

DUPLICATE_STRATEGIES = ("key", "doi", "abstract", "citation")
DEFAULT_DUPLICATE_STRATEGIES = ["doi", "citation", "abstract"]
MERGE_STRATEGIES = ("first", "last", "combine", "overwrite")
DEFAULT_MERGE_STRATEGY = "combine"
DEFAULT_SORT = ["key"]
DEFAULT_FIELD_ORDER = [
    "title",
    "shorttitle",
    "author",
    "year",
    "month",
    "day",
    "journal",
    "booktitle",
    "location",
    "on",
    "publisher",
    "address",
    "series",
    "volume",
    "number",
    "pages",
    "doi",
    "isbn",
    "issn",
    "url",
    "urldate",
    "copyright",
    "category",
    "note",
    "metadata",
]
DEFAULT_ENCLOSING_BRACES = ["title"]
DEFAULT_KEY_TEMPLATE = "[auth:lower][year][veryshorttitle:lower]"
DEFAULT_INDENT = 2
DEFAULT_WRAP = 80
SORT_KEY_RE = re.compile(r"^-?[^\s=,{}\"#-][^\s=,{}\"#]*$")
ALIASES = {"sortProperties": "sort_fields"}
FLAG_OPTIONS = (
    "curly",
    "numeric",
    "tab",
    "strip_enclosing_braces",
    "drop_all_caps",
    "escape",
    "strip_comments",
    "trailing_commas",
    "encode_urls",
    "tidy_comments",
    "remove_empty_fields",
    "remove_duplicate_fields",
    "lowercase",
)
NUMBER_OPTIONS = ("space", "align", "wrap")
LIST_OPTIONS = ("omit", "sort", "duplicates", "sort_fields", "enclosing_braces")


def snake_case(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def as_list(value: Union[bool, str, List[str], None], default: List[str]) -> List[str]:
    if value is True:
        return list(default)
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [item.strip() for item in value if item and item.strip()]


@dataclass
class Options:
    omit: List[str] = field(default_factory=list)
    curly: bool = False
    numeric: bool = False
    space: Union[bool, int] = False
    tab: bool = False
    align: Union[bool, int] = False
    sort: Union[bool, List[str]] = False
    duplicates: Union[bool, List[str]] = False
    merge: Union[bool, str, None] = None
    strip_enclosing_braces: bool = False
    drop_all_caps: bool = False
    escape: bool = False
    sort_fields: Union[bool, List[str]] = False
    strip_comments: bool = False
    trailing_commas: bool = False
    encode_urls: bool = False
    tidy_comments: bool = False
    remove_empty_fields: bool = False
    remove_duplicate_fields: bool = False
    generate_keys: Union[bool, str] = False
    max_authors: Optional[int] = None
    lowercase: bool = False
    enclosing_braces: Union[bool, List[str]] = False
    wrap: Union[bool, int] = False

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> Tuple[Options, List[TidyWarning]]:
        known = {item.name for item in fields(cls)}
        kwargs: Dict[str, Any] = {}
        warnings: List[TidyWarning] = []
        for name, value in values.items():
            attr = ALIASES.get(name) or snake_case(name)
            if attr not in known:
                warnings.append(TidyWarning(INVALID_OPTION, f"Unknown option {name!r}"))
                continue
            kwargs[attr] = value
        return cls(**kwargs), warnings

    def validate(self) -> List[TidyWarning]:
        """Drop invalid values, returning a warning for each one."""
        warnings: List[TidyWarning] = []

        def invalid(message: str) -> None:
            warnings.append(TidyWarning(INVALID_OPTION, message))

        self.check_types(invalid)
        if isinstance(self.sort, (list, str)):
            keys = as_list(self.sort, DEFAULT_SORT)
            valid = [key for key in keys if SORT_KEY_RE.match(key)]
            for key in keys:
                if key not in valid:
                    invalid(f"Invalid sort key {key!r}")
            self.sort = valid
        if isinstance(self.duplicates, (list, str)):
            strategies = as_list(self.duplicates, DEFAULT_DUPLICATE_STRATEGIES)
            for strategy in strategies:
                if strategy not in DUPLICATE_STRATEGIES:
                    invalid(f"Unknown duplicate strategy {strategy!r}")
            self.duplicates = [item for item in strategies if item in DUPLICATE_STRATEGIES]
        if isinstance(self.merge, str) and self.merge not in MERGE_STRATEGIES:
            invalid(f"Unknown merge strategy {self.merge!r}")
            self.merge = None
        if self.max_authors is not None and self.max_authors < 1:
            invalid(f"maxAuthors must be positive, got {self.max_authors}")
            self.max_authors = None
        if not isinstance(self.wrap, bool) and self.wrap < 1:
            invalid(f"wrap must be positive, got {self.wrap}")
            self.wrap = False
        for name in ("space", "align"):
            value = getattr(self, name)
            if not isinstance(value, bool) and value < 0:
                invalid(f"{name} must not be negative, got {value}")
                setattr(self, name, False)
        if isinstance(self.generate_keys, str) and "[" not in self.generate_keys:
            invalid(f"Key template {self.generate_keys!r} has no marker")
            self.generate_keys = False
        return warnings

    def check_types(self, invalid: Callable[[str], None]) -> None:
        """Coerce numeric strings and turn off options holding the wrong type."""
        for name in FLAG_OPTIONS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                invalid(f"{name} must be true or false, got {value!r}")
                setattr(self, name, False)
        for name in NUMBER_OPTIONS:
            value = getattr(self, name)
            if value is None:
                setattr(self, name, False)
            elif not isinstance(value, bool):
                number = as_int(value)
                if number is None:
                    invalid(f"{name} must be true, false or a number, got {value!r}")
                    number = False
                setattr(self, name, number)
        for name in LIST_OPTIONS:
            value = getattr(self, name)
            if value is None:
                value = [] if name == "omit" else False
            elif isinstance(value, (list, tuple)):
                for item in value:
                    if not isinstance(item, str):
                        invalid(f"{name} entries must be strings, got {item!r}")
                value = [item for item in value if isinstance(item, str)]
            elif not isinstance(value, (bool, str)):
                invalid(f"{name} must be true, false, a string or a list, got {value!r}")
                value = [] if name == "omit" else False
            setattr(self, name, value)
        if self.merge is not None and not isinstance(self.merge, (bool, str)):
            invalid(f"merge must be true, false or a strategy name, got {self.merge!r}")
            self.merge = None
        if self.generate_keys is None:
            self.generate_keys = False
        elif not isinstance(self.generate_keys, (bool, str)):
            invalid(f"generateKeys must be true, false or a template, got {self.generate_keys!r}")
            self.generate_keys = False
        if self.max_authors is not None:
            number = None if isinstance(self.max_authors, bool) else as_int(self.max_authors)
            if number is None:
                invalid(f"maxAuthors must be a number, got {self.max_authors!r}")
            self.max_authors = number

    @property
    def indent(self) -> str:
        if self.tab:
            return "\t"
        if self.space is True or self.space is False:
            return " " * DEFAULT_INDENT
        return " " * self.space

    @property
    def sort_keys(self) -> List[str]:
        return as_list(self.sort, DEFAULT_SORT)

    @property
    def duplicate_strategies(self) -> List[str]:
        if not self.duplicates and self.merge_strategy:
            return list(DEFAULT_DUPLICATE_STRATEGIES)
        return as_list(self.duplicates, DEFAULT_DUPLICATE_STRATEGIES)

    @property
    def merge_strategy(self) -> Optional[str]:
        if self.merge is True:
            return DEFAULT_MERGE_STRATEGY
        return self.merge or None

    @property
    def field_order(self) -> List[str]:
        return [name.lower() for name in as_list(self.sort_fields, DEFAULT_FIELD_ORDER)]

    @property
    def omit_fields(self) -> List[str]:
        return [name.lower() for name in as_list(self.omit, [])]

    @property
    def enclosed_fields(self) -> List[str]:
        return [name.lower() for name in as_list(self.enclosing_braces, DEFAULT_ENCLOSING_BRACES)]

    @property
    def key_template(self) -> Optional[str]:
        if self.generate_keys is True:
            return DEFAULT_KEY_TEMPLATE
        return self.generate_keys or None

    @property
    def wrap_column(self) -> Optional[int]:
        if self.wrap is True:
            return DEFAULT_WRAP
        return self.wrap or None

    @property
    def reformats_entries(self) -> bool:
        """Whether every entry is rendered from the tree rather than copied."""
        return bool(
            self.space
            or self.tab
            or self.align
            or self.wrap
            or self.trailing_commas
            or self.lowercase
        )

    @property
    def reformats_layout(self) -> bool:
        return bool(self.sort or self.tidy_comments or self.strip_comments)
