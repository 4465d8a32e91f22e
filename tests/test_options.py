"""Tests for option parsing and validation."""

import pytest

from bibtidy.diagnostics import INVALID_OPTION
from bibtidy.options import DEFAULT_DUPLICATE_STRATEGIES, DEFAULT_FIELD_ORDER, Options, snake_case
from bibtidy.tidy import tidy


@pytest.mark.parametrize(
    "name, expected",
    [
        ("stripEnclosingBraces", "strip_enclosing_braces"),
        ("maxAuthors", "max_authors"),
        ("curly", "curly"),
        ("encodeUrls", "encode_urls"),
    ],
)
def test_snake_case(name, expected):
    assert snake_case(name) == expected


def test_from_dict_accepts_camel_case_and_aliases():
    options, warnings = Options.from_dict(
        {"stripEnclosingBraces": True, "maxAuthors": 3, "sortProperties": ["title"], "tab": True}
    )
    assert warnings == []
    assert options.strip_enclosing_braces is True
    assert options.max_authors == 3
    assert options.sort_fields == ["title"]
    assert options.field_order == ["title"]
    assert options.indent == "\t"


def test_from_dict_reports_unknown_names():
    options, warnings = Options.from_dict({"colour": "blue", "curly": True})
    assert [warning.code for warning in warnings] == [INVALID_OPTION]
    assert "colour" in warnings[0].message
    assert options.curly is True


def test_defaults_are_all_off():
    options = Options()
    assert options.validate() == []
    assert options.sort_keys == []
    assert options.duplicate_strategies == []
    assert options.merge_strategy is None
    assert options.key_template is None
    assert options.wrap_column is None
    assert options.enclosed_fields == []
    assert not options.reformats_entries
    assert not options.reformats_layout


def test_boolean_shorthands():
    options = Options(
        sort=True, merge=True, sort_fields=True, generate_keys=True, wrap=True, space=4
    )
    assert options.sort_keys == ["key"]
    assert options.merge_strategy == "combine"
    assert options.duplicate_strategies == DEFAULT_DUPLICATE_STRATEGIES
    assert options.field_order == DEFAULT_FIELD_ORDER
    assert options.key_template == "[auth:lower][year][veryshorttitle:lower]"
    assert options.wrap_column == 80
    assert options.indent == "    "
    assert Options(enclosing_braces=True).enclosed_fields == ["title"]


def test_comma_separated_strings():
    options = Options(sort="year, -key", omit="abstract,Note")
    assert options.sort_keys == ["year", "-key"]
    assert options.omit_fields == ["abstract", "note"]


@pytest.mark.parametrize(
    "values, attr, cleaned",
    [
        ({"sort": ["year", "bad key", "-"]}, "sort", ["year"]),
        ({"duplicates": ["doi", "isbn"]}, "duplicates", ["doi"]),
        ({"merge": "shuffle"}, "merge", None),
        ({"maxAuthors": 0}, "max_authors", None),
        ({"wrap": -5}, "wrap", False),
        ({"generateKeys": "plain"}, "generate_keys", False),
    ],
)
def test_validate_drops_invalid_values(values, attr, cleaned):
    options, _ = Options.from_dict(values)
    warnings = options.validate()
    assert warnings
    assert all(warning.code == INVALID_OPTION for warning in warnings)
    assert getattr(options, attr) == cleaned


def test_invalid_sort_keys_warn_individually():
    options = Options(sort=["year", "bad key", "-"])
    assert len(options.validate()) == 2


def test_tidy_reports_option_warnings_and_keeps_going():
    text = "@misc{a, title = {T}}\n"
    result = tidy(text, {"merge": "shuffle", "unknown": 1})
    assert sorted(warning.code for warning in result.warnings) == [INVALID_OPTION, INVALID_OPTION]
    assert result.bibtex == text


def test_tidy_does_not_mutate_caller_options():
    options = Options(sort=["year", "bad key"])
    tidy("@misc{a}\n", options)
    assert options.sort == ["year", "bad key"]


@pytest.mark.parametrize(
    "values, attr, coerced",
    [
        ({"maxAuthors": "2"}, "max_authors", 2),
        ({"wrap": "20"}, "wrap", 20),
        ({"align": " 12 "}, "align", 12),
        ({"space": "4"}, "space", 4),
        ({"sort": ("year", "key")}, "sort", ["year", "key"]),
    ],
)
def test_validate_coerces_numeric_strings_and_tuples(values, attr, coerced):
    options, _ = Options.from_dict(values)
    assert options.validate() == []
    assert getattr(options, attr) == coerced


@pytest.mark.parametrize(
    "values, attr, cleaned",
    [
        ({"sort": 5}, "sort", False),
        ({"sort": ["year", 5]}, "sort", ["year"]),
        ({"omit": {"abstract": True}}, "omit", []),
        ({"curly": "yes"}, "curly", False),
        ({"wrap": "wide"}, "wrap", False),
        ({"space": 2.5}, "space", False),
        ({"maxAuthors": "two"}, "max_authors", None),
        ({"maxAuthors": True}, "max_authors", None),
        ({"merge": 3}, "merge", None),
        ({"generateKeys": 1}, "generate_keys", False),
    ],
)
def test_validate_turns_off_mistyped_values(values, attr, cleaned):
    options, _ = Options.from_dict(values)
    warnings = options.validate()
    assert [warning.code for warning in warnings] == [INVALID_OPTION]
    assert getattr(options, attr) == cleaned


@pytest.mark.parametrize(
    "values",
    [
        {"maxAuthors": "2"},
        {"wrap": "20"},
        {"align": "20"},
        {"space": "4"},
        {"sort": 5},
        {"duplicates": 7, "merge": ["first"]},
        {"enclosingBraces": 1.5, "sortFields": {"title": 1}},
        {"omit": None, "generateKeys": None, "wrap": None},
    ],
)
def test_mistyped_options_never_break_tidy(values):
    text = "@article{a,\n  author = {A and B and C},\n  title = {A very long title to wrap around}\n}\n"
    result = tidy(text, values)
    assert "@article{a," in result.bibtex
    assert all(warning.code == INVALID_OPTION for warning in result.warnings)
