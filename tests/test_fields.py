"""Tests for field resolution."""

import pytest

from bibtidy.fields import field_text, month_number, resolve_value


def test_resolves_delimiters_and_concatenation(load):
    document, index, _ = load('@misc{a, title = "Tea" # { and } # "Cake", year = 2001}')
    fields = index[next(document.entries())]
    assert fields["title"].value == "Tea and Cake"
    assert fields["title"].raw == '"Tea" # { and } # "Cake"'
    assert fields["year"].value == "2001"


def test_month_macro_resolves_to_name(load):
    document, index, _ = load("@misc{a, month = jan}\n@misc{b, month = foo}\n@misc{c, month = {March}}")
    a, b, c = document.entries()
    assert field_text(index[a], "month") == "January"
    assert field_text(index[b], "month") == "foo"
    assert field_text(index[c], "month") == "March"


def test_macros_outside_month_are_not_expanded(load):
    document, index, _ = load("@misc{a, journal = jan}")
    assert field_text(index[next(document.entries())], "journal") == "jan"


def test_first_occurrence_wins_case_insensitively(load):
    document, index, _ = load("@misc{a, Title = {First}, title = {Second}}")
    fields = index[next(document.entries())]
    assert list(fields) == ["title"]
    assert fields["title"].value == "First"


def test_resolution_is_repeatable(load):
    document, index, _ = load("@misc{a, title = {T} # x}")
    concat = next(document.entries()).get("title").value
    assert resolve_value(concat, "title") == resolve_value(concat, "title") == "Tx"


def test_missing_field_is_empty(load):
    document, index, _ = load("@misc{a, title = {T}}")
    assert field_text(index[next(document.entries())], "year") == ""


@pytest.mark.parametrize(
    "value, expected",
    [
        ("jan", 1),
        ("February", 2),
        ("Sept.", 9),
        ("{12}", 12),
        ("13", None),
        ("", None),
        ("spring", None),
    ],
)
def test_month_number(value, expected):
    assert month_number(value) == expected
