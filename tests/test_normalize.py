"""Tests for the field normalization passes."""

import pytest

from bibtidy import normalize
from bibtidy.normalize import NORMALIZATION_PASSES, encode_url
from bibtidy.tidy import tidy


def entry(*fields, key="a", command="article"):
    body = ",\n".join(f"  {item}" for item in fields)
    return f"@{command}{{{key},\n{body}\n}}\n"


def run(text, **options):
    return tidy(text, options).bibtex


def test_numeric_unwraps_integers():
    text = entry("year = {1998}")
    assert run(text, numeric=True) == entry("year = 1998")
    assert run(text) == text


@pytest.mark.parametrize(
    "value, expected",
    [("{jan}", "jan"), ('"March"', "mar"), ("{Sept}", "sep"), ("{Spring}", "{Spring}")],
)
def test_numeric_turns_months_into_macros(value, expected):
    assert run(entry(f"month = {value}"), numeric=True) == entry(f"month = {expected}")


def test_escape_replaces_special_characters():
    text = entry("title = {Müller & Sons}", "url = {http://x.org/?a=1&b=2}")
    expected = entry('title = {M{\\"u}ller \\& Sons}', "url = {http://x.org/?a=1&b=2}")
    assert run(text, escape=True) == expected
    assert run(text) == text


def test_curly_converts_quotes_and_numbers():
    text = entry('title = "Hello"', "year = 2000", "journal = jtea")
    assert run(text, curly=True) == entry("title = {Hello}", "year = {2000}", "journal = jtea")
    assert run(text, curly=True, numeric=True) == entry(
        "title = {Hello}", "year = 2000", "journal = jtea"
    )


def test_strip_enclosing_braces():
    text = entry("title = {{Title}}", "booktitle = {{{Deep}}}", "note = {{A} and {B}}")
    expected = entry("title = {Title}", "booktitle = {Deep}", "note = {{A} and {B}}")
    assert run(text, stripEnclosingBraces=True) == expected


def test_drop_all_caps():
    text = entry("journal = {JOURNAL OF TEA}", "title = {DNA and RNA}")
    expected = entry("journal = {Journal of Tea}", "title = {DNA and RNA}")
    assert run(text, dropAllCaps=True) == expected


def test_omit_fields():
    text = entry("title = {T}", "abstract = {Long}", "Note = {n}")
    assert run(text, omit=["abstract", "note"]) == entry("title = {T}")


def test_remove_duplicate_fields_keeps_first():
    text = entry("title = {First}", "Title = {Second}", "year = 2000")
    assert run(text, removeDuplicateFields=True) == entry("title = {First}", "year = 2000")


def test_remove_empty_fields():
    text = entry("title = {T}", "note = {}", "isbn = {  }", 'issn = ""')
    assert run(text, removeEmptyFields=True) == entry("title = {T}")


def test_max_authors_truncates():
    text = entry("author = {Smith, A. and Jones, B. and Brown, C.}")
    assert run(text, maxAuthors=2) == entry("author = {Smith, A. and Jones, B. and others}")
    assert run(text, maxAuthors=3) == text


def test_max_authors_does_not_count_others():
    text = entry("author = {Smith, A. and Jones, B. and others}")
    assert run(text, maxAuthors=2) == text


def test_encode_urls():
    text = entry("url = {http://example.com/a b\\_c?q=%20}", "title = {a b}")
    expected = entry("url = {http://example.com/a%20b_c?q=%20}", "title = {a b}")
    assert run(text, encodeUrls=True) == expected
    assert encode_url(encode_url("http://x.org/a b")) == "http://x.org/a%20b"


def test_enclosing_braces():
    text = entry("title = {Title}", "journal = {J}")
    assert run(text, enclosingBraces=True) == entry("title = {{Title}}", "journal = {J}")
    assert run(text, enclosingBraces=["journal"]) == entry("title = {Title}", "journal = {{J}}")


def test_enclosing_braces_win_over_stripping_and_curly():
    text = entry('title = "Title"', "booktitle = {{Proc}}")
    result = run(
        text,
        curly=True,
        stripEnclosingBraces=True,
        enclosingBraces=["title", "booktitle"],
    )
    assert result == entry("title = {{Title}}", "booktitle = {{Proc}}")


def test_unchanged_entries_keep_source_text():
    text = entry("title = {{Title}}") + "\n" + "@misc{b,   year = 2000}\n"
    result = run(text, stripEnclosingBraces=True)
    assert result.endswith("@misc{b,   year = 2000}\n")


def test_delimiter_passes_run_before_numeric_unwrapping():
    order = list(NORMALIZATION_PASSES)
    unwrap = order.index(normalize.unwrap_numeric)
    assert order.index(normalize.convert_to_braces) < unwrap
    assert order.index(normalize.strip_enclosing_braces) < unwrap
    assert order[-1] is normalize.add_enclosing_braces


def test_double_braced_number_unwraps():
    text = entry("volume = {{12}}")
    assert run(text, stripEnclosingBraces=True, numeric=True) == entry("volume = 12")


def test_fields_emptied_by_brace_stripping_are_removed():
    text = entry("author = {{}}", "title = {{ }}", "year = {2000}")
    options = {"removeEmptyFields": True, "stripEnclosingBraces": True}
    once = run(text, **options)
    assert once == entry("year = {2000}")
    assert run(once, **options) == once


def test_empty_fields_are_checked_after_brace_stripping():
    order = list(NORMALIZATION_PASSES)
    remove = order.index(normalize.remove_empty_fields)
    assert order.index(normalize.strip_enclosing_braces) < remove
    assert order.index(normalize.unwrap_numeric) < remove
