"""Tests for template-driven key generation."""

import pytest

from bibtidy.diagnostics import INVALID_OPTION
from bibtidy.fields import resolve_entry
from bibtidy.keys import Marker, generate_keys, parse_template, render_key, suffix_letters
from bibtidy.options import DEFAULT_KEY_TEMPLATE
from bibtidy.tidy import tidy


def render(load, template, fields):
    document, _, _ = load(f"@misc{{old, {fields}}}")
    parts, unknown = parse_template(template)
    assert unknown == []
    return render_key(parts, resolve_entry(next(document.entries())))


def test_parse_template():
    parts, unknown = parse_template("[auth:lower]-[title3:upper:5][year]")
    assert parts == [
        Marker("auth", None, ["lower"]),
        "-",
        Marker("title", 3, ["upper", "5"]),
        Marker("year"),
    ]
    assert unknown == []


def test_parse_template_reports_unknown_modifiers():
    _, unknown = parse_template("[auth:shout][year]")
    assert unknown == ["shout"]


def test_collisions_get_letter_suffixes(load):
    text = (
        "@article{x, author = {Smith, John}, year = 2020}\n"
        "@article{y, author = {John Smith}, year = {2020}}\n"
        "@article{z, author = {Smith, Jane}, year = 2020}\n"
    )
    document, index, _ = load(text)
    assert generate_keys(document, index, DEFAULT_KEY_TEMPLATE) == []
    assert [entry.key for entry in document.entries()] == ["smith2020", "smith2020a", "smith2020b"]


def test_entries_without_material_keep_and_reserve_their_key(load):
    text = "@misc{smith2020, note = {n}}\n@article{x, author = {Smith, J.}, year = 2020}\n"
    document, index, _ = load(text)
    generate_keys(document, index, DEFAULT_KEY_TEMPLATE)
    assert [entry.key for entry in document.entries()] == ["smith2020", "smith2020a"]


def test_default_template_end_to_end():
    text = "@article{old,\n  author = {Doe, Jane},\n  title = {The Art of Tea},\n  year = 2019\n}\n"
    result = tidy(text, {"generateKeys": True})
    assert result.bibtex == (
        "@article{doe2019art,\n  author = {Doe, Jane},\n  title = {The Art of Tea},\n  year = 2019\n}\n"
    )


def test_unchanged_key_leaves_entry_untouched():
    text = "@misc{doe2019,   author = {Doe, Jane}, year = 2019}\n"
    assert tidy(text, {"generateKeys": "[auth:lower][year]"}).bibtex == text


@pytest.mark.parametrize(
    "template, expected",
    [
        ("[authEtAl]", "SmithEtAl"),
        ("[authors2]", "SmithJonesEtAl"),
        ("[authors]", "SmithJonesBrown"),
        ("[auth:upper]", "SMITH"),
        ("[title]", "StudyEffectsTea"),
        ("[shorttitle:lower]", "studyeffectstea"),
        ("[veryshorttitle]", "Study"),
        ("[title:upper:4]", "STUD"),
        ("[title2:capitalize]", "StudyEffects"),
        ("[year]-[month]", "2020-03"),
        ("[journal:lower]", "teaquarterly"),
        ("ref:[auth]", "ref:Smith"),
    ],
)
def test_markers_and_modifiers(load, template, expected):
    fields = (
        "author = {Smith, A. and Jones, B. and Brown, C.}, "
        "title = {A Study of the Effects of Tea}, "
        "journal = {Tea Quarterly}, year = 2020, month = mar"
    )
    assert render(load, template, fields) == expected


def test_auth_et_al_with_two_authors(load):
    assert render(load, "[authEtAl]", "author = {Smith, A. and Jones, B.}") == "SmithJones"


def test_function_words_kept_when_nothing_else_remains(load):
    assert render(load, "[title]", "title = {To Be or Not}") == "BeNot"
    assert render(load, "[title]", "title = {The And Of}") == "TheAndOf"


def test_accents_are_stripped_from_keys(load):
    assert render(load, "[auth:lower]", 'author = {M{\\"u}ller, Hans}') == "muller"


def test_no_material_gives_empty_key(load):
    assert render(load, "[auth][year]", "note = {n}") == ""


def test_unknown_modifier_warns():
    result = tidy("@misc{a, author = {Smith, A.}}\n", {"generateKeys": "[auth:shout]"})
    assert [warning.code for warning in result.warnings] == [INVALID_OPTION]


@pytest.mark.parametrize("index, expected", [(1, "a"), (2, "b"), (26, "z"), (27, "aa"), (28, "ab")])
def test_suffix_letters(index, expected):
    assert suffix_letters(index) == expected
