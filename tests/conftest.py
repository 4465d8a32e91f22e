"""
Pytest configuration and shared fixtures.

Adds the repository root to ``sys.path`` so ``bibtidy`` imports without
installing the package.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bibtidy.fields import resolve_fields  # noqa: E402
from bibtidy.parser import parse  # noqa: E402


@pytest.fixture
def load():
    """Parse text and build the resolved field index."""

    def _load(text):
        document, warnings = parse(text)
        return document, resolve_fields(document), warnings

    return _load


@pytest.fixture
def sample_bib():
    return (
        "% Reading list\n"
        "@string{jtea = \"Journal of Tea\"}\n"
        "\n"
        "@article{smith2020,\n"
        "  author = {Smith, John and Doe, Jane},\n"
        "  title = {{A Study of Tea}},\n"
        "  journal = jtea,\n"
        "  year = {2020},\n"
        "  month = mar,\n"
        "  note = {}\n"
        "}\n"
        "\n"
        "@comment{checked by hand}\n"
        "@Book{brown1999,\n"
        "  Author = \"Brown, Alice\",\n"
        "  Title = \"COFFEE AND TEA\",\n"
        "  Year = 1999,\n"
        "  Publisher = {Leaf Press}\n"
        "}\n"
    )
