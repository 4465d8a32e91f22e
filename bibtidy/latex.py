"""LaTeX escaping and plain-text helpers shared by the passes."""

from __future__ import annotations

import re
import unicodedata
from typing import List

from bibtexparser.customization import splitname
from bibtexparser.latexenc import latex_to_unicode

LATEX_COMBINING_MARKS = {
    "\u0300": "`",
    "\u0301": "'",
    "\u0302": "^",
    "\u0303": "~",
    "\u0304": "=",
    "\u0306": "u",
    "\u0307": ".",
    "\u0308": '"',
    "\u030a": "r",
    "\u030b": "H",
    "\u030c": "v",
    "\u0323": "d",
    "\u0327": "c",
    "\u0328": "k",
    "\u0331": "b",
}
LATEX_SPECIAL_CHARS = {
    "\u00df": r"\ss",
    "\u00e6": r"\ae",
    "\u00c6": r"\AE",
    "\u0153": r"\oe",
    "\u0152": r"\OE",
    "\u00e5": r"\aa",
    "\u00c5": r"\AA",
    "\u00f8": r"\o",
    "\u00d8": r"\O",
    "\u0142": r"\l",
    "\u0141": r"\L",
    "\u0111": r"\dj",
    "\u0110": r"\DJ",
    "\u0131": r"\i",
    "\u0237": r"\j",
    "\u2026": r"\ldots",
    "\u00a9": r"\textcopyright",
    "\u00ae": r"\textregistered",
    "\u2122": r"\texttrademark",
    "\u00b0": r"\textdegree",
    "\u20ac": r"\texteuro",
    "\u00a3": r"\pounds",
    "\u00a7": r"\S",
    "\u00b6": r"\P",
    "\u00ab": r"\guillemotleft",
    "\u00bb": r"\guillemotright",
}
LATEX_PUNCTUATION = {
    "\u2013": "--",
    "\u2014": "---",
    "\u2018": "`",
    "\u2019": "'",
    "\u201c": "``",
    "\u201d": "''",
    "\u00a1": "!`",
    "\u00bf": "?`",
    "\u00a0": "~",
    "&": r"\&",
    "%": r"\%",
}
# fields holding identifiers or addresses rather than prose
VERBATIM_FIELDS = {
    "url",
    "doi",
    "eprint",
    "archiveprefix",
    "primaryclass",
    "eprinttype",
    "eprintclass",
    "urldate",
    "ids",
    "file",
}
# articles, conjunctions and short prepositions
FUNCTION_WORDS = frozenset(
    {
        "a",
        "about",
        "above",
        "across",
        "against",
        "along",
        "among",
        "an",
        "and",
        "around",
        "as",
        "at",
        "before",
        "behind",
        "below",
        "beneath",
        "beside",
        "between",
        "beyond",
        "but",
        "by",
        "down",
        "during",
        "except",
        "for",
        "from",
        "in",
        "inside",
        "into",
        "like",
        "near",
        "nor",
        "of",
        "off",
        "on",
        "onto",
        "or",
        "since",
        "so",
        "the",
        "through",
        "to",
        "toward",
        "towards",
        "under",
        "until",
        "up",
        "upon",
        "via",
        "with",
        "within",
        "without",
        "yet",
    }
)
AND_RE = re.compile(r"\s+and\s+", re.IGNORECASE)
WORD_RE = re.compile(r"(?<![\\\w])[^\W\d_]+")
LATEX_COMMAND_RE = re.compile(r"\\[A-Za-z]+\s*|\\.")


def is_verbatim_field(name: str) -> bool:
    name = name.lower()
    if name in VERBATIM_FIELDS:
        return True
    return "url" in name or "file" in name


def escape_char(ch: str) -> str:
    if ch in LATEX_PUNCTUATION:
        return LATEX_PUNCTUATION[ch]
    if ch in LATEX_SPECIAL_CHARS:
        return f"{{{LATEX_SPECIAL_CHARS[ch]}}}"
    if ord(ch) < 128:
        return ch
    decomposed = unicodedata.normalize("NFD", ch)
    base, marks = decomposed[0], decomposed[1:]
    if len(marks) != 1 or ord(base) >= 128 or marks not in LATEX_COMBINING_MARKS:
        return ch
    accent = LATEX_COMBINING_MARKS[marks]
    if accent.isalpha():
        return f"{{\\{accent}{{{base}}}}}"
    return f"{{\\{accent}{base}}}"


def escape_latex(text: str) -> str:
    """Replace special characters with their LaTeX escape sequence.

    A character directly after a backslash is already part of an escape
    sequence and is left alone, so escaping is idempotent.
    """
    result: List[str] = []
    escaped = False
    for ch in text:
        if escaped:
            result.append(ch)
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            result.append(ch)
            continue
        result.append(escape_char(ch))
    return "".join(result)


def has_balanced_outer_braces(value: str) -> bool:
    if not (value.startswith("{") and value.endswith("}")):
        return False
    depth = 0
    for idx, ch in enumerate(value):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0 and idx != len(value) - 1:
                return False
    return depth == 0


def braces_balanced(value: str) -> bool:
    depth = 0
    for ch in value:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def is_all_caps(text: str) -> bool:
    letters = [ch for ch in text if ch.isalpha()]
    return bool(letters) and all(ch.isupper() for ch in letters)


def title_case(text: str) -> str:
    """Capitalize each word, keeping function words after the first lowercase."""
    seen_first = False

    def capitalize(match: re.Match) -> str:
        nonlocal seen_first
        word = match.group(0).lower()
        if seen_first and word in FUNCTION_WORDS:
            return word
        seen_first = True
        return word[:1].upper() + word[1:]

    return WORD_RE.sub(capitalize, text)


def strip_diacritics(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def plain_text(value: str) -> str:
    """Reduce a field value to unaccented plain text."""
    text = latex_to_unicode(value)
    text = LATEX_COMMAND_RE.sub("", text)
    text = text.replace("{", "").replace("}", "")
    return normalize_whitespace(strip_diacritics(text))


def normalize_title(value: str) -> str:
    text = plain_text(value).lower()
    text = re.sub(r"[^a-z0-9]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_doi(value: str) -> str:
    text = "".join(value.split()).lower()
    text = text.replace("doi:", "")
    for prefix in (
        "https://doi.org/",
        "http://doi.org/",
        "http://dx.doi.org/",
        "https://dx.doi.org/",
    ):
        if text.startswith(prefix):
            text = text[len(prefix) :]
            break
    return text


def normalize_abstract(value: str) -> str:
    return normalize_whitespace(plain_text(value)).lower()


def split_names(value: str) -> List[str]:
    """Split a name list on ``and`` outside of braces."""
    names: List[str] = []
    depth = 0
    start = 0
    idx = 0
    while idx < len(value):
        ch = value[idx]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(depth - 1, 0)
        elif depth == 0 and ch.isspace():
            match = AND_RE.match(value, idx)
            if match:
                names.append(value[start:idx])
                idx = start = match.end()
                continue
        idx += 1
    names.append(value[start:])
    return [name.strip() for name in names if name.strip()]


def is_others(name: str) -> bool:
    return name.strip().lower() in {"others", "et al", "et al."}


def surname(name: str) -> str:
    if is_others(name):
        return ""
    parts = splitname(normalize_whitespace(name), strict_mode=False)
    last = parts.get("last") or []
    return plain_text(" ".join(last))


def surnames(value: str) -> List[str]:
    names = [surname(name) for name in split_names(value)]
    return [name for name in names if name]
