"""Text clean-up and sentence segmentation for extracted document text.

Text coming out of PDF / DOCX extraction routinely loses the spaces between
words and sentences ("dominanti:Carisma", "MOTIVAZIONIRuolo"). The helpers
here normalise whitespace, re-insert the most common missing spaces and split
the result into sentences using per-locale abbreviation lists.
"""

from __future__ import annotations

import re

_UPPER = "A-ZÀ-ÖØ-Þ"
_LOWER = "a-zß-öø-ÿ"

_WHITESPACE = re.compile(r"\s+")
_PUNCT_THEN_LETTER = re.compile(rf"([.!?;:])([{_UPPER}{_LOWER}])")
_CAPS_THEN_CAPITALIZED = re.compile(rf"\b([{_UPPER}]{{2,}})([{_UPPER}][{_LOWER}]+)")
_LOWER_THEN_UPPER = re.compile(rf"([{_LOWER}])([{_UPPER}])")

# Sentence terminator, optional closing quotes/brackets, then whitespace.
_BOUNDARY = re.compile(r"[.!?…]+[\"'”’»)\]]*\s+")

ABBREVIATIONS: dict[str, frozenset[str]] = {
    "en": frozenset(
        "mr mrs ms dr prof sr jr st vs etc e.g i.e fig no vol approx dept inc ltd co corp jan feb mar apr "
        "jun jul aug sep sept oct nov dec".split()
    ),
    "it": frozenset(
        "sig sigg dott dott.ssa prof ing avv arch geom rag sig.ra ecc es pag pagg art artt cap n nr vol "
        "cfr fig tel ca".split()
    ),
    "de": frozenset("bzw ca dr evtl ggf hr hrn nr str usw vgl z.b u.a d.h s abs".split()),
    "fr": frozenset("m mme mlle dr pr etc p ex cf vol n°".split()),
    "es": frozenset("sr sra srta dr dra etc pág núm vol ej p.ej".split()),
}
DEFAULT_LOCALE = "en"


def fix_missing_spaces(text: str) -> str:
    """Re-insert spaces lost during text extraction.

    Three boundaries are repaired: punctuation directly followed by a letter,
    an ALL-CAPS word glued to a Capitalized one, and a lowercase letter glued
    to an uppercase one.
    """
    text = _PUNCT_THEN_LETTER.sub(r"\1 \2", text)
    text = _CAPS_THEN_CAPITALIZED.sub(r"\1 \2", text)
    return _LOWER_THEN_UPPER.sub(r"\1 \2", text)


def normalize_text(text: str) -> str:
    """Collapse every whitespace run to one space and repair missing spaces."""
    text = _WHITESPACE.sub(" ", text or "").strip()
    if not text:
        return ""
    return fix_missing_spaces(text)


def _language(locale: str | None) -> str:
    lang = (locale or DEFAULT_LOCALE).replace("-", "_").split("_", 1)[0].lower()
    return lang if lang in ABBREVIATIONS else DEFAULT_LOCALE


def _is_abbreviation(segment: str, abbreviations: frozenset[str]) -> bool:
    """True when *segment* ends with a known abbreviation or a single-letter initial."""
    words = segment.rsplit(" ", 1)
    last = words[-1].rstrip(".").lower()
    if not last:
        return False
    if len(last) == 1 and last.isalpha():
        return True
    return last in abbreviations


def split_sentences(text: str, locale: str | None = None) -> list[str]:
    """Split normalised *text* into sentences.

    A boundary is a run of ``.``, ``!``, ``?`` or ``…`` followed by
    whitespace, except after an abbreviation of the locale's language or when
    the next word starts in lowercase. Text without terminators is returned as
    a single sentence.
    """
    text = text.strip()
    if not text:
        return []
    abbreviations = ABBREVIATIONS[_language(locale)]

    sentences: list[str] = []
    start = 0
    for match in _BOUNDARY.finditer(text):
        end = match.end()
        if end >= len(text):
            break
        if text[end].islower():
            continue
        punct = match.group(0).strip()
        if punct.startswith(".") and len(punct.rstrip("\"'”’»)]")) == 1:
            if _is_abbreviation(text[start : match.start()], abbreviations):
                continue
        sentence = text[start:end].strip()
        if sentence:
            sentences.append(sentence)
        start = end
    tail = text[start:].strip()
    if tail:
        sentences.append(tail)
    return sentences
