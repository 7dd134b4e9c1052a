"""
Ingredient text helpers.

Splits a raw ingredient statement into discrete terms and classifies each term
against the allergen taxonomy. The classification is what the analysis engine
hands back to the model when it calls the ingredient lookup tool.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from .allergens import match_category, strip_non_allergen_phrases

_PREFIX_RE = re.compile(r"^\s*(ingredients?|contains|may contain)\s*:\s*", re.IGNORECASE)
_PERCENT_RE = re.compile(r"\(?\s*\d+(?:[.,]\d+)?\s*%\s*\)?")
_CONNECTOR_RE = re.compile(r"\band/or\b|\bor\b|\band\b", re.IGNORECASE)
_OPEN = "([{"
_CLOSE = ")]}"


def _top_level_parts(text: str) -> List[str]:
    """
    Split on , ; and sentence periods that are not inside brackets.
    Bracketed groups stay attached to their parent term.
    """
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for idx, ch in enumerate(text):
        if ch in _OPEN:
            depth += 1
        elif ch in _CLOSE:
            depth = max(0, depth - 1)
        is_period = ch == "." and not (
            0 < idx < len(text) - 1 and text[idx - 1].isdigit() and text[idx + 1].isdigit()
        )
        if depth == 0 and (ch in ",;" or is_period):
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _clean(term: str) -> str:
    term = _PREFIX_RE.sub("", term)
    term = _PERCENT_RE.sub(" ", term)
    term = term.replace("*", " ").replace("_", " ")
    term = re.sub(r"\s+", " ", term)
    return term.strip(" .:-").strip()


def _expand(part: str) -> List[str]:
    """Return the parent term followed by any bracketed sub-ingredients."""
    match = re.match(r"^(.*?)[\(\[\{](.*)[\)\]\}]\s*$", part.strip(), re.DOTALL)
    if not match:
        return [part]
    parent, inner = match.group(1), match.group(2)
    terms = [parent]
    for sub in _top_level_parts(inner):
        terms.extend(_expand(sub))
    return terms


def split_ingredients(text: Optional[str]) -> List[str]:
    """
    Turn an ingredient statement into an ordered, de-duplicated list of terms,
    e.g. "Chocolate (sugar, cocoa butter), milk 12%" ->
    ["Chocolate", "sugar", "cocoa butter", "milk"].
    """
    if not text:
        return []
    terms: List[str] = []
    seen = set()
    for part in _top_level_parts(_PREFIX_RE.sub("", text)):
        for raw in _expand(part):
            for piece in _CONNECTOR_RE.split(raw):
                term = _clean(piece)
                key = term.lower()
                if term and key not in seen:
                    seen.add(key)
                    terms.append(term)
    return terms


def classify_ingredient(term: str) -> Dict[str, Optional[str]]:
    category, keyword = match_category(term)
    return {
        "ingredient": term,
        "category_id": category.id,
        "category_name": category.name,
        "matched_keyword": keyword,
    }


def classify_ingredients(terms: Iterable[str]) -> List[Dict[str, Optional[str]]]:
    """Classify each term; unmatched terms carry category_id "unknown"."""
    return [classify_ingredient(str(term)) for term in terms if str(term).strip()]


def referenced_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Keywords that occur in the lowercased text, excluded phrases ignored."""
    lowered = strip_non_allergen_phrases((text or "").lower())
    return [keyword for keyword in keywords if keyword in lowered]
