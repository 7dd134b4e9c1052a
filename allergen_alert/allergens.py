"""
Allergen taxonomy and helpers.

Defines the selectable allergen categories with display names and the lowercase
keyword substrings used for free-text detection, plus utilities to resolve
free-form inputs to canonical category ids.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Optional, Tuple

from .models import AllergenCategory

# Selectable allergen categories, in the order they are offered to the user.
# Keywords are lowercase substrings; derivatives (whey, casein, albumen...) are
# listed so ingredient terms resolve to the category that they imply.
COMMON_ALLERGENS_META: Dict[str, Dict[str, object]] = {
    "peanuts": {
        "name": "Peanuts",
        "keywords": ["peanut", "groundnut", "arachis"],
    },
    "treeNuts": {
        "name": "Tree Nuts",
        "keywords": [
            "tree nut",
            "nuts",
            "almond",
            "walnut",
            "cashew",
            "pecan",
            "pistachio",
            "hazelnut",
            "macadamia",
            "brazil nut",
            "praline",
            "marzipan",
        ],
    },
    "milk": {
        "name": "Milk (Dairy)",
        "keywords": [
            "milk",
            "dairy",
            "lactose",
            "cheese",
            "yogurt",
            "yoghurt",
            "butter",
            "cream",
            "whey",
            "casein",
            "ghee",
            "lactalbumin",
        ],
    },
    "eggs": {
        "name": "Eggs",
        "keywords": [
            "egg",
            "albumen",
            "albumin",
            "ovalbumin",
            "lysozyme",
            "mayonnaise",
            "meringue",
        ],
    },
    "soy": {
        "name": "Soy",
        "keywords": ["soy", "tofu", "edamame", "miso", "tempeh"],
    },
    "wheat": {
        "name": "Wheat (Gluten)",
        "keywords": [
            "wheat",
            "gluten",
            "barley",
            "rye",
            "spelt",
            "semolina",
            "durum",
            "farina",
            "couscous",
            "seitan",
        ],
    },
    "fish": {
        "name": "Fish",
        "keywords": [
            "fish",
            "salmon",
            "tuna",
            "cod",
            "anchov",
            "sardine",
            "haddock",
            "pollock",
            "tilapia",
        ],
    },
    "shellfish": {
        "name": "Shellfish",
        "keywords": [
            "shellfish",
            "shrimp",
            "prawn",
            "crab",
            "lobster",
            "crayfish",
            "mollusc",
            "mollusk",
            "oyster",
            "mussel",
            "clam",
            "scallop",
            "squid",
        ],
    },
}

# First match wins, so categories whose keywords contain another category's
# keyword must come first ("peanuts" holds "nuts", "shellfish" holds "fish",
# "lactalbumin" holds "albumin").
MATCH_ORDER: Tuple[str, ...] = (
    "peanuts",
    "treeNuts",
    "shellfish",
    "milk",
    "eggs",
    "soy",
    "wheat",
    "fish",
)


# Phrases that contain a category keyword but name no allergen ("buckwheat"
# holds "wheat", "cocoa butter" holds "butter"). They are removed before
# keyword matching; plural and compound forms ("coconuts") are removed too.
NON_ALLERGEN_PHRASES: Tuple[str, ...] = (
    "buckwheat",
    "cocoa butter",
    "cacao butter",
    "shea butter",
    "butternut",
    "cream of tartar",
    "eggplant",
    "coconut milk",
    "coconut cream",
    "coconut butter",
    "coconut",
    "doughnut",
)

_NON_ALLERGEN_RE = re.compile(
    "|".join(
        rf"(?<!\w){re.escape(phrase)}\w*"
        for phrase in sorted(NON_ALLERGEN_PHRASES, key=len, reverse=True)
    )
)


def strip_non_allergen_phrases(text: str) -> str:
    """Remove excluded phrases from lowercased text before keyword matching."""
    return " ".join(_NON_ALLERGEN_RE.sub(" ", text or "").split())


def _build_categories(meta: Dict[str, Dict[str, object]]) -> Dict[str, AllergenCategory]:
    """Freeze the metadata table into AllergenCategory objects keyed by id."""
    categories: Dict[str, AllergenCategory] = {}
    for category_id, entry in meta.items():
        keywords = tuple(str(k).lower() for k in entry.get("keywords", []))
        categories[category_id] = AllergenCategory(
            id=category_id, name=str(entry["name"]), keywords=keywords
        )
    return categories


CATEGORIES_BY_ID: Dict[str, AllergenCategory] = _build_categories(COMMON_ALLERGENS_META)

# Display order for profile selection.
COMMON_ALLERGENS: List[AllergenCategory] = list(CATEGORIES_BY_ID.values())

UNKNOWN_CATEGORY = AllergenCategory(id="unknown", name="Unknown", keywords=())


def _normalize(text: str) -> str:
    """Lowercase, strip accents, and trim whitespace."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def match_category(text: Optional[str]) -> Tuple[AllergenCategory, Optional[str]]:
    """
    Return the first category (in MATCH_ORDER) with a keyword contained in the
    text, together with the keyword that matched.
    """
    lowered = strip_non_allergen_phrases(_normalize(text or ""))
    if lowered:
        for category_id in MATCH_ORDER:
            category = CATEGORIES_BY_ID[category_id]
            keyword = category.first_match(lowered)
            if keyword:
                return category, keyword
    return UNKNOWN_CATEGORY, None


def lookup_category_by_free_text(text: Optional[str]) -> AllergenCategory:
    """
    Map free text (an allergen name or an ingredient) to a category.
    Never raises; unmatched input returns UNKNOWN_CATEGORY.
    """
    category, _ = match_category(text)
    return category


def category_by_id(category_id: str) -> Optional[AllergenCategory]:
    return CATEGORIES_BY_ID.get(category_id)


def _build_synonym_mapping(categories: Dict[str, AllergenCategory]) -> Dict[str, str]:
    """Map any synonym (id, display name, first word, keyword) to the category id."""
    mapping: Dict[str, str] = {}
    for category in categories.values():
        for keyword in category.keywords:
            mapping.setdefault(_normalize(keyword), category.id)
    # Ids and names take precedence over keywords.
    for category in categories.values():
        mapping[_normalize(category.id)] = category.id
        mapping[_normalize(category.name)] = category.id
        mapping[_normalize(category.name.split(" ")[0])] = category.id
    return mapping


SYNONYM_TO_ID: Dict[str, str] = _build_synonym_mapping(CATEGORIES_BY_ID)


def resolve_allergen_id(user_input: str) -> Optional[str]:
    """
    Resolve free-form allergen text to a canonical category id.
    Falls back to None if we cannot map it.
    """
    key = _normalize(user_input)
    if not key:
        return None
    return SYNONYM_TO_ID.get(key)


def allergen_label(category_id: str) -> str:
    """Return the display name for a category id, defaulting to the id itself."""
    if not category_id:
        return ""
    category = CATEGORIES_BY_ID.get(category_id)
    return category.name if category else category_id
