"""
Report rendering and profile-match highlighting.

highlight_matches reproduces the display heuristic the report has always used:
a detected allergen is a profile match when it contains the first word of a
profiled category's display name. highlight_matches_by_taxonomy is the stricter
alternative that maps both sides through the taxonomy keywords.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .allergens import COMMON_ALLERGENS, lookup_category_by_free_text
from .models import AnalysisResult, HighlightedAllergen, ProductRecord

MATCHING_MODES = ("name", "taxonomy")

SAFE_HEADLINE = "This product appears safe for you based on your profile."
WARNING_HEADLINE = "Warning! This product may contain allergens you are sensitive to."
NO_ALLERGENS_NOTE = (
    "No specific allergens detected based on the provided information, or the "
    "product is considered allergen-free by the analysis relative to your profile."
)


def highlight_matches(
    detected_names: Iterable[str], profile_ids: Iterable[str]
) -> List[HighlightedAllergen]:
    profile = set(profile_ids)
    tokens = [
        category.name.split(" ")[0].lower()
        for category in COMMON_ALLERGENS
        if category.id in profile
    ]
    highlighted: List[HighlightedAllergen] = []
    for name in detected_names:
        lowered = name.lower()
        is_match = any(token in lowered for token in tokens)
        highlighted.append(
            HighlightedAllergen(
                name=name,
                is_user_match=is_match,
                category_id=lookup_category_by_free_text(name).id,
            )
        )
    return highlighted


def highlight_matches_by_taxonomy(
    detected_names: Iterable[str], profile_ids: Iterable[str]
) -> List[HighlightedAllergen]:
    profile = set(profile_ids)
    highlighted: List[HighlightedAllergen] = []
    for name in detected_names:
        category_id = lookup_category_by_free_text(name).id
        highlighted.append(
            HighlightedAllergen(
                name=name,
                is_user_match=category_id in profile,
                category_id=category_id,
            )
        )
    return highlighted


def highlight(
    detected_names: Iterable[str], profile_ids: Iterable[str], matching: str = "name"
) -> List[HighlightedAllergen]:
    if matching == "taxonomy":
        return highlight_matches_by_taxonomy(detected_names, profile_ids)
    if matching != "name":
        raise ValueError(f"Unknown matching mode '{matching}'")
    return highlight_matches(detected_names, profile_ids)


def render_text_report(
    result: AnalysisResult,
    profile_ids: Iterable[str],
    product: Optional[ProductRecord] = None,
    matching: str = "name",
) -> str:
    """Pretty-print the verdict in the same order the report card shows it."""
    lines = ["=== Allergen Analysis Report ==="]
    if product:
        headline = f"{product.product_name} ({product.barcode})"
        if product.product_description:
            headline += f" · {product.product_description}"
        lines.append(headline)
    lines.append(SAFE_HEADLINE if result.safe_to_consume else WARNING_HEADLINE)

    lines.append("\nDetected allergens:")
    items = highlight(result.allergens_list, profile_ids, matching=matching)
    if items:
        for item in items:
            marker = " [profile match]" if item.is_user_match else ""
            lines.append(f"  - {item.name}{marker}")
    else:
        lines.append(f"  {NO_ALLERGENS_NOTE}")

    if result.reasoning:
        lines.append("\nReasoning:")
        lines.append(f"  {result.reasoning}")

    if not result.contains_allergens and not result.allergens_list:
        lines.append(
            "\nThe analysis did not find any of the common allergens from your "
            "profile in this product."
        )
    return "\n".join(lines)


def report_payload(
    result: AnalysisResult,
    profile_ids: Iterable[str],
    product: Optional[ProductRecord] = None,
    matching: str = "name",
) -> Dict:
    """JSON-friendly report combining product, verdict and highlights."""
    payload = {
        "product": product.to_dict() if product else None,
        "barcode": product.barcode if product else None,
        "verdict": result.to_dict(),
        "highlighted": [
            item.to_dict()
            for item in highlight(result.allergens_list, profile_ids, matching=matching)
        ],
    }
    return payload
