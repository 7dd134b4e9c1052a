"""
Shared domain models.

- AllergenCategory: one selectable allergen concern and its matching keywords.
- ProductRecord: normalized product lookup result, independent of the source.
- AnalysisInput: what the analysis engine receives for one product.
- AnalysisResult: the verdict, with booleans always derived from the list.
- HighlightedAllergen: a detected allergen annotated for display.
- ToolCall/ReasoningReply: one round of output from the reasoning backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

UNKNOWN_PRODUCT_NAME = "Unknown Product"


@dataclass(frozen=True)
class AllergenCategory:
    id: str
    name: str
    keywords: Tuple[str, ...] = ()

    def first_match(self, text: str) -> Optional[str]:
        """Return the first keyword contained in the already-lowercased text."""
        for keyword in self.keywords:
            if keyword in text:
                return keyword
        return None


@dataclass
class ProductRecord:
    """
    Standardized product lookup result. An empty `ingredients` string is a valid,
    degraded state; `warning` explains it to the caller.
    """

    barcode: str
    product_name: str = UNKNOWN_PRODUCT_NAME
    ingredients: str = ""
    product_description: Optional[str] = None
    image_url: Optional[str] = None
    warning: Optional[str] = None
    source: str = "openfoodfacts"

    @property
    def has_ingredients(self) -> bool:
        return bool(self.ingredients and self.ingredients.strip())

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "productName": self.product_name,
            "ingredients": self.ingredients,
        }
        if self.product_description:
            payload["productDescription"] = self.product_description
        if self.image_url:
            payload["imageUrl"] = self.image_url
        if self.warning:
            payload["warning"] = self.warning
        return payload


@dataclass
class AnalysisInput:
    product_name: str
    ingredients: str
    allergens_profile: str = ""
    product_description: Optional[str] = None
    barcode: Optional[str] = None  # traceability only, never sent to the model

    @classmethod
    def from_product(cls, product: ProductRecord, allergens_profile: str) -> "AnalysisInput":
        return cls(
            product_name=product.product_name,
            ingredients=product.ingredients,
            allergens_profile=allergens_profile,
            product_description=product.product_description,
            barcode=product.barcode,
        )


@dataclass(frozen=True)
class AnalysisResult:
    contains_allergens: bool
    safe_to_consume: bool
    allergens_list: Tuple[str, ...]
    reasoning: str

    @classmethod
    def from_detected(cls, allergens: Iterable[str], reasoning: str) -> "AnalysisResult":
        """
        Build a result whose booleans follow from the detected list:
        non-empty list means contains and unsafe, empty list means safe.
        """
        names = tuple(allergens)
        contains = bool(names)
        return cls(
            contains_allergens=contains,
            safe_to_consume=not contains,
            allergens_list=names,
            reasoning=reasoning,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "containsAllergens": self.contains_allergens,
            "safeToConsume": self.safe_to_consume,
            "allergensList": list(self.allergens_list),
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class HighlightedAllergen:
    name: str
    is_user_match: bool
    category_id: str = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "isUserMatch": self.is_user_match,
            "categoryId": self.category_id,
        }


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: str  # raw JSON text as produced by the model


@dataclass
class ReasoningReply:
    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)

    def as_message(self) -> Dict[str, Any]:
        """Assistant message to append to the conversation before tool results."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message
