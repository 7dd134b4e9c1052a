"""
Prompt text, tool definition and message assembly for the allergen analysis.
"""

from __future__ import annotations

from typing import Dict, List

from .allergens import COMMON_ALLERGENS
from .models import AnalysisInput

INGREDIENT_TOOL_NAME = "lookup_ingredient_allergens"

SYSTEM_PROMPT = """You are a food allergen analyst. You read a product's ingredient list and
decide which allergens it contains for a specific user.

TASK:
1. Parse the ingredient list into discrete ingredient terms, including
   sub-ingredients listed in brackets.
2. For every allergen in the user's profile, decide whether it is present and
   justify the decision from the ingredient text. Derived ingredients count:
   whey or casein imply milk, albumen implies eggs, semolina implies wheat.
3. Also report any other common allergen ({common}) that you confidently detect
   in the ingredients, even if it is outside the profile.
4. Only report allergens you can point to in the ingredient text, product name
   or description. Never invent ingredients.

If a term is ambiguous (scientific names, compound ingredients), call the
`{tool}` tool with the terms you are unsure about before answering.

Output ONLY valid JSON with exactly these fields:
{{
    "containsAllergens": true or false,
    "safeToConsume": true or false,
    "allergensList": ["allergen display names"],
    "reasoning": "short explanation naming the ingredients behind each allergen"
}}
"allergensList" is empty when nothing relevant was found. "safeToConsume" is
false whenever "allergensList" is not empty."""

EMPTY_PROFILE_NOTE = (
    "(The user has not selected any allergens. Check for the common allergens "
    "listed above; the result will not be personalised.)"
)

INGREDIENT_TOOL: Dict = {
    "type": "function",
    "function": {
        "name": INGREDIENT_TOOL_NAME,
        "description": (
            "Look up which allergen category, if any, each ingredient term "
            "belongs to. Returns one entry per term with category_id "
            "'unknown' when no category matches."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "ingredients": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Ingredient terms exactly as written on the label.",
                }
            },
            "required": ["ingredients"],
        },
    },
}


def common_allergen_names() -> str:
    return ", ".join(category.name for category in COMMON_ALLERGENS)


def system_prompt() -> str:
    return SYSTEM_PROMPT.format(common=common_allergen_names(), tool=INGREDIENT_TOOL_NAME)


def user_prompt(analysis_input: AnalysisInput) -> str:
    lines = [f"PRODUCT NAME: {analysis_input.product_name}"]
    if analysis_input.product_description:
        lines.append(f"PRODUCT DESCRIPTION: {analysis_input.product_description}")
    lines.append("INGREDIENTS:")
    lines.append(analysis_input.ingredients)
    lines.append("")
    lines.append("USER ALLERGEN PROFILE:")
    lines.append(analysis_input.allergens_profile.strip() or EMPTY_PROFILE_NOTE)
    return "\n".join(lines)


def build_messages(analysis_input: AnalysisInput) -> List[Dict]:
    return [
        {"role": "system", "content": system_prompt()},
        {"role": "user", "content": user_prompt(analysis_input)},
    ]
