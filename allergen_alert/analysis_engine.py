"""
Central analysis engine: turns a product's ingredient text plus the user's
allergen profile into a structured verdict using a reasoning backend.

Key stages:
- validate input (ingredients are required)
- build the prompt with ingredients, name, description and profile text
- run a bounded number of tool rounds, answering ingredient lookups from the
  allergen taxonomy
- parse the final JSON strictly; anything malformed fails the analysis
- note allergens that cannot be traced back to the product text by keyword;
  they stay in the list
- derive the safety booleans from the detected list
"""

from __future__ import annotations

import json
import logging
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic import ValidationError as SchemaError

from .allergens import lookup_category_by_free_text
from .errors import AnalysisError, ReasoningBackendError, ValidationError
from .ingredients import classify_ingredients, referenced_keywords
from .models import AnalysisInput, AnalysisResult, ReasoningReply, ToolCall
from .prompts import INGREDIENT_TOOL, INGREDIENT_TOOL_NAME, build_messages
from .reasoning import ReasoningBackend

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class RawVerdict(BaseModel):
    """Shape the reasoning backend must return. Booleans are not coerced."""

    model_config = ConfigDict(extra="ignore")

    contains_allergens: StrictBool = Field(alias="containsAllergens")
    safe_to_consume: StrictBool = Field(alias="safeToConsume")
    allergens_list: List[StrictStr] = Field(alias="allergensList")
    reasoning: StrictStr


class AllergenAnalysisEngine:
    """
    Orchestrates the reasoning backend and enforces the verdict invariants.
    Inject a different backend to swap the model provider or to test offline.
    """

    def __init__(
        self,
        backend: ReasoningBackend,
        max_tool_rounds: int = 2,
        ground_results: bool = True,
    ):
        self.backend = backend
        self.max_tool_rounds = max(0, max_tool_rounds)
        self.ground_results = ground_results
        self.log = logging.getLogger(self.__class__.__name__)

    def analyze(self, analysis_input: AnalysisInput) -> AnalysisResult:
        """
        Run the analysis for one product. Raises ValidationError for missing
        ingredients and AnalysisError for any backend or output failure.
        """
        if not (analysis_input.ingredients or "").strip():
            raise ValidationError("Ingredients are required for allergen analysis")

        messages = build_messages(analysis_input)
        reply = self._converse(messages)
        verdict = self._parse(reply.content)

        names = _dedupe(verdict.allergens_list)
        reasoning = verdict.reasoning.strip()
        if self.ground_results:
            untraced = self._untraced(names, analysis_input)
            if untraced:
                reasoning += (
                    "\n\nNo allergen keyword for these was found in the "
                    f"ingredient text; they are still reported: {', '.join(untraced)}."
                )

        result = AnalysisResult.from_detected(names, reasoning)
        if (
            verdict.contains_allergens != result.contains_allergens
            or verdict.safe_to_consume != result.safe_to_consume
        ):
            self.log.warning(
                "Backend flags (contains=%s, safe=%s) disagree with %d detected "
                "allergen(s) for %s; deriving flags from the list",
                verdict.contains_allergens,
                verdict.safe_to_consume,
                len(names),
                analysis_input.barcode or analysis_input.product_name,
            )
        return result

    def _converse(self, messages: List[Dict]) -> ReasoningReply:
        """
        Tool rounds are capped at max_tool_rounds; the last request offers no
        tools so the backend has to answer.
        """
        for round_no in range(self.max_tool_rounds + 1):
            tools_allowed = round_no < self.max_tool_rounds
            try:
                reply = self.backend.complete(
                    messages, tools=[INGREDIENT_TOOL] if tools_allowed else None
                )
            except ReasoningBackendError as exc:
                raise AnalysisError(f"Allergen analysis failed: {exc}") from exc

            if not reply.tool_calls:
                return reply
            if not tools_allowed:
                raise AnalysisError(
                    "Reasoning backend kept requesting tools after the final round"
                )

            self.log.info(
                "Tool round %d: %d call(s)", round_no + 1, len(reply.tool_calls)
            )
            messages.append(reply.as_message())
            for call in reply.tool_calls:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": json.dumps(self._run_tool(call)),
                    }
                )
        raise AnalysisError("Reasoning backend did not produce a final answer")

    def _run_tool(self, call: ToolCall) -> Dict:
        if call.name != INGREDIENT_TOOL_NAME:
            return {"error": f"unknown tool '{call.name}'"}
        try:
            arguments = json.loads(call.arguments or "{}")
        except json.JSONDecodeError:
            return {"error": "arguments must be a JSON object"}
        terms = arguments.get("ingredients") if isinstance(arguments, dict) else None
        if not isinstance(terms, list):
            return {"error": "'ingredients' must be a list of strings"}
        return {"results": classify_ingredients(terms)}

    def _parse(self, content: Optional[str]) -> RawVerdict:
        if not content or not content.strip():
            raise AnalysisError("Reasoning backend returned an empty answer")
        text = content.strip()
        fenced = _FENCE_RE.search(text)
        if fenced:
            text = fenced.group(1).strip()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            self.log.error("Unparseable analysis output: %.200s", text)
            raise AnalysisError("Reasoning backend returned malformed JSON") from exc
        try:
            return RawVerdict.model_validate(payload)
        except SchemaError as exc:
            self.log.error("Analysis output failed validation: %s", exc)
            raise AnalysisError(
                "Reasoning backend output does not match the expected schema"
            ) from exc

    def _untraced(self, names: List[str], analysis_input: AnalysisInput) -> List[str]:
        """
        Names whose category keywords never occur in the product text. These
        are annotated only and stay in the verdict. Names that map to no known
        category are not checked.
        """
        product_text = " ".join(
            part
            for part in (
                analysis_input.product_name,
                analysis_input.ingredients,
                analysis_input.product_description or "",
            )
            if part
        )
        untraced: List[str] = []
        for name in names:
            keywords = lookup_category_by_free_text(name).keywords
            if keywords and not referenced_keywords(product_text, keywords):
                untraced.append(name)
        if untraced:
            self.log.info(
                "Allergen(s) %s not traceable by keyword for %s",
                untraced,
                analysis_input.barcode or analysis_input.product_name,
            )
        return untraced


def _dedupe(names: List[str]) -> List[str]:
    """Strip blanks and case-insensitive duplicates, keeping first spelling."""
    seen = set()
    unique: List[str] = []
    for name in names:
        cleaned = name.strip()
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            unique.append(cleaned)
    return unique
