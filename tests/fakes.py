"""Fakes shared by the allergen alert tests."""

import json
from typing import Dict, List, Optional

from allergen_alert import ProductDataSource, ReasoningBackend
from allergen_alert.models import ReasoningReply, ToolCall


class ScriptedBackend(ReasoningBackend):
    """Returns queued replies in order and records every request."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls: List[Dict] = []
        self.on_complete = None

    def complete(self, messages, tools=None):
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools})
        if self.on_complete:
            self.on_complete()
        if not self.replies:
            raise AssertionError("backend called more often than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class StaticSource(ProductDataSource):
    """Product source backed by a dict of barcode -> ProductRecord or exception."""

    def __init__(self, products: Optional[Dict] = None):
        self.products = dict(products or {})
        self.requested: List[str] = []

    def lookup(self, barcode):
        self.requested.append(barcode)
        item = self.products[barcode]
        if isinstance(item, Exception):
            raise item
        return item


def verdict_reply(allergens, contains=None, safe=None, reasoning="Checked every ingredient."):
    if contains is None:
        contains = bool(allergens)
    if safe is None:
        safe = not contains
    return ReasoningReply(
        content=json.dumps(
            {
                "containsAllergens": contains,
                "safeToConsume": safe,
                "allergensList": list(allergens),
                "reasoning": reasoning,
            }
        )
    )


def tool_reply(terms, call_id="call_1", name="lookup_ingredient_allergens"):
    return ReasoningReply(
        content=None,
        tool_calls=[ToolCall(id=call_id, name=name, arguments=json.dumps({"ingredients": terms}))],
    )


