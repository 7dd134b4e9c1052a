"""
Reasoning backend used by the analysis engine.

The engine talks to a ReasoningBackend one round at a time: it sends the
conversation so far plus the tools it offers, and gets back either final text
or tool calls. OpenAIReasoningBackend implements this over the OpenAI chat
completions API with function calling.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from .errors import ReasoningBackendError
from .models import ReasoningReply, ToolCall


class ReasoningBackend:
    """
    Base interface for any reasoning backend (hosted LLM, local model, fake).
    """

    def complete(
        self, messages: List[Dict], tools: Optional[List[Dict]] = None
    ) -> ReasoningReply:
        raise NotImplementedError


class OpenAIReasoningBackend(ReasoningBackend):
    """
    Chat-completions backend. Requests JSON output so the final answer can be
    parsed; tool calls are passed back to the engine untouched.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        timeout: float = 30.0,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self._client = client
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.log = logging.getLogger(self.__class__.__name__)

    @property
    def client(self) -> OpenAI:
        # Built on first use so a missing API key only fails the analysis call.
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def complete(
        self, messages: List[Dict], tools: Optional[List[Dict]] = None
    ) -> ReasoningReply:
        params = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "timeout": self.timeout,
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"
        else:
            params["response_format"] = {"type": "json_object"}

        try:
            client = self.client
            response = client.chat.completions.create(**params)
        except OpenAIError as exc:
            self.log.error("Reasoning backend call failed: %s", exc)
            raise ReasoningBackendError(str(exc)) from exc

        if not response.choices:
            raise ReasoningBackendError("Reasoning backend returned no choices")

        message = response.choices[0].message
        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (message.tool_calls or [])
        ]
        self.log.debug(
            "Reasoning reply: %d tool call(s), %d chars of content",
            len(tool_calls),
            len(message.content or ""),
        )
        return ReasoningReply(content=message.content, tool_calls=tool_calls)
