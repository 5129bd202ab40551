"""Anthropic Messages API adapter."""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Tuple

import anthropic

from ..config import DEFAULT_MODELS, AIProvider
from ..exceptions import MissingAPIKeyError
from ..tools.models import Tool, ToolCall
from ._base import BaseProvider, ProviderResponse

logger = logging.getLogger(__name__)

# The Messages API has no server-side default for max_tokens.
_DEFAULT_MAX_TOKENS = 1000


def _user_blocks(message: Dict[str, Any]) -> List[Dict[str, Any]]:
    content = message.get("content", "")
    if isinstance(content, list):
        return list(content)
    return [{"type": "text", "text": str(content)}]


def _assistant_blocks(message: Dict[str, Any]) -> List[Dict[str, Any]]:
    blocks: List[Dict[str, Any]] = []
    if message.get("content"):
        blocks.append({"type": "text", "text": message["content"]})
    for item in message.get("tool_calls") or []:
        # Arguments the model garbled earlier in the run are replayed as {}.
        call = ToolCall.from_openai(item)
        blocks.append(
            {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
        )
    return blocks


def _tool_result_blocks(message: Dict[str, Any]) -> List[Dict[str, Any]]:
    block: Dict[str, Any] = {
        "type": "tool_result",
        "tool_use_id": message.get("tool_call_id", ""),
        "content": message.get("content", ""),
    }
    if message.get("is_error"):
        block["is_error"] = True
    return [block]


# Chat Completions role -> (Messages API role, content block builder).
# System messages are absent: they travel in the request's ``system`` field.
_ROLE_CONVERTERS = {
    "user": ("user", _user_blocks),
    "assistant": ("assistant", _assistant_blocks),
    "tool": ("user", _tool_result_blocks),
}


class AnthropicAdapter(BaseProvider):
    """Provider adapter for Anthropic (Claude) using the Messages API."""

    NAME = "Claude"
    API_ENV_VAR = "ANTHROPIC_API_KEY"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        max_tokens: int = _DEFAULT_MAX_TOKENS,
    ) -> None:
        super().__init__(api_key=api_key, timeout=timeout)
        self._default_max_tokens = max_tokens
        self._async_client: Any = None  # Lazy-created

    def _get_client(self) -> Any:
        """Create the ``AsyncAnthropic`` client on first use."""
        if self._async_client is not None:
            return self._async_client

        key = self._resolve_api_key()
        if not key:
            raise MissingAPIKeyError(
                f"Anthropic API key not found. Provide via api_key argument or "
                f"set the {self.API_ENV_VAR} environment variable."
            )

        self._async_client = anthropic.AsyncAnthropic(
            api_key=key, timeout=self.timeout, max_retries=0
        )
        return self._async_client

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_system(
        messages: List[Dict[str, Any]],
    ) -> Tuple[Optional[str], List[Dict[str, Any]]]:
        """Split a leading system prompt off *messages*; returns ``(system, rest)``."""
        if not messages or messages[0].get("role") != "system":
            return None, messages
        return messages[0].get("content", ""), messages[1:]

    @staticmethod
    def _convert_messages(
        messages: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Rewrite the internal history as Messages API turns.

        Tool results become ``tool_result`` blocks in a user turn, and tool
        calls become ``tool_use`` blocks. Turns left empty are dropped.
        """
        turns: List[Dict[str, Any]] = []
        for message in messages:
            converter = _ROLE_CONVERTERS.get(message.get("role"))
            if converter is None:
                continue
            role, to_blocks = converter
            blocks = to_blocks(message)
            if blocks:
                turns.append({"role": role, "content": blocks})
        return AnthropicAdapter._merge_consecutive(turns)

    @staticmethod
    def _merge_consecutive(
        messages: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Join adjacent turns of the same role so user and assistant alternate."""
        merged: List[Dict[str, Any]] = []
        for message in messages:
            if merged and merged[-1]["role"] == message["role"]:
                merged[-1]["content"] = merged[-1]["content"] + message["content"]
                continue
            merged.append({"role": message["role"], "content": list(message["content"])})
        return merged

    def _build_tool_definitions(self, tools: Sequence[Tool]) -> List[Dict[str, Any]]:
        return [tool.to_claude() for tool in tools]

    # ------------------------------------------------------------------
    # Response parsing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_response(response: Any) -> Tuple[str, List[ToolCall]]:
        """Extract text content and tool calls from an Anthropic response."""
        content_text = ""
        tool_calls: List[ToolCall] = []

        for block in getattr(response, "content", None) or []:
            block_type = getattr(block, "type", "")
            if block_type == "text":
                content_text += getattr(block, "text", "")
            elif block_type == "tool_use":
                tool_calls.append(
                    ToolCall.from_claude(
                        {
                            "id": getattr(block, "id", ""),
                            "name": getattr(block, "name", ""),
                            "input": getattr(block, "input", None),
                        }
                    )
                )

        return content_text, tool_calls

    @staticmethod
    def _build_raw_messages(
        content: str,
        tool_calls: List[ToolCall],
    ) -> List[Dict[str, Any]]:
        """Build Chat Completions format raw_messages."""
        msg: Dict[str, Any] = {"role": "assistant", "content": content or None}
        if tool_calls:
            msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": tc.arguments_json(),
                    },
                }
                for tc in tool_calls
            ]
        return [msg]

    @staticmethod
    def _extract_usage(response: Any) -> Optional[Dict[str, int]]:
        """Extract token usage from an Anthropic response."""
        usage = getattr(response, "usage", None)
        if usage:
            input_tokens = getattr(usage, "input_tokens", 0) or 0
            output_tokens = getattr(usage, "output_tokens", 0) or 0
            return {
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            }
        return None

    def _build_request(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: Optional[float],
        max_output_tokens: Optional[int],
    ) -> Dict[str, Any]:
        system, remaining = self._extract_system(messages)
        request: Dict[str, Any] = {
            "model": model,
            "messages": self._convert_messages(remaining),
            "max_tokens": max_output_tokens or self._default_max_tokens,
        }
        if system:
            request["system"] = system
        if temperature is not None:
            request["temperature"] = temperature
        return request

    # ------------------------------------------------------------------
    # _call_api / _call_api_stream
    # ------------------------------------------------------------------

    async def _call_api(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        *,
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> ProviderResponse:
        """Make a single non-streaming call via Anthropic Messages API."""
        client = self._get_client()
        request = self._build_request(model, messages, temperature, max_output_tokens)
        if tools:
            request["tools"] = tools

        response = await client.messages.create(**request)

        content_text, tool_calls = self._parse_response(response)
        return ProviderResponse(
            content=content_text,
            tool_calls=tool_calls,
            raw_messages=self._build_raw_messages(content_text, tool_calls),
            usage=self._extract_usage(response),
        )

    async def _call_api_stream(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        *,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AsyncGenerator[str, None]:
        """Stream text deltas via Anthropic Messages API."""
        client = self._get_client()
        request = self._build_request(model, messages, temperature, max_output_tokens)

        async with client.messages.stream(**request) as stream:
            async for event in stream:
                if getattr(event, "type", "") != "content_block_delta":
                    continue
                delta = getattr(event, "delta", None)
                if getattr(delta, "type", "") == "text_delta":
                    text = getattr(delta, "text", "")
                    if text:
                        yield text

    async def _check_key(self) -> None:
        client = self._get_client()
        await client.messages.create(
            model=DEFAULT_MODELS[AIProvider.CLAUDE],
            max_tokens=1,
            messages=[{"role": "user", "content": "hi"}],
        )
