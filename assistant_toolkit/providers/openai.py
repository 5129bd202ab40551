"""OpenAI Chat Completions adapter."""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Dict, List, Mapping, Optional, Sequence, Tuple

from openai import AsyncOpenAI

from ..exceptions import MissingAPIKeyError
from ..tools.models import Tool, ToolCall
from ._base import BaseProvider, ProviderResponse

logger = logging.getLogger(__name__)


class OpenAIAdapter(BaseProvider):
    """Provider adapter for OpenAI using the Chat Completions API."""

    NAME = "OpenAI"
    API_ENV_VAR = "OPENAI_API_KEY"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(api_key=api_key, timeout=timeout)
        self._base_url = base_url
        self._async_client: Any = None  # Lazy-created

    def _get_client(self) -> Any:
        """Create the ``AsyncOpenAI`` client on first use."""
        if self._async_client is not None:
            return self._async_client

        key = self._resolve_api_key()
        if not key:
            raise MissingAPIKeyError(
                f"OpenAI API key not found. Provide via api_key argument or "
                f"set the {self.API_ENV_VAR} environment variable."
            )

        client_kwargs: Dict[str, Any] = {
            "api_key": key,
            "timeout": self.timeout,
            # No automatic retries; a failed request surfaces immediately.
            "max_retries": 0,
        }
        if self._base_url:
            client_kwargs["base_url"] = self._base_url

        self._async_client = AsyncOpenAI(**client_kwargs)
        return self._async_client

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------

    def _build_tool_definitions(self, tools: Sequence[Tool]) -> List[Dict[str, Any]]:
        return [tool.to_openai() for tool in tools]

    @staticmethod
    def _prepare_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Drop keys the Chat Completions API does not accept."""
        prepared: List[Dict[str, Any]] = []
        for msg in messages:
            if msg.get("role") == "tool":
                prepared.append(
                    {
                        "role": "tool",
                        "tool_call_id": msg.get("tool_call_id", ""),
                        "content": msg.get("content", ""),
                    }
                )
            else:
                prepared.append({k: v for k, v in msg.items() if k != "is_error"})
        return prepared

    @staticmethod
    def _message_to_dict(message: Any) -> Dict[str, Any]:
        """Read an SDK ``ChatCompletionMessage`` into a plain dict."""
        result: Dict[str, Any] = {"role": "assistant", "content": getattr(message, "content", None)}
        raw_calls = getattr(message, "tool_calls", None) or []
        if raw_calls:
            result["tool_calls"] = []
            for tc in raw_calls:
                function = getattr(tc, "function", None)
                result["tool_calls"].append(
                    {
                        "id": getattr(tc, "id", "") or "",
                        "type": "function",
                        "function": {
                            "name": getattr(function, "name", "") or "",
                            "arguments": getattr(function, "arguments", "") or "",
                        },
                    }
                )
        return result

    @staticmethod
    def parse_message(message: Mapping[str, Any]) -> Tuple[str, List[ToolCall]]:
        """Extract text and canonical tool calls from a Chat Completions message dict."""
        content = message.get("content") or ""
        tool_calls = [ToolCall.from_openai(item) for item in message.get("tool_calls") or []]
        return content, tool_calls

    @staticmethod
    def _build_raw_messages(message: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Echo the assistant turn, keeping the model's raw argument strings."""
        msg: Dict[str, Any] = {"role": "assistant", "content": message.get("content")}
        if message.get("tool_calls"):
            msg["tool_calls"] = list(message["tool_calls"])
        return [msg]

    @staticmethod
    def _extract_usage(response: Any) -> Optional[Dict[str, int]]:
        usage = getattr(response, "usage", None)
        if usage:
            prompt = getattr(usage, "prompt_tokens", 0) or 0
            completion = getattr(usage, "completion_tokens", 0) or 0
            return {
                "prompt_tokens": prompt,
                "completion_tokens": completion,
                "total_tokens": getattr(usage, "total_tokens", 0) or prompt + completion,
            }
        return None

    @staticmethod
    def _chunk_text(chunk: Any) -> str:
        choices = getattr(chunk, "choices", None)
        if not choices:
            return ""
        delta = getattr(choices[0], "delta", None)
        return getattr(delta, "content", None) or ""

    def _build_request(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        temperature: Optional[float],
        max_output_tokens: Optional[int],
    ) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            "model": model,
            "messages": self._prepare_messages(messages),
        }
        if max_output_tokens:
            request["max_tokens"] = max_output_tokens
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
        """Make a single non-streaming call via Chat Completions."""
        client = self._get_client()
        request = self._build_request(model, messages, temperature, max_output_tokens)
        if tools:
            request["tools"] = tools

        response = await client.chat.completions.create(**request)

        choices = getattr(response, "choices", None) or []
        if not choices:
            logger.warning("OpenAI returned no choices for model %s", model)
            return ProviderResponse(content="", usage=self._extract_usage(response))

        message = self._message_to_dict(choices[0].message)
        content, tool_calls = self.parse_message(message)
        if not content and not tool_calls:
            logger.warning("OpenAI returned an empty message for model %s", model)

        return ProviderResponse(
            content=content,
            tool_calls=tool_calls,
            raw_messages=self._build_raw_messages(message),
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
        """Stream text deltas via Chat Completions."""
        client = self._get_client()
        request = self._build_request(model, messages, temperature, max_output_tokens)

        stream = await client.chat.completions.create(**request, stream=True)
        async for chunk in stream:
            text = self._chunk_text(chunk)
            if text:
                yield text

    async def _check_key(self) -> None:
        client = self._get_client()
        await client.models.list()
