"""Unit tests for the OpenAI Chat Completions adapter without real API calls."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List

import pytest
from unittest.mock import AsyncMock

from assistant_toolkit.exceptions import ConfigurationError, ProviderAuthError
from assistant_toolkit.providers.anthropic import AnthropicAdapter
from assistant_toolkit.providers.openai import OpenAIAdapter
from assistant_toolkit.tools.models import Tool, ToolCall, ToolParam


def _sdk_message(content: Any = None, tool_calls: Any = None) -> SimpleNamespace:
    return SimpleNamespace(content=content, tool_calls=tool_calls)


def _sdk_tool_call(call_id: str, name: str, arguments: str) -> SimpleNamespace:
    return SimpleNamespace(
        id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments)
    )


def _completion(message: SimpleNamespace, usage: Any = None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def _fake_client(create_mock: AsyncMock) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create_mock)))


class TestClientSetup:
    def test_missing_key_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            OpenAIAdapter()._get_client()  # noqa: SLF001

    def test_sdk_retries_disabled(self) -> None:
        client = OpenAIAdapter(api_key="sk-test")._get_client()  # noqa: SLF001
        assert client.max_retries == 0

    def test_client_is_cached(self) -> None:
        adapter = OpenAIAdapter(api_key="sk-test")
        assert adapter._get_client() is adapter._get_client()  # noqa: SLF001


class TestPrepareMessages:
    def test_tool_message_keeps_only_wire_keys(self) -> None:
        prepared = OpenAIAdapter._prepare_messages(
            [
                {
                    "role": "tool",
                    "tool_call_id": "call_1",
                    "name": "list_events",
                    "content": "Found 1 events",
                    "is_error": False,
                }
            ]
        )
        assert prepared == [
            {"role": "tool", "tool_call_id": "call_1", "content": "Found 1 events"}
        ]

    def test_other_messages_unchanged(self) -> None:
        msgs = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
        assert OpenAIAdapter._prepare_messages(msgs) == msgs


class TestParseMessage:
    def test_text_only(self) -> None:
        content, calls = OpenAIAdapter.parse_message({"role": "assistant", "content": "Hi"})
        assert content == "Hi"
        assert calls == []

    def test_tool_calls(self) -> None:
        message = OpenAIAdapter._message_to_dict(  # noqa: SLF001
            _sdk_message(
                None,
                [
                    _sdk_tool_call("call_1", "create_event", '{"title": "Lunch"}'),
                    _sdk_tool_call("call_2", "get_today_events", ""),
                ],
            )
        )
        content, calls = OpenAIAdapter.parse_message(message)
        assert content == ""
        assert calls == [
            ToolCall(id="call_1", name="create_event", arguments={"title": "Lunch"}),
            ToolCall(id="call_2", name="get_today_events"),
        ]

    def test_malformed_arguments_flagged(self) -> None:
        _, calls = OpenAIAdapter.parse_message(
            {
                "role": "assistant",
                "tool_calls": [
                    {"id": "c", "type": "function", "function": {"name": "f", "arguments": "{"}}
                ],
            }
        )
        assert calls[0].arguments_error is not None


class TestToolRoundTrip:
    """A tool serialized for each provider and referenced in a synthetic reply parses back."""

    _TOOL = Tool(
        name="get_upcoming_events",
        description="Get upcoming events",
        parameters={"days": ToolParam(type="integer", description="Days")},
    )

    def test_openai(self) -> None:
        definition = OpenAIAdapter(api_key="k")._build_tool_definitions([self._TOOL])[0]  # noqa: SLF001
        name = definition["function"]["name"]
        _, calls = OpenAIAdapter.parse_message(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {"id": "c1", "type": "function", "function": {"name": name, "arguments": '{"days": 3}'}}
                ],
            }
        )
        assert calls[0].name == "get_upcoming_events"
        assert calls[0].arguments == {"days": 3}

    def test_claude(self) -> None:
        definition = AnthropicAdapter(api_key="k")._build_tool_definitions([self._TOOL])[0]  # noqa: SLF001
        _, calls = AnthropicAdapter._parse_response(  # noqa: SLF001
            SimpleNamespace(
                content=[
                    SimpleNamespace(type="tool_use", id="t1", name=definition["name"], input={"days": 3})
                ]
            )
        )
        assert calls[0].name == "get_upcoming_events"
        assert calls[0].arguments == {"days": 3}


class TestCallApi:
    @pytest.mark.asyncio
    async def test_request_shape(self, monkeypatch: pytest.MonkeyPatch) -> None:
        adapter = OpenAIAdapter(api_key="k")
        create_mock = AsyncMock(
            return_value=_completion(
                _sdk_message("Hello"),
                SimpleNamespace(prompt_tokens=7, completion_tokens=2, total_tokens=9),
            )
        )
        monkeypatch.setattr(adapter, "_get_client", lambda: _fake_client(create_mock))
        tools = [{"type": "function", "function": {"name": "x"}}]

        result = await adapter._call_api(  # noqa: SLF001
            "gpt-4o-mini",
            [{"role": "user", "content": "Hi"}],
            tools=tools,
            temperature=0.7,
            max_output_tokens=1000,
        )

        kwargs = create_mock.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 1000
        assert kwargs["temperature"] == 0.7
        assert kwargs["tools"] == tools
        assert result.content == "Hello"
        assert result.usage == {"prompt_tokens": 7, "completion_tokens": 2, "total_tokens": 9}
        assert result.raw_messages == [{"role": "assistant", "content": "Hello"}]

    @pytest.mark.asyncio
    async def test_tool_call_response(self, monkeypatch: pytest.MonkeyPatch) -> None:
        adapter = OpenAIAdapter(api_key="k")
        message = _sdk_message(None, [_sdk_tool_call("call_1", "list_events", "{}")])
        create_mock = AsyncMock(return_value=_completion(message))
        monkeypatch.setattr(adapter, "_get_client", lambda: _fake_client(create_mock))

        result = await adapter._call_api("m", [{"role": "user", "content": "x"}])  # noqa: SLF001

        assert result.tool_calls == [ToolCall(id="call_1", name="list_events")]
        assert result.raw_messages[0]["tool_calls"][0]["function"]["arguments"] == "{}"
        assert "tools" not in create_mock.call_args.kwargs

    @pytest.mark.asyncio
    async def test_no_choices(self, monkeypatch: pytest.MonkeyPatch) -> None:
        adapter = OpenAIAdapter(api_key="k")
        create_mock = AsyncMock(return_value=SimpleNamespace(choices=[], usage=None))
        monkeypatch.setattr(adapter, "_get_client", lambda: _fake_client(create_mock))

        result = await adapter._call_api("m", [])  # noqa: SLF001

        assert result.content == ""
        assert result.tool_calls == []

    @pytest.mark.asyncio
    async def test_auth_failure_classified(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class _Unauthorized(Exception):
            status_code = 401

        adapter = OpenAIAdapter(api_key="k")
        create_mock = AsyncMock(side_effect=_Unauthorized("Incorrect API key provided"))
        monkeypatch.setattr(adapter, "_get_client", lambda: _fake_client(create_mock))

        with pytest.raises(ProviderAuthError, match="OpenAI API error"):
            await adapter._call_api_once("m", [])  # noqa: SLF001

    @pytest.mark.asyncio
    async def test_stream(self, monkeypatch: pytest.MonkeyPatch) -> None:
        chunks: List[Any] = [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="Hel"))]),
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=None))]),
            SimpleNamespace(choices=[]),
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="lo"))]),
        ]

        async def _aiter() -> Any:
            for chunk in chunks:
                yield chunk

        adapter = OpenAIAdapter(api_key="k")
        create_mock = AsyncMock(return_value=_aiter())
        monkeypatch.setattr(adapter, "_get_client", lambda: _fake_client(create_mock))

        parts = [p async for p in adapter._call_api_stream("m", [])]  # noqa: SLF001

        assert parts == ["Hel", "lo"]
        assert create_mock.call_args.kwargs["stream"] is True
