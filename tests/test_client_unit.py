"""Unit tests for ChatClient orchestration and session bookkeeping."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, List, Sequence

import pytest

from assistant_toolkit.agent.progress import PhaseKind
from assistant_toolkit.capabilities import CalendarEvent, CalendarProvider, InMemoryCalendarStore
from assistant_toolkit.client import MAX_ITERATIONS_REPLY, ChatClient
from assistant_toolkit.config import AIProvider, APIConfiguration
from assistant_toolkit.errors import ErrorCategory
from assistant_toolkit.exceptions import PendingActionsUnresolvedError
from assistant_toolkit.models import ChatMessage, ChatSession, MessageRole
from assistant_toolkit.providers._base import BaseProvider, ProviderResponse
from assistant_toolkit.providers.anthropic import AnthropicAdapter
from assistant_toolkit.providers.openai import OpenAIAdapter
from assistant_toolkit.tools.models import Tool, ToolCall

NOW = datetime(2026, 2, 1, 9, 0)
CONFIG = APIConfiguration(api_key="test")


class _ScriptedProvider(BaseProvider):
    NAME = "Scripted"

    def __init__(self, responses: Sequence[Any]) -> None:
        super().__init__(api_key="test")
        self._responses = list(responses)
        self.requests: List[List[Dict[str, Any]]] = []

    async def _call_api(
        self, model: str, messages: List[Dict[str, Any]], **kwargs: Any
    ) -> ProviderResponse:
        self.requests.append(copy.deepcopy(messages))
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def _call_api_stream(
        self, model: str, messages: List[Dict[str, Any]], **kwargs: Any
    ) -> AsyncGenerator[str, None]:
        for part in ("Hi", " there"):
            yield part

    def _build_tool_definitions(self, tools: Sequence[Tool]) -> List[Dict[str, Any]]:
        return [tool.to_openai() for tool in tools]

    async def _check_key(self) -> None:
        return None


class _ServerFailure(Exception):
    status_code = 503


def _text(content: str) -> ProviderResponse:
    return ProviderResponse(content=content, raw_messages=[{"role": "assistant", "content": content}])


def _call(call_id: str, name: str, **arguments: Any) -> ProviderResponse:
    call = ToolCall(id=call_id, name=name, arguments=arguments)
    return ProviderResponse(
        content="",
        tool_calls=[call],
        raw_messages=[
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.arguments_json()},
                    }
                ],
            }
        ],
    )


def _client(responses: Sequence[Any], *events: CalendarEvent) -> ChatClient:
    calendar = CalendarProvider(InMemoryCalendarStore(list(events)), clock=lambda: NOW)
    return ChatClient(CONFIG, providers=[calendar], provider=_ScriptedProvider(responses))


def _standup() -> CalendarEvent:
    return CalendarEvent(
        title="Team standup", start=datetime(2026, 2, 1, 10), end=datetime(2026, 2, 1, 11)
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_creates_adapter_from_config() -> None:
    assert isinstance(ChatClient(APIConfiguration(api_key="k")).provider, OpenAIAdapter)
    claude = ChatClient(APIConfiguration(provider=AIProvider.CLAUDE, api_key="k"))
    assert isinstance(claude.provider, AnthropicAdapter)


@pytest.mark.asyncio
async def test_default_capabilities_registered() -> None:
    client = ChatClient(CONFIG, provider=_ScriptedProvider([]))
    names = [t.name for t in await client.router.all_tools()]
    assert "create_event" in names
    assert "create_reminder" in names


# ---------------------------------------------------------------------------
# send
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_appends_user_and_reply() -> None:
    client = _client([_text("Hello!")])
    session = ChatSession()
    progress: List[Any] = []

    reply = await client.send(session, "hi", on_progress=progress.append)

    assert reply.content == "Hello!"
    assert not reply.is_error
    assert [m.role for m in session.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert session.tracker.phase.kind is PhaseKind.COMPLETED
    assert len(session.tracker.iterations) == 1
    assert "create_event" in session.tracker.tools_available
    assert progress


@pytest.mark.asyncio
async def test_send_passes_prior_history() -> None:
    provider = _ScriptedProvider([_text("second")])
    client = ChatClient(CONFIG, providers=[], provider=provider)
    session = ChatSession(messages=[ChatMessage.user("first"), ChatMessage.assistant("ok")])

    await client.send(session, "again")

    sent = provider.requests[0]
    assert [m["content"] for m in sent[1:]] == ["first", "ok", "again"]


@pytest.mark.asyncio
async def test_destructive_call_stored_as_pending() -> None:
    client = _client([_call("d1", "delete_event", event_title="standup")], _standup())
    session = ChatSession()

    reply = await client.send(session, "Cancel my standup")

    assert session.has_pending_actions
    assert session.pending_actions[0].tool_name == "delete_event"
    assert reply.content.startswith("I need your confirmation")


@pytest.mark.asyncio
async def test_send_refused_while_actions_pending() -> None:
    client = _client([_call("d1", "delete_event", event_title="standup")], _standup())
    session = ChatSession()
    await client.send(session, "Cancel my standup")

    with pytest.raises(PendingActionsUnresolvedError):
        await client.send(session, "anything else?")
    assert len(session.messages) == 2


@pytest.mark.asyncio
async def test_provider_error_becomes_retryable_message() -> None:
    client = _client([_ServerFailure("upstream unavailable")])
    session = ChatSession()

    reply = await client.send(session, "hi")

    assert reply.error_category is ErrorCategory.SERVER_ERROR
    assert reply.content == ErrorCategory.SERVER_ERROR.guidance
    assert reply.retry_prompt == "hi"
    assert reply.is_error
    assert session.messages[-1] is reply
    assert session.tracker.phase.kind is PhaseKind.ERROR


@pytest.mark.asyncio
async def test_iteration_limit_becomes_message() -> None:
    client = _client([_call(f"c{i}", "get_today_events") for i in range(10)])
    session = ChatSession()

    reply = await client.send(session, "loop")

    assert reply.content == MAX_ITERATIONS_REPLY
    assert reply.error_category is ErrorCategory.UNKNOWN
    assert reply.retry_prompt == "loop"


@pytest.mark.asyncio
async def test_missing_api_key_becomes_authentication_message() -> None:
    client = ChatClient(APIConfiguration(), providers=[], provider=OpenAIAdapter())
    session = ChatSession()

    reply = await client.send(session, "hello")

    assert reply.error_category is ErrorCategory.AUTHENTICATION
    assert reply.content == ErrorCategory.AUTHENTICATION.guidance
    assert reply.retry_prompt == "hello"
    assert [m.role for m in session.messages] == [MessageRole.USER, MessageRole.ASSISTANT]


@pytest.mark.asyncio
async def test_duplicate_tool_names_become_unknown_message() -> None:
    client = ChatClient(
        CONFIG,
        providers=[CalendarProvider(), CalendarProvider()],
        provider=_ScriptedProvider([_text("never sent")]),
    )
    session = ChatSession()

    reply = await client.send(session, "what's on today?")

    assert reply.error_category is ErrorCategory.UNKNOWN
    assert reply.content == ErrorCategory.UNKNOWN.guidance
    assert reply.retry_prompt == "what's on today?"
    assert session.messages[-1] is reply
    assert not client.provider.requests


# ---------------------------------------------------------------------------
# resolve_pending
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_confirm_executes_and_clears() -> None:
    client = _client([_call("d1", "delete_event", event_title="standup")], _standup())
    session = ChatSession()
    await client.send(session, "Cancel my standup")

    reply = await client.resolve_pending(session, confirm=True)

    assert not session.has_pending_actions
    assert "Event 'Team standup' deleted successfully" in reply.content
    assert session.messages[-1] is reply
    today = await client.router.dispatch(ToolCall(id="t", name="get_today_events"))
    assert today.content == "No events scheduled for today"


@pytest.mark.asyncio
async def test_cancel_discards_and_clears() -> None:
    client = _client(
        [_call("d1", "delete_event", event_title="standup"), _text("Still there")],
        _standup(),
    )
    session = ChatSession()
    await client.send(session, "Cancel my standup")

    reply = await client.resolve_pending(session, confirm=False)
    follow_up = await client.send(session, "Is it still on?")

    assert reply.content == "1 action(s) cancelled."
    assert follow_up.content == "Still there"
    today = await client.router.dispatch(ToolCall(id="t", name="get_today_events"))
    assert "Team standup" in today.content


# ---------------------------------------------------------------------------
# Streaming and key validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stream_reply() -> None:
    client = _client([])
    parts = [p async for p in client.stream_reply([ChatMessage.user("hi")])]
    assert parts == ["Hi", " there"]


@pytest.mark.asyncio
async def test_validate_api_key() -> None:
    assert await _client([]).validate_api_key() is True


def test_empty_history_for_unknown_session() -> None:
    session = ChatSession.from_messages([])
    assert session.messages == []
    assert not session.has_pending_actions
