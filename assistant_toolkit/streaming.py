"""Plain-chat streaming without tool calling."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Sequence, Union

from .config import APIConfiguration
from .errors import ErrorCategory, classify_error
from .exceptions import AssistantToolkitError
from .models import ChatMessage
from .providers._base import BaseProvider

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Dict[str, Any]]


@dataclass(frozen=True)
class StreamOutcome:
    """Terminal state of one streamed reply, delivered exactly once."""

    text: str = ""
    error: Optional[AssistantToolkitError] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled

    @property
    def category(self) -> Optional[ErrorCategory]:
        return classify_error(self.error) if self.error is not None else None


ChunkCallback = Callable[[str], Any]
CompleteCallback = Callable[[StreamOutcome], Any]


async def _invoke(callback: Callable[[Any], Any], value: Any) -> None:
    try:
        result = callback(value)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning("Stream callback %r failed: %s", callback, e, exc_info=True)


def _as_chat_messages(messages: Sequence[MessageLike]) -> List[Dict[str, Any]]:
    return [m if isinstance(m, dict) else m.to_chat_message() for m in messages]


class StreamingResponder:
    """Streams provider text deltas to the caller, one fragment at a time."""

    def __init__(self, provider: BaseProvider) -> None:
        self.provider = provider

    async def iter_text(
        self, messages: Sequence[MessageLike], config: APIConfiguration
    ) -> AsyncGenerator[str, None]:
        """Yield decoded text fragments in arrival order.

        Raises:
            ProviderError: Classified provider or transport failure.
        """
        async for text in self.provider.stream_text(
            _as_chat_messages(messages), config=config
        ):
            yield text

    async def stream(
        self,
        messages: Sequence[MessageLike],
        config: APIConfiguration,
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
    ) -> StreamOutcome:
        """Stream a reply through callbacks.

        ``on_chunk`` is called once per fragment, in order. ``on_complete``
        is called exactly once: with the accumulated text, with the
        classified error, or, if the awaiting task is cancelled, with a
        cancelled outcome before the cancellation propagates. Partial text is
        not included in a cancelled outcome.
        """
        parts: List[str] = []
        try:
            async for text in self.iter_text(messages, config):
                parts.append(text)
                await _invoke(on_chunk, text)
        except asyncio.CancelledError:
            logger.info("Stream cancelled after %d fragment(s)", len(parts))
            await _invoke(on_complete, StreamOutcome(cancelled=True))
            raise
        except AssistantToolkitError as e:
            logger.error("Stream failed: %s", e)
            outcome = StreamOutcome(error=e)
        else:
            outcome = StreamOutcome(text="".join(parts))

        await _invoke(on_complete, outcome)
        return outcome
