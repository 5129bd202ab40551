"""BaseProvider ABC: one request/response round trip, streaming and key checks."""

from __future__ import annotations

import abc
import logging
import os
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

from ..config import APIConfiguration
from ..errors import ErrorCategory, classify_error, to_provider_error
from ..exceptions import AssistantToolkitError
from ..tools.models import Tool, ToolCall

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Normalised types returned by adapter _call_api
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderResponse:
    """Normalised response from a single provider API call."""

    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    raw_messages: List[Dict[str, Any]] = field(default_factory=list)
    usage: Optional[Dict[str, int]] = None


# ---------------------------------------------------------------------------
# BaseProvider ABC
# ---------------------------------------------------------------------------


class BaseProvider(abc.ABC):
    """Abstract base for all provider adapters.

    Messages exchanged with an adapter are always in Chat Completions format
    (``role``/``content`` dicts, assistant ``tool_calls`` and ``tool``
    results); each adapter converts to its native wire format.

    There is no automatic retry: a failed round trip surfaces immediately as
    a classified :class:`ProviderError`, and retrying is left to the user.
    """

    NAME: str = "provider"
    API_ENV_VAR: str = ""

    def __init__(self, *, api_key: Optional[str] = None, timeout: float = 60.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Abstract methods, each adapter MUST implement
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def _call_api(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        *,
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> ProviderResponse:
        """Make a single non-streaming API call.

        SDK exceptions propagate unchanged; wrapping happens in
        :meth:`_call_api_once`.
        """
        ...

    @abc.abstractmethod
    async def _call_api_stream(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        *,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AsyncGenerator[str, None]:
        """Stream a plain-text completion, yielding each non-empty text delta."""
        ...
        yield  # type: ignore[misc]  # pragma: no cover

    @abc.abstractmethod
    def _build_tool_definitions(self, tools: Sequence[Tool]) -> List[Dict[str, Any]]:
        """Convert canonical tools to the provider-native ``tools`` array."""
        ...

    @abc.abstractmethod
    async def _check_key(self) -> None:
        """Issue the cheapest authenticated request the provider offers."""
        ...

    # ------------------------------------------------------------------
    # Single round trip
    # ------------------------------------------------------------------

    async def _call_api_once(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        **kwargs: Any,
    ) -> ProviderResponse:
        """Call ``_call_api`` exactly once and wrap SDK failures as :class:`ProviderError`."""
        try:
            return await self._call_api(model, messages, **kwargs)
        except AssistantToolkitError:
            raise
        except Exception as e:
            raise to_provider_error(e, f"{self.NAME} API error") from e

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        *,
        config: APIConfiguration,
        tools: Optional[Sequence[Tool]] = None,
    ) -> ProviderResponse:
        """One round trip: send *messages* plus *tools*, return the parsed reply.

        Raises:
            ProviderError: A classified subclass for any provider failure.
            MissingAPIKeyError: If no API key is configured.
        """
        native_tools = self._build_tool_definitions(tools) if tools else None
        logger.debug(
            "%s request: model=%s messages=%d tools=%d",
            self.NAME,
            config.model,
            len(messages),
            len(native_tools or []),
        )
        return await self._call_api_once(
            config.model,
            messages,
            tools=native_tools,
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
        )

    async def stream_text(
        self,
        messages: List[Dict[str, Any]],
        *,
        config: APIConfiguration,
    ) -> AsyncGenerator[str, None]:
        """Yield plain-text deltas for *messages*, without tools."""
        try:
            async for text in self._call_api_stream(
                config.model,
                messages,
                temperature=config.temperature,
                max_output_tokens=config.max_tokens,
            ):
                yield text
        except AssistantToolkitError:
            raise
        except Exception as e:
            raise to_provider_error(e, f"{self.NAME} API stream error") from e

    async def validate_api_key(self) -> bool:
        """Check the configured key with a cheap request.

        Returns ``False`` when the provider rejects the key. A rate-limited
        key check counts as valid. Other failures raise a classified
        :class:`ProviderError`.
        """
        try:
            await self._check_key()
        except AssistantToolkitError:
            raise
        except Exception as e:
            category = classify_error(e)
            if category is ErrorCategory.AUTHENTICATION:
                logger.warning("%s API key rejected: %s", self.NAME, e)
                return False
            if category is ErrorCategory.RATE_LIMIT:
                logger.warning("%s rate limited during key check, assuming valid", self.NAME)
                return True
            raise to_provider_error(e, f"{self.NAME} key validation failed") from e
        logger.info("%s API key valid", self.NAME)
        return True

    # ------------------------------------------------------------------
    # Helpers shared by adapters
    # ------------------------------------------------------------------

    def _resolve_api_key(self) -> Optional[str]:
        return self.api_key or os.environ.get(self.API_ENV_VAR)

