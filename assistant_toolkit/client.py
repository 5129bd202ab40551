# assistant_toolkit/client.py
import inspect
import logging
from typing import Any, AsyncGenerator, List, Optional, Sequence

from .agent.loop import (
    MAX_ITERATIONS,
    PendingActionCallback,
    ProgressCallback,
    ReasonActLoop,
    RunResult,
    StatusCallback,
)
from .agent.progress import ProgressEvent
from .capabilities import CalendarProvider, RemindersProvider
from .config import APIConfiguration
from .errors import ErrorCategory, classify_error
from .exceptions import (
    AssistantToolkitError,
    ConfigurationError,
    MaxIterationsExceededError,
    MissingAPIKeyError,
    PendingActionsUnresolvedError,
    ProviderError,
)
from .models import ChatMessage, ChatSession
from .providers import BaseProvider, create_provider
from .streaming import StreamingResponder
from .tools.gate import PendingActionGate, Resolution
from .tools.provider import CapabilityProvider
from .tools.router import CapabilityRouter

module_logger = logging.getLogger(__name__)

MAX_ITERATIONS_REPLY = (
    "I couldn't complete that request within the allowed number of steps. "
    "Please try rephrasing or breaking it into smaller requests."
)


class ChatClient:
    """
    High-level entry point for a chat session with tool calling.
    Wires the provider adapter, the capability router, the confirmation gate
    and the reason-act loop together and keeps :class:`ChatSession` state
    consistent across sends.
    """

    def __init__(
        self,
        config: APIConfiguration,
        *,
        providers: Optional[Sequence[CapabilityProvider]] = None,
        provider: Optional[BaseProvider] = None,
        max_iterations: int = MAX_ITERATIONS,
        **provider_kwargs: Any,
    ) -> None:
        """
        Initializes the ChatClient.

        Args:
            config (APIConfiguration): Provider, model and sampling settings.
            providers (Sequence[CapabilityProvider], optional): Capability providers
                to route tools to. Defaults to the calendar and reminders providers.
            provider (BaseProvider, optional): A ready adapter. If None, one is
                created from *config*.
            max_iterations (int): Round-trip limit for one send.
            **provider_kwargs: Extra adapter constructor arguments (e.g., timeout)
                used when *provider* is None.
        """
        module_logger.info(f"Initializing ChatClient for provider: {config.provider.value}")
        self.config = config

        try:
            self.provider: BaseProvider = provider or create_provider(config, **provider_kwargs)
        except ConfigurationError as e:
            module_logger.error(f"Failed to initialize ChatClient: {e}", exc_info=True)
            raise

        if providers is None:
            providers = [CalendarProvider(), RemindersProvider()]
        self.router = CapabilityRouter(providers)
        self.gate = PendingActionGate(self.router)
        self.loop = ReasonActLoop(
            self.provider, self.router, self.gate, max_iterations=max_iterations
        )
        self.responder = StreamingResponder(self.provider)

    async def initialize(self) -> None:
        """Let every capability provider acquire its permissions."""
        await self.router.initialize()

    async def validate_api_key(self) -> bool:
        return await self.provider.validate_api_key()

    async def send(
        self,
        session: ChatSession,
        text: str,
        *,
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_pending_action: Optional[PendingActionCallback] = None,
    ) -> ChatMessage:
        """
        Append *text* to the session, run the reason-act loop and append the reply.

        Failures inside the run do not raise. Provider and configuration errors
        and the iteration limit become an assistant message carrying
        ``error_category`` and ``retry_prompt`` so the caller can offer a retry.

        Args:
            session (ChatSession): The conversation to extend.
            text (str): The user's message.
            on_status: Receives each process phase change.
            on_progress: Receives each progress event after the session tracker.
            on_pending_action: Receives each action held for confirmation.

        Returns:
            ChatMessage: The assistant message appended to the session.

        Raises:
            PendingActionsUnresolvedError: The session still has pending actions.
        """
        if session.has_pending_actions:
            raise PendingActionsUnresolvedError(
                f"{len(session.pending_actions)} pending action(s) must be confirmed "
                "or cancelled before sending a new message."
            )

        history = list(session.messages)
        session.messages.append(ChatMessage.user(text))
        session.tracker.reset()

        async def track(event: ProgressEvent) -> None:
            session.tracker.apply(event)
            if on_progress is not None:
                outcome = on_progress(event)
                if inspect.isawaitable(outcome):
                    await outcome

        try:
            result: RunResult = await self.loop.run(
                text,
                history,
                self.config,
                on_status=on_status,
                on_progress=track,
                on_pending_action=on_pending_action,
            )
        except ProviderError as e:
            category = classify_error(e)
            module_logger.error(f"Send failed ({category.value}): {e}")
            reply = ChatMessage.assistant(
                category.guidance, error_category=category, retry_prompt=text
            )
        except MaxIterationsExceededError as e:
            module_logger.warning(f"Send stopped: {e}")
            reply = ChatMessage.assistant(
                MAX_ITERATIONS_REPLY, error_category=ErrorCategory.UNKNOWN, retry_prompt=text
            )
        except AssistantToolkitError as e:
            category = (
                ErrorCategory.AUTHENTICATION
                if isinstance(e, MissingAPIKeyError)
                else ErrorCategory.UNKNOWN
            )
            module_logger.error(f"Send failed ({category.value}): {e}", exc_info=True)
            reply = ChatMessage.assistant(
                category.guidance, error_category=category, retry_prompt=text
            )
        else:
            if result.needs_confirmation:
                session.pending_actions = list(result.pending_actions)
            reply = ChatMessage.assistant(result.content)

        session.messages.append(reply)
        return reply

    async def resolve_pending(self, session: ChatSession, confirm: bool) -> ChatMessage:
        """
        Confirm or cancel every pending action of *session* at once.

        Returns:
            ChatMessage: The appended assistant message summarising the outcome.
        """
        actions = list(session.pending_actions)
        session.pending_actions = []
        resolution: Resolution = await self.gate.resolve(actions, confirm)
        if resolution.failed:
            module_logger.warning(
                f"{len(resolution.failed)} of {len(actions)} confirmed action(s) failed"
            )
        reply = ChatMessage.assistant(resolution.summary)
        session.messages.append(reply)
        return reply

    async def stream_reply(
        self, messages: List[ChatMessage]
    ) -> AsyncGenerator[str, None]:
        """Stream a plain reply to *messages* without tools."""
        async for text in self.responder.iter_text(messages, self.config):
            yield text
