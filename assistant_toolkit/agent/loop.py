"""The reason-act loop: provider round trips interleaved with tool execution."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from ..config import APIConfiguration
from ..exceptions import AssistantToolkitError, MaxIterationsExceededError
from ..providers._base import BaseProvider
from ..tools.gate import PendingAction, PendingActionGate
from ..tools.models import ToolCall, ToolResult
from ..tools.router import CapabilityRouter
from .progress import (
    PREVIEW_LENGTH,
    IterationCompleted,
    IterationStarted,
    PendingActionRaised,
    ProcessPhase,
    ProgressEvent,
    RunCompleted,
    RunFailed,
    ToolCallCompleted,
    ToolCallStarted,
    ToolsLoaded,
)
from .prompts import build_system_prompt

if TYPE_CHECKING:
    from ..models import ChatMessage

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5

# Metadata "action" values that mark a record worth surfacing to the caller.
_PAYLOAD_ACTIONS = frozenset({"created", "updated"})

StatusCallback = Callable[[ProcessPhase], Any]
ProgressCallback = Callable[[ProgressEvent], Any]
PendingActionCallback = Callable[[PendingAction], Any]


class RunStatus(str, Enum):
    COMPLETED = "completed"
    PENDING_CONFIRMATION = "pending_confirmation"


@dataclass
class RunResult:
    """Outcome of one :meth:`ReasonActLoop.run`."""

    status: RunStatus
    content: str
    iterations: int
    pending_actions: List[PendingAction] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    events: List[ProgressEvent] = field(default_factory=list)
    messages: List[Dict[str, Any]] = field(default_factory=list)
    payloads: List[Dict[str, str]] = field(default_factory=list)
    usage: Dict[str, int] = field(default_factory=dict)

    @property
    def needs_confirmation(self) -> bool:
        return self.status is RunStatus.PENDING_CONFIRMATION


def confirmation_notice(count: int) -> str:
    plural = "s" if count > 1 else ""
    return (
        f"I need your confirmation to proceed with {count} action{plural}. "
        "Please review and confirm."
    )


class _Observer:
    """Records events for the result and forwards them to optional callbacks.

    Callback failures are logged and never interrupt the run.
    """

    def __init__(
        self,
        on_status: Optional[StatusCallback],
        on_progress: Optional[ProgressCallback],
        on_pending_action: Optional[PendingActionCallback],
    ) -> None:
        self.events: List[ProgressEvent] = []
        self._on_status = on_status
        self._on_progress = on_progress
        self._on_pending_action = on_pending_action

    @staticmethod
    async def _notify(callback: Optional[Callable[[Any], Any]], value: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(value)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Observer callback %r failed: %s", callback, e, exc_info=True)

    async def status(self, phase: ProcessPhase) -> None:
        await self._notify(self._on_status, phase)

    async def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)
        await self._notify(self._on_progress, event)

    async def pending(self, action: PendingAction) -> None:
        await self.emit(PendingActionRaised(action))
        await self._notify(self._on_pending_action, action)


class ReasonActLoop:
    """
    Drives one user turn: send history and tools to the provider, execute the
    tool calls it asks for, fold the results back and repeat until the model
    answers in plain text, a destructive call needs confirmation, or
    ``max_iterations`` round trips have been spent.

    Provider failures abort the run with a classified ``ProviderError``.
    Tool failures are returned to the model as error results.
    """

    def __init__(
        self,
        provider: BaseProvider,
        router: CapabilityRouter,
        gate: Optional[PendingActionGate] = None,
        *,
        max_iterations: int = MAX_ITERATIONS,
        system_prompt: Optional[Callable[[], str]] = None,
    ) -> None:
        self.provider = provider
        self.router = router
        self.gate = gate or PendingActionGate(router)
        self.max_iterations = max_iterations
        self._system_prompt = system_prompt or build_system_prompt

    def _build_messages(
        self,
        user_message: str,
        history: Sequence["ChatMessage"],
        history_limit: int,
    ) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": self._system_prompt()}
        ]
        recent = list(history)[-history_limit:] if history_limit else []
        messages.extend(m.to_chat_message() for m in recent)
        messages.append({"role": "user", "content": user_message})
        return messages

    async def _execute_call(self, call: ToolCall, observer: _Observer) -> ToolResult:
        domain = self.router.domain_for(call.name)
        await observer.status(ProcessPhase.calling_tool(call.name))
        await observer.emit(ToolCallStarted(name=call.name, call_id=call.id, domain=domain))
        logger.info("Tool: %s (%s)", call.name, call.id)

        result = await self.router.dispatch(call)

        await observer.status(ProcessPhase.processing_result(call.name))
        await observer.emit(
            ToolCallCompleted(
                name=call.name,
                success=not result.is_error,
                message=result.content[:PREVIEW_LENGTH],
                call_id=call.id,
            )
        )
        logger.info(
            "Result: %s - %s",
            "ERROR" if result.is_error else "OK",
            result.content[:80],
        )
        return result

    async def _execute_batch(
        self, calls: List[ToolCall], observer: _Observer, parallel: bool
    ) -> List[ToolResult]:
        """Execute *calls* and return their results in call order."""
        if parallel and len(calls) > 1:
            return list(
                await asyncio.gather(*[self._execute_call(c, observer) for c in calls])
            )
        return [await self._execute_call(c, observer) for c in calls]

    def _split_calls(
        self, calls: List[ToolCall]
    ) -> Tuple[List[ToolCall], List[PendingAction]]:
        executable: List[ToolCall] = []
        pending: List[PendingAction] = []
        for call in calls:
            if self.gate.classify(call) is None:
                executable.append(call)
            else:
                pending.append(self.gate.create(call, self.router.domain_for(call.name)))
        return executable, pending

    async def run(
        self,
        user_message: str,
        history: Sequence["ChatMessage"],
        config: APIConfiguration,
        *,
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_pending_action: Optional[PendingActionCallback] = None,
    ) -> RunResult:
        """
        Run the loop for *user_message*.

        Args:
            user_message (str): The new user turn.
            history (Sequence[ChatMessage]): Prior conversation, read-only. Only
                the last ``config.history_limit`` messages are sent.
            config (APIConfiguration): Model parameters and the tool-use switch.
            on_status: Receives each :class:`ProcessPhase` change.
            on_progress: Receives each progress event.
            on_pending_action: Receives each action held for confirmation.

        Returns:
            RunResult: ``COMPLETED`` with the final answer, or
            ``PENDING_CONFIRMATION`` with the held actions and a notice.

        Raises:
            ProviderError: A provider round trip failed.
            MaxIterationsExceededError: No plain-text answer within the limit.
        """
        observer = _Observer(on_status, on_progress, on_pending_action)
        logger.info("Chat request: %s", user_message[:50])

        try:
            await observer.status(ProcessPhase.loading_tools())
            tools = await self.router.all_tools() if config.enable_tools else []
            await observer.emit(ToolsLoaded(names=tuple(t.name for t in tools)))
            logger.info("Available tools: %s", ", ".join(t.name for t in tools))

            messages = self._build_messages(user_message, history, config.history_limit)
            tool_results: List[ToolResult] = []
            payloads: List[Dict[str, str]] = []
            usage: Dict[str, int] = {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
            }

            for iteration in range(1, self.max_iterations + 1):
                await observer.status(ProcessPhase.thinking(iteration))
                await observer.emit(IterationStarted(number=iteration))
                logger.info("=== Iteration %d ===", iteration)

                response = await self.provider.complete(messages, config=config, tools=tools)
                if response.usage:
                    for key in usage:
                        usage[key] += response.usage.get(key, 0)
                messages.extend(response.raw_messages)

                if not response.tool_calls:
                    logger.info("No tools called, final answer ready")
                    await observer.emit(IterationCompleted(number=iteration))
                    await observer.emit(RunCompleted())
                    await observer.status(ProcessPhase.completed())
                    return RunResult(
                        status=RunStatus.COMPLETED,
                        content=response.content,
                        iterations=iteration,
                        tool_results=tool_results,
                        events=observer.events,
                        messages=messages,
                        payloads=payloads,
                        usage=usage,
                    )

                logger.info("Tool calls received: %d", len(response.tool_calls))
                executable, pending = self._split_calls(response.tool_calls)
                for action in pending:
                    await observer.pending(action)

                results = await self._execute_batch(executable, observer, config.parallel_tools)
                messages.extend(r.to_chat_message() for r in results)
                tool_results.extend(results)
                payloads.extend(
                    dict(r.metadata)
                    for r in results
                    if r.metadata and r.metadata.get("action") in _PAYLOAD_ACTIONS
                )
                await observer.emit(IterationCompleted(number=iteration))

                if pending:
                    logger.info("Awaiting confirmation for %d action(s)", len(pending))
                    await observer.emit(RunCompleted())
                    await observer.status(ProcessPhase.completed())
                    return RunResult(
                        status=RunStatus.PENDING_CONFIRMATION,
                        content=confirmation_notice(len(pending)),
                        iterations=iteration,
                        pending_actions=pending,
                        tool_results=tool_results,
                        events=observer.events,
                        messages=messages,
                        payloads=payloads,
                        usage=usage,
                    )

                if any(r.is_error for r in results):
                    logger.info("Tool errors detected, model will review them")

            logger.warning("Max iterations (%d) reached", self.max_iterations)
            raise MaxIterationsExceededError(self.max_iterations)

        except AssistantToolkitError as e:
            await observer.emit(RunFailed(message=str(e)))
            await observer.status(ProcessPhase.error(str(e)))
            raise
