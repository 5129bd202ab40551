"""Confirmation gate for destructive tool calls.

Calls whose tool name appears in the rule table are never dispatched by the
reasoning loop. They are turned into :class:`PendingAction` objects and only
reach a capability provider through :meth:`PendingActionGate.resolve` with
``confirm=True``.
"""

from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .models import ToolCall, ToolResult
from .provider import CapabilityDomain
from .router import CapabilityRouter

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    DELETE = "delete"
    UPDATE = "update"
    COMPLETE = "complete"


DESTRUCTIVE_TOOLS: Dict[str, ActionKind] = {
    "delete_event": ActionKind.DELETE,
    "delete_reminder": ActionKind.DELETE,
    "update_event": ActionKind.UPDATE,
    "complete_reminder": ActionKind.COMPLETE,
}

_TITLE_KEYS = ("title", "event_title", "event_id")


class PendingAction(BaseModel):
    """A destructive tool call held back until the user decides."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    call: ToolCall
    title: str
    details: str
    domain: CapabilityDomain
    kind: ActionKind

    @property
    def tool_name(self) -> str:
        return self.call.name


class ResolutionOutcome(str, Enum):
    EXECUTED = "executed"
    CANCELLED = "cancelled"


class Resolution(BaseModel):
    outcome: ResolutionOutcome
    results: List[ToolResult] = Field(default_factory=list)
    summary: str

    @property
    def failed(self) -> List[ToolResult]:
        return [r for r in self.results if r.is_error]


class PendingActionGate:
    """Classifies tool calls and executes confirmed pending actions."""

    def __init__(
        self,
        router: CapabilityRouter,
        rules: Optional[Mapping[str, ActionKind]] = None,
    ) -> None:
        self.router = router
        self.rules: Dict[str, ActionKind] = dict(
            DESTRUCTIVE_TOOLS if rules is None else rules
        )

    def classify(self, call: ToolCall) -> Optional[ActionKind]:
        """Return the action kind for destructive calls, ``None`` otherwise."""
        return self.rules.get(call.name)

    @staticmethod
    def describe(call: ToolCall) -> Tuple[str, str]:
        """Build a ``(title, details)`` pair for the confirmation prompt."""
        args = call.arguments
        title = next(
            (str(args[key]) for key in _TITLE_KEYS if args.get(key)),
            "Item",
        )

        parts: List[str] = []
        notes = args.get("notes") or args.get("new_notes")
        if notes:
            parts.append(str(notes))
        if args.get("new_title"):
            parts.append(f"New title: {args['new_title']}")
        start = args.get("start_date") or args.get("new_start_date")
        if start:
            parts.append(f"Start: {start}")
        if args.get("new_end_date"):
            parts.append(f"End: {args['new_end_date']}")

        details = " ".join(parts) or "No additional details"
        return title, details

    def create(
        self,
        call: ToolCall,
        domain: Optional[CapabilityDomain] = None,
    ) -> PendingAction:
        kind = self.classify(call)
        if kind is None:
            raise ValueError(f"Tool '{call.name}' does not require confirmation.")
        title, details = self.describe(call)
        return PendingAction(
            call=call,
            title=title,
            details=details,
            domain=domain or self.router.domain_for(call.name),
            kind=kind,
        )

    async def resolve(
        self, actions: Sequence[PendingAction], confirm: bool
    ) -> Resolution:
        """Execute (``confirm=True``) or discard every action in *actions*.

        A failing action does not stop the remaining ones. Cancelling never
        touches a capability provider.
        """
        if not confirm:
            logger.info("Cancelled %d pending action(s).", len(actions))
            return Resolution(
                outcome=ResolutionOutcome.CANCELLED,
                summary=f"{len(actions)} action(s) cancelled.",
            )

        results: List[ToolResult] = []
        succeeded: List[str] = []
        failed: List[str] = []
        for action in actions:
            logger.info("Executing confirmed action %s (%s)", action.tool_name, action.id)
            result = await self.router.dispatch(action.call)
            results.append(result)
            line = f"{action.title}: {result.content}"
            (failed if result.is_error else succeeded).append(line)

        sections: List[str] = []
        if succeeded:
            sections.append("Completed:\n• " + "\n• ".join(succeeded))
        if failed:
            sections.append("Errors:\n• " + "\n• ".join(failed))

        return Resolution(
            outcome=ResolutionOutcome.EXECUTED,
            results=results,
            summary="\n\n".join(sections) or "No pending actions.",
        )
