"""Progress events emitted by the reasoning loop and a passive recorder for them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from ..tools.gate import PendingAction
from ..tools.provider import CapabilityDomain

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


# ---------------------------------------------------------------------------
# Phase
# ---------------------------------------------------------------------------


class PhaseKind(str, Enum):
    IDLE = "idle"
    LOADING_TOOLS = "loading_tools"
    THINKING = "thinking"
    CALLING_TOOL = "calling_tool"
    PROCESSING_RESULT = "processing_result"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProcessPhase:
    """Coarse state of a run, surfaced to the UI."""

    kind: PhaseKind
    detail: Optional[str] = None  # Tool name or error message
    step: Optional[int] = None  # Iteration number while thinking

    @classmethod
    def idle(cls) -> "ProcessPhase":
        return cls(PhaseKind.IDLE)

    @classmethod
    def loading_tools(cls) -> "ProcessPhase":
        return cls(PhaseKind.LOADING_TOOLS)

    @classmethod
    def thinking(cls, step: Optional[int] = None) -> "ProcessPhase":
        return cls(PhaseKind.THINKING, step=step)

    @classmethod
    def calling_tool(cls, name: str) -> "ProcessPhase":
        return cls(PhaseKind.CALLING_TOOL, detail=name)

    @classmethod
    def processing_result(cls, name: str) -> "ProcessPhase":
        return cls(PhaseKind.PROCESSING_RESULT, detail=name)

    @classmethod
    def completed(cls) -> "ProcessPhase":
        return cls(PhaseKind.COMPLETED)

    @classmethod
    def error(cls, message: str) -> "ProcessPhase":
        return cls(PhaseKind.ERROR, detail=message)

    @property
    def is_active(self) -> bool:
        return self.kind not in (PhaseKind.IDLE, PhaseKind.COMPLETED, PhaseKind.ERROR)

    @property
    def display_text(self) -> str:
        if self.kind is PhaseKind.LOADING_TOOLS:
            return "Loading tools..."
        if self.kind is PhaseKind.THINKING:
            return f"Thinking (Step {self.step})..." if self.step else "Thinking..."
        if self.kind is PhaseKind.CALLING_TOOL:
            return f"Calling {self.detail}..."
        if self.kind is PhaseKind.PROCESSING_RESULT:
            return f"Processing {self.detail}..."
        if self.kind is PhaseKind.COMPLETED:
            return "Done"
        if self.kind is PhaseKind.ERROR:
            return f"Error: {self.detail}"
        return ""


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolsLoaded:
    names: Tuple[str, ...]


@dataclass(frozen=True)
class IterationStarted:
    number: int


@dataclass(frozen=True)
class ToolCallStarted:
    name: str
    call_id: Optional[str] = None
    domain: CapabilityDomain = CapabilityDomain.GENERAL


@dataclass(frozen=True)
class ToolCallCompleted:
    name: str
    success: bool
    message: str
    call_id: Optional[str] = None


@dataclass(frozen=True)
class PendingActionRaised:
    action: PendingAction


@dataclass(frozen=True)
class IterationCompleted:
    number: int


@dataclass(frozen=True)
class RunCompleted:
    pass


@dataclass(frozen=True)
class RunFailed:
    message: str


ProgressEvent = Union[
    ToolsLoaded,
    IterationStarted,
    ToolCallStarted,
    ToolCallCompleted,
    PendingActionRaised,
    IterationCompleted,
    RunCompleted,
    RunFailed,
]


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


class ToolCallStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ToolCallRecord:
    name: str
    domain: CapabilityDomain = CapabilityDomain.GENERAL
    call_id: Optional[str] = None
    status: ToolCallStatus = ToolCallStatus.RUNNING
    result_preview: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> float:
        return ((self.end_time or datetime.now()) - self.start_time).total_seconds()


@dataclass
class ProcessIteration:
    number: int
    tool_calls: List[ToolCallRecord] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> float:
        return ((self.end_time or datetime.now()) - self.start_time).total_seconds()


class ProgressTracker:
    """Append-only record of one run of the reasoning loop.

    No method raises. Calls that do not fit the current state (completing a
    call that never started, closing an iteration twice) are ignored.
    """

    def __init__(self) -> None:
        self.iterations: List[ProcessIteration] = []
        self.phase: ProcessPhase = ProcessPhase.idle()
        self.tools_available: List[str] = []

    def reset(self) -> None:
        self.iterations = []
        self.phase = ProcessPhase.idle()
        self.tools_available = []

    def tools_loaded(self, names: Sequence[str]) -> None:
        self.tools_available = list(names)

    def start_iteration(self, number: int) -> None:
        self.iterations.append(ProcessIteration(number=number))
        self.phase = ProcessPhase.thinking(number)

    def add_tool_call(
        self,
        name: str,
        domain: CapabilityDomain = CapabilityDomain.GENERAL,
        call_id: Optional[str] = None,
    ) -> None:
        if not self.iterations:
            return
        self.iterations[-1].tool_calls.append(
            ToolCallRecord(name=name, domain=domain, call_id=call_id)
        )
        self.phase = ProcessPhase.calling_tool(name)

    def complete_tool_call(
        self,
        name: str,
        success: bool,
        message: str,
        call_id: Optional[str] = None,
    ) -> None:
        """Close the matching running record.

        Matches by *call_id* when one is given, otherwise the most recent
        running call named *name*.
        """
        if not self.iterations:
            return
        record = self._find_running(self.iterations[-1].tool_calls, name, call_id)
        if record is None:
            logger.debug("Ignoring completion of unknown tool call %s (%s)", name, call_id)
            return
        record.status = ToolCallStatus.SUCCESS if success else ToolCallStatus.FAILED
        record.result_preview = message[:PREVIEW_LENGTH]
        record.end_time = datetime.now()
        self.phase = ProcessPhase.processing_result(name)

    @staticmethod
    def _find_running(
        records: List[ToolCallRecord], name: str, call_id: Optional[str]
    ) -> Optional[ToolCallRecord]:
        running = [r for r in records if r.status is ToolCallStatus.RUNNING]
        if call_id is not None:
            for record in running:
                if record.call_id == call_id:
                    return record
        for record in reversed(running):
            if record.name == name and (call_id is None or record.call_id is None):
                return record
        return None

    def complete_iteration(self) -> None:
        if self.iterations and self.iterations[-1].end_time is None:
            self.iterations[-1].end_time = datetime.now()

    def set_completed(self) -> None:
        self.phase = ProcessPhase.completed()

    def set_error(self, message: str) -> None:
        self.phase = ProcessPhase.error(message)

    def apply(self, event: ProgressEvent) -> None:
        """Feed a loop event into the matching recorder method."""
        if isinstance(event, ToolsLoaded):
            self.tools_loaded(event.names)
        elif isinstance(event, IterationStarted):
            self.start_iteration(event.number)
        elif isinstance(event, ToolCallStarted):
            self.add_tool_call(event.name, event.domain, event.call_id)
        elif isinstance(event, ToolCallCompleted):
            self.complete_tool_call(event.name, event.success, event.message, event.call_id)
        elif isinstance(event, IterationCompleted):
            self.complete_iteration()
        elif isinstance(event, RunCompleted):
            self.set_completed()
        elif isinstance(event, RunFailed):
            self.set_error(event.message)

    @property
    def tool_call_count(self) -> int:
        return sum(len(it.tool_calls) for it in self.iterations)
