from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Tuple, Union

from .models import ArgumentValue, Tool, ToolOutput


class CapabilityDomain(str, Enum):
    CALENDAR = "calendar"
    REMINDERS = "reminders"
    GENERAL = "general"


class CapabilityProvider(ABC):
    """Base class for modules that expose tools backed by a platform resource."""

    NAME: str  # Human-readable provider name used in logs
    DOMAIN: CapabilityDomain = CapabilityDomain.GENERAL
    KEYWORDS: Tuple[str, ...] = ()  # Lower-case hints for can_handle

    async def initialize(self) -> None:
        """Acquire permissions or open resources. Optional."""
        return None

    @abstractmethod
    async def list_tools(self) -> List[Tool]:
        """Return the tools this provider owns.

        Setup failures (e.g., permission not yet granted) should yield an
        empty list rather than raise.
        """
        raise NotImplementedError

    @abstractmethod
    async def execute(
        self, name: str, arguments: Dict[str, ArgumentValue]
    ) -> Union[str, ToolOutput]:
        """Run tool *name* with already-validated *arguments*.

        Raises:
            ToolArgumentError: Arguments are semantically invalid (e.g., bad date).
            ToolExecutionError: The underlying operation failed.
        """
        raise NotImplementedError

    def can_handle(self, message: str) -> bool:
        """Cheap keyword hint; never used to decide correctness."""
        lowered = message.lower()
        return any(keyword in lowered for keyword in self.KEYWORDS)
