from .gate import ActionKind, PendingAction, PendingActionGate, Resolution
from .models import Tool, ToolCall, ToolOutput, ToolParam, ToolResult
from .provider import CapabilityDomain, CapabilityProvider
from .router import CapabilityRouter

__all__ = [
    "ActionKind",
    "CapabilityDomain",
    "CapabilityProvider",
    "CapabilityRouter",
    "PendingAction",
    "PendingActionGate",
    "Resolution",
    "Tool",
    "ToolCall",
    "ToolOutput",
    "ToolParam",
    "ToolResult",
]
