# assistant_toolkit/__init__.py
import logging
import os

from dotenv import load_dotenv

# Library logging stays silent unless the application configures handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Load a .env from the working directory so provider API keys are visible early
try:
    dotenv_path = os.path.join(os.getcwd(), ".env")
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path=dotenv_path)
except Exception as e:
    logging.getLogger(__name__).warning(f"Could not load .env file: {e}")


from .client import ChatClient  # noqa: E402
from .config import AIProvider, APIConfiguration  # noqa: E402
from .errors import ErrorCategory, classify_error  # noqa: E402
from .exceptions import (  # noqa: E402
    AssistantToolkitError,
    ConfigurationError,
    MaxIterationsExceededError,
    MissingAPIKeyError,
    PendingActionsUnresolvedError,
    ProviderError,
    ToolError,
)
from .models import ChatMessage, ChatSession  # noqa: E402
from .providers import BaseProvider, create_provider  # noqa: E402
from .streaming import StreamingResponder, StreamOutcome  # noqa: E402
from .tools import (  # noqa: E402
    CapabilityProvider,
    CapabilityRouter,
    PendingAction,
    PendingActionGate,
    Tool,
    ToolCall,
    ToolResult,
)

__all__ = [
    "AIProvider",
    "APIConfiguration",
    "AssistantToolkitError",
    "BaseProvider",
    "CapabilityProvider",
    "CapabilityRouter",
    "ChatClient",
    "ChatMessage",
    "ChatSession",
    "ConfigurationError",
    "ErrorCategory",
    "MaxIterationsExceededError",
    "MissingAPIKeyError",
    "PendingAction",
    "PendingActionGate",
    "PendingActionsUnresolvedError",
    "ProviderError",
    "StreamOutcome",
    "StreamingResponder",
    "Tool",
    "ToolCall",
    "ToolError",
    "ToolResult",
    "classify_error",
    "create_provider",
]

try:
    from importlib.metadata import version

    __version__ = version("assistant-toolkit")
except Exception:
    __version__ = "0.0.0-unknown"
