# assistant_toolkit/models.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .agent.progress import ProgressTracker
from .errors import ErrorCategory
from .tools.gate import PendingAction


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    error_category: Optional[ErrorCategory] = None  # Set on failed sends
    retry_prompt: Optional[str] = None  # Original prompt a failed send can be retried with

    @property
    def is_user(self) -> bool:
        return self.role is MessageRole.USER

    @property
    def is_error(self) -> bool:
        return self.error_category is not None or self.retry_prompt is not None

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str, **kwargs: Any) -> "ChatMessage":
        return cls(role=MessageRole.ASSISTANT, content=content, **kwargs)

    def to_chat_message(self) -> Dict[str, Any]:
        """Chat Completions representation (role and content only)."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class ChatSession:
    """State of the single active conversation.

    Passed explicitly into every send; while a send runs, the client is the
    only writer of ``messages``, ``pending_actions`` and ``tracker``.
    """

    messages: List[ChatMessage] = field(default_factory=list)
    pending_actions: List[PendingAction] = field(default_factory=list)
    tracker: ProgressTracker = field(default_factory=ProgressTracker)

    @property
    def has_pending_actions(self) -> bool:
        return bool(self.pending_actions)

    def dump_messages(self) -> List[Dict[str, Any]]:
        """JSON-ready message list for an external persistence layer."""
        return [m.model_dump(mode="json") for m in self.messages]

    @classmethod
    def from_messages(cls, data: List[Dict[str, Any]]) -> "ChatSession":
        return cls(messages=[ChatMessage.model_validate(item) for item in data])
