# assistant_toolkit/tools/models.py
import json
import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..exceptions import ToolArgumentError

module_logger = logging.getLogger(__name__)

ParamType = Literal["string", "integer", "boolean", "number"]

# Scalar values a tool may receive once arguments are validated.
ArgumentValue = Union[str, int, float, bool]


class ToolParam(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ParamType
    description: str = ""


class Tool(BaseModel):
    """Provider-agnostic description of a callable capability.

    Parameters are restricted to flat scalar types so the schema serializes
    identically for every provider and can be checked before dispatch.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)  # Unique routing identifier
    description: str  # Guidance sent to the model
    parameters: Dict[str, ToolParam] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_required(self) -> "Tool":
        undeclared = [name for name in self.required if name not in self.parameters]
        if undeclared:
            raise ValueError(
                f"Tool '{self.name}' lists undeclared required parameters: {undeclared}"
            )
        return self

    # --- Serialization ---

    def json_schema(self) -> Dict[str, Any]:
        """Return the JSON Schema object shared by both wire formats."""
        return {
            "type": "object",
            "properties": {
                name: {"type": param.type, "description": param.description}
                for name, param in self.parameters.items()
            },
            "required": list(self.required),
        }

    def to_openai(self) -> Dict[str, Any]:
        """Chat Completions ``tools`` entry."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }

    def to_claude(self) -> Dict[str, Any]:
        """Messages API ``tools`` entry."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.json_schema(),
        }

    # --- Boundary validation ---

    def validate_arguments(self, arguments: Mapping[str, Any]) -> Dict[str, ArgumentValue]:
        """Check *arguments* against the declared parameters.

        Returns a cleaned copy: undeclared keys and ``None`` values for
        optional parameters are dropped, integral floats are narrowed to
        ``int`` for integer parameters.

        Raises:
            ToolArgumentError: When a required argument is missing or a value
                does not match its declared type.
        """
        cleaned: Dict[str, ArgumentValue] = {}
        for key, value in arguments.items():
            param = self.parameters.get(key)
            if param is None:
                module_logger.debug(
                    "Dropping undeclared argument '%s' for tool '%s'.", key, self.name
                )
                continue
            if value is None:
                continue
            cleaned[key] = _check_value(self.name, key, param.type, value)

        missing = [name for name in self.required if name not in cleaned]
        if missing:
            raise ToolArgumentError(
                f"Missing required arguments for tool '{self.name}': {', '.join(missing)}"
            )
        return cleaned


def _check_value(tool_name: str, key: str, expected: ParamType, value: Any) -> ArgumentValue:
    # bool is a subclass of int, so it has to be ruled out explicitly.
    if expected == "string" and isinstance(value, str):
        return value
    if expected == "boolean" and isinstance(value, bool):
        return value
    if expected == "integer" and not isinstance(value, bool):
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    if expected == "number" and not isinstance(value, bool):
        if isinstance(value, (int, float)):
            return value
    raise ToolArgumentError(
        f"Argument '{key}' for tool '{tool_name}' must be of type {expected}, "
        f"got {type(value).__name__}"
    )


def _decode_arguments(raw: Any) -> Tuple[Dict[str, Any], Optional[str]]:
    """Decode provider-supplied arguments into a dict plus an optional error."""
    if raw is None or raw == "":
        return {}, None
    if isinstance(raw, dict):
        return dict(raw), None
    if not isinstance(raw, str):
        return {}, f"TypeError: unsupported arguments payload {type(raw).__name__}"
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        return {}, f"JSONDecodeError: {e}"
    if not isinstance(parsed, dict):
        return {}, f"Tool arguments are not a JSON object. Type: {type(parsed).__name__}"
    return parsed, None


class ToolCall(BaseModel):
    """An invocation request parsed from a provider response."""

    model_config = ConfigDict(frozen=True)

    id: str  # Provider-assigned correlation id
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    arguments_error: Optional[str] = None  # Set when raw arguments could not be decoded

    @classmethod
    def from_openai(cls, item: Mapping[str, Any]) -> "ToolCall":
        """Parse one entry of a Chat Completions ``message.tool_calls`` list."""
        function = item.get("function") or {}
        arguments, error = _decode_arguments(function.get("arguments"))
        return cls(
            id=str(item.get("id") or ""),
            name=function.get("name") or "",
            arguments=arguments,
            arguments_error=error,
        )

    @classmethod
    def from_claude(cls, block: Mapping[str, Any]) -> "ToolCall":
        """Parse one ``tool_use`` content block from a Messages API response."""
        raw = block.get("input")
        if raw is None or isinstance(raw, dict):
            arguments, error = dict(raw or {}), None
        else:
            arguments = {}
            error = f"Tool input is not an object. Type: {type(raw).__name__}"
        return cls(
            id=str(block.get("id") or ""),
            name=block.get("name") or "",
            arguments=arguments,
            arguments_error=error,
        )

    def arguments_json(self) -> str:
        return json.dumps(self.arguments)


class ToolOutput(BaseModel):
    """Rich return value a capability provider may use instead of a plain string."""

    content: str  # Text folded into the conversation for the model
    metadata: Optional[Dict[str, str]] = None  # Caller-facing details (e.g., created record ids)


class ToolResult(BaseModel):
    """Outcome of a single ToolCall. Always produced, even on failure."""

    call_id: str
    name: str
    content: str
    is_error: bool = False
    metadata: Optional[Dict[str, str]] = None

    def to_chat_message(self) -> Dict[str, Any]:
        """Convert to a Chat Completions ``tool`` message.

        ``is_error`` is kept on the dict so adapters whose wire format has an
        error flag can forward it; adapters without one strip it.
        """
        return {
            "role": "tool",
            "tool_call_id": self.call_id,
            "name": self.name,
            "content": self.content,
            "is_error": self.is_error,
        }
