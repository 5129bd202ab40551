# assistant_toolkit/config.py
"""Provider and model configuration consumed by the chat core."""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import ConfigurationError

module_logger = logging.getLogger(__name__)


class AIProvider(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"


DEFAULT_MODELS: Dict[AIProvider, str] = {
    AIProvider.OPENAI: "gpt-4o-mini",
    AIProvider.CLAUDE: "claude-3-5-haiku-20241022",
}

AVAILABLE_MODELS: Dict[AIProvider, list[str]] = {
    AIProvider.OPENAI: ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"],
    AIProvider.CLAUDE: [
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
        "claude-3-opus-20240229",
    ],
}

MAX_TOKENS_OPTIONS = (500, 1000, 2000, 4000)

_TRUTHY = {"1", "true", "yes", "on"}


class APIConfiguration(BaseModel):
    """Provider selection and sampling parameters for one conversation.

    The API key is carried for convenience but never serialized; storing it
    is the job of an external credential store.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    provider: AIProvider = AIProvider.OPENAI
    model: str = ""  # Empty means the provider's default model
    max_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    enable_tools: bool = True
    parallel_tools: bool = True  # Run non-destructive calls of one turn concurrently
    history_limit: int = Field(default=10, ge=0)
    api_key: Optional[str] = Field(default=None, exclude=True, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _fill_default_model(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("model"):
            provider = data.get("provider", AIProvider.OPENAI)
            try:
                provider = AIProvider(provider)
            except ValueError:
                return data  # Let field validation report the bad provider
            data = {**data, "model": DEFAULT_MODELS[provider]}
        return data

    @classmethod
    def from_env(cls, **overrides: Any) -> "APIConfiguration":
        """Build a configuration from ``ASSISTANT_*`` environment variables.

        Recognised variables: ``ASSISTANT_PROVIDER``, ``ASSISTANT_MODEL``,
        ``ASSISTANT_MAX_TOKENS``, ``ASSISTANT_TEMPERATURE`` and
        ``ASSISTANT_ENABLE_TOOLS``. Keyword *overrides* win over the
        environment.
        """
        values: Dict[str, Any] = {}
        env_map = {
            "provider": "ASSISTANT_PROVIDER",
            "model": "ASSISTANT_MODEL",
            "max_tokens": "ASSISTANT_MAX_TOKENS",
            "temperature": "ASSISTANT_TEMPERATURE",
        }
        for field_name, env_var in env_map.items():
            raw = os.environ.get(env_var)
            if raw:
                values[field_name] = raw
        enable_tools = os.environ.get("ASSISTANT_ENABLE_TOOLS")
        if enable_tools is not None:
            values["enable_tools"] = enable_tools.strip().lower() in _TRUTHY
        values.update(overrides)

        try:
            config = cls(**values)
        except ValueError as e:
            raise ConfigurationError(f"Invalid assistant configuration: {e}") from e
        module_logger.debug(
            "Loaded configuration from environment: provider=%s model=%s",
            config.provider.value,
            config.model,
        )
        return config

    @property
    def is_valid(self) -> bool:
        """``True`` when an API key is present."""
        return bool(self.api_key and self.api_key.strip())
