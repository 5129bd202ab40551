# assistant_toolkit/providers/__init__.py
import logging
from typing import Any

from ..config import AIProvider, APIConfiguration
from ..exceptions import ConfigurationError
from ._base import BaseProvider, ProviderResponse

module_logger = logging.getLogger(__name__)


def create_provider(config: APIConfiguration, **kwargs: Any) -> BaseProvider:
    """
    Lazily import and instantiate the adapter selected by *config*.

    Args:
        config (APIConfiguration): Provider selection and API key.
        **kwargs: Extra adapter constructor arguments (e.g., timeout, base_url).

    Returns:
        BaseProvider: The adapter instance.

    Raises:
        ConfigurationError: If the provider is not supported.
    """
    provider = AIProvider(config.provider)
    if provider is AIProvider.OPENAI:
        from .openai import OpenAIAdapter

        adapter: BaseProvider = OpenAIAdapter(api_key=config.api_key, **kwargs)
    elif provider is AIProvider.CLAUDE:
        from .anthropic import AnthropicAdapter

        adapter = AnthropicAdapter(
            api_key=config.api_key, max_tokens=config.max_tokens, **kwargs
        )
    else:  # pragma: no cover
        raise ConfigurationError(f"Unsupported provider: {config.provider}")

    module_logger.info(
        "Created provider adapter %s for model %s", type(adapter).__name__, config.model
    )
    return adapter


__all__ = ["BaseProvider", "ProviderResponse", "create_provider"]
