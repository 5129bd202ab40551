# assistant_toolkit/tools/router.py
import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import ConfigurationError, RoutingError, ToolArgumentError, ToolError
from .models import Tool, ToolCall, ToolOutput, ToolResult
from .provider import CapabilityDomain, CapabilityProvider

module_logger = logging.getLogger(__name__)


class CapabilityRouter:
    """
    Aggregates the tools of every registered capability provider and
    dispatches tool calls to the provider that owns the tool name.
    Tool names must be unique across providers.
    """

    def __init__(self, providers: Optional[Iterable[CapabilityProvider]] = None) -> None:
        self._providers: List[CapabilityProvider] = []
        self._owners: Dict[str, CapabilityProvider] = {}
        self._tools: Dict[str, Tool] = {}
        module_logger.info("CapabilityRouter initialized.")
        for provider in providers or []:
            self.register(provider)

    @property
    def providers(self) -> List[CapabilityProvider]:
        return list(self._providers)

    def register(self, provider: CapabilityProvider) -> None:
        """Adds *provider* to the routing table. Tool listing is deferred to :meth:`all_tools`."""
        if provider in self._providers:
            module_logger.warning(f"Provider '{provider.NAME}' is already registered.")
            return
        self._providers.append(provider)
        # Force a refresh on the next dispatch.
        self._owners = {}
        self._tools = {}
        module_logger.info(f"Registered capability provider: {provider.NAME}")

    async def initialize(self) -> None:
        """Runs every provider's ``initialize`` hook; failures are logged, not raised."""
        for provider in self._providers:
            try:
                await provider.initialize()
            except Exception as e:
                module_logger.warning(
                    "Initialization of provider '%s' failed: %s", provider.NAME, e
                )

    async def all_tools(self) -> List[Tool]:
        """
        Returns the union of all providers' tools and rebuilds the routing table.

        Raises:
            ConfigurationError: If two providers declare the same tool name.
        """
        owners: Dict[str, CapabilityProvider] = {}
        tools: Dict[str, Tool] = {}
        merged: List[Tool] = []

        for provider in self._providers:
            try:
                listed = await provider.list_tools()
            except Exception as e:
                module_logger.error(
                    "Provider '%s' failed to list tools: %s",
                    provider.NAME,
                    e,
                    exc_info=True,
                )
                continue
            for tool in listed:
                if tool.name in owners:
                    raise ConfigurationError(
                        f"Tool '{tool.name}' is declared by both "
                        f"'{owners[tool.name].NAME}' and '{provider.NAME}'."
                    )
                owners[tool.name] = provider
                tools[tool.name] = tool
                merged.append(tool)

        self._owners = owners
        self._tools = tools
        module_logger.debug("Routing table built for tools: %s", list(owners))
        return merged

    def domain_for(self, tool_name: str) -> CapabilityDomain:
        owner = self._owners.get(tool_name)
        return owner.DOMAIN if owner else CapabilityDomain.GENERAL

    def suggest(self, message: str) -> List[CapabilityProvider]:
        """Providers whose keyword hint matches *message*."""
        return [p for p in self._providers if p.can_handle(message)]

    async def dispatch(self, call: ToolCall) -> ToolResult:
        """
        Executes *call* against its owning provider.

        Never raises for tool-level problems: an unknown name, undecodable or
        invalid arguments, and provider failures all come back as a
        :class:`ToolResult` with ``is_error`` set.
        """
        if not self._owners:
            await self.all_tools()

        provider = self._owners.get(call.name)
        if provider is None:
            error = RoutingError(f"Tool '{call.name}' not found.")
            module_logger.error(str(error))
            return self._error_result(call, error)

        if call.arguments_error:
            error_msg = (
                f"Failed to decode arguments for tool '{call.name}': "
                f"{call.arguments_error}"
            )
            module_logger.error(error_msg)
            return self._error_result(call, ToolArgumentError(error_msg))

        try:
            arguments = self._tools[call.name].validate_arguments(call.arguments)
            output = await provider.execute(call.name, arguments)
        except ToolError as e:
            module_logger.warning("Tool error for %s (%s): %s", call.name, call.id, e)
            return self._error_result(call, e)
        except Exception as e:
            module_logger.error(
                "Unexpected error for tool %s (%s): %s",
                call.name,
                call.id,
                e,
                exc_info=True,
            )
            return ToolResult(
                call_id=call.id,
                name=call.name,
                content=f"Error: Unexpected error: {e}",
                is_error=True,
            )

        if isinstance(output, ToolOutput):
            return ToolResult(
                call_id=call.id,
                name=call.name,
                content=output.content,
                metadata=output.metadata,
            )
        return ToolResult(call_id=call.id, name=call.name, content=str(output))

    @staticmethod
    def _error_result(call: ToolCall, error: Exception) -> ToolResult:
        return ToolResult(
            call_id=call.id,
            name=call.name,
            content=f"Error: {error}",
            is_error=True,
        )
