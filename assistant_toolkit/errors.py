"""Classification of provider and network failures.

The category decides only how a failure is presented (guidance text, retry
affordance); it never changes the control flow of the reasoning loop.
"""

from __future__ import annotations

import logging
import socket
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple, Type

import anthropic
import httpx
import openai

from .exceptions import (
    MissingAPIKeyError,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderServerError,
    ProviderTransportError,
    ProviderUnknownError,
)

logger = logging.getLogger(__name__)

_MAX_CHAIN_DEPTH = 8


class ErrorCategory(str, Enum):
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rateLimit"
    SERVER_ERROR = "serverError"
    UNKNOWN = "unknown"

    @property
    def guidance(self) -> str:
        return _GUIDANCE[self]

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_GUIDANCE: Dict[ErrorCategory, str] = {
    ErrorCategory.NETWORK: "Check your internet connection and try again.",
    ErrorCategory.AUTHENTICATION: (
        "Your API key is invalid or has expired. Update it in Settings."
    ),
    ErrorCategory.RATE_LIMIT: (
        "Too many requests. Wait a moment before trying again."
    ),
    ErrorCategory.SERVER_ERROR: (
        "The AI service is having problems. Please try again later."
    ),
    ErrorCategory.UNKNOWN: "Something went wrong. Please try again.",
}

_RETRYABLE = frozenset(
    {ErrorCategory.NETWORK, ErrorCategory.RATE_LIMIT, ErrorCategory.SERVER_ERROR}
)

_ERROR_TYPES: Dict[ErrorCategory, Type[ProviderError]] = {
    ErrorCategory.NETWORK: ProviderTransportError,
    ErrorCategory.AUTHENTICATION: ProviderAuthError,
    ErrorCategory.RATE_LIMIT: ProviderRateLimitError,
    ErrorCategory.SERVER_ERROR: ProviderServerError,
    ErrorCategory.UNKNOWN: ProviderUnknownError,
}

_AUTH_KEYWORDS = ("unauthorized", "invalid api key", "invalid x-api-key", "authentication")
_RATE_LIMIT_KEYWORDS = ("rate limit", "rate_limit", "too many requests")
_NETWORK_KEYWORDS = ("connection", "timeout", "timed out", "network")


# Exception types that always mean the request never got a reply.
_TRANSPORT_ERROR_TYPES: Tuple[Type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    socket.gaierror,
    httpx.TransportError,
    openai.APIConnectionError,
    anthropic.APIConnectionError,
)


def _iter_chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen and len(seen) < _MAX_CHAIN_DEPTH:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _status_code(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def classify_signal(status_code: Optional[int] = None, message: str = "") -> ErrorCategory:
    """Classify a bare ``(status_code, message)`` pair.

    Rules are checked in order; the first match wins.
    """
    text = message.lower()
    if status_code == 401 or any(k in text for k in _AUTH_KEYWORDS):
        return ErrorCategory.AUTHENTICATION
    if status_code == 429 or any(k in text for k in _RATE_LIMIT_KEYWORDS):
        return ErrorCategory.RATE_LIMIT
    if (status_code is not None and 500 <= status_code < 600) or "server" in text:
        return ErrorCategory.SERVER_ERROR
    if any(k in text for k in _NETWORK_KEYWORDS):
        return ErrorCategory.NETWORK
    return ErrorCategory.UNKNOWN


def classify_error(error: BaseException) -> ErrorCategory:
    """Map a raw failure to an :class:`ErrorCategory`.

    Transport-layer exception types anywhere in the ``__cause__`` chain win
    outright; otherwise the first HTTP status code found in the chain and the
    concatenated messages feed :func:`classify_signal`.
    """
    if isinstance(error, MissingAPIKeyError):
        return ErrorCategory.AUTHENTICATION
    if isinstance(error, ProviderError) and isinstance(error.category, ErrorCategory):
        return error.category

    chain = list(_iter_chain(error))
    if any(isinstance(e, _TRANSPORT_ERROR_TYPES) for e in chain):
        return ErrorCategory.NETWORK

    status = next((s for s in map(_status_code, chain) if s is not None), None)
    message = " ".join(str(e) for e in chain)
    return classify_signal(status, message)


def to_provider_error(error: BaseException, context: str) -> ProviderError:
    """Wrap *error* in the :class:`ProviderError` subclass matching its category."""
    category = classify_error(error)
    status = next((s for s in map(_status_code, _iter_chain(error)) if s is not None), None)
    logger.debug("Classified %s as %s (status=%s)", type(error).__name__, category.value, status)
    return _ERROR_TYPES[category](
        f"{context}: {error}", category=category, status_code=status
    )
