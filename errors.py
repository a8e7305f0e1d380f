"""
Error kinds and exception types shared by the generation client, the
pipeline and the HTTP layer.
"""

import socket
from typing import Iterable

ERROR_KIND_RATE_LIMIT = "rate_limit"
ERROR_KIND_TIMEOUT = "timeout"
ERROR_KIND_NETWORK = "network"
ERROR_KIND_INVALID_REQUEST = "invalid_request"
ERROR_KIND_EMPTY_OUTPUT = "empty_output"
ERROR_KIND_UPSTREAM = "upstream_failure"

RETRYABLE_ERROR_KINDS = frozenset({
    ERROR_KIND_RATE_LIMIT,
    ERROR_KIND_TIMEOUT,
    ERROR_KIND_NETWORK,
    ERROR_KIND_EMPTY_OUTPUT,
    ERROR_KIND_UPSTREAM,
})


class UpstreamError(RuntimeError):
    """The generative text service failed or returned nothing usable."""

    def __init__(self, message: str, *, error_kind: str = ERROR_KIND_UPSTREAM) -> None:
        super().__init__(message)
        self.error_kind = str(error_kind or ERROR_KIND_UPSTREAM).strip().lower()

    @property
    def retryable(self) -> bool:
        return self.error_kind in RETRYABLE_ERROR_KINDS


class ValidationError(ValueError):
    """User input was rejected (missing prompt, bad upload, empty batch...)."""


def _iter_exception_chain(exc: BaseException) -> Iterable[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        yield current
        seen.add(id(current))
        current = current.__cause__ or current.__context__


def classify_exception(exc: BaseException) -> str:
    """Map an SDK/transport exception to one of the ERROR_KIND_* values."""
    for item in _iter_exception_chain(exc):
        if isinstance(item, UpstreamError):
            return item.error_kind
        if isinstance(item, (socket.timeout, TimeoutError)):
            return ERROR_KIND_TIMEOUT
        if isinstance(item, (ConnectionError, socket.gaierror)):
            return ERROR_KIND_NETWORK

        status = getattr(item, "status_code", None) or getattr(item, "code", None)
        if isinstance(status, int):
            if status == 429:
                return ERROR_KIND_RATE_LIMIT
            if status in (408, 504):
                return ERROR_KIND_TIMEOUT
            if 400 <= status < 500:
                return ERROR_KIND_INVALID_REQUEST
            if status >= 500:
                return ERROR_KIND_UPSTREAM

    text = str(exc).lower()
    if "429" in text or "rate limit" in text or "resource_exhausted" in text or "quota" in text:
        return ERROR_KIND_RATE_LIMIT
    if "timed out" in text or "timeout" in text or "deadline" in text:
        return ERROR_KIND_TIMEOUT
    if "connection" in text or "network" in text:
        return ERROR_KIND_NETWORK
    if "invalid_argument" in text or "permission_denied" in text or "api key not valid" in text:
        return ERROR_KIND_INVALID_REQUEST
    return ERROR_KIND_UPSTREAM
