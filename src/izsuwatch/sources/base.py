"""Common fetcher interface and error taxonomy."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from izsuwatch.models import EndpointKey

logger = logging.getLogger(__name__)

# Messages the upstream API returns inside a 2xx body when its backend fails
UPSTREAM_ERROR_MESSAGES = frozenset({
    "An unexpected error occurred",
    "An error has occurred.",
})


class FetchErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    NETWORK = "network"
    HTTP_CLIENT = "http-client"
    HTTP_SERVER = "http-server"
    PARSE = "parse"
    UPSTREAM_DEGRADED = "upstream-degraded"
    STORAGE = "storage"
    NO_DATA = "no-data"

    @property
    def retryable(self) -> bool:
        return self in (
            FetchErrorKind.NETWORK,
            FetchErrorKind.HTTP_SERVER,
            FetchErrorKind.PARSE,
            FetchErrorKind.UPSTREAM_DEGRADED,
        )


_DISPLAY_MESSAGES = {
    FetchErrorKind.NETWORK: "Could not reach the data source",
    FetchErrorKind.HTTP_CLIENT: "The data source rejected the request",
    FetchErrorKind.HTTP_SERVER: "The data source is temporarily unavailable",
    FetchErrorKind.PARSE: "The data source returned unreadable data",
    FetchErrorKind.UPSTREAM_DEGRADED: "The data source reported an internal error",
    FetchErrorKind.STORAGE: "Local storage is unavailable",
    FetchErrorKind.NO_DATA: "No data available",
}


class FetchError(Exception):
    """A fetcher failed to produce a payload.

    Attributes:
        kind: Failure category
        message: Technical detail for logs
        status: HTTP status code when one was received
    """

    def __init__(self, kind: FetchErrorKind, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @property
    def display_message(self) -> str:
        """Short user-facing description."""
        return _DISPLAY_MESSAGES[self.kind]

    @classmethod
    def from_status(cls, status: int, url: str) -> "FetchError":
        kind = FetchErrorKind.HTTP_SERVER if status >= 500 else FetchErrorKind.HTTP_CLIENT
        return cls(kind, f"HTTP {status} from {url}", status=status)

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


def has_error_marker(payload: Any) -> bool:
    """True for bodies that signal an upstream failure despite a 2xx status."""
    if not isinstance(payload, dict):
        return False
    if payload.get("error"):
        return True
    return payload.get("message") in UPSTREAM_ERROR_MESSAGES


def is_usable(payload: Any) -> bool:
    """Whether a payload should stop the fallback chain.

    None, empty collections and error-marked bodies are not usable.
    """
    if payload is None:
        return False
    if isinstance(payload, (list, dict)) and not payload:
        return False
    return not has_error_marker(payload)


class SourceFetcher(ABC):
    """One upstream source in the fallback chain."""

    name: str = "source"

    @abstractmethod
    async def fetch(self, endpoint: EndpointKey, params: Optional[dict] = None) -> Any:
        """Fetch the raw payload for ``endpoint``.

        Args:
            endpoint: Logical dataset to fetch
            params: Optional query filters (e.g. ``{"Yil": 2024}``)

        Returns:
            Payload in the primary API's native shape

        Raises:
            FetchError: If the source could not produce a payload
        """

    async def aclose(self) -> None:
        """Release network resources."""
