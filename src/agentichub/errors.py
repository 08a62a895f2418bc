"""
AgenticHub error types and codes.

This module defines the error hierarchy shared by the registry, metadata,
skills and client-configuration services, plus the aggregator-level errors
surfaced to callers when a load fails.
"""

from enum import IntEnum
from typing import Any


class HubErrorCode(IntEnum):
    """AgenticHub error codes grouped by subsystem."""

    INTERNAL_ERROR = 1

    # Remote API errors (1xxx)
    INVALID_RESPONSE = 1000
    DECODING_ERROR = 1001
    NETWORK_ERROR = 1002

    # Configuration errors (2xxx)
    CONFIGURATION_ERROR = 2000
    INSTALLATION_FAILED = 2001

    # Aggregated load errors (3xxx)
    REGISTRY_LOAD_FAILED = 3000
    CLIENT_DISCOVERY_FAILED = 3001


class HubError(Exception):
    """Base exception for AgenticHub errors."""

    def __init__(
        self,
        code: HubErrorCode,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize error.

        Args:
            code: Error code from HubErrorCode enum
            message: Human-readable error message
            data: Additional error data (optional)
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data or {}

    def to_dict(self) -> dict[str, Any]:
        """Render the error for JSON output."""
        return {
            "code": int(self.code),
            "type": self.code.name.lower(),
            "message": self.message,
            "data": self.data,
        }

    def __repr__(self) -> str:
        return f"HubError({self.code!r}, {self.message!r}, data={self.data})"


class InvalidResponseError(HubError):
    """Non-2xx status or a body that is not the expected JSON document."""

    def __init__(
        self, url: str, status_code: int | None = None, reason: str | None = None
    ) -> None:
        message = f"Invalid response from {url}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if reason:
            message += f": {reason}"
        super().__init__(
            HubErrorCode.INVALID_RESPONSE,
            message,
            {"url": url, "status_code": status_code, "reason": reason},
        )
        self.url = url
        self.status_code = status_code


class DecodingError(HubError):
    """Valid JSON that does not map onto the expected record shape."""

    def __init__(self, what: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            HubErrorCode.DECODING_ERROR,
            f"Failed to decode {what}: {reason}",
            {"what": what, "reason": reason, **kwargs},
        )


class HubNetworkError(HubError):
    """Transport-level failure (DNS, connect, timeout)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            HubErrorCode.NETWORK_ERROR,
            f"Network error while requesting {url}: {reason}",
            {"url": url, "reason": reason},
        )
        self.url = url


class ConfigurationError(HubError):
    """Missing config path, unreadable settings or an invalid value."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(HubErrorCode.CONFIGURATION_ERROR, message, kwargs)


class InstallationFailedError(HubError):
    """Writing a server entry into a client configuration failed."""

    def __init__(self, server_name: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            HubErrorCode.INSTALLATION_FAILED,
            f"Failed to install '{server_name}': {reason}",
            {"server": server_name, "reason": reason, **kwargs},
        )


def load_failed(code: HubErrorCode, cause: Exception) -> HubError:
    """
    Wrap a service failure into the user-visible load error.

    Args:
        code: REGISTRY_LOAD_FAILED or CLIENT_DISCOVERY_FAILED
        cause: Underlying exception

    Returns:
        HubError carrying the cause's message
    """
    prefix = {
        HubErrorCode.REGISTRY_LOAD_FAILED: "Failed to load registry",
        HubErrorCode.CLIENT_DISCOVERY_FAILED: "Failed to discover clients",
    }.get(code, "Load failed")

    data: dict[str, Any] = {"cause": type(cause).__name__}
    if isinstance(cause, HubError):
        data["cause_code"] = int(cause.code)

    return HubError(code, f"{prefix}: {cause}", data)
