"""
Shared HTTP plumbing for the remote catalog clients.

Every remote service issues plain GET requests and expects a JSON document
back. This module maps transport and status failures onto the AgenticHub
error types so the clients only deal with parsed payloads.
"""

import logging
from typing import Any

import httpx

from .errors import HubNetworkError, InvalidResponseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_USER_AGENT = "AgenticHub/1.0"


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create the async client shared by the catalog services.

    Args:
        timeout: Request timeout in seconds
        user_agent: User-Agent header sent with every request
        transport: Optional transport override (tests use httpx.MockTransport)

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
        transport=transport,
    )


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """
    Execute a GET request and decode the JSON body.

    Args:
        client: HTTP client to use
        url: Request URL
        params: Query parameters
        headers: Extra request headers

    Returns:
        Decoded JSON document

    Raises:
        HubNetworkError: Connection, DNS or timeout failure
        InvalidResponseError: Non-2xx status or a non-JSON body
    """
    try:
        response = await client.get(url, params=params, headers=headers)
    except httpx.TransportError as e:
        raise HubNetworkError(url, str(e) or type(e).__name__) from e

    if not response.is_success:
        logger.debug(f"GET {response.request.url} returned {response.status_code}")
        raise InvalidResponseError(url, response.status_code)

    try:
        return response.json()
    except ValueError as e:
        raise InvalidResponseError(url, response.status_code, "body is not JSON") from e
