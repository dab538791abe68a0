"""
OpenAI client factory utilities.
Centralizes AsyncOpenAI client creation with consistent configuration.
"""

from __future__ import annotations

from typing import Any

import httpx

from openai import AsyncAzureOpenAI, AsyncOpenAI

from core.constants import Settings

DEFAULT_CONNECT_TIMEOUT = 30.0  # Time to establish connection
DEFAULT_READ_TIMEOUT = 120.0  # Structured completions rarely stall longer than this
DEFAULT_WRITE_TIMEOUT = 30.0  # Time to send request
DEFAULT_POOL_TIMEOUT = 30.0  # Time to acquire connection from pool


def create_http_client(read_timeout: float | None = None) -> httpx.AsyncClient:
    """Create HTTP client with proper timeouts for streaming.

    Args:
        read_timeout: Read timeout in seconds (default: 120s)

    Returns:
        Configured httpx.AsyncClient
    """
    effective_read_timeout = read_timeout if read_timeout is not None else DEFAULT_READ_TIMEOUT
    timeout = httpx.Timeout(
        connect=DEFAULT_CONNECT_TIMEOUT,
        read=effective_read_timeout,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )
    return httpx.AsyncClient(timeout=timeout)


def create_openai_client(
    api_key: str,
    base_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """Create AsyncOpenAI client with consistent configuration.

    Args:
        api_key: OpenAI API key
        base_url: Optional base URL for custom endpoints
        http_client: Optional preconfigured httpx client

    Returns:
        Configured AsyncOpenAI client
    """
    kwargs: dict[str, Any] = {"api_key": api_key, "http_client": http_client}
    if base_url:
        kwargs["base_url"] = base_url
    return AsyncOpenAI(**kwargs)


def create_azure_client(
    api_key: str,
    endpoint: str,
    api_version: str,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncAzureOpenAI:
    """Create AsyncAzureOpenAI client for an Azure OpenAI resource."""
    return AsyncAzureOpenAI(
        api_key=api_key,
        azure_endpoint=endpoint,
        api_version=api_version,
        http_client=http_client,
    )


def create_client_from_settings(settings: Settings) -> AsyncOpenAI:
    """Build the completion provider client selected by API_PROVIDER."""
    http_client = create_http_client(read_timeout=settings.http_read_timeout)

    if settings.api_provider == "azure":
        return create_azure_client(
            api_key=settings.azure_openai_api_key or "",
            endpoint=settings.azure_endpoint_str or "",
            api_version=settings.azure_openai_api_version,
            http_client=http_client,
        )

    return create_openai_client(api_key=settings.openai_api_key or "", http_client=http_client)
