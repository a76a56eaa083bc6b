"""
HTTP client utilities for deptracker.

This module provides an asynchronous HTTP client with retry logic,
``429`` back-off, and error normalization. Transport concerns such as
authentication headers, TLS verification, and timeouts live here so the
tracker client only deals with request payloads and decoded responses.
"""

from __future__ import annotations

import httpx
import random
import asyncio
from typing import Any, Dict, Mapping, Optional, Tuple, cast

from deptracker.utils.logger import get_logger
from deptracker.__version__ import __version__
from deptracker.exceptions import NetworkError
from deptracker.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous HTTP client with retries and rate-limit handling.

    Args:
        base_url: Optional base URL that relative request paths join onto.
        timeout: Request timeout in seconds.
        max_retries: Default maximum number of retry attempts.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        headers: Extra default headers sent with every request.
        auth: Optional ``(username, password)`` pair for Basic auth.
        transport: Optional httpx transport (used by tests).

    Example:
        >>> async with HTTPClient(base_url="https://example.atlassian.net") as client:
        ...     response = await client.get("/rest/api/3/myself")
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        auth: Optional[Tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.headers: Dict[str, str] = dict(headers or {})
        self.auth = auth
        self.transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._max_429_retries: int = 5

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Initialize the underlying httpx client if needed."""
        if self._client is None:
            headers = {"User-Agent": self.user_agent, **self.headers}
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                http2=self.transport is None,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers=headers,
                auth=self.auth,
                transport=self.transport,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        *,
        retries: Optional[int] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute an HTTP request with retry and backoff logic.

        Args:
            method: HTTP method.
            url: Absolute URL or path relative to ``base_url``.
            retries: Override for :attr:`max_retries`. Pass ``0`` for
                non-idempotent requests that must never be replayed.
            **kwargs: Forwarded to :meth:`httpx.AsyncClient.request`.

        Raises:
            NetworkError: 4xx response, an unrecoverable transport error, or
                the request kept failing.
        """
        await self._ensure_client()
        assert self._client is not None

        max_retries = self.max_retries if retries is None else retries
        clean_url = url.strip().strip("\"'")
        last_exc: Optional[Exception] = None
        retry_429_count = 0
        attempt = 0

        while attempt <= max_retries:
            try:
                response = await self._client.request(method, clean_url, **kwargs)

                if response.status_code == 429:
                    retry_429_count += 1
                    if retry_429_count > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=clean_url,
                            status_code=429,
                        )
                    retry_after = _retry_after_seconds(response)
                    logger.warning(
                        "Rate limited (429), retrying after %ds (%d/%d)",
                        retry_after,
                        retry_429_count,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(retry_after)
                    continue

                if response.status_code >= 400:
                    response.raise_for_status()

                return response

            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "Request timeout (%d/%d): %s",
                    attempt + 1,
                    max_retries + 1,
                    clean_url,
                )

            except httpx.TransportError as exc:
                last_exc = exc
                logger.warning(
                    "Transport error (%d/%d): %s",
                    attempt + 1,
                    max_retries + 1,
                    exc,
                )

            except httpx.HTTPStatusError as exc:
                if 400 <= exc.response.status_code < 500:
                    raise NetworkError(
                        f"HTTP {exc.response.status_code} error for {clean_url}",
                        url=clean_url,
                        status_code=exc.response.status_code,
                        response_body=exc.response.text,
                    ) from exc
                last_exc = exc
                logger.warning(
                    "HTTP %d error (%d/%d): %s",
                    exc.response.status_code,
                    attempt + 1,
                    max_retries + 1,
                    clean_url,
                )

            except httpx.HTTPError as exc:
                raise NetworkError(
                    f"Request failed for {clean_url}: {exc}",
                    url=clean_url,
                ) from exc

            if attempt < max_retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)
            attempt += 1

        status_code: Optional[int] = None
        if isinstance(last_exc, httpx.HTTPStatusError):
            status_code = last_exc.response.status_code

        raise NetworkError(
            f"Request failed after {max_retries + 1} attempts: {clean_url}",
            url=clean_url,
            status_code=status_code,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a GET request with retry logic."""
        return await self._request_with_retry("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a POST request with retry logic."""
        return await self._request_with_retry("POST", url, **kwargs)


def decode_json_object(response: httpx.Response, url: str) -> Dict[str, Any]:
    """Decode *response* as a JSON object.

    Raises:
        NetworkError: The body is not valid JSON or not an object.
    """
    try:
        data = response.json()
    except ValueError as exc:
        raise NetworkError(
            f"Invalid JSON response from {url}",
            url=url,
            status_code=response.status_code,
            response_body=response.text,
        ) from exc

    if not isinstance(data, dict):
        raise NetworkError(
            f"Expected JSON object from {url}",
            url=url,
            status_code=response.status_code,
            response_body=response.text,
        )

    return cast(Dict[str, Any], data)


def _retry_after_seconds(response: httpx.Response) -> int:
    """Return the ``Retry-After`` delay, defaulting to one second."""
    try:
        return max(int(response.headers.get("Retry-After", "1")), 0)
    except ValueError:
        return 1
