"""
Async HTTP transport for the Moodle client.

This module wraps httpx with:
- Base URL management (the Moodle wwwroot, including any path prefix)
- A lazily created, reusable connection pool
- Per-request override of TLS certificate verification
- Conversion of httpx failures and non-200 responses to client exceptions

There is intentionally no retry logic: every request is sent exactly once.
"""

from typing import Any, Dict, Optional
import json
import logging

import httpx

from moodle_client.exceptions import (
    NetworkError,
    ParseError,
    TimeoutError as ClientTimeoutError,
    TransportError,
)

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def decode_json(response: httpx.Response) -> Any:
    """
    Decode a response body as JSON.

    Raises:
        ParseError: If the body is not valid JSON. The decoder error is
            chained as __cause__.
    """
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("unable to parse server response")
        raise ParseError(f"Unable to parse server response: {e}") from e


class AsyncHTTPClient:
    """
    Async HTTP client for Moodle requests.

    This client handles:
    - Base URL management
    - Connection reuse across concurrent requests
    - Status code checking and error conversion
    """

    def __init__(
        self,
        base_url: str,
        *,
        verify: bool = True,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the HTTP client.

        Args:
            base_url: Moodle wwwroot (e.g., "https://moodle.example.com/moodle")
            verify: Whether to verify TLS certificates
            timeout: Request timeout in seconds
            headers: Additional headers to include in all requests
            transport: Custom httpx transport (e.g., httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.verify = verify
        self.timeout = timeout
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _new_client(self, verify: bool) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            verify=verify,
            headers=self._default_headers,
            transport=self._transport,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = self._new_client(self.verify)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AsyncHTTPClient":
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _send(self, client: httpx.AsyncClient, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise ClientTimeoutError(f"Request timed out: {e}") from e
        except httpx.TransportError as e:
            logger.error(f"{method} {path} error: {e}")
            raise NetworkError(f"Connection failed: {e}") from e

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        content: Optional[str] = None,
        files: Any = None,
        headers: Optional[Dict[str, str]] = None,
        verify: Optional[bool] = None,
    ) -> httpx.Response:
        """
        Make an HTTP request.

        Args:
            method: HTTP method (GET or POST)
            path: Request path (joined with base_url)
            params: Query parameters (mapping or list of pairs)
            content: Raw request body
            files: Multipart file uploads
            headers: Additional headers
            verify: TLS verification for this request only; None keeps
                the client policy

        Returns:
            httpx.Response object with status 200

        Raises:
            TransportError: On a status code other than 200
            NetworkError: On connection failures
            TimeoutError: On request timeout
        """
        kwargs: Dict[str, Any] = {
            "params": params,
            "content": content,
            "files": files,
            "headers": headers,
        }

        if verify is not None and verify != self.verify:
            logger.debug(f"{method} {path} with TLS verification {'on' if verify else 'off'}")
            async with self._new_client(verify) as client:
                response = await self._send(client, method, path, **kwargs)
        else:
            client = await self._get_client()
            response = await self._send(client, method, path, **kwargs)

        if response.status_code != 200:
            logger.error(f"{method} {path} unexpected response status code {response.status_code}")
            raise TransportError(
                f"Unexpected response status code {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def get(
        self,
        path: str,
        *,
        params: Any = None,
        headers: Optional[Dict[str, str]] = None,
        verify: Optional[bool] = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request(
            "GET",
            path,
            params=params,
            headers=headers,
            verify=verify,
        )

    async def post(
        self,
        path: str,
        *,
        params: Any = None,
        content: Optional[str] = None,
        files: Any = None,
        headers: Optional[Dict[str, str]] = None,
        verify: Optional[bool] = None,
    ) -> httpx.Response:
        """Make a POST request."""
        return await self.request(
            "POST",
            path,
            params=params,
            content=content,
            files=files,
            headers=headers,
            verify=verify,
        )

    async def post_form(
        self,
        path: str,
        *,
        body: str,
        params: Any = None,
        verify: Optional[bool] = None,
    ) -> httpx.Response:
        """Make a POST request with an urlencoded form body."""
        return await self.post(
            path,
            params=params,
            content=body,
            headers={"Content-Type": FORM_CONTENT_TYPE},
            verify=verify,
        )
