"""
HTTP transport for Plaidster.

One call to ``Transport.execute`` performs one request and returns exactly one
``TransportResult``. httpx exceptions are turned into an error description on
the result; the classifier decides what that means for the round trip.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .config import ClientConfig

logger = logging.getLogger(__name__)

REDACTED_FIELDS = frozenset({"secret", "password", "pin"})


@dataclass(frozen=True)
class TransportResult:
    """Raw outcome of a single request."""
    content: Optional[bytes] = None
    status_code: Optional[int] = None
    error: Optional[str] = None


def redact(fields: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of a form or query mapping with sensitive values masked."""
    if not fields:
        return {}
    return {key: ("***" if key in REDACTED_FIELDS else value) for key, value in fields.items()}


class Transport:
    """
    Async transport over a shared ``httpx.AsyncClient``.

    The underlying client is created lazily unless one is passed in, in which
    case the caller keeps ownership of it.
    """

    def __init__(self, config: ClientConfig, http_client: Optional[httpx.AsyncClient] = None):
        self._config = config
        self._client = http_client
        self._owns_client = http_client is None
        self._log = config.logger or logger

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Accept": "application/json"},
                timeout=self._config.timeout,
            )
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the HTTP client if this transport created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()

    async def execute(
        self,
        method: str,
        url: str,
        form: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> TransportResult:
        """
        Perform one request.

        Args:
            method: HTTP method (GET, POST, DELETE)
            url: Absolute URL
            form: Fields sent as an application/x-www-form-urlencoded body
            params: Query parameters

        Returns:
            TransportResult with either content or an error description
        """
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=url,
                data=form,
                params=params,
                timeout=self._config.timeout,
            )
        except httpx.TimeoutException as e:
            self._log.info("%s %s timed out: %s", method, url, e)
            return TransportResult(error=f"Request timed out: {e}")
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            self._log.info("%s %s failed: %s", method, url, e)
            return TransportResult(error=f"Network error: {e}")

        self._log_raw(method, url, form, params, response)
        return TransportResult(content=response.content, status_code=response.status_code)

    def _log_raw(
        self,
        method: str,
        url: str,
        form: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
        response: httpx.Response,
    ):
        if not self._config.log_raw_traffic:
            return

        raw_logger = self._config.raw_traffic_logger or self._log
        logged_url = httpx.URL(url, params=redact(params)) if params else url
        raw_logger.debug(
            "%s %s\nBody: %s\nStatus: %s\nResponse: %s",
            method,
            logged_url,
            redact(form),
            response.status_code,
            response.content.decode("utf-8", errors="replace"),
        )
