"""httpx-backed transport: fetch the bytes behind a request URL."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from arxiv_catalog.errors import TransportError
from arxiv_catalog.models import DEFAULT_REQUEST_TIMEOUT_SECONDS, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FetchResponse:
    """Status code and raw body of one HTTP exchange."""

    status_code: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpxFetchClient:
    """FetchClient implementation over ``httpx.AsyncClient``.

    When no shared client is supplied, each call opens a short-lived one.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": user_agent}

    async def fetch(self, request: str) -> FetchResponse:
        """GET ``request``; raises TransportError when no response arrives."""
        try:
            if self._client is not None:
                response = await self._client.get(
                    request,
                    headers=self._headers,
                    timeout=self._timeout_seconds,
                    follow_redirects=True,
                )
            else:
                async with httpx.AsyncClient() as tmp_client:
                    response = await tmp_client.get(
                        request,
                        headers=self._headers,
                        timeout=self._timeout_seconds,
                        follow_redirects=True,
                    )
        except httpx.TimeoutException as exc:
            logger.warning("Request timed out after %ss: %s", self._timeout_seconds, request)
            raise TransportError(f"request timed out after {self._timeout_seconds}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Transport error for %s", request, exc_info=True)
            raise TransportError(str(exc) or type(exc).__name__) from exc

        logger.debug(
            "GET %s -> %d (%d bytes)", request, response.status_code, len(response.content)
        )
        return FetchResponse(status_code=response.status_code, body=response.content)


__all__ = [
    "FetchResponse",
    "HttpxFetchClient",
]
