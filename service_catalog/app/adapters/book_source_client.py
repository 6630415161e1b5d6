"""
HTTP client for the remote book metadata provider.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import SourceUnavailableError
from shared.logging import get_logger


SERVICE_NAME = "book_source"


class HttpBookSource:
    """Fetches book records from ``GET {base_url}/books/{isbn}``.

    One attempt per call; repeated failures open the circuit so a flaky
    provider is not hammered while it recovers.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        api_key: Optional[str] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.api_key = api_key
        self.logger = get_logger("catalog.source.http")
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            name=SERVICE_NAME,
            failure_threshold=3,
            recovery_timeout=30.0,
        )

    async def fetch(self, isbn: str) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/books/{quote(isbn, safe='')}"

        async def _request() -> Optional[Dict[str, Any]]:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self._headers())

            if response.status_code == 200:
                data = response.json()
                if not isinstance(data, dict):
                    raise SourceUnavailableError(
                        SERVICE_NAME,
                        "Unexpected response body",
                        {"url": url, "type": type(data).__name__},
                    )
                self.logger.debug("Book record retrieved", isbn=isbn)
                return data

            if response.status_code == 404:
                self.logger.info("Book not known to provider", isbn=isbn)
                return None

            self.logger.error(
                "Book source request failed",
                url=url,
                status_code=response.status_code,
                response=response.text[:500],
            )
            raise SourceUnavailableError(
                SERVICE_NAME,
                f"Unexpected status {response.status_code}",
                {"url": url, "status_code": response.status_code},
            )

        try:
            return await self.circuit_breaker.call(_request)
        except SourceUnavailableError:
            raise
        except CircuitBreakerOpenException as exc:
            self.logger.warning("Book source circuit open", isbn=isbn, retry_in=round(exc.retry_in, 1))
            raise SourceUnavailableError(
                SERVICE_NAME,
                "Circuit open",
                {"url": url, "retry_in_seconds": exc.retry_in},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            # ValueError covers undecodable JSON bodies
            self.logger.error("Book source error", isbn=isbn, error=str(exc))
            raise SourceUnavailableError(
                SERVICE_NAME,
                str(exc) or exc.__class__.__name__,
                {"url": url, "error_type": exc.__class__.__name__},
            ) from exc

    async def ping(self) -> bool:
        """Return True when the provider health endpoint answers 2xx."""
        try:
            async with httpx.AsyncClient(timeout=min(self.timeout, 5.0)) as client:
                response = await client.get(f"{self.base_url}/health", headers=self._headers())
            return response.is_success
        except httpx.HTTPError as exc:
            self.logger.error("Book source health check failed", error=str(exc))
            return False

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers
