"""Resilient HTTP client for provider calls.

Wraps every outbound request with:
- a hard total timeout (the in-flight call is cancelled when it expires)
- exponential backoff retries for 429, 5xx and transport failures
- honoring of the Retry-After header on 429
- immediate failure for other 4xx (caller errors, not transient)

Retries are strictly sequential; one request() never has two calls in flight.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from edurag.config import get_config
from edurag.exceptions import (
    AuthenticationError,
    EduRAGException,
    MalformedResponseError,
    NetworkError,
    RateLimited,
    RequestTimeout,
    UpstreamError,
)

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header (delta-seconds or HTTP-date).

    Returns:
        Seconds to wait, or None if the header is absent, unparseable or
        not a finite number
    """
    if not value:
        return None

    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        # "inf" and "nan" parse as floats
        if not math.isfinite(seconds):
            return None
        return max(0.0, seconds)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class ResilientClient:
    """HTTP client with timeout, retry and rate-limit handling.

    Attributes:
        timeout: Hard timeout per attempt (seconds)
        max_retries: Retries after the first attempt
        backoff_base: Base delay; attempt n waits backoff_base * 2**n
        max_retry_after: Upper bound for a server-requested wait (seconds)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None,
        max_retry_after: Optional[float] = None,
    ) -> None:
        """Initialize the client.

        Args:
            timeout: Hard timeout (from config)
            max_retries: Retry cap (from config)
            backoff_base: Backoff base in seconds (from config)
            transport: Custom httpx transport (tests use httpx.MockTransport)
            sleep: Coroutine used for backoff pauses (default asyncio.sleep)
            max_retry_after: Cap for Retry-After waits (from config)
        """
        config = get_config()
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.max_retries = max_retries if max_retries is not None else config.max_retries
        self.backoff_base = backoff_base if backoff_base is not None else config.backoff_base
        self.max_retry_after = (
            max_retry_after if max_retry_after is not None else config.max_retry_after
        )
        self._sleep = sleep or asyncio.sleep
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def __aenter__(self) -> "ResilientClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    # ---------- Public API ----------

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Request headers
            json: JSON body

        Returns:
            httpx.Response with a 2xx status

        Raises:
            RateLimited: 429 after all retries
            RequestTimeout: Timeout after all retries
            NetworkError: Transport failure after all retries
            AuthenticationError: 401/403
            UpstreamError: Other non-2xx responses
        """
        attempt = 0
        while True:
            try:
                response = await asyncio.wait_for(
                    self._client.request(method, url, headers=headers, json=json),
                    timeout=self.timeout,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                error: EduRAGException = RequestTimeout(
                    f"Request to {url} timed out after {self.timeout}s", timeout=self.timeout
                )
                delay = self._backoff(attempt)
                if not await self._should_retry(attempt, delay, error):
                    raise error from e
                attempt += 1
                continue
            except httpx.TransportError as e:
                error = NetworkError(f"Transport error for {url}: {e}", url=url)
                delay = self._backoff(attempt)
                if not await self._should_retry(attempt, delay, error):
                    raise error from e
                attempt += 1
                continue

            status = response.status_code
            if status < 400:
                return response

            if status == 429:
                retry_after = parse_retry_after(response.headers.get("retry-after"))
                if retry_after is not None:
                    delay = min(retry_after, self.max_retry_after)
                else:
                    delay = self._backoff(attempt)
                error = RateLimited(
                    f"Rate limited by {url} after {attempt + 1} attempts",
                    retry_after=retry_after,
                )
                if not await self._should_retry(attempt, delay, error):
                    raise error
                attempt += 1
                continue

            body = response.text
            if status >= 500:
                error = UpstreamError(status, body)
                if not await self._should_retry(attempt, self._backoff(attempt), error):
                    raise error
                attempt += 1
                continue

            if status in (401, 403):
                logger.error(f"Authentication rejected by {url} ({status})")
                raise AuthenticationError(status, body)

            logger.error(f"Request to {url} failed with {status}: {body[:200]}")
            raise UpstreamError(status, body)

    async def post_json(self, url: str, payload: Dict[str, Any], api_key: str) -> Any:
        """POST a JSON payload with bearer auth and decode the JSON answer.

        Raises:
            MalformedResponseError: If the body is not JSON
        """
        response = await self.request(
            "POST",
            url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response from {url} is not JSON: {e}") from e

    # ---------- Internal helpers ----------

    def _backoff(self, attempt: int) -> float:
        return self.backoff_base * (2 ** attempt)

    async def _should_retry(self, attempt: int, delay: float, error: EduRAGException) -> bool:
        if attempt >= self.max_retries:
            logger.error(f"Giving up after {attempt + 1} attempts: {error.message}")
            return False

        logger.warning(
            f"{error.message}. Retrying in {delay:.1f}s "
            f"(retry {attempt + 1}/{self.max_retries})"
        )
        await self._sleep(delay)
        return True
