"""Shared HTTP fetch infrastructure for network collaborators.

Provides:
- fetch_with_retry: GET a URL with exponential backoff for transient failures
"""

import asyncio

import aiohttp
import structlog

from lockaudit.core.errors import FetchError

logger = structlog.get_logger()


async def fetch_with_retry(
    session: aiohttp.ClientSession,
    url: str,
    max_retries: int = 3,
) -> tuple[int, bytes]:
    """Fetch a URL, retrying transient failures.

    Retries with exponential backoff (1s, 2s, 4s) on connection errors,
    timeouts and 5xx responses. Other statuses (including 404) are returned
    to the caller as-is.

    Args:
        session: Open aiohttp session
        url: URL to GET
        max_retries: Maximum number of attempts (default: 3)

    Returns:
        Tuple of (status, body)

    Raises:
        FetchError: If every attempt failed with a transient error
    """
    log = logger.bind(url=url, max_retries=max_retries)

    for attempt in range(max_retries):
        last_attempt = attempt == max_retries - 1
        try:
            async with session.get(url) as response:
                body = await response.read()
                status = response.status

            if status < 500:
                log.debug("fetch_completed", status=status, size=len(body))
                return status, body

            if last_attempt:
                raise FetchError(f"GET {url} failed with HTTP {status}")

            backoff = 2 ** attempt
            log.warning(
                "retry_after_server_error",
                attempt=attempt + 1,
                status=status,
                backoff_seconds=backoff,
            )
            await asyncio.sleep(backoff)

        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            if last_attempt:
                log.error("fetch_failed", error=str(e))
                raise FetchError(f"GET {url} failed: {e}") from e

            backoff = 2 ** attempt
            log.warning(
                "retry_after_transient_error",
                attempt=attempt + 1,
                error=str(e),
                backoff_seconds=backoff,
            )
            await asyncio.sleep(backoff)

    raise FetchError(f"GET {url} failed: no attempts made")
