from typing import Any

import httpx

from app.platform.errors import RequestTimeoutError


async def request_with_timeout(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    timeout: float,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue a request with a hard time budget.

    Timeouts surface as ``RequestTimeoutError`` so callers and the retry policy
    can tell them apart from other transport failures.
    """
    try:
        return await client.request(method, url, timeout=timeout, **kwargs)
    except httpx.TimeoutException as e:
        raise RequestTimeoutError(
            f"Request timed out after {timeout:g}s. The page may be too slow to analyze."
        ) from e
