import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

from app.platform.error_handler import get_backoff_delay, is_transient
from app.platform.logger import StructuredLogger

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry with exponential backoff, shared by every outbound client.

    ``max_retries`` counts additional attempts, so an operation runs at most
    ``max_retries + 1`` times. Only errors accepted by ``is_transient`` are retried.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    is_transient: Callable[[BaseException], bool] = is_transient
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        return get_backoff_delay(attempt, self.base_delay, self.max_delay)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        return attempt < self.max_retries and self.is_transient(error)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        logger: Optional[StructuredLogger] = None,
        context: str = "retry",
    ) -> T:
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not self.should_retry(e, attempt):
                    raise
                delay = self.backoff(attempt)
                if logger:
                    logger.warning(
                        context,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay=delay,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                await self.sleep(delay)
                attempt += 1
