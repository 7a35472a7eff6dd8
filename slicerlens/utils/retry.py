import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

from slicerlens.core.exceptions import FetchExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth another attempt. Anything else (e.g. a 2xx body that is not
# JSON) propagates immediately.
RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    httpx.RequestError,
    httpx.HTTPStatusError,
    asyncio.TimeoutError,
)


class RetryPolicy(BaseModel):
    """
    Fixed-delay retry with a per-attempt timeout.

    Usage:
        policy = RetryPolicy(max_attempts=3, delay_s=1.0, timeout_s=5.0)
        fetch = policy.wrap(fetch_once)
        data = await fetch(url)

    The wrapped coroutine's first positional argument is used as the label
    in logs and in FetchExhaustedError.
    """
    max_attempts: int = Field(3, ge=1)
    delay_s: float = Field(1.0, ge=0)
    timeout_s: float = Field(5.0, gt=0)

    model_config = ConfigDict(frozen=True)

    def wrap(self, fetch_once: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fetch_once)
        async def with_retry(target: Any, *args, **kwargs) -> T:
            last_error: BaseException | None = None
            for attempt in range(1, self.max_attempts + 1):
                try:
                    # wait_for cancels the attempt when the timeout elapses
                    return await asyncio.wait_for(
                        fetch_once(target, *args, **kwargs), timeout=self.timeout_s
                    )
                except RETRYABLE_ERRORS as e:
                    last_error = e
                    if attempt < self.max_attempts:
                        logger.warning(
                            f"Fetch {target} failed (attempt {attempt}/{self.max_attempts}): "
                            f"{e!r}. Retrying in {self.delay_s}s..."
                        )
                        await asyncio.sleep(self.delay_s)
            logger.error(f"Fetch {target} failed after {self.max_attempts} attempt(s): {last_error!r}")
            raise FetchExhaustedError(str(target), self.max_attempts, last_error)

        return with_retry
