import asyncio
import functools
from typing import Any, Awaitable, Callable, Coroutine, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

from utils.logger_utils import get_logger

logger = get_logger("Async Utils")


def async_retry(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (asyncio.TimeoutError,),
):
    """
    Decorator retrying an async function when it raises one of `exceptions`.
    Sleeps initial_delay, then initial_delay * backoff_factor, ... between attempts.
    After max_retries retries the last error is re-raised.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        name = getattr(func, "__name__", repr(func))

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(f"Function {name} failed after {max_retries} retries. Error: {e}")
                        raise
                    logger.warning(
                        f"Error in {name}: {e}. Retrying in {delay:.2f}s... (Attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator


class RetryPolicy(BaseModel):
    """Bounded retry with exponential backoff, applied to transient errors only."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=5, ge=0)
    initial_delay: float = Field(default=1.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)

    def wrap(
        self,
        func: Callable[..., Awaitable[Any]],
        exceptions: Tuple[Type[BaseException], ...],
    ) -> Callable[..., Awaitable[Any]]:
        return async_retry(
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            backoff_factor=self.backoff_factor,
            exceptions=exceptions,
        )(func)


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Like asyncio.gather, but the first failure cancels the awaitables still running
    and waits for them to finish before re-raising.
    """
    futures = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*futures)
    except BaseException:
        for future in futures:
            future.cancel()
        await asyncio.gather(*futures, return_exceptions=True)
        raise


async def gather_with_concurrency(n: int, *tasks: Coroutine[Any, Any, Any]) -> list[Any]:
    """
    Runs tasks concurrently with at most n in flight. Results keep the order of `tasks`.
    If one task fails the others are cancelled.
    """
    semaphore = asyncio.Semaphore(n)

    async def sem_task(task: Coroutine[Any, Any, Any]) -> Any:
        try:
            async with semaphore:
                return await task
        finally:
            # no-op unless cancelled while waiting for a slot
            task.close()

    return await gather_or_cancel(*(sem_task(task) for task in tasks))
