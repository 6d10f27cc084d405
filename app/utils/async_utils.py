"""
Asynchronous building blocks shared by the upload pipeline and the search controllers.
Provides timeout racing, bounded retry with exponential backoff, a windowed
all-settled task runner and a restartable debounce timer.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Type, TypeVar

from app.utils.exceptions import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _discard_result(task: "asyncio.Future") -> None:
    """Retrieve a detached task's outcome so it is never reported as unhandled."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Detached operation finished with error after timeout: {error}")


async def with_timeout(awaitable: Awaitable[T], seconds: float, label: str) -> T:
    """
    Race an operation against a timer.

    On expiry the caller stops waiting but the operation itself keeps running;
    whatever it eventually returns or raises is discarded.

    Args:
        awaitable: Coroutine or future to wait for
        seconds: Time budget
        label: Operation description used in the timeout message

    Returns:
        The operation's result

    Raises:
        OperationTimeoutError: If the time budget is exceeded
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    task.add_done_callback(_discard_result)
    raise OperationTimeoutError(f"{label} timed out after {seconds:g} seconds", seconds)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    factor: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run an async operation with bounded attempts and exponential delay.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        max_attempts: Total attempts including the first one (1 disables retry)
        base_delay: Delay before the second attempt, in seconds
        factor: Multiplier applied to the delay after each failed attempt
        retry_on: Exception types that trigger another attempt
        label: Operation description for log lines
        sleep: Sleep function, replaceable in tests

    Returns:
        Result of the first successful attempt

    Raises:
        The last error once attempts are exhausted, or any error not in retry_on
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    delay = base_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_attempts:
                raise
            logger.warning(
                f"{label} failed on attempt {attempt}/{max_attempts}, retrying in {delay:g}s: {e}"
            )
            await sleep(delay)
            delay *= factor

    raise RuntimeError("unreachable")  # pragma: no cover


@dataclass
class TaskResult:
    """Outcome of one task submitted to a BatchedTaskRunner."""

    index: int
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchedTaskRunner:
    """
    Bounded worker pool that runs task factories in fixed-size windows.

    Every task in a window is started together and the whole window settles
    before the next starts. A failing task never cancels its siblings.
    """

    def __init__(
        self,
        concurrency: int,
        batch_delay: float = 0.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.batch_delay = batch_delay
        self._sleep = sleep

    @staticmethod
    async def _invoke(factory: Callable[[], Awaitable[Any]]) -> Any:
        return await factory()

    async def run(self, factories: Sequence[Callable[[], Awaitable[Any]]]) -> List[TaskResult]:
        """
        Run all factories and collect their outcomes.

        Args:
            factories: Zero-argument callables producing awaitables

        Returns:
            One TaskResult per factory, in submission order
        """
        results: List[TaskResult] = []
        total = len(factories)

        for start in range(0, total, self.concurrency):
            window = factories[start:start + self.concurrency]
            outcomes = await asyncio.gather(
                *(self._invoke(factory) for factory in window),
                return_exceptions=True
            )

            for offset, outcome in enumerate(outcomes):
                if isinstance(outcome, BaseException):
                    results.append(TaskResult(index=start + offset, error=outcome))
                else:
                    results.append(TaskResult(index=start + offset, value=outcome))

            if start + self.concurrency < total and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

        return results


class Debouncer:
    """
    Restartable timer that collapses bursts of triggers into one callback.

    Each trigger cancels the pending timer and starts a new one; the callback
    runs once the delay passes without another trigger.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[Any]]):
        self.delay = delay
        self._callback = callback
        self._timer: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        """Schedule the callback, restarting the quiet period."""
        self.cancel()
        self._timer = asyncio.ensure_future(self._fire_later())

    def cancel(self) -> None:
        """Drop the pending firing, if any."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Fire immediately if a firing is pending."""
        if self.pending:
            self.cancel()
            await self._fire()

    async def wait(self) -> None:
        """Wait for the pending firing (and its callback) to complete."""
        timer = self._timer
        if timer is not None:
            try:
                await timer
            except asyncio.CancelledError:
                if not timer.cancelled():
                    raise
        if self._running is not None and not self._running.done():
            await self._running

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        # Detached from the timer so a later trigger cannot cancel a running callback
        self._running = asyncio.ensure_future(self._fire())
        await asyncio.shield(self._running)

    async def _fire(self) -> None:
        try:
            await self._callback()
        except Exception as e:
            logger.error(f"Debounced callback failed: {e}", exc_info=True)
