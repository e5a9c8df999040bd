"""
Wait-for-all fan-out

Runs a batch of coroutines concurrently and waits until every one of them
has finished, collecting successes and failures separately. Unlike
fail-fast joins, an early failure never short-circuits the barrier.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]


@dataclass
class FanOutResult:
    """Collected outcome of a fan-out"""
    expected: int
    successes: List[Any] = field(default_factory=list)  # completion order
    failures: List[Tuple[int, BaseException]] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return len(self.successes)

    @property
    def ok(self) -> bool:
        return not self.failures and self.completed == self.expected


async def wait_for_all(
    factories: Sequence[TaskFactory],
    limit: Optional[int] = None,
) -> FanOutResult:
    """
    Run every factory's coroutine and wait for all of them.

    Args:
        factories: Zero-argument callables returning awaitables
        limit: Maximum number of tasks running at once (None = unbounded)

    Returns:
        FanOutResult with successes in completion order

    Cancelling the caller cancels every child task.
    """
    result = FanOutResult(expected=len(factories))
    semaphore = asyncio.Semaphore(limit) if limit else None

    async def run(index: int, factory: TaskFactory) -> None:
        try:
            if semaphore is not None:
                async with semaphore:
                    value = await factory()
            else:
                value = await factory()
        except Exception as e:
            logger.debug(f"Fan-out task {index} failed: {e!r}")
            result.failures.append((index, e))
            return
        result.successes.append(value)

    tasks = [asyncio.ensure_future(run(i, factory)) for i, factory in enumerate(factories)]
    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return result
