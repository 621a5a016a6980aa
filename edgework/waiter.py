"""Convergence polling for distributions.

The poller is the only part of a lifecycle operation that suspends. Every
suspension point (the in-flight GET and the sleep between polls) runs inside a
Deadline scope, so a deadline or an explicit cancel interrupts it right away
and surfaces as ConvergenceTimeoutError.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from .errors import ApiError, ConvergenceFailedError, ConvergenceTimeoutError
from .models import Distribution, DistributionStatus

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[Distribution]]


class Deadline:
    """Cancellation/timeout token threaded through a lifecycle operation.

    Attributes:
        timeout: Seconds the deadline was created with (None = no limit)

    Example:
        >>> deadline = Deadline(timeout=30)
        >>> async with deadline.scope():
        ...     await do_work()   # raises TimeoutError after 30s or on cancel()
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout
        self._cancelled = False
        self._scopes: list[tuple[asyncio.AbstractEventLoop, asyncio.Timeout]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        return self.remaining() == 0.0

    def remaining(self) -> Optional[float]:
        """Seconds left, 0.0 once expired or cancelled, None if unbounded."""
        if self._cancelled:
            return 0.0
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def cancel(self) -> None:
        """Expire the deadline now, interrupting any active scope.

        Safe to call from any thread.
        """
        self._cancelled = True
        for entry in list(self._scopes):
            entry[0].call_soon_threadsafe(self._expire, entry)

    def _expire(self, entry: tuple[asyncio.AbstractEventLoop, asyncio.Timeout]) -> None:
        # The scope may have exited between cancel() and this callback
        loop, timeout = entry
        if entry in self._scopes and not timeout.expired():
            timeout.reschedule(loop.time())

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[None]:
        """Run the body under this deadline.

        Raises:
            TimeoutError: If the deadline passes or cancel() is called
        """
        loop = asyncio.get_running_loop()
        remaining = self.remaining()
        when = None if remaining is None else loop.time() + remaining
        async with asyncio.timeout_at(when) as timeout:
            entry = (loop, timeout)
            self._scopes.append(entry)
            try:
                yield
            finally:
                self._scopes.remove(entry)


async def _poll(
    fetch: Fetch,
    deadline: Deadline,
    interval: float,
    done: Callable[[Distribution], bool],
    not_found_means_done: bool,
    description: str,
) -> Optional[Distribution]:
    last_error: Optional[Exception] = None
    attempt = 0
    try:
        async with deadline.scope():
            while True:
                attempt += 1
                try:
                    distribution = await fetch()
                except ApiError as e:
                    if e.is_not_found and not_found_means_done:
                        logger.debug(f"{description}: distribution is gone (attempt {attempt})")
                        return None
                    # Right after a create the distribution may not be readable yet
                    if not (e.is_transient or e.is_not_found):
                        raise
                    last_error = e
                    logger.warning(f"{description}: poll attempt {attempt} failed, retrying: {e}")
                else:
                    last_error = None
                    status = DistributionStatus.from_wire(distribution.status)
                    logger.debug(f"{description}: attempt {attempt} observed status {status.value}")
                    if done(distribution):
                        return distribution
                    if status is DistributionStatus.ERROR:
                        messages = [error.en or error.key or "" for error in distribution.errors or []]
                        raise ConvergenceFailedError(
                            f"{description}: distribution reported status ERROR"
                            + (f": {'; '.join(messages)}" if messages else ""),
                            errors=messages,
                        )

                await asyncio.sleep(interval)
    except TimeoutError as e:
        message = f"{description}: timed out after {attempt} poll attempt(s)"
        if deadline.cancelled:
            message = f"{description}: cancelled after {attempt} poll attempt(s)"
        if last_error is not None:
            message = f"{message}, last error: {last_error}"
        raise ConvergenceTimeoutError(message, last_error=last_error) from e


async def wait_for_status(
    fetch: Fetch,
    deadline: Deadline,
    interval: float,
    target: DistributionStatus = DistributionStatus.ACTIVE,
    description: str = "waiting for distribution",
) -> Distribution:
    """Poll until the distribution reaches ``target``.

    Args:
        fetch: Coroutine function returning the current wire representation
        deadline: Governing deadline; checked at every suspension point
        interval: Seconds between polls
        target: Status that counts as converged
        description: Prefix for log lines and error messages

    Returns:
        The representation that satisfied ``target``

    Raises:
        ConvergenceFailedError: The distribution reported ERROR
        ConvergenceTimeoutError: The deadline fired or was cancelled
        ApiError: A non-transient fetch failure
    """
    return await _poll(
        fetch,
        deadline,
        interval,
        done=lambda d: DistributionStatus.from_wire(d.status) is target,
        not_found_means_done=False,
        description=description,
    )


async def wait_until_gone(
    fetch: Fetch,
    deadline: Deadline,
    interval: float,
    description: str = "waiting for deletion",
) -> None:
    """Poll until the API reports the distribution as not found (404/410).

    Raises:
        ConvergenceFailedError: The distribution reported ERROR while deleting
        ConvergenceTimeoutError: The deadline fired or was cancelled
        ApiError: A non-transient fetch failure
    """
    await _poll(
        fetch,
        deadline,
        interval,
        done=lambda d: False,
        not_found_means_done=True,
        description=description,
    )
