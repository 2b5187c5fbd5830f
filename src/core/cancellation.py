# src/core/cancellation.py — v1
"""Cooperative cancellation primitives.

A ``CancellationToken`` is a flag checked at checkpoints. ``SingleFlight``
owns at most one in-flight operation per client: starting a new one cancels
the previous token and its asyncio task, and the superseded caller receives
``Cancelled`` whatever the superseded work eventually produced.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from pagereader.core.errors import Cancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation flag."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, operation: str) -> None:
        """Raise Cancelled if the token has been cancelled."""
        if self._cancelled:
            raise Cancelled(operation)


def _caller_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class SingleFlight(Generic[T]):
    """At most one in-flight call; a new call supersedes the current one."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._token: CancellationToken | None = None
        self._task: asyncio.Future[T] | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> bool:
        """Cancel the in-flight call, if any. Returns True if one was pending."""
        token, task = self._token, self._task
        self._token = None
        self._task = None
        if token is None:
            return False
        token.cancel()
        if task is not None and not task.done():
            task.cancel()
        return True

    async def run(self, operation: Callable[[CancellationToken], Awaitable[T]]) -> T:
        """Run *operation* as the single in-flight call.

        Raises:
            Cancelled: The call was superseded or cancelled before resolving.
        """
        if self.cancel():
            logger.debug("%s: superseded previous call", self.name)

        token = CancellationToken()
        task: asyncio.Future[T] = asyncio.ensure_future(operation(token))
        self._token, self._task = token, task
        try:
            result = await task
        except asyncio.CancelledError:
            if token.cancelled and not _caller_cancelling():
                raise Cancelled(self.name) from None
            raise
        except Exception:
            if token.cancelled:
                raise Cancelled(self.name) from None
            raise
        finally:
            if self._token is token:
                self._token = None
                self._task = None

        if token.cancelled:
            raise Cancelled(self.name)
        return result
