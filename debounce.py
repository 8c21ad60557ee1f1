"""Debouncing and last-request-wins sequencing for asyncio callers."""

import asyncio
import itertools
from typing import Any, Awaitable, Callable

from logging_config import get_logger

logger = get_logger(__name__)


def start_task(coro: Awaitable[Any], tasks: set) -> asyncio.Task:
    """Schedule coro, keeping a reference in tasks until it finishes."""
    task = asyncio.ensure_future(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return task


class RequestSequencer:
    """Hands out increasing tokens; only the newest token is current."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = 0

    def next_token(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest


class Debouncer:
    """Runs a coroutine function once triggers stop arriving for delay_ms.

    Each trigger cancels the pending run and schedules a new one with the
    latest arguments.
    """

    def __init__(self, delay_ms: int, callback: Callable[..., Awaitable[Any]]):
        self.delay = max(delay_ms, 0) / 1000
        self.callback = callback
        self._task: asyncio.Task | None = None

    def trigger(self, *args, **kwargs) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.ensure_future(self._run(args, kwargs))
        return self._task

    def cancel(self):
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, args, kwargs):
        await asyncio.sleep(self.delay)
        try:
            return await self.callback(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Debounced callback failed")
            return None
