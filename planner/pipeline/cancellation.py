"""
Cooperative cancellation for pipeline jobs.

A ``CancelToken`` is handed to every stage. Stages check it at their
boundaries; in-flight provider calls are left to finish, except where a
call is explicitly raced against the token (``run_cancellable``).
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .errors import GenerationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by user"):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self, where: str = ""):
        if self._event.is_set():
            logger.info(f"Cancellation observed{f' at {where}' if where else ''}")
            raise GenerationCancelled(f"Operation cancelled ({self.reason})")

    async def wait(self):
        await self._event.wait()

    async def sleep(self, delay: float, where: str = ""):
        """Sleep for ``delay`` seconds, waking early and raising if cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), delay)
        except asyncio.TimeoutError:
            pass
        self.raise_if_cancelled(where)


async def run_cancellable(aw: Awaitable[T], token: CancelToken, where: str = "") -> T:
    """
    Await ``aw`` unless ``token`` fires first, in which case the work is
    cancelled (aborting any in-flight HTTP transfer) and
    ``GenerationCancelled`` is raised.
    """
    token.raise_if_cancelled(where)
    work = asyncio.ensure_future(aw)
    watcher = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
    if work in done:
        return work.result()
    work.cancel()
    try:
        await work
    except asyncio.CancelledError:
        pass
    token.raise_if_cancelled(where)
    raise GenerationCancelled("Operation cancelled")


async def gather_or_cancel(*aws):
    """
    ``asyncio.gather`` that cancels the remaining siblings as soon as one
    member raises, then re-raises that first error.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
