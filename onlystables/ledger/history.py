"""Address-keyed transaction history with cancellation of superseded loads."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .models import LedgerEntry

logger = logging.getLogger(__name__)

HistoryFetcher = Callable[[str], Awaitable[List[LedgerEntry]]]


class AccountHistory:
    """Holds the history shown for the currently selected account.

    Only the most recent ``load`` may write ``entries``. Starting a new load or
    calling ``close`` cancels whatever fetch is still in flight.
    """

    def __init__(self, fetch: HistoryFetcher):
        self._fetch = fetch
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.address: Optional[str] = None
        self.entries: List[LedgerEntry] = []
        self.error: Optional[str] = None
        self.closed = False

    @property
    def loading(self) -> bool:
        return self._task is not None and not self._task.done()

    def load(self, address: str) -> asyncio.Task:
        if self.closed:
            raise RuntimeError("AccountHistory is closed")
        self._cancel_in_flight()
        self._generation += 1
        self.address = address
        self.error = None
        self._task = asyncio.create_task(self._run(self._generation, address))
        return self._task

    async def _run(self, generation: int, address: str) -> None:
        try:
            entries = await self._fetch(address)
        except asyncio.CancelledError:
            logger.debug("History load for %s cancelled", address)
            raise
        except Exception as exc:
            if self._is_current(generation):
                logger.warning("History load for %s failed: %s", address, exc)
                self.entries = []
                self.error = str(exc)
            return

        if self._is_current(generation):
            self.entries = list(entries)
        else:
            logger.debug("Discarding superseded history result for %s", address)

    def _is_current(self, generation: int) -> bool:
        return not self.closed and generation == self._generation

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def close(self) -> None:
        self.closed = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


__all__ = ["AccountHistory", "HistoryFetcher"]
