#!/usr/bin/env python3
"""
pnmlsort Output Channel

FIFO channel between the renderer (single producer) and the output writer
(single consumer). Rendered text blocks and control signals travel on the
same queue, so the writer sees them in production order.
"""

from __future__ import annotations

import asyncio
from enum import Enum, auto
from typing import Union


class Signal(Enum):
    """Control messages sent after the last block."""
    STOP = auto()    # normal completion, flush and exit
    CANCEL = auto()  # abort, exit promptly and discard what is left


Message = Union[str, Signal]


class OutputChannel:
    """
    Single-writer, single-reader queue of rendered blocks.

    Args:
        maxsize: Capacity of the queue. 0 means unbounded; a positive value
            makes put() wait while the writer catches up.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=maxsize)
        self._cancelled = asyncio.Event()
        self._closed = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, block: str) -> None:
        if self._closed:
            raise RuntimeError("Cannot put on a closed output channel")
        await self._queue.put(block)

    async def get(self) -> Message:
        return await self._queue.get()

    async def stop(self) -> None:
        """Signal normal completion. No block may follow."""
        self._closed = True
        await self._queue.put(Signal.STOP)

    async def cancel(self) -> None:
        """
        Signal an abort.

        The cancellation flag is raised before the sentinel is queued, so
        the writer discards anything it dequeues from now on.
        """
        self._closed = True
        self._cancelled.set()
        await self._queue.put(Signal.CANCEL)
