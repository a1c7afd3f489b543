#!/usr/bin/env python3
"""
pnmlsort Output Writer

The consumer side of the output pipeline: drains an OutputChannel into a
ByteSink until a STOP or CANCEL signal arrives.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..exceptions import PnmlIOError
from .channel import OutputChannel, Signal
from .sink import ByteSink


logger = logging.getLogger(__name__)

ENCODING = "utf-8"


class SortedWriter:
    """
    Writes rendered blocks to a sink, in the order they were queued.

    After start() the writer is the only user of the sink. A write failure
    does not end the loop right away: the writer keeps draining (and
    discarding) until a signal arrives so that a producer waiting on a
    bounded channel is never left blocked, then raises.

    Example:
        >>> channel = OutputChannel()
        >>> writer = SortedWriter(channel, sink)
        >>> task = writer.start()
        >>> await channel.put("NET N1\\n")
        >>> await channel.stop()
        >>> await task
    """

    def __init__(self, channel: OutputChannel, sink: ByteSink, name: str = "writer"):
        self.channel = channel
        self.sink = sink
        self.name = name
        self.blocks_written = 0
        self.blocks_discarded = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError(f"{self.name} already started")
        self._task = asyncio.create_task(self.run(), name=self.name)
        return self._task

    async def run(self) -> Signal:
        """
        Consume the channel until a signal is received.

        Returns:
            The signal that ended the loop

        Raises:
            PnmlIOError: If writing to the sink failed
        """
        failure: Optional[BaseException] = None
        while True:
            message = await self.channel.get()

            if message is Signal.STOP:
                if failure is None:
                    try:
                        await self.sink.flush()
                    except OSError as e:
                        failure = e
                break
            if message is Signal.CANCEL:
                logger.debug(f"{self.name}: cancelled, {self.channel.qsize()} block(s) left unwritten")
                break

            if failure is not None or self.channel.cancelled:
                self.blocks_discarded += 1
                continue

            try:
                await self.sink.send(message.encode(ENCODING))
                self.blocks_written += 1
            except Exception as e:
                logger.error(f"{self.name}: write failed: {e}")
                failure = e

        if failure is not None:
            if isinstance(failure, PnmlIOError):
                raise failure
            raise PnmlIOError(f"Cannot write sorted output: {failure}") from failure
        return message
