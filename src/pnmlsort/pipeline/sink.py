#!/usr/bin/env python3
"""
pnmlsort Output Sinks

Writable byte channels the output writer drains into.
Includes the protocol and an asynchronous file implementation.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Protocol, Union

from ..exceptions import PnmlIOError


class ByteSink(Protocol):
    """
    Protocol for asynchronous byte sinks.

    Examples: the destination file, an in-memory buffer in tests.
    """

    async def send(self, data: bytes) -> None:
        """
        Write encoded data to the sink.

        Args:
            data: A rendered block, encoded
        """
        ...

    async def flush(self) -> None:
        """Push buffered data to its destination."""
        ...

    async def close(self) -> None:
        """Close the sink and release resources."""
        ...


class AsyncFileSink:
    """
    Asynchronous file sink.

    The file is truncated on open. Blocking I/O runs through
    asyncio.to_thread() so the event loop stays free for the producer.
    """

    def __init__(self, filepath: Union[str, Path]):
        """
        Open the destination file.

        Args:
            filepath: Path to the output file. Parent directories are created.

        Raises:
            PnmlIOError: If the file cannot be opened
        """
        self.filepath = Path(filepath)
        try:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.filepath, "wb")
        except OSError as e:
            raise PnmlIOError(f"Cannot open output file {self.filepath}: {e}") from e

    @property
    def closed(self) -> bool:
        return self._file is None or self._file.closed

    async def send(self, data: bytes) -> None:
        if self.closed:
            raise PnmlIOError(f"Output file {self.filepath} is closed")
        await asyncio.to_thread(self._file.write, data)

    async def flush(self) -> None:
        if not self.closed:
            await asyncio.to_thread(self._file.flush)

    async def close(self) -> None:
        """Close the file handle. Safe to call more than once."""
        if not self.closed:
            handle, self._file = self._file, None
            await asyncio.to_thread(handle.close)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def remove_file(path: Optional[Union[str, Path]]) -> bool:
    """Delete a file if it exists. Returns True when something was removed."""
    if path is None:
        return False
    target = Path(path)
    if target.exists():
        target.unlink()
        return True
    return False
