#!/usr/bin/env python3
"""
pnmlsort Sorter

Per-file orchestration of the canonicalization: walk the document, render
the model into the output channel while the writer task drains it, and
tear everything down on failure so no partial output is left behind.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .config import SortOptions
from .exceptions import InvalidInputFileError, PipelineCancelledError, PnmlSortError
from .model import CanonicalModel
from .pipeline import AsyncFileSink, ByteSink, OutputChannel, SortedWriter, remove_file
from .render import CanonicalRenderer
from .walker import PnmlWalker


logger = logging.getLogger(__name__)

PNML_EXT = ".pnml"
SORT_EXT = ".sorted"

PathLike = Union[str, Path]
SinkFactory = Callable[[Path], ByteSink]


# ============================================================================
# Paths
# ============================================================================

def check_is_pnml_file(path: PathLike) -> Path:
    """
    Check the preconditions on an input file.

    Raises:
        InvalidInputFileError: If the path is missing, not a file, or not .pnml
    """
    source = Path(path)
    if not source.exists():
        raise InvalidInputFileError(f"File not found: {source}")
    if not source.is_file():
        raise InvalidInputFileError(f"Not a regular file: {source}")
    if source.suffix.lower() != PNML_EXT:
        raise InvalidInputFileError(f"Not a PNML file (expected {PNML_EXT}): {source}")
    return source


def output_path_for(source: PathLike) -> Path:
    """model.pnml -> model.sorted, next to the input."""
    return Path(source).with_suffix(SORT_EXT)


# ============================================================================
# Results
# ============================================================================

@dataclass
class BatchResult:
    """
    Outcome of a batch run.

    Attributes:
        succeeded: (input, output) pairs that were sorted
        failed: input -> error, for files that could not be sorted
        elapsed: Wall time of the whole batch, in seconds
    """
    succeeded: List[Tuple[Path, Path]] = field(default_factory=list)
    failed: Dict[Path, PnmlSortError] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed


# ============================================================================
# Sorter
# ============================================================================

class PnmlSorter:
    """
    Canonicalizes PNML files into sorted text files.

    Example:
        >>> sorter = PnmlSorter(SortOptions(sort_on_id=True))
        >>> sorter.sort_file("model.pnml")
        PosixPath('model.sorted')
    """

    def __init__(
        self,
        options: Optional[SortOptions] = None,
        sink_factory: Optional[SinkFactory] = None,
    ):
        self.options = options if options is not None else SortOptions()
        self._sink_factory: SinkFactory = sink_factory or AsyncFileSink

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------

    async def sort_file_async(self, in_file: PathLike, out_file: Optional[PathLike] = None) -> Path:
        """
        Canonicalize one PNML file.

        Args:
            in_file: The PNML document
            out_file: Destination, defaults to the input path with a .sorted extension

        Returns:
            The path of the written file

        Raises:
            PnmlSortError: Wrapping whatever made this file fail. The output
                file does not exist afterwards.
        """
        source = Path(in_file)
        dest = Path(out_file) if out_file is not None else output_path_for(source)
        model = CanonicalModel()
        sink: Optional[ByteSink] = None
        channel: Optional[OutputChannel] = None
        writer_task: Optional[asyncio.Task] = None

        try:
            logger.info(f"Checking preconditions on input file format: {source}")
            check_is_pnml_file(source)
            if dest.resolve() == source.resolve():
                # Opening the sink would truncate the input
                raise InvalidInputFileError(f"Output path is the input file itself: {source}")
            logger.info(f"Exporting into sorted PNML: {source}")

            sink = self._sink_factory(dest)
            channel = OutputChannel(maxsize=self.options.queue_size)
            writer_task = SortedWriter(channel, sink, name=f"writer:{source.name}").start()

            walker = PnmlWalker(source, model)
            await asyncio.to_thread(walker.walk)

            logger.info(f"Exporting sorted Petri net(s)' objects from PNML document {source}.")
            for block in CanonicalRenderer(model, self.options).blocks():
                if writer_task.done():
                    # Surfaces the writer's failure
                    await writer_task
                await channel.put(block)
                # An unbounded put never suspends, let the writer drain
                await asyncio.sleep(0)

            await channel.stop()
            try:
                await writer_task
            except asyncio.CancelledError as e:
                if writer_task.cancelled():
                    raise PipelineCancelledError(f"Writer for {dest} was interrupted") from e
                raise
            await sink.close()
            logger.info(f"See file: {dest}")
            return dest

        except (PnmlSortError, OSError) as e:
            await self._emergency_stop(channel, writer_task, sink, dest)
            raise PnmlSortError(f"Failed to sort {source}: {e}") from e
        except BaseException:
            # Cancellation or an unexpected fault: clean up, report as is
            await self._emergency_stop(channel, writer_task, sink, dest)
            raise
        finally:
            model.clear()

    def sort_file(self, in_file: PathLike, out_file: Optional[PathLike] = None) -> Path:
        return asyncio.run(self.sort_file_async(in_file, out_file))

    async def _emergency_stop(
        self,
        channel: Optional[OutputChannel],
        writer_task: Optional[asyncio.Task],
        sink: Optional[ByteSink],
        dest: Path,
    ) -> None:
        """Cancel the writer, close the output and delete the partial file."""
        if sink is None:
            # Nothing was opened, and dest may be a pre-existing file we never touched
            return

        if writer_task is not None:
            if channel is not None and not writer_task.done():
                await channel.cancel()
            try:
                await writer_task
            except (PnmlSortError, OSError, asyncio.CancelledError) as e:
                logger.debug(f"Writer for {dest} ended with: {e!r}")

        try:
            await sink.close()
        finally:
            remove_file(dest)
        logger.error("Emergency stop. Cancelled the translation and released opened resources.")

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def sort_files_async(
        self, jobs: Iterable[Union[PathLike, Tuple[PathLike, Optional[PathLike]]]]
    ) -> BatchResult:
        """
        Canonicalize several files, one after the other.

        A failing file is logged and recorded; the batch moves on to the
        next one.
        """
        result = BatchResult()
        start = time.perf_counter()
        for job in jobs:
            in_file, out_file = job if isinstance(job, tuple) else (job, None)
            source = Path(in_file)
            try:
                dest = await self.sort_file_async(source, out_file)
            except PnmlSortError as e:
                logger.error(str(e), exc_info=self.options.debug)
                result.failed[source] = e
            else:
                result.succeeded.append((source, dest))
        result.elapsed = time.perf_counter() - start

        if result.ok:
            logger.info("Finished successfully.")
        else:
            msg = "Finished in error."
            if not self.options.debug:
                msg += " Activate debug mode to log stack traces, like so: export PNMLSORT_DEBUG=true"
            logger.error(msg)
        logger.info(f"Sorting PNML took {result.elapsed:.3f} seconds.")
        return result

    def sort_files(
        self, jobs: Sequence[Union[PathLike, Tuple[PathLike, Optional[PathLike]]]]
    ) -> BatchResult:
        return asyncio.run(self.sort_files_async(jobs))


def sort_pnml(in_file: PathLike, out_file: Optional[PathLike] = None, **options) -> Path:
    """Canonicalize one file with options given as keyword arguments."""
    return PnmlSorter(SortOptions(**options)).sort_file(in_file, out_file)
