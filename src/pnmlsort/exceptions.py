#!/usr/bin/env python3
"""
pnmlsort-specific exceptions.

All pnmlsort exceptions inherit from PnmlSortError for easy catching.
"""


class PnmlSortError(Exception):
    """Base exception for all pnmlsort errors."""


class StructuralError(PnmlSortError):
    """Input violates the minimal net/page shape or has an illegal node."""


class UnsupportedConstructError(StructuralError):
    """A PNML construct this tool does not handle (reference nodes)."""


class ParseError(PnmlSortError):
    """The XML cursor could not parse the document or evaluate a query."""

    def __init__(self, message: str, line: int = 0):
        self.line = line
        if line:
            message = f"{message} (near line {line})"
        super().__init__(message)


class PnmlIOError(PnmlSortError, OSError):
    """Failure opening, reading or writing a file."""


class InvalidInputFileError(PnmlIOError):
    """Input path is missing, not a regular file, or not a .pnml file."""


class PipelineCancelledError(PnmlSortError):
    """The output pipeline was torn down mid-flight."""
