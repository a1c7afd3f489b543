#!/usr/bin/env python3
"""
pnmlsort - Canonical, diffable renderings of PNML documents

Reads a PNML (Petri Net Markup Language) file and writes its nets, pages,
places, transitions and arcs as deterministic sorted text, so that two
equivalent models can be compared with a plain text diff.

Usage:
    from pnmlsort import PnmlSorter, SortOptions

    sorter = PnmlSorter(SortOptions(output_markings=False))
    sorter.sort_file("model.pnml")          # writes model.sorted

    result = sorter.sort_files(["a.pnml", "b.pnml"])
    if not result.ok:
        ...

Command line:
    pnmlsort models/ extra.pnml --sort-on-id
"""

import logging

from .config import SortOptions
from .exceptions import (
    PnmlSortError,
    StructuralError,
    UnsupportedConstructError,
    ParseError,
    PnmlIOError,
    InvalidInputFileError,
    PipelineCancelledError,
)
from .model import CanonicalModel, Net, Page, Node, Arc, NetType, NodeKind
from .walker import PnmlWalker, NodeCursor, detect_net_type, walk
from .render import CanonicalRenderer, render_text
from .sorter import BatchResult, PnmlSorter, sort_pnml, output_path_for

# Library does not configure handlers; callers may configure logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Configuration
    'SortOptions',

    # Errors
    'PnmlSortError',
    'StructuralError',
    'UnsupportedConstructError',
    'ParseError',
    'PnmlIOError',
    'InvalidInputFileError',
    'PipelineCancelledError',

    # Model
    'CanonicalModel',
    'Net',
    'Page',
    'Node',
    'Arc',
    'NetType',
    'NodeKind',

    # Walking and rendering
    'PnmlWalker',
    'NodeCursor',
    'detect_net_type',
    'walk',
    'CanonicalRenderer',
    'render_text',

    # Sorting
    'BatchResult',
    'PnmlSorter',
    'sort_pnml',
    'output_path_for',
]
