#!/usr/bin/env python3
"""
pnmlsort Output Pipeline

Decouples file writing from tree walking: the renderer puts text blocks on
an OutputChannel and a SortedWriter task drains them into a ByteSink.
"""

from .channel import Message, OutputChannel, Signal
from .sink import AsyncFileSink, ByteSink, remove_file
from .writer import SortedWriter

__all__ = [
    'Message',
    'OutputChannel',
    'Signal',
    'ByteSink',
    'AsyncFileSink',
    'remove_file',
    'SortedWriter',
]
