#!/usr/bin/env python3
"""
pnmlsort command line

Sorts every PNML file given on the command line. Directories are scanned
recursively for *.pnml files. Each model.pnml is written to model.sorted
next to it.

Options can also be set through PNMLSORT_* environment variables; flags
given on the command line win.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .config import SortOptions
from .sorter import PNML_EXT, PnmlSorter, output_path_for


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def collect_sources(paths: Sequence[str]) -> List[Tuple[Path, Path]]:
    """
    Expand files and directories into (input, output) pairs.

    Directories are scanned recursively; non-PNML files inside them are
    skipped. Paths that do not exist are passed through so the sorter
    reports them as failed inputs.
    """
    jobs: List[Tuple[Path, Path]] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            jobs.append((path, output_path_for(path)))
        elif path.is_dir():
            found = sorted(p for p in path.rglob(f"*{PNML_EXT}") if p.is_file())
            if not found:
                logger.warning(f"No {PNML_EXT} file found under {path}")
            jobs.extend((p.resolve(), output_path_for(p.resolve())) for p in found)
        else:
            jobs.append((path, output_path_for(path)))
    return jobs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pnmlsort",
        description="Write a canonical, sorted text rendering of PNML documents.",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="PNML files, or directories to scan recursively for them",
    )
    parser.add_argument(
        "--sort-on-id",
        action="store_true",
        default=None,
        help="Order places and transitions by id instead of name",
    )
    parser.add_argument(
        "--exclude-places",
        action="store_true",
        default=None,
        help="Do not output places",
    )
    parser.add_argument(
        "--exclude-transitions",
        action="store_true",
        default=None,
        help="Do not output transitions",
    )
    parser.add_argument(
        "--exclude-arcs",
        action="store_true",
        default=None,
        help="Do not output arcs",
    )
    parser.add_argument(
        "--no-markings",
        dest="output_markings",
        action="store_false",
        default=None,
        help="Do not append initial markings to places",
    )
    parser.add_argument(
        "--no-inscriptions",
        dest="output_inscriptions",
        action="store_false",
        default=None,
        help="Do not append inscriptions to arcs",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=None,
        metavar="N",
        help="Capacity of the output queue (default: 0, unbounded)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Log stack traces of failures (same as PNMLSORT_DEBUG=true)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress details",
    )
    return parser


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, debug=bool(args.debug))

    try:
        options = SortOptions.from_env(
            sort_on_id=args.sort_on_id,
            exclude_places=args.exclude_places,
            exclude_transitions=args.exclude_transitions,
            exclude_arcs=args.exclude_arcs,
            output_markings=args.output_markings,
            output_inscriptions=args.output_inscriptions,
            queue_size=args.queue_size,
            debug=args.debug,
        )
    except ValidationError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    if options.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logger.info(
            "Debug mode not set. To log stack traces on errors, set PNMLSORT_DEBUG=true."
        )

    jobs = collect_sources(args.paths)
    if not jobs:
        logger.error("At least the path to one PNML file is expected.")
        return EXIT_USAGE

    result = PnmlSorter(options).sort_files(jobs)
    for source, dest in result.succeeded:
        print(f"{source} -> {dest}")
    for source, error in result.failed.items():
        print(f"FAILED {source}: {error}", file=sys.stderr)

    return EXIT_OK if result.ok else EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
