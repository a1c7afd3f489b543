#!/usr/bin/env python3
"""
pnmlsort Sort & Render Engine

Deterministic ordering and line-oriented rendering of a CanonicalModel.

Output grammar (one tab per nesting level):

    NET <net-name>
    	PAGE <page-id>
    		PLACES
    			<place-name-or-id>[ #<marking>]
    		TRANSITIONS
    			<transition-name-or-id>
    		ARCS
    			<source> <arc-id> <target>[ #<inscription>]
    		PAGE <sub-page-id>

Each scope is rendered as one text block so a consumer can write blocks
as they are produced.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

from .config import SortOptions
from .model import CanonicalModel, Net, NetType, Node, NodeKind, Page


logger = logging.getLogger(__name__)

NL = "\n"
TAB = "\t"
WS = " "
HK = "#"

NET = "NET"
PAGE = "PAGE"
PLACES = "PLACES"
TRANSITIONS = "TRANSITIONS"
ARCS = "ARCS"

_NODE_HEADERS = {NodeKind.PLACE: PLACES, NodeKind.TRANSITION: TRANSITIONS}


def format_line(depth: int, *fields: str, annotation: Optional[int] = None) -> str:
    """
    Format one output line.

    Example:
        >>> format_line(3, "A", "a1", "B", annotation=2)
        '\\t\\t\\tA a1 B #2\\n'
    """
    line = TAB * depth + WS.join(fields)
    if annotation is not None:
        line = f"{line}{WS}{HK}{annotation}"
    return line + NL


class CanonicalRenderer:
    """
    Renders a populated model as canonical text blocks.

    The indentation depth is local to the renderer: it is increased when
    entering a scope and restored when leaving it.
    """

    def __init__(self, model: CanonicalModel, options: Optional[SortOptions] = None):
        self.model = model
        self.options = options if options is not None else SortOptions()
        self._depth = 0

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def sorted_nets(self) -> List[Net]:
        return sorted(self.model.nets, key=lambda net: (net.name, net.id))

    @staticmethod
    def sorted_page_ids(page_ids: List[str]) -> List[str]:
        return sorted(page_ids)

    def sorted_nodes(self, node_ids: List[str]) -> List[Node]:
        """
        Order the places or transitions of one page.

        Name-then-id mode puts named nodes first, by name, followed by the
        unnamed ones by id. Id-priority mode orders all of them by id.
        """
        nodes = [self.model.node(node_id) for node_id in node_ids]
        if self.options.sort_on_id:
            return sorted(nodes, key=lambda node: node.id)

        named = sorted((n for n in nodes if n.name is not None), key=lambda n: (n.name, n.id))
        unnamed = sorted((n for n in nodes if n.name is None), key=lambda n: n.id)
        return named + unnamed

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def blocks(self) -> Iterator[str]:
        """Yield the rendered document, one scope at a time."""
        self._depth = 0
        for net in self.sorted_nets():
            logger.info(f"Exporting net {net.name}.")
            yield format_line(self._depth, NET, net.name)
            yield from self._pages(net.pages, net)

    def _pages(self, page_ids: List[str], net: Net) -> Iterator[str]:
        if not page_ids:
            return
        self._depth += 1
        try:
            for page_id in self.sorted_page_ids(page_ids):
                page = self.model.page(page_id)
                yield format_line(self._depth, PAGE, page.id)
                if not self.options.exclude_places:
                    yield from self._nodes(page, NodeKind.PLACE, net)
                if not self.options.exclude_transitions:
                    yield from self._nodes(page, NodeKind.TRANSITION, net)
                if not self.options.exclude_arcs:
                    yield from self._arcs(page, net)
                yield from self._pages(page.subpages, net)
        finally:
            self._depth -= 1

    def _nodes(self, page: Page, kind: NodeKind, net: Net) -> Iterator[str]:
        node_ids = page.node_ids(kind)
        if not node_ids:
            logger.debug(f"No {kind.value}s to export from page {page.id}.")
            return

        nodes = self.sorted_nodes(node_ids)
        show_markings = (
            kind is NodeKind.PLACE and net.type is NetType.PT and self.options.output_markings
        )
        depth = self._depth + 1
        lines = [format_line(depth, _NODE_HEADERS[kind])]
        for node in nodes:
            label = node.id if self.options.sort_on_id else node.label
            lines.append(
                format_line(depth + 1, label, annotation=node.marking if show_markings else None)
            )
        if not self.options.sort_on_id and nodes[-1].name is None:
            logger.debug(
                f"Page {page.id} has {kind.value}s without name, their ids are sorted after the names."
            )
        yield "".join(lines)

    def _arcs(self, page: Page, net: Net) -> Iterator[str]:
        if not page.arcs:
            logger.debug(f"No arcs to export from page {page.id}.")
            return

        show_inscriptions = net.type is NetType.PT and self.options.output_inscriptions
        depth = self._depth + 1
        lines = [format_line(depth, ARCS)]
        for arc_id in sorted(page.arcs):
            arc = self.model.arc(arc_id)
            lines.append(
                format_line(
                    depth + 1,
                    self.model.resolve_endpoint(arc.source),
                    arc.id,
                    self.model.resolve_endpoint(arc.target),
                    annotation=arc.inscription if show_inscriptions else None,
                )
            )
        yield "".join(lines)


def render_text(model: CanonicalModel, options: Optional[SortOptions] = None) -> str:
    """Render a whole model to a single string."""
    return "".join(CanonicalRenderer(model, options).blocks())


def render_lines(model: CanonicalModel, options: Optional[SortOptions] = None) -> List[str]:
    return render_text(model, options).splitlines()
