#!/usr/bin/env python3
"""
pnmlsort XML Cursor Walker

Streaming traversal of a PNML document. The document is read with
lxml's iterparse; each top-level net is handed over as soon as its end tag
has been parsed, walked depth-first through a NodeCursor, then released so
memory stays bounded by the largest net rather than the whole file.

Two passes are made over the source:
    1. detect_net_type() classifies the document (P/T, symmetric, other)
    2. PnmlWalker.walk() populates a CanonicalModel
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Set, Tuple, Union

from lxml import etree

from .exceptions import ParseError, PnmlIOError, StructuralError, UnsupportedConstructError
from .model import CanonicalModel, NetType, NodeKind


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Tags, compared on local name so any PNML grammar namespace is accepted
NET = "net"
PAGE = "page"
PLACE = "place"
TRANSITION = "transition"
ARC = "arc"
NAME = "name"
MARKING = "initialMarking"
INSCRIPTION = "inscription"
REFERENCE_PLACE = "referenceplace"
REFERENCE_TRANSITION = "referencetransition"

ID_ATTR = "id"
SRC_ATTR = "source"
TRG_ATTR = "target"
TYPE_ATTR = "type"


def _child_text_path(tag: str) -> etree.XPath:
    return etree.XPath(
        f"./*[local-name()='{tag}'][1]/*[local-name()='text'][1]"
    )


NAME_TEXT = _child_text_path(NAME)
MARKING_TEXT = _child_text_path(MARKING)
INSCRIPTION_TEXT = _child_text_path(INSCRIPTION)


# ============================================================================
# Cursor
# ============================================================================

class NodeCursor:
    """
    Read-only position on one element of the document.

    Descending into a child yields a new cursor; nothing is shared between
    cursors, so recursion returns to the parent simply by returning.
    """

    __slots__ = ("_element",)

    def __init__(self, element: etree._Element):
        self._element = element

    @property
    def tag(self) -> str:
        return etree.QName(self._element).localname

    @property
    def line(self) -> int:
        return self._element.sourceline or 0

    def matches(self, tag: str) -> bool:
        return self.tag.lower() == tag.lower()

    def attr(self, name: str) -> Optional[str]:
        return self._element.get(name)

    def require_attr(self, name: str) -> str:
        value = self._element.get(name)
        if value is None or not value.strip():
            raise StructuralError(
                f"<{self.tag}> element near line {self.line} has no '{name}' attribute"
            )
        return value.strip()

    def children(self) -> Iterator["NodeCursor"]:
        for child in self._element:
            if isinstance(child.tag, str):
                yield NodeCursor(child)

    def first(self, tag: str) -> Optional["NodeCursor"]:
        for child in self.children():
            if child.matches(tag):
                return child
        return None

    def text_of(self, query: etree.XPath) -> Optional[str]:
        """
        Evaluate a compiled query and return the trimmed text of its first hit.

        Returns None when the query selects nothing.
        """
        try:
            hits = query(self._element)
        except etree.XPathError as e:
            raise ParseError(f"Cannot evaluate {query.path!r}: {e}", self.line) from e
        if not hits:
            return None
        hit = hits[0]
        if isinstance(hit, str):
            return hit.strip()
        return "".join(hit.itertext()).strip()

    def __repr__(self) -> str:
        return f"NodeCursor(<{self.tag} id={self.attr(ID_ATTR)!r}> line {self.line})"


# ============================================================================
# Streaming
# ============================================================================

def _iterparse(source: PathLike, events: Tuple[str, ...]) -> Iterator[Tuple[str, etree._Element]]:
    """Stream parse events, translating lxml and OS failures."""
    try:
        context = etree.iterparse(
            str(source),
            events=events,
            remove_comments=True,
            remove_pis=True,
            huge_tree=True,
        )
        for event, element in context:
            yield event, element
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed XML in {source}: {e.msg}", getattr(e, "lineno", 0) or 0) from e
    except OSError as e:
        raise PnmlIOError(f"Cannot read {source}: {e}") from e


def _release(element: etree._Element) -> None:
    """Free a processed element and the siblings parsed before it."""
    element.clear(keep_tail=True)
    parent = element.getparent()
    if parent is not None:
        while element.getprevious() is not None:
            del parent[0]


def iter_nets(source: PathLike) -> Iterator[NodeCursor]:
    """
    Yield a cursor on each top-level net, in document order.

    A net's subtree is only valid until the next one is requested.
    """
    for _, element in _iterparse(source, ("end",)):
        if etree.QName(element).localname != NET:
            continue
        yield NodeCursor(element)
        _release(element)


def detect_net_type(source: PathLike) -> NetType:
    """
    Classify the document by the type attribute of its nets.

    The first net whose type ends with a known suffix decides. Documents
    without such a net are classified OTHER.
    """
    for event, element in _iterparse(source, ("start", "end")):
        if event == "end":
            if etree.QName(element).localname == NET:
                _release(element)
            continue
        if etree.QName(element).localname != NET:
            continue
        type_uri = element.get(TYPE_ATTR)
        logger.info(f"Discovered net type: {type_uri}")
        net_type = NetType.from_uri(type_uri)
        if net_type is not NetType.OTHER:
            return net_type

    logger.warning(
        "For now only P/T and Symmetric nets are supported. Others are handled on a best effort basis."
    )
    return NetType.OTHER


# ============================================================================
# Walker
# ============================================================================

class PnmlWalker:
    """
    Populates a CanonicalModel from a PNML file.

    Example:
        >>> model = PnmlWalker("model.pnml").walk()
        >>> [net.name for net in model.nets]
        ['N1']
    """

    def __init__(
        self,
        source: PathLike,
        model: Optional[CanonicalModel] = None,
        net_type: Optional[NetType] = None,
    ):
        self.source = source
        self.model = model if model is not None else CanonicalModel()
        self.net_type = net_type
        self._warned: Set[str] = set()

    def walk(self) -> CanonicalModel:
        if self.net_type is None:
            self.net_type = detect_net_type(self.source)

        for cursor in iter_nets(self.source):
            self._visit_net(cursor)

        if not self.model.nets:
            logger.warning(f"No net found in {self.source}")
        return self.model

    # ------------------------------------------------------------------
    # Nets and pages
    # ------------------------------------------------------------------

    def _visit_net(self, cursor: NodeCursor) -> None:
        net_id = cursor.attr(ID_ATTR)
        name = cursor.text_of(NAME_TEXT) or None
        if name is None and net_id is None:
            raise StructuralError(f"Net near line {cursor.line} has neither a name nor an id")
        net_id = net_id or name
        net = self.model.add_net(net_id, name or net_id, self.net_type)
        logger.info(f"Extracting net {net.name}.")

        pages = [child for child in cursor.children() if child.matches(PAGE)]
        if not pages:
            raise StructuralError(
                f"Net {net.name} has no inner page. It is not standard-compliant."
            )
        for page in pages:
            page_id = page.require_attr(ID_ATTR)
            self.model.add_page(page_id, net_id=net.id)
            self._visit_page(page, page_id)

    def _visit_page(self, cursor: NodeCursor, page_id: str) -> None:
        for child in cursor.children():
            self._dispatch(child, page_id)

    def _dispatch(self, cursor: NodeCursor, page_id: str) -> None:
        tag = cursor.tag.lower()
        if tag == PLACE:
            self._visit_node(cursor, page_id, NodeKind.PLACE)
        elif tag == TRANSITION:
            self._visit_node(cursor, page_id, NodeKind.TRANSITION)
        elif tag == ARC:
            self._visit_arc(cursor, page_id)
        elif tag == PAGE:
            subpage_id = cursor.require_attr(ID_ATTR)
            self.model.add_page(subpage_id, parent_id=page_id)
            self._visit_page(cursor, subpage_id)
        elif tag == REFERENCE_PLACE:
            raise UnsupportedConstructError(
                f"Reference places are not supported (line {cursor.line})"
            )
        elif tag == REFERENCE_TRANSITION:
            raise UnsupportedConstructError(
                f"Reference transitions are not supported (line {cursor.line})"
            )
        elif tag == NAME:
            # Page names are optional, nothing relies on them
            logger.debug(f"Ignoring name of page {page_id}")
        else:
            raise StructuralError(
                f"Unknown (or unsupported) PNML node type at this level: <{cursor.tag}> "
                f"in page {page_id} (line {cursor.line})"
            )

    # ------------------------------------------------------------------
    # Nodes and arcs
    # ------------------------------------------------------------------

    def _visit_node(self, cursor: NodeCursor, page_id: str, kind: NodeKind) -> None:
        node_id = cursor.require_attr(ID_ATTR)
        name = cursor.text_of(NAME_TEXT) or None
        marking = None
        if kind is NodeKind.PLACE:
            marking = self._annotation(cursor, MARKING_TEXT, MARKING, minimum=0, default=0)
        self.model.add_node(page_id, kind, node_id, name=name, marking=marking)

    def _visit_arc(self, cursor: NodeCursor, page_id: str) -> None:
        arc_id = cursor.require_attr(ID_ATTR)
        source = cursor.require_attr(SRC_ATTR)
        target = cursor.require_attr(TRG_ATTR)
        inscription = self._annotation(cursor, INSCRIPTION_TEXT, INSCRIPTION, minimum=1, default=1)
        self.model.add_arc(page_id, arc_id, source, target, inscription=inscription)

    def _annotation(
        self,
        cursor: NodeCursor,
        query: etree.XPath,
        tag: str,
        minimum: int,
        default: int,
    ) -> Optional[int]:
        """
        Read an integer annotation (marking, inscription) of a P/T net.

        Returns None when absent, equal to the default, or when the net type
        does not give the annotation an integer meaning.
        """
        if cursor.first(tag) is None:
            return None

        if self.net_type is not NetType.PT:
            self._warn_once(tag)
            return None

        raw = cursor.text_of(query)
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            raise ParseError(
                f"Invalid {tag} {raw!r} on {cursor.attr(ID_ATTR)}", cursor.line
            ) from None
        if value < minimum:
            raise ParseError(
                f"{tag} of {cursor.attr(ID_ATTR)} must be at least {minimum}, got {value}",
                cursor.line,
            )
        return value if value > default else None

    def _warn_once(self, tag: str) -> None:
        if tag in self._warned:
            return
        self._warned.add(tag)
        if self.net_type is NetType.SYMMETRIC:
            logger.warning(f"{tag} is not yet interpreted for Symmetric nets.")
        else:
            logger.warning(f"{tag} is not interpreted for this net type.")


def walk(source: PathLike, model: Optional[CanonicalModel] = None) -> CanonicalModel:
    """Convenience wrapper: detect the net type and populate a model."""
    return PnmlWalker(source, model).walk()
