#!/usr/bin/env python3
"""
pnmlsort Canonical Model

In-memory representation of the nets, pages, places, transitions and arcs
extracted from one PNML document.

A model instance is owned by the processing of a single input file. It is
populated by the walker, read by the renderer, and discarded afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from .exceptions import StructuralError


# ============================================================================
# Enumerations
# ============================================================================

class NetType(Enum):
    """Petri net flavours distinguished by the net `type` attribute."""
    PT = "ptnet"
    SYMMETRIC = "symmetricnet"
    OTHER = "other"

    @classmethod
    def from_uri(cls, type_uri: Optional[str]) -> "NetType":
        """Classify a net type URI by its suffix."""
        if type_uri:
            uri = type_uri.strip()
            for candidate in (cls.PT, cls.SYMMETRIC):
                if uri.endswith(candidate.value):
                    return candidate
        return cls.OTHER


class NodeKind(Enum):
    PLACE = "place"
    TRANSITION = "transition"


# ============================================================================
# Entities
# ============================================================================

@dataclass
class Node:
    """
    A place or a transition.

    Attributes:
        id: PNML element id
        kind: Place or transition
        name: Display name, None when the element has no name/text
        marking: Initial marking, only set for places of P/T nets when > 0
    """
    id: str
    kind: NodeKind
    name: Optional[str] = None
    marking: Optional[int] = None

    @property
    def label(self) -> str:
        """Name if known, else id."""
        return self.name if self.name is not None else self.id


@dataclass
class Arc:
    """
    An arc between a place and a transition.

    Attributes:
        id: PNML element id
        source: Source node id
        target: Target node id
        inscription: Arc weight, only set for P/T nets when > 1
    """
    id: str
    source: str
    target: str
    inscription: Optional[int] = None


@dataclass
class Page:
    """A page and the ids of everything it directly contains."""
    id: str
    places: List[str] = field(default_factory=list)
    transitions: List[str] = field(default_factory=list)
    arcs: List[str] = field(default_factory=list)
    subpages: List[str] = field(default_factory=list)

    def node_ids(self, kind: NodeKind) -> List[str]:
        return self.places if kind is NodeKind.PLACE else self.transitions


@dataclass
class Net:
    """A top-level Petri net and its first-level page ids."""
    id: str
    name: str
    type: NetType = NetType.OTHER
    pages: List[str] = field(default_factory=list)


# ============================================================================
# Model
# ============================================================================

class CanonicalModel:
    """
    Container for everything extracted from one PNML document.

    Nodes are indexed by id; the name index maps ids of named nodes to their
    display name, and unnamed node ids are kept in a separate set. Arcs
    resolve their endpoints through that index.
    """

    def __init__(self):
        self._nets: Dict[str, Net] = {}
        self._pages: Dict[str, Page] = {}
        self._nodes: Dict[str, Node] = {}
        self._arcs: Dict[str, Arc] = {}
        self._names: Dict[str, str] = {}
        self._unnamed: Set[str] = set()

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def add_net(self, net_id: str, name: str, net_type: NetType = NetType.OTHER) -> Net:
        net = self._nets.get(net_id)
        if net is None:
            net = Net(id=net_id, name=name, type=net_type)
            self._nets[net_id] = net
        return net

    def add_page(
        self,
        page_id: str,
        parent_id: Optional[str] = None,
        net_id: Optional[str] = None,
    ) -> Page:
        """
        Register a page under a net (first level) or a parent page.

        Args:
            page_id: The page id
            parent_id: Id of the enclosing page, for sub-pages
            net_id: Id of the enclosing net, for first-level pages
        """
        page = self._pages.get(page_id)
        if page is None:
            page = Page(id=page_id)
            self._pages[page_id] = page

        if parent_id is not None:
            siblings = self._require_page(parent_id).subpages
        elif net_id is not None:
            siblings = self._require_net(net_id).pages
        else:
            siblings = None

        if siblings is not None and page_id not in siblings:
            siblings.append(page_id)
        return page

    def add_node(
        self,
        page_id: str,
        kind: NodeKind,
        node_id: str,
        name: Optional[str] = None,
        marking: Optional[int] = None,
    ) -> Node:
        page = self._require_page(page_id)
        node = Node(id=node_id, kind=kind, name=name, marking=marking)
        if node_id not in self._nodes:
            page.node_ids(kind).append(node_id)
        self._nodes[node_id] = node

        if name is not None:
            self._names[node_id] = name
            self._unnamed.discard(node_id)
        else:
            self._names.pop(node_id, None)
            self._unnamed.add(node_id)
        return node

    def add_arc(
        self,
        page_id: str,
        arc_id: str,
        source: str,
        target: str,
        inscription: Optional[int] = None,
    ) -> Arc:
        page = self._require_page(page_id)
        if arc_id not in self._arcs:
            page.arcs.append(arc_id)
        arc = Arc(id=arc_id, source=source, target=target, inscription=inscription)
        self._arcs[arc_id] = arc
        return arc

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def nets(self) -> List[Net]:
        return list(self._nets.values())

    def net(self, net_id: str) -> Net:
        return self._require_net(net_id)

    def page(self, page_id: str) -> Page:
        return self._require_page(page_id)

    def node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise StructuralError(f"Unknown place or transition: {node_id}") from None

    def arc(self, arc_id: str) -> Arc:
        try:
            return self._arcs[arc_id]
        except KeyError:
            raise StructuralError(f"Unknown arc: {arc_id}") from None

    def display_name(self, node_id: str) -> Optional[str]:
        """Name of a named node, None for unnamed or unknown ids."""
        return self._names.get(node_id)

    def is_unnamed(self, node_id: str) -> bool:
        return node_id in self._unnamed

    def resolve_endpoint(self, node_id: str) -> str:
        """
        Resolve an arc endpoint to its display label.

        Raises:
            StructuralError: If the id is neither a known place nor transition
        """
        name = self._names.get(node_id)
        if name is not None:
            return name
        if node_id in self._unnamed:
            return node_id
        raise StructuralError(
            f"Arc endpoint {node_id} does not resolve to a place or a transition"
        )

    def clear(self) -> None:
        """Drop every collection."""
        self._nets.clear()
        self._pages.clear()
        self._nodes.clear()
        self._arcs.clear()
        self._names.clear()
        self._unnamed.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_net(self, net_id: str) -> Net:
        try:
            return self._nets[net_id]
        except KeyError:
            raise StructuralError(f"Unknown net: {net_id}") from None

    def _require_page(self, page_id: str) -> Page:
        try:
            return self._pages[page_id]
        except KeyError:
            raise StructuralError(f"Unknown page: {page_id}") from None
