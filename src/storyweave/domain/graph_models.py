"""Node/connection structures for the visual storylet graph."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from storyweave.core.types import NodeKind

DEFAULT_FROM_HANDLE = "output"
DEFAULT_TO_HANDLE = "input"


@dataclass(frozen=True, slots=True)
class Position:
    x: float
    y: float


@dataclass(slots=True)
class NodeData:
    """Payload carried by a node; ``storylet_id`` links it to stored data."""

    title: str
    storylet_id: str | None = None
    description: str | None = None
    arc_name: str | None = None
    is_entry: bool = False
    is_exit: bool = False


@dataclass(slots=True)
class GraphNode:
    id: str
    kind: NodeKind
    position: Position
    data: NodeData


@dataclass(slots=True)
class Connection:
    """Directed edge between two nodes, presented as choice text."""

    id: str
    from_node_id: str
    to_node_id: str
    from_handle: str = DEFAULT_FROM_HANDLE
    to_handle: str = DEFAULT_TO_HANDLE
    label: str | None = None


@dataclass(frozen=True, slots=True)
class ConnectingState:
    """Provisional state recorded by the first half of a connect gesture."""

    from_node_id: str
    from_handle: str


@dataclass(slots=True)
class ConnectedNodes:
    inputs: List[GraphNode] = field(default_factory=list)
    outputs: List[GraphNode] = field(default_factory=list)
