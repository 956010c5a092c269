"""In-memory storylet graph kept reconcilable with storylet choice data."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, fields, replace
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Sequence

from storyweave.core.types import NodeKind
from storyweave.domain.defs import ArcDef, ChoiceDef, StoryletDef
from storyweave.domain.graph_models import (
    DEFAULT_FROM_HANDLE,
    DEFAULT_TO_HANDLE,
    ConnectedNodes,
    ConnectingState,
    Connection,
    GraphNode,
    NodeData,
    Position,
)
from storyweave.services.choice_sync import DEFAULT_CHOICE_TEXT, ConnectionChannel, ConnectionCreated

logger = logging.getLogger(__name__)

LABEL_LIMIT = 20
LABEL_KEEP = 17

ARC_START_POSITION = Position(50, 200)
ARC_END_POSITION = Position(800, 200)

WriteStorylet = Callable[[str, Mapping[str, object]], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class GridLayout:
    """Row-major grid placement: node ``i`` lands in column ``i % columns``."""

    columns: int = 5
    column_pitch: float = 250
    row_pitch: float = 200
    origin_x: float = 200
    origin_y: float = 100

    def position(self, index: int) -> Position:
        column = index % self.columns
        row = index // self.columns
        return Position(self.origin_x + column * self.column_pitch, self.origin_y + row * self.row_pitch)


ARC_LAYOUT = GridLayout(columns=4, column_pitch=250, row_pitch=200, origin_x=300, origin_y=150)


@dataclass(frozen=True, slots=True)
class GraphSnapshot:
    nodes: tuple[GraphNode, ...]
    connections: tuple[Connection, ...]
    selected_node_id: str | None
    selected_connection_id: str | None
    connecting: ConnectingState | None


@dataclass(slots=True)
class SaveFailure:
    storylet_id: str
    error: str


@dataclass(slots=True)
class SaveReport:
    """Per-storylet result of committing connections back to choices."""

    written: List[str] = field(default_factory=list)
    failures: List[SaveFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


GraphListener = Callable[[GraphSnapshot], None]


def truncate_label(text: str) -> str:
    if len(text) > LABEL_LIMIT:
        return text[:LABEL_KEEP] + "..."
    return text


class GraphStore:
    """Authoritative node/connection graph for the storylet editor.

    Mutations that name an unknown node or connection are silent no-ops so
    that a stale reference held by a UI cannot raise.
    """

    def __init__(
        self,
        *,
        channel: ConnectionChannel | None = None,
        layout: GridLayout | None = None,
    ) -> None:
        self._channel = channel if channel is not None else ConnectionChannel()
        self._layout = layout or GridLayout()
        self._nodes: Dict[str, GraphNode] = {}
        self._connections: Dict[str, Connection] = {}
        self._selected_node_id: str | None = None
        self._selected_connection_id: str | None = None
        self._connecting: ConnectingState | None = None
        self._listeners: List[GraphListener] = []

    @property
    def channel(self) -> ConnectionChannel:
        return self._channel

    @property
    def nodes(self) -> List[GraphNode]:
        return list(self._nodes.values())

    @property
    def connections(self) -> List[Connection]:
        return list(self._connections.values())

    @property
    def selected_node_id(self) -> str | None:
        return self._selected_node_id

    @property
    def selected_connection_id(self) -> str | None:
        return self._selected_connection_id

    @property
    def connecting(self) -> ConnectingState | None:
        return self._connecting

    def get_node(self, node_id: str) -> GraphNode | None:
        return self._nodes.get(node_id)

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def snapshot(self) -> GraphSnapshot:
        """Return a copy of the graph that later mutations do not affect."""
        return GraphSnapshot(
            nodes=tuple(replace(node, data=replace(node.data)) for node in self._nodes.values()),
            connections=tuple(replace(connection) for connection in self._connections.values()),
            selected_node_id=self._selected_node_id,
            selected_connection_id=self._selected_connection_id,
            connecting=self._connecting,
        )

    def subscribe(self, listener: GraphListener) -> Callable[[], None]:
        """Register a change listener; the returned callable unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # Nodes

    def add_node(
        self,
        kind: NodeKind,
        position: Position,
        data: NodeData | None = None,
        *,
        node_id: str | None = None,
    ) -> str:
        node_id = node_id or uuid.uuid4().hex
        self._nodes[node_id] = GraphNode(
            id=node_id,
            kind=kind,
            position=position,
            data=data if data is not None else NodeData(title=""),
        )
        self._notify()
        return node_id

    def update_node(self, node_id: str, patch: Mapping[str, object]) -> None:
        """Shallow-merge ``patch`` into a node.

        Keys may be node fields (``kind``, ``position``, ``data``) or
        ``NodeData`` fields, which are merged into the existing payload.
        ``data`` itself may be a ``NodeData`` or a mapping of its fields.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return
        data_fields = {data_field.name for data_field in fields(NodeData)}
        unknown = sorted(set(patch) - {"kind", "position", "data"} - data_fields)
        data = node.data
        data_patch = {key: value for key, value in patch.items() if key in data_fields}
        if "data" in patch:
            raw_data = patch["data"]
            if isinstance(raw_data, NodeData):
                data = raw_data
            elif isinstance(raw_data, Mapping):
                unknown.extend(sorted(f"data.{key}" for key in set(raw_data) - data_fields))
                data_patch = {**raw_data, **data_patch}
            else:
                raise ValueError("Node data must be NodeData or a mapping of its fields.")
        if unknown:
            raise ValueError(f"Unknown node fields: {', '.join(unknown)}")
        node_patch = {key: value for key, value in patch.items() if key in ("kind", "position")}
        self._nodes[node_id] = replace(node, data=replace(data, **data_patch), **node_patch)
        self._notify()

    def move_node(self, node_id: str, position: Position) -> None:
        node = self._nodes.get(node_id)
        if node is None:
            return
        node.position = position
        self._notify()

    def remove_node(self, node_id: str) -> None:
        """Remove a node together with every connection touching it."""
        if node_id not in self._nodes:
            return
        del self._nodes[node_id]
        incident = [
            connection.id
            for connection in self._connections.values()
            if node_id in (connection.from_node_id, connection.to_node_id)
        ]
        for connection_id in incident:
            del self._connections[connection_id]
        if self._selected_node_id == node_id:
            self._selected_node_id = None
        if self._selected_connection_id in incident:
            self._selected_connection_id = None
        if self._connecting is not None and self._connecting.from_node_id == node_id:
            self._connecting = None
        logger.debug("Removed node %s and %d connections", node_id, len(incident))
        self._notify()

    # Connections

    def validate_connection(self, from_node_id: str, to_node_id: str) -> bool:
        if from_node_id == to_node_id:
            return False
        from_node = self._nodes.get(from_node_id)
        to_node = self._nodes.get(to_node_id)
        if from_node is None or to_node is None:
            return False
        if from_node.kind == "end" or to_node.kind == "start":
            return False
        return not any(
            connection.from_node_id == from_node_id and connection.to_node_id == to_node_id
            for connection in self._connections.values()
        )

    def add_connection(
        self,
        from_node_id: str,
        to_node_id: str,
        *,
        label: str | None = None,
        from_handle: str = DEFAULT_FROM_HANDLE,
        to_handle: str = DEFAULT_TO_HANDLE,
        connection_id: str | None = None,
    ) -> str | None:
        """Create a connection, returning its id, or None when it is not valid."""
        if not self.validate_connection(from_node_id, to_node_id):
            logger.debug("Rejected connection %s -> %s", from_node_id, to_node_id)
            return None
        connection_id = connection_id or uuid.uuid4().hex
        self._connections[connection_id] = Connection(
            id=connection_id,
            from_node_id=from_node_id,
            to_node_id=to_node_id,
            from_handle=from_handle,
            to_handle=to_handle,
            label=label,
        )
        self._notify()
        return connection_id

    def remove_connection(self, connection_id: str) -> None:
        if connection_id not in self._connections:
            return
        del self._connections[connection_id]
        if self._selected_connection_id == connection_id:
            self._selected_connection_id = None
        self._notify()

    def get_connected_nodes(self, node_id: str) -> ConnectedNodes:
        connected = ConnectedNodes()
        for connection in self._connections.values():
            if connection.to_node_id == node_id:
                source = self._nodes.get(connection.from_node_id)
                if source is not None:
                    connected.inputs.append(source)
            if connection.from_node_id == node_id:
                target = self._nodes.get(connection.to_node_id)
                if target is not None:
                    connected.outputs.append(target)
        return connected

    # Selection

    def select_node(self, node_id: str | None) -> None:
        if node_id is not None and node_id not in self._nodes:
            return
        self._selected_node_id = node_id
        self._selected_connection_id = None
        self._notify()

    def select_connection(self, connection_id: str | None) -> None:
        if connection_id is not None and connection_id not in self._connections:
            return
        self._selected_connection_id = connection_id
        self._selected_node_id = None
        self._notify()

    # Connect gesture

    def start_connecting(self, from_node_id: str, handle: str = DEFAULT_FROM_HANDLE) -> None:
        if from_node_id not in self._nodes:
            self._connecting = None
            self._notify()
            return
        self._connecting = ConnectingState(from_node_id=from_node_id, from_handle=handle)
        self._notify()

    def finish_connecting(self, to_node_id: str, handle: str = DEFAULT_TO_HANDLE) -> Connection | None:
        """Complete the gesture; the provisional state is cleared either way."""
        pending = self._connecting
        self._connecting = None
        if pending is None:
            return None
        connection_id = self.add_connection(
            pending.from_node_id,
            to_node_id,
            label=DEFAULT_CHOICE_TEXT,
            from_handle=pending.from_handle,
            to_handle=handle,
        )
        if connection_id is None:
            self._notify()
            return None
        connection = self._connections[connection_id]
        self._channel.publish(ConnectionCreated(connection=replace(connection), nodes=self.snapshot().nodes))
        return connection

    def cancel_connecting(self) -> None:
        self._connecting = None
        self._notify()

    # Layout and bulk operations

    def auto_layout(self) -> None:
        for index, node in enumerate(self._nodes.values()):
            node.position = self._layout.position(index)
        self._notify()

    def load_graph(self, nodes: Iterable[GraphNode], connections: Iterable[Connection]) -> None:
        """Replace the whole graph; selection and gesture state are reset."""
        self._nodes = {node.id: node for node in nodes}
        self._connections = {connection.id: connection for connection in connections}
        self._selected_node_id = None
        self._selected_connection_id = None
        self._connecting = None
        self._notify()

    def clear(self) -> None:
        self.load_graph([], [])

    def build_from_storylets(
        self,
        storylets: Sequence[StoryletDef],
        *,
        arc: ArcDef | None = None,
        arcs: Iterable[ArcDef] = (),
    ) -> None:
        """Rebuild the graph from stored storylets.

        With ``arc`` the view holds only that arc's storylets, framed by a
        start and an end node. Without it every storylet is laid out on the
        store's grid and labelled with the name of its arc.
        """
        self.clear()
        if arc is not None:
            members = [storylet for storylet in storylets if storylet.arc_id == arc.id]
            self.add_node(
                "start",
                ARC_START_POSITION,
                NodeData(title=f"{arc.name} - Start", description=arc.description, is_entry=True),
            )
            for index, storylet in enumerate(members):
                self.add_node("storylet", ARC_LAYOUT.position(index), self._storylet_data(storylet, arc.name))
            self.add_node(
                "end",
                ARC_END_POSITION,
                NodeData(title=f"{arc.name} - End", description=arc.description, is_exit=True),
            )
        else:
            members = list(storylets)
            arc_names = {known.id: known.name for known in arcs}
            for index, storylet in enumerate(members):
                if storylet.arc_id is None:
                    arc_name = "No Arc"
                else:
                    arc_name = arc_names.get(storylet.arc_id, "Unknown Arc")
                self.add_node("storylet", self._layout.position(index), self._storylet_data(storylet, arc_name))
        self.create_connections_from_storylet_choices(members)

    @staticmethod
    def _storylet_data(storylet: StoryletDef, arc_name: str) -> NodeData:
        return NodeData(
            title=storylet.title,
            storylet_id=storylet.id,
            description=storylet.description,
            arc_name=arc_name,
        )

    def create_connections_from_storylet_choices(self, storylets: Iterable[StoryletDef]) -> List[str]:
        """Derive connections from choices that name a follow-on storylet.

        Only pairs that pass ``validate_connection`` are added, so running
        this repeatedly never duplicates a connection.
        """
        node_by_storylet: Dict[str, str] = {}
        for node in self._nodes.values():
            if node.data.storylet_id and node.data.storylet_id not in node_by_storylet:
                node_by_storylet[node.data.storylet_id] = node.id
        created: List[str] = []
        for storylet in storylets:
            from_node_id = node_by_storylet.get(storylet.id)
            if from_node_id is None:
                continue
            for choice in storylet.choices:
                if not choice.next_storylet_id:
                    continue
                to_node_id = node_by_storylet.get(choice.next_storylet_id)
                if to_node_id is None:
                    continue
                connection_id = self.add_connection(
                    from_node_id, to_node_id, label=truncate_label(choice.text)
                )
                if connection_id is not None:
                    created.append(connection_id)
        if created:
            logger.debug("Derived %d connections from storylet choices", len(created))
        return created

    async def save_connections_to_storylet_choices(self, write_storylet: WriteStorylet) -> SaveReport:
        """Replace each origin storylet's choices with its outgoing connections.

        ``write_storylet(storylet_id, patch)`` is awaited once per origin
        storylet; a failed write is reported and the remaining storylets are
        still written.
        """
        outgoing: Dict[str, List[Connection]] = {}
        for connection in self._connections.values():
            from_node = self._nodes.get(connection.from_node_id)
            if from_node is None or not from_node.data.storylet_id:
                continue
            outgoing.setdefault(from_node.data.storylet_id, []).append(connection)

        report = SaveReport()
        for storylet_id, connections in outgoing.items():
            choices = [self._choice_for(connection, index) for index, connection in enumerate(connections)]
            try:
                await write_storylet(storylet_id, {"choices": choices})
            except Exception as exc:
                logger.error("Failed to save choices for storylet %s: %s", storylet_id, exc)
                report.failures.append(SaveFailure(storylet_id, str(exc)))
                continue
            report.written.append(storylet_id)
        return report

    def _choice_for(self, connection: Connection, index: int) -> ChoiceDef:
        to_node = self._nodes.get(connection.to_node_id)
        return ChoiceDef(
            id=connection.id,
            text=connection.label or f"Go to connected storylet {index + 1}",
            description="Connection to storylet",
            probability=100,
            unlocked=True,
            next_storylet_id=to_node.data.storylet_id if to_node is not None else None,
        )
