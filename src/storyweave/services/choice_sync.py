"""Turns newly drawn graph connections into persisted storylet choices."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Sequence

from storyweave.core.types import SyncStatus
from storyweave.data.repositories import StoryletRepository
from storyweave.domain.defs import ChoiceDef
from storyweave.domain.graph_models import Connection, GraphNode

logger = logging.getLogger(__name__)

DEFAULT_CHOICE_TEXT = "Continue"


@dataclass(slots=True)
class ConnectionCreated:
    """Published once per connection created through the connect gesture."""

    connection: Connection
    nodes: Sequence[GraphNode] = field(default_factory=tuple)


@dataclass(slots=True)
class SyncOutcome:
    connection_id: str
    status: SyncStatus
    storylet_id: str | None = None
    reason: str = ""


class ConnectionChannel:
    """Queue between the graph store and the listener that persists choices.

    Publishing never blocks or fails; messages wait until the listener
    drains them.
    """

    def __init__(self) -> None:
        self._pending: Deque[ConnectionCreated] = deque()

    def publish(self, message: ConnectionCreated) -> None:
        self._pending.append(message)

    def drain(self) -> List[ConnectionCreated]:
        messages = list(self._pending)
        self._pending.clear()
        return messages

    def __len__(self) -> int:
        return len(self._pending)


class ChoiceSyncListener:
    """Consumes ``ConnectionCreated`` messages and appends matching choices."""

    def __init__(self, storylet_repo: StoryletRepository, channel: ConnectionChannel) -> None:
        self._storylet_repo = storylet_repo
        self._channel = channel

    async def process_pending(self) -> List[SyncOutcome]:
        return [await self.handle(message) for message in self._channel.drain()]

    async def handle(self, message: ConnectionCreated) -> SyncOutcome:
        connection = message.connection
        nodes = {node.id: node for node in message.nodes}
        from_node = nodes.get(connection.from_node_id)
        to_node = nodes.get(connection.to_node_id)
        if (
            from_node is None
            or to_node is None
            or not from_node.data.storylet_id
            or not to_node.data.storylet_id
        ):
            return SyncOutcome(connection.id, "skipped", reason="connection does not link two storylets")

        try:
            source = await self._storylet_repo.get(from_node.data.storylet_id)
            target = await self._storylet_repo.get(to_node.data.storylet_id)
            if source is None or target is None:
                return SyncOutcome(connection.id, "skipped", reason="storylet no longer exists")
            if any(choice.next_storylet_id == target.id for choice in source.choices):
                return SyncOutcome(
                    connection.id, "skipped", source.id, reason=f"choice to {target.id} already exists"
                )
            new_choice = ChoiceDef(
                id=connection.id,
                text=connection.label or DEFAULT_CHOICE_TEXT,
                description=f"Go to {target.title}",
                next_storylet_id=target.id,
            )
            await self._storylet_repo.update(source.id, {"choices": [*source.choices, new_choice]})
        except Exception as exc:
            logger.error("Failed to create storylet choice: %s", exc)
            return SyncOutcome(connection.id, "failed", from_node.data.storylet_id, reason=str(exc))
        logger.info("Added choice %s to storylet %s", new_choice.id, source.id)
        return SyncOutcome(connection.id, "created", source.id)
