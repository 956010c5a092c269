import asyncio
import logging

from storyweave.data.repositories import StoryletRepository
from storyweave.domain.graph_models import NodeData, Position
from storyweave.services.choice_sync import ChoiceSyncListener, ConnectionChannel
from storyweave.services.graph_store import GraphStore


def _repo() -> StoryletRepository:
    return StoryletRepository(
        payload={
            "dorm": {
                "title": "Dorm",
                "choices": [{"id": "to-cafe", "text": "Get coffee", "next_storylet_id": "cafe"}],
            },
            "cafe": {"title": "Cafe"},
            "library": {"title": "Library"},
        }
    )


def _graph(channel: ConnectionChannel) -> tuple[GraphStore, dict[str, str]]:
    store = GraphStore(channel=channel)
    node_ids = {
        storylet_id: store.add_node(
            "storylet", Position(0, 0), NodeData(title=storylet_id.title(), storylet_id=storylet_id)
        )
        for storylet_id in ("dorm", "cafe", "library")
    }
    node_ids["start"] = store.add_node("start", Position(0, 0), NodeData(title="Start"))
    return store, node_ids


def _connect(store: GraphStore, from_id: str, to_id: str):
    store.start_connecting(from_id)
    return store.finish_connecting(to_id)


def test_new_connection_becomes_choice() -> None:
    repo = _repo()
    channel = ConnectionChannel()
    store, nodes = _graph(channel)
    listener = ChoiceSyncListener(repo, channel)

    connection = _connect(store, nodes["dorm"], nodes["library"])
    assert connection is not None
    outcomes = asyncio.run(listener.process_pending())

    assert [(outcome.status, outcome.storylet_id) for outcome in outcomes] == [("created", "dorm")]
    dorm = asyncio.run(repo.get("dorm"))
    assert dorm is not None
    added = dorm.choices[-1]
    assert [choice.id for choice in dorm.choices] == ["to-cafe", connection.id]
    assert added.text == "Continue"
    assert added.description == "Go to Library"
    assert added.next_storylet_id == "library"
    assert len(channel) == 0


def test_existing_choice_to_target_is_not_duplicated() -> None:
    repo = _repo()
    channel = ConnectionChannel()
    store, nodes = _graph(channel)
    listener = ChoiceSyncListener(repo, channel)

    _connect(store, nodes["dorm"], nodes["cafe"])
    outcomes = asyncio.run(listener.process_pending())

    assert outcomes[0].status == "skipped"
    dorm = asyncio.run(repo.get("dorm"))
    assert dorm is not None and len(dorm.choices) == 1


def test_nodes_without_storylets_are_skipped() -> None:
    repo = _repo()
    channel = ConnectionChannel()
    store, nodes = _graph(channel)
    listener = ChoiceSyncListener(repo, channel)

    assert _connect(store, nodes["start"], nodes["library"]) is not None
    outcomes = asyncio.run(listener.process_pending())

    assert outcomes[0].status == "skipped"
    library = asyncio.run(repo.get("library"))
    assert library is not None and library.choices == []


def test_update_failure_is_logged_and_reported(caplog) -> None:
    class ReadOnlyRepo(StoryletRepository):
        async def update(self, record_id, patch) -> None:
            raise RuntimeError("read only")

    repo = ReadOnlyRepo(payload={"a": {"title": "A"}, "b": {"title": "B"}})
    channel = ConnectionChannel()
    store = GraphStore(channel=channel)
    a = store.add_node("storylet", Position(0, 0), NodeData(title="A", storylet_id="a"))
    b = store.add_node("storylet", Position(0, 0), NodeData(title="B", storylet_id="b"))
    _connect(store, a, b)

    with caplog.at_level(logging.ERROR):
        outcomes = asyncio.run(ChoiceSyncListener(repo, channel).process_pending())

    assert outcomes[0].status == "failed"
    assert outcomes[0].reason == "read only"
    assert "Failed to create storylet choice" in caplog.text


def test_messages_wait_until_processed() -> None:
    channel = ConnectionChannel()
    store, nodes = _graph(channel)
    _connect(store, nodes["dorm"], nodes["library"])
    _connect(store, nodes["cafe"], nodes["library"])
    assert len(channel) == 2
    assert store.connections[0].id == channel.drain()[0].connection.id
    assert len(channel) == 0
