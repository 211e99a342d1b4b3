"""Tests for the JSONL node store."""
import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from nodebook.models.node import CreateNodeOptions, NodeUpdate
from nodebook.store.exceptions import NodeNotFoundError, PathValidationError, StorageError
from nodebook.store.jsonl_store import NodeStore
from nodebook.tags.service import TagService


@pytest.fixture
def data_path(tmp_path):
    """Path of a node log inside a not yet existing directory."""
    return tmp_path / "data" / "nodes.jsonl"


@pytest.fixture
def store(data_path):
    """Create a node store without automatic tagging."""
    return NodeStore(data_path, auto_tag=False)


def mock_tag_service(tags):
    """Tag service whose generate_tags returns fixed tags."""
    service = MagicMock(spec=TagService)
    service.generate_tags = AsyncMock(return_value=tags)
    return service


def read_lines(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


@pytest.mark.asyncio
async def test_initialize_creates_log(store, data_path):
    """Test that initialize creates the directory and an empty log."""
    await store.initialize()

    assert data_path.exists()
    assert data_path.read_text() == ""

    # Idempotent and non-destructive
    await store.create(CreateNodeOptions(raw_text="keep me"))
    await store.initialize()
    assert len(read_lines(data_path)) == 1


@pytest.mark.asyncio
async def test_initialize_invalid_directory(tmp_path):
    """Test that an unusable data directory is reported."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = NodeStore(blocker / "sub" / "nodes.jsonl", auto_tag=False)

    with pytest.raises(PathValidationError) as exc_info:
        await store.initialize()

    assert exc_info.value.path == str(blocker / "sub")


@pytest.mark.asyncio
async def test_create_and_get_round_trip(store, data_path):
    """Test that get returns the node create returned."""
    await store.initialize()
    created = await store.create(
        CreateNodeOptions(raw_text="python tutorial", tags=["python"], metadata={"title": "Intro"})
    )

    fetched = await store.get(created.id)

    assert fetched == created
    assert fetched.tags == ["python"]
    assert read_lines(data_path) == [created.to_json_dict()]


@pytest.mark.asyncio
async def test_append_durability(store, data_path):
    """Test that every created node is found after a fresh load."""
    await store.initialize()
    created = [await store.create(CreateNodeOptions(raw_text=f"note {i}")) for i in range(5)]

    fresh = NodeStore(data_path, auto_tag=False)
    await fresh.load()
    ids = [node.id for node in await fresh.list()]

    assert sorted(ids) == sorted(node.id for node in created)
    assert len(ids) == len(set(ids))


@pytest.mark.asyncio
async def test_append_after_unterminated_line(data_path):
    """Test that a create after a last line without newline keeps both nodes."""
    data_path.parent.mkdir(parents=True)
    existing = {"id": "n1", "timestamp": 1, "raw_text": "hand edited", "tags": []}
    data_path.write_text(json.dumps(existing), encoding="utf-8")
    store = NodeStore(data_path, auto_tag=False)

    created = await store.create(CreateNodeOptions(raw_text="appended"))

    fresh = NodeStore(data_path, auto_tag=False)
    assert [node.id for node in await fresh.list()] == ["n1", created.id]
    assert data_path.read_text(encoding="utf-8").endswith("\n")


@pytest.mark.asyncio
async def test_idempotent_load(store, data_path):
    """Test that two fresh stores load identical node sets."""
    await store.initialize()
    for text in ("alpha", "beta", "gamma"):
        await store.create(CreateNodeOptions(raw_text=text, tags=[text]))

    first = NodeStore(data_path, auto_tag=False)
    second = NodeStore(data_path, auto_tag=False)
    await first.load()
    await second.load()
    await second.load()

    assert await first.list() == await second.list()


@pytest.mark.asyncio
async def test_load_skips_malformed_lines(data_path):
    """Test tolerance of blank, invalid and incomplete lines."""
    data_path.parent.mkdir(parents=True)
    good = {"id": "n1", "timestamp": 1, "raw_text": "ok", "tags": []}
    data_path.write_text(
        json.dumps(good) + "\n"
        + "not json at all\n"
        + "\n"
        + json.dumps({"id": "n2"}) + "\n"
        + "   \n",
        encoding="utf-8",
    )
    store = NodeStore(data_path, auto_tag=False)

    await store.load()

    nodes = await store.list()
    assert [node.id for node in nodes] == ["n1"]


@pytest.mark.asyncio
async def test_list_and_count_load_lazily(store, data_path):
    """Test implicit loading on first read."""
    await store.initialize()
    await store.create(CreateNodeOptions(raw_text="one"))
    await store.create(CreateNodeOptions(raw_text="two"))

    fresh = NodeStore(data_path, auto_tag=False)

    assert await fresh.count() == 2
    assert [node.raw_text for node in await fresh.list()] == ["one", "two"]


@pytest.mark.asyncio
async def test_missing_log_reads_as_empty(store):
    """Test reading before the log exists."""
    assert await store.list() == []
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_update(store, data_path):
    """Test a partial update."""
    await store.initialize()
    node = await store.create(CreateNodeOptions(raw_text="draft", tags=["todo"], metadata={"v": 1}))

    updated = await store.update(node.id, NodeUpdate(raw_text="final"))

    assert updated.id == node.id
    assert updated.timestamp == node.timestamp
    assert updated.raw_text == "final"
    assert updated.tags == ["todo"]
    assert updated.metadata == {"v": 1}

    fresh = NodeStore(data_path, auto_tag=False)
    assert await fresh.get(node.id) == updated


@pytest.mark.asyncio
async def test_update_accepts_dict(store):
    """Test updates given as a plain dict."""
    await store.initialize()
    node = await store.create(CreateNodeOptions(raw_text="x"))

    updated = await store.update(node.id, {"tags": ["a", "a", "b"], "metadata": {"k": "v"}})

    assert updated.tags == ["a", "b"]
    assert updated.metadata == {"k": "v"}
    assert updated.raw_text == "x"


@pytest.mark.asyncio
async def test_update_clears_metadata(store, data_path):
    """Test that an explicit None clears metadata but not text or tags."""
    await store.initialize()
    node = await store.create(CreateNodeOptions(raw_text="x", tags=["a"], metadata={"k": "v"}))

    updated = await store.update(node.id, {"metadata": None, "tags": None, "raw_text": None})

    assert updated.metadata is None
    assert updated.tags == ["a"]
    assert updated.raw_text == "x"
    assert "metadata" not in read_lines(data_path)[0]


@pytest.mark.asyncio
async def test_update_preserves_order(store, data_path):
    """Test that a rewrite keeps the other nodes in place."""
    await store.initialize()
    nodes = [await store.create(CreateNodeOptions(raw_text=t)) for t in ("a", "b", "c")]

    await store.update(nodes[1].id, {"raw_text": "B"})

    assert [line["raw_text"] for line in read_lines(data_path)] == ["a", "B", "c"]
    assert not data_path.with_name("nodes.jsonl.tmp").exists()


@pytest.mark.asyncio
async def test_update_missing_node(store):
    """Test updating an unknown id."""
    await store.initialize()

    with pytest.raises(NodeNotFoundError) as exc_info:
        await store.update("missing", {"raw_text": "x"})

    assert exc_info.value.node_id == "missing"


@pytest.mark.asyncio
async def test_delete_then_get(store, data_path):
    """Test that deleted nodes are gone from memory and disk."""
    await store.initialize()
    keep = await store.create(CreateNodeOptions(raw_text="keep"))
    drop = await store.create(CreateNodeOptions(raw_text="drop"))

    await store.delete(drop.id)

    with pytest.raises(NodeNotFoundError):
        await store.get(drop.id)
    assert [node.id for node in await store.list()] == [keep.id]

    fresh = NodeStore(data_path, auto_tag=False)
    assert [node.id for node in await fresh.list()] == [keep.id]


@pytest.mark.asyncio
async def test_delete_missing_node(store):
    """Test deleting an unknown id."""
    await store.initialize()

    with pytest.raises(NodeNotFoundError):
        await store.delete("missing")


@pytest.mark.asyncio
async def test_create_generates_tags(data_path):
    """Test automatic tagging of untagged nodes."""
    service = mock_tag_service(["#python", "#asyncio"])
    store = NodeStore(data_path, tag_service=service)
    await store.initialize()

    node = await store.create(CreateNodeOptions(raw_text="event loops", metadata={"source": "a.py"}))

    assert node.tags == ["#python", "#asyncio"]
    service.generate_tags.assert_awaited_once_with("event loops", {"source": "a.py"})


@pytest.mark.asyncio
async def test_create_keeps_given_tags(data_path):
    """Test that explicit tags skip generation."""
    service = mock_tag_service(["#generated"])
    store = NodeStore(data_path, tag_service=service)
    await store.initialize()

    node = await store.create(CreateNodeOptions(raw_text="x", tags=["mine"]))

    assert node.tags == ["mine"]
    service.generate_tags.assert_not_called()


@pytest.mark.asyncio
async def test_create_without_auto_tag(data_path):
    """Test that auto_tag=False never calls the tag service."""
    service = mock_tag_service(["#generated"])
    store = NodeStore(data_path, tag_service=service, auto_tag=False)
    await store.initialize()

    node = await store.create(CreateNodeOptions(raw_text="x"))

    assert node.tags == []
    service.generate_tags.assert_not_called()


@pytest.mark.asyncio
async def test_update_regenerates_tags(data_path):
    """Test tag regeneration when only the text changes."""
    service = mock_tag_service(["#fresh"])
    store = NodeStore(data_path, tag_service=service)
    await store.initialize()
    node = await store.create(CreateNodeOptions(raw_text="old", tags=["stale"]))

    unchanged = await store.update(node.id, {"raw_text": "old"})
    assert unchanged.tags == ["stale"]
    service.generate_tags.assert_not_called()

    retagged = await store.update(node.id, {"raw_text": "new"})
    assert retagged.tags == ["#fresh"]

    explicit = await store.update(node.id, {"raw_text": "newer", "tags": ["chosen"]})
    assert explicit.tags == ["chosen"]
    assert service.generate_tags.await_count == 1


@pytest.mark.asyncio
async def test_create_write_failure(store):
    """Test that a failed append leaves the node out of the store."""
    await store.initialize()
    await store.create(CreateNodeOptions(raw_text="first"))

    with patch.object(store, "_append_line", side_effect=OSError("disk full")):
        with pytest.raises(StorageError) as exc_info:
            await store.create(CreateNodeOptions(raw_text="second"))

    assert isinstance(exc_info.value.cause, OSError)
    assert "disk full" in str(exc_info.value)
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_rewrite_failure_keeps_state(store, data_path):
    """Test that a failed rewrite changes neither memory nor disk."""
    await store.initialize()
    node = await store.create(CreateNodeOptions(raw_text="original"))

    with patch("nodebook.store.jsonl_store.write_log", side_effect=OSError("read-only")):
        with pytest.raises(StorageError):
            await store.update(node.id, {"raw_text": "changed"})
        with pytest.raises(StorageError):
            await store.delete(node.id)

    assert (await store.get(node.id)).raw_text == "original"
    assert read_lines(data_path)[0]["raw_text"] == "original"


@pytest.mark.asyncio
async def test_concurrent_creates(store, data_path):
    """Test that concurrent creates are all persisted."""
    await store.initialize()

    await asyncio.gather(*[
        store.create(CreateNodeOptions(raw_text=f"note {i}")) for i in range(20)
    ])

    assert len(read_lines(data_path)) == 20
    fresh = NodeStore(data_path, auto_tag=False)
    assert await fresh.count() == 20


@pytest.mark.asyncio
async def test_concurrent_updates_and_deletes(store, data_path):
    """Test that interleaved rewrites do not lose changes."""
    await store.initialize()
    nodes = [await store.create(CreateNodeOptions(raw_text=f"n{i}")) for i in range(10)]

    await asyncio.gather(
        *[store.update(n.id, {"raw_text": f"updated {i}"}) for i, n in enumerate(nodes[:5])],
        *[store.delete(n.id) for n in nodes[5:]],
    )

    fresh = NodeStore(data_path, auto_tag=False)
    texts = sorted(node.raw_text for node in await fresh.list())
    assert texts == [f"updated {i}" for i in range(5)]


@pytest.mark.asyncio
async def test_migrate(store, data_path, tmp_path):
    """Test copying nodes into a new data directory."""
    await store.initialize()
    created = [await store.create(CreateNodeOptions(raw_text=t)) for t in ("a", "b")]
    new_dir = tmp_path / "elsewhere"

    new_path = await store.migrate(new_dir)

    assert new_path == new_dir / "nodes.jsonl"
    assert store.data_path == new_path
    assert [line["id"] for line in read_lines(new_path)] == [n.id for n in created]
    # The old log is left alone
    assert len(read_lines(data_path)) == 2

    await store.create(CreateNodeOptions(raw_text="c"))
    assert len(read_lines(new_path)) == 3
    assert len(read_lines(data_path)) == 2


@pytest.mark.asyncio
async def test_migrate_failure_keeps_path(store, data_path, tmp_path):
    """Test that a failed migration keeps using the old log."""
    await store.initialize()
    await store.create(CreateNodeOptions(raw_text="a"))

    with patch("nodebook.store.jsonl_store.write_log", side_effect=OSError("no space")):
        with pytest.raises(StorageError):
            await store.migrate(tmp_path / "elsewhere")

    assert store.data_path == data_path


@pytest.mark.asyncio
async def test_migrate_invalid_directory(store, data_path, tmp_path):
    """Test migrating into an unusable directory."""
    await store.initialize()
    blocker = tmp_path / "blocker"
    blocker.write_text("file")

    with pytest.raises(PathValidationError):
        await store.migrate(blocker / "sub")

    assert store.data_path == data_path


@pytest.mark.asyncio
async def test_malformed_line_warning_is_logged(data_path, caplog):
    """Test that skipped lines are reported on the store's module logger."""
    data_path.parent.mkdir(parents=True)
    data_path.write_text("not json\n", encoding="utf-8")
    store = NodeStore(data_path, auto_tag=False)

    with caplog.at_level("WARNING", logger="nodebook.store.jsonl_store"):
        await store.load()

    records = [r for r in caplog.records if r.name == "nodebook.store.jsonl_store"]
    assert any("Skipping malformed line 1" in r.getMessage() for r in records)
