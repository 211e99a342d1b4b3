"""Append-only JSONL log of nodes with an in-memory index."""
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from .exceptions import NodeNotFoundError, PathValidationError, StorageError
from ..models.node import CreateNodeOptions, Node, NodeUpdate
from ..tags.service import TagService

logger = logging.getLogger(__name__)

LOG_FILENAME = "nodes.jsonl"


def ensure_writable_dir(directory: Union[str, Path]) -> Path:
    """Create a directory if needed and check it is writable.

    Args:
        directory: Directory path

    Returns:
        Path: The directory

    Raises:
        PathValidationError: If it cannot be created or written to
    """
    path = Path(directory)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PathValidationError(str(path), "cannot create directory", e) from e
    if not path.is_dir():
        raise PathValidationError(str(path), "not a directory")
    if not os.access(path, os.W_OK):
        raise PathValidationError(str(path), "directory is not writable")
    return path


def serialize_node(node: Node) -> str:
    """One log line for a node, without the trailing newline."""
    return json.dumps(node.to_json_dict(), ensure_ascii=False)


def write_log(path: Path, nodes: Iterable[Node]) -> None:
    """Replace the log at ``path`` with ``nodes``.

    The content goes to a sibling temp file first and is moved over the old
    log in one step, so readers see either the old or the new log.
    """
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as fh:
            for node in nodes:
                fh.write(serialize_node(node) + "\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


class NodeStore:
    """Stores nodes in a newline-delimited JSON log.

    The log is the source of truth; ``_nodes`` is a cache rebuilt by
    ``load()``. Creates append one line, updates and deletes rewrite the
    whole file. Mutations are serialized with an asyncio lock; reads and
    mutations load the log on first use.
    """

    def __init__(
        self,
        data_path: Union[str, Path],
        tag_service: Optional[TagService] = None,
        auto_tag: bool = True,
    ):
        """Initialize node store.

        Args:
            data_path: Path of the JSONL log
            tag_service: Tag generator for new and edited text; the default
                produces no tags
            auto_tag: Whether to generate tags when none are given
        """
        self.data_path = Path(data_path)
        self.tag_service = tag_service or TagService()
        self.auto_tag = auto_tag
        self._nodes: Dict[str, Node] = {}
        self._loaded = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the data directory and an empty log if missing."""
        await asyncio.to_thread(self._create_log_file)

    def _create_log_file(self) -> None:
        ensure_writable_dir(self.data_path.parent)
        if self.data_path.exists():
            return
        try:
            self.data_path.touch()
        except OSError as e:
            raise StorageError("Failed to create node log", e) from e
        logger.info(f"Created node log at {self.data_path}")

    async def load(self) -> None:
        """Reload all nodes from the log, replacing the in-memory cache."""
        async with self._lock:
            await self._load_locked()

    async def _load_locked(self) -> None:
        try:
            self._nodes = await asyncio.to_thread(self._read_log)
        except OSError as e:
            raise StorageError("Failed to load nodes", e) from e
        self._loaded = True

    async def _load_if_needed_locked(self) -> None:
        if not self._loaded:
            await self._load_locked()

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            async with self._lock:
                await self._load_if_needed_locked()

    def _read_log(self) -> Dict[str, Node]:
        nodes: Dict[str, Node] = {}
        if not self.data_path.exists():
            logger.debug(f"No node log at {self.data_path}, starting empty")
            return nodes

        skipped = 0
        with open(self.data_path, "r", encoding="utf-8") as fh:
            for line_number, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    node = Node.model_validate(json.loads(line))
                except (json.JSONDecodeError, ValidationError) as e:
                    skipped += 1
                    logger.warning(f"Skipping malformed line {line_number} in {self.data_path}: {e}")
                    continue
                nodes[node.id] = node

        if skipped:
            logger.warning(f"Loaded {len(nodes)} nodes, skipped {skipped} malformed lines")
        return nodes

    def _append_line(self, node: Node) -> None:
        line = serialize_node(node) + "\n"
        with open(self.data_path, "ab+") as fh:
            # Terminate a last line left without a newline
            if fh.seek(0, os.SEEK_END) > 0:
                fh.seek(-1, os.SEEK_END)
                if fh.read(1) != b"\n":
                    line = "\n" + line
            fh.write(line.encode("utf-8"))

    async def _rewrite(self, nodes: List[Node], action: str) -> None:
        try:
            await asyncio.to_thread(write_log, self.data_path, nodes)
        except OSError as e:
            raise StorageError(f"Failed to {action}", e) from e

    def _get_or_raise(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    async def create(self, options: CreateNodeOptions) -> Node:
        """Create a node and append it to the log.

        Tags given in ``options`` are used as-is. Otherwise, with
        ``auto_tag`` on, tags come from the tag service; a tagging failure
        yields no tags.

        Args:
            options: Text, tags and metadata of the new node

        Returns:
            Node: The stored node

        Raises:
            StorageError: If the log cannot be written; the node is then not
                stored
        """
        tags = list(options.tags or [])
        if not tags and self.auto_tag:
            tags = await self.tag_service.generate_tags(options.raw_text, options.metadata)

        node = Node(raw_text=options.raw_text, tags=tags, metadata=options.metadata)

        async with self._lock:
            await self._load_if_needed_locked()
            try:
                await asyncio.to_thread(self._append_line, node)
            except OSError as e:
                raise StorageError("Failed to create node", e) from e
            self._nodes[node.id] = node

        logger.info(f"Created node {node.id} with {len(node.tags)} tags")
        return node

    async def get(self, node_id: str) -> Node:
        """Get a node by ID.

        Raises:
            NodeNotFoundError: If no such node exists
        """
        await self._ensure_loaded()
        return self._get_or_raise(node_id)

    async def update(self, node_id: str, updates: Union[NodeUpdate, Dict]) -> Node:
        """Update an existing node and rewrite the log.

        Fields not set in ``updates`` are kept; an explicit ``metadata=None``
        clears the metadata. When the text changes and no tags are given,
        tags are regenerated (with ``auto_tag`` on). The id and timestamp
        never change.

        Args:
            node_id: ID of the node
            updates: Partial update

        Returns:
            Node: The updated node

        Raises:
            NodeNotFoundError: If no such node exists
            StorageError: If the log cannot be rewritten
        """
        if isinstance(updates, dict):
            updates = NodeUpdate(**updates)
        changes = {
            key: value
            for key, value in updates.model_dump(exclude_unset=True).items()
            if value is not None or key == "metadata"
        }

        await self._ensure_loaded()
        current = self._get_or_raise(node_id)
        text_changed = "raw_text" in changes and changes["raw_text"] != current.raw_text
        if text_changed and self.auto_tag and "tags" not in changes:
            changes["tags"] = await self.tag_service.generate_tags(
                changes["raw_text"], changes.get("metadata", current.metadata)
            )

        async with self._lock:
            current = self._get_or_raise(node_id)
            updated = Node.model_validate({**current.model_dump(), **changes})
            nodes = [updated if n.id == node_id else n for n in self._nodes.values()]
            await self._rewrite(nodes, "update node")
            self._nodes[node_id] = updated

        logger.info(f"Updated node {node_id}")
        return updated

    async def delete(self, node_id: str) -> None:
        """Delete a node and rewrite the log without it.

        Raises:
            NodeNotFoundError: If no such node exists
            StorageError: If the log cannot be rewritten
        """
        async with self._lock:
            await self._load_if_needed_locked()
            self._get_or_raise(node_id)
            nodes = [n for n in self._nodes.values() if n.id != node_id]
            await self._rewrite(nodes, "delete node")
            del self._nodes[node_id]

        logger.info(f"Deleted node {node_id}")

    async def list(self) -> List[Node]:
        """List all nodes in log order."""
        await self._ensure_loaded()
        return list(self._nodes.values())

    async def count(self) -> int:
        """Get the total number of nodes."""
        await self._ensure_loaded()
        return len(self._nodes)

    async def migrate(self, new_data_dir: Union[str, Path]) -> Path:
        """Copy every node to a log in another directory and switch to it.

        The old log is left untouched. If anything fails the store keeps
        using the old path.

        Args:
            new_data_dir: Target directory

        Returns:
            Path: Path of the new log

        Raises:
            PathValidationError: If the directory is unusable
            StorageError: If the new log cannot be written
        """
        new_path = Path(new_data_dir) / self.data_path.name

        async with self._lock:
            await self._load_if_needed_locked()
            if new_path.resolve() == self.data_path.resolve():
                return self.data_path

            await asyncio.to_thread(ensure_writable_dir, new_path.parent)
            try:
                await asyncio.to_thread(write_log, new_path, list(self._nodes.values()))
            except OSError as e:
                raise StorageError("Failed to migrate nodes", e) from e

            old_path = self.data_path
            self.data_path = new_path

        logger.info(f"Migrated {len(self._nodes)} nodes from {old_path} to {new_path}")
        return new_path
