"""Node manager implementation."""
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiohttp

from .config import Settings
from ..llm.base import BaseLanguageModel, LLMConnectionError, ModelError
from ..llm.factory import create_llm
from ..models.node import CreateNodeOptions, Node, NodeUpdate, SearchOptions, SearchResult
from ..search.index import SearchIndex
from ..store.exceptions import SourceFileError
from ..store.jsonl_store import LOG_FILENAME, NodeStore
from ..tags.service import TagService

logger = logging.getLogger(__name__)


class NodeManager:
    """Coordinates the node store and the search index.

    The store does not notify the index, so every mutation made through the
    manager is mirrored into the index here. The index is built from the
    store on the first search.
    """

    def __init__(
        self,
        store: NodeStore,
        index: Optional[SearchIndex] = None,
        llm: Optional[BaseLanguageModel] = None,
    ):
        """Initialize node manager.

        Args:
            store: Node store
            index: Search index, a fresh one by default
            llm: Language model behind the store's tag service; initialized
                and closed by the manager
        """
        self.store = store
        self.index = index or SearchIndex()
        self.llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> "NodeManager":
        """Build a manager with an Ollama-backed tag service.

        Args:
            settings: Application settings

        Returns:
            NodeManager: Uninitialized manager
        """
        llm = create_llm(settings, enabled=settings.auto_tag)
        store = NodeStore(
            Path(settings.data_dir) / LOG_FILENAME,
            tag_service=TagService(llm),
            auto_tag=settings.auto_tag,
        )
        return cls(store, llm=llm)

    async def initialize(self) -> None:
        """Prepare the store and, if present, the language model.

        An unreachable or misconfigured model only disables tagging; nodes
        are then created without generated tags.
        """
        await self.store.initialize()
        await self.store.load()
        if self.llm is None:
            return
        try:
            await self.llm.initialize()
        except (ModelError, LLMConnectionError, aiohttp.ClientError) as e:
            logger.warning(f"Language model unavailable, tagging disabled: {e}")

    async def close(self) -> None:
        """Release the language model session."""
        if self.llm is not None:
            await self.llm.close()

    async def create_node(
        self,
        raw_text: str,
        tags: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Node:
        """Create a node and index it if the index is loaded."""
        node = await self.store.create(
            CreateNodeOptions(raw_text=raw_text, tags=tags, metadata=metadata)
        )
        if self.index.is_index_loaded():
            self.index.add_nodes([node])
        return node

    async def create_node_from_file(
        self,
        path: Union[str, Path],
        title: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Node:
        """Create a node from the contents of a UTF-8 text file.

        The file path is recorded as ``metadata["source"]``, which also picks
        the content type used for tagging. The title defaults to the path.

        Args:
            path: File to import
            title: Node title
            tags: Tags; generated when omitted

        Returns:
            Node: The created node

        Raises:
            SourceFileError: If the file is missing, unreadable or empty
        """
        source = Path(path)
        try:
            raw_text = await asyncio.to_thread(source.read_text, encoding="utf-8")
        except FileNotFoundError as e:
            raise SourceFileError(str(source), "file not found", e) from e
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFileError(str(source), "file cannot be read", e) from e
        if not raw_text.strip():
            raise SourceFileError(str(source), "file is empty")

        metadata = {"title": title or str(source), "source": str(source)}
        node = await self.create_node(raw_text, tags=tags, metadata=metadata)
        logger.info(f"Imported {source} as node {node.id}")
        return node

    async def get_node(self, node_id: str) -> Node:
        return await self.store.get(node_id)

    async def update_node(self, node_id: str, updates: Union[NodeUpdate, Dict[str, Any]]) -> Node:
        """Update a node and re-index it."""
        node = await self.store.update(node_id, updates)
        if self.index.is_index_loaded():
            self.index.update_node(node)
        return node

    async def delete_node(self, node_id: str) -> None:
        """Delete a node and drop it from the index."""
        await self.store.delete(node_id)
        self.index.remove_node(node_id)

    async def list_nodes(self) -> List[Node]:
        return await self.store.list()

    async def count_nodes(self) -> int:
        return await self.store.count()

    async def search(self, options: SearchOptions) -> List[SearchResult]:
        """Search nodes, building the index from the store on first use.

        Args:
            options: Search options

        Returns:
            List[SearchResult]: Ranked hits
        """
        if not self.index.is_index_loaded():
            await self.rebuild_index()
        return self.index.search(options)

    async def rebuild_index(self) -> int:
        """Reindex every stored node.

        Returns:
            int: Number of indexed nodes
        """
        nodes = await self.store.list()
        self.index.clear()
        self.index.add_nodes(nodes)
        logger.info(f"Search index built with {len(nodes)} nodes")
        return len(nodes)

    async def migrate(self, new_data_dir: Union[str, Path]) -> Path:
        """Move the node log to another data directory.

        Returns:
            Path: New log path
        """
        return await self.store.migrate(new_data_dir)
