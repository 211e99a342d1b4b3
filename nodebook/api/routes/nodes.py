"""API routes for nodes."""
import logging

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_node_manager
from ..models import ErrorResponse, NodeCreate, NodeFileCreate, NodeList, NodeUpdate
from ...core.manager import NodeManager
from ...models.node import Node

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/nodes",
    tags=["nodes"],
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


@router.post(
    "",
    response_model=Node,
    status_code=status.HTTP_201_CREATED,
    summary="Create node",
    description="Capture text as a new node. Tags are generated when none are given.",
)
async def create_node(
    node: NodeCreate,
    manager: NodeManager = Depends(get_node_manager),
) -> Node:
    """Create a new node."""
    return await manager.create_node(node.raw_text, tags=node.tags, metadata=node.metadata)


@router.post(
    "/file",
    response_model=Node,
    status_code=status.HTTP_201_CREATED,
    summary="Import file",
    description="Capture the contents of a text file as a new node, recording the path as its source",
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def create_node_from_file(
    source: NodeFileCreate,
    manager: NodeManager = Depends(get_node_manager),
) -> Node:
    """Create a node from a file."""
    return await manager.create_node_from_file(source.path, title=source.title, tags=source.tags)


@router.get(
    "",
    response_model=NodeList,
    summary="List nodes",
    description="Get all nodes in the order they were captured",
)
async def list_nodes(manager: NodeManager = Depends(get_node_manager)) -> NodeList:
    """List all nodes."""
    nodes = await manager.list_nodes()
    return NodeList(nodes=nodes, total=len(nodes))


@router.get("/{node_id}", response_model=Node, summary="Get node")
async def get_node(node_id: str, manager: NodeManager = Depends(get_node_manager)) -> Node:
    """Get a node by ID."""
    return await manager.get_node(node_id)


@router.patch(
    "/{node_id}",
    response_model=Node,
    summary="Update node",
    description="Change text, tags or metadata. Changing only the text regenerates tags.",
)
async def update_node(
    node_id: str,
    update: NodeUpdate,
    manager: NodeManager = Depends(get_node_manager),
) -> Node:
    """Update a node."""
    return await manager.update_node(node_id, update.model_dump(exclude_unset=True))


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete node")
async def delete_node(node_id: str, manager: NodeManager = Depends(get_node_manager)) -> Response:
    """Delete a node."""
    await manager.delete_node(node_id)
    logger.info(f"Deleted node {node_id} via API")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
