"""Request dependencies resolved from application state."""
from fastapi import Request

from ..core.config import ConfigManager
from ..core.manager import NodeManager


async def get_node_manager(request: Request) -> NodeManager:
    """Get the NodeManager created at startup."""
    return request.app.state.node_manager


async def get_config_manager(request: Request) -> ConfigManager:
    """Get the ConfigManager created at startup."""
    return request.app.state.config_manager
