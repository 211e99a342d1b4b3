"""API routes for configuration."""
import logging

from fastapi import APIRouter, Depends, status

from ..dependencies import get_config_manager, get_node_manager
from ..models import ConfigResponse, ConfigUpdate, ErrorResponse
from ...core.config import ConfigManager
from ...core.manager import NodeManager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/config",
    tags=["config"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


def _to_response(config_manager: ConfigManager) -> ConfigResponse:
    settings = config_manager.get_config()
    return ConfigResponse(
        data_dir=settings.data_dir,
        model=settings.model,
        auto_tag=settings.auto_tag,
        config_path=str(config_manager.config_path),
        data_path=str(config_manager.get_data_path()),
    )


@router.get("", response_model=ConfigResponse, summary="Get configuration")
async def get_config(config_manager: ConfigManager = Depends(get_config_manager)) -> ConfigResponse:
    """Get the current configuration."""
    return _to_response(config_manager)


@router.put(
    "",
    response_model=ConfigResponse,
    summary="Update configuration",
    description="Changing the data directory migrates all nodes into it",
)
async def update_config(
    update: ConfigUpdate,
    config_manager: ConfigManager = Depends(get_config_manager),
    manager: NodeManager = Depends(get_node_manager),
) -> ConfigResponse:
    """Update the configuration."""
    if update.data_dir is not None and update.data_dir != config_manager.get_data_dir():
        await config_manager.set_data_dir(update.data_dir, migrate=manager.migrate)
    if update.model is not None:
        config_manager.set_model(update.model)
    if update.auto_tag is not None:
        config_manager.update_config(auto_tag=update.auto_tag)
        manager.store.auto_tag = update.auto_tag
    return _to_response(config_manager)
