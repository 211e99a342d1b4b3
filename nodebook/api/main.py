"""FastAPI application setup for the nodebook API."""
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..core.config import ConfigManager, ConfigValidationError
from ..core.manager import NodeManager
from ..export.service import ExportError
from ..store.exceptions import NodeNotFoundError, PathValidationError, SourceFileError, StorageError
from .middleware import setup_middleware
from .models import ErrorResponse
from .routes import config, export, nodes, search

# Setup logging
logging.basicConfig(
    level=os.environ.get("NODEBOOK_LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _error_response(
    request: Request, status_code: int, detail: str, error_code: str, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            detail=detail,
            error_code=error_code,
            path=request.url.path,
        ).model_dump(mode="json"),
        headers=headers,
    )


def _add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NodeNotFoundError)
    async def node_not_found_handler(request: Request, exc: NodeNotFoundError):
        """Unknown node IDs."""
        return _error_response(request, status.HTTP_404_NOT_FOUND, str(exc), "node_not_found")

    @app.exception_handler(ConfigValidationError)
    async def config_error_handler(request: Request, exc: ConfigValidationError):
        """Invalid configuration values."""
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc), f"invalid_{exc.field}")

    @app.exception_handler(PathValidationError)
    async def path_error_handler(request: Request, exc: PathValidationError):
        """Unusable data directories."""
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc), "invalid_path")

    @app.exception_handler(SourceFileError)
    async def source_file_handler(request: Request, exc: SourceFileError):
        """Files that cannot be imported."""
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc), "invalid_source_file")

    @app.exception_handler(ExportError)
    async def export_error_handler(request: Request, exc: ExportError):
        """Unsupported export requests."""
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc), "invalid_export")

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        """Node log I/O failures."""
        logger.error(f"Storage error: {exc}")
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "storage_error")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return _error_response(
            request, exc.status_code, str(exc.detail), f"http_{exc.status_code}", exc.headers
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle generic exceptions."""
        logger.exception(f"Unhandled exception: {exc}")
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"An unexpected error occurred: {str(exc)}",
            "internal_server_error",
        )


def create_app(
    config_manager: Optional[ConfigManager] = None,
    node_manager: Optional[NodeManager] = None,
) -> FastAPI:
    """Create the API application.

    Args:
        config_manager: Configuration source, the user's config file by default
        node_manager: Node manager; built from the configuration when omitted

    Returns:
        FastAPI: Application whose managers are set up on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.start_time = time.time()
        cm = config_manager or ConfigManager()
        settings = cm.initialize()
        nm = node_manager or NodeManager.from_settings(settings)
        await nm.initialize()
        app.state.config_manager = cm
        app.state.node_manager = nm
        logger.info(f"API starting up with data at {nm.store.data_path}")
        try:
            yield
        finally:
            await nm.close()
            logger.info("API shutting down")

    app = FastAPI(
        title="nodebook API",
        description="Capture, tag and search personal notes",
        version=__version__,
        lifespan=lifespan,
    )

    setup_middleware(app)
    _add_exception_handlers(app)

    app.include_router(nodes.router)
    app.include_router(search.router)
    app.include_router(export.router)
    app.include_router(config.router)

    @app.get("/", summary="API root", description="Get API information")
    async def root() -> Dict[str, Any]:
        """Get API information."""
        return {
            "name": "nodebook API",
            "version": __version__,
            "documentation": "/docs",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/health", summary="Health check", description="Check if the API is healthy")
    async def health_check(request: Request) -> Dict[str, Any]:
        """Check if the API is healthy."""
        start_time = getattr(request.app.state, "start_time", None)
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.time() - start_time if start_time else 0,
            "nodes": await request.app.state.node_manager.count_nodes(),
        }

    return app


app = create_app()


def run(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("NODEBOOK_HOST", host),
        port=int(os.environ.get("NODEBOOK_PORT", port)),
    )


if __name__ == "__main__":
    run()
