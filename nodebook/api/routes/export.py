"""API routes for exporting nodes."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..dependencies import get_node_manager
from ..models import ErrorResponse
from ...core.manager import NodeManager
from ...export.service import DEFAULT_FIELDS, ExportOptions, ExportService

router = APIRouter(
    prefix="/export",
    tags=["export"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)

MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "text": "text/plain",
}

export_service = ExportService()


@router.get("", summary="Export nodes", description="Download all nodes as JSON, CSV or text")
async def export_nodes(
    format: str = Query("json", description="json, csv or text"),
    fields: Optional[str] = Query(None, description="Comma-separated fields to include"),
    delimiter: str = Query(",", min_length=1, max_length=1, description="CSV delimiter"),
    manager: NodeManager = Depends(get_node_manager),
) -> Response:
    """Export every node."""
    options = ExportOptions(
        format=format,
        fields=[f.strip() for f in fields.split(",") if f.strip()] if fields else list(DEFAULT_FIELDS),
        delimiter=delimiter,
    )
    nodes = await manager.list_nodes()
    result = export_service.export(nodes, options)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Export failed: {result.error}",
        )

    content = result.content
    if content is None:
        content = "[]" if format == "json" else ""
    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"X-Total-Nodes": str(result.stats.total_nodes)},
    )
