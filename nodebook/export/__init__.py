"""Node export."""
from .service import ExportError, ExportOptions, ExportResult, ExportService, ExportStats

__all__ = ["ExportError", "ExportOptions", "ExportResult", "ExportService", "ExportStats"]
