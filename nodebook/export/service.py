"""Export nodes as JSON, CSV or plain text."""
import csv
import io
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import jinja2

from ..models.node import Node

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "csv", "text")
DEFAULT_FIELDS = ["id", "timestamp", "raw_text", "tags"]
EXPORTABLE_FIELDS = ("id", "timestamp", "raw_text", "tags", "metadata")
TAG_SEPARATOR = ";"


class ExportError(Exception):
    """Invalid export request."""


@dataclass
class ExportOptions:
    """What to export and where."""
    format: str = "json"
    fields: List[str] = field(default_factory=lambda: list(DEFAULT_FIELDS))
    delimiter: str = ","
    output_path: Optional[str] = None


@dataclass
class ExportStats:
    total_nodes: int = 0
    exported_nodes: int = 0
    skipped_nodes: int = 0


@dataclass
class ExportResult:
    """Outcome of an export.

    ``content`` holds the rendered export; ``output_path`` is set when it was
    also written to a file.
    """
    success: bool
    stats: ExportStats
    output_path: Optional[str] = None
    content: Optional[str] = None
    error: Optional[str] = None


def format_timestamp(timestamp: int) -> str:
    """Epoch milliseconds as ISO-8601 UTC with millisecond precision."""
    seconds, millis = divmod(timestamp, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=millis * 1000)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExportService:
    """Renders node lists in the supported export formats."""

    def __init__(self, template_dir: Optional[str] = None):
        """Initialize export service.

        Args:
            template_dir: Directory containing export templates
        """
        if template_dir:
            self.template_dir = template_dir
        else:
            current_dir = os.path.dirname(os.path.abspath(__file__))
            self.template_dir = os.path.join(current_dir, "templates")

        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(self.template_dir),
            autoescape=jinja2.select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def export(self, nodes: Sequence[Node], options: Optional[ExportOptions] = None) -> ExportResult:
        """Export nodes.

        Args:
            nodes: Nodes to export
            options: Format, fields, CSV delimiter and optional output file

        Returns:
            ExportResult: Rendered content and counts. Writing failures are
            reported in ``error`` with ``success`` False.

        Raises:
            ExportError: For an unsupported format or unknown field
        """
        options = options or ExportOptions()
        if options.format not in SUPPORTED_FORMATS:
            raise ExportError(
                f"Unsupported export format: {options.format}. "
                f"Supported formats: {', '.join(SUPPORTED_FORMATS)}"
            )
        fields = options.fields or list(DEFAULT_FIELDS)
        unknown = [name for name in fields if name not in EXPORTABLE_FIELDS]
        if unknown:
            raise ExportError(f"Unknown export fields: {', '.join(unknown)}")

        stats = ExportStats(total_nodes=len(nodes))
        if not nodes:
            logger.info("No nodes to export")
            return ExportResult(success=True, stats=stats)

        try:
            if options.format == "json":
                content = self._to_json(nodes, fields)
            elif options.format == "csv":
                content = self._to_csv(nodes, fields, options.delimiter)
            else:
                content = self._to_text(nodes, fields)

            if options.output_path:
                path = Path(options.output_path)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
        except (OSError, csv.Error, jinja2.TemplateError) as e:
            logger.error(f"Export to {options.format} failed: {e}")
            return ExportResult(success=False, stats=stats, error=str(e))

        stats.exported_nodes = len(nodes)
        logger.info(f"Exported {stats.exported_nodes} nodes as {options.format}")
        return ExportResult(
            success=True,
            stats=stats,
            output_path=options.output_path,
            content=content,
        )

    def _to_json(self, nodes: Sequence[Node], fields: List[str]) -> str:
        items = []
        for node in nodes:
            item: Dict[str, Any] = {}
            for name in fields:
                value = getattr(node, name)
                item[name] = format_timestamp(value) if name == "timestamp" else value
            items.append(item)
        return json.dumps(items, indent=2, ensure_ascii=False)

    def _to_csv(self, nodes: Sequence[Node], fields: List[str], delimiter: str) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=fields, delimiter=delimiter, lineterminator="\n")
        writer.writeheader()
        for node in nodes:
            writer.writerow({name: self._flat_value(node, name, TAG_SEPARATOR) for name in fields})
        return buffer.getvalue()

    def _to_text(self, nodes: Sequence[Node], fields: List[str]) -> str:
        template = self.jinja_env.get_template("nodes.txt.j2")
        rows = [{name: self._flat_value(node, name, ", ") for name in fields} for node in nodes]
        return template.render(nodes=rows)

    @staticmethod
    def _flat_value(node: Node, name: str, tag_separator: str) -> str:
        value = getattr(node, name)
        if name == "timestamp":
            return format_timestamp(value)
        if name == "tags":
            return tag_separator.join(value)
        if name == "metadata":
            return json.dumps(value, ensure_ascii=False) if value else ""
        return str(value)
