"""Tag generation for stored nodes."""
import logging
from typing import Any, Dict, List, Optional

from .generator import TagGenerator
from .models import TagConfig, TagError
from ..llm.base import BaseLanguageModel, ModelError, NullLanguageModel

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = (".py", ".js", ".ts", ".go", ".rs", ".java", ".c", ".cpp", ".rb")
DOCUMENTATION_EXTENSIONS = (".md", ".rst", ".txt")


def get_content_type(metadata: Optional[Dict[str, Any]]) -> str:
    """Guess the content type from a node's ``source`` metadata.

    Args:
        metadata: Node metadata

    Returns:
        str: ``code``, ``documentation`` or ``text``
    """
    source = (metadata or {}).get("source")
    if isinstance(source, str):
        lowered = source.lower()
        if lowered.endswith(CODE_EXTENSIONS):
            return "code"
        if lowered.endswith(DOCUMENTATION_EXTENSIONS):
            return "documentation"
    return "text"


class TagService:
    """Produces tag lists for node content.

    Tagging is optional enrichment: any failure is logged and turned into an
    empty tag list so that capturing a node never depends on the model.
    """

    def __init__(
        self,
        model: Optional[BaseLanguageModel] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        """Initialize tag service.

        Args:
            model: Language model, defaults to one that produces no tags
            config: Instance-level tag options
        """
        self.model = model or NullLanguageModel()
        self.generator = TagGenerator(self.model, config)

    async def generate_tags(
        self, content: str, metadata: Optional[Dict[str, Any]] = None
    ) -> List[str]:
        """Generate display tags for content.

        Args:
            content: Node text
            metadata: Node metadata, used to pick the content type

        Returns:
            List[str]: Formatted tags, empty on failure
        """
        try:
            result = await self.generator.generate_tags(
                content, content_type=get_content_type(metadata)
            )
        except (TagError, ModelError) as e:
            logger.warning(f"Tag generation failed ({getattr(e, 'code', 'unknown')}): {e}")
            return []
        return result.texts

    def update_config(self, **options: Any) -> None:
        """Update tag options."""
        self.generator.update_config(**options)

    def get_config(self) -> TagConfig:
        """Current tag options."""
        return self.generator.get_config()
