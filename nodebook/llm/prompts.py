"""Prompts for tag generation."""
from typing import Optional

# The worked examples must stay ahead of the target content.
TAG_GENERATION_PROMPT = """Example 1
Content: "iphone 13 is objectively the best phone"
Good Tags: iphone, smartphone, apple, mobile, review

Example 2
Content: "I found archived government maps at nationalarchives.gov"
Good Tags: maps, historical, government, archives, free, national

Now for the new {content_type}, generate 3-10 single-word, lowercase tags (no punctuation). Return ONLY a comma-separated list.

Content:
"{content}"
"""


def build_tag_prompt(content: str, content_type: Optional[str] = None) -> str:
    """Build the tag generation prompt for a piece of content.

    Args:
        content: Text to tag
        content_type: Kind of content, e.g. ``code`` or ``documentation``

    Returns:
        str: Prompt text
    """
    return TAG_GENERATION_PROMPT.format(
        content=content.strip(),
        content_type=content_type or "text",
    )
