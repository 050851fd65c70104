"""
YAML frontmatter reading for markdown documents.

Only the leading ``---`` fenced block is parsed. Values stay as YAML gives
them, except dates and timestamps, which are kept as the strings written in
the file so they sort the way authors typed them.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

import yaml

logger = logging.getLogger(__name__)

FENCE = "---"
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class FrontmatterError(Exception):
    """Raised when the frontmatter block is not valid YAML."""


class ParsedContent(NamedTuple):
    frontmatter: dict[str, Any]
    body: str


class _StringDatesLoader(yaml.SafeLoader):
    """SafeLoader without the implicit timestamp resolver."""


_StringDatesLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _split_block(content: str) -> tuple[str, str] | None:
    """Return (yaml text, body) for a fenced block, or None when there is none."""
    if not content.startswith(FENCE):
        return None

    head, *rest = content.split("\n")
    if head.strip() != FENCE:
        return None

    for offset, line in enumerate(rest):
        if line.strip() == FENCE:
            block = "\n".join(rest[:offset])
            body = "\n".join(rest[offset + 1 :]).lstrip("\n")
            return block, body

    logger.warning(
        "Frontmatter missing closing marker",
        extra={"content_length": len(content)},
    )
    return None


def parse_frontmatter(content: str) -> ParsedContent:
    """
    Split markdown into its frontmatter mapping and body.

    Content without a complete fenced block, or whose block is not a
    mapping, yields an empty mapping and the content unchanged. Windows
    line endings are normalized first.

    Raises:
        FrontmatterError: If the fenced block is not valid YAML
    """
    content = content.replace("\r\n", "\n")

    split = _split_block(content)
    if split is None:
        return ParsedContent({}, content)
    block, body = split

    try:
        data = yaml.load(block, Loader=_StringDatesLoader)  # noqa: S506
    except yaml.YAMLError as e:
        logger.error(
            "YAML parse error in frontmatter",
            extra={"error": str(e), "frontmatter_length": len(block)},
        )
        msg = f"Invalid YAML in frontmatter: {e}"
        raise FrontmatterError(msg) from e

    if data is None:
        return ParsedContent({}, body)

    if not isinstance(data, dict):
        logger.warning(
            "Frontmatter is not a mapping",
            extra={"type": type(data).__name__},
        )
        return ParsedContent({}, content)

    return ParsedContent(data, body)
