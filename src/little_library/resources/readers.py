"""
Reader resources for the Little Library MCP Server.

``library://readers/{emoji_id}`` is how a child opens their reading
journal: they enter their three emojis and get back their profile and the
books they have logged. It needs no credentials beyond the emoji ID, so it
returns nothing more than that child's own journal.
"""

import logging
from typing import Any
from urllib.parse import unquote

from fastmcp.exceptions import ResourceError

from ..context import LibraryContext
from ..errors import LibraryError, NotFoundError

logger = logging.getLogger(__name__)


async def get_reader_handler(emoji_id: str, library: LibraryContext) -> dict[str, Any]:
    """
    Look a child up by exact emoji ID within the organization.

    Args:
        emoji_id: The three emojis, raw or percent-encoded as sent in a URI

    Raises:
        ResourceError: If no live child holds the ID, or the lookup failed
    """
    identifier = unquote(emoji_id)
    try:
        journal = library.children.lookup_reader(identifier, library.tenant)
    except NotFoundError as e:
        logger.info("Reader lookup found no match")
        raise ResourceError(str(e)) from e
    except LibraryError as e:
        logger.warning("Reader lookup failed: %s", e)
        raise ResourceError(f"Failed to look up reader: {e!s}") from e

    return journal.model_dump(mode="json")


async def list_children_handler(library: LibraryContext) -> dict[str, Any]:
    try:
        children = library.children.list_children(library.tenant)
    except LibraryError as e:
        logger.exception("Error listing children")
        raise ResourceError(f"Failed to retrieve children: {e!s}") from e

    return {
        "children": [child.model_dump(mode="json") for child in children],
        "total": len(children),
    }
