"""Little Library MCP Server - server assembly and entry point.

One server process serves one organization. On startup it:

1. Loads configuration and refuses to start without an organization
2. Opens the RecordStore and creates tables if needed
3. Makes sure the organization row exists
4. Registers tools (writes) and resources (reads) bound to that tenant
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from little_library.config import ServerConfig, get_config
from little_library.context import LibraryContext
from little_library.database import RecordStore, ensure_organization
from little_library.identity import IdentityAllocator
from little_library.resources import library_resources, register_resources
from little_library.tools import all_tools, register_tools

# Use stderr to keep stdout clean for stdio transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Little Library MCP Server - circulation tracking for small school and "
    "community libraries. Children are identified by a three-emoji ID instead "
    "of personal data. Use tools to register children, lend and return copies "
    "and manage the catalogue; use resources to browse books, copies, loans "
    "and a child's reading journal (library://readers/{emoji_id})."
)


def build_library(config: ServerConfig, store: RecordStore | None = None) -> LibraryContext:
    """
    Open the store for ``config`` and bind services to its organization.

    Raises:
        ValueError: If no organization is configured
    """
    tenant = config.tenant_scope()
    store = store or RecordStore(config.get_database_url())
    store.init_database()

    with store.unit_of_work() as session:
        ensure_organization(session, tenant, config.organization_name)

    return LibraryContext.create(
        store, tenant, IdentityAllocator(), max_attempts=config.identifier_max_attempts
    )


def create_server(
    config: ServerConfig | None = None, library: LibraryContext | None = None
) -> FastMCP:
    """Create a FastMCP server with every tool and resource registered."""
    config = config or get_config()
    library = library or build_library(config)

    mcp = FastMCP(name=config.server_name, version=config.server_version, instructions=INSTRUCTIONS)
    register_tools(mcp, library)
    register_resources(mcp, library)

    logger.info(
        "Registered %d tools and %d resources for organization %s",
        len(all_tools),
        len(library_resources),
        library.tenant,
    )
    return mcp


def run_server(config: ServerConfig) -> None:
    """Build the server and serve on the configured transport until stopped."""
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled - verbose protocol logging active")
    else:
        logging.getLogger().setLevel(config.log_level)
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    mcp = create_server(config)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        "Starting %s v%s on %s transport",
        config.server_name,
        config.server_version,
        config.transport,
    )
    if config.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="streamable-http")


def main() -> None:
    """Entry point for ``little-library-mcp`` and ``python -m little_library.server``."""
    try:
        config = get_config()

        logger.info("=" * 60)
        logger.info("Little Library MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Organization: %s", config.organization_id or "<not configured>")
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        run_server(config)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(2)
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
