"""
Little Library MCP Server Package.

Circulation tracking for small, multi-tenant children's libraries, exposed
over the Model Context Protocol.

Key Components:
- identity: three-emoji anonymous reader IDs
- services: circulation engine, child registry, catalogue
- database: SQLAlchemy schema, RecordStore and tenant-scoped repositories
- config: Configuration management with Pydantic v2
- tools / resources: the MCP surface
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
