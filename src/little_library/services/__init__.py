"""
Services for the Little Library MCP Server.

Each service method runs exactly one unit of work against the injected
RecordStore and takes the tenant as an explicit argument.
"""

from .catalog import Catalogue
from .children import ChildRegistry
from .circulation import CirculationEngine

__all__ = ["Catalogue", "ChildRegistry", "CirculationEngine"]
