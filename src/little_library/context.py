"""Everything a tool or resource handler needs, built once per server."""

from dataclasses import dataclass

from .database import RecordStore
from .identity import DEFAULT_MAX_ATTEMPTS, IdentityAllocator
from .services import Catalogue, ChildRegistry, CirculationEngine
from .tenancy import TenantScope


@dataclass(frozen=True)
class LibraryContext:
    """
    Services bound to one RecordStore, plus the tenant they act for.

    Handlers receive this explicitly; nothing in the package reaches for a
    module-level store or tenant.
    """

    store: RecordStore
    tenant: TenantScope
    circulation: CirculationEngine
    children: ChildRegistry
    catalogue: Catalogue

    @classmethod
    def create(
        cls,
        store: RecordStore,
        tenant: TenantScope,
        allocator: IdentityAllocator | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> "LibraryContext":
        return cls(
            store=store,
            tenant=tenant,
            circulation=CirculationEngine(store),
            children=ChildRegistry(store, allocator or IdentityAllocator(), max_attempts),
            catalogue=Catalogue(store),
        )
