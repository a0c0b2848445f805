"""
Repository pattern implementation for the Little Library MCP Server.

Repositories are the only code that builds SQL. Each one is constructed
with a session (from ``RecordStore.unit_of_work()``) and a ``TenantScope``,
and every statement it issues is filtered by that tenant. Repositories
flush but never commit: the unit of work decides, so a service can combine
several repository calls into one atomic change.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..tenancy import TenantScope
from .schema import Base
from .session import store_safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > 100:
            raise ValueError("Page size must be between 1 and 100")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response for list resources."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Tenant-scoped read and soft-delete operations shared by all entities.

    Rows owned by another organization are indistinguishable from rows
    that do not exist.
    """

    #: Name used in "not found" messages
    entity_name: str = "Entity"

    def __init__(self, session: Session, tenant: TenantScope):
        self.session = session
        self.tenant = tenant

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @abstractmethod
    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""

    @property
    def _soft_deletable(self) -> bool:
        return hasattr(self.model_class, "deleted_at")

    def _scoped(self, query=None, include_deleted: bool = False):
        """Restrict ``query`` to this tenant and, by default, to live rows."""
        if query is None:
            query = select(self.model_class)
        query = query.where(self.tenant.where(self.model_class))
        if self._soft_deletable and not include_deleted:
            query = query.where(self.model_class.deleted_at.is_(None))
        return query

    def _get_db(self, id: str, include_deleted: bool = False) -> ModelType | None:
        query = self._scoped(include_deleted=include_deleted).where(
            self.model_class.id == str(id)
        )
        return store_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def _require_db(self, id: str) -> ModelType:
        db_obj = self._get_db(id)
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} not found")
        return db_obj

    def get_by_id(self, id: str) -> ResponseSchemaType | None:
        """
        Get a live entity by ID within the tenant.

        Returns:
            Pydantic model or None if not found
        """
        db_obj = self._get_db(id)
        return self._to_response_model(db_obj) if db_obj is not None else None

    def require(self, id: str) -> ResponseSchemaType:
        """
        Get a live entity by ID or fail.

        Raises:
            NotFoundError: If absent, soft-deleted or owned by another tenant
        """
        return self._to_response_model(self._require_db(id))

    def exists(self, id: str) -> bool:
        query = self._scoped(select(func.count()).select_from(self.model_class)).where(
            self.model_class.id == str(id)
        )
        count = store_safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return bool(count)

    def soft_delete(self, id: str) -> bool:
        """
        Mark an entity deleted.

        Idempotent: deleting an already deleted entity succeeds.

        Returns:
            True if the entity was live before the call

        Raises:
            NotFoundError: If the entity never existed in this tenant
        """
        db_obj = self._get_db(id, include_deleted=True)
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} not found")
        if db_obj.deleted_at is not None:
            return False

        db_obj.deleted_at = datetime.now()
        self.session.flush()
        return True

    def _paginate(
        self,
        query,
        pagination: PaginationParams | None,
        convert: Callable[[Any], ResponseSchemaType] | None = None,
        options: tuple = (),
    ) -> PaginatedResponse[ResponseSchemaType]:
        """
        Count and slice ``query``, converting each row.

        Loader ``options`` are applied to the page query only, not the count.
        """
        pagination = pagination or PaginationParams()
        pagination.validate_params()
        convert = convert or self._to_response_model

        count_query = select(func.count()).select_from(query.subquery())
        total = (
            store_safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to count total for pagination",
            )
            or 0
        )

        page_query = query.options(*options).offset(pagination.offset).limit(pagination.page_size)
        results = store_safe_query(
            self.session,
            lambda s: s.execute(page_query).unique().scalars().all(),
            "Failed to get paginated results",
        )

        return PaginatedResponse(
            items=[convert(item) for item in results],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )
