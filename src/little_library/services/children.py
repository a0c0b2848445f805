"""
Child registry for the Little Library MCP Server.

Registration allocates a three-emoji ID against a snapshot of the IDs the
organization's live children hold. The snapshot can be stale by the time
the row is written; the partial unique index catches that and the
repository reports it as ``ConflictError``. Nothing here retries on
conflict: the caller sees the error and may simply try again.
"""

import logging

from ..database import ChildDetailsSchema, ChildRepository, JournalRepository, RecordStore
from ..errors import ConflictError, NotFoundError, RequestValidationError
from ..identity import DEFAULT_MAX_ATTEMPTS, IdentityAllocator
from ..models import Child, ReaderJournal
from ..tenancy import TenantScope

logger = logging.getLogger(__name__)


class ChildRegistry:
    """Registers children and manages their emoji IDs."""

    def __init__(
        self,
        store: RecordStore,
        allocator: IdentityAllocator,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.store = store
        self.allocator = allocator
        self.max_attempts = max_attempts

    def register(
        self,
        tenant: TenantScope,
        name: str | None = None,
        grade_or_class: str | None = None,
    ) -> Child:
        """
        Register a child with a freshly allocated emoji ID.

        Raises:
            CollisionExhaustedError: No free ID found within the attempt budget
            ConflictError: A concurrent registration took the same ID
        """
        details = ChildDetailsSchema(name=name, grade_or_class=grade_or_class)
        with self.store.unit_of_work() as session:
            repo = ChildRepository(session, tenant)
            emoji_id = self.allocator.generate_unique(
                repo.active_emoji_ids(), max_attempts=self.max_attempts
            )
            child = repo.insert(emoji_id, details)

        logger.info("Registered child %s in organization %s", child.id, tenant)
        return child

    def regenerate_identifier(self, child_id: str, tenant: TenantScope) -> Child:
        """Give a child a new random emoji ID."""
        with self.store.unit_of_work() as session:
            child = self._regenerate(ChildRepository(session, tenant), child_id)

        logger.info("Regenerated emoji ID for child %s", child_id)
        return child

    def assign_custom_identifier(self, child_id: str, emoji_id: str, tenant: TenantScope) -> Child:
        """
        Give a child an emoji ID of their choosing.

        Raises:
            RequestValidationError: ``emoji_id`` is not three pool symbols
            NotFoundError: Child does not resolve under ``tenant``
            ConflictError: Another live child of the organization holds it
        """
        self._check_format(emoji_id)
        with self.store.unit_of_work() as session:
            child = self._assign(ChildRepository(session, tenant), child_id, emoji_id)

        logger.info("Assigned custom emoji ID to child %s", child_id)
        return child

    def update_details(self, child_id: str, tenant: TenantScope, **details) -> Child:
        """Update name and/or class; omitted fields are left alone."""
        schema = ChildDetailsSchema(**details)
        with self.store.unit_of_work() as session:
            return ChildRepository(session, tenant).update_details(child_id, schema)

    def update(
        self,
        child_id: str,
        tenant: TenantScope,
        regenerate_emoji: bool = False,
        custom_emoji_id: str | None = None,
        **details,
    ) -> Child:
        """
        Change a child's emoji ID and details together.

        The ID change and the detail edit share one unit of work, so either
        both are applied or neither is.
        """
        if regenerate_emoji and custom_emoji_id is not None:
            raise RequestValidationError(
                "Use either regenerate_emoji or custom_emoji_id, not both",
                [{"field": "__root__", "message": "regenerate_emoji and custom_emoji_id conflict"}],
            )
        if custom_emoji_id is not None:
            self._check_format(custom_emoji_id)
        schema = ChildDetailsSchema(**details)

        with self.store.unit_of_work() as session:
            repo = ChildRepository(session, tenant)
            child = repo.require(child_id)
            if regenerate_emoji:
                child = self._regenerate(repo, child_id)
            elif custom_emoji_id is not None:
                child = self._assign(repo, child_id, custom_emoji_id)
            if schema.model_fields_set:
                child = repo.update_details(child_id, schema)

        logger.info("Updated child %s", child_id)
        return child

    def _check_format(self, emoji_id: str) -> None:
        if not self.allocator.is_valid_format(emoji_id):
            raise RequestValidationError(
                "Invalid emoji ID format",
                [{"field": "custom_emoji_id", "message": "Must be exactly 3 emojis from the pool"}],
            )

    def _regenerate(self, repo: ChildRepository, child_id: str) -> Child:
        repo.require(child_id)
        emoji_id = self.allocator.generate_unique(
            repo.active_emoji_ids(exclude_child_id=child_id),
            max_attempts=self.max_attempts,
        )
        return repo.set_emoji_id(child_id, emoji_id)

    def _assign(self, repo: ChildRepository, child_id: str, emoji_id: str) -> Child:
        repo.require(child_id)
        if not self.allocator.is_unique(emoji_id, repo.active_emoji_ids(exclude_child_id=child_id)):
            raise ConflictError("Emoji ID is already in use")
        return repo.set_emoji_id(child_id, emoji_id)

    def delete(self, child_id: str, tenant: TenantScope) -> bool:
        """
        Soft-delete a child, freeing their emoji ID.

        Returns:
            False if the child was already deleted
        """
        with self.store.unit_of_work() as session:
            deleted = ChildRepository(session, tenant).soft_delete(child_id)
        if deleted:
            logger.info("Deleted child %s in organization %s", child_id, tenant)
        return deleted

    def list_children(self, tenant: TenantScope) -> list[Child]:
        with self.store.unit_of_work() as session:
            return ChildRepository(session, tenant).list_children()

    def lookup_reader(self, emoji_id: str, tenant: TenantScope) -> ReaderJournal:
        """
        Find a child by emoji ID and load their reading journal.

        Raises:
            NotFoundError: No live child of ``tenant`` holds ``emoji_id``
        """
        with self.store.unit_of_work() as session:
            child = ChildRepository(session, tenant).get_by_emoji_id(emoji_id)
            if child is None:
                raise NotFoundError("Reader not found")
            entries = JournalRepository(session, tenant).entries_for_child(child.id)
        return ReaderJournal(child=child, entries=entries)
