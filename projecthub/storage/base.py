"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → MongoDB, etc.) without changing
application code.

Guarantees every implementation must provide:
- each call is atomic for the single document it touches
- unique indexes are checked inside the same atomic step as the write
- `update(..., where=...)` applies only if the stored document still
  matches `where` (compare-and-set)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


# =============================================================================
# Errors
# =============================================================================


class StorageError(Exception):
    """Base exception for storage failures."""
    pass


class DuplicateKeyError(StorageError):
    """A write would violate a unique index."""

    def __init__(self, collection: str, fields: tuple[str, ...]):
        self.collection = collection
        self.fields = fields
        super().__init__(f"Duplicate value for {', '.join(fields)} in {collection}")


# =============================================================================
# Indexes
# =============================================================================


@dataclass(frozen=True)
class UniqueIndex:
    """
    Unique constraint over one or more fields.

    `where` makes it partial: only documents matching it take part
    (e.g. one PENDING invite per email).
    """

    fields: tuple[str, ...]
    where: tuple[tuple[str, Any], ...] = ()

    @property
    def partial_filter(self) -> dict[str, Any]:
        return dict(self.where)


# =============================================================================
# Storage Interface
# =============================================================================


class MetadataStorage(ABC):
    """
    Document storage for structured data (users, projects, tasks, invites).

    Filters are equality matches on (optionally dotted) field paths.
    A path that crosses a list matches if any element matches, so
    {"team_members.user_id": uid} finds projects listing uid.
    `any_of` is a list of such filters of which at least one must match.

    Local Implementation: in-memory
    """

    @abstractmethod
    async def create_unique_index(
        self,
        collection: str,
        fields: tuple[str, ...],
        where: dict[str, Any] | None = None,
    ) -> None:
        """Declare a unique (optionally partial) index."""
        pass

    @abstractmethod
    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Insert a new document; raises DuplicateKeyError on conflicts."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """First document matching the filters."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        any_of: list[dict[str, Any]] | None = None,
        sort_by: str | None = None,
        descending: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Query documents with optional filters, ordering and pagination.

        `limit=None` returns every match.
        """
        pass

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        any_of: list[dict[str, Any]] | None = None,
    ) -> int:
        """Count matching documents."""
        pass

    @abstractmethod
    async def update(
        self,
        collection: str,
        id: str,
        updates: dict[str, Any],
        where: dict[str, Any] | None = None,
    ) -> bool:
        """
        Partial update of a document.

        Returns False if the document is missing or no longer matches
        `where`.
        """
        pass

    @abstractmethod
    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        """Apply the same partial update to every match; returns the count."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    metadata: MetadataStorage


# =============================================================================
# Collection Names (for MetadataStorage)
# =============================================================================


class Collections:
    """Standard collection/table names."""

    USERS = "users"
    PROJECTS = "projects"
    TASKS = "tasks"
    INVITES = "invites"


async def ensure_indexes(storage: StorageProvider) -> None:
    """Declare the unique indexes the services rely on."""
    metadata = storage.metadata
    await metadata.create_unique_index(Collections.USERS, ("email",))
    await metadata.create_unique_index(Collections.INVITES, ("invite_token",))
    await metadata.create_unique_index(Collections.INVITES, ("email",), where={"status": "PENDING"})
