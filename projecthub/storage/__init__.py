"""
Storage abstractions.

Integration Points:
- MetadataStorage → MongoDB (users, projects, tasks, invites)
"""

from projecthub.storage.base import (
    MetadataStorage,
    StorageProvider,
    StorageError,
    DuplicateKeyError,
    UniqueIndex,
    Collections,
    ensure_indexes,
)
from projecthub.storage.memory import InMemoryMetadataStorage, create_memory_storage

__all__ = [
    "MetadataStorage",
    "StorageProvider",
    "StorageError",
    "DuplicateKeyError",
    "UniqueIndex",
    "Collections",
    "ensure_indexes",
    "InMemoryMetadataStorage",
    "create_memory_storage",
]
