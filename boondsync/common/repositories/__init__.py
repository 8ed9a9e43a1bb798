"""
Repository Pattern for MongoDB Operations

Public API:
- get_repository(name): Factory returning the repository for a collection
- get_sync_log_repository(): Repository for the sync_logs audit trail
- CollectionRepositoryInterface: Abstract interface for a collection
- WriteResult: Result dataclass for write operations

Usage:
    from boondsync.common.repositories import get_repository, CANDIDATES

    candidates = get_repository(CANDIDATES)
    existing = candidates.find_one({"boondManagerId": 42})
"""

from .base import CollectionRepositoryInterface, WriteResult
from .config import (
    CANDIDATES,
    COMPANIES,
    CONSULTANTS,
    JOBS,
    SYNC_LOGS,
    USERS,
    RepositoryConfig,
    get_repository,
    reset_repositories,
)
from .sync_log_repository import SyncLogRepository, get_sync_log_repository

__all__ = [
    "get_repository",
    "reset_repositories",
    "get_sync_log_repository",
    "CollectionRepositoryInterface",
    "SyncLogRepository",
    "WriteResult",
    "RepositoryConfig",
    "CANDIDATES",
    "COMPANIES",
    "CONSULTANTS",
    "JOBS",
    "SYNC_LOGS",
    "USERS",
]
