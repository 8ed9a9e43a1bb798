"""
Repository Configuration and Factory

Provides factory functions returning one repository per MongoDB
collection, configured from the environment.
"""

import os
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .base import CollectionRepositoryInterface

logger = logging.getLogger(__name__)


# Collections written by the sync pipeline
CONSULTANTS = "consultants"
USERS = "users"
CANDIDATES = "candidates"
JOBS = "jobs"
COMPANIES = "companies"
SYNC_LOGS = "sync_logs"


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mongodb_uri: str
    database: str = "ebmc"

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI (required): MongoDB connection string
        - MONGODB_DATABASE: Database name (default: ebmc)

        Raises:
            ValueError: If MONGODB_URI is not set
        """
        mongodb_uri = os.getenv("MONGODB_URI")
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        return cls(
            mongodb_uri=mongodb_uri,
            database=os.getenv("MONGODB_DATABASE", "ebmc"),
        )


# Repository singletons keyed by collection name
_repositories: Dict[str, CollectionRepositoryInterface] = {}


def get_repository(
    collection: str, config: Optional[RepositoryConfig] = None
) -> CollectionRepositoryInterface:
    """
    Get the repository for a collection.

    Uses a singleton per collection name; all of them share one
    MongoClient.

    Raises:
        ValueError: If MongoDB URI is not configured
    """
    if collection not in _repositories:
        config = config or RepositoryConfig.from_env()

        from .atlas_repository import AtlasCollectionRepository
        _repositories[collection] = AtlasCollectionRepository(
            mongodb_uri=config.mongodb_uri,
            database=config.database,
            collection=collection,
        )
        logger.info(f"Initialized repository for '{collection}'")

    return _repositories[collection]


def reset_repositories() -> None:
    """
    Reset every repository singleton and the shared connection.

    Used for testing or when configuration changes.
    """
    if _repositories:
        from .atlas_repository import AtlasCollectionRepository
        AtlasCollectionRepository.reset_connection()

    _repositories.clear()
    logger.info("Repository singletons reset")
