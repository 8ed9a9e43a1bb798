"""
Atlas Collection Repository

Thin wrapper around a pymongo collection implementing
CollectionRepositoryInterface.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.collection import Collection

from .base import CollectionRepositoryInterface, WriteResult

logger = logging.getLogger(__name__)


class AtlasCollectionRepository(CollectionRepositoryInterface):
    """
    Repository over a single MongoDB collection.

    Connection Management:
    - One MongoClient per process, shared by every collection repository
      (class-level singleton, PyMongo pools connections internally)
    - The collection handle is resolved lazily on first use

    Error Handling:
    - Fail-fast: all driver errors propagate to the caller
    """

    _client: Optional[MongoClient] = None
    _client_uri: Optional[str] = None

    def __init__(self, mongodb_uri: str, database: str, collection: str):
        """
        Args:
            mongodb_uri: MongoDB connection string
            database: Database name (e.g. "ebmc")
            collection: Collection name (e.g. "candidates")
        """
        self._mongodb_uri = mongodb_uri
        self._database_name = database
        self._collection_name = collection
        self._collection: Optional[Collection] = None

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @classmethod
    def _get_client(cls, mongodb_uri: str) -> MongoClient:
        if cls._client is None or cls._client_uri != mongodb_uri:
            if cls._client is not None:
                cls._client.close()
            cls._client = MongoClient(mongodb_uri)
            cls._client_uri = mongodb_uri
            logger.info("MongoDB client created")
        return cls._client

    def _get_collection(self) -> Collection:
        if self._collection is None:
            client = self._get_client(self._mongodb_uri)
            self._collection = client[self._database_name][self._collection_name]
            logger.debug(
                f"Repository bound to {self._database_name}.{self._collection_name}"
            )
        return self._collection

    def find_one(
        self, filter: Dict[str, Any], projection: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        return self._get_collection().find_one(filter, projection)

    def find(
        self,
        filter: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        cursor = self._get_collection().find(filter, projection)

        if sort:
            cursor = cursor.sort(sort)
        if skip > 0:
            cursor = cursor.skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)

        return list(cursor)

    def count_documents(self, filter: Dict[str, Any]) -> int:
        return self._get_collection().count_documents(filter)

    def insert_one(self, document: Dict[str, Any]) -> WriteResult:
        result = self._get_collection().insert_one(document)
        return WriteResult(
            matched_count=0,
            modified_count=0,
            upserted_id=str(result.inserted_id) if result.inserted_id else None,
        )

    def update_one(
        self,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        upsert: bool = False,
    ) -> WriteResult:
        result = self._get_collection().update_one(filter, update, upsert=upsert)
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=str(result.upserted_id) if result.upserted_id else None,
        )

    def delete_many(self, filter: Dict[str, Any]) -> WriteResult:
        result = self._get_collection().delete_many(filter)
        return WriteResult(
            matched_count=result.deleted_count,
            modified_count=result.deleted_count,
        )

    @classmethod
    def reset_connection(cls) -> None:
        """
        Close the shared client.

        Used for testing or connection recovery.
        """
        if cls._client:
            cls._client.close()
        cls._client = None
        cls._client_uri = None
        logger.info("MongoDB connection reset")
