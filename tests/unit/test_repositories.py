"""
Unit tests for boondsync/common/repositories

Tests the repository factory, the pymongo-backed collection repository
(against the mocked MongoClient from conftest) and the sync log repository.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from boondsync.common.repositories import (
    CANDIDATES,
    JOBS,
    RepositoryConfig,
    SyncLogRepository,
    WriteResult,
    get_repository,
    get_sync_log_repository,
    reset_repositories,
)
from boondsync.common.repositories.atlas_repository import AtlasCollectionRepository

from conftest import InMemoryRepository


@pytest.fixture(autouse=True)
def fresh_connection():
    AtlasCollectionRepository.reset_connection()
    yield


@pytest.fixture
def collection(mock_mongodb):
    """The collection mock every client["db"]["name"] lookup resolves to."""
    return mock_mongodb.return_value["boondsync-test"]["candidates"]


class TestRepositoryConfig:
    def test_from_env(self):
        config = RepositoryConfig.from_env()

        assert config.mongodb_uri == "mongodb://localhost:27017/boondsync-test"
        assert config.database == "boondsync-test"

    def test_default_database(self, monkeypatch):
        monkeypatch.delenv("MONGODB_DATABASE")

        assert RepositoryConfig.from_env().database == "ebmc"

    def test_missing_uri(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI")

        with pytest.raises(ValueError, match="MONGODB_URI"):
            get_repository(CANDIDATES)


class TestFactory:
    def test_singleton_per_collection(self):
        assert get_repository(CANDIDATES) is get_repository(CANDIDATES)
        assert get_repository(CANDIDATES) is not get_repository(JOBS)

    def test_shared_client(self, mock_mongodb):
        get_repository(CANDIDATES).count_documents({})
        get_repository(JOBS).count_documents({})

        mock_mongodb.assert_called_once_with("mongodb://localhost:27017/boondsync-test")

    def test_reset_closes_client(self, mock_mongodb):
        get_repository(CANDIDATES).count_documents({})

        reset_repositories()

        mock_mongodb.return_value.close.assert_called_once()
        assert AtlasCollectionRepository._client is None


class TestAtlasCollectionRepository:
    def test_find_applies_cursor_options(self, collection):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.__iter__.return_value = iter([{"_id": 1}])
        collection.find.return_value = cursor

        # Act
        found = get_repository(CANDIDATES).find(
            {"state": 3}, sort=[("updatedAt", -1)], limit=5, skip=10
        )

        # Assert
        assert found == [{"_id": 1}]
        collection.find.assert_called_with({"state": 3}, None)
        cursor.sort.assert_called_once_with([("updatedAt", -1)])
        cursor.skip.assert_called_once_with(10)
        cursor.limit.assert_called_once_with(5)

    def test_update_one_result(self, collection):
        collection.update_one.return_value = MagicMock(matched_count=0, modified_count=0, upserted_id="abc")

        result = get_repository(CANDIDATES).update_one(
            {"boondManagerId": 1}, {"$set": {"firstName": "Alice"}}, upsert=True
        )

        assert result == WriteResult(matched_count=0, modified_count=0, upserted_id="abc")
        collection.update_one.assert_called_with(
            {"boondManagerId": 1}, {"$set": {"firstName": "Alice"}}, upsert=True
        )

    def test_delete_many_counts(self, collection):
        collection.delete_many.return_value = MagicMock(deleted_count=4)

        result = get_repository(CANDIDATES).delete_many({})

        assert result.modified_count == 4

    def test_errors_propagate(self, collection):
        collection.insert_one.side_effect = RuntimeError("E11000 duplicate key")

        with pytest.raises(RuntimeError, match="duplicate key"):
            get_repository(CANDIDATES).insert_one({"boondManagerId": 1})


class TestSyncLogRepository:
    def test_last_log_by_completion(self):
        repository = SyncLogRepository(InMemoryRepository())
        repository.insert_log({"step": "full_workflow", "success": True, "completedAt": datetime(2024, 3, 1)})
        repository.insert_log({"step": "full_workflow", "success": False, "completedAt": datetime(2024, 1, 1)})

        last = repository.get_last_log()

        assert last["completedAt"] == datetime(2024, 3, 1)
        assert len(repository.list_logs(limit=1)) == 1

    def test_no_logs(self):
        assert SyncLogRepository(InMemoryRepository()).get_last_log() is None

    def test_factory_uses_sync_logs_collection(self):
        repository = get_sync_log_repository()

        assert repository._repository.collection_name == "sync_logs"
