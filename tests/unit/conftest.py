"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents credential leakage)
- Process-wide singletons (rate limiters, circuit breakers, dictionary
  cache, repositories) reset between tests

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import copy
import os
import pytest
from unittest.mock import patch, MagicMock

from bson import ObjectId
from tenacity import wait_none

# Set test environment BEFORE any imports to prevent Config from loading real values
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/boondsync-test")
os.environ.setdefault("MONGODB_DATABASE", "boondsync-test")
os.environ.setdefault("BOOND_PRODUCTION_USERNAME", "prod-user@test")
os.environ.setdefault("BOOND_PRODUCTION_PASSWORD", "prod-password")
os.environ.setdefault("BOOND_SANDBOX_USERNAME", "sandbox-user@test")
os.environ.setdefault("BOOND_SANDBOX_PASSWORD", "sandbox-password")

from boondsync.boondmanager.client import BoondManagerClient
from boondsync.boondmanager.dictionary import reset_dictionary_service
from boondsync.common import circuit_breaker, rate_limiter
from boondsync.common.logger import set_global_debug_mode
from boondsync.common.repositories import (
    CANDIDATES,
    COMPANIES,
    CONSULTANTS,
    JOBS,
    SYNC_LOGS,
    USERS,
    CollectionRepositoryInterface,
    WriteResult,
    reset_repositories,
)


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient("") defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("pymongo.MongoClient") as mock_client, \
            patch("boondsync.common.repositories.atlas_repository.MongoClient", mock_client):
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    Fake BoondManager credentials and a local MongoDB URI, so nothing in
    a developer's .env can reach a real account.
    """
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/boondsync-test")
    monkeypatch.setenv("MONGODB_DATABASE", "boondsync-test")
    monkeypatch.setenv("BOOND_PRODUCTION_USERNAME", "prod-user@test")
    monkeypatch.setenv("BOOND_PRODUCTION_PASSWORD", "prod-password")
    monkeypatch.setenv("BOOND_SANDBOX_USERNAME", "sandbox-user@test")
    monkeypatch.setenv("BOOND_SANDBOX_PASSWORD", "sandbox-password")
    monkeypatch.delenv("BOONDMANAGER_PRODUCTION_RATE_LIMIT_PER_MIN", raising=False)
    monkeypatch.delenv("BOONDMANAGER_SANDBOX_RATE_LIMIT_PER_MIN", raising=False)
    monkeypatch.delenv("BOONDMANAGER_PRODUCTION_DAILY_LIMIT", raising=False)
    monkeypatch.delenv("BOONDMANAGER_SANDBOX_DAILY_LIMIT", raising=False)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh limiters, breakers, dictionary cache and repositories for every test."""
    yield
    rate_limiter.reset_global_registry()
    circuit_breaker.reset_global_registry()
    reset_dictionary_service()
    reset_repositories()
    set_global_debug_mode(False)


@pytest.fixture(autouse=True)
def no_retry_wait():
    """Retries happen immediately instead of after 2-10s backoff."""
    with patch.object(BoondManagerClient._send.retry, "wait", wait_none()):
        yield


# =============================================================================
# In-memory collections
# =============================================================================

def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches_condition(document, key, condition):
    present = key in document
    value = document.get(key)

    if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
        for operator, operand in condition.items():
            if operator == "$exists" and present != bool(operand):
                return False
            if operator == "$in" and value not in operand:
                return False
            if operator == "$type" and operand == "number" and not _is_number(value):
                return False
        return True

    return present and value == condition


def matches(document, filter):
    for key, condition in filter.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _matches_condition(document, key, condition):
            return False
    return True


class InMemoryRepository(CollectionRepositoryInterface):
    """Just enough of a MongoDB collection for the services under test."""

    def __init__(self, documents=None):
        self.documents = []
        for document in documents or []:
            self.insert_one(document)

    def find_one(self, filter, projection=None):
        for document in self.documents:
            if matches(document, filter):
                return copy.deepcopy(document)
        return None

    def find(self, filter, projection=None, sort=None, limit=0, skip=0):
        found = [copy.deepcopy(d) for d in self.documents if matches(d, filter)]
        for key, direction in reversed(sort or []):
            found.sort(key=lambda d: d.get(key), reverse=direction < 0)
        if skip:
            found = found[skip:]
        if limit:
            found = found[:limit]
        return found

    def count_documents(self, filter):
        return sum(1 for d in self.documents if matches(d, filter))

    def insert_one(self, document):
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        self.documents.append(document)
        return WriteResult(matched_count=0, modified_count=0, upserted_id=str(document["_id"]))

    def update_one(self, filter, update, upsert=False):
        for document in self.documents:
            if matches(document, filter):
                document.update(copy.deepcopy(update.get("$set", {})))
                return WriteResult(matched_count=1, modified_count=1)
        if upsert:
            result = self.insert_one(dict(update.get("$set", {})))
            return WriteResult(matched_count=0, modified_count=0, upserted_id=result.upserted_id)
        return WriteResult(matched_count=0, modified_count=0)

    def delete_many(self, filter):
        kept = [d for d in self.documents if not matches(d, filter)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return WriteResult(matched_count=deleted, modified_count=deleted)


@pytest.fixture
def repositories():
    """One empty in-memory repository per collection the services touch."""
    return {
        name: InMemoryRepository()
        for name in (CONSULTANTS, USERS, CANDIDATES, JOBS, COMPANIES, SYNC_LOGS)
    }


# =============================================================================
# BoondManager records
# =============================================================================

def boond_record(record_id, **attributes):
    """A JSON:API record as returned by BoondManager listings."""
    return {"id": record_id, "type": "record", "attributes": attributes}


@pytest.fixture
def sample_resources():
    return [
        boond_record(
            "1", firstName="Alice", lastName="Martin", email="alice@ebmc.eu",
            phone1="0612345678", title="Consultant SAP FI", state=1,
            town="Paris", skills="SAP, FI, CO", typeContract="CDI",
        ),
        boond_record(
            "2", firstName="Bruno", lastName="Durand", email="",
            title="Data Engineer", state=2,
        ),
    ]


@pytest.fixture
def sample_candidates():
    return [
        boond_record(
            "10", firstName="Claire", lastName="Petit", email="claire@example.com",
            phone1="0698765432", title="Développeuse Python", state=3, town="Lyon",
        ),
        boond_record("11", firstName="David", lastName="Roux", state=0),
    ]


@pytest.fixture
def sample_opportunities():
    return [
        boond_record(
            "100", title="Mission Data Engineer", state=0,
            description="Contexte\n- Concevoir les pipelines\n- Experience Spark requise",
        ),
        boond_record("101", title="Consultant SAP", state=2),
    ]
