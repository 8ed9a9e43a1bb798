"""
Sync Log Repository

Audit trail of workflow runs, stored in the sync_logs collection.
"""

import logging
from typing import Any, Dict, List, Optional

from .base import CollectionRepositoryInterface, WriteResult
from .config import SYNC_LOGS, get_repository

logger = logging.getLogger(__name__)


class SyncLogRepository:
    """
    Read/write access to sync_logs.

    A log document looks like:
        {startedAt, completedAt, step, success, results, userEmail}
    """

    def __init__(self, repository: CollectionRepositoryInterface):
        self._repository = repository

    def insert_log(self, log: Dict[str, Any]) -> WriteResult:
        result = self._repository.insert_one(log)
        logger.info(
            f"Sync log recorded: step={log.get('step')} success={log.get('success')}"
        )
        return result

    def get_last_log(self) -> Optional[Dict[str, Any]]:
        """Most recent log by completedAt, or None."""
        logs = self._repository.find({}, sort=[("completedAt", -1)], limit=1)
        return logs[0] if logs else None

    def list_logs(self, limit: int = 20) -> List[Dict[str, Any]]:
        return self._repository.find({}, sort=[("completedAt", -1)], limit=limit)


def get_sync_log_repository() -> SyncLogRepository:
    """Sync log repository backed by the configured database."""
    return SyncLogRepository(get_repository(SYNC_LOGS))
