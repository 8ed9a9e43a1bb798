"""
MongoDB -> BoondManager sandbox export.

- consultants -> resources
- candidates -> candidates
- jobs -> opportunities

A document that already carries a boondManagerId is updated in the
sandbox. If that update fails (the record only exists in production),
a new sandbox record is created and its id stored as
boondManagerSandboxId. Documents without a boondManagerId are created
and get the new id written back, so the next export updates them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from boondsync.boondmanager.client import create_boond_client
from boondsync.boondmanager.mappers import (
    map_candidate_to_boond_data,
    map_consultant_to_resource_data,
    map_job_to_opportunity_data,
)
from boondsync.boondmanager.models import BoondEnvironment
from boondsync.common.error_handling import format_record_error, log_on_exception
from boondsync.common.logger import get_logger
from boondsync.common.repositories import (
    CANDIDATES,
    CONSULTANTS,
    JOBS,
    CollectionRepositoryInterface,
    get_repository,
)

logger = logging.getLogger(__name__)

# Numeric ids only; documents created by hand may carry other values
LINKED_FILTER = {"boondManagerId": {"$exists": True, "$type": "number"}}


@dataclass
class ExportProgress:
    entity: str
    total: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    id_mappings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "total": self.total,
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class ExportResult:
    started_at: datetime
    completed_at: datetime
    entities: Dict[str, ExportProgress] = field(default_factory=dict)

    @property
    def total_records(self) -> int:
        return sum(p.total for p in self.entities.values())

    @property
    def created_records(self) -> int:
        return sum(p.created for p in self.entities.values())

    @property
    def updated_records(self) -> int:
        return sum(p.updated for p in self.entities.values())

    @property
    def skipped_records(self) -> int:
        return sum(p.skipped for p in self.entities.values())

    @property
    def failed_records(self) -> int:
        return sum(len(p.errors) for p in self.entities.values())

    @property
    def id_mappings(self) -> Dict[str, Dict[str, Any]]:
        return {name: dict(p.id_mappings) for name, p in self.entities.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "entities": {name: p.to_dict() for name, p in self.entities.items()},
            "totalRecords": self.total_records,
            "createdRecords": self.created_records,
            "updatedRecords": self.updated_records,
            "skippedRecords": self.skipped_records,
            "failedRecords": self.failed_records,
            "idMappings": self.id_mappings,
        }


# ----- sandbox creators (client defaults fill anything the document lacks) -----

def _create_resource(client, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.create_resource(
        first_name=data["firstName"],
        last_name=data["lastName"],
        civility=data.get("civility"),
        email=data.get("email"),
        phone1=data.get("phone1"),
        title=data.get("title"),
        state=data.get("state"),
    )


def _create_candidate(client, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.create_candidate(
        first_name=data["firstName"],
        last_name=data["lastName"],
        civility=data.get("civility"),
        email=data.get("email"),
        phone1=data.get("phone1"),
        title=data.get("title"),
        origin=data.get("origin"),
        state=data.get("state"),
    )


def _create_opportunity(client, data: Dict[str, Any]) -> Dict[str, Any]:
    return client.create_opportunity(
        title=data["title"],
        mode=data.get("mode"),
        state=data.get("state"),
        type_of=data.get("typeOf"),
        description=data.get("description"),
        start_date=data.get("startDate"),
    )


@dataclass(frozen=True)
class _ExportTarget:
    collection: str
    entity: str
    progress_label: str
    error_label: str
    mapper: Callable[[Dict[str, Any]], Dict[str, Any]]
    creator: Callable[[Any, Dict[str, Any]], Dict[str, Any]]


EXPORT_TARGETS: Dict[str, _ExportTarget] = {
    "consultants": _ExportTarget(
        CONSULTANTS, "resources", "consultants -> resources", "Consultant",
        map_consultant_to_resource_data, _create_resource,
    ),
    "candidates": _ExportTarget(
        CANDIDATES, "candidates", "candidates -> candidates", "Candidate",
        map_candidate_to_boond_data, _create_candidate,
    ),
    "jobs": _ExportTarget(
        JOBS, "opportunities", "jobs -> opportunities", "Job",
        map_job_to_opportunity_data, _create_opportunity,
    ),
}


def _new_id(response: Dict[str, Any]) -> Any:
    new_id = response["data"]["id"]
    if isinstance(new_id, str) and new_id.isdigit():
        return int(new_id)
    return new_id


class ExportToSandboxService:
    """Pushes MongoDB documents to the BoondManager sandbox."""

    def __init__(
        self,
        sandbox_client=None,
        repositories: Optional[Dict[str, CollectionRepositoryInterface]] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self._sandbox_client = sandbox_client
        self._repositories = dict(repositories or {})
        self._log = get_logger(
            __name__, step="export", environment=BoondEnvironment.SANDBOX.value, callback=log_callback
        )

    @property
    def sandbox_client(self):
        if self._sandbox_client is None:
            self._sandbox_client = create_boond_client(BoondEnvironment.SANDBOX)
        return self._sandbox_client

    def _get_repository(self, collection: str) -> CollectionRepositoryInterface:
        if collection not in self._repositories:
            self._repositories[collection] = get_repository(collection)
        return self._repositories[collection]

    def _export(
        self,
        name: str,
        on_progress: Optional[Callable[[ExportProgress], None]] = None,
    ) -> ExportProgress:
        target = EXPORT_TARGETS[name]
        repository = self._get_repository(target.collection)
        client = self.sandbox_client

        documents = repository.find({})
        progress = ExportProgress(entity=target.progress_label, total=len(documents))
        if on_progress:
            on_progress(progress)

        for document in documents:
            mongo_id = str(document.get("_id"))
            try:
                data = target.mapper(document)
                boond_id = document.get("boondManagerId")

                if boond_id:
                    try:
                        with log_on_exception(logger, f"sandbox update {target.entity}/{boond_id}", logging.INFO):
                            client.update_entity(target.entity, boond_id, data)
                        progress.updated += 1
                        progress.id_mappings[mongo_id] = boond_id
                    except Exception:
                        # Linked to a production record the sandbox does not have
                        new_id = _new_id(target.creator(client, data))
                        repository.update_one(
                            {"_id": document["_id"]},
                            {"$set": {"boondManagerSandboxId": new_id}},
                        )
                        progress.created += 1
                        progress.id_mappings[mongo_id] = new_id
                else:
                    new_id = _new_id(target.creator(client, data))
                    repository.update_one(
                        {"_id": document["_id"]},
                        {"$set": {"boondManagerId": new_id}},
                    )
                    progress.created += 1
                    progress.id_mappings[mongo_id] = new_id
            except Exception as e:
                logger.warning(f"Export failed for {target.error_label} {mongo_id}: {e}")
                progress.errors.append(format_record_error(target.error_label, mongo_id, e))

            progress.processed += 1
            if on_progress:
                on_progress(progress)

        self._log.report(
            f"[{target.progress_label}] {progress.created} created, "
            f"{progress.updated} updated, {len(progress.errors)} errors"
        )
        return progress

    def export_consultants(self, on_progress=None) -> ExportProgress:
        return self._export("consultants", on_progress)

    def export_candidates(self, on_progress=None) -> ExportProgress:
        return self._export("candidates", on_progress)

    def export_jobs(self, on_progress=None) -> ExportProgress:
        return self._export("jobs", on_progress)

    def export_all(
        self, on_progress: Optional[Callable[[str, ExportProgress], None]] = None
    ) -> ExportResult:
        """Consultants, then candidates, then jobs."""
        started_at = datetime.utcnow()
        entities: Dict[str, ExportProgress] = {}
        for name in EXPORT_TARGETS:
            callback = None
            if on_progress:
                callback = lambda progress, entity=name: on_progress(entity, progress)
            entities[name] = self._export(name, callback)
        return ExportResult(started_at=started_at, completed_at=datetime.utcnow(), entities=entities)

    def preview_export(self) -> Dict[str, Dict[str, int]]:
        preview = {}
        for name, target in EXPORT_TARGETS.items():
            repository = self._get_repository(target.collection)
            total = repository.count_documents({})
            linked = repository.count_documents(LINKED_FILTER)
            preview[name] = {
                "total": total,
                "withBoondId": linked,
                "withoutBoondId": total - linked,
            }
        return preview

    def get_sandbox_stats(self) -> Dict[str, int]:
        stats = self.sandbox_client.get_dashboard_stats()
        return {
            entity: stats.get(entity, {}).get("total", 0)
            for entity in ("resources", "candidates", "opportunities")
        }


_export_service: Optional[ExportToSandboxService] = None


def get_export_to_sandbox_service() -> ExportToSandboxService:
    global _export_service
    if _export_service is None:
        _export_service = ExportToSandboxService()
    return _export_service
