"""
BoondManager -> MongoDB import.

- resources -> consultants (public profiles) and users (login accounts)
- candidates -> candidates (recruitment pipeline)
- opportunities -> jobs (job listings)
- companies -> companies

Every document is upserted by boondManagerId, so running an import twice
updates instead of duplicating. A failure on one record is recorded as
"<Entity> <id>: <message>" and the import carries on.

Usage:
    service = BoondImportService()
    report = run_import(create_boond_client("production"), service=service)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from boondsync.boondmanager.dictionary import (
    candidate_state_and_type_maps,
    items_to_map,
    normalize_dictionary,
)
from boondsync.boondmanager.errors import BoondPermissionError
from boondsync.boondmanager.mappers import (
    is_placeholder_email,
    map_candidate_to_site_candidate,
    map_company,
    map_opportunity_to_job,
    map_resource_to_consultant,
    map_resource_to_user,
    record_id,
)
from boondsync.boondmanager.recruitment import determine_recruitment_state_from_actions
from boondsync.common.error_handling import format_record_error
from boondsync.common.logger import get_logger
from boondsync.common.repositories import (
    CANDIDATES,
    COMPANIES,
    CONSULTANTS,
    JOBS,
    USERS,
    CollectionRepositoryInterface,
    get_repository,
)

logger = logging.getLogger(__name__)

# Page size used when pulling whole entity lists for an import
PAGE_SIZE = 500

# Candidates whose actions are fetched concurrently
ACTIONS_BATCH_SIZE = 20

DEFAULT_IMPORT_ENTITIES = ("resources", "candidates", "opportunities")

# Collections emptied by clean_before_import, per source entity
CLEANED_COLLECTIONS = {
    "candidates": CANDIDATES,
    "resources": CONSULTANTS,
    "opportunities": JOBS,
    "companies": COMPANIES,
}

DICTIONARY_ENDPOINT = "/api/application/dictionary"


@dataclass
class ImportResult:
    """Counters for one source -> collection import."""
    entity: str
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class ImportSummary:
    started_at: datetime
    completed_at: datetime
    results: List[ImportResult] = field(default_factory=list)

    @property
    def total_created(self) -> int:
        return sum(r.created for r in self.results)

    @property
    def total_updated(self) -> int:
        return sum(r.updated for r in self.results)

    @property
    def total_skipped(self) -> int:
        return sum(r.skipped for r in self.results)

    @property
    def total_errors(self) -> int:
        return sum(len(r.errors) for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "results": [r.to_dict() for r in self.results],
            "totalCreated": self.total_created,
            "totalUpdated": self.total_updated,
            "totalSkipped": self.total_skipped,
            "totalErrors": self.total_errors,
        }


class BoondImportService:
    """
    Upserts BoondManager records into MongoDB collections.

    Repositories can be injected per collection name (tests pass mocks);
    missing ones come from get_repository().
    """

    def __init__(
        self,
        repositories: Optional[Dict[str, CollectionRepositoryInterface]] = None,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self._repositories = dict(repositories or {})
        self._log = get_logger(__name__, step="import", callback=log_callback)

    def _get_repository(self, collection: str) -> CollectionRepositoryInterface:
        if collection not in self._repositories:
            self._repositories[collection] = get_repository(collection)
        return self._repositories[collection]

    def _upsert(
        self,
        repository: CollectionRepositoryInterface,
        existing_filter: Dict[str, Any],
        document: Dict[str, Any],
        result: ImportResult,
        on_insert: Optional[Dict[str, Any]] = None,
    ) -> None:
        existing = repository.find_one(existing_filter)
        if existing:
            repository.update_one({"_id": existing["_id"]}, {"$set": document})
            result.updated += 1
        else:
            repository.insert_one({**document, **(on_insert or {}), "createdAt": datetime.utcnow()})
            result.created += 1

    def _import_records(
        self,
        result: ImportResult,
        collection: str,
        label: str,
        records: Sequence[Dict[str, Any]],
        mapper: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> ImportResult:
        repository = self._get_repository(collection)
        for record in records:
            boond_id = record_id(record)
            try:
                document = mapper(record)
                self._upsert(repository, {"boondManagerId": boond_id}, document, result)
            except Exception as e:
                logger.warning(f"Import failed for {label} {boond_id}: {e}")
                result.errors.append(format_record_error(label, boond_id, e))
        return result

    # =========================================================================
    # Per-entity imports
    # =========================================================================

    def import_resources(self, resources: Sequence[Dict[str, Any]]) -> ImportResult:
        result = ImportResult(entity="resources → consultants", total=len(resources))
        return self._import_records(
            result, CONSULTANTS, "Resource", resources, map_resource_to_consultant
        )

    def import_resources_as_users(self, resources: Sequence[Dict[str, Any]]) -> ImportResult:
        """
        Resources -> users.

        Resources without a real email are skipped. Existing users are
        matched on boondManagerId or email, and their password is never
        touched; new users start with password None.
        """
        result = ImportResult(entity="resources → users", total=len(resources))
        repository = self._get_repository(USERS)

        for resource in resources:
            boond_id = record_id(resource)
            try:
                user = map_resource_to_user(resource)
                if is_placeholder_email(user.get("email")):
                    result.skipped += 1
                    continue

                self._upsert(
                    repository,
                    {"$or": [{"boondManagerId": boond_id}, {"email": user["email"]}]},
                    user,
                    result,
                    on_insert={"password": None},
                )
            except Exception as e:
                logger.warning(f"User import failed for resource {boond_id}: {e}")
                result.errors.append(format_record_error("Resource", boond_id, e))

        return result

    def import_candidates(
        self,
        candidates: Sequence[Dict[str, Any]],
        candidate_states: Optional[Dict[int, str]] = None,
        candidate_types: Optional[Dict[int, str]] = None,
        actions_by_candidate: Optional[Dict[Any, List[Dict[str, Any]]]] = None,
        action_types: Optional[Dict[int, str]] = None,
    ) -> ImportResult:
        """
        Candidates -> candidates.

        When actions_by_candidate is given, the inferred recruitment stage
        is stored next to the BoondManager state (recruitmentState,
        recruitmentStateLabel, recruitmentMatchedAction); the state itself
        is left as BoondManager has it.
        """
        result = ImportResult(entity="candidates → candidates", total=len(candidates))

        def mapper(candidate: Dict[str, Any]) -> Dict[str, Any]:
            document = map_candidate_to_site_candidate(candidate, candidate_states, candidate_types)
            if actions_by_candidate is not None:
                stage = determine_recruitment_state_from_actions(
                    actions_by_candidate.get(record_id(candidate)),
                    document.get("state"),
                    action_types,
                )
                document["recruitmentState"] = stage.state
                document["recruitmentStateLabel"] = stage.state_label
                document["recruitmentMatchedAction"] = stage.matched_action
            return document

        return self._import_records(result, CANDIDATES, "Candidate", candidates, mapper)

    def import_opportunities(self, opportunities: Sequence[Dict[str, Any]]) -> ImportResult:
        result = ImportResult(entity="opportunities → jobs", total=len(opportunities))
        return self._import_records(
            result, JOBS, "Opportunity", opportunities, map_opportunity_to_job
        )

    def import_companies(self, companies: Sequence[Dict[str, Any]]) -> ImportResult:
        result = ImportResult(entity="companies → companies", total=len(companies))
        return self._import_records(result, COMPANIES, "Company", companies, map_company)

    def import_all(
        self,
        resources: Sequence[Dict[str, Any]],
        candidates: Sequence[Dict[str, Any]],
        opportunities: Sequence[Dict[str, Any]],
        companies: Sequence[Dict[str, Any]] = (),
        create_users_from_resources: bool = True,
        candidate_states: Optional[Dict[int, str]] = None,
        candidate_types: Optional[Dict[int, str]] = None,
        actions_by_candidate: Optional[Dict[Any, List[Dict[str, Any]]]] = None,
        action_types: Optional[Dict[int, str]] = None,
    ) -> ImportSummary:
        """Run every import that has records; empty lists are skipped."""
        started_at = datetime.utcnow()
        results: List[ImportResult] = []

        if resources:
            results.append(self.import_resources(resources))
            if create_users_from_resources:
                results.append(self.import_resources_as_users(resources))

        if candidates:
            results.append(self.import_candidates(
                candidates,
                candidate_states,
                candidate_types,
                actions_by_candidate,
                action_types,
            ))

        if opportunities:
            results.append(self.import_opportunities(opportunities))

        if companies:
            results.append(self.import_companies(companies))

        for result in results:
            self._log.report(
                f"[{result.entity}] {result.created} created, {result.updated} updated, "
                f"{result.skipped} skipped, {len(result.errors)} errors"
            )

        return ImportSummary(started_at=started_at, completed_at=datetime.utcnow(), results=results)

    def clean_collections(self, entities: Iterable[str]) -> Dict[str, int]:
        """Empty the collections fed by these entities; users are never deleted."""
        cleaned: Dict[str, int] = {}
        for entity in entities:
            collection = CLEANED_COLLECTIONS.get(entity)
            if collection is None:
                continue
            deleted = self._get_repository(collection).delete_many({})
            cleaned[collection] = deleted.modified_count
            self._log.report(f"Deleted {deleted.modified_count} existing {collection}")
        return cleaned

    # =========================================================================
    # Preview
    # =========================================================================

    def _existing_ids(self, collection: str, ids: List[Any]) -> set:
        if not ids:
            return set()
        documents = self._get_repository(collection).find(
            {"boondManagerId": {"$in": ids}}, {"boondManagerId": 1}
        )
        return {doc.get("boondManagerId") for doc in documents}

    def _split_new_existing(self, collection: str, records: Sequence[Dict[str, Any]]) -> Dict[str, int]:
        ids = [record_id(record) for record in records]
        existing = self._existing_ids(collection, ids)
        found = sum(1 for boond_id in ids if boond_id in existing)
        return {"new": len(ids) - found, "existing": found}

    def preview_import(
        self,
        resources: Sequence[Dict[str, Any]],
        candidates: Sequence[Dict[str, Any]],
        opportunities: Sequence[Dict[str, Any]],
        companies: Sequence[Dict[str, Any]] = (),
    ) -> Dict[str, Dict[str, int]]:
        """New/existing counts per target collection, without writing anything."""
        with_email = [r for r in resources if (r.get("attributes") or {}).get("email")]
        users = self._split_new_existing(USERS, with_email)
        users["skipped"] = len(resources) - len(with_email)

        preview = {
            "consultants": self._split_new_existing(CONSULTANTS, resources),
            "users": users,
            "candidates": self._split_new_existing(CANDIDATES, candidates),
            "jobs": self._split_new_existing(JOBS, opportunities),
        }
        if companies:
            preview["companies"] = self._split_new_existing(COMPANIES, companies)
        return preview


# =============================================================================
# Fetch + import orchestration
# =============================================================================

def fetch_entities(
    client,
    entities: Iterable[str],
    page_size: int = PAGE_SIZE,
) -> Dict[str, Any]:
    """
    Fetch whole entity lists, skipping entities the account may not read.

    Returns {"data": {entity: records}, "permissionErrors": [...],
    "skippedEntities": [...]}.
    """
    data: Dict[str, List[Dict[str, Any]]] = {}
    permission_errors: List[Dict[str, Any]] = []
    skipped: List[str] = []

    for entity in entities:
        try:
            data[entity] = client.fetch_all(entity, page_size=page_size)
        except BoondPermissionError as e:
            logger.warning(f"[SKIP] {entity}: {e}")
            data[entity] = []
            skipped.append(entity)
            permission_errors.append({
                "entity": entity,
                "endpoint": e.endpoint,
                "message": str(e),
            })

    return {"data": data, "permissionErrors": permission_errors, "skippedEntities": skipped}


def fetch_actions_for_candidates(
    client,
    candidate_ids: Sequence[Any],
    batch_size: int = ACTIONS_BATCH_SIZE,
) -> Dict[Any, List[Dict[str, Any]]]:
    """
    Actions per candidate id, fetched batch_size at a time in parallel.

    A failure for one candidate gives it no actions. Candidates without
    actions are left out of the result.
    """

    def fetch_one(candidate_id: Any):
        try:
            response = client.get_candidate_actions(candidate_id)
        except Exception as e:
            logger.warning(f"Could not fetch actions for candidate {candidate_id}: {e}")
            return candidate_id, []
        actions = response.get("data") if isinstance(response, dict) else None
        return candidate_id, actions if isinstance(actions, list) else []

    actions_by_candidate: Dict[Any, List[Dict[str, Any]]] = {}
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(candidate_ids), batch_size):
            batch = candidate_ids[start:start + batch_size]
            for candidate_id, actions in executor.map(fetch_one, batch):
                if actions:
                    actions_by_candidate[candidate_id] = actions

    logger.info(f"Fetched actions for {len(actions_by_candidate)} candidates with actions")
    return actions_by_candidate


def run_import(
    client,
    entities: Sequence[str] = DEFAULT_IMPORT_ENTITIES,
    create_users_from_resources: bool = True,
    clean_before_import: bool = False,
    infer_recruitment_stage: bool = True,
    service: Optional[BoondImportService] = None,
) -> Dict[str, Any]:
    """
    Pull the requested entities from one environment and import them.

    Returns a report with the ImportSummary, the cleaned counts and, when
    some entities could not be read, a permission log.
    """
    service = service or BoondImportService()
    environment = client.get_environment().value

    cleaned_counts = service.clean_collections(entities) if clean_before_import else {}
    cleaned_count = sum(cleaned_counts.values())

    fetched = fetch_entities(client, entities)
    data = fetched["data"]
    permission_errors = fetched["permissionErrors"]
    skipped_entities = fetched["skippedEntities"]

    candidates = data.get("candidates", [])
    candidate_states: Dict[int, str] = {}
    candidate_types: Dict[int, str] = {}
    action_types: Optional[Dict[int, str]] = None
    actions_by_candidate = None

    if candidates:
        try:
            dictionary = client.get_dictionary()
            candidate_states, candidate_types = candidate_state_and_type_maps(dictionary)
            action_types = items_to_map(normalize_dictionary(dictionary).get("actionTypes")) or None
            logger.info(
                f"Loaded {len(candidate_states)} candidate states and "
                f"{len(candidate_types)} candidate types from dictionary"
            )
        except Exception as e:
            logger.warning(f"Could not fetch dictionary, using BoondManager state labels: {e}")
            permission_errors.append({
                "entity": "dictionary",
                "endpoint": DICTIONARY_ENDPOINT,
                "message": f"Could not fetch dictionary for state labels: {e}",
            })

        if infer_recruitment_stage:
            actions_by_candidate = fetch_actions_for_candidates(
                client, [record_id(candidate) for candidate in candidates]
            )

    summary = service.import_all(
        data.get("resources", []),
        candidates,
        data.get("opportunities", []),
        data.get("companies", []),
        create_users_from_resources=create_users_from_resources,
        candidate_states=candidate_states,
        candidate_types=candidate_types,
        actions_by_candidate=actions_by_candidate,
        action_types=action_types,
    )

    message = "Import terminé: "
    if cleaned_count > 0:
        message += f"{cleaned_count} supprimés, "
    message += (
        f"{summary.total_created} créés, {summary.total_updated} mis à jour, "
        f"{summary.total_skipped} ignorés"
    )

    report: Dict[str, Any] = {
        "success": True,
        "environment": environment,
        "result": summary.to_dict(),
        "message": message,
    }
    if clean_before_import:
        report["cleanedCount"] = cleaned_count
        report["cleanedDetails"] = cleaned_counts

    if permission_errors:
        report["permissionLog"] = {
            "skippedEntities": skipped_entities,
            "errors": permission_errors,
            "message": (
                f"{len(skipped_entities)} entité(s) ignorée(s) car droits manquants sur BoondManager"
            ),
        }
        if skipped_entities:
            report["message"] = (
                f"{message}. ATTENTION: {', '.join(skipped_entities)} ignoré(s) - droits manquants"
            )

    logger.info(report["message"])
    return report


def preview_from_client(
    client,
    entities: Sequence[str] = DEFAULT_IMPORT_ENTITIES,
    service: Optional[BoondImportService] = None,
) -> Dict[str, Any]:
    """Fetch from BoondManager and report what an import would create or update."""
    service = service or BoondImportService()
    fetched = fetch_entities(client, entities)
    data = fetched["data"]

    report: Dict[str, Any] = {
        "success": True,
        "environment": client.get_environment().value,
        "preview": service.preview_import(
            data.get("resources", []),
            data.get("candidates", []),
            data.get("opportunities", []),
            data.get("companies", []),
        ),
        "totals": {entity: len(records) for entity, records in data.items()},
    }
    if fetched["permissionErrors"]:
        report["permissionLog"] = {
            "skippedEntities": fetched["skippedEntities"],
            "errors": fetched["permissionErrors"],
        }
    return report
