"""
Full sync workflow: production -> MongoDB -> sandbox.

Steps (any subset, always run in this order):
1. import: pull resources, candidates and opportunities from production
   into MongoDB (users created from resources)
2. validate: check that names and titles are present
3. export: push consultants, candidates and jobs to the sandbox

A failing step is recorded and the next one still runs. Every run is
written to sync_logs.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from boondsync.boondmanager.client import create_boond_client
from boondsync.boondmanager.models import BoondEnvironment
from boondsync.common.logger import get_logger
from boondsync.common.repositories import (
    CANDIDATES,
    CONSULTANTS,
    JOBS,
    USERS,
    CollectionRepositoryInterface,
    SyncLogRepository,
    get_repository,
    get_sync_log_repository,
)

from .export_service import ExportToSandboxService
from .import_service import PAGE_SIZE, BoondImportService

WORKFLOW_STEPS = ("import", "validate", "export")

# Issues kept in the validate step details
MAX_REPORTED_ISSUES = 10


@dataclass
class StepResult:
    step: str
    success: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {"step": self.step, "success": self.success, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class WorkflowService:
    def __init__(
        self,
        import_service: Optional[BoondImportService] = None,
        export_service: Optional[ExportToSandboxService] = None,
        client_factory: Callable[[str], Any] = create_boond_client,
        repositories: Optional[Dict[str, CollectionRepositoryInterface]] = None,
        sync_log_repository: Optional[SyncLogRepository] = None,
    ):
        self._repositories = dict(repositories or {})
        self._import_service = import_service or BoondImportService(self._repositories)
        self._export_service = export_service
        self._client_factory = client_factory
        self._sync_log_repository = sync_log_repository

    def _get_repository(self, collection: str) -> CollectionRepositoryInterface:
        if collection not in self._repositories:
            self._repositories[collection] = get_repository(collection)
        return self._repositories[collection]

    def _get_sync_log_repository(self) -> SyncLogRepository:
        if self._sync_log_repository is None:
            self._sync_log_repository = get_sync_log_repository()
        return self._sync_log_repository

    def _get_export_service(self) -> ExportToSandboxService:
        if self._export_service is None:
            self._export_service = ExportToSandboxService(repositories=self._repositories)
        return self._export_service

    # ----- steps -----

    def run_import_step(self) -> StepResult:
        client = self._client_factory(BoondEnvironment.PRODUCTION.value)
        resources = client.fetch_all("resources", page_size=PAGE_SIZE)
        candidates = client.fetch_all("candidates", page_size=PAGE_SIZE)
        opportunities = client.fetch_all("opportunities", page_size=PAGE_SIZE)

        summary = self._import_service.import_all(
            resources, candidates, opportunities, create_users_from_resources=True
        )
        return StepResult(
            step="import",
            success=True,
            message=(
                f"Import depuis Production: {summary.total_created} créés, "
                f"{summary.total_updated} mis à jour"
            ),
            details={
                "resources": len(resources),
                "candidates": len(candidates),
                "opportunities": len(opportunities),
                "created": summary.total_created,
                "updated": summary.total_updated,
                "errors": summary.total_errors,
            },
        )

    def run_validate_step(self) -> StepResult:
        issues: List[str] = []
        valid = 0

        for candidate in self._get_repository(CANDIDATES).find({}):
            if not candidate.get("firstName") or not candidate.get("lastName"):
                issues.append(f"Candidat {candidate.get('_id')}: nom manquant")
            else:
                valid += 1

        for consultant in self._get_repository(CONSULTANTS).find({}):
            if not consultant.get("name"):
                issues.append(f"Consultant {consultant.get('_id')}: nom manquant")
            else:
                valid += 1

        for job in self._get_repository(JOBS).find({}):
            if not job.get("title"):
                issues.append(f"Job {job.get('_id')}: titre manquant")
            else:
                valid += 1

        return StepResult(
            step="validate",
            success=not issues,
            message=(
                f"Validation OK: {valid} elements valides"
                if not issues else f"Validation: {len(issues)} problemes trouves"
            ),
            details={
                "valid": valid,
                "issues": issues[:MAX_REPORTED_ISSUES],
                "totalIssues": len(issues),
            },
        )

    def run_export_step(self) -> StepResult:
        result = self._get_export_service().export_all()
        return StepResult(
            step="export",
            success=result.failed_records == 0,
            message=(
                f"Export vers Sandbox: {result.created_records} créés, "
                f"{result.updated_records} mis à jour, {result.failed_records} erreurs"
            ),
            details={
                "total": result.total_records,
                "created": result.created_records,
                "updated": result.updated_records,
                "errors": result.failed_records,
            },
        )

    # ----- orchestration -----

    def run(
        self,
        steps: Sequence[str] = WORKFLOW_STEPS,
        user_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run the requested steps and record the run in sync_logs."""
        unknown = [step for step in steps if step not in WORKFLOW_STEPS]
        if unknown:
            raise ValueError(f"Unknown workflow step(s): {', '.join(unknown)}")

        run_id = uuid.uuid4().hex
        runners = {
            "import": self.run_import_step,
            "validate": self.run_validate_step,
            "export": self.run_export_step,
        }

        run_log = get_logger(__name__, run_id=run_id)
        started_at = datetime.utcnow()
        results: List[StepResult] = []

        for step in WORKFLOW_STEPS:
            if step not in steps:
                continue
            log = run_log.bind(step=step)
            log.info("Starting")
            try:
                result = runners[step]()
            except Exception as e:
                log.exception(f"Step failed: {e}")
                result = StepResult(step=step, success=False, message=str(e) or f"Erreur {step}")
            log.info(result.message)
            results.append(result)

        completed_at = datetime.utcnow()
        all_successful = all(r.success for r in results)

        self._get_sync_log_repository().insert_log({
            "startedAt": started_at,
            "completedAt": completed_at,
            "step": "full_workflow",
            "success": all_successful,
            "results": [r.to_dict() for r in results],
            "userEmail": user_email,
        })

        return {
            "runId": run_id,
            "startedAt": started_at.isoformat(),
            "completedAt": completed_at.isoformat(),
            "duration": int((completed_at - started_at).total_seconds() * 1000),
            "results": [r.to_dict() for r in results],
            "allSuccessful": all_successful,
        }

    def get_status(self) -> Dict[str, Any]:
        """Collection counts and the latest sync log."""
        last = self._get_sync_log_repository().get_last_log()
        return {
            "mongodb": {
                "candidates": self._get_repository(CANDIDATES).count_documents({}),
                "consultants": self._get_repository(CONSULTANTS).count_documents({}),
                "jobs": self._get_repository(JOBS).count_documents({}),
                "users": self._get_repository(USERS).count_documents(
                    {"boondManagerId": {"$exists": True}}
                ),
            },
            "lastSync": {
                "completedAt": last.get("completedAt"),
                "step": last.get("step"),
                "success": last.get("success"),
                "results": last.get("results"),
            } if last else None,
        }
