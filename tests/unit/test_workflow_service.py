"""
Unit tests for boondsync/services/workflow_service.py

Tests the import -> validate -> export workflow:
- Steps run in fixed order whatever order they are requested in
- A failing step is recorded and does not stop the following ones
- Every run is written to sync_logs
- Status reports collection counts and the last run
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from boondsync.common.repositories import (
    CANDIDATES,
    CONSULTANTS,
    JOBS,
    SYNC_LOGS,
    USERS,
    SyncLogRepository,
)
from boondsync.services.export_service import ExportProgress, ExportResult
from boondsync.services.workflow_service import WorkflowService

from conftest import boond_record


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def production_client():
    client = MagicMock()
    records = {
        "resources": [boond_record("1", firstName="Alice", lastName="Martin", email="alice@ebmc.eu")],
        "candidates": [boond_record("10", firstName="Claire", lastName="Petit", state=1)],
        "opportunities": [],
    }
    client.fetch_all.side_effect = lambda entity, page_size: records[entity]
    return client


@pytest.fixture
def export_service():
    service = MagicMock()
    now = datetime(2024, 5, 1, 8, 0)
    service.export_all.return_value = ExportResult(
        started_at=now,
        completed_at=now,
        entities={"consultants": ExportProgress("consultants -> resources", total=2, created=1, updated=1)},
    )
    return service


@pytest.fixture
def workflow(repositories, production_client, export_service):
    return WorkflowService(
        export_service=export_service,
        client_factory=lambda env: production_client,
        repositories=repositories,
        sync_log_repository=SyncLogRepository(repositories[SYNC_LOGS]),
    )


# =============================================================================
# Steps
# =============================================================================

class TestRun:
    def test_full_run(self, workflow, repositories, production_client):
        result = workflow.run(user_email="admin@ebmc.eu")

        assert [r["step"] for r in result["results"]] == ["import", "validate", "export"]
        assert result["allSuccessful"] is True
        assert result["results"][0]["details"]["created"] == 3
        assert result["results"][2]["message"] == "Export vers Sandbox: 1 créés, 1 mis à jour, 0 erreurs"
        production_client.fetch_all.assert_any_call("resources", page_size=500)

        log = repositories[SYNC_LOGS].find_one({})
        assert log["step"] == "full_workflow"
        assert log["userEmail"] == "admin@ebmc.eu"
        assert log["success"] is True
        assert len(log["results"]) == 3

    def test_steps_run_in_fixed_order(self, workflow):
        result = workflow.run(steps=["export", "validate"])

        assert [r["step"] for r in result["results"]] == ["validate", "export"]

    def test_unknown_step_rejected(self, workflow, repositories):
        with pytest.raises(ValueError, match="publish"):
            workflow.run(steps=["import", "publish"])

        assert repositories[SYNC_LOGS].count_documents({}) == 0

    def test_failing_step_recorded_and_next_runs(self, workflow, production_client, export_service):
        production_client.fetch_all.side_effect = ConnectionError("BoondManager unreachable")

        # Act
        result = workflow.run()

        # Assert
        assert result["results"][0] == {
            "step": "import",
            "success": False,
            "message": "BoondManager unreachable",
        }
        assert result["allSuccessful"] is False
        export_service.export_all.assert_called_once()

    def test_export_errors_fail_the_step(self, workflow, export_service):
        export_service.export_all.return_value.entities["consultants"].errors.append("Consultant x: 500")

        result = workflow.run(steps=["export"])

        assert result["results"][0]["success"] is False
        assert result["results"][0]["details"]["errors"] == 1


class TestValidate:
    def test_reports_missing_names(self, workflow, repositories):
        repositories[CANDIDATES].insert_one({"_id": "c1", "firstName": "Claire", "lastName": ""})
        repositories[CONSULTANTS].insert_one({"_id": "k1", "name": "Alice Martin"})
        repositories[JOBS].insert_one({"_id": "j1", "title": ""})

        step = workflow.run_validate_step()

        assert step.success is False
        assert step.message == "Validation: 2 problemes trouves"
        assert step.details["valid"] == 1
        assert step.details["issues"] == ["Candidat c1: nom manquant", "Job j1: titre manquant"]

    def test_issue_list_is_capped(self, workflow, repositories):
        for i in range(12):
            repositories[JOBS].insert_one({"_id": f"j{i}"})

        step = workflow.run_validate_step()

        assert len(step.details["issues"]) == 10
        assert step.details["totalIssues"] == 12

    def test_empty_collections_are_valid(self, workflow):
        step = workflow.run_validate_step()

        assert step.success is True
        assert step.message == "Validation OK: 0 elements valides"


# =============================================================================
# Status
# =============================================================================

def test_get_status(workflow, repositories):
    repositories[CANDIDATES].insert_one({"firstName": "Claire"})
    repositories[USERS].insert_one({"email": "a@ebmc.eu", "boondManagerId": 1})
    repositories[USERS].insert_one({"email": "admin@ebmc.eu"})
    repositories[SYNC_LOGS].insert_one({"completedAt": datetime(2024, 1, 1), "step": "full_workflow", "success": False})
    repositories[SYNC_LOGS].insert_one({"completedAt": datetime(2024, 2, 1), "step": "full_workflow", "success": True})

    status = workflow.get_status()

    assert status["mongodb"] == {"candidates": 1, "consultants": 0, "jobs": 0, "users": 1}
    assert status["lastSync"]["completedAt"] == datetime(2024, 2, 1)
    assert status["lastSync"]["success"] is True


def test_get_status_without_runs(workflow):
    assert workflow.get_status()["lastSync"] is None
