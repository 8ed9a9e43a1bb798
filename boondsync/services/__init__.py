"""
Sync services.

- import_service: BoondManager -> MongoDB upserts
- sync_service: production -> sandbox copy, cleaning, JSON/CSV export
- export_service: MongoDB -> sandbox push
- mongo_quality_service: quality analysis of the MongoDB collections
- workflow_service: import / validate / export runs with a sync log
"""

from .export_service import ExportToSandboxService, get_export_to_sandbox_service
from .import_service import BoondImportService, ImportResult, ImportSummary, run_import
from .mongo_quality_service import MongoQualityAnalyzer
from .sync_service import BoondSyncService, get_sync_service
from .workflow_service import WorkflowService

__all__ = [
    "ExportToSandboxService",
    "get_export_to_sandbox_service",
    "BoondImportService",
    "ImportResult",
    "ImportSummary",
    "run_import",
    "MongoQualityAnalyzer",
    "BoondSyncService",
    "get_sync_service",
    "WorkflowService",
]
