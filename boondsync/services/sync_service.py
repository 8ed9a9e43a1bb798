"""
Production -> sandbox synchronisation, data cleaning and file export.

- fetch_all_data(): every entity list of one environment
- sync_prod_to_sandbox(): recreate production records in the sandbox
- analyze_all_data_quality(): quality issues and duplicates
- clean_data() / export_to_json() / export_to_csv(): cleaned exports for
  a manual production import
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from boondsync.boondmanager.client import create_boond_client
from boondsync.boondmanager.models import ENTITIES, BoondEnvironment
from boondsync.boondmanager.normalizers import (
    normalize_company_name,
    normalize_email,
    normalize_name,
    normalize_phone,
)
from boondsync.boondmanager.quality import (
    analyze_data_quality,
    find_duplicates,
    summarize_issues,
)
from boondsync.common.error_handling import format_record_error, sync_operation
from boondsync.common.logger import get_logger

FETCH_PAGE_SIZE = 100
FETCH_MAX_PAGES = 100

# Companies first: contacts and opportunities refer to them
SYNC_ORDER = ["companies", "contacts", "candidates", "resources", "opportunities"]

READ_ONLY_FIELDS = {"id", "creationDate", "updateDate", "stateLabel", "thumbnail"}

CSV_EXPORT_FIELDS: Dict[str, List[str]] = {
    "candidates": ["firstName", "lastName", "email", "phone1", "title", "state", "town", "country"],
    "resources": ["firstName", "lastName", "email", "phone1", "title", "state", "town", "country"],
    "opportunities": ["title", "state", "mode", "typeOf", "startDate", "averageDailyPriceExcludingTax"],
    "companies": ["name", "email", "phone1", "website", "address", "postcode", "town", "country", "state"],
    "contacts": ["firstName", "lastName", "email", "phone1", "position"],
    "projects": ["reference", "title", "state", "startDate", "endDate"],
}

# (entity, type label, required, email, phone, name fields, duplicate keys)
QUALITY_RULES = [
    ("candidates", "candidate", ["firstName", "lastName"], ["email"], ["phone1"], ["firstName", "lastName"], ["email"]),
    ("resources", "resource", ["firstName", "lastName", "email"], ["email"], ["phone1"], ["firstName", "lastName"], ["email"]),
    ("companies", "company", ["name"], ["email"], ["phone1"], [], ["name"]),
    ("contacts", "contact", ["firstName", "lastName"], ["email"], ["phone1"], ["firstName", "lastName"], ["email"]),
    ("opportunities", "opportunity", ["title"], [], [], [], []),
]


@dataclass
class SyncProgress:
    entity: str
    total: int = 0
    processed: int = 0
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "total": self.total,
            "processed": self.processed,
            "success": self.success,
            "failed": self.failed,
            "errors": list(self.errors),
        }


@dataclass
class SyncResult:
    started_at: datetime
    completed_at: datetime
    entities: Dict[str, SyncProgress] = field(default_factory=dict)

    @property
    def total_records(self) -> int:
        return sum(p.total for p in self.entities.values())

    @property
    def success_records(self) -> int:
        return sum(p.success for p in self.entities.values())

    @property
    def failed_records(self) -> int:
        return sum(p.failed for p in self.entities.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "entities": {name: p.to_dict() for name, p in self.entities.items()},
            "totalRecords": self.total_records,
            "successRecords": self.success_records,
            "failedRecords": self.failed_records,
        }


@dataclass
class ExportData:
    """Every entity list of one environment at a point in time."""
    exported_at: datetime
    environment: str
    entities: Dict[str, List[Dict[str, Any]]]

    @property
    def stats(self) -> Dict[str, int]:
        return {name: len(items) for name, items in self.entities.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportedAt": self.exported_at.isoformat(),
            "environment": self.environment,
            "entities": self.entities,
            "stats": self.stats,
        }


def strip_read_only(attributes: Dict[str, Any]) -> Dict[str, Any]:
    """Attributes that can be sent on creation: read-only fields and nulls removed."""
    return {
        key: value
        for key, value in attributes.items()
        if key not in READ_ONLY_FIELDS and value is not None
    }


def _normalise_attributes(
    items: List[Dict[str, Any]], normalisers: Dict[str, Callable[[Any], str]]
) -> List[Dict[str, Any]]:
    cleaned = []
    for item in items:
        attributes = dict(item.get("attributes") or {})
        for field_name, normaliser in normalisers.items():
            attributes[field_name] = normaliser(attributes.get(field_name))
        cleaned.append({**item, "attributes": attributes})
    return cleaned


_PERSON_NORMALISERS = {
    "firstName": normalize_name,
    "lastName": normalize_name,
    "email": normalize_email,
    "phone1": normalize_phone,
}

_COMPANY_NORMALISERS = {
    "name": normalize_company_name,
    "email": normalize_email,
    "phone1": normalize_phone,
}


class BoondSyncService:
    """Reads both environments and writes to the sandbox only."""

    def __init__(
        self,
        client_factory: Callable[[str], Any] = create_boond_client,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self._client_factory = client_factory
        self._clients: Dict[str, Any] = {}
        self._log = get_logger(__name__, step="sync", callback=log_callback)

    def get_client(self, environment: str):
        environment = BoondEnvironment(environment).value
        if environment not in self._clients:
            self._clients[environment] = self._client_factory(environment)
        return self._clients[environment]

    @sync_operation("fetch all data", stage="sync", critical=True, reraise=True)
    def fetch_all_data(self, environment: str) -> ExportData:
        client = self.get_client(environment)
        entities = {
            entity: client.fetch_all(entity, page_size=FETCH_PAGE_SIZE, max_pages=FETCH_MAX_PAGES)
            for entity in ENTITIES
        }
        data = ExportData(
            exported_at=datetime.utcnow(),
            environment=BoondEnvironment(environment).value,
            entities=entities,
        )
        self._log.report(f"Fetched {environment} data: {data.stats}")
        return data

    def sync_entity_to_sandbox(
        self,
        entity: str,
        items: Sequence[Dict[str, Any]],
        on_progress: Optional[Callable[[SyncProgress], None]] = None,
    ) -> SyncProgress:
        """Create each record in the sandbox; failures are counted, not raised."""
        sandbox = self.get_client(BoondEnvironment.SANDBOX.value)
        progress = SyncProgress(entity=entity, total=len(items))

        for item in items:
            try:
                sandbox.create_entity(entity, strip_read_only(item.get("attributes") or {}))
                progress.success += 1
            except Exception as e:
                progress.failed += 1
                progress.errors.append(format_record_error("ID", item.get("id"), e))
            progress.processed += 1
            if on_progress:
                on_progress(progress)

        self._log.report(f"[{entity}] {progress.success}/{progress.total} copied to sandbox")
        return progress

    def sync_prod_to_sandbox(
        self, on_progress: Optional[Callable[[str, SyncProgress], None]] = None
    ) -> SyncResult:
        """Copy companies, contacts, candidates, resources and opportunities."""
        started_at = datetime.utcnow()
        production = self.fetch_all_data(BoondEnvironment.PRODUCTION.value)

        entities: Dict[str, SyncProgress] = {}
        for entity in SYNC_ORDER:
            callback = None
            if on_progress:
                callback = lambda progress, name=entity: on_progress(name, progress)
            entities[entity] = self.sync_entity_to_sandbox(
                entity, production.entities.get(entity, []), callback
            )

        return SyncResult(started_at=started_at, completed_at=datetime.utcnow(), entities=entities)

    def analyze_all_data_quality(self, environment: str) -> Dict[str, Any]:
        data = self.fetch_all_data(environment)
        issues = []
        duplicates = []

        for entity, type_label, required, emails, phones, names, duplicate_keys in QUALITY_RULES:
            items = data.entities.get(entity, [])
            issues.extend(analyze_data_quality(items, type_label, required, emails, phones, names))
            if duplicate_keys:
                duplicates.extend(find_duplicates(items, duplicate_keys, entity_type=type_label))

        return {
            "issues": [issue.to_dict() for issue in issues],
            "duplicates": [group.to_dict() for group in duplicates],
            "summary": summarize_issues(issues, duplicates),
        }

    def clean_data(self, data: ExportData) -> ExportData:
        """A normalised copy of the data; opportunities and projects are unchanged."""
        entities = copy.deepcopy(data.entities)
        for entity in ("candidates", "resources", "contacts"):
            entities[entity] = _normalise_attributes(entities.get(entity, []), _PERSON_NORMALISERS)
        entities["companies"] = _normalise_attributes(entities.get("companies", []), _COMPANY_NORMALISERS)

        return ExportData(
            exported_at=datetime.utcnow(),
            environment=data.environment,
            entities=entities,
        )

    @staticmethod
    def export_to_json(data: ExportData) -> str:
        return json.dumps(data.to_dict(), indent=2, ensure_ascii=False, default=str)

    @staticmethod
    def export_to_csv(items: Sequence[Dict[str, Any]], fields: Sequence[str]) -> str:
        """
        CSV text with an "id" column followed by fields.

        Values containing a comma, quote or newline are quoted, quotes
        doubled. Rows are joined by "\\n" with no trailing newline.
        """

        def cell(value: Any) -> str:
            if value is None:
                return ""
            text = str(value)
            if "," in text or '"' in text or "\n" in text:
                return '"' + text.replace('"', '""') + '"'
            return text

        lines = [",".join(["id", *fields])]
        for item in items:
            attributes = item.get("attributes") or {}
            lines.append(",".join(
                [cell(item.get("id"))] + [cell(attributes.get(name)) for name in fields]
            ))
        return "\n".join(lines)


_sync_service: Optional[BoondSyncService] = None


def get_sync_service() -> BoondSyncService:
    global _sync_service
    if _sync_service is None:
        _sync_service = BoondSyncService()
    return _sync_service
