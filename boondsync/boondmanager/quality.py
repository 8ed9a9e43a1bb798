"""
Data quality checks over BoondManager records.

Issues carry a severity:
- error: a required field is missing
- warning: a value is malformed (invalid email)
- info: a value works but is not in normalised form; suggested_value
  holds the normalised one
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .normalizers import (
    is_valid_email,
    normalize_email,
    normalize_name,
    normalize_phone,
)

SEVERITIES = ("error", "warning", "info")


@dataclass
class DataQualityIssue:
    entity_type: str
    entity_id: Any
    field: str
    issue: str
    severity: str
    current_value: Any = None
    suggested_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "field": self.field,
            "issue": self.issue,
            "severity": self.severity,
            "currentValue": self.current_value,
        }
        if self.suggested_value is not None:
            result["suggestedValue"] = self.suggested_value
        return result


@dataclass
class DuplicateGroup:
    entity_type: str
    field: str
    value: str
    items: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "entityType": data["entity_type"],
            "field": data["field"],
            "value": data["value"],
            "items": data["items"],
        }


def _check_normalised(
    issues: List[DataQualityIssue],
    entity_type: str,
    entity_id: Any,
    field_name: str,
    value: Any,
    normaliser,
    message: str,
) -> None:
    if not value or not isinstance(value, str):
        return
    normalized = normaliser(value)
    if normalized != value:
        issues.append(DataQualityIssue(
            entity_type, entity_id, field_name, message, "info", value, normalized
        ))


def analyze_data_quality(
    items: Iterable[Dict[str, Any]],
    entity_type: str,
    required_fields: Sequence[str],
    email_fields: Sequence[str] = (),
    phone_fields: Sequence[str] = (),
    name_fields: Sequence[str] = (),
) -> List[DataQualityIssue]:
    """Check a list of {"id", "attributes"} records and return every issue found."""
    issues: List[DataQualityIssue] = []

    for item in items:
        item_id = item.get("id")
        attrs = item.get("attributes") or {}

        for field_name in required_fields:
            value = attrs.get(field_name)
            if value is None or value == "":
                issues.append(DataQualityIssue(
                    entity_type, item_id, field_name, "Champ requis manquant", "error", value
                ))

        for field_name in email_fields:
            value = attrs.get(field_name)
            if value and isinstance(value, str) and not is_valid_email(value):
                issues.append(DataQualityIssue(
                    entity_type, item_id, field_name, "Format email invalide", "warning", value
                ))
            _check_normalised(
                issues, entity_type, item_id, field_name, value,
                normalize_email, "Email non normalise",
            )

        for field_name in phone_fields:
            _check_normalised(
                issues, entity_type, item_id, field_name, attrs.get(field_name),
                normalize_phone, "Telephone non normalise",
            )

        for field_name in name_fields:
            _check_normalised(
                issues, entity_type, item_id, field_name, attrs.get(field_name),
                normalize_name, "Nom non normalise (casse)",
            )

    return issues


def find_duplicates(
    items: Iterable[Dict[str, Any]],
    fields: Sequence[str],
    entity_type: str = "unknown",
) -> List[DuplicateGroup]:
    """
    Group records sharing a value, compared lower-cased and trimmed.

    Empty values are ignored. One group per (field, value) with more
    than one record.
    """
    items = list(items)
    groups: List[DuplicateGroup] = []

    for field_name in fields:
        by_value: Dict[str, List[Dict[str, Any]]] = {}
        for item in items:
            attrs = item.get("attributes") or {}
            raw = attrs.get(field_name)
            value = str(raw or "").lower().strip()
            if not value:
                continue
            by_value.setdefault(value, []).append(item)

        for value, members in by_value.items():
            if len(members) > 1:
                groups.append(DuplicateGroup(
                    entity_type=entity_type,
                    field=field_name,
                    value=value,
                    items=[
                        {"id": member.get("id"), "attributes": member.get("attributes") or {}}
                        for member in members
                    ],
                ))

    return groups


def summarize_issues(
    issues: Sequence[DataQualityIssue],
    duplicates: Sequence[DuplicateGroup],
    collections: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Counts by severity plus the number of duplicate groups."""
    summary: Dict[str, Any] = {
        "totalIssues": len(issues),
        "errors": sum(1 for issue in issues if issue.severity == "error"),
        "warnings": sum(1 for issue in issues if issue.severity == "warning"),
        "info": sum(1 for issue in issues if issue.severity == "info"),
        "duplicateGroups": len(duplicates),
    }
    if collections is not None:
        summary["collections"] = collections
    return summary
