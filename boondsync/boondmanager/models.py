"""Shared BoondManager vocabulary: environments, entity names, record checks."""

from enum import Enum
from typing import Any, Dict


class BoondEnvironment(str, Enum):
    """The two isolated BoondManager instances."""
    PRODUCTION = "production"
    SANDBOX = "sandbox"


# REST collection name -> JSON:API resource type
ENTITY_TYPES: Dict[str, str] = {
    "candidates": "candidate",
    "resources": "resource",
    "opportunities": "opportunity",
    "companies": "company",
    "contacts": "contact",
    "projects": "project",
}

ENTITIES = list(ENTITY_TYPES)

DOCUMENT_PARENT_TYPES = ("candidate", "resource", "resourceResume")


def is_valid_record(item: Any) -> bool:
    """
    True for a well-formed JSON:API record.

    The API occasionally returns bare ids or nulls inside ``data``; only
    objects with a non-null id and an ``attributes`` object are kept.
    """
    if not isinstance(item, dict):
        return False
    record_id = item.get("id")
    if record_id is None or isinstance(record_id, bool):
        return False
    if not isinstance(record_id, (int, str)):
        return False
    return isinstance(item.get("attributes"), dict)
