"""
Field mapping between BoondManager records and MongoDB documents.

Forward mappers turn a JSON:API record ({"id", "attributes"}) into the
document stored in consultants / users / candidates / jobs / companies.
Reverse mappers build the attribute payloads used when pushing MongoDB
documents back to the sandbox.

Straight field copies are declared as FieldSpec lists and applied with
map_fields(); anything with real logic (categories, missions parsing,
availability) stays in plain code next to it.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from . import states as fallback

logger = logging.getLogger(__name__)

# Domain used for users created from resources that have no email in BoondManager
PLACEHOLDER_EMAIL_DOMAIN = "@ebmc-import.temp"

_BULLET_PREFIX = re.compile(r"^[-*]\s*")


# =============================================================================
# Declarative field specs
# =============================================================================

@dataclass(frozen=True)
class FieldSpec:
    """
    One target field of a mapped document.

    source is an attribute name or a callable receiving the whole
    attributes dict. transform runs on non-None values only; default
    replaces a None value. A final None drops the field.
    """
    target: str
    source: Union[str, Callable[[Dict[str, Any]], Any]]
    transform: Optional[Callable[[Any], Any]] = None
    default: Any = None


def map_fields(attributes: Dict[str, Any], specs: Sequence[FieldSpec]) -> Dict[str, Any]:
    """Apply specs to a record's attributes; None results are omitted."""
    document: Dict[str, Any] = {}
    for spec in specs:
        if callable(spec.source):
            value = spec.source(attributes)
        else:
            value = attributes.get(spec.source)

        if value is not None and spec.transform is not None:
            value = spec.transform(value)
        if value is None:
            value = spec.default
        if value is not None:
            document[spec.target] = value
    return document


# =============================================================================
# Value helpers
# =============================================================================

def safe_string(value: Any) -> Optional[str]:
    """
    Coerce a BoondManager field to text.

    Some fields come back as objects such as {"typeOf": 1, "detail": "..."};
    the first string among detail/value/label/name is used, otherwise the
    object is JSON-encoded.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, dict):
        for key in ("detail", "value", "label", "name"):
            if isinstance(value.get(key), str):
                return value[key]
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return None
    return str(value)


def parse_boond_date(value: Any) -> Optional[datetime]:
    """
    Parse the date formats BoondManager returns.

    ISO strings (with or without time / offset) and epoch numbers; numbers
    above 1e12 are milliseconds, smaller ones seconds. Anything else,
    including unparseable strings, gives None.
    """
    if not value or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%dT%H:%M:%S%z")
        except ValueError:
            logger.debug(f"Unparseable BoondManager date: {value!r}")
            return None

    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    return None


def split_list(value: Any) -> List[str]:
    """A list as-is, a comma-separated string split and trimmed, else []."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return []


def categorize_title(title: str, for_job: bool = False) -> str:
    """
    Site category from a consultant or job title.

    Consultants also recognise "security", "ai" and "full"; jobs use the
    narrower keyword set.
    """
    text = (title or "").lower()
    if "sap" in text:
        return "sap"
    if "cyber" in text or (not for_job and "security" in text):
        return "cybersecurity"
    if "data" in text or "ia" in text or (not for_job and "ai" in text):
        return "data"
    if "dev" in text or (not for_job and "full" in text):
        return "dev"
    return "consulting"


def record_id(record: Dict[str, Any]) -> Any:
    """The record id as an int when it is numeric, else unchanged."""
    value = record.get("id")
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _non_empty(value: Any) -> Any:
    return value if value not in ("", [], {}) else None


def _now() -> datetime:
    return datetime.utcnow()


def is_placeholder_email(email: Optional[str]) -> bool:
    return not email or email.endswith(PLACEHOLDER_EMAIL_DOMAIN)


# =============================================================================
# BoondManager -> MongoDB
# =============================================================================

def map_resource_to_consultant(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Resource -> consultants document (unpublished draft)."""
    attrs = resource.get("attributes") or {}
    name = f"{attrs.get('firstName') or ''} {attrs.get('lastName') or ''}".strip()

    # 1 = Disponible, 2 = En mission; both are shown on the site
    available = attrs.get("state") in (1, 2)

    title = safe_string(attrs.get("title")) or "Consultant"
    experience = f"{attrs['experience']} ans" if attrs.get("experience") else "3+ ans"

    return {
        "boondManagerId": record_id(resource),
        "name": name,
        "title": title,
        "titleEn": title,
        "location": attrs.get("town") or attrs.get("country") or "France",
        "experience": experience,
        "experienceEn": experience,
        "category": categorize_title(title),
        "available": available,
        "published": False,
        "skills": split_list(attrs.get("skills")),
        "certifications": split_list(attrs.get("certifications")),
        "email": attrs.get("email"),
        "phone": attrs.get("phone1"),
        "updatedAt": _now(),
    }


def map_resource_to_user(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Resource -> users document; the password is never set here."""
    attrs = resource.get("attributes") or {}
    resource_id = record_id(resource)
    name = f"{attrs.get('firstName') or ''} {attrs.get('lastName') or ''}".strip()

    contract = attrs.get("typeContract")
    role = "consultant_cdi" if isinstance(contract, str) and "cdi" in contract.lower() else "freelance"

    return {
        "boondManagerId": resource_id,
        "email": attrs.get("email") or f"resource_{resource_id}{PLACEHOLDER_EMAIL_DOMAIN}",
        "name": name,
        "role": role,
        "active": (attrs.get("state") or 0) in (1, 2),
        "updatedAt": _now(),
    }


CANDIDATE_FIELDS: List[FieldSpec] = [
    FieldSpec("firstName", "firstName", default=""),
    FieldSpec("lastName", "lastName", default=""),
    FieldSpec("email", "email", _non_empty),
    FieldSpec("phone", "phone1", _non_empty),
    FieldSpec("phone2", "phone2", _non_empty),
    FieldSpec("title", "title", _non_empty),
    FieldSpec("civility", "civility", _int_or_none),
    FieldSpec("thumbnail", "thumbnail", _non_empty),
    FieldSpec("linkedInUrl", "linkedInUrl", _non_empty),
    FieldSpec("dateOfBirth", "dateOfBirth", _non_empty),
    FieldSpec("nationality", "nationality", _non_empty),
    FieldSpec("location", lambda a: a.get("town") or a.get("country") or None),
    FieldSpec("address", "address", _non_empty),
    FieldSpec("postcode", "postcode", _non_empty),
    FieldSpec("town", "town", _non_empty),
    FieldSpec("country", "country", _non_empty),
    FieldSpec("mobilityArea", "mobilityArea", _non_empty),
    FieldSpec("availabilityDate", "availabilityDate", _non_empty),
    FieldSpec("minimumSalary", "minimumSalary", _number_or_none),
    FieldSpec("maximumSalary", "maximumSalary", _number_or_none),
    FieldSpec("skills", "skills", split_list, default=[]),
    FieldSpec("experienceYears", "experienceYears", _number_or_none),
    FieldSpec("experience", lambda a: f"{a['experienceYears']} ans" if a.get("experienceYears") else None),
    FieldSpec("expertise1", "expertise1", _int_or_none),
    FieldSpec("expertise2", "expertise2", _int_or_none),
    FieldSpec("expertise3", "expertise3", _int_or_none),
    FieldSpec("source", "source", _non_empty),
    FieldSpec("origin", "origin", _non_empty),
    FieldSpec("lastActivityDate", "lastActivityDate", _non_empty),
]


def _relationship_id(record: Dict[str, Any], name: str) -> Any:
    data = ((record.get("relationships") or {}).get(name) or {}).get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        return record_id(data)
    return None


def map_candidate_to_site_candidate(
    candidate: Dict[str, Any],
    candidate_states: Optional[Dict[int, str]] = None,
    candidate_types: Optional[Dict[int, str]] = None,
) -> Dict[str, Any]:
    """
    Candidate -> candidates document.

    stateLabel comes from the record itself, then the dictionary map, then
    the built-in table. typeOfLabel is only set when a type map is given.
    """
    attrs = candidate.get("attributes") or {}

    state = _int_or_none(attrs.get("state"))
    if state is None:
        state = 0
    state_label = (
        attrs.get("stateLabel")
        or (candidate_states or {}).get(state)
        or fallback.CANDIDATE_STATES.get(state)
        or fallback.UNKNOWN_LABEL
    )

    type_of = _int_or_none(attrs.get("typeOf"))
    type_label = (candidate_types or {}).get(type_of) if type_of is not None else None

    document = {"boondManagerId": record_id(candidate)}
    document.update(map_fields(attrs, CANDIDATE_FIELDS))
    document["state"] = state
    document["stateLabel"] = state_label
    if type_of is not None:
        document["typeOf"] = type_of
    if type_label:
        document["typeOfLabel"] = type_label

    for target, relation in (("mainManagerId", "mainManager"), ("agencyId", "agency")):
        related = _relationship_id(candidate, relation)
        if related is not None:
            document[target] = related

    document["updatedAt"] = _now()
    return document


def _split_description(description: str):
    missions: List[str] = []
    requirements: List[str] = []
    for line in description.split("\n"):
        if not line.strip() or not line.startswith(("-", "*")):
            continue
        text = _BULLET_PREFIX.sub("", line)
        lowered = line.lower()
        if "requis" in lowered or "experience" in lowered:
            requirements.append(text)
        else:
            missions.append(text)
    return missions, requirements


def map_opportunity_to_job(opportunity: Dict[str, Any]) -> Dict[str, Any]:
    """Opportunity -> jobs document; only state 0 (en cours) is active."""
    attrs = opportunity.get("attributes") or {}
    title = attrs.get("title") or "Opportunite"
    lowered = title.lower()
    job_type = "Freelance" if "freelance" in lowered or "mission" in lowered else "CDI"

    description = attrs.get("description") or ""
    missions, requirements = _split_description(description)
    experience = attrs.get("experience")

    return {
        "boondManagerId": record_id(opportunity),
        "title": title,
        "titleEn": title,
        "location": attrs.get("location") or "France",
        "type": job_type,
        "typeEn": job_type,
        "category": categorize_title(title, for_job=True),
        "experience": experience or "3+ ans",
        "experienceEn": experience or "3+ years",
        "description": description[:500],
        "descriptionEn": description[:500],
        "missions": missions or ["A definir"],
        "missionsEn": missions or ["To be defined"],
        "requirements": requirements or ["Voir description"],
        "requirementsEn": requirements or ["See description"],
        "active": attrs.get("state") == 0,
        "published": False,
        "updatedAt": _now(),
    }


COMPANY_FIELDS: List[FieldSpec] = [
    FieldSpec("name", "name", safe_string, default=""),
    FieldSpec("email", "email", _non_empty),
    FieldSpec("phone", "phone1", _non_empty),
    FieldSpec("website", "website", _non_empty),
    FieldSpec("address", "address", _non_empty),
    FieldSpec("postcode", "postcode", _non_empty),
    FieldSpec("town", "town", _non_empty),
    FieldSpec("country", "country", _non_empty),
]


def map_company(company: Dict[str, Any]) -> Dict[str, Any]:
    """Company -> companies document."""
    attrs = company.get("attributes") or {}
    state = _int_or_none(attrs.get("state"))

    document = {"boondManagerId": record_id(company)}
    document.update(map_fields(attrs, COMPANY_FIELDS))
    if state is not None:
        document["state"] = state
        document["stateLabel"] = (
            attrs.get("stateLabel")
            or fallback.COMPANY_STATES.get(state)
            or fallback.UNKNOWN_LABEL
        )
    document["updatedAt"] = _now()
    return document


# =============================================================================
# MongoDB -> BoondManager (sandbox export)
# =============================================================================

def _compact(attributes: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in attributes.items() if value is not None}


def _split_name(name: str):
    parts = (name or "").strip().split(" ", 1)
    first = parts[0] if parts and parts[0] else "Consultant"
    last = parts[1].strip() if len(parts) > 1 and parts[1].strip() else "EBMC"
    return first, last


def _as_boond_date(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    parsed = parse_boond_date(value)
    return parsed.date().isoformat() if parsed else None


def map_consultant_to_resource_data(consultant: Dict[str, Any]) -> Dict[str, Any]:
    """consultants document -> resource attributes (None values dropped)."""
    first_name, last_name = _split_name(consultant.get("name") or "")
    return _compact({
        "firstName": first_name,
        "lastName": last_name,
        "civility": 0,
        "email": consultant.get("email"),
        "phone1": consultant.get("phone"),
        "title": consultant.get("title"),
        "state": 1 if consultant.get("available") else 2,
    })


def map_candidate_to_boond_data(candidate: Dict[str, Any]) -> Dict[str, Any]:
    """candidates document -> candidate attributes (None values dropped)."""
    state = candidate.get("state")
    return _compact({
        "firstName": candidate.get("firstName") or "Candidat",
        "lastName": candidate.get("lastName") or "Inconnu",
        "civility": 0,
        "email": candidate.get("email"),
        "phone1": candidate.get("phone"),
        "title": candidate.get("title"),
        "origin": candidate.get("source") or "MongoDB Import",
        "state": state if isinstance(state, int) else 0,
    })


def map_job_to_opportunity_data(job: Dict[str, Any]) -> Dict[str, Any]:
    """jobs document -> opportunity attributes; closed jobs get state 3."""
    return _compact({
        "title": job.get("title") or "Opportunite",
        "mode": 1,
        "state": 0 if job.get("active") else 3,
        "typeOf": 1,
        "description": job.get("description"),
        "startDate": _as_boond_date(job.get("createdAt")),
    })
