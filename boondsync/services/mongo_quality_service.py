"""
Data quality analysis of the MongoDB collections fed by the import.

Looks at candidates, consultants and jobs as they are stored on the site
(flat documents, not BoondManager records) and reports the same kind of
issues as the BoondManager-side analysis, plus site-specific checks
(unpublished but active offers, short descriptions).
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from boondsync.boondmanager.normalizers import (
    is_valid_email,
    is_valid_phone,
    normalize_email,
    normalize_name,
    normalize_phone,
)
from boondsync.boondmanager.quality import DataQualityIssue, DuplicateGroup, summarize_issues
from boondsync.common.repositories import (
    CANDIDATES,
    CONSULTANTS,
    JOBS,
    CollectionRepositoryInterface,
    get_repository,
)

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 50


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


class MongoQualityAnalyzer:
    """Collects issues and duplicate groups over candidates, consultants and jobs."""

    def __init__(self, repositories: Optional[Dict[str, CollectionRepositoryInterface]] = None):
        self._repositories = dict(repositories or {})
        self.issues: List[DataQualityIssue] = []
        self.duplicates: List[DuplicateGroup] = []

    def _get_repository(self, collection: str) -> CollectionRepositoryInterface:
        if collection not in self._repositories:
            self._repositories[collection] = get_repository(collection)
        return self._repositories[collection]

    def _add(self, entity_type, entity_id, field, issue, severity, current=None, suggested=None):
        self.issues.append(
            DataQualityIssue(entity_type, entity_id, field, issue, severity, current, suggested)
        )

    def _check_email(self, entity_type: str, doc_id: str, email: Any) -> None:
        if not email or not isinstance(email, str):
            return
        if not is_valid_email(email):
            self._add(entity_type, doc_id, "email", "Format email invalide", "warning", email)
        normalized = normalize_email(email)
        if normalized != email:
            self._add(entity_type, doc_id, "email", "Email non normalisé", "info", email, normalized)

    def _check_phone(self, entity_type: str, doc_id: str, phone: Any, validate: bool) -> None:
        if not phone or not isinstance(phone, str):
            return
        if validate and not is_valid_phone(phone):
            self._add(entity_type, doc_id, "phone", "Format téléphone invalide", "warning", phone)
        normalized = normalize_phone(phone)
        if normalized != phone:
            self._add(entity_type, doc_id, "phone", "Téléphone non normalisé", "info", phone, normalized)

    def _group_duplicates(
        self,
        entity_type: str,
        field: str,
        documents: List[Dict[str, Any]],
        describe: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> None:
        groups: Dict[str, List[Dict[str, Any]]] = {}
        for doc in documents:
            value = doc.get(field)
            if not value or not isinstance(value, str):
                continue
            groups.setdefault(value.lower().strip(), []).append(doc)

        for value, members in groups.items():
            if len(members) > 1:
                self.duplicates.append(DuplicateGroup(
                    entity_type=entity_type,
                    field=field,
                    value=value,
                    items=[describe(doc) for doc in members],
                ))

    # ----- collections -----

    def analyze_candidates(self, candidates: List[Dict[str, Any]]) -> None:
        for candidate in candidates:
            doc_id = str(candidate.get("_id"))
            first_name = candidate.get("firstName")
            last_name = candidate.get("lastName")

            if _blank(first_name):
                self._add("candidate", doc_id, "firstName", "Prénom manquant", "error", first_name)
            if _blank(last_name):
                self._add("candidate", doc_id, "lastName", "Nom manquant", "error", last_name)

            self._check_email("candidate", doc_id, candidate.get("email"))
            self._check_phone("candidate", doc_id, candidate.get("phone"), validate=True)

            for field in ("firstName", "lastName"):
                value = candidate.get(field)
                if value and isinstance(value, str) and normalize_name(value) != value:
                    self._add(
                        "candidate", doc_id, field, "Nom non normalisé (casse)", "info",
                        value, normalize_name(value),
                    )

            if candidate.get("state") is None:
                self._add(
                    "candidate", doc_id, "state", "État de recrutement manquant", "warning",
                    None, 0,
                )

        self._group_duplicates("candidate", "email", candidates, lambda c: {
            "id": str(c.get("_id")),
            "name": f"{c.get('firstName') or ''} {c.get('lastName') or ''}".strip(),
            "email": c.get("email"),
        })

    def analyze_consultants(self, consultants: List[Dict[str, Any]]) -> None:
        for consultant in consultants:
            doc_id = str(consultant.get("_id"))

            if _blank(consultant.get("name")):
                self._add("consultant", doc_id, "name", "Nom manquant", "error", consultant.get("name"))
            if _blank(consultant.get("title")):
                self._add("consultant", doc_id, "title", "Titre/Poste manquant", "warning", consultant.get("title"))

            self._check_email("consultant", doc_id, consultant.get("email"))
            self._check_phone("consultant", doc_id, consultant.get("phone"), validate=False)

            if consultant.get("published") is False and consultant.get("available") is True:
                self._add(
                    "consultant", doc_id, "published", "Consultant disponible mais non publié", "info",
                    {"published": False, "available": True},
                )

        self._group_duplicates("consultant", "email", consultants, lambda c: {
            "id": str(c.get("_id")),
            "name": c.get("name") or "",
            "email": c.get("email"),
        })

    def analyze_jobs(self, jobs: List[Dict[str, Any]]) -> None:
        for job in jobs:
            doc_id = str(job.get("_id"))
            description = job.get("description")

            if _blank(job.get("title")):
                self._add("job", doc_id, "title", "Titre manquant", "error", job.get("title"))
            if _blank(job.get("location")):
                self._add("job", doc_id, "location", "Localisation manquante", "warning", job.get("location"))
            if _blank(description) or len(description) < MIN_DESCRIPTION_LENGTH:
                issue = (
                    f"Description trop courte (min {MIN_DESCRIPTION_LENGTH} caractères)"
                    if description else "Description manquante"
                )
                current = description[:MIN_DESCRIPTION_LENGTH] if isinstance(description, str) else description
                self._add("job", doc_id, "description", issue, "warning", current)

            if not job.get("missions"):
                self._add("job", doc_id, "missions", "Aucune mission définie", "info", job.get("missions"))
            if not job.get("requirements"):
                self._add("job", doc_id, "requirements", "Aucun prérequis défini", "info", job.get("requirements"))

            if job.get("published") is False and job.get("active") is True:
                self._add(
                    "job", doc_id, "published", "Offre active mais non publiée", "info",
                    {"published": False, "active": True},
                )

        self._group_duplicates("job", "title", jobs, lambda j: {
            "id": str(j.get("_id")),
            "name": j.get("title") or "",
        })

    def analyze(self) -> Dict[str, Any]:
        """Run every check and return {"issues", "duplicates", "summary"}."""
        self.issues = []
        self.duplicates = []

        candidates = self._get_repository(CANDIDATES).find({})
        consultants = self._get_repository(CONSULTANTS).find({})
        jobs = self._get_repository(JOBS).find({})

        self.analyze_candidates(candidates)
        self.analyze_consultants(consultants)
        self.analyze_jobs(jobs)

        collections = {}
        for name, entity_type, documents in (
            ("candidates", "candidate", candidates),
            ("consultants", "consultant", consultants),
            ("jobs", "job", jobs),
        ):
            collections[name] = {
                "total": len(documents),
                "issues": sum(1 for i in self.issues if i.entity_type == entity_type),
                "duplicates": sum(1 for d in self.duplicates if d.entity_type == entity_type),
            }

        summary = summarize_issues(self.issues, self.duplicates, collections)
        logger.info(
            f"MongoDB quality: {summary['totalIssues']} issues, "
            f"{summary['duplicateGroups']} duplicate groups"
        )
        return {
            "source": "mongodb",
            "issues": [issue.to_dict() for issue in self.issues],
            "duplicates": [group.to_dict() for group in self.duplicates],
            "summary": summary,
        }
