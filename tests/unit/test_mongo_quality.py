"""
Unit tests for boondsync/services/mongo_quality_service.py

Checks run on the documents stored in MongoDB (candidates, consultants, jobs).
"""

import pytest

from boondsync.common.repositories import CANDIDATES, CONSULTANTS, JOBS
from boondsync.services.mongo_quality_service import MongoQualityAnalyzer


@pytest.fixture
def analyzer(repositories):
    return MongoQualityAnalyzer(repositories)


def issues_of(analyzer):
    return [(i.entity_id, i.field, i.issue, i.severity) for i in analyzer.issues]


class TestCandidates:
    def test_missing_names_and_state(self, analyzer):
        analyzer.analyze_candidates([{"_id": "c2", "firstName": "", "lastName": "Martin"}])

        assert issues_of(analyzer) == [
            ("c2", "firstName", "Prénom manquant", "error"),
            ("c2", "state", "État de recrutement manquant", "warning"),
        ]
        assert analyzer.issues[1].suggested_value == 0

    def test_normalisation_suggestions(self, analyzer):
        analyzer.analyze_candidates([{
            "_id": "c1", "firstName": "jean", "lastName": "Dupont",
            "email": "Jean@Mail.com", "phone": "0612345678", "state": 1,
        }])

        suggestions = {i.field: i.suggested_value for i in analyzer.issues}
        assert suggestions == {
            "email": "jean@mail.com",
            "phone": "+33 6 12 34 56 78",
            "firstName": "Jean",
        }
        assert all(i.severity == "info" for i in analyzer.issues)

    def test_invalid_phone_flagged(self, analyzer):
        analyzer.analyze_candidates([{
            "_id": "c3", "firstName": "Ana", "lastName": "Lopez", "phone": "12", "state": 0,
        }])

        assert ("c3", "phone", "Format téléphone invalide", "warning") in issues_of(analyzer)

    def test_duplicate_emails(self, analyzer):
        analyzer.analyze_candidates([
            {"_id": "a", "firstName": "Jean", "lastName": "Dupont", "email": "Jean@mail.com", "state": 1},
            {"_id": "b", "firstName": "Jean", "lastName": "Dupont", "email": "jean@mail.com ", "state": 1},
        ])

        assert len(analyzer.duplicates) == 1
        group = analyzer.duplicates[0]
        assert group.value == "jean@mail.com"
        assert [item["id"] for item in group.items] == ["a", "b"]
        assert group.items[0]["name"] == "Jean Dupont"


def test_consultant_checks(analyzer):
    analyzer.analyze_consultants([{
        "_id": "k1", "name": "Alice Martin", "title": "", "email": "bad",
        "phone": "06 12", "published": False, "available": True,
    }])

    assert issues_of(analyzer) == [
        ("k1", "title", "Titre/Poste manquant", "warning"),
        ("k1", "email", "Format email invalide", "warning"),
        ("k1", "phone", "Téléphone non normalisé", "info"),
        ("k1", "published", "Consultant disponible mais non publié", "info"),
    ]


def test_job_checks(analyzer):
    analyzer.analyze_jobs([{
        "_id": "j1", "title": "Mission", "location": "", "description": "court",
        "missions": [], "requirements": ["SQL"], "published": False, "active": True,
    }])

    assert issues_of(analyzer) == [
        ("j1", "location", "Localisation manquante", "warning"),
        ("j1", "description", "Description trop courte (min 50 caractères)", "warning"),
        ("j1", "missions", "Aucune mission définie", "info"),
        ("j1", "published", "Offre active mais non publiée", "info"),
    ]


def test_analyze_reads_collections(analyzer, repositories):
    repositories[CANDIDATES].insert_one({"firstName": "Jean", "lastName": "", "state": 1})
    repositories[CONSULTANTS].insert_one({"name": "Alice Martin", "title": "Consultante SAP"})
    repositories[JOBS].insert_one({"title": "Data", "location": "Paris", "description": "x" * 60,
                                   "missions": ["a"], "requirements": ["b"]})
    repositories[JOBS].insert_one({"title": "data ", "location": "Lyon", "description": "y" * 60,
                                   "missions": ["a"], "requirements": ["b"]})

    report = analyzer.analyze()

    assert report["source"] == "mongodb"
    summary = report["summary"]
    assert summary["errors"] == 1
    assert summary["duplicateGroups"] == 1
    assert summary["collections"]["candidates"] == {"total": 1, "issues": 1, "duplicates": 0}
    assert summary["collections"]["jobs"] == {"total": 2, "issues": 0, "duplicates": 1}
    assert report["issues"][0]["issue"] == "Nom manquant"


def test_analyze_is_repeatable(analyzer, repositories):
    repositories[CANDIDATES].insert_one({"firstName": "", "lastName": "Roux", "state": 0})

    analyzer.analyze()
    report = analyzer.analyze()

    assert report["summary"]["totalIssues"] == 1
