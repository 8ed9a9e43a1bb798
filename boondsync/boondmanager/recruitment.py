"""
Recruitment pipeline stage inference.

BoondManager candidate states are agency-defined ("Vivier", "Blacklist",
...), so the pipeline stage shown on the site is derived from the
candidate's actions instead: the most advanced kind of action found
determines the stage.

Action type ids (default BoondManager configuration):
    1 Positionnement, 2 Entretien client, 3 Entretien interne,
    4 Proposition, 5 Démarrage, 6 Appel, 7 Email, 8 Réunion, 9 Autre

Pipeline stages:
    0 Nouveau, 1 A qualifier, 2 Qualifié, 3 En cours, 4 Entretien,
    5 Proposition, 6 Embauché, 7 Refusé, 8 Archivé
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .mappers import parse_boond_date


@dataclass(frozen=True)
class RecruitmentStage:
    state: int
    state_label: str
    matched_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "stateLabel": self.state_label,
            "matchedAction": self.matched_action,
        }


@dataclass(frozen=True)
class _StageRule:
    type_ids: Sequence[int]
    label_patterns: Sequence[str]
    state: int
    state_label: str
    matched_action: str


# Highest stage first; the first matching rule wins
STAGE_RULES: List[_StageRule] = [
    _StageRule([5], ["démarrage", "demarrage", "start", "embauche", "hired"], 6, "Embauché", "Démarrage"),
    _StageRule([4], ["proposition", "offre", "offer"], 5, "Proposition", "Proposition"),
    _StageRule([2, 3], ["entretien", "interview"], 4, "Entretien", "Entretien"),
    _StageRule([1], ["positionnement", "positioning", "position"], 3, "En cours", "Positionnement"),
    _StageRule(
        [6, 7, 8],
        ["appel", "call", "email", "mail", "réunion", "reunion", "meeting"],
        1, "A qualifier", "Contact",
    ),
]

NEW_STAGE = RecruitmentStage(0, "Nouveau")
OTHER_ACTION_STAGE = RecruitmentStage(2, "Qualifié", "Autre action")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _action_date(action: Dict[str, Any]) -> datetime:
    attributes = action.get("attributes") or {}
    parsed = parse_boond_date(attributes.get("startDate") or attributes.get("creationDate"))
    if parsed is None:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def determine_recruitment_state_from_actions(
    actions: Optional[List[Dict[str, Any]]],
    candidate_state: Optional[int] = None,
    action_types: Optional[Dict[int, str]] = None,
) -> RecruitmentStage:
    """
    Infer the pipeline stage from a candidate's actions.

    A rule matches when an action's typeOf is one of the rule ids or, when
    an action-type dictionary is given, an action's lower-cased label
    contains one of the rule patterns.

    candidate_state is accepted for callers that have it; the stage is
    derived from actions alone.
    """
    if not actions:
        return NEW_STAGE

    ordered = sorted(actions, key=_action_date, reverse=True)
    type_ids = [(action.get("attributes") or {}).get("typeOf") for action in ordered]

    labels: List[str] = []
    if action_types:
        labels = [(action_types.get(type_id) or "").lower() for type_id in type_ids]

    for rule in STAGE_RULES:
        if any(type_id in rule.type_ids for type_id in type_ids):
            return RecruitmentStage(rule.state, rule.state_label, rule.matched_action)
        if labels and any(pattern in label for pattern in rule.label_patterns for label in labels):
            return RecruitmentStage(rule.state, rule.state_label, rule.matched_action)

    return OTHER_ACTION_STAGE


def map_state_label_to_state(state_label: Optional[str], default_state: int) -> int:
    """Pipeline stage id for a free-text French state label, else default_state."""
    if not state_label:
        return default_state

    label = state_label.lower().strip()

    if "nouveau" in label:
        return 0
    if "a qualifier" in label or "à qualifier" in label:
        return 1
    if "qualifi" in label:
        return 2
    if "en cours" in label:
        return 3
    if "entretien" in label:
        return 4
    if "proposition" in label:
        return 5
    if "embauche" in label or "embauché" in label or "hire" in label:
        return 6
    if "refus" in label:
        return 7
    if "archiv" in label:
        return 8
    return default_state
