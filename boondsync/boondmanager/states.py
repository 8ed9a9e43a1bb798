"""
Fallback state and type labels.

Used whenever the BoondManager dictionary is unavailable or does not
describe a value. Keys are BoondManager ids.
"""

from typing import Dict

CANDIDATE_STATES: Dict[int, str] = {
    0: "Nouveau",
    1: "A qualifier",
    2: "Qualifié",
    3: "En cours",
    4: "Entretien",
    5: "Proposition",
    6: "Embauché",
    7: "Refusé",
    8: "Archivé",
}

RESOURCE_STATES: Dict[int, str] = {
    0: "Non défini",
    1: "Disponible",
    2: "En mission",
    3: "Intercontrat",
    4: "Indisponible",
    5: "Sorti",
}

OPPORTUNITY_STATES: Dict[int, str] = {
    0: "En cours",
    1: "Gagnée",
    2: "Perdue",
    3: "Abandonnée",
}

PROJECT_STATES: Dict[int, str] = {
    0: "En préparation",
    1: "En cours",
    2: "Terminé",
    3: "Annulé",
}

COMPANY_STATES: Dict[int, str] = {
    0: "Prospect",
    1: "Client",
    2: "Ancien client",
    3: "Fournisseur",
    4: "Archivé",
}

POSITIONING_STATES: Dict[int, str] = {
    0: "En attente",
    1: "Proposé",
    2: "Validé",
    3: "Refusé",
    4: "Annulé",
}

ACTION_TYPES: Dict[int, str] = {
    1: "Positionnement",
    2: "Entretien client",
    3: "Entretien interne",
    4: "Proposition",
    5: "Démarrage",
    6: "Appel",
    7: "Email",
    8: "Réunion",
    9: "Autre",
}

UNKNOWN_LABEL = "Inconnu"
OTHER_ACTION_LABEL = "Autre"

# Dictionary key -> fallback table, in the order get_all_states() reports them
FALLBACK_TABLES: Dict[str, Dict[int, str]] = {
    "candidateStates": CANDIDATE_STATES,
    "resourceStates": RESOURCE_STATES,
    "opportunityStates": OPPORTUNITY_STATES,
    "projectStates": PROJECT_STATES,
    "companyStates": COMPANY_STATES,
    "positioningStates": POSITIONING_STATES,
    "actionTypes": ACTION_TYPES,
}
