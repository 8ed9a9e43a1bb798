"""
BoondManager dictionary service.

Fetches the application dictionary (state labels, types, modes...) and
caches it in memory per environment. When the API is unavailable the
fallback tables in states.py are used instead.

BoondManager has shipped two dictionary shapes:
    {"data": {"setting": {"state": {"candidate": [...]}, "typeOf": {...}}}}
    {"data": {"attributes": {"candidateStates": [...], "actionTypes": [...]}}}
normalize_dictionary() turns either into the flat "attributes" form.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from boondsync.common.config import Config

from . import states as fallback

logger = logging.getLogger(__name__)

# setting.state.<entity> -> <entity>States
_STATE_KEYS = {
    "candidate": "candidateStates",
    "resource": "resourceStates",
    "opportunity": "opportunityStates",
    "project": "projectStates",
    "company": "companyStates",
    "contact": "contactStates",
    "positioning": "positioningStates",
    "action": "actionStates",
}

# setting.typeOf.<entity> -> <entity>Types
_TYPE_KEYS = {
    "candidate": "candidateTypes",
    "resource": "resourceTypes",
    "opportunity": "opportunityTypes",
    "project": "projectTypes",
    "company": "companyTypes",
    "action": "actionTypes",
    "employee": "employeeTypes",
}

_MODE_KEYS = {
    "opportunity": "opportunityModes",
    "project": "projectModes",
}

_OTHER_KEYS = {
    "civility": "civilities",
    "country": "countries",
    "currency": "currencies",
    "languageSpoken": "languages",
    "expertiseArea": "expertises",
    "experience": "expertiseLevels",
    "agency": "agencies",
    "pole": "poles",
    "origin": "origins",
    "source": "sources",
    "durationUnit": "durationUnits",
    "activityArea": "activityAreas",
    "tool": "tools",
}


def normalize_dictionary(dictionary: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Flatten either dictionary shape into {"candidateStates": [...], ...}."""
    if not isinstance(dictionary, dict):
        return {}
    data = dictionary.get("data")
    if not isinstance(data, dict):
        return {}

    setting = data.get("setting")
    if isinstance(setting, dict):
        attributes: Dict[str, Any] = {}
        for group, keys in (
            ("state", _STATE_KEYS),
            ("typeOf", _TYPE_KEYS),
            ("mode", _MODE_KEYS),
        ):
            section = setting.get(group) or {}
            for source_key, target_key in keys.items():
                if section.get(source_key):
                    attributes[target_key] = section[source_key]
        for source_key, target_key in _OTHER_KEYS.items():
            if setting.get(source_key):
                attributes[target_key] = setting[source_key]
        return attributes

    attributes = data.get("attributes")
    return dict(attributes) if isinstance(attributes, dict) else {}


def items_to_map(items: Any) -> Dict[int, str]:
    """[{"id": "3", "value": "X"}, ...] -> {3: "X"}; malformed items are skipped."""
    if not isinstance(items, list):
        return {}

    result: Dict[int, str] = {}
    for item in items:
        if not isinstance(item, dict) or "id" not in item:
            continue
        try:
            item_id = int(item["id"])
        except (TypeError, ValueError):
            logger.debug(f"Skipping dictionary item with non-numeric id: {item.get('id')!r}")
            continue
        result[item_id] = item.get("value")
    return result


def candidate_state_and_type_maps(
    dictionary: Optional[Dict[str, Any]],
) -> Tuple[Dict[int, str], Dict[int, str]]:
    """Candidate state and typeOf label maps from a raw dictionary (may be empty)."""
    attributes = normalize_dictionary(dictionary)
    return (
        items_to_map(attributes.get("candidateStates")),
        items_to_map(attributes.get("candidateTypes")),
    )


@dataclass
class _CacheEntry:
    data: Dict[str, Any]
    timestamp: float


class DictionaryService:
    """
    Cached dictionary lookups with fallbacks.

    The cache holds one entry per environment and expires after
    ``ttl`` seconds (Config.BOOND_DICTIONARY_TTL by default).
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[str], Any]] = None,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        if client_factory is None:
            from .client import create_boond_client
            client_factory = create_boond_client
        self._client_factory = client_factory
        self._ttl = ttl if ttl is not None else Config.BOOND_DICTIONARY_TTL
        self._clock = clock
        self._cache: Dict[str, _CacheEntry] = {}
        self._clients: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _get_client(self, environment: str) -> Any:
        """One client (and HTTP session) per environment for the service lifetime."""
        with self._lock:
            if environment not in self._clients:
                self._clients[environment] = self._client_factory(environment)
            return self._clients[environment]

    def fetch_dictionary(
        self, environment: str = "production", force_refresh: bool = False
    ) -> Optional[Dict[str, Any]]:
        """
        Raw dictionary for an environment.

        Returns the cached copy while it is fresh. On fetch failure the
        stale cached copy is returned if there is one, else None.
        """
        now = self._clock()
        with self._lock:
            entry = self._cache.get(environment)
            if not force_refresh and entry and now - entry.timestamp < self._ttl:
                return entry.data

        try:
            dictionary = self._get_client(environment).get_dictionary()
        except Exception as e:
            logger.error(f"Error fetching BoondManager dictionary [{environment}]: {e}")
            with self._lock:
                entry = self._cache.get(environment)
            return entry.data if entry else None

        with self._lock:
            self._cache[environment] = _CacheEntry(data=dictionary, timestamp=now)
        logger.info(f"BoondManager dictionary loaded [{environment}]")
        return dictionary

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def get_attributes(self, environment: str = "production") -> Dict[str, Any]:
        return normalize_dictionary(self.fetch_dictionary(environment))

    def _get_map(self, key: str, environment: str) -> Dict[int, str]:
        values = items_to_map(self.get_attributes(environment).get(key))
        return values or dict(fallback.FALLBACK_TABLES[key])

    # ----- state getters -----

    def get_candidate_states(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("candidateStates", environment)

    def get_resource_states(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("resourceStates", environment)

    def get_opportunity_states(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("opportunityStates", environment)

    def get_project_states(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("projectStates", environment)

    def get_company_states(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("companyStates", environment)

    def get_positioning_states(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("positioningStates", environment)

    def get_action_types(self, environment: str = "production") -> Dict[int, str]:
        return self._get_map("actionTypes", environment)

    # ----- label getters -----

    def _label(self, key: str, state_id: int, environment: str, default: str) -> str:
        label = self._get_map(key, environment).get(state_id)
        return label or fallback.FALLBACK_TABLES[key].get(state_id) or default

    def get_candidate_state_label(self, state_id: int, environment: str = "production") -> str:
        return self._label("candidateStates", state_id, environment, fallback.UNKNOWN_LABEL)

    def get_resource_state_label(self, state_id: int, environment: str = "production") -> str:
        return self._label("resourceStates", state_id, environment, fallback.UNKNOWN_LABEL)

    def get_opportunity_state_label(self, state_id: int, environment: str = "production") -> str:
        return self._label("opportunityStates", state_id, environment, fallback.UNKNOWN_LABEL)

    def get_project_state_label(self, state_id: int, environment: str = "production") -> str:
        return self._label("projectStates", state_id, environment, fallback.UNKNOWN_LABEL)

    def get_company_state_label(self, state_id: int, environment: str = "production") -> str:
        return self._label("companyStates", state_id, environment, fallback.UNKNOWN_LABEL)

    def get_positioning_state_label(self, state_id: int, environment: str = "production") -> str:
        return self._label("positioningStates", state_id, environment, fallback.UNKNOWN_LABEL)

    def get_action_type_label(self, type_id: int, environment: str = "production") -> str:
        return self._label("actionTypes", type_id, environment, fallback.OTHER_ACTION_LABEL)

    def get_all_states(self, environment: str = "production") -> Dict[str, Dict[int, str]]:
        """Every state/type table at once, each falling back when the dictionary has none."""
        attributes = self.get_attributes(environment)
        result: Dict[str, Dict[int, str]] = {}
        for key, table in fallback.FALLBACK_TABLES.items():
            result[key] = items_to_map(attributes.get(key)) or dict(table)
        return result

    def cached_environments(self) -> List[str]:
        with self._lock:
            return list(self._cache)


_dictionary_service: Optional[DictionaryService] = None


def get_dictionary_service() -> DictionaryService:
    """Process-wide dictionary service."""
    global _dictionary_service
    if _dictionary_service is None:
        _dictionary_service = DictionaryService()
    return _dictionary_service


def reset_dictionary_service() -> None:
    """Drop the shared service and its cache (useful for testing)."""
    global _dictionary_service
    _dictionary_service = None
