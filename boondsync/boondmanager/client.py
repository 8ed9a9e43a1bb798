"""
BoondManager REST API client.

One client per environment (production or sandbox). Every request goes
through the environment's rate limiter and circuit breaker and is retried
with exponential backoff on transient failures (network errors, timeouts,
HTTP 429 and 5xx).

Writes (create/update/delete/upload) are only allowed against the sandbox;
in production they raise WriteNotAllowedError before any HTTP call.

Usage:
    client = create_boond_client("production")
    candidates = client.fetch_all("candidates", page_size=500)
"""

import logging
from typing import Any, BinaryIO, Dict, List, Optional, Union

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from boondsync.common.circuit_breaker import get_boondmanager_breaker
from boondsync.common.config import Config
from boondsync.common.rate_limiter import RateLimitExceededError, get_rate_limiter

from .errors import BoondApiError, BoondPermissionError, WriteNotAllowedError
from .models import (
    DOCUMENT_PARENT_TYPES,
    ENTITIES,
    ENTITY_TYPES,
    BoondEnvironment,
    is_valid_record,
)

logger = logging.getLogger(__name__)

DEFAULT_SORT = "-updateDate"

# Entities get_dashboard_stats() reports on
DASHBOARD_ENTITIES = ["candidates", "resources", "opportunities", "companies", "projects"]


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    return isinstance(exc, BoondApiError) and exc.is_transient


def _relationship(resource_type: str, resource_id: Any) -> Dict[str, Any]:
    return {"data": {"id": str(resource_id), "type": resource_type}}


class BoondManagerClient:
    """Typed access to the BoondManager API for a single environment."""

    def __init__(
        self,
        environment: Union[str, BoondEnvironment] = BoondEnvironment.SANDBOX,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            environment: "production" or "sandbox" (default sandbox)
            base_url: API root, defaults to Config.BOOND_BASE_URL
            username/password: Basic auth credentials; read from the
                environment-specific BOOND_* settings when omitted
            timeout: Per-request timeout in seconds
            session: Pre-built requests.Session (tests inject a mock)
        """
        self.environment = BoondEnvironment(environment)
        self.base_url = (base_url or Config.BOOND_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else Config.BOOND_TIMEOUT

        if username is None or password is None:
            username, password = Config.get_boond_credentials(self.environment.value)

        self.session = session or requests.Session()
        self.session.auth = (username, password)
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

        self._rate_limiter = get_rate_limiter(f"boondmanager_{self.environment.value}")
        self._breaker = get_boondmanager_breaker(
            self.environment.value,
            excluded_exceptions=(BoondPermissionError, RateLimitExceededError),
        )

    def get_environment(self) -> BoondEnvironment:
        return self.environment

    @property
    def can_write(self) -> bool:
        return self.environment == BoondEnvironment.SANDBOX

    def _assert_can_write(self, operation: str) -> None:
        if not self.can_write:
            raise WriteNotAllowedError(operation, self.environment.value)

    # =========================================================================
    # Transport
    # =========================================================================

    def _limit_exceeded(self) -> RateLimitExceededError:
        """Error for a request the environment's limiter refused."""
        limiter = self._rate_limiter
        if limiter.get_remaining_daily() == 0:
            return RateLimitExceededError(
                limiter.provider, "daily", limiter.daily_limit, limiter.daily_limit
            )
        return RateLimitExceededError(
            limiter.provider,
            "per_minute",
            limiter.get_stats().requests_this_minute,
            limiter.requests_per_minute,
        )

    @retry(
        stop=stop_after_attempt(Config.BOOND_MAX_RETRIES + 1),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_transient),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self._rate_limiter.acquire():
            raise self._limit_exceeded()

        # Multipart uploads need requests to set its own Content-Type boundary
        headers = {"Content-Type": None} if files else None

        logger.debug(f"[{self.environment.value}] {method} {endpoint} params={params}")
        response = self.session.request(
            method,
            f"{self.base_url}{endpoint}",
            params=params,
            json=json,
            files=files,
            data=data,
            headers=headers,
            timeout=self.timeout,
        )

        status = response.status_code
        if status == 403:
            raise BoondPermissionError(endpoint, text=response.text)
        if not 200 <= status < 300:
            logger.error(
                f"BoondManager API error [{self.environment.value}] {method} {endpoint}: "
                f"{status} {response.text[:200]}"
            )
            raise BoondApiError(status, response.text, endpoint)

        if not response.text:
            return {}
        return response.json()

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Send a request through the circuit breaker, retrying transient failures."""
        if not self._breaker.can_execute():
            self._breaker.reject()

        try:
            result = self._send(method, endpoint, **kwargs)
        except RateLimitExceededError as e:
            # Refused locally; excluded, so it only frees a half-open trial slot
            self._breaker.record_failure(e)
            raise
        except Exception as e:
            if _is_transient(e):
                self._breaker.record_failure(e)
            else:
                # The service answered; a 4xx is not an availability problem
                self._breaker.record_success()
            raise

        self._breaker.record_success()
        return result

    @staticmethod
    def _list_params(
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        company: Optional[int] = None,
        sort: Optional[str] = None,
        **filters: Any,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if page:
            params["page"] = page
        if max_results:
            params["maxResults"] = max_results
        if keywords:
            params["keywords"] = keywords
        if state is not None:
            params["state"] = state
        if main_manager:
            params["mainManager"] = main_manager
        if company:
            params["company"] = company
        for key, value in filters.items():
            if value:
                params[key] = value
        params["sort"] = sort or DEFAULT_SORT
        return params

    # =========================================================================
    # Application
    # =========================================================================

    def get_current_user(self) -> Dict[str, Any]:
        return self._request("GET", "/application/current-user")

    def get_application_settings(self) -> Dict[str, Any]:
        return self._request("GET", "/application/settings")

    def get_dictionary(self) -> Dict[str, Any]:
        """Raw application dictionary (state labels, types, civilities...)."""
        return self._request("GET", "/application/dictionary")

    # =========================================================================
    # Generic entity operations
    # =========================================================================

    @staticmethod
    def _check_entity(entity: str) -> None:
        if entity not in ENTITY_TYPES:
            raise ValueError(f"Unknown BoondManager entity: {entity}")

    def list_entities(
        self,
        entity: str,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        company: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """One page of an entity listing, sorted by -updateDate unless told otherwise."""
        self._check_entity(entity)
        params = self._list_params(
            page=page,
            max_results=max_results,
            keywords=keywords,
            state=state,
            main_manager=main_manager,
            company=company,
            sort=sort,
        )
        return self._request("GET", f"/{entity}", params=params)

    def get_entity(self, entity: str, entity_id: Any) -> Dict[str, Any]:
        self._check_entity(entity)
        return self._request("GET", f"/{entity}/{entity_id}")

    def get_entity_information(self, entity: str, entity_id: Any) -> Dict[str, Any]:
        self._check_entity(entity)
        return self._request("GET", f"/{entity}/{entity_id}/information")

    def search_entities(
        self, entity: str, query: str, page: int = 1, limit: int = 50
    ) -> Dict[str, Any]:
        return self.list_entities(entity, keywords=query, page=page, max_results=limit)

    def create_entity(
        self,
        entity: str,
        attributes: Dict[str, Any],
        relationships: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """POST a new record ({data: {type, attributes, relationships}})."""
        self._check_entity(entity)
        self._assert_can_write(f"create {ENTITY_TYPES[entity]}")

        payload: Dict[str, Any] = {"type": ENTITY_TYPES[entity], "attributes": attributes}
        if relationships:
            payload["relationships"] = relationships
        return self._request("POST", f"/{entity}", json={"data": payload})

    def update_entity(
        self, entity: str, entity_id: Any, attributes: Dict[str, Any]
    ) -> Dict[str, Any]:
        """PUT partial attributes to /<entity>/<id>/information."""
        self._check_entity(entity)
        self._assert_can_write(f"update {ENTITY_TYPES[entity]}")
        return self._request(
            "PUT",
            f"/{entity}/{entity_id}/information",
            json={"data": {"attributes": attributes}},
        )

    def delete_entity(self, entity: str, entity_id: Any) -> None:
        self._check_entity(entity)
        self._assert_can_write(f"delete {ENTITY_TYPES[entity]}")
        self._request("DELETE", f"/{entity}/{entity_id}")

    # =========================================================================
    # Candidates
    # =========================================================================

    def get_candidates(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.list_entities(
            "candidates", page=page, max_results=max_results, keywords=keywords,
            state=state, main_manager=main_manager, sort=sort,
        )

    def get_candidate(self, candidate_id: Any) -> Dict[str, Any]:
        return self.get_entity("candidates", candidate_id)

    def get_candidate_information(self, candidate_id: Any) -> Dict[str, Any]:
        return self.get_entity_information("candidates", candidate_id)

    def get_candidate_actions(self, candidate_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/candidates/{candidate_id}/actions")

    def search_candidates(self, query: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.search_entities("candidates", query, page, limit)

    def create_candidate(
        self,
        first_name: str,
        last_name: str,
        civility: Optional[int] = None,
        email: Optional[str] = None,
        phone1: Optional[str] = None,
        title: Optional[str] = None,
        origin: Optional[str] = None,
        state: Optional[int] = None,
    ) -> Dict[str, Any]:
        self._assert_can_write("createCandidate")
        return self.create_entity("candidates", {
            "firstName": first_name,
            "lastName": last_name,
            "civility": civility if civility is not None else 0,
            "email": email or "",
            "phone1": phone1 or "",
            "title": title or "",
            "origin": origin or "API",
            "state": state if state is not None else 1,
        })

    def update_candidate(self, candidate_id: Any, attributes: Dict[str, Any]) -> Dict[str, Any]:
        self._assert_can_write("updateCandidate")
        return self.update_entity("candidates", candidate_id, attributes)

    def delete_candidate(self, candidate_id: Any) -> None:
        self._assert_can_write("deleteCandidate")
        self.delete_entity("candidates", candidate_id)

    # =========================================================================
    # Resources
    # =========================================================================

    def get_resources(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.list_entities(
            "resources", page=page, max_results=max_results, keywords=keywords,
            state=state, main_manager=main_manager, sort=sort,
        )

    def get_resource(self, resource_id: Any) -> Dict[str, Any]:
        return self.get_entity("resources", resource_id)

    def get_resource_information(self, resource_id: Any) -> Dict[str, Any]:
        return self.get_entity_information("resources", resource_id)

    def get_resource_actions(self, resource_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/resources/{resource_id}/actions")

    def search_resources(self, query: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.search_entities("resources", query, page, limit)

    def create_resource(
        self,
        first_name: str,
        last_name: str,
        civility: Optional[int] = None,
        email: Optional[str] = None,
        phone1: Optional[str] = None,
        title: Optional[str] = None,
        state: Optional[int] = None,
    ) -> Dict[str, Any]:
        self._assert_can_write("createResource")
        return self.create_entity("resources", {
            "firstName": first_name,
            "lastName": last_name,
            "civility": civility if civility is not None else 0,
            "email": email or "",
            "phone1": phone1 or "",
            "title": title or "",
            "state": state if state is not None else 1,
        })

    def update_resource(self, resource_id: Any, attributes: Dict[str, Any]) -> Dict[str, Any]:
        self._assert_can_write("updateResource")
        return self.update_entity("resources", resource_id, attributes)

    def delete_resource(self, resource_id: Any) -> None:
        self._assert_can_write("deleteResource")
        self.delete_entity("resources", resource_id)

    # =========================================================================
    # Opportunities
    # =========================================================================

    def get_opportunities(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        company: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.list_entities(
            "opportunities", page=page, max_results=max_results, keywords=keywords,
            state=state, main_manager=main_manager, company=company, sort=sort,
        )

    def get_opportunity(self, opportunity_id: Any) -> Dict[str, Any]:
        return self.get_entity("opportunities", opportunity_id)

    def get_opportunity_information(self, opportunity_id: Any) -> Dict[str, Any]:
        return self.get_entity_information("opportunities", opportunity_id)

    def get_opportunity_actions(self, opportunity_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/opportunities/{opportunity_id}/actions")

    def get_opportunity_positionings(self, opportunity_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/opportunities/{opportunity_id}/positionings")

    def search_opportunities(self, query: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.search_entities("opportunities", query, page, limit)

    def create_opportunity(
        self,
        title: str,
        mode: Optional[int] = None,
        state: Optional[int] = None,
        type_of: Optional[int] = None,
        company_id: Optional[int] = None,
        contact_id: Optional[int] = None,
        main_manager_id: Optional[int] = None,
        description: Optional[str] = None,
        start_date: Optional[str] = None,
        average_daily_price: Optional[float] = None,
    ) -> Dict[str, Any]:
        self._assert_can_write("createOpportunity")

        relationships: Dict[str, Any] = {}
        if company_id:
            relationships["company"] = _relationship("company", company_id)
        if contact_id:
            relationships["contact"] = _relationship("contact", contact_id)
        if main_manager_id:
            relationships["mainManager"] = _relationship("resource", main_manager_id)

        return self.create_entity(
            "opportunities",
            {
                "title": title,
                "mode": mode if mode is not None else 1,
                "state": state if state is not None else 0,
                "typeOf": type_of if type_of is not None else 1,
                "description": description or "",
                "startDate": start_date or None,
                "averageDailyPriceExcludingTax": average_daily_price or 0,
            },
            relationships,
        )

    def update_opportunity(self, opportunity_id: Any, attributes: Dict[str, Any]) -> Dict[str, Any]:
        self._assert_can_write("updateOpportunity")
        return self.update_entity("opportunities", opportunity_id, attributes)

    def delete_opportunity(self, opportunity_id: Any) -> None:
        self._assert_can_write("deleteOpportunity")
        self.delete_entity("opportunities", opportunity_id)

    # =========================================================================
    # Companies
    # =========================================================================

    def get_companies(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.list_entities(
            "companies", page=page, max_results=max_results, keywords=keywords,
            state=state, main_manager=main_manager, sort=sort,
        )

    def get_company(self, company_id: Any) -> Dict[str, Any]:
        return self.get_entity("companies", company_id)

    def get_company_information(self, company_id: Any) -> Dict[str, Any]:
        return self.get_entity_information("companies", company_id)

    def get_company_contacts(self, company_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/companies/{company_id}/contacts")

    def get_company_opportunities(self, company_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/companies/{company_id}/opportunities")

    def get_company_projects(self, company_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/companies/{company_id}/projects")

    def search_companies(self, query: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.search_entities("companies", query, page, limit)

    def create_company(
        self,
        name: str,
        phone1: Optional[str] = None,
        country: Optional[str] = None,
        staff: Optional[int] = None,
        email: Optional[str] = None,
        website: Optional[str] = None,
        address: Optional[str] = None,
        postcode: Optional[str] = None,
        town: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._assert_can_write("createCompany")
        return self.create_entity("companies", {
            "name": name,
            "phone1": phone1 or "",
            "country": country or "FR",
            "staff": staff or 0,
            "email": email or "",
            "website": website or "",
            "address": address or "",
            "postcode": postcode or "",
            "town": town or "",
        })

    def update_company(self, company_id: Any, attributes: Dict[str, Any]) -> Dict[str, Any]:
        self._assert_can_write("updateCompany")
        return self.update_entity("companies", company_id, attributes)

    def delete_company(self, company_id: Any) -> None:
        self._assert_can_write("deleteCompany")
        self.delete_entity("companies", company_id)

    # =========================================================================
    # Contacts
    # =========================================================================

    def get_contacts(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        company: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.list_entities(
            "contacts", page=page, max_results=max_results, keywords=keywords,
            company=company, sort=sort,
        )

    def get_contact(self, contact_id: Any) -> Dict[str, Any]:
        return self.get_entity("contacts", contact_id)

    def search_contacts(self, query: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.search_entities("contacts", query, page, limit)

    def create_contact(
        self,
        first_name: str,
        last_name: str,
        company_id: Any,
        civility: Optional[int] = None,
        email: Optional[str] = None,
        phone1: Optional[str] = None,
        position: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._assert_can_write("createContact")
        return self.create_entity(
            "contacts",
            {
                "firstName": first_name,
                "lastName": last_name,
                "civility": civility if civility is not None else 0,
                "email": email or "",
                "phone1": phone1 or "",
                "position": position or "",
            },
            {"company": _relationship("company", company_id)},
        )

    def update_contact(self, contact_id: Any, attributes: Dict[str, Any]) -> Dict[str, Any]:
        self._assert_can_write("updateContact")
        return self.update_entity("contacts", contact_id, attributes)

    def delete_contact(self, contact_id: Any) -> None:
        self._assert_can_write("deleteContact")
        self.delete_entity("contacts", contact_id)

    # =========================================================================
    # Projects
    # =========================================================================

    def get_projects(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        keywords: Optional[str] = None,
        state: Optional[int] = None,
        main_manager: Optional[int] = None,
        company: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.list_entities(
            "projects", page=page, max_results=max_results, keywords=keywords,
            state=state, main_manager=main_manager, company=company, sort=sort,
        )

    def get_project(self, project_id: Any) -> Dict[str, Any]:
        return self.get_entity("projects", project_id)

    def get_project_information(self, project_id: Any) -> Dict[str, Any]:
        return self.get_entity_information("projects", project_id)

    def get_project_actions(self, project_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/projects/{project_id}/actions")

    def get_project_batches_markers(self, project_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/projects/{project_id}/batches-markers")

    def get_project_deliveries(self, project_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/projects/{project_id}/deliveries-groupments")

    def search_projects(self, query: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return self.search_entities("projects", query, page, limit)

    # =========================================================================
    # Actions
    # =========================================================================

    def get_actions(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        resource: Optional[int] = None,
        candidate: Optional[int] = None,
        opportunity: Optional[int] = None,
        project: Optional[int] = None,
        type_of: Optional[int] = None,
        state: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = self._list_params(
            page=page, max_results=max_results, state=state, sort=sort,
            resource=resource, candidate=candidate, opportunity=opportunity,
            project=project, typeOf=type_of,
        )
        return self._request("GET", "/actions", params=params)

    def get_action(self, action_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/actions/{action_id}")

    def create_action(
        self,
        type_of: int,
        state: Optional[int] = None,
        comment: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        resource_id: Optional[int] = None,
        candidate_id: Optional[int] = None,
        opportunity_id: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        self._assert_can_write("createAction")

        relationships: Dict[str, Any] = {}
        for name, related_id in (
            ("resource", resource_id),
            ("candidate", candidate_id),
            ("opportunity", opportunity_id),
            ("project", project_id),
        ):
            if related_id:
                relationships[name] = _relationship(name, related_id)

        payload = {
            "data": {
                "type": "action",
                "attributes": {
                    "typeOf": type_of,
                    "state": state if state is not None else 0,
                    "comment": comment or "",
                    "startDate": start_date or None,
                    "endDate": end_date or None,
                },
                "relationships": relationships,
            }
        }
        return self._request("POST", "/actions", json=payload)

    # =========================================================================
    # Positionings
    # =========================================================================

    def get_positionings(
        self,
        page: Optional[int] = None,
        max_results: Optional[int] = None,
        resource: Optional[int] = None,
        candidate: Optional[int] = None,
        opportunity: Optional[int] = None,
        state: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = self._list_params(
            page=page, max_results=max_results, state=state, sort=sort,
            resource=resource, candidate=candidate, opportunity=opportunity,
        )
        return self._request("GET", "/positionings", params=params)

    def get_positioning(self, positioning_id: Any) -> Dict[str, Any]:
        return self._request("GET", f"/positionings/{positioning_id}")

    def update_positioning(self, positioning_id: Any, state: int) -> Dict[str, Any]:
        self._assert_can_write("updatePositioning")
        return self._request(
            "PUT",
            f"/positionings/{positioning_id}",
            json={"data": {"type": "positioning", "attributes": {"state": state}}},
        )

    # =========================================================================
    # Documents
    # =========================================================================

    def upload_document(
        self,
        file: Union[bytes, BinaryIO],
        filename: str,
        parent_id: Any,
        parent_type: str,
    ) -> Dict[str, Any]:
        """Multipart upload to /documents, attached to a candidate or resource."""
        self._assert_can_write("uploadDocument")
        if parent_type not in DOCUMENT_PARENT_TYPES:
            raise ValueError(
                f"parent_type must be one of {', '.join(DOCUMENT_PARENT_TYPES)}, got {parent_type!r}"
            )

        return self._request(
            "POST",
            "/documents",
            data={"parentId": str(parent_id), "parentType": parent_type},
            files={"file": (filename, file)},
        )

    # =========================================================================
    # Aggregates
    # =========================================================================

    def get_dashboard_stats(self) -> Dict[str, Dict[str, Any]]:
        """
        Total and per-state counts for the main entities.

        Only the first page of up to 1000 records is counted; a missing
        state is counted as 0.
        """
        stats: Dict[str, Dict[str, Any]] = {}
        for entity in DASHBOARD_ENTITIES:
            response = self.list_entities(entity, max_results=1000)
            items = response.get("data")
            if not isinstance(items, list):
                items = []

            by_state: Dict[int, int] = {}
            for item in items:
                if not isinstance(item, dict):
                    continue
                attributes = item.get("attributes") or {}
                state = attributes.get("state")
                state = 0 if state is None else state
                by_state[state] = by_state.get(state, 0) + 1

            stats[entity] = {"total": len(items), "byState": by_state}
        return stats

    def fetch_all(
        self,
        entity: str,
        page_size: int = 100,
        max_pages: int = 100,
        **filters: Any,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every page of an entity listing.

        Stops on a short page, once meta.totals.rows records have been
        seen, or after max_pages pages. Malformed records are dropped.
        """
        if entity not in ENTITIES:
            raise ValueError(f"Unknown BoondManager entity: {entity}")

        records: List[Dict[str, Any]] = []
        seen = 0
        page = 1

        while page <= max_pages:
            response = self.list_entities(entity, page=page, max_results=page_size, **filters)
            data = response.get("data")
            if not isinstance(data, list):
                data = []

            valid = [item for item in data if is_valid_record(item)]
            if len(valid) != len(data):
                logger.warning(
                    f"[{entity}] page {page}: dropped {len(data) - len(valid)} malformed records"
                )
            records.extend(valid)
            seen += len(data)

            total = ((response.get("meta") or {}).get("totals") or {}).get("rows")
            logger.debug(f"[{entity}] page {page}: {len(data)} records ({seen}/{total or '?'})")

            if len(data) < page_size:
                break
            if total is not None and seen >= total:
                break
            page += 1
        else:
            logger.warning(f"[{entity}] stopped at max_pages={max_pages}")

        logger.info(f"[{self.environment.value}] Fetched {len(records)} {entity}")
        return records


def create_boond_client(
    environment: Union[str, BoondEnvironment] = BoondEnvironment.SANDBOX,
) -> BoondManagerClient:
    """Client for an environment using credentials from the configuration."""
    return BoondManagerClient(environment)
