"""
Exceptions raised by the BoondManager client.

BoondManagerError
├── BoondApiError          non-2xx response
│   └── BoondPermissionError   HTTP 403 (missing rights on an endpoint)
└── WriteNotAllowedError   write attempted against production
"""

from typing import Optional


class BoondManagerError(Exception):
    """Base class for BoondManager client errors."""


class BoondApiError(BoondManagerError):
    """Non-2xx response from the BoondManager API."""

    def __init__(self, status: int, text: str, endpoint: Optional[str] = None):
        self.status = status
        self.text = text
        self.endpoint = endpoint
        super().__init__(f"BoondManager API error: {status} - {text}")

    @property
    def is_transient(self) -> bool:
        """429 and 5xx are worth retrying, everything else is not."""
        return self.status == 429 or self.status >= 500


class BoondPermissionError(BoondApiError):
    """
    HTTP 403 on an endpoint.

    The account lacks the BoondManager right for this module. Imports
    skip the entity and report it in the permission log instead of failing.
    """

    def __init__(self, endpoint: str, feature: Optional[str] = None, text: str = ""):
        self.feature = feature or _feature_from_endpoint(endpoint)
        super().__init__(403, text or f"Access denied to {self.feature}", endpoint)


class WriteNotAllowedError(BoondManagerError):
    """Write operation attempted outside the sandbox environment."""

    def __init__(self, operation: str, environment: str = "production"):
        self.operation = operation
        self.environment = environment
        super().__init__(
            f'Operation "{operation}" non autorisee en production. '
            f"Utilisez l'environnement sandbox."
        )


def _feature_from_endpoint(endpoint: str) -> str:
    # "/candidates/12/actions?page=1" -> "candidates"
    path = endpoint.split("?", 1)[0].strip("/")
    return path.split("/", 1)[0] if path else "unknown"
