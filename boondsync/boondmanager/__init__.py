"""
BoondManager API access and data mapping.

Contains:
- client: BoondManagerClient (rate limited, retried, circuit-broken)
- dictionary: cached state/type labels with built-in fallbacks
- recruitment: pipeline stage inference from candidate actions
- mappers: BoondManager records <-> MongoDB documents
- normalizers / quality: contact-data cleaning and quality checks
"""

from .client import BoondManagerClient, create_boond_client
from .dictionary import DictionaryService, get_dictionary_service
from .errors import (
    BoondApiError,
    BoondManagerError,
    BoondPermissionError,
    WriteNotAllowedError,
)
from .models import ENTITIES, BoondEnvironment
from .recruitment import RecruitmentStage, determine_recruitment_state_from_actions

__all__ = [
    "BoondManagerClient",
    "create_boond_client",
    "DictionaryService",
    "get_dictionary_service",
    "BoondApiError",
    "BoondManagerError",
    "BoondPermissionError",
    "WriteNotAllowedError",
    "ENTITIES",
    "BoondEnvironment",
    "RecruitmentStage",
    "determine_recruitment_state_from_actions",
]
