"""Contact-data normalisation and validation used by cleaning and quality checks."""

import re
from typing import Optional

LEGAL_FORMS = ["SA", "SAS", "SARL", "SASU", "SNC", "EURL", "GIE", "SCI", "ESN", "SSII"]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?\d{9,15}$")
_LEGAL_FORM_RES = [(form, re.compile(rf"\b{form}\b", re.IGNORECASE)) for form in LEGAL_FORMS]


def normalize_phone(phone: Optional[str]) -> str:
    """
    French numbers to "+33 X XX XX XX XX".

    "0612345678", "33612345678" and "612345678" all end up as
    "+33 6 12 34 56 78". Other numbers are returned stripped of
    everything but digits and "+".
    """
    if not phone:
        return ""

    cleaned = re.sub(r"[^\d+]", "", phone)

    if cleaned.startswith("0") and len(cleaned) == 10:
        cleaned = "+33" + cleaned[1:]
    elif cleaned.startswith("33"):
        cleaned = "+" + cleaned
    elif len(cleaned) == 9 and not cleaned.startswith("+"):
        cleaned = "+33" + cleaned

    if cleaned.startswith("+33") and len(cleaned) == 12:
        return (
            f"+33 {cleaned[3]} {cleaned[4:6]} {cleaned[6:8]} "
            f"{cleaned[8:10]} {cleaned[10:12]}"
        )

    return cleaned or phone


def normalize_name(name: Optional[str]) -> str:
    """Capitalise each word; hyphens become spaces ("jean-PIERRE" -> "Jean Pierre")."""
    if not name:
        return ""
    words = re.split(r"[\s-]+", name.strip().lower())
    return " ".join(word[:1].upper() + word[1:] for word in words)


def normalize_email(email: Optional[str]) -> str:
    if not email:
        return ""
    return email.strip().lower()


def normalize_company_name(name: Optional[str]) -> str:
    """Collapse whitespace and upper-case legal forms ("acme sas" -> "acme SAS")."""
    if not name:
        return ""
    normalized = re.sub(r"\s+", " ", name.strip())
    for form, pattern in _LEGAL_FORM_RES:
        normalized = pattern.sub(form, normalized)
    return normalized


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def is_valid_phone(phone: str) -> bool:
    """9 to 15 digits, optional leading "+", once spaces, dots and dashes are removed."""
    return bool(_PHONE_RE.match(re.sub(r"[\s.-]", "", phone or "")))
