"""
Domain: PII normalization and hashing (pure).

Turns raw lead fields into the canonical forms the attribution API matches on.
Every PII value must pass through `hash_sha256` before it leaves the process.

Phone numbers are normalized with a lossy, country-hinted heuristic. Untagged
10-digit numbers are assumed to be Mexican, which is a known source of
misclassification for international leads.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Optional

_NON_PHONE_CHARS = re.compile(r"[^\d+]")
_WHITESPACE = re.compile(r"\s+")

_US_CANADA_HINTS = frozenset(
    {"us", "usa", "estados unidos", "united states", "ca", "canada", "canadá"}
)
_COLOMBIA_HINTS = frozenset({"co", "colombia"})

COUNTRY_ALIASES: dict[str, str] = {
    "mexico": "mx",
    "méxico": "mx",
    "united states": "us",
    "usa": "us",
    "estados unidos": "us",
    "canada": "ca",
    "canadá": "ca",
    "spain": "es",
    "españa": "es",
    "colombia": "co",
    "argentina": "ar",
    "chile": "cl",
    "peru": "pe",
    "perú": "pe",
    "brazil": "br",
    "brasil": "br",
}


@dataclass(frozen=True, slots=True)
class PersonName:
    first_name: str
    last_name: Optional[str] = None


def hash_sha256(value: Any) -> Optional[str]:
    """SHA-256 hex digest of the trimmed value; None for absent input."""

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_email(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    email = raw.strip().lower()
    return email or None


def normalize_phone(raw: Any, country_hint: Optional[str] = None) -> Optional[str]:
    """
    Normalize a phone number to E.164.

    Heuristics, in priority order:
    1. Already prefixed with '+': passed through.
    2. US/Canada hint: 10 digits -> +1, 11 digits starting with 1 -> +.
    3. Colombia hint: 10 digits -> +57.
    4. 12 digits starting with 52 -> + (Mexico with country code).
    5. 10 digits -> +52 (Mexico assumed).
    6. More than 10 digits -> +52 and the last 10 digits.

    Anything else is invalid and yields None.
    """

    if raw is None:
        return None

    cleaned = _NON_PHONE_CHARS.sub("", str(raw))
    if not cleaned:
        return None

    if cleaned.startswith("+"):
        return cleaned

    hint = country_hint.strip().lower() if country_hint else ""

    if hint in _US_CANADA_HINTS:
        if len(cleaned) == 10:
            return f"+1{cleaned}"
        if len(cleaned) == 11 and cleaned.startswith("1"):
            return f"+{cleaned}"

    if hint in _COLOMBIA_HINTS and len(cleaned) == 10:
        return f"+57{cleaned}"

    if cleaned.startswith("52") and len(cleaned) == 12:
        return f"+{cleaned}"

    if len(cleaned) == 10:
        return f"+52{cleaned}"

    if len(cleaned) > 10:
        return f"+52{cleaned[-10:]}"

    return None


def extract_names(full_name: Optional[str]) -> Optional[PersonName]:
    """Split a full name into first token and the remaining tokens."""

    if not full_name:
        return None
    parts = full_name.split()
    if not parts:
        return None
    last_name = " ".join(parts[1:]) if len(parts) > 1 else None
    return PersonName(first_name=parts[0], last_name=last_name)


def normalize_location(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    location = _WHITESPACE.sub(" ", raw.strip().lower())
    return location or None


def normalize_country(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a country to a lowercase ISO 3166 alpha-2 code.

    2-character inputs pass through; known Spanish/English names are mapped;
    anything else is truncated to its first two characters.
    """

    if not raw:
        return None
    country = raw.strip().lower()
    if not country:
        return None
    if len(country) == 2:
        return country
    return COUNTRY_ALIASES.get(country, country[:2])


__all__ = [
    "COUNTRY_ALIASES",
    "PersonName",
    "extract_names",
    "hash_sha256",
    "normalize_country",
    "normalize_email",
    "normalize_location",
    "normalize_phone",
]
