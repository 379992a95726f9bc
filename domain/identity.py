"""
Domain: effective identity and event ids (pure).

Some lead sources (WhatsApp/Messenger conversations) have no formal lead_id
when the row is created. The effective identity falls back to phone, then
email, so correlation and deduplication still work for those leads.

Event ids hash the conversion time in canonical UTC form, so "...Z" and
"...+00:00" collide. Dispatch rows written by the previous deployment hashed
the raw timestamp text instead; `legacy_event_id` reproduces those ids so the
relay can still recognize events sent before the cutover.
"""

from __future__ import annotations

import hashlib
from typing import Any, Optional

from .lead import LeadRecord
from .time import parse_timestamp

IDENTITY_PRIORITY: tuple[str, ...] = ("lead_id", "phone", "email")


def identity_source(record: LeadRecord) -> Optional[str]:
    """Name of the field the effective identity is taken from, or None."""

    for field_name in IDENTITY_PRIORITY:
        if getattr(record, field_name):
            return field_name
    return None


def resolve_identity(record: LeadRecord) -> Optional[str]:
    """First non-empty of lead_id, phone, email. None means the record is inert."""

    source = identity_source(record)
    if source is None:
        return None
    return getattr(record, source)


def canonical_conversion_time(value: Any) -> str:
    """
    Stable text form of a conversion timestamp for event-id derivation.

    Parseable timestamps are rendered as UTC ISO-8601 so that equivalent
    instants written with different offsets collide.
    """

    dt = parse_timestamp(value)
    if dt is not None:
        return dt.isoformat()
    if value is None:
        return ""
    return str(value).strip()


def generate_event_id(identity: str, status_label: str, conversion_time: Any) -> str:
    """Deterministic SHA-256 event id for (identity, status, conversion time)."""

    unique = f"{identity}_{status_label}_{canonical_conversion_time(conversion_time)}"
    return hashlib.sha256(unique.encode("utf-8")).hexdigest()


def legacy_event_id(identity: str, status_label: str, conversion_time: Any) -> Optional[str]:
    """
    Event id as the previous deployment computed it (raw timestamp text).

    None when there is no conversion time: those ids embedded the send time
    and cannot be reproduced.
    """

    if conversion_time is None or str(conversion_time) == "":
        return None
    unique = f"{identity}_{status_label}_{conversion_time}"
    return hashlib.sha256(unique.encode("utf-8")).hexdigest()


__all__ = [
    "IDENTITY_PRIORITY",
    "canonical_conversion_time",
    "generate_event_id",
    "identity_source",
    "legacy_event_id",
    "resolve_identity",
]
