"""
Conversion event payload builder.

Builds the strongly-typed event sent to the attribution API from a lead
snapshot. Every optional field is populated only when its source value
normalizes successfully; unset fields are dropped on serialization.

Privacy:
- Email, phone, names, location, postal code and country are SHA-256 hashed.
- Client IP, user agent and browser/click cookies are sent raw (the API
  requires them unhashed).
- external_id echoes the lead_id verbatim; when the identity fell back to
  phone or email it is hashed like any other PII.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel

from domain.events import EventDefinition
from domain.identity import identity_source
from domain.lead import LeadRecord
from domain.normalization import (
    extract_names,
    hash_sha256,
    normalize_country,
    normalize_email,
    normalize_location,
    normalize_phone,
)
from domain.time import parse_timestamp, to_unix_seconds, utc_now

ACTION_SOURCE = "website"
CONTENT_TYPE = "lead"


class UserData(BaseModel):
    em: Optional[List[str]] = None
    ph: Optional[List[str]] = None
    fn: Optional[List[str]] = None
    ln: Optional[List[str]] = None
    ct: Optional[List[str]] = None
    st: Optional[List[str]] = None
    zp: Optional[List[str]] = None
    country: Optional[List[str]] = None
    client_ip_address: Optional[str] = None
    client_user_agent: Optional[str] = None
    fbp: Optional[str] = None
    fbc: Optional[str] = None
    external_id: Optional[List[str]] = None


class CustomData(BaseModel):
    value: Optional[float] = None
    currency: str
    content_type: str = CONTENT_TYPE
    content_name: Optional[str] = None
    content_category: Optional[str] = None
    campaign_name: Optional[str] = None
    ad_set_name: Optional[str] = None
    ad_name: Optional[str] = None
    customer_type: Optional[str] = None
    predicted_ltv: Optional[float] = None


class ServerEvent(BaseModel):
    event_name: str
    event_time: int
    event_id: str
    action_source: str = ACTION_SOURCE
    user_data: UserData
    custom_data: CustomData
    event_source_url: Optional[str] = None


class EventBatch(BaseModel):
    """Request body for the events endpoint (one event per dispatch)."""

    data: List[ServerEvent]

    def to_request_body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _hashed(value: Optional[str]) -> Optional[List[str]]:
    digest = hash_sha256(value)
    return [digest] if digest else None


def is_returning_customer(flag: Any) -> bool:
    """Tri-state source flag: True / "TRUE" mean returning; anything else is new."""

    if isinstance(flag, bool):
        return flag
    if isinstance(flag, str):
        return flag.strip().upper() == "TRUE"
    return False


def synthesize_browser_id(record: LeadRecord) -> Optional[str]:
    """fbp: raw cookie, else built from client_id and the creation time."""

    if record.browser_id:
        return record.browser_id
    if not record.client_id:
        return None
    created = parse_timestamp(record.created_at)
    if created is None:
        return f"fb.1.{record.client_id}"
    return f"fb.1.{to_unix_seconds(created)}.{record.client_id}"


def synthesize_click_cookie(record: LeadRecord, now: datetime) -> Optional[str]:
    """fbc: raw cookie, else built from the fbclid parameter and the current time."""

    if record.click_cookie:
        return record.click_cookie
    if not record.click_id:
        return None
    return f"fb.1.{to_unix_seconds(now)}.{record.click_id}"


def build_user_data(record: LeadRecord, identity: str, now: Optional[datetime] = None) -> UserData:
    now = now or utc_now()

    name = extract_names(record.full_name)
    location = normalize_location(record.region)
    hashed_location = _hashed(location)

    if identity_source(record) == "lead_id":
        external_id = [identity]
    else:
        external_id = _hashed(identity)

    return UserData(
        em=_hashed(normalize_email(record.email)),
        ph=_hashed(normalize_phone(record.phone, record.country)),
        fn=_hashed(name.first_name.lower()) if name else None,
        ln=_hashed(name.last_name.lower()) if name and name.last_name else None,
        ct=hashed_location,
        st=hashed_location,
        zp=_hashed(normalize_location(record.postal_code)),
        country=_hashed(normalize_country(record.country)),
        client_ip_address=record.client_ip,
        client_user_agent=record.user_agent,
        fbp=synthesize_browser_id(record),
        fbc=synthesize_click_cookie(record, now),
        external_id=external_id,
    )


def build_custom_data(record: LeadRecord, definition: EventDefinition, currency: str) -> CustomData:
    return CustomData(
        value=definition.value,
        currency=currency,
        customer_type="returning" if is_returning_customer(record.is_customer) else "new",
        content_name=record.service,
        content_category=record.source,
        campaign_name=record.campaign_name,
        ad_set_name=record.ad_set_name,
        ad_name=record.ad_name,
        predicted_ltv=record.lead_score or None,
    )


def build_server_event(
    record: LeadRecord,
    definition: EventDefinition,
    *,
    identity: str,
    event_id: str,
    conversion_time: Optional[str],
    currency: str,
    now: Optional[datetime] = None,
) -> ServerEvent:
    now = now or utc_now()
    return ServerEvent(
        event_name=definition.event_name,
        event_time=to_unix_seconds(conversion_time, now=now),
        event_id=event_id,
        user_data=build_user_data(record, identity, now=now),
        custom_data=build_custom_data(record, definition, currency),
        event_source_url=record.source_url,
    )


__all__ = [
    "CustomData",
    "EventBatch",
    "ServerEvent",
    "UserData",
    "build_custom_data",
    "build_server_event",
    "build_user_data",
    "is_returning_customer",
    "synthesize_browser_id",
    "synthesize_click_cookie",
]
