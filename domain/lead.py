"""
Domain: Lead snapshot and change notifications.

A LeadRecord is a read-only snapshot of one row of the source-of-record lead
table, taken at the moment the database emitted a change notification. The
relay only reads these fields; the diagnostic field is the single column it
writes back (through the lead repository, never through this entity).

Column names of the source table are kept in one place (`from_row`) so the rest
of the codebase speaks in domain terms.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


def _text(row: Mapping[str, Any], key: str) -> Optional[str]:
    # Helper to convert empty strings to None
    value = row.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _score(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return float(value)
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    # NaN/inf would slip past the score filter and break JSON serialization.
    return score if math.isfinite(score) else None


@dataclass(frozen=True, slots=True)
class LeadRecord:
    """
    Immutable snapshot of a lead's mutable attributes.

    Timestamps keep the producer's raw text; parse them with `domain.time`.
    `is_customer` keeps the raw tri-state value (bool, "TRUE"/"FALSE" or None).
    """

    lead_id: Optional[str] = None
    status_label: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    browser_id: Optional[str] = None  # fbp cookie
    click_cookie: Optional[str] = None  # fbc cookie
    click_id: Optional[str] = None  # fbclid URL parameter
    client_id: Optional[str] = None

    conversion_time: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    service: Optional[str] = None
    source: Optional[str] = None
    campaign_name: Optional[str] = None
    ad_set_name: Optional[str] = None
    ad_name: Optional[str] = None
    is_customer: Any = None
    lead_score: Optional[float] = None
    source_url: Optional[str] = None

    diagnostic: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LeadRecord":
        """Build a snapshot from a raw source-table row."""

        return cls(
            lead_id=_text(row, "lead_id"),
            status_label=_text(row, "estado_lead"),
            email=_text(row, "email"),
            phone=_text(row, "telefono"),
            full_name=_text(row, "nombre"),
            region=_text(row, "estado"),
            postal_code=_text(row, "codigo_postal"),
            country=_text(row, "pais"),
            client_ip=_text(row, "direccion_ip"),
            user_agent=_text(row, "user_agent"),
            browser_id=_text(row, "fbp"),
            click_cookie=_text(row, "fbc"),
            click_id=_text(row, "fbclid"),
            client_id=_text(row, "client_id"),
            conversion_time=_text(row, "fecha_conversion"),
            created_at=_text(row, "created_at"),
            updated_at=_text(row, "updated_at"),
            service=_text(row, "servicio"),
            source=_text(row, "fuente"),
            campaign_name=_text(row, "nombre_campana"),
            ad_set_name=_text(row, "nombre_conjunto_anuncios"),
            ad_name=_text(row, "nombre_anuncio"),
            is_customer=row.get("es_cliente"),
            lead_score=_score(row.get("score_lead")),
            source_url=_text(row, "url_origen"),
            diagnostic=_text(row, "error_meta"),
        )


@dataclass(frozen=True, slots=True)
class LeadChangeNotification:
    """
    One change notification from the upstream producer.

    Transient: built when the request arrives and discarded after processing.
    """

    change_type: ChangeType
    new_record: LeadRecord
    old_record: Optional[LeadRecord] = None
    source_collection: Optional[str] = None
