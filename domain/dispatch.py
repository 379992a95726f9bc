"""
Domain: dispatch records.

A DispatchRecord is the durable proof that an event id was submitted to the
attribution API. Records are appended once per successful dispatch and never
updated or deleted; the table doubles as the deduplication index.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class DispatchRecord:
    """
    Immutable record of one dispatched conversion event.

    effective_identity may be a lead_id, a phone number or an email, depending
    on which identifier the lead carried.
    """

    event_id: str
    effective_identity: str
    status_label: str
    event_name: str
    value: float
    sent_at: datetime
    conversion_time: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.event_id:
            raise ValueError("event_id must be non-empty")
        if not self.effective_identity:
            raise ValueError("effective_identity must be non-empty")
        require_utc_timestamp("sent_at", self.sent_at)
