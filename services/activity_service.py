"""
Activity service for the monitoring dashboard.

Reads the most recent successful dispatches and the most recent leads carrying
a diagnostic message. Each source is read independently: a failure on one side
is logged and yields an empty list so the dashboard keeps working.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional

from domain.dispatch import DispatchRecord
from domain.time import EPOCH, parse_timestamp
from repositories.dispatch_repository import DispatchRepository
from repositories.lead_repository import LeadRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FlaggedLead:
    lead_id: Optional[str]
    name: Optional[str]
    email: Optional[str]
    status_label: Optional[str]
    diagnostic: str
    severity: str  # "warning" or "error"
    updated_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class RecentActivity:
    dispatches: List[DispatchRecord]
    flagged: List[FlaggedLead]


def diagnostic_severity(message: Optional[str]) -> str:
    """Skip reasons and quality notes are warnings; anything else is an error."""

    if not message:
        return "error"
    if message.startswith("LOG:") or "Skipped" in message:
        return "warning"
    return "error"


def _row_to_flagged(row: Mapping[str, Any]) -> FlaggedLead:
    message = str(row.get("error_meta") or "")
    return FlaggedLead(
        lead_id=row.get("lead_id"),
        name=row.get("nombre"),
        email=row.get("email"),
        status_label=row.get("estado_lead"),
        diagnostic=message,
        severity=diagnostic_severity(message),
        updated_at=parse_timestamp(row.get("updated_at")),
    )


class ActivityService:
    def __init__(self, leads: LeadRepository, dispatches: DispatchRepository) -> None:
        self._leads = leads
        self._dispatches = dispatches

    def recent_activity(self, limit: int = 20) -> RecentActivity:
        try:
            dispatches = self._dispatches.list_recent(limit)
        except Exception:
            logger.exception("Failed to read recent dispatches")
            dispatches = []

        try:
            flagged = [_row_to_flagged(row) for row in self._leads.list_flagged(limit)]
        except Exception:
            logger.exception("Failed to read flagged leads")
            flagged = []

        dispatches.sort(key=lambda record: record.sent_at, reverse=True)
        flagged.sort(key=lambda lead: lead.updated_at or EPOCH, reverse=True)
        return RecentActivity(dispatches=dispatches[:limit], flagged=flagged[:limit])


__all__ = ["ActivityService", "FlaggedLead", "RecentActivity", "diagnostic_severity"]
