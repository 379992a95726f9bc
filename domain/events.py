"""
Domain: conversion-event mapping and eligibility (pure).

Maps a lead's status label to the conversion event reported to the
attribution API, then applies the score and age filters.

Unmapped statuses, low scores and stale conversions are business skips, not
errors: the caller reports them with a 2xx so the producer does not retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from .lead import LeadRecord
from .time import is_older_than, utc_now


@dataclass(frozen=True, slots=True)
class EventDefinition:
    event_name: str
    value: float


DEFAULT_EVENT_MAPPING: Mapping[str, EventDefinition] = {
    "Nuevo Lead": EventDefinition("Lead", 5),
    "Lead contactado": EventDefinition("Contact", 25),
    "Cita agendada": EventDefinition("Schedule", 75),
    "En proceso de venta": EventDefinition("InitiateCheckout", 150),
    "Venta cerrada": EventDefinition("Purchase", 500),
    "Nueva Venta con el mismo cliente": EventDefinition("Purchase", 750),
}


@dataclass(frozen=True, slots=True)
class EligibilityDecision:
    eligible: bool
    reason: Optional[str] = None
    diagnostic: Optional[str] = None


def resolve_conversion_time(record: LeadRecord) -> Optional[str]:
    """Conversion time, else last update, else creation time."""

    return record.conversion_time or record.updated_at or record.created_at


class EventClassifier:
    """
    Status-label classifier with score/age eligibility filters.

    The mapping is looked up by exact key first, then by a trimmed,
    case-insensitive comparison to tolerate inconsistent data entry.
    """

    def __init__(
        self,
        mapping: Mapping[str, EventDefinition],
        min_lead_score: float = 0,
        max_event_age_days: int = 7,
    ) -> None:
        self._mapping = dict(mapping)
        self._folded = {key.strip().lower(): definition for key, definition in self._mapping.items()}
        self.min_lead_score = min_lead_score
        self.max_event_age_days = max_event_age_days

    def classify(self, status_label: Optional[str]) -> Optional[EventDefinition]:
        if not status_label:
            return None
        exact = self._mapping.get(status_label)
        if exact is not None:
            return exact
        return self._folded.get(status_label.strip().lower())

    def check_eligibility(
        self, record: LeadRecord, now: Optional[datetime] = None
    ) -> EligibilityDecision:
        """Apply the score filter, then the age filter."""

        score = record.lead_score or 0
        if score < self.min_lead_score:
            return EligibilityDecision(
                eligible=False,
                reason="Skipped: Low Score",
                diagnostic=f"Skipped: Low Score ({score:g})",
            )

        conversion_time = resolve_conversion_time(record)
        if is_older_than(conversion_time, self.max_event_age_days, now=now or utc_now()):
            return EligibilityDecision(
                eligible=False,
                reason="Skipped: Event too old",
                diagnostic=f"Skipped: Event too old (> {self.max_event_age_days} days)",
            )

        return EligibilityDecision(eligible=True)


__all__ = [
    "DEFAULT_EVENT_MAPPING",
    "EligibilityDecision",
    "EventClassifier",
    "EventDefinition",
    "resolve_conversion_time",
]
