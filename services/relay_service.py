"""
Relay service for lead change notifications.

Handles:
- Change detection and loop prevention
- Event classification and score/age eligibility
- Idempotent dispatch (durable claim + append-only dispatch log)
- Diagnostic write-back onto the source lead row

Pipeline:
    detect change -> resolve identity -> classify -> eligibility
    -> event id -> dedup check/claim -> dispatch -> record + write-back

The service is a pure decision over a single notification. It never retries
the outbound call: the upstream producer re-delivers, and the content-derived
event id makes re-delivery safe. Only appending the dispatch record is retried,
since a sent event that fails to record must not be reported as retryable.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from domain.change_detection import detect_change
from domain.config import RelayConfig
from domain.dispatch import DispatchRecord
from domain.events import EventClassifier, EventDefinition, resolve_conversion_time
from domain.identity import generate_event_id, legacy_event_id, resolve_identity
from domain.lead import LeadChangeNotification, LeadRecord
from domain.time import utc_now
from repositories.dispatch_repository import DispatchRepository
from repositories.lead_repository import LeadRepository
from services.conversion_payload import EventBatch, UserData, build_server_event
from services.conversions_client import ConversionsClient, DispatchFailure

logger = logging.getLogger(__name__)

SKIP_PREFIX = "LOG: "

# Attempts at appending the dispatch record once the event has been accepted.
RECORD_ATTEMPTS = 3
RECORD_RETRY_DELAY_SECONDS = 0.2


class ProcessingOutcome(str, Enum):
    DISPATCHED = "dispatched"
    SKIPPED = "skipped"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """
    Result of processing one notification.

    success: False only for dispatch failures; skips and ignores are successes
    from the producer's point of view (nothing to retry).
    """

    success: bool
    outcome: ProcessingOutcome
    message: str
    event_id: Optional[str] = None
    effective_identity: Optional[str] = None
    events_received: Optional[int] = None

    @property
    def skipped(self) -> bool:
        return self.outcome in (ProcessingOutcome.SKIPPED, ProcessingOutcome.IGNORED)


def quality_summary(record: LeadRecord, user_data: UserData) -> Optional[str]:
    """
    Data-quality note for a successful dispatch, or None when nothing is missing.

    The lead-ad annotation (numeric lead_id and no browser/click signal) is a
    guess with no source-of-truth flag; it is informational only.
    """

    missing: List[str] = []
    if not user_data.client_ip_address:
        missing.append("client_ip")
    if not user_data.client_user_agent:
        missing.append("user_agent")
    if not user_data.fbp:
        missing.append("fbp")
    if not missing:
        return None

    message = f"{SKIP_PREFIX}Sent without {', '.join(missing)}"
    if record.lead_id and record.lead_id.isdigit() and not user_data.fbp and not user_data.fbc:
        message += " (probable lead ad, no cookies)"
    return message


class RelayService:
    def __init__(
        self,
        config: RelayConfig,
        leads: LeadRepository,
        dispatches: DispatchRepository,
        client: ConversionsClient,
    ) -> None:
        self._config = config
        self._leads = leads
        self._dispatches = dispatches
        self._client = client
        self._classifier = EventClassifier(
            config.event_mapping,
            min_lead_score=config.min_lead_score,
            max_event_age_days=config.max_event_age_days,
        )

    def _log_skip(self, record: LeadRecord, reason: str, now: datetime) -> None:
        # Diagnostics are only written to rows with a real lead_id.
        if record.lead_id:
            self._leads.write_diagnostic(record.lead_id, f"{SKIP_PREFIX}{reason}", now=now)

    def process(
        self, notification: LeadChangeNotification, now: Optional[datetime] = None
    ) -> ProcessingResult:
        now = now or utc_now()
        lead = notification.new_record

        identity = resolve_identity(lead)
        if identity is None:
            return ProcessingResult(
                success=True,
                outcome=ProcessingOutcome.IGNORED,
                message="Ignored: No identifying data (lead_id, phone, or email)",
            )

        change = detect_change(notification)
        if not change.proceed:
            logger.debug("Lead %s: %s", lead.lead_id or "-", change.reason)
            return ProcessingResult(
                success=True,
                outcome=ProcessingOutcome.IGNORED,
                message=change.reason or "Ignored",
                effective_identity=identity,
            )

        definition = self._classifier.classify(lead.status_label)
        if definition is None:
            self._log_skip(lead, f"Status '{lead.status_label}' not mapped to an event", now)
            return ProcessingResult(
                success=True,
                outcome=ProcessingOutcome.SKIPPED,
                message=f"Status '{lead.status_label}' not mapped to an event",
                effective_identity=identity,
            )

        eligibility = self._classifier.check_eligibility(lead, now=now)
        if not eligibility.eligible:
            self._log_skip(lead, eligibility.diagnostic or eligibility.reason or "Skipped", now)
            return ProcessingResult(
                success=True,
                outcome=ProcessingOutcome.SKIPPED,
                message=eligibility.reason or "Skipped",
                effective_identity=identity,
            )

        # status_label is non-empty here: classify() returned a definition.
        status_label = lead.status_label or ""
        conversion_time = resolve_conversion_time(lead)
        event_id = generate_event_id(identity, status_label, conversion_time)
        legacy_id = legacy_event_id(identity, status_label, conversion_time)

        if self._already_sent(event_id, legacy_id):
            self._log_skip(lead, "Skipped: Event already sent (Deduplicated)", now)
            return ProcessingResult(
                success=True,
                outcome=ProcessingOutcome.SKIPPED,
                message="Skipped: Event already sent (Deduplicated in DB)",
                event_id=event_id,
                effective_identity=identity,
            )

        if not self._dispatches.claim(event_id, now=now):
            logger.info("Event %s is already being dispatched by another delivery", event_id)
            return ProcessingResult(
                success=True,
                outcome=ProcessingOutcome.SKIPPED,
                message="Skipped: Event dispatch already in progress",
                event_id=event_id,
                effective_identity=identity,
            )

        keep_claim = False
        try:
            # Re-check under the claim: a concurrent delivery may have recorded
            # the event and released its claim since the first lookup.
            if self._already_sent(event_id, legacy_id):
                return ProcessingResult(
                    success=True,
                    outcome=ProcessingOutcome.SKIPPED,
                    message="Skipped: Event already sent (Deduplicated in DB)",
                    event_id=event_id,
                    effective_identity=identity,
                )
            result, recorded = self._dispatch(lead, definition, identity, event_id, conversion_time, now)
            # A sent but unrecorded event keeps its claim, so redeliveries are
            # skipped until the claim expires.
            keep_claim = not recorded
            return result
        finally:
            if not keep_claim:
                self._dispatches.release(event_id)

    def _already_sent(self, event_id: str, legacy_id: Optional[str]) -> bool:
        if self._dispatches.exists(event_id):
            return True
        return legacy_id is not None and legacy_id != event_id and self._dispatches.exists(legacy_id)

    def _record(self, record: DispatchRecord) -> bool:
        """
        Append the dispatch record, retrying transient store errors.

        Returns False when every attempt failed. The event was already accepted
        by the API at this point, so the failure is logged rather than raised.
        """

        for attempt in range(1, RECORD_ATTEMPTS + 1):
            try:
                if not self._dispatches.record(record):
                    logger.warning("Dispatch record for event %s already existed", record.event_id)
                return True
            except RuntimeError as e:
                logger.warning(
                    "Recording event %s failed (attempt %d/%d): %s",
                    record.event_id,
                    attempt,
                    RECORD_ATTEMPTS,
                    e,
                )
                if attempt < RECORD_ATTEMPTS:
                    time.sleep(RECORD_RETRY_DELAY_SECONDS * attempt)

        logger.error(
            "Event %s was sent but could not be recorded; its claim is kept until it expires",
            record.event_id,
        )
        return False

    def _dispatch(
        self,
        lead: LeadRecord,
        definition: EventDefinition,
        identity: str,
        event_id: str,
        conversion_time: Optional[str],
        now: datetime,
    ) -> Tuple[ProcessingResult, bool]:
        """
        Send the event and record it.

        Returns the result and whether the dispatch log is settled (nothing
        sent, or sent and recorded).
        """

        event = build_server_event(
            lead,
            definition,
            identity=identity,
            event_id=event_id,
            conversion_time=conversion_time,
            currency=self._config.currency,
            now=now,
        )

        try:
            receipt = self._client.send(EventBatch(data=[event]))
        except DispatchFailure as e:
            logger.error("Dispatch failed for event %s (lead %s): %s", event_id, lead.lead_id or "-", e.detail)
            if lead.lead_id:
                self._leads.write_diagnostic(lead.lead_id, f"Meta API Error: {e.detail}", now=now)
            return ProcessingResult(
                success=False,
                outcome=ProcessingOutcome.FAILED,
                message=f"Meta API Failed: {e.detail}",
                event_id=event_id,
                effective_identity=identity,
            ), True

        recorded = self._record(
            DispatchRecord(
                event_id=event_id,
                effective_identity=identity,
                status_label=lead.status_label or "",
                event_name=definition.event_name,
                value=definition.value,
                sent_at=utc_now(),
                conversion_time=conversion_time,
            )
        )

        if lead.lead_id:
            self._leads.write_diagnostic(lead.lead_id, quality_summary(lead, event.user_data), now=now)

        logger.info(
            "Dispatched %s (%s) for lead %s as event %s",
            definition.event_name,
            definition.value,
            lead.lead_id or "-",
            event_id,
        )
        return ProcessingResult(
            success=True,
            outcome=ProcessingOutcome.DISPATCHED,
            message="Event dispatched",
            event_id=event_id,
            effective_identity=identity,
            events_received=receipt.events_received,
        ), recorded


__all__ = ["ProcessingOutcome", "ProcessingResult", "RelayService", "quality_summary"]
