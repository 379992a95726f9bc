"""
Dispatch repository (persistence).

Durable deduplication store for dispatched conversion events. Two tables:

- dispatch table: append-only DispatchRecord log, keyed by event_id. The
  authoritative answer to "was this event already sent?".
- claims table: short-lived rows marking an event_id as in flight. Claiming is
  a conditional insert on the event_id primary key, so two concurrent
  deliveries of the same event cannot both proceed to the outbound call.

No business rules live here; the relay service decides when to claim, record
and release.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional

from postgrest.exceptions import APIError

from domain.config import RelayConfig
from domain.dispatch import DispatchRecord
from domain.time import parse_timestamp, require_utc_timestamp, utc_now

logger = logging.getLogger(__name__)

# Postgres unique_violation
_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(error: APIError) -> bool:
    return str(getattr(error, "code", "") or "") == _UNIQUE_VIOLATION


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _record_to_row(record: DispatchRecord) -> dict[str, Any]:
    return {
        "event_id": record.event_id,
        # Stores the identity used (could be phone/email if lead_id was null)
        "lead_id": record.effective_identity,
        "estado_lead": record.status_label,
        "event_name": record.event_name,
        "value": record.value,
        "sent_at": _to_iso_utc(record.sent_at, name="sent_at"),
        "fecha_conversion": record.conversion_time,
    }


def _row_to_record(row: Mapping[str, Any]) -> DispatchRecord:
    """Convert a Supabase row into a DispatchRecord."""

    sent_at = parse_timestamp(row.get("sent_at"))
    if sent_at is None:
        raise ValueError(f"Dispatch row {row.get('event_id')!r} has no valid sent_at")

    return DispatchRecord(
        event_id=str(row["event_id"]),
        effective_identity=str(row["lead_id"]),
        status_label=str(row.get("estado_lead") or ""),
        event_name=str(row.get("event_name") or ""),
        value=float(row.get("value") or 0),
        sent_at=sent_at,
        conversion_time=row.get("fecha_conversion"),
    )


class DispatchRepository:
    """Dedup store backed by the dispatch and claims tables."""

    def __init__(self, client: Any, config: RelayConfig) -> None:
        self._client = client
        self._dispatch_table = config.dispatch_table
        self._claims_table = config.claims_table
        self._claim_ttl = timedelta(seconds=config.claim_ttl_seconds)

    def exists(self, event_id: str) -> bool:
        """True if a DispatchRecord already exists for event_id."""

        response = (
            self._client.table(self._dispatch_table)
            .select("event_id")
            .eq("event_id", event_id)
            .limit(1)
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to check dispatch record: {error}")

        rows = getattr(response, "data", None) or []
        return bool(rows)

    def claim(self, event_id: str, now: Optional[datetime] = None) -> bool:
        """
        Atomically claim event_id for dispatch.

        Returns:
            True if this caller holds the claim, False if another delivery
            already holds a live claim.

        Claims older than the TTL are treated as abandoned (crashed worker)
        and removed with a conditional delete before inserting.
        """

        now = now or utc_now()
        cutoff = now - self._claim_ttl

        stale = (
            self._client.table(self._claims_table)
            .delete()
            .eq("event_id", event_id)
            .lt("claimed_at", _to_iso_utc(cutoff, name="cutoff"))
            .execute()
        )
        error = getattr(stale, "error", None)
        if error:
            raise RuntimeError(f"Failed to expire stale claim: {error}")

        try:
            response = (
                self._client.table(self._claims_table)
                .insert({"event_id": event_id, "claimed_at": _to_iso_utc(now, name="now")})
                .execute()
            )
        except APIError as e:
            if _is_unique_violation(e):
                return False
            raise RuntimeError(f"Failed to claim event: {e.message}") from e

        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to claim event: {error}")
        return True

    def release(self, event_id: str) -> None:
        """Drop the claim for event_id. Best-effort: a leftover claim expires by TTL."""

        try:
            self._client.table(self._claims_table).delete().eq("event_id", event_id).execute()
        except Exception:
            logger.warning("Failed to release claim for event %s", event_id, exc_info=True)

    def record(self, record: DispatchRecord) -> bool:
        """
        Append a DispatchRecord.

        Returns:
            True on insert, False if a record for the event_id already exists.
        """

        try:
            response = self._client.table(self._dispatch_table).insert(_record_to_row(record)).execute()
        except APIError as e:
            if _is_unique_violation(e):
                return False
            raise RuntimeError(f"Failed to record dispatch: {e.message}") from e

        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to record dispatch: {error}")
        return True

    def list_recent(self, limit: int = 20) -> List[DispatchRecord]:
        """Most recent dispatches, newest first."""

        response = (
            self._client.table(self._dispatch_table)
            .select("*")
            .order("sent_at", desc=True)
            .limit(limit)
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to list dispatches: {error}")

        rows = getattr(response, "data", None) or []
        return [_row_to_record(row) for row in rows]


__all__ = ["DispatchRepository"]
