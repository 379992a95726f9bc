"""
Lead repository (persistence).

The lead table is owned by the source of record; the relay only writes its
diagnostic column (`error_meta`) back and reads flagged rows for the
dashboard. No business rules belong here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from domain.config import RelayConfig
from domain.time import utc_now

logger = logging.getLogger(__name__)

_FLAGGED_COLUMNS = "lead_id, nombre, email, estado_lead, error_meta, updated_at"


class LeadRepository:
    def __init__(self, client: Any, config: RelayConfig) -> None:
        self._client = client
        self._table = config.leads_table

    def write_diagnostic(
        self, lead_id: str, message: Optional[str], now: Optional[datetime] = None
    ) -> bool:
        """
        Set (or clear, with None) the diagnostic field of one lead.

        Best-effort side channel: failures are logged and swallowed, never
        raised, so they cannot fail the primary operation.

        Returns:
            True if the update was accepted.
        """

        if not lead_id:
            return False

        now = now or utc_now()
        payload: dict[str, Any] = {
            "error_meta": message,
            "updated_at": now.astimezone(timezone.utc).isoformat(),
        }

        try:
            response = (
                self._client.table(self._table)
                .update(payload)
                .eq("lead_id", lead_id)
                .execute()
            )
        except Exception:
            logger.error("Failed to write diagnostic for lead %s", lead_id, exc_info=True)
            return False

        error = getattr(response, "error", None)
        if error:
            logger.error("Failed to write diagnostic for lead %s: %s", lead_id, error)
            return False
        return True

    def list_flagged(self, limit: int = 20) -> List[Mapping[str, Any]]:
        """Leads with a non-empty diagnostic field, most recently updated first."""

        response = (
            self._client.table(self._table)
            .select(_FLAGGED_COLUMNS)
            .not_.is_("error_meta", "null")
            .order("updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to list flagged leads: {error}")

        rows = getattr(response, "data", None) or []
        return [row for row in rows if row.get("error_meta")]


__all__ = ["LeadRepository"]
