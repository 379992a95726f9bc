"""
Domain: change detection and loop prevention (pure).

The relay writes its diagnostic message back onto the same lead row that
triggered it, which fires another UPDATE notification. Two rules keep that
from looping:

1. Loop prevention: diagnostic changed, status and conversion timestamp did
   not -> the notification is our own write-back; ignore it.
2. Significance: neither status nor conversion instant changed -> ignore.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .lead import ChangeType, LeadChangeNotification
from .time import instant_or_epoch

LOOP_PREVENTION_REASON = "Ignored: Loop prevention (Log update)"
NO_CHANGE_REASON = "Ignored: No change in estado_lead or fecha_conversion"


@dataclass(frozen=True, slots=True)
class ChangeDecision:
    proceed: bool
    reason: Optional[str] = None


def detect_change(notification: LeadChangeNotification) -> ChangeDecision:
    """Decide whether a notification is a meaningful change worth processing."""

    if notification.change_type is ChangeType.INSERT:
        return ChangeDecision(proceed=True)

    old = notification.old_record
    if old is None:
        # No prior snapshot: process rather than silently drop.
        return ChangeDecision(proceed=True)

    new = notification.new_record

    if (
        new.diagnostic != old.diagnostic
        and new.status_label == old.status_label
        and new.conversion_time == old.conversion_time
    ):
        return ChangeDecision(proceed=False, reason=LOOP_PREVENTION_REASON)

    status_changed = new.status_label != old.status_label
    date_changed = instant_or_epoch(new.conversion_time) != instant_or_epoch(old.conversion_time)
    if not status_changed and not date_changed:
        return ChangeDecision(proceed=False, reason=NO_CHANGE_REASON)

    return ChangeDecision(proceed=True)


__all__ = [
    "ChangeDecision",
    "LOOP_PREVENTION_REASON",
    "NO_CHANGE_REASON",
    "detect_change",
]
