"""
Domain: relay configuration.

Built once at process start (see `repositories.client.load_config`) and passed
explicitly into every component. Nothing reads the environment after that.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .events import DEFAULT_EVENT_MAPPING, EventDefinition


@dataclass(frozen=True, slots=True)
class RelayConfig:
    """
    Immutable relay settings.

    Thresholds:
    - min_lead_score: leads scoring below this are skipped.
    - max_event_age_days: conversions older than this are skipped.
    """

    meta_access_token: str
    meta_pixel_id: str
    webhook_secret: Optional[str] = None
    meta_api_version: str = "v19.0"
    meta_api_base_url: str = "https://graph.facebook.com"
    min_lead_score: float = 0
    max_event_age_days: int = 7
    currency: str = "MXN"
    dispatch_timeout_seconds: float = 10.0
    claim_ttl_seconds: int = 60
    leads_table: str = "leads_formularios_optimizada"
    dispatch_table: str = "eventos_enviados_meta"
    claims_table: str = "eventos_meta_claims"
    event_mapping: Mapping[str, EventDefinition] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_EVENT_MAPPING))
    )

    def __post_init__(self) -> None:
        if self.max_event_age_days < 0:
            raise ValueError("max_event_age_days must be >= 0")
        if self.dispatch_timeout_seconds <= 0:
            raise ValueError("dispatch_timeout_seconds must be > 0")
        if self.claim_ttl_seconds <= self.dispatch_deadline_seconds:
            # A claim must outlive the outbound call it protects.
            raise ValueError(
                f"claim_ttl_seconds must exceed the worst-case dispatch time "
                f"({self.dispatch_deadline_seconds:g}s)"
            )
        if not isinstance(self.event_mapping, MappingProxyType):
            object.__setattr__(self, "event_mapping", MappingProxyType(dict(self.event_mapping)))

    @property
    def events_endpoint(self) -> str:
        base = self.meta_api_base_url.rstrip("/")
        return f"{base}/{self.meta_api_version}/{self.meta_pixel_id}/events"

    @property
    def dispatch_deadline_seconds(self) -> float:
        """
        Worst-case duration of one outbound call.

        The HTTP timeout bounds each phase separately (pool acquisition,
        connect, write, read), so a call can take up to four times as long.
        Reading the small JSON response is counted as a single read.
        """

        return 4 * self.dispatch_timeout_seconds
