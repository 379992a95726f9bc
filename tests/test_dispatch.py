"""
Tests for `domain/dispatch.py` and `domain/config.py`.

Covers contract rules:
- DispatchRecord.sent_at is required and must be a UTC timestamp.
- DispatchRecord is immutable (frozen).
- RelayConfig is immutable and validates its thresholds.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from domain.config import RelayConfig
from domain.dispatch import DispatchRecord
from domain.events import EventDefinition


def _record(**overrides) -> DispatchRecord:
    fields = dict(
        event_id="abc123",
        effective_identity="L1",
        status_label="Nuevo Lead",
        event_name="Lead",
        value=5,
        sent_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return DispatchRecord(**fields)


def test_dispatch_record_sent_at_must_be_utc() -> None:
    """Verify sent_at enforces UTC timezone-aware timestamp."""

    with pytest.raises(ValueError):
        _record(sent_at=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _record(sent_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=2))))


def test_dispatch_record_requires_identifiers() -> None:
    with pytest.raises(ValueError):
        _record(event_id="")
    with pytest.raises(ValueError):
        _record(effective_identity="")


def test_dispatch_record_is_immutable() -> None:
    """Verify DispatchRecord cannot be mutated after creation (frozen entity)."""

    record = _record()

    with pytest.raises(FrozenInstanceError):
        record.event_name = "Purchase"  # type: ignore[misc]


def test_config_defaults_and_endpoint() -> None:
    config = RelayConfig(meta_access_token="t", meta_pixel_id="999")
    assert config.min_lead_score == 0
    assert config.max_event_age_days == 7
    assert config.currency == "MXN"
    assert config.events_endpoint == "https://graph.facebook.com/v19.0/999/events"
    assert config.event_mapping["Nuevo Lead"] == EventDefinition("Lead", 5)


def test_config_mapping_is_read_only() -> None:
    config = RelayConfig(
        meta_access_token="t",
        meta_pixel_id="999",
        event_mapping={"Ganado": EventDefinition("Purchase", 100)},
    )
    with pytest.raises(TypeError):
        config.event_mapping["Otro"] = EventDefinition("Lead", 1)  # type: ignore[index]
    with pytest.raises(FrozenInstanceError):
        config.currency = "USD"  # type: ignore[misc]


def test_config_claim_ttl_must_outlive_timeout() -> None:
    with pytest.raises(ValueError):
        RelayConfig(
            meta_access_token="t",
            meta_pixel_id="999",
            dispatch_timeout_seconds=30,
            claim_ttl_seconds=20,
        )


def test_config_claim_ttl_covers_every_http_phase() -> None:
    """Pool, connect, write and read are each bounded by the timeout."""

    config = RelayConfig(
        meta_access_token="t",
        meta_pixel_id="999",
        dispatch_timeout_seconds=10,
        claim_ttl_seconds=41,
    )
    assert config.dispatch_deadline_seconds == 40

    with pytest.raises(ValueError, match="worst-case"):
        RelayConfig(
            meta_access_token="t",
            meta_pixel_id="999",
            dispatch_timeout_seconds=20,
            claim_ttl_seconds=60,
        )
