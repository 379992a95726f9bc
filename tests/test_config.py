"""
Tests for environment configuration loading (`repositories/client.py`).
"""

from __future__ import annotations

import json

import pytest

from domain.events import DEFAULT_EVENT_MAPPING, EventDefinition
from repositories import client as client_module
from repositories.client import load_config, parse_event_mapping

_OPTIONAL = (
    "WEBHOOK_SECRET",
    "META_API_VERSION",
    "META_API_BASE_URL",
    "MIN_LEAD_SCORE",
    "MAX_EVENT_AGE_DAYS",
    "CURRENCY",
    "DISPATCH_TIMEOUT_SECONDS",
    "CLAIM_TTL_SECONDS",
    "LEADS_TABLE",
    "DISPATCH_TABLE",
    "CLAIMS_TABLE",
    "EVENT_MAPPING_JSON",
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    # Point .env loading at an empty directory so a local .env can't leak in.
    monkeypatch.setattr(client_module, "_ENV_PATH", tmp_path / ".env")
    for name in _OPTIONAL:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("META_ACCESS_TOKEN", "token")
    monkeypatch.setenv("META_PIXEL_ID", "999")
    return monkeypatch


def test_defaults(env) -> None:
    config = load_config()

    assert config.meta_access_token == "token"
    assert config.webhook_secret is None
    assert config.min_lead_score == 0
    assert config.max_event_age_days == 7
    assert config.currency == "MXN"
    assert config.leads_table == "leads_formularios_optimizada"
    assert dict(config.event_mapping) == dict(DEFAULT_EVENT_MAPPING)


def test_overrides(env) -> None:
    env.setenv("WEBHOOK_SECRET", "s3cret")
    env.setenv("MIN_LEAD_SCORE", "30")
    env.setenv("MAX_EVENT_AGE_DAYS", "3")
    env.setenv("CURRENCY", "USD")
    env.setenv("META_API_VERSION", "v21.0")

    config = load_config()

    assert config.webhook_secret == "s3cret"
    assert config.min_lead_score == 30
    assert config.max_event_age_days == 3
    assert config.currency == "USD"
    assert config.events_endpoint == "https://graph.facebook.com/v21.0/999/events"


def test_zero_age_falls_back_to_default(env) -> None:
    env.setenv("MAX_EVENT_AGE_DAYS", "0")
    assert load_config().max_event_age_days == 7


def test_missing_token_raises(env) -> None:
    env.delenv("META_ACCESS_TOKEN")
    with pytest.raises(RuntimeError, match="META_ACCESS_TOKEN"):
        load_config()


def test_invalid_number_raises(env) -> None:
    env.setenv("MIN_LEAD_SCORE", "high")
    with pytest.raises(RuntimeError, match="MIN_LEAD_SCORE"):
        load_config()


def test_parse_event_mapping() -> None:
    raw = json.dumps({"Ganado": {"event_name": "Purchase", "value": 100}})
    assert parse_event_mapping(raw) == {"Ganado": EventDefinition("Purchase", 100)}
    assert parse_event_mapping(None) == dict(DEFAULT_EVENT_MAPPING)


@pytest.mark.parametrize("raw", ["not json", '{"Ganado": {"value": 1}}', "[1, 2]"])
def test_parse_event_mapping_rejects_invalid(raw) -> None:
    with pytest.raises(RuntimeError, match="EVENT_MAPPING_JSON"):
        parse_event_mapping(raw)
