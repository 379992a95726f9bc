"""
Supabase client and relay configuration.

This module contains *only* environment loading and the database connection
setup. Nothing is created at import time; the API builds one client and one
RelayConfig at startup and passes them to the repositories.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
- META_ACCESS_TOKEN: Conversions API access token
- META_PIXEL_ID: Pixel / dataset id events are sent to

Optional: WEBHOOK_SECRET, META_API_VERSION, META_API_BASE_URL, MIN_LEAD_SCORE,
MAX_EVENT_AGE_DAYS, CURRENCY, DISPATCH_TIMEOUT_SECONDS, CLAIM_TTL_SECONDS,
LEADS_TABLE, DISPATCH_TABLE, CLAIMS_TABLE, EVENT_MAPPING_JSON.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from domain.config import RelayConfig
from domain.events import DEFAULT_EVENT_MAPPING, EventDefinition

# Look for .env in the project root
_ENV_PATH = Path(__file__).parent.parent / ".env"


def _require(name: str, hint: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


def _number(name: str, default: float) -> float:
    # Unset, empty or zero values fall back to the default.
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid numeric value for {name}: {raw!r}")
    return value or default


def parse_event_mapping(raw: Optional[str]) -> Mapping[str, EventDefinition]:
    """
    Parse EVENT_MAPPING_JSON.

    Format: {"<status label>": {"event_name": "Lead", "value": 5}, ...}
    """

    if not raw:
        return dict(DEFAULT_EVENT_MAPPING)
    try:
        data = json.loads(raw)
        return {
            str(status): EventDefinition(str(entry["event_name"]), float(entry["value"]))
            for status, entry in data.items()
        }
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise RuntimeError(f"Invalid EVENT_MAPPING_JSON: {e}")


def load_config() -> RelayConfig:
    """Read RelayConfig from the environment (after loading `.env`)."""

    load_dotenv(dotenv_path=_ENV_PATH)

    return RelayConfig(
        meta_access_token=_require(
            "META_ACCESS_TOKEN", "Set META_ACCESS_TOKEN to your Conversions API token."
        ),
        meta_pixel_id=_require("META_PIXEL_ID", "Set META_PIXEL_ID to your pixel id."),
        webhook_secret=os.getenv("WEBHOOK_SECRET") or None,
        meta_api_version=os.getenv("META_API_VERSION") or "v19.0",
        meta_api_base_url=os.getenv("META_API_BASE_URL") or "https://graph.facebook.com",
        min_lead_score=_number("MIN_LEAD_SCORE", 0),
        max_event_age_days=int(_number("MAX_EVENT_AGE_DAYS", 7)),
        currency=os.getenv("CURRENCY") or "MXN",
        dispatch_timeout_seconds=_number("DISPATCH_TIMEOUT_SECONDS", 10.0),
        claim_ttl_seconds=int(_number("CLAIM_TTL_SECONDS", 60)),
        leads_table=os.getenv("LEADS_TABLE") or "leads_formularios_optimizada",
        dispatch_table=os.getenv("DISPATCH_TABLE") or "eventos_enviados_meta",
        claims_table=os.getenv("CLAIMS_TABLE") or "eventos_meta_claims",
        event_mapping=parse_event_mapping(os.getenv("EVENT_MAPPING_JSON")),
    )


def create_supabase_client() -> Client:
    """Create the Supabase client from SUPABASE_URL / SUPABASE_KEY."""

    load_dotenv(dotenv_path=_ENV_PATH)

    supabase_url = _require("SUPABASE_URL", "Set SUPABASE_URL to your Supabase project URL.")
    supabase_key = _require("SUPABASE_KEY", "Set SUPABASE_KEY to your Supabase API key.")
    return create_client(supabase_url, supabase_key)


__all__ = ["create_supabase_client", "load_config", "parse_event_mapping"]
