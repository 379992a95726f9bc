"""
FastAPI dependency providers.

Configuration, the Supabase client and the outbound HTTP client are built once
per process; services are cheap wrappers built per request. Tests replace these
through `app.dependency_overrides`.
"""

from functools import lru_cache
from typing import Any

from fastapi import Depends

from domain.config import RelayConfig
from repositories.client import create_supabase_client, load_config
from repositories.dispatch_repository import DispatchRepository
from repositories.lead_repository import LeadRepository
from services.activity_service import ActivityService
from services.conversions_client import ConversionsClient
from services.relay_service import RelayService


@lru_cache
def get_config() -> RelayConfig:
    return load_config()


@lru_cache
def get_supabase() -> Any:
    return create_supabase_client()


@lru_cache
def get_conversions_client() -> ConversionsClient:
    return ConversionsClient(get_config())


def get_relay_service(
    config: RelayConfig = Depends(get_config),
    supabase: Any = Depends(get_supabase),
    client: ConversionsClient = Depends(get_conversions_client),
) -> RelayService:
    return RelayService(
        config,
        leads=LeadRepository(supabase, config),
        dispatches=DispatchRepository(supabase, config),
        client=client,
    )


def get_activity_service(
    config: RelayConfig = Depends(get_config),
    supabase: Any = Depends(get_supabase),
) -> ActivityService:
    return ActivityService(
        leads=LeadRepository(supabase, config),
        dispatches=DispatchRepository(supabase, config),
    )
