"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides:

- FakeSupabase: an in-memory stand-in for the supabase-py query builder
  (select/insert/update/delete, eq/lt/is_/not_, order, limit). Inserting a
  duplicate primary key raises postgrest's APIError with code 23505, like
  PostgREST does.
- AttributionApiStub: an httpx MockTransport handler recording outbound calls.
"""

import copy
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from postgrest.exceptions import APIError

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.config import RelayConfig  # noqa: E402
from domain.time import parse_timestamp  # noqa: E402
from repositories.dispatch_repository import DispatchRepository  # noqa: E402
from repositories.lead_repository import LeadRepository  # noqa: E402
from services.conversions_client import ConversionsClient  # noqa: E402
from services.relay_service import RelayService  # noqa: E402

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]) -> None:
        self.data = data
        self.error = None
        self.count = len(data)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: Optional[tuple] = None
        self._limit: Optional[int] = None
        self._negate = False

    def select(self, columns: str = "*", **_: Any) -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def _add(self, check: Callable[[Dict[str, Any]], bool]) -> "FakeQuery":
        if self._negate:
            self._negate = False
            self._filters.append(lambda row: not check(row))
        else:
            self._filters.append(check)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._add(lambda row: row.get(column) == value)

    def lt(self, column: str, value: Any) -> "FakeQuery":
        bound = parse_timestamp(value)

        def check(row: Dict[str, Any]) -> bool:
            current = parse_timestamp(row.get(column))
            return current is not None and bound is not None and current < bound

        return self._add(check)

    def is_(self, column: str, value: str) -> "FakeQuery":
        assert value == "null"
        return self._add(lambda row: row.get(column) is None)

    @property
    def not_(self) -> "FakeQuery":
        self._negate = True
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def _matching(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [row for row in rows if all(check(row) for check in self._filters)]

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        failure = self._db.failures.get((self._table, self._op))
        if failure is not None:
            raise failure

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            key = self._db.primary_keys.get(self._table)
            inserted = []
            for payload in payloads:
                if key and any(row.get(key) == payload.get(key) for row in rows):
                    raise APIError({
                        "message": f'duplicate key value violates unique constraint "{self._table}_pkey"',
                        "code": "23505",
                        "details": f"Key ({key})=({payload.get(key)}) already exists.",
                        "hint": None,
                    })
                rows.append(copy.deepcopy(payload))
                inserted.append(copy.deepcopy(payload))
            return FakeResponse(inserted)

        matched = self._matching(rows)

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if not any(row is m for m in matched)]
            return FakeResponse([copy.deepcopy(row) for row in matched])

        result = [copy.deepcopy(row) for row in matched]
        if self._order is not None:
            column, desc = self._order
            result.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
        if self._limit is not None:
            result = result[: self._limit]
        return FakeResponse(result)


class FakeSupabase:
    def __init__(self, primary_keys: Optional[Dict[str, str]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.primary_keys = primary_keys or {}
        self.failures: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])


class AttributionApiStub:
    """Records outbound requests and replies with a configurable response."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.body: Any = {"events_received": 1, "fbtrace_id": "AbCdEf123"}
        self.raise_exc: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(
        meta_access_token="test-token",
        meta_pixel_id="1234567890",
        webhook_secret="s3cret",
        min_lead_score=0,
        max_event_age_days=7,
    )


@pytest.fixture
def fake_supabase(relay_config: RelayConfig) -> FakeSupabase:
    return FakeSupabase(
        primary_keys={
            relay_config.dispatch_table: "event_id",
            relay_config.claims_table: "event_id",
            relay_config.leads_table: "lead_id",
        }
    )


@pytest.fixture
def attribution_api() -> AttributionApiStub:
    return AttributionApiStub()


@pytest.fixture
def conversions_client(relay_config: RelayConfig, attribution_api: AttributionApiStub) -> ConversionsClient:
    http_client = httpx.Client(transport=httpx.MockTransport(attribution_api.handler))
    return ConversionsClient(relay_config, http_client=http_client)


@pytest.fixture
def lead_repository(fake_supabase: FakeSupabase, relay_config: RelayConfig) -> LeadRepository:
    return LeadRepository(fake_supabase, relay_config)


@pytest.fixture
def dispatch_repository(fake_supabase: FakeSupabase, relay_config: RelayConfig) -> DispatchRepository:
    return DispatchRepository(fake_supabase, relay_config)


@pytest.fixture
def relay_service(
    relay_config: RelayConfig,
    lead_repository: LeadRepository,
    dispatch_repository: DispatchRepository,
    conversions_client: ConversionsClient,
) -> RelayService:
    return RelayService(
        relay_config,
        leads=lead_repository,
        dispatches=dispatch_repository,
        client=conversions_client,
    )
