"""
Conversions API client.

Single synchronous POST per dispatch with a bounded timeout. Any non-2xx
status, timeout or transport error is a DispatchFailure; the caller decides
what to write back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from domain.config import RelayConfig
from services.conversion_payload import EventBatch

logger = logging.getLogger(__name__)

_MAX_DETAIL_LENGTH = 300


class DispatchFailure(Exception):
    """Raised when the attribution API rejects the event or cannot be reached."""

    def __init__(self, detail: str, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True, slots=True)
class DispatchReceipt:
    events_received: Optional[int] = None
    fbtrace_id: Optional[str] = None


def _truncate(text: str, limit: int = _MAX_DETAIL_LENGTH) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _error_detail(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return fallback


class ConversionsClient:
    """
    Thin httpx wrapper around the `/{pixel_id}/events` endpoint.

    Pass `http_client` to reuse a pooled client (or a mock transport in tests).
    """

    def __init__(self, config: RelayConfig, http_client: Optional[httpx.Client] = None) -> None:
        self._endpoint = config.events_endpoint
        self._token = config.meta_access_token
        # Per-phase limit; RelayConfig.dispatch_deadline_seconds is the total.
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(config.dispatch_timeout_seconds))

    def send(self, batch: EventBatch) -> DispatchReceipt:
        try:
            response = self._http.post(
                self._endpoint,
                json=batch.to_request_body(),
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.TimeoutException as e:
            raise DispatchFailure(_truncate(f"Timeout: {e}")) from e
        except httpx.HTTPError as e:
            raise DispatchFailure(_truncate(f"Transport error: {e}")) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            detail = _error_detail(body, f"HTTP {response.status_code}")
            logger.error("Conversions API error (%s): %s", response.status_code, body)
            raise DispatchFailure(_truncate(detail), status_code=response.status_code, body=body)

        body = body if isinstance(body, dict) else {}
        return DispatchReceipt(
            events_received=body.get("events_received"),
            fbtrace_id=body.get("fbtrace_id"),
        )

    def close(self) -> None:
        self._http.close()


__all__ = ["ConversionsClient", "DispatchFailure", "DispatchReceipt"]
