"""
Webhook API Endpoints.

Receives lead change notifications from the database trigger and relays
qualifying conversions to the attribution API.
"""

import hmac
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.dependencies import get_config, get_relay_service
from api.models import ErrorResponse, LeadChangePayload, WebhookResponse
from domain.config import RelayConfig
from domain.lead import ChangeType, LeadChangeNotification, LeadRecord
from services.relay_service import ProcessingOutcome, ProcessingResult, RelayService

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_secret(secret: Optional[str], config: RelayConfig) -> None:
    expected = config.webhook_secret
    if not expected:
        return
    if secret is None or not hmac.compare_digest(secret.encode("utf-8"), expected.encode("utf-8")):
        logger.error("Unauthorized webhook call: secret mismatch (received %s...)", (secret or "")[:3])
        raise HTTPException(status_code=401, detail="Unauthorized")


def _to_notification(payload: LeadChangePayload) -> Optional[LeadChangeNotification]:
    """Build a notification, or None when the payload carries nothing to process."""

    if not payload.record:
        return None
    try:
        change_type = ChangeType((payload.type or "").upper())
    except ValueError:
        return None

    return LeadChangeNotification(
        change_type=change_type,
        new_record=LeadRecord.from_row(payload.record),
        old_record=LeadRecord.from_row(payload.old_record) if payload.old_record else None,
        source_collection=payload.table,
    )


def _to_response(result: ProcessingResult) -> WebhookResponse:
    return WebhookResponse(
        success=result.success,
        outcome=result.outcome.value,
        message=result.message,
        skipped=result.skipped,
        event_id=result.event_id,
        used_id=result.effective_identity,
        events_received=result.events_received,
    )


@router.post(
    "/webhook/meta",
    response_model=WebhookResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": WebhookResponse}},
    summary="Receive Lead Change",
    description="Receive an INSERT/UPDATE notification for a lead and relay qualifying conversions."
)
def receive_lead_change(
    body: Any = Body(None),
    secret: Optional[str] = Query(None, description="Shared webhook secret"),
    config: RelayConfig = Depends(get_config),
    service: RelayService = Depends(get_relay_service),
):
    """
    Process one lead change notification.

    **Status codes:**
    - 200: dispatched, skipped or ignored (business outcomes; do not retry)
    - 401: secret mismatch
    - 502: the attribution API rejected the event or timed out (safe to retry)
    - 500: malformed payload or internal error

    **Example request:**
    ```
    POST /api/webhook/meta?secret=...
    {"type": "INSERT", "table": "leads", "record": {"lead_id": "L1", "estado_lead": "Nuevo Lead"}}
    ```
    """
    _check_secret(secret, config)

    try:
        payload = LeadChangePayload.model_validate(body if body is not None else {})
        notification = _to_notification(payload)
        if notification is None:
            if payload.record and (payload.type or "").upper() not in ("INSERT", "UPDATE"):
                message = f"Ignored: Unsupported change type '{payload.type}'"
            else:
                message = "Ignored: No lead data in payload"
            return WebhookResponse(success=True, outcome=ProcessingOutcome.IGNORED.value, message=message, skipped=True)

        result = service.process(notification)
    except ValidationError as e:
        logger.error("Malformed webhook payload: %s", e)
        return JSONResponse(status_code=500, content={"error": "Malformed payload", "detail": str(e)})
    except Exception as e:
        logger.exception("Processing error")
        return JSONResponse(status_code=500, content={"error": str(e)})

    response = _to_response(result)
    if result.outcome is ProcessingOutcome.FAILED:
        return JSONResponse(status_code=502, content=response.model_dump())
    return response
