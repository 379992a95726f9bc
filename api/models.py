"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Webhook Models
# ============================================================================

class LeadChangePayload(BaseModel):
    """Change notification sent by the database trigger."""
    type: Optional[str] = Field(None, description="INSERT or UPDATE")
    table: Optional[str] = Field(None, description="Source table name")
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "UPDATE",
                "table": "leads_formularios_optimizada",
                "record": {
                    "lead_id": "L1",
                    "estado_lead": "Cita agendada",
                    "email": "a@b.com",
                    "fecha_conversion": "2025-01-01T12:00:00Z",
                    "score_lead": 10
                },
                "old_record": {
                    "lead_id": "L1",
                    "estado_lead": "Nuevo Lead",
                    "email": "a@b.com",
                    "fecha_conversion": "2024-12-30T09:00:00Z",
                    "score_lead": 10
                }
            }
        }
    )


class WebhookResponse(BaseModel):
    """Outcome of processing one notification."""
    success: bool
    outcome: str  # dispatched, skipped, ignored, failed
    message: str
    skipped: bool = False
    event_id: Optional[str] = None
    used_id: Optional[str] = None
    events_received: Optional[int] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "outcome": "dispatched",
                "message": "Event dispatched",
                "skipped": False,
                "event_id": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                "used_id": "L1",
                "events_received": 1
            }
        }
    )


# ============================================================================
# Activity Models
# ============================================================================

class DispatchLogEntry(BaseModel):
    """Successfully dispatched event."""
    event_id: str
    event_name: str
    lead_id: str
    estado_lead: str
    value: float
    sent_at: datetime
    fecha_conversion: Optional[str] = None


class FlaggedLeadEntry(BaseModel):
    """Lead whose diagnostic field is set."""
    lead_id: Optional[str] = None
    nombre: Optional[str] = None
    email: Optional[str] = None
    estado_lead: Optional[str] = None
    error_meta: str
    severity: str  # "warning" or "error"
    updated_at: Optional[datetime] = None


class ActivityData(BaseModel):
    success_logs: List[DispatchLogEntry]
    error_logs: List[FlaggedLeadEntry]


class ActivityResponse(BaseModel):
    """Response for the dashboard activity feed."""
    success: bool
    data: ActivityData


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Unauthorized",
                "detail": "Secret mismatch"
            }
        }
    )
