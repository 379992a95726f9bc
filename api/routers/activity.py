"""
Activity API Endpoints.

Read-only feed for the monitoring dashboard: recent dispatches and recent
leads carrying a diagnostic message.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.dependencies import get_activity_service
from api.models import ActivityData, ActivityResponse, DispatchLogEntry, FlaggedLeadEntry
from services.activity_service import ActivityService

router = APIRouter()


@router.get(
    "/webhook/meta",
    response_model=ActivityResponse,
    summary="Recent Relay Activity",
    description="Most recent successful dispatches and flagged leads, newest first."
)
def get_recent_activity(
    response: Response,
    limit: int = Query(20, ge=1, le=100, description="Maximum entries per list"),
    service: ActivityService = Depends(get_activity_service),
):
    """
    Return the dashboard activity feed.

    `error_logs` entries carry a `severity`: `warning` for skip reasons and
    data-quality notes (`LOG:` prefix), `error` for dispatch failures.
    """
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

    try:
        activity = service.recent_activity(limit)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to load activity: {str(e)}"
        )

    return ActivityResponse(
        success=True,
        data=ActivityData(
            success_logs=[
                DispatchLogEntry(
                    event_id=record.event_id,
                    event_name=record.event_name,
                    lead_id=record.effective_identity,
                    estado_lead=record.status_label,
                    value=record.value,
                    sent_at=record.sent_at,
                    fecha_conversion=record.conversion_time,
                )
                for record in activity.dispatches
            ],
            error_logs=[
                FlaggedLeadEntry(
                    lead_id=lead.lead_id,
                    nombre=lead.name,
                    email=lead.email,
                    estado_lead=lead.status_label,
                    error_meta=lead.diagnostic,
                    severity=lead.severity,
                    updated_at=lead.updated_at,
                )
                for lead in activity.flagged
            ],
        ),
    )
