"""Ticketing contract shared with the ServiceNow / Jira connectors.

The connectors themselves live outside this service. This module owns the
request/response shapes and the mapping from an alert to a ticket request;
descriptions are built from sanitized alert data only.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Literal, Protocol

from pydantic import BaseModel, Field

from cleanvee.db.models import AlertModel
from cleanvee.models import AlertType
from cleanvee.privacy.sanitize import sanitize_alert_for_ai


class TicketPriority(IntEnum):
    CRITICAL = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4


class TicketAlertType(str, Enum):
    SAFETY_HAZARD = "SAFETY_HAZARD"
    QUALITY_FAILURE = "QUALITY_FAILURE"
    SLA_BREACH = "SLA_BREACH"
    AUDIT_REQUEST = "AUDIT_REQUEST"


class TicketRequest(BaseModel):
    title: str
    description: str
    priority: TicketPriority
    alert_type: TicketAlertType
    alert_id: str
    building_id: str
    checkpoint_id: str
    location: str | None = None
    detected_issues: list[str] = Field(default_factory=list)
    score: float | None = None


class TicketResponse(BaseModel):
    success: bool
    external_system: Literal["servicenow", "jira"]
    ticket_id: str | None = None
    ticket_url: str | None = None
    error: str | None = None


class TicketingConnector(Protocol):
    def get_system_name(self) -> str: ...

    def is_configured(self) -> bool: ...

    async def create_ticket(self, request: TicketRequest) -> TicketResponse: ...


# alert type -> (ticket type, priority, title prefix)
_TICKET_MAPPING: dict[str, tuple[TicketAlertType, TicketPriority, str]] = {
    AlertType.SAFETY_HAZARD.value: (
        TicketAlertType.SAFETY_HAZARD,
        TicketPriority.CRITICAL,
        "Safety hazard detected",
    ),
    AlertType.QUALITY_FAILURE.value: (
        TicketAlertType.QUALITY_FAILURE,
        TicketPriority.HIGH,
        "Cleaning quality below standard",
    ),
    AlertType.SLA_MISSING_CLEAN.value: (
        TicketAlertType.SLA_BREACH,
        TicketPriority.MEDIUM,
        "Cleaning overdue",
    ),
    AlertType.SUPERVISOR_AUDIT_REQUEST.value: (
        TicketAlertType.AUDIT_REQUEST,
        TicketPriority.LOW,
        "Supervisor spot check requested",
    ),
}


def ticket_request_from_alert(alert: AlertModel, location: str | None = None) -> TicketRequest:
    """Build a PII-free ticket request for an alert.

    Raises:
        ValueError: If the alert type has no ticket mapping
    """
    try:
        ticket_type, priority, title_prefix = _TICKET_MAPPING[alert.type]
    except KeyError:
        raise ValueError(f"No ticket mapping for alert type {alert.type!r}") from None

    details = sanitize_alert_for_ai({"details": alert.details or {}})["details"]
    hazards = list(details.get("detected_hazards") or [])
    score = details.get("score")

    place = location or alert.checkpoint_id
    lines = [f"{title_prefix} at {place} (building {alert.building_id})."]
    if alert.message:
        lines.append(alert.message)
    if score is not None:
        lines.append(f"Quality score: {score}")
    if hazards:
        lines.append("Detected issues: " + ", ".join(hazards))

    return TicketRequest(
        title=f"{title_prefix}: {place}",
        description="\n".join(lines),
        priority=priority,
        alert_type=ticket_type,
        alert_id=alert.id,
        building_id=alert.building_id or "",
        checkpoint_id=alert.checkpoint_id,
        location=location,
        detected_issues=hazards,
        score=score,
    )
