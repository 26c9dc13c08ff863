"""Contracts with external systems (ticketing)."""

from cleanvee.integrations.tickets import (
    TicketAlertType,
    TicketPriority,
    TicketRequest,
    TicketResponse,
    TicketingConnector,
    ticket_request_from_alert,
)

__all__ = [
    "TicketAlertType",
    "TicketPriority",
    "TicketRequest",
    "TicketResponse",
    "TicketingConnector",
    "ticket_request_from_alert",
]
