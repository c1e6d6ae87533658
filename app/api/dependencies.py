"""
FastAPI dependencies: service instances owned by the app, query filters.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Query, Request

from app.models.classifier import TicketClassifier
from app.models.schemas import TicketCategory, TicketFilters, TicketPriority, TicketStatus
from app.services.import_service import ImportService
from app.services.ledger import TransactionLedger
from app.services.ticket_store import TicketStore
from app.utils import parse_datetime

# ---------------------------------------------------------------------------
# Services live on app.state (set by create_app), one set per app instance
# ---------------------------------------------------------------------------

def get_ticket_store(request: Request) -> TicketStore:
    return request.app.state.ticket_store


def get_classifier(request: Request) -> TicketClassifier:
    return request.app.state.classifier


def get_import_service(request: Request) -> ImportService:
    return request.app.state.import_service


def get_ledger(request: Request) -> TransactionLedger:
    return request.app.state.ledger


# ---------------------------------------------------------------------------
# Query parsing
# ---------------------------------------------------------------------------

def ticket_filters(
    category: Optional[TicketCategory] = Query(None),
    priority: Optional[TicketPriority] = Query(None),
    status: Optional[TicketStatus] = Query(None),
    customer_id: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None),
) -> TicketFilters:
    """Enum-typed filters; unknown values are rejected as validation errors."""
    return TicketFilters(
        category=category,
        priority=priority,
        status=status,
        customer_id=customer_id,
        assigned_to=assigned_to,
    )


def parse_date_param(value: Optional[str], name: str):
    if value is None or value == "":
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise HTTPException(400, f"Invalid date for '{name}': {value}")
    return parsed
