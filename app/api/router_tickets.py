"""Ticket endpoints: CRUD, bulk import and auto-classification."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.api.dependencies import (
    get_classifier,
    get_import_service,
    get_ticket_store,
    ticket_filters,
)
from app.models.classifier import TicketClassifier
from app.models.schemas import (
    AutoClassifyResponse,
    ClassificationData,
    ErrorResponse,
    ImportRequest,
    ImportResult,
    Ticket,
    TicketCreate,
    TicketFilters,
    TicketListResponse,
    TicketUpdate,
)
from app.services.import_service import ImportService, UnsupportedFileTypeError
from app.services.ticket_store import TicketStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])

MANUAL_OVERRIDE_REASONING = "Manually overridden via PUT /tickets/:id"

_error_responses = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def _not_found(ticket_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Ticket with ID {ticket_id} not found")


def _apply_classification(store: TicketStore, ticket: Ticket, classifier: TicketClassifier):
    result = classifier.classify(ticket.subject, ticket.description)
    updated = store.update(
        ticket.id,
        {
            "category": result.category,
            "priority": result.priority,
            "classification": result.as_ticket_classification().model_dump(),
        },
    )
    if updated is None:
        raise _not_found(ticket.id)
    return updated, result


@router.post("", response_model=Ticket, status_code=201, responses=_error_responses)
def create_ticket(
    payload: TicketCreate,
    auto_classify: bool = Query(False, alias="autoClassify"),
    store: TicketStore = Depends(get_ticket_store),
    classifier: TicketClassifier = Depends(get_classifier),
):
    """Create a ticket; `?autoClassify=true` overrides category and priority."""
    ticket = store.create(payload)
    if auto_classify:
        ticket, _ = _apply_classification(store, ticket, classifier)
    logger.info("ticket created", extra={"ticket_id": ticket.id, "category": ticket.category.value})
    return ticket


@router.post(
    "/import",
    response_model=ImportResult,
    responses={207: {"model": ImportResult}, 400: {"model": ErrorResponse}},
)
def import_tickets(
    response: Response,
    payload: Optional[dict] = Body(None),
    service: ImportService = Depends(get_import_service),
):
    """Bulk import from CSV, JSON or XML text.

    200 when every record was stored (or the file was empty), 207 on a partial
    import, 400 when nothing could be stored.
    """
    content = payload.get("content") if isinstance(payload, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise HTTPException(status_code=400, detail="Content is required and must be a string")
    try:
        request = ImportRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    try:
        file_type = request.fileType or service.detect_file_type(request.content, request.filename)
        result = service.import_tickets(request.content, file_type, auto_classify=request.auto_classify)
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if result.successful == 0 and result.failed > 0:
        response.status_code = 400
    elif result.successful > 0 and result.failed > 0:
        response.status_code = 207
    return result


@router.get("", response_model=TicketListResponse, responses=_error_responses)
def list_tickets(
    filters: TicketFilters = Depends(ticket_filters),
    store: TicketStore = Depends(get_ticket_store),
):
    tickets = store.find_by_filters(filters)
    return TicketListResponse(count=len(tickets), tickets=tickets)


@router.get("/{ticket_id}", response_model=Ticket, responses=_error_responses)
def get_ticket(ticket_id: str, store: TicketStore = Depends(get_ticket_store)):
    ticket = store.find_by_id(ticket_id)
    if ticket is None:
        raise _not_found(ticket_id)
    return ticket


@router.put("/{ticket_id}", response_model=Ticket, responses=_error_responses)
def update_ticket(
    ticket_id: str,
    payload: TicketUpdate,
    store: TicketStore = Depends(get_ticket_store),
):
    """Partial update. Changing category or priority by hand flags the
    classification as manually overridden."""
    existing = store.find_by_id(ticket_id)
    if existing is None:
        raise _not_found(ticket_id)

    patch = payload.changes()
    if "category" in patch or "priority" in patch:
        previous = existing.classification or ClassificationData()
        patch["classification"] = ClassificationData(
            confidence=previous.confidence,
            keywords=list(previous.keywords),
            reasoning=MANUAL_OVERRIDE_REASONING,
            manually_classified=True,
        ).model_dump()

    try:
        updated = store.update(ticket_id, patch)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e
    if updated is None:
        raise _not_found(ticket_id)
    return updated


@router.delete("/{ticket_id}", status_code=204, responses=_error_responses)
def delete_ticket(ticket_id: str, store: TicketStore = Depends(get_ticket_store)):
    if not store.delete(ticket_id):
        raise _not_found(ticket_id)
    return Response(status_code=204)


@router.post("/{ticket_id}/auto-classify", response_model=AutoClassifyResponse, responses=_error_responses)
def auto_classify_ticket(
    ticket_id: str,
    store: TicketStore = Depends(get_ticket_store),
    classifier: TicketClassifier = Depends(get_classifier),
):
    ticket = store.find_by_id(ticket_id)
    if ticket is None:
        raise _not_found(ticket_id)
    updated, result = _apply_classification(store, ticket, classifier)
    return AutoClassifyResponse(ticket=updated, classification=result)
