"""Transaction ledger endpoints."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse, Response

from app.api.dependencies import get_ledger, parse_date_param
from app.models.schemas import ErrorResponse
from app.models.transactions import (
    BalanceEnvelope,
    TransactionCreate,
    TransactionEnvelope,
    TransactionListEnvelope,
    TransactionType,
)
from app.services.ledger import TransactionLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transactions"])

SUPPORTED_EXPORT_FORMATS = ("csv",)


def _filtered(
    ledger: TransactionLedger,
    account_id: Optional[str],
    type: Optional[TransactionType],
    date_from: Optional[str],
    date_to: Optional[str],
):
    return ledger.list_transactions(
        account_id=account_id,
        type=type,
        date_from=parse_date_param(date_from, "from"),
        date_to=parse_date_param(date_to, "to"),
    )


@router.post(
    "/transactions",
    response_model=TransactionEnvelope,
    response_model_by_alias=True,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
def create_transaction(payload: TransactionCreate, ledger: TransactionLedger = Depends(get_ledger)):
    transaction = ledger.create(payload)
    logger.info("transaction created", extra={"event": "transaction_created"})
    return TransactionEnvelope(data=transaction, message="Transaction created successfully")


@router.get(
    "/transactions",
    response_model=TransactionListEnvelope,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}},
)
def list_transactions(
    account_id: Optional[str] = Query(None, alias="accountId"),
    type: Optional[TransactionType] = Query(None),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    ledger: TransactionLedger = Depends(get_ledger),
):
    return TransactionListEnvelope(data=_filtered(ledger, account_id, type, date_from, date_to))


# Declared before /transactions/{transaction_id} so "export" is not taken as an id
@router.get("/transactions/export", responses={400: {"model": ErrorResponse}})
def export_transactions(
    format: str = Query("csv"),
    account_id: Optional[str] = Query(None, alias="accountId"),
    type: Optional[TransactionType] = Query(None),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    ledger: TransactionLedger = Depends(get_ledger),
):
    if format.lower() not in SUPPORTED_EXPORT_FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid format. Supported formats: {', '.join(SUPPORTED_EXPORT_FORMATS)}",
        )

    transactions = _filtered(ledger, account_id, type, date_from, date_to)
    if not transactions:
        return PlainTextResponse("")
    return Response(
        content=ledger.export_csv(transactions),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionEnvelope,
    response_model_by_alias=True,
    responses={404: {"model": ErrorResponse}},
)
def get_transaction(transaction_id: str, ledger: TransactionLedger = Depends(get_ledger)):
    transaction = ledger.get(transaction_id)
    if transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionEnvelope(data=transaction)


@router.get(
    "/accounts/{account_id}/balance",
    response_model=BalanceEnvelope,
    response_model_by_alias=True,
)
def account_balance(account_id: str, ledger: TransactionLedger = Depends(get_ledger)):
    return BalanceEnvelope(data=ledger.balance(account_id))
