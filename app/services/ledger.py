"""
TransactionLedger: in-memory transaction list with balance and CSV export.
"""
from __future__ import annotations

import io
import json
import logging
import threading
import uuid
from datetime import datetime, time, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
from pydantic import ValidationError

from app.models.transactions import (
    AccountBalance,
    Transaction,
    TransactionCreate,
    TransactionStatus,
    TransactionType,
)

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["id", "fromAccount", "toAccount", "amount", "currency", "type", "timestamp", "status"]
DEFAULT_CURRENCY = "USD"


def format_amount(amount: float) -> str:
    """Plain decimal text: 1000 -> "1000", 250.75 -> "250.75"."""
    return format(Decimal(str(amount)).normalize(), "f")


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TransactionLedger:
    """Append-only list of transactions, newest last."""

    def __init__(self) -> None:
        self._transactions: list[Transaction] = []
        self._lock = threading.RLock()

    def create(self, data: Union[TransactionCreate, dict[str, Any]]) -> Transaction:
        if not isinstance(data, TransactionCreate):
            data = TransactionCreate.model_validate(data)
        transaction = Transaction(
            id=str(uuid.uuid4()),
            from_account=data.from_account,
            to_account=data.to_account,
            amount=data.amount,
            currency=data.currency,
            type=data.type,
            timestamp=datetime.now(timezone.utc),
            status=data.status,
        )
        with self._lock:
            self._transactions.append(transaction)
        return transaction.model_copy()

    def list_transactions(
        self,
        account_id: Optional[str] = None,
        type: Optional[TransactionType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Filter by account (either leg), type and an inclusive date range.

        `date_to` covers the whole of its calendar day (UTC).
        """
        if date_to is not None:
            date_to = datetime.combine(date_to.astimezone(timezone.utc).date(), time.max, tzinfo=timezone.utc)

        with self._lock:
            result = list(self._transactions)

        if account_id:
            result = [t for t in result if t.touches(account_id)]
        if type is not None:
            result = [t for t in result if t.type == type]
        if date_from is not None:
            result = [t for t in result if t.timestamp >= date_from]
        if date_to is not None:
            result = [t for t in result if t.timestamp <= date_to]
        return [t.model_copy() for t in result]

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            for t in self._transactions:
                if t.id == transaction_id:
                    return t.model_copy()
        return None

    def balance(self, account_id: str) -> AccountBalance:
        """Net of completed transactions touching `account_id`, to 2 places."""
        with self._lock:
            relevant = [
                t for t in self._transactions
                if t.touches(account_id) and t.status == TransactionStatus.COMPLETED
            ]

        total = Decimal("0")
        for t in relevant:
            amount = Decimal(str(t.amount))
            if t.type == TransactionType.DEPOSIT and t.to_account == account_id:
                total += amount
            elif t.type == TransactionType.WITHDRAWAL and t.from_account == account_id:
                total -= amount
            elif t.type == TransactionType.TRANSFER:
                if t.from_account == account_id:
                    total -= amount
                if t.to_account == account_id:
                    total += amount

        return AccountBalance(
            account_id=account_id,
            balance=round(float(total), 2),
            currency=relevant[0].currency.value if relevant else DEFAULT_CURRENCY,
            transaction_count=len(relevant),
        )

    @staticmethod
    def export_csv(transactions: list[Transaction]) -> str:
        """CSV text with a header row; empty string when there is nothing to export."""
        if not transactions:
            return ""
        rows = [
            {
                "id": t.id,
                "fromAccount": t.from_account,
                "toAccount": t.to_account,
                "amount": format_amount(t.amount),
                "currency": t.currency.value,
                "type": t.type.value,
                "timestamp": format_timestamp(t.timestamp),
                "status": t.status.value,
            }
            for t in transactions
        ]
        buf = io.StringIO()
        pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(buf, index=False, na_rep="", lineterminator="\n")
        return buf.getvalue().rstrip("\n")

    def clear(self) -> None:
        with self._lock:
            self._transactions.clear()

    def count(self) -> int:
        with self._lock:
            return len(self._transactions)

    def seed_from_file(self, path: Union[str, Path]) -> int:
        """Load {"sampleTransactions": [...]} from JSON; returns how many were added."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Sample transactions not loaded from %s: %s", path, e)
            return 0

        added = 0
        for item in data.get("sampleTransactions", []) if isinstance(data, dict) else []:
            try:
                self.create(item)
            except ValidationError as e:
                logger.warning("Skipping invalid sample transaction: %s", e)
                continue
            added += 1
        logger.info("Seeded %d sample transactions from %s", added, path)
        return added
