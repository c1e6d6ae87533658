"""Transaction ledger schemas.

Field names on the wire are camelCase (``fromAccount``, ``toAccount``); the
Python attributes are snake_case and the models accept either form.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ACCOUNT_ID_RE = re.compile(r"^ACC-[A-Za-z0-9]+$")


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    JPY = "JPY"
    CHF = "CHF"
    CAD = "CAD"
    AUD = "AUD"
    CNY = "CNY"
    INR = "INR"
    PLN = "PLN"

class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"

class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_account: Optional[str] = Field(None, alias="fromAccount")
    to_account: Optional[str] = Field(None, alias="toAccount")
    amount: float
    currency: Currency
    type: TransactionType
    status: TransactionStatus = TransactionStatus.COMPLETED

    @field_validator("from_account", "to_account")
    @classmethod
    def _account_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not ACCOUNT_ID_RE.match(v):
            raise ValueError("account must match the format ACC-XXXXX (letters and digits)")
        return v

    @field_validator("amount")
    @classmethod
    def _amount_positive_cents(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("amount must be a positive number")
        if Decimal(str(v)).as_tuple().exponent < -2:
            raise ValueError("amount must have at most 2 decimal places")
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _accounts_for_type(self):
        if self.type == TransactionType.DEPOSIT and not self.to_account:
            raise ValueError("toAccount is required for deposit transactions")
        if self.type == TransactionType.WITHDRAWAL and not self.from_account:
            raise ValueError("fromAccount is required for withdrawal transactions")
        if self.type == TransactionType.TRANSFER:
            if not self.from_account or not self.to_account:
                raise ValueError("fromAccount and toAccount are required for transfer transactions")
            if self.from_account == self.to_account:
                raise ValueError("fromAccount and toAccount must be different")
        return self


class Transaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_account: Optional[str] = Field(None, alias="fromAccount")
    to_account: Optional[str] = Field(None, alias="toAccount")
    amount: float
    currency: Currency
    type: TransactionType
    timestamp: datetime
    status: TransactionStatus = TransactionStatus.COMPLETED

    def touches(self, account_id: str) -> bool:
        return self.from_account == account_id or self.to_account == account_id


class AccountBalance(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(alias="accountId")
    balance: float
    currency: str
    transaction_count: int = Field(alias="transactionCount")


class TransactionEnvelope(BaseModel):
    data: Transaction
    message: Optional[str] = None

class TransactionListEnvelope(BaseModel):
    data: list[Transaction]

class BalanceEnvelope(BaseModel):
    data: AccountBalance
