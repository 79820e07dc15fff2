from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import List
from datetime import datetime
from decimal import Decimal, InvalidOperation


MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class TransactionKind(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


def parse_amount(value) -> Decimal:
    """Decode an amount field, falling back to zero when it can't be read."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int) and not isinstance(value, bool):
        amount = Decimal(value)
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return Decimal(0)
    else:
        return Decimal(0)

    if not amount.is_finite():
        return Decimal(0)
    return amount


class TransactionEvent(BaseModel):
    type: TransactionKind = Field(..., description="Transaction kind")
    client: int = Field(
        ...,
        ge=0,
        le=MAX_CLIENT_ID,
        description="Client (account) identifier"
    )
    tx: int = Field(
        ...,
        ge=0,
        le=MAX_TRANSACTION_ID,
        description="Globally unique transaction identifier"
    )
    amount: Decimal = Field(
        default=Decimal(0),
        description="Amount for deposits and withdrawals, ignored otherwise"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('client', 'tx', mode='before')
    @classmethod
    def reject_non_integers(cls, v):
        # "1.5" or 1.0 must not silently become an identifier
        if isinstance(v, (float, Decimal, bool)):
            raise ValueError('Identifier must be an integer')
        if isinstance(v, str):
            v = v.strip()
            if not v.isdigit():
                raise ValueError('Identifier must be an unsigned integer')
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def tolerate_bad_amount(cls, v):
        return parse_amount(v)


class Account(BaseModel):
    available: Decimal = Decimal(0)
    held: Decimal = Decimal(0)
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held


class TransactionRecord(BaseModel):
    client_id: int = Field(..., description="Client that issued the original deposit")
    amount: Decimal = Field(..., description="Amount of the original deposit")
    disputed: bool = False


class AccountSummary(BaseModel):
    client: int = Field(..., description="Client identifier")
    available: Decimal = Field(..., description="Funds available for withdrawal")
    held: Decimal = Field(..., description="Funds held by open disputes")
    total: Decimal = Field(..., description="available + held")
    locked: bool = Field(..., description="Whether the account is frozen")

    @classmethod
    def from_account(cls, client_id: int, account: Account) -> "AccountSummary":
        return cls(
            client=client_id,
            available=account.available,
            held=account.held,
            total=account.total,
            locked=account.locked
        )


class LedgerReport(BaseModel):
    accounts: List[AccountSummary] = Field(..., description="Final account states, ascending by client")
    events_processed: int = Field(..., description="Number of events read from the input")
    applied: int = Field(..., description="Events that changed the ledger")
    rejected: int = Field(..., description="Events dropped by policy")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    version: str = Field(..., description="Service version")
    ledgers_processed: int = Field(..., description="Input streams processed since startup")
