"""BTG Pactual business API response schemas."""

from pydantic import BaseModel


class BtgAccount(BaseModel):
    id: str
    name: str
    type: str
    branch: str
    number: str


class BtgAccountsResponse(BaseModel):
    accounts: list[BtgAccount]


class BtgBalance(BaseModel):
    account_id: str
    available_balance: float
    total_balance: float
    currency: str
    as_of: str


class BtgTransaction(BaseModel):
    id: str
    date: str
    amount: float
    currency: str
    type: str
    description: str


class BtgTransactionsPage(BaseModel):
    transactions: list[BtgTransaction]
    next_cursor: str | None = None
    has_more: bool
