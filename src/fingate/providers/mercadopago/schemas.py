"""Mercado Pago API response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class MpBalance(BaseModel):
    available_balance: float
    unavailable_balance: float
    currency_id: str


class MpUserInfo(BaseModel):
    id: int
    nickname: str
    email: str
    country_id: str


class MpReleaseReport(BaseModel):
    id: int | None = None
    status: str | None = None
    file_name: str


class MpFeeDetail(BaseModel):
    amount: float


class MpPayer(BaseModel):
    email: str | None = None
    id: str | None = None


class MpPayment(BaseModel):
    id: int
    date_created: str
    date_approved: str | None = None
    operation_type: str
    description: str | None = None
    transaction_amount: float
    currency_id: str
    status: str
    status_detail: str | None = None
    fee_details: list[MpFeeDetail] | None = None
    payer: MpPayer | None = None


class MpPaging(BaseModel):
    total: int
    limit: int
    offset: int


class MpPaymentsSearchResponse(BaseModel):
    results: list[MpPayment]
    paging: MpPaging


class MpTransaction(BaseModel):
    """Payment normalized to gross, fee and net amounts."""

    id: str
    date: str
    type: str
    description: str
    gross_amount: float
    net_amount: float
    fee_amount: float
    currency: str

    @classmethod
    def from_payment(cls, payment: MpPayment) -> "MpTransaction":
        fee = sum(f.amount for f in payment.fee_details or [])
        return cls(
            id=str(payment.id),
            date=payment.date_approved or payment.date_created,
            type=payment.operation_type,
            description=payment.description or payment.status_detail or payment.status,
            gross_amount=payment.transaction_amount,
            net_amount=payment.transaction_amount - fee,
            fee_amount=fee,
            currency=payment.currency_id,
        )
