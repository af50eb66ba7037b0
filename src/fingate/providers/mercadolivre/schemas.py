"""Mercado Livre API response schemas (read-only subset)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class MlPaging(BaseModel):
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


class MlSellerTransactions(BaseModel):
    completed: int
    canceled: int


class MlSellerReputation(BaseModel):
    level_id: str | None = None
    power_seller_status: str | None = None
    transactions: MlSellerTransactions | None = None


class MlUser(BaseModel):
    id: int
    nickname: str
    site_id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    seller_reputation: MlSellerReputation | None = None


class MlOrderItemRef(BaseModel):
    id: str
    title: str
    category_id: str | None = None


class MlOrderItem(BaseModel):
    item: MlOrderItemRef
    quantity: int
    unit_price: float
    currency_id: str


class MlOrderPayment(BaseModel):
    id: int
    status: str
    transaction_amount: float
    currency_id: str
    date_approved: str | None = None


class MlOrderBuyer(BaseModel):
    id: int
    nickname: str


class MlOrderShipping(BaseModel):
    id: int | None = None
    status: str | None = None


class MlOrder(BaseModel):
    id: int
    status: str
    date_created: str
    date_closed: str | None = None
    total_amount: float
    currency_id: str
    order_items: list[MlOrderItem]
    payments: list[MlOrderPayment] | None = None
    buyer: MlOrderBuyer | None = None
    shipping: MlOrderShipping | None = None


class MlOrdersSearchResponse(BaseModel):
    results: list[MlOrder]
    paging: MlPaging


class MlItem(BaseModel):
    id: str
    title: str
    status: str
    price: float
    currency_id: str
    available_quantity: int
    sold_quantity: int
    category_id: str
    listing_type_id: str
    condition: str | None = None
    permalink: str | None = None


class MlItemMultigetEntry(BaseModel):
    """Wrapped entry of the ``/items?ids=`` multiget endpoint."""

    code: int
    body: MlItem | dict[str, Any]


class MlItemsSearchResponse(BaseModel):
    results: list[str]
    paging: MlPaging


class MlBillingPeriod(BaseModel):
    key: str
    group: str
    year: int
    month: int
    status: str
    total: float | None = None
    currency_id: str | None = None


class MlBillingPeriodsResponse(BaseModel):
    periods: list[MlBillingPeriod]


class MlBillingDetail(BaseModel):
    detail_id: str | None = None
    type: str
    description: str | None = None
    amount: float
    currency_id: str
    date: str | None = None
    reference_id: str | None = None


class MlBillingDetailsResponse(BaseModel):
    results: list[MlBillingDetail]
    paging: MlPaging | None = None
