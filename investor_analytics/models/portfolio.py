from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


EntityType = Literal["Fund", "DirectInvestment"]
PaymentStatus = Literal["PENDING", "PAID", "LATE", "OVERDUE"]

PAYMENT_STATUSES = {"PENDING", "PAID", "LATE", "OVERDUE"}
DEPLOYMENT_EVENT_TYPES = {"CAPITAL_CALL", "NEW_HOLDING", "DIRECT_INVESTMENT"}
DISTRIBUTION_EVENT_TYPES = {"DISTRIBUTION"}


class FundRecord(BaseModel):
    id: str
    name: str
    manager: str | None = None
    domicile: str | None = None
    vintage: int | None = None
    asset_class: str | None = None
    strategy: str | None = None
    sector: str | None = None
    base_currency: str | None = "USD"
    commitment: float | None = 0.0
    paid_in: float | None = 0.0
    nav: float | None = 0.0
    dpi: float | None = 0.0
    irr: float | None = None
    updated_at: dt.datetime | None = None


class DirectInvestmentRecord(BaseModel):
    id: str
    name: str
    investment_type: str | None = None
    industry: str | None = None
    stage: str | None = None
    geography: str | None = None
    asset_class: str | None = None
    currency: str | None = "USD"
    investment_amount: float | None = None
    current_value: float | None = None
    investment_date: dt.date | None = None
    updated_at: dt.datetime | None = None


class PortfolioEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    entity_type: EntityType
    asset_class: str | None = None
    geography: str | None = None
    region: str | None = None
    manager: str | None = None
    vintage: int | None = None
    strategy: str | None = None
    sector: str | None = None
    investment_type: str | None = None
    base_currency: str = "USD"
    reporting_currency: str = "USD"
    commitment: float = 0.0
    paid_in: float = 0.0
    nav: float = 0.0
    distributions: float = 0.0
    total_value: float = 0.0
    unfunded: float = 0.0
    tvpi: float = 0.0
    dpi: float = 0.0
    rvpi: float = 0.0
    pic: float = 0.0
    irr: float = 0.0
    updated_at: dt.datetime | None = None

    @property
    def is_fund(self) -> bool:
        return self.entity_type == "Fund"


class CapitalCallEvent(BaseModel):
    id: str
    fund_id: str
    amount: float = 0.0
    due_date: dt.date | None = None
    upload_date: dt.date | None = None
    payment_status: PaymentStatus = "PENDING"

    @field_validator("payment_status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if isinstance(value, str) and value.strip().upper() in PAYMENT_STATUSES:
            return value.strip().upper()
        return "PENDING"

    @property
    def event_date(self) -> dt.date | None:
        return self.due_date or self.upload_date


class DistributionEvent(BaseModel):
    id: str
    fund_id: str
    amount: float = 0.0
    distribution_date: dt.date | None = None
    type: str | None = None
    description: str | None = None


class CashFlowEvent(BaseModel):
    type: str
    date: dt.date
    amount: float = 0.0

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value):
        return str(value or "").strip().upper()


class FundSnapshot(BaseModel):
    id: str
    name: str = ""
    nav: float = Field(default=0.0)
    commitment: float = Field(default=0.0)
    paid_in: float = Field(default=0.0)
