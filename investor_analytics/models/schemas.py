from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from investor_analytics.models.policy import RiskPolicyConfig
from investor_analytics.models.portfolio import (
    CapitalCallEvent,
    CashFlowEvent,
    DirectInvestmentRecord,
    DistributionEvent,
    FundRecord,
    FundSnapshot,
)


ChartType = Literal["bar", "line", "pie", "table"]


class PortfolioPayload(BaseModel):
    user_id: str = Field(min_length=1)
    funds: list[FundRecord] = Field(default_factory=list)
    direct_investments: list[DirectInvestmentRecord] = Field(default_factory=list)
    capital_calls: list[CapitalCallEvent] = Field(default_factory=list)
    distributions: list[DistributionEvent] = Field(default_factory=list)
    reporting_currency: Optional[str] = None


class RiskMetricsRequest(PortfolioPayload):
    available_cash: Optional[float] = None
    as_of: Optional[dt.date] = None
    include_custom_scenarios: bool = True


class StressScenarioIn(BaseModel):
    user_id: str = Field(min_length=1)
    name: str
    nav_shock: float
    call_multiplier: float = 1.0
    distribution_multiplier: float = 1.0


class StressScenarioOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    name: str
    nav_shock: float
    call_multiplier: float
    distribution_multiplier: float
    created_at: dt.datetime


class PolicyResponse(RiskPolicyConfig):
    user_id: str
    updated_at: dt.datetime


class ViolationRequest(PortfolioPayload):
    policy: Optional[RiskPolicyConfig] = None
    use_stored_policy: bool = True


class CustomScenarioIn(BaseModel):
    label: str = "Custom"
    call_pace_multiplier: float = Field(default=1.0, gt=0)
    distribution_haircut: float = Field(default=0.0, ge=0, le=1)
    reserve_buffer_pct: float = Field(default=0.0, ge=0)


class ForecastRequest(BaseModel):
    events: list[CashFlowEvent] = Field(default_factory=list)
    funds: list[FundSnapshot] = Field(default_factory=list)
    scenario: str = "base"
    custom_scenario: Optional[CustomScenarioIn] = None
    available_cash: float = 0.0
    as_of: Optional[dt.date] = None


class ReportFiltersIn(BaseModel):
    fund_ids: list[str] = Field(default_factory=list)
    investment_ids: list[str] = Field(default_factory=list)
    vintages: list[int] = Field(default_factory=list)
    vintage_min: Optional[int] = None
    vintage_max: Optional[int] = None
    domicile: list[str] = Field(default_factory=list)
    manager: list[str] = Field(default_factory=list)
    strategy: list[str] = Field(default_factory=list)
    sector: list[str] = Field(default_factory=list)


class ReportRunRequest(PortfolioPayload):
    metrics: list[str] = Field(default_factory=list)
    dimensions: list[str] = Field(default_factory=list)
    filters: ReportFiltersIn = Field(default_factory=ReportFiltersIn)
    chart_type: ChartType = "bar"
