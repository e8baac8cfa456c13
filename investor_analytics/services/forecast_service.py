from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date

import numpy as np
import pandas as pd

from investor_analytics.models.portfolio import (
    DEPLOYMENT_EVENT_TYPES,
    DISTRIBUTION_EVENT_TYPES,
    CashFlowEvent,
    FundSnapshot,
)
from investor_analytics.models.scenarios import SCENARIO_PRESETS, ScenarioConfig
from investor_analytics.utils.time import quarter_label, quarter_of, quarter_range, today_utc

logger = logging.getLogger(__name__)

FORECAST_QUARTERS = 8
DEFAULT_DEPLOYMENT_RATE = 0.15
DEFAULT_DISTRIBUTION_RATE = 0.08
DEPLOYMENT_RATE_BOUNDS = (0.03, 0.5)
DISTRIBUTION_RATE_BOUNDS = (0.02, 0.5)
MIN_TIME_FACTOR = 0.3
TIME_DECAY = 0.7
MATURITY_RAMP = 0.5


@dataclass
class ForecastProjection:
    period: str
    amount: float
    cumulative: float


@dataclass
class NetCashFlowPoint:
    period: str
    capital_calls: float
    distributions: float
    net: float
    cumulative_net: float


@dataclass
class CashFlowForecast:
    scenario: ScenarioConfig
    base_deployment_rate: float
    base_distribution_rate: float
    unfunded_commitments: float
    capital_call_projections: list[ForecastProjection] = field(default_factory=list)
    distribution_projections: list[ForecastProjection] = field(default_factory=list)
    net_cash_flow: list[NetCashFlowPoint] = field(default_factory=list)
    required_reserve: float = 0.0
    upcoming_drawdowns: list[ForecastProjection] = field(default_factory=list)
    total_projected_calls: float = 0.0
    reserve_gap: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def quarterly_totals(events: list[CashFlowEvent], types: set[str]) -> pd.Series:
    rows = [(event.date, abs(event.amount)) for event in events if event.type in types]
    if not rows:
        return pd.Series(dtype=float)
    frame = pd.DataFrame(rows, columns=["date", "amount"])
    frame["quarter"] = pd.to_datetime(frame["date"]).dt.to_period("Q")
    return frame.groupby("quarter")["amount"].sum().sort_index()


class ForecastService:
    def __init__(self, presets: dict[str, ScenarioConfig] | None = None) -> None:
        self.presets = presets or SCENARIO_PRESETS

    def resolve_scenario(self, scenario: str | ScenarioConfig | None) -> ScenarioConfig:
        if isinstance(scenario, ScenarioConfig):
            return scenario
        key = (scenario or "base").strip().lower()
        return self.presets.get(key) or self.presets["base"]

    @staticmethod
    def _recent_average(totals: pd.Series) -> float | None:
        if totals.empty:
            return None
        return float(totals.tail(FORECAST_QUARTERS).mean())

    def generate(
        self,
        events: list[CashFlowEvent],
        fund_snapshots: list[FundSnapshot],
        scenario: str | ScenarioConfig | None = None,
        available_cash: float = 0.0,
        as_of: date | None = None,
    ) -> CashFlowForecast | None:
        if not fund_snapshots:
            logger.warning("Cash-flow forecast skipped, no fund snapshots")
            return None

        config = self.resolve_scenario(scenario)
        total_commitment = sum(fund.commitment or 0.0 for fund in fund_snapshots)
        total_paid_in = sum(fund.paid_in or 0.0 for fund in fund_snapshots)
        total_nav = sum(fund.nav or 0.0 for fund in fund_snapshots)
        unfunded = max(total_commitment - total_paid_in, 0.0)

        call_history = quarterly_totals(events, DEPLOYMENT_EVENT_TYPES)
        distribution_history = quarterly_totals(events, DISTRIBUTION_EVENT_TYPES)
        avg_calls = self._recent_average(call_history)
        avg_distributions = self._recent_average(distribution_history)

        deployment_rate = DEFAULT_DEPLOYMENT_RATE
        if avg_calls and unfunded > 0:
            deployment_rate = float(np.clip(avg_calls / unfunded, *DEPLOYMENT_RATE_BOUNDS))
        distribution_rate = DEFAULT_DISTRIBUTION_RATE
        if avg_distributions and total_nav > 0:
            distribution_rate = float(np.clip(avg_distributions / total_nav, *DISTRIBUTION_RATE_BOUNDS))

        last_quarters = [series.index.max() for series in (call_history, distribution_history) if not series.empty]
        start = max(last_quarters) + 1 if last_quarters else quarter_of(as_of or today_utc())
        periods = [quarter_label(q) for q in quarter_range(start, FORECAST_QUARTERS)]

        call_multiplier = config.call_pace_multiplier or 1.0
        distribution_multiplier = 1 - (config.distribution_haircut or 0.0)

        calls: list[ForecastProjection] = []
        remaining = unfunded
        for index, period in enumerate(periods):
            time_factor = max(MIN_TIME_FACTOR, 1 - (index / FORECAST_QUARTERS) * TIME_DECAY)
            amount = min(remaining, remaining * deployment_rate * time_factor * call_multiplier)
            remaining -= amount
            calls.append(ForecastProjection(period, round(amount), round(unfunded - remaining)))

        dists: list[ForecastProjection] = []
        cumulative_distributions = 0.0
        for index, period in enumerate(periods):
            maturity_factor = 1 + (index / FORECAST_QUARTERS) * MATURITY_RAMP
            amount = total_nav * distribution_rate * maturity_factor * distribution_multiplier
            cumulative_distributions += amount
            dists.append(ForecastProjection(period, round(amount), round(cumulative_distributions)))

        net_points: list[NetCashFlowPoint] = []
        cumulative_net = 0.0
        min_cumulative = 0.0
        for call, dist in zip(calls, dists):
            net = dist.amount - call.amount
            cumulative_net += net
            min_cumulative = min(min_cumulative, cumulative_net)
            net_points.append(NetCashFlowPoint(call.period, -call.amount, dist.amount, net, cumulative_net))

        required_reserve = abs(min_cumulative) * (1 + (config.reserve_buffer_pct or 0.0))
        forecast = CashFlowForecast(
            scenario=config,
            base_deployment_rate=deployment_rate,
            base_distribution_rate=distribution_rate,
            unfunded_commitments=unfunded,
            capital_call_projections=calls,
            distribution_projections=dists,
            net_cash_flow=net_points,
            required_reserve=required_reserve,
            upcoming_drawdowns=calls[:4],
            total_projected_calls=sum(call.amount for call in calls),
            reserve_gap=max(required_reserve - (available_cash or 0.0), 0.0),
        )
        logger.info(
            "Cash-flow forecast generated",
            extra={"scenario": config.key, "funds": len(fund_snapshots), "required_reserve": required_reserve},
        )
        return forecast
