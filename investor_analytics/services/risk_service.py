from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta

import pandas as pd

from investor_analytics.config import Settings, get_settings
from investor_analytics.models.policy import RiskPolicyConfig, Violation
from investor_analytics.models.portfolio import CapitalCallEvent, DistributionEvent, PortfolioEntity
from investor_analytics.models.risk_snapshot import RiskSnapshot
from investor_analytics.models.scenarios import StressScenario
from investor_analytics.services.exposure_service import ExposureReport, ExposureService
from investor_analytics.services.stress_test_service import StressResult, StressTestService
from investor_analytics.services.violation_service import ViolationService
from investor_analytics.utils.ratios import safe_div
from investor_analytics.utils.time import quarter_label, quarter_of, quarter_range, today_utc, utc_now

logger = logging.getLogger(__name__)

SCHEDULE_QUARTERS = 8
DEFAULT_DISTRIBUTION_YIELD = 0.02
UNDEPLOYED_DEFAULT_YEARS = 3.0


@dataclass
class SchedulePoint:
    period: str
    capital_calls: float = 0.0
    distributions: float = 0.0
    net: float = 0.0
    cumulative_calls: float = 0.0
    cumulative_distributions: float = 0.0


@dataclass
class LiquidityProfile:
    pending_calls: float = 0.0
    next_12m_calls: float = 0.0
    next_12m_distributions: float = 0.0
    next_24m_calls: float = 0.0
    available_liquidity: float = 0.0
    liquidity_coverage: float = 0.0
    reserve_gap: float = 0.0
    average_quarterly_call: float = 0.0
    deployment_years: float = 0.0
    schedule: list[SchedulePoint] = field(default_factory=list)


@dataclass
class RiskScores:
    concentration: float = 0.0
    liquidity: float = 0.0
    overall: float = 0.0


@dataclass
class PortfolioMetrics:
    total_portfolio: float = 0.0
    total_commitment: float = 0.0
    total_paid_in: float = 0.0
    unfunded_commitments: float = 0.0
    fund_count: int = 0
    direct_investment_count: int = 0


@dataclass
class RiskReport:
    metrics: PortfolioMetrics
    exposures: ExposureReport
    liquidity: LiquidityProfile
    risk_scores: RiskScores
    scenarios: list[StressResult] = field(default_factory=list)
    policy_breaches: list[Violation] = field(default_factory=list)
    history: list[SchedulePoint] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "RiskReport":
        return cls(
            metrics=PortfolioMetrics(),
            exposures=ExposureReport(total_nav=0.0),
            liquidity=LiquidityProfile(),
            risk_scores=RiskScores(),
        )

    def to_dict(self) -> dict:
        return {
            "metrics": asdict(self.metrics),
            "exposures": self.exposures.to_dict(),
            "liquidity": asdict(self.liquidity),
            "risk_scores": asdict(self.risk_scores),
            "scenarios": [s.to_dict() for s in self.scenarios],
            "policy_breaches": [asdict(v) for v in self.policy_breaches],
            "history": [asdict(p) for p in self.history],
        }


class RiskService:
    def __init__(
        self,
        exposure_service: ExposureService | None = None,
        stress_service: StressTestService | None = None,
        violation_service: ViolationService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.exposure_service = exposure_service or ExposureService()
        self.stress_service = stress_service or StressTestService()
        self.violation_service = violation_service or ViolationService(self.exposure_service)
        self.settings = settings or get_settings()

    @staticmethod
    def available_liquidity(
        metrics: PortfolioMetrics,
        policy: RiskPolicyConfig,
        available_cash: float | None = None,
    ) -> float:
        """Cash the investor can draw on against near-term calls.

        The caller's cash balance when supplied, otherwise the policy reserve
        (``total_commitment * target_liquidity_buffer``). Projected
        distributions are deliberately excluded; they only offset calls in
        gap calculations.
        """
        if available_cash is not None:
            return max(float(available_cash), 0.0)
        return metrics.total_commitment * policy.target_liquidity_buffer

    @staticmethod
    def _metrics(entities: list[PortfolioEntity]) -> PortfolioMetrics:
        funds = [entity for entity in entities if entity.is_fund]
        return PortfolioMetrics(
            total_portfolio=sum(e.nav for e in entities),
            total_commitment=sum(e.commitment for e in entities),
            total_paid_in=sum(e.paid_in for e in entities),
            unfunded_commitments=sum(e.unfunded for e in entities),
            fund_count=len(funds),
            direct_investment_count=len(entities) - len(funds),
        )

    @staticmethod
    def build_history(
        capital_calls: list[CapitalCallEvent],
        distributions: list[DistributionEvent],
        as_of: date,
    ) -> list[SchedulePoint]:
        quarters = quarter_range(quarter_of(as_of) - (SCHEDULE_QUARTERS - 1), SCHEDULE_QUARTERS)
        points = {q: SchedulePoint(period=quarter_label(q)) for q in quarters}

        for event in capital_calls:
            event_date = event.event_date
            if event_date is None or event_date > as_of:
                continue
            point = points.get(quarter_of(event_date))
            if point is not None:
                point.capital_calls += max(event.amount, 0.0)
        for event in distributions:
            if event.distribution_date is None or event.distribution_date > as_of:
                continue
            point = points.get(quarter_of(event.distribution_date))
            if point is not None:
                point.distributions += max(event.amount, 0.0)

        cumulative_calls = 0.0
        cumulative_distributions = 0.0
        for q in quarters:
            point = points[q]
            point.net = point.distributions - point.capital_calls
            cumulative_calls += point.capital_calls
            cumulative_distributions += point.distributions
            point.cumulative_calls = cumulative_calls
            point.cumulative_distributions = cumulative_distributions
        return [points[q] for q in quarters]

    @staticmethod
    def build_forward_schedule(
        entities: list[PortfolioEntity],
        capital_calls: list[CapitalCallEvent],
        distributions: list[DistributionEvent],
        history: list[SchedulePoint],
        as_of: date,
    ) -> list[SchedulePoint]:
        quarters = quarter_range(quarter_of(as_of), SCHEDULE_QUARTERS)
        points = {q: SchedulePoint(period=quarter_label(q)) for q in quarters}

        for event in capital_calls:
            event_date = event.event_date
            if event_date is None or event_date < as_of or event.payment_status == "PAID":
                continue
            point = points.get(quarter_of(event_date))
            if point is not None:
                point.capital_calls += max(event.amount, 0.0)
        for event in distributions:
            if event.distribution_date is None or event.distribution_date < as_of:
                continue
            point = points.get(quarter_of(event.distribution_date))
            if point is not None:
                point.distributions += max(event.amount, 0.0)

        history_frame = pd.DataFrame(
            [(p.capital_calls, p.distributions) for p in history],
            columns=["capital_calls", "distributions"],
        )
        avg_call = float(history_frame["capital_calls"].mean()) if not history_frame.empty else 0.0
        avg_distribution = float(history_frame["distributions"].mean()) if not history_frame.empty else 0.0

        funds = [entity for entity in entities if entity.is_fund]
        remaining_commitment = sum(fund.unfunded for fund in funds)
        scheduled_calls = sum(point.capital_calls for point in points.values())
        unscheduled = max(remaining_commitment - scheduled_calls, 0.0)
        default_call = max(avg_call, unscheduled / SCHEDULE_QUARTERS)
        default_distribution = (
            avg_distribution
            if avg_distribution > 0
            else max(sum(f.nav for f in funds) * DEFAULT_DISTRIBUTION_YIELD, 0.0)
        )

        cumulative_calls = 0.0
        cumulative_distributions = 0.0
        for q in quarters:
            point = points[q]
            if point.capital_calls == 0 and unscheduled > 0:
                allocation = min(default_call, unscheduled)
                point.capital_calls += allocation
                unscheduled -= allocation
            if point.distributions == 0:
                point.distributions = default_distribution
            point.net = point.distributions - point.capital_calls
            cumulative_calls += point.capital_calls
            cumulative_distributions += point.distributions
            point.cumulative_calls = cumulative_calls
            point.cumulative_distributions = cumulative_distributions
        return [points[q] for q in quarters]

    def _pending_calls(self, capital_calls: list[CapitalCallEvent], as_of: date) -> float:
        window_end = as_of + timedelta(days=self.settings.pending_call_window_days)
        return sum(
            max(event.amount, 0.0)
            for event in capital_calls
            if event.due_date is not None
            and as_of <= event.due_date <= window_end
            and event.payment_status != "PAID"
        )

    @staticmethod
    def concentration_score(exposures: ExposureReport) -> float:
        worst_overshoot = 0.0
        for buckets in exposures.dimensions.values():
            for bucket in buckets:
                if not bucket.limit:
                    continue
                worst_overshoot = max(worst_overshoot, bucket.percentage / bucket.limit - 1)
        return min(100.0, worst_overshoot * 100)

    @staticmethod
    def liquidity_score(liquidity: LiquidityProfile, policy: RiskPolicyConfig) -> float:
        minimum = policy.min_liquidity_coverage
        if liquidity.next_12m_calls <= 0 or minimum <= 0:
            return 0.0
        if liquidity.liquidity_coverage >= minimum:
            return 0.0
        shortfall = (minimum - liquidity.liquidity_coverage) / minimum
        return min(100.0, shortfall * 100)

    def overall_score(self, concentration: float, liquidity: float) -> float:
        w_concentration = max(self.settings.concentration_score_weight, 0.0)
        w_liquidity = max(self.settings.liquidity_score_weight, 0.0)
        total_weight = w_concentration + w_liquidity
        if total_weight <= 0:
            return 0.0
        return (concentration * w_concentration + liquidity * w_liquidity) / total_weight

    def compute_report(
        self,
        entities: list[PortfolioEntity],
        capital_calls: list[CapitalCallEvent] | None = None,
        distributions: list[DistributionEvent] | None = None,
        policy: RiskPolicyConfig | None = None,
        available_cash: float | None = None,
        scenarios: list[StressScenario] | None = None,
        as_of: date | None = None,
    ) -> RiskReport:
        if not entities:
            logger.warning("Risk report requested for an empty portfolio")
            return RiskReport.empty()

        policy = policy or RiskPolicyConfig()
        as_of = as_of or today_utc()
        capital_calls = capital_calls or []
        distributions = distributions or []

        metrics = self._metrics(entities)
        exposures = self.exposure_service.analyze(entities, policy)

        history = self.build_history(capital_calls, distributions, as_of)
        schedule = self.build_forward_schedule(entities, capital_calls, distributions, history, as_of)
        next_12 = schedule[:4]
        next_12m_calls = sum(p.capital_calls for p in next_12)
        next_12m_distributions = sum(p.distributions for p in next_12)
        available = self.available_liquidity(metrics, policy, available_cash)

        if next_12m_calls > 0:
            deployment_years = metrics.unfunded_commitments / next_12m_calls
        else:
            deployment_years = UNDEPLOYED_DEFAULT_YEARS if metrics.unfunded_commitments > 0 else 0.0

        liquidity = LiquidityProfile(
            pending_calls=self._pending_calls(capital_calls, as_of),
            next_12m_calls=next_12m_calls,
            next_12m_distributions=next_12m_distributions,
            next_24m_calls=sum(p.capital_calls for p in schedule),
            available_liquidity=available,
            liquidity_coverage=safe_div(available, next_12m_calls),
            reserve_gap=max(next_12m_calls - (available + next_12m_distributions), 0.0),
            average_quarterly_call=next_12m_calls / 4,
            deployment_years=deployment_years,
            schedule=schedule,
        )

        concentration = self.concentration_score(exposures)
        liquidity_risk = self.liquidity_score(liquidity, policy)
        scores = RiskScores(
            concentration=round(concentration, 1),
            liquidity=round(liquidity_risk, 1),
            overall=round(self.overall_score(concentration, liquidity_risk), 1),
        )

        stress = self.stress_service.run(
            total_portfolio=metrics.total_portfolio,
            base_calls=next_12m_calls,
            base_distributions=next_12m_distributions,
            available_liquidity=available,
            scenarios=scenarios,
        )
        breaches = self.violation_service.detect(entities, policy).violations

        logger.info(
            "Risk report computed",
            extra={"entities": len(entities), "overall": scores.overall, "breaches": len(breaches)},
        )
        return RiskReport(
            metrics=metrics,
            exposures=exposures,
            liquidity=liquidity,
            risk_scores=scores,
            scenarios=stress,
            policy_breaches=breaches,
            history=history,
        )

    @staticmethod
    def build_snapshot(report: RiskReport, user_id: str) -> RiskSnapshot:
        return RiskSnapshot(
            user_id=user_id,
            captured_at=utc_now().replace(tzinfo=None),
            risk_scores=asdict(report.risk_scores),
            total_portfolio=report.metrics.total_portfolio,
            unfunded_commitments=report.metrics.unfunded_commitments,
            liquidity_coverage=report.liquidity.liquidity_coverage,
            exposures={
                dimension: {bucket.key: round(bucket.percentage, 4) for bucket in buckets}
                for dimension, buckets in report.exposures.dimensions.items()
            },
            policy_breaches=[asdict(v) for v in report.policy_breaches],
        )
