from datetime import date

import pytest

from investor_analytics.models.policy import RiskPolicyConfig
from investor_analytics.models.portfolio import CapitalCallEvent, DistributionEvent, PortfolioEntity
from investor_analytics.services.risk_service import RiskService


def _fund(fund_id: str = "f1", **fields) -> PortfolioEntity:
    defaults = dict(
        name="Fund One",
        entity_type="Fund",
        geography="US",
        commitment=1_000_000,
        paid_in=400_000,
        nav=500_000,
        unfunded=600_000,
        total_value=500_000,
    )
    defaults.update(fields)
    return PortfolioEntity(id=fund_id, **defaults)


def test_empty_portfolio_gives_zeroed_report() -> None:
    report = RiskService().compute_report([])

    assert report.metrics.total_portfolio == 0
    assert report.risk_scores.overall == 0
    assert report.scenarios == []
    assert report.policy_breaches == []
    assert report.exposures.dimensions == {}


def test_liquidity_profile_without_cash_flow_history() -> None:
    report = RiskService().compute_report([_fund()], policy=RiskPolicyConfig(), as_of=date(2026, 1, 15))
    liquidity = report.liquidity

    assert [p.period for p in liquidity.schedule][:2] == ["Q1 2026", "Q2 2026"]
    assert liquidity.next_12m_calls == pytest.approx(300_000)
    assert liquidity.next_24m_calls == pytest.approx(600_000)
    assert liquidity.next_12m_distributions == pytest.approx(40_000)
    assert liquidity.available_liquidity == pytest.approx(150_000)
    assert liquidity.liquidity_coverage == pytest.approx(0.5)
    assert liquidity.reserve_gap == pytest.approx(110_000)
    assert liquidity.deployment_years == pytest.approx(2.0)

    assert report.risk_scores.concentration == 100
    assert report.risk_scores.liquidity == pytest.approx(66.7)
    assert report.risk_scores.overall == pytest.approx(86.7)
    assert len(report.scenarios) == 3
    assert report.policy_breaches


def test_available_cash_overrides_policy_buffer() -> None:
    report = RiskService().compute_report([_fund()], available_cash=600_000, as_of=date(2026, 1, 15))

    assert report.liquidity.liquidity_coverage == pytest.approx(2.0)
    assert report.risk_scores.liquidity == 0
    assert report.liquidity.reserve_gap == 0


def test_paid_calls_are_not_projected_and_pending_window() -> None:
    as_of = date(2026, 1, 15)
    calls = [
        CapitalCallEvent(id="c1", fund_id="f1", amount=50_000, due_date=date(2026, 2, 1)),
        CapitalCallEvent(id="c2", fund_id="f1", amount=70_000, due_date=date(2026, 2, 10), payment_status="paid"),
        CapitalCallEvent(id="c3", fund_id="f1", amount=90_000, due_date=date(2026, 9, 1)),
    ]

    report = RiskService().compute_report([_fund()], capital_calls=calls, as_of=as_of)

    assert report.liquidity.pending_calls == pytest.approx(50_000)
    assert report.liquidity.schedule[0].capital_calls == pytest.approx(50_000)


def test_history_buckets_past_events() -> None:
    as_of = date(2026, 1, 15)
    calls = [CapitalCallEvent(id="c1", fund_id="f1", amount=80_000, due_date=date(2025, 5, 1), payment_status="PAID")]
    dists = [DistributionEvent(id="d1", fund_id="f1", amount=20_000, distribution_date=date(2025, 11, 1))]

    report = RiskService().compute_report([_fund()], capital_calls=calls, distributions=dists, as_of=as_of)
    history = {p.period: p for p in report.history}

    assert len(report.history) == 8
    assert report.history[-1].period == "Q1 2026"
    assert history["Q2 2025"].capital_calls == pytest.approx(80_000)
    assert history["Q4 2025"].distributions == pytest.approx(20_000)
    assert report.history[-1].cumulative_calls == pytest.approx(80_000)


def test_report_is_deterministic() -> None:
    entities = [_fund("a", geography="US"), _fund("b", name="Fund Two", geography="DE", nav=300_000)]
    service = RiskService()

    first = service.compute_report(entities, as_of=date(2026, 1, 15)).to_dict()
    second = service.compute_report(entities, as_of=date(2026, 1, 15)).to_dict()

    assert first == second


def test_snapshot_captures_scores_and_exposures() -> None:
    service = RiskService()
    report = service.compute_report([_fund()], as_of=date(2026, 1, 15))

    snapshot = service.build_snapshot(report, user_id="u1")

    assert snapshot.user_id == "u1"
    assert snapshot.risk_scores["overall"] == report.risk_scores.overall
    assert snapshot.exposures["geography"] == {"US": 100.0}
    assert len(snapshot.policy_breaches) == len(report.policy_breaches)


def test_snapshot_keeps_same_named_funds_apart() -> None:
    service = RiskService()
    entities = [_fund("a", name="Evergreen"), _fund("b", name="Evergreen", nav=300_000)]
    report = service.compute_report(entities, as_of=date(2026, 1, 15))

    snapshot = service.build_snapshot(report, user_id="u1")

    assert snapshot.exposures["fund"] == {"a": 62.5, "b": 37.5}
